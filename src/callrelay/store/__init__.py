"""Review state stores."""

from __future__ import annotations

from callrelay.config import StoreConfig
from callrelay.store.base import (
    KEY_PREFIX,
    ReviewStore,
    StoreError,
    resolved_key,
    review_key,
)
from callrelay.store.memory import InMemoryReviewStore
from callrelay.store.rest import RestReviewStore


def create_store(config: StoreConfig) -> ReviewStore:
    """Build the store selected by configuration."""
    if config.backend == "rest":
        return RestReviewStore.from_config(config)
    return InMemoryReviewStore()


__all__ = [
    "KEY_PREFIX",
    "InMemoryReviewStore",
    "RestReviewStore",
    "ReviewStore",
    "StoreError",
    "create_store",
    "resolved_key",
    "review_key",
]
