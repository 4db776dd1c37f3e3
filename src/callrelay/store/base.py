"""Review store contract.

The review coordinator keeps no state between invocations; every in-flight
review lives in a ReviewStore. The contract is deliberately small: a
best-effort get/put/delete with per-key expiry. There is no compare-and-swap,
so callers read a record fully, mutate it in memory and write it back fully.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from callrelay.review.models import ReviewRequest

KEY_PREFIX = "review:"


class StoreError(Exception):
    """Raised when the review store cannot be reached or answers badly."""

    pass


def review_key(review_id: str) -> str:
    """Store key for a review id."""
    return f"{KEY_PREFIX}{review_id}"


def resolved_key(review_id: str) -> str:
    """Store key for the final record of a fully resolved review."""
    return f"{KEY_PREFIX}{review_id}:resolved"


class ReviewStore(ABC):
    """Abstract key-value persistence for review requests."""

    #: Human-readable backend name for health reporting.
    name: str = "abstract"

    @abstractmethod
    async def put(self, key: str, record: ReviewRequest, ttl_seconds: int) -> None:
        """Store a record, replacing any existing one, expiring after ttl_seconds.

        Raises:
            StoreError: If the store is unreachable.
        """

    @abstractmethod
    async def get(self, key: str) -> ReviewRequest | None:
        """Fetch a record, or None if it never existed or has expired.

        Raises:
            StoreError: If the store is unreachable.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a record. Best-effort: failures are logged, never raised."""

    async def close(self) -> None:
        """Release any held resources."""
        return None
