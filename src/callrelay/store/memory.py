"""Process-local review store for development.

State lives in a dict inside the running process. It is lost on restart and
is invisible to other processes or serverless invocations, so it will not
work under concurrent or stateless deployment. Use the REST store there.
"""

from __future__ import annotations

import time
from typing import Callable

import structlog

from callrelay.review.models import ReviewRequest
from callrelay.store.base import ReviewStore

logger = structlog.get_logger(__name__)


class InMemoryReviewStore(ReviewStore):
    """Dict-backed store with per-key expiry on a monotonic clock.

    Records are kept serialized so callers always get an independent copy,
    matching the read-modify-write semantics of the networked store.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}
        logger.warning(
            "memory_review_store_in_use",
            detail="review state is process-local and will not survive "
            "restarts, concurrent workers or stateless invocations",
        )

    async def put(self, key: str, record: ReviewRequest, ttl_seconds: int) -> None:
        self._data[key] = (record.to_json(), self._clock() + ttl_seconds)

    async def get(self, key: str) -> ReviewRequest | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            logger.debug("memory_review_store_expired", key=key)
            return None
        return ReviewRequest.from_json(raw)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for _, expires_at in self._data.values() if expires_at > now)
