"""Review store backed by a hosted key-value store's REST API.

Speaks the Redis-over-HTTP protocol used by Upstash and Vercel KV: each
command is POSTed as a JSON array to the base URL with a bearer token, and
the answer comes back as ``{"result": ...}`` or ``{"error": "..."}``.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from callrelay.config import StoreConfig
from callrelay.logging import get_logger
from callrelay.review.models import ReviewRequest
from callrelay.store.base import ReviewStore, StoreError

logger = get_logger(__name__)


class RestReviewStore(ReviewStore):
    """Durable review store for production and serverless deployment."""

    name = "rest"

    def __init__(self, url: str, token: str, timeout_seconds: float = 5.0) -> None:
        self.url = url.rstrip("/")
        self._token = token
        self._timeout = timeout_seconds
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config: StoreConfig) -> RestReviewStore:
        if not config.rest_url or not config.rest_token:
            raise StoreError("rest store requires rest_url and rest_token")
        return cls(config.rest_url, config.rest_token, config.timeout_seconds)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _command(self, *args: Any) -> Any:
        """Run one command and return its result.

        Raises:
            StoreError: On connection failure, non-2xx status or an error reply.
        """
        client = await self._get_client()
        try:
            response = await client.post(
                self.url,
                json=[str(arg) for arg in args],
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except httpx.RequestError as e:
            raise StoreError(f"{args[0]} failed: {e}") from e

        if not response.is_success:
            raise StoreError(f"{args[0]} failed: HTTP {response.status_code}: {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as e:
            raise StoreError(f"{args[0]} returned invalid JSON") from e

        if isinstance(body, dict) and body.get("error"):
            raise StoreError(f"{args[0]} failed: {body['error']}")
        return body.get("result") if isinstance(body, dict) else None

    async def put(self, key: str, record: ReviewRequest, ttl_seconds: int) -> None:
        await self._command("SET", key, record.to_json(), "EX", int(ttl_seconds))
        logger.debug("rest_review_store_put", key=key, ttl_seconds=ttl_seconds)

    async def get(self, key: str) -> ReviewRequest | None:
        raw = await self._command("GET", key)
        if raw is None:
            return None
        try:
            return ReviewRequest.from_json(raw)
        except ValidationError as e:
            raise StoreError(f"Corrupt review record at {key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._command("DEL", key)
        except StoreError as e:
            logger.warning("rest_review_store_delete_failed", key=key, error=str(e))
