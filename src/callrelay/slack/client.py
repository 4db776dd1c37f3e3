"""Slack Web API client.

Async httpx client covering the calls the review workflow makes: posting
a message, updating it in place, and answering an interaction through its
``response_url``.
"""

from __future__ import annotations

from typing import Any

import httpx

from callrelay.config import SlackConfig
from callrelay.logging import get_logger
from callrelay.review.models import MessageRef

logger = get_logger(__name__)


class SlackAPIError(Exception):
    """Raised when a Slack API call fails.

    Attributes:
        method: Slack API method that failed.
        error: Slack error code or transport error description.
    """

    def __init__(self, method: str, error: str) -> None:
        self.method = method
        self.error = error
        super().__init__(f"Slack {method} failed: {error}")


class SlackClient:
    """Async client for the Slack Web API.

    Attributes:
        config: Slack configuration with token and API base URL
    """

    def __init__(self, config: SlackConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Call a Web API method and return the decoded body.

        Raises:
            SlackAPIError: On transport failure, non-2xx status or ``ok: false``.
        """
        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.config.api_url.rstrip('/')}/{method}",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.config.bot_token}",
                    "Content-Type": "application/json; charset=utf-8",
                },
            )
        except httpx.RequestError as e:
            raise SlackAPIError(method, str(e)) from e

        if not response.is_success:
            raise SlackAPIError(method, f"HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise SlackAPIError(method, "invalid_json_response") from e
        if not body.get("ok"):
            raise SlackAPIError(method, str(body.get("error", "unknown_error")))
        return body

    async def post_message(
        self,
        channel: str,
        text: str,
        blocks: list[dict[str, Any]] | None = None,
    ) -> MessageRef:
        """Post a message and return where it landed."""
        payload: dict[str, Any] = {"channel": channel, "text": text}
        if blocks is not None:
            payload["blocks"] = blocks
        body = await self._call("chat.postMessage", payload)
        ref = MessageRef(channel=body.get("channel", channel), ts=body["ts"])
        logger.debug("slack_message_posted", channel=ref.channel, ts=ref.ts)
        return ref

    async def update_message(
        self,
        ref: MessageRef,
        text: str,
        blocks: list[dict[str, Any]] | None = None,
    ) -> None:
        """Replace the content of a posted message."""
        payload: dict[str, Any] = {"channel": ref.channel, "ts": ref.ts, "text": text}
        if blocks is not None:
            payload["blocks"] = blocks
        await self._call("chat.update", payload)
        logger.debug("slack_message_updated", channel=ref.channel, ts=ref.ts)

    async def respond(
        self,
        response_url: str,
        text: str,
        replace_original: bool = False,
    ) -> None:
        """Send an ephemeral reply through an interaction's response_url."""
        client = await self._get_client()
        try:
            response = await client.post(
                response_url,
                json={
                    "text": text,
                    "response_type": "ephemeral",
                    "replace_original": replace_original,
                },
            )
        except httpx.RequestError as e:
            raise SlackAPIError("response_url", str(e)) from e
        if not response.is_success:
            raise SlackAPIError("response_url", f"HTTP {response.status_code}")
