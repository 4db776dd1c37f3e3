"""Transcript archival to a GitHub repository.

Each recording is written to ``<path_prefix>/<YYYY-MM-DD>/<recording_id>.json``
through the contents API. An existing file at that path is overwritten,
which requires sending its current blob sha.
"""

from __future__ import annotations

import base64
import json
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from callrelay.config import GitHubConfig

logger = structlog.get_logger(__name__)


class ArchiveError(Exception):
    """Raised when the GitHub contents API rejects a request.

    Attributes:
        status_code: HTTP status code, if a response was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


def archive_path(prefix: str, recording_id: str, now: datetime | None = None) -> str:
    day = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    return f"{prefix}/{day}/{recording_id}.json"


class TranscriptArchiver:
    """Writes raw webhook payloads into a repository.

    Attributes:
        config: GitHub repository and credentials.
    """

    def __init__(self, config: GitHubConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.config.token and self.config.repo_owner and self.config.repo_name)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.api_url,
                timeout=15.0,
                headers={
                    "Authorization": f"Bearer {self.config.token}",
                    "Accept": "application/vnd.github+json",
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.config.repo_owner}/{self.config.repo_name}/contents/{path}"

    async def _existing_sha(self, path: str) -> str | None:
        client = await self._get_client()
        response = await client.get(self._contents_url(path))
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise ArchiveError(f"GitHub GET {path} failed", response.status_code)

        data = response.json()
        if isinstance(data, list):
            raise ArchiveError(f"Archive path is a directory: {path}")
        return data.get("sha")

    async def write(self, recording_id: str, title: str, payload: dict[str, Any]) -> str:
        """Write one payload to the archive.

        Args:
            recording_id: Recording identifier, used as the filename.
            title: Meeting title for the commit message.
            payload: JSON-serialisable webhook payload.

        Returns:
            The repository path written.

        Raises:
            ArchiveError: If GitHub rejects the write.
            httpx.HTTPError: On transport failure.
        """
        path = archive_path(self.config.path_prefix, recording_id)
        content = json.dumps(payload, indent=2).encode("utf-8")

        body: dict[str, Any] = {
            "message": f"Add transcript: {title}",
            "content": base64.b64encode(content).decode("ascii"),
        }
        sha = await self._existing_sha(path)
        if sha:
            body["sha"] = sha

        client = await self._get_client()
        response = await client.put(self._contents_url(path), json=body)
        if response.status_code >= 400:
            raise ArchiveError(f"GitHub PUT {path} failed", response.status_code)

        logger.info("transcript_archived", path=path, updated=sha is not None)
        return path

    async def archive(self, recording_id: str, title: str, payload: dict[str, Any]) -> str | None:
        """Archive a payload, logging instead of raising on failure.

        Returns:
            The repository path written, or None if archiving was skipped or failed.
        """
        if not self.enabled:
            logger.debug("transcript_archive_disabled")
            return None
        try:
            return await self.write(recording_id, title, payload)
        except (ArchiveError, httpx.HTTPError) as e:
            logger.error(
                "transcript_archive_failed",
                recording_id=recording_id,
                status_code=getattr(e, "status_code", None),
                error=str(e),
            )
            return None
