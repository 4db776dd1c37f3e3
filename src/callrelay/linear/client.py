"""Linear GraphQL client.

Async httpx client for the few Linear operations the pipeline needs:
creating issues, resolving assignees by name and listing teams. Every
failure is classified as retryable (network resets, timeouts, 5xx) or
non-retryable (4xx, GraphQL validation errors) so callers can decide
whether another attempt makes sense.

Example usage:
    >>> from callrelay.config import LinearConfig
    >>> client = LinearClient(LinearConfig(api_key="lin_api_...", team_id="..."))
    >>> issue_id = await client.create_issue(payload)
    >>> await client.close()
"""

from __future__ import annotations

from typing import Any

import httpx

from callrelay.config import LinearConfig
from callrelay.logging import get_logger
from callrelay.models import IssuePayload

logger = get_logger(__name__)

ISSUE_CREATE_MUTATION = """
mutation IssueCreate($input: IssueCreateInput!) {
  issueCreate(input: $input) {
    success
    issue { id identifier title url }
  }
}
"""

USERS_QUERY = """
query Users { users(first: 250) { nodes { id name displayName email } } }
"""

TEAMS_QUERY = """
query Teams { teams(first: 100) { nodes { id key name } } }
"""


class IssueBackendError(Exception):
    """Base exception for issue tracker failures.

    Attributes:
        retryable: Whether another attempt may succeed.
        status_code: HTTP status, when the tracker answered.
    """

    retryable: bool = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)

    @property
    def classification(self) -> str:
        return "retryable" if self.retryable else "non_retryable"


class RetryableBackendError(IssueBackendError):
    """Transient failure: connection reset, timeout or server error."""

    retryable = True


class NonRetryableBackendError(IssueBackendError):
    """Permanent failure: rejected request or validation error."""

    retryable = False


class LinearClient:
    """Async client for the Linear GraphQL API.

    Attributes:
        config: Linear configuration with API key, endpoint and defaults
    """

    def __init__(self, config: LinearConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None
        self._users: list[dict[str, Any]] | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
                headers={
                    "Authorization": self.config.api_key,
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a GraphQL operation and return its ``data`` object.

        Raises:
            RetryableBackendError: On transport failure or HTTP 5xx.
            NonRetryableBackendError: On HTTP 4xx or GraphQL errors.
        """
        client = await self._get_client()
        try:
            response = await client.post(
                self.config.api_url,
                json={"query": query, "variables": variables or {}},
            )
        except httpx.TimeoutException as e:
            raise RetryableBackendError(f"Linear request timed out: {e}") from e
        except httpx.TransportError as e:
            raise RetryableBackendError(f"Linear connection failed: {e}") from e

        if response.status_code >= 500:
            raise RetryableBackendError(
                f"Linear API error: HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise NonRetryableBackendError(
                f"Linear API rejected request: HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise RetryableBackendError(
                "Linear API returned invalid JSON", status_code=response.status_code
            ) from e

        if body.get("errors"):
            messages = "; ".join(str(err.get("message", err)) for err in body["errors"])
            raise NonRetryableBackendError(
                f"Linear API errors: {messages}", status_code=response.status_code
            )
        return body.get("data") or {}

    async def create_issue(self, payload: IssuePayload) -> str:
        """Create one issue and return its id.

        Raises:
            RetryableBackendError: On transient failures.
            NonRetryableBackendError: If Linear rejects the issue.
        """
        logger.info("linear_issue_create_started", title=payload.title)
        data = await self._graphql(
            ISSUE_CREATE_MUTATION, {"input": payload.to_graphql_input()}
        )
        result = data.get("issueCreate") or {}
        issue = result.get("issue")
        if not result.get("success") or not issue:
            raise NonRetryableBackendError(
                f"Failed to create issue: no issue returned for {payload.title!r}"
            )

        logger.info(
            "linear_issue_created",
            issue_id=issue["id"],
            identifier=issue.get("identifier"),
            title=issue.get("title"),
        )
        return issue["id"]

    async def list_users(self) -> list[dict[str, Any]]:
        """List workspace users, cached for the client's lifetime."""
        if self._users is None:
            data = await self._graphql(USERS_QUERY)
            self._users = list((data.get("users") or {}).get("nodes") or [])
        return self._users

    async def find_user_id(self, name: str) -> str | None:
        """Find a user whose name contains the given name, case-insensitively."""
        needle = name.strip().lower()
        if not needle:
            return None
        for user in await self.list_users():
            candidates = (user.get("name") or "", user.get("displayName") or "")
            if any(needle in candidate.lower() for candidate in candidates):
                return user["id"]
        return None

    async def list_teams(self) -> list[dict[str, Any]]:
        """List teams with their id, key and name."""
        data = await self._graphql(TEAMS_QUERY)
        return list((data.get("teams") or {}).get("nodes") or [])
