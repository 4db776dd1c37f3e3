"""Issue creation with bounded retry and batch failure reporting.

IssueCreator sits between the review coordinator (or the direct-create
pipeline path) and the tracker backend. Single creates retry transient
failures only; batches run sequentially so one failing issue never stops
the rest.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from callrelay.linear.client import IssueBackendError
from callrelay.models import IssuePayload
from callrelay.retry import RetryExhaustedError, RetryPolicy, retry_async

logger = structlog.get_logger(__name__)


class IssueBackend(Protocol):
    """Anything that can create a single tracker issue."""

    async def create_issue(self, payload: IssuePayload) -> str: ...


class ApprovalFailedError(Exception):
    """Raised when an issue could not be created.

    Attributes:
        title: Title of the issue that failed.
        attempts: Number of create attempts made.
        retryable: Classification of the final underlying error.
        cause: The final underlying backend error.
    """

    def __init__(
        self,
        title: str,
        attempts: int,
        cause: BaseException,
    ) -> None:
        self.title = title
        self.attempts = attempts
        self.cause = cause
        self.retryable = isinstance(cause, IssueBackendError) and cause.retryable
        super().__init__(
            f"Could not create issue {title!r} after {attempts} attempt(s): {cause}"
        )

    @property
    def classification(self) -> str:
        return "retryable" if self.retryable else "non_retryable"


@dataclass
class BatchFailure:
    """One failed entry of a batch create.

    Attributes:
        index: Position of the payload in the batch.
        title: Issue title.
        error: Error description.
        retryable: Whether the final error was transient.
    """

    index: int
    title: str
    error: str
    retryable: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "index": self.index,
            "title": self.title,
            "error": self.error,
            "retryable": self.retryable,
        }


@dataclass
class BatchResult:
    """Outcome of create_batch.

    Attributes:
        issue_ids: Created issue ids, in payload order.
        failures: Per-item failures.
    """

    issue_ids: list[str] = field(default_factory=list)
    failures: list[BatchFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.issue_ids) + len(self.failures)


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, IssueBackendError) and error.retryable


class IssueCreator:
    """Creates tracker issues with retry.

    Attributes:
        backend: Tracker client used for each create call.
        policy: Retry policy for single creates.
        batch_delay_seconds: Pause after each successful create in a batch.
    """

    def __init__(
        self,
        backend: IssueBackend,
        policy: RetryPolicy | None = None,
        batch_delay_seconds: float = 0.2,
    ) -> None:
        self.backend = backend
        self.policy = policy or RetryPolicy()
        self.batch_delay_seconds = batch_delay_seconds

    async def create_one(self, payload: IssuePayload) -> str:
        """Create one issue, retrying transient failures.

        Args:
            payload: Issue to create.

        Returns:
            The created issue id.

        Raises:
            ApprovalFailedError: If the backend rejected the issue or every
                attempt failed transiently.
        """
        try:
            return await retry_async(
                lambda: self.backend.create_issue(payload),
                self.policy,
                is_retryable=_is_retryable,
                operation="issue_create",
            )
        except RetryExhaustedError as e:
            logger.error(
                "issue_create_exhausted",
                title=payload.title,
                attempts=e.attempts,
                error=str(e.last_error),
            )
            raise ApprovalFailedError(payload.title, e.attempts, e.last_error) from e.last_error
        except IssueBackendError as e:
            logger.error(
                "issue_create_rejected",
                title=payload.title,
                classification=e.classification,
                status_code=e.status_code,
                error=str(e),
            )
            raise ApprovalFailedError(payload.title, 1, e) from e

    async def create_batch(self, payloads: list[IssuePayload]) -> BatchResult:
        """Create issues sequentially, collecting per-item failures.

        Args:
            payloads: Issues to create, in order.

        Returns:
            BatchResult with created ids and structured failures.
        """
        result = BatchResult()

        for index, payload in enumerate(payloads):
            try:
                issue_id = await self.create_one(payload)
            except ApprovalFailedError as e:
                result.failures.append(
                    BatchFailure(
                        index=index,
                        title=payload.title,
                        error=str(e.cause),
                        retryable=e.retryable,
                    )
                )
                continue

            result.issue_ids.append(issue_id)
            await asyncio.sleep(self.batch_delay_seconds)

        logger.info(
            "issue_batch_completed",
            created=len(result.issue_ids),
            failed=len(result.failures),
            total=len(payloads),
        )
        return result
