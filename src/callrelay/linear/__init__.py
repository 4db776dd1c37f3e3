"""Linear issue tracker integration."""

from __future__ import annotations

from callrelay.linear.client import (
    IssueBackendError,
    LinearClient,
    NonRetryableBackendError,
    RetryableBackendError,
)
from callrelay.linear.creator import (
    ApprovalFailedError,
    BatchFailure,
    BatchResult,
    IssueBackend,
    IssueCreator,
)
from callrelay.linear.transformer import IssueTransformer

__all__ = [
    "ApprovalFailedError",
    "BatchFailure",
    "BatchResult",
    "IssueBackend",
    "IssueBackendError",
    "IssueCreator",
    "IssueTransformer",
    "LinearClient",
    "NonRetryableBackendError",
    "RetryableBackendError",
]
