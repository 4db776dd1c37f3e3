"""Retry with exponential backoff for transient external failures.

The caller supplies a predicate classifying which exceptions are worth
retrying; anything else propagates on the first attempt. Delays start at
``initial_delay_seconds`` and grow by ``multiplier`` up to
``max_delay_seconds``.

Example:
    >>> policy = RetryPolicy(max_attempts=3, initial_delay_seconds=1.0)
    >>> issue_id = await retry_async(
    ...     lambda: backend.create_issue(payload),
    ...     policy,
    ...     is_retryable=lambda e: isinstance(e, RetryableBackendError),
    ... )
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog
from pydantic import BaseModel, Field

from callrelay.config import ReviewConfig

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Exponential backoff configuration.

    Attributes:
        max_attempts: Total attempts including the first one
        initial_delay_seconds: Delay before the second attempt
        max_delay_seconds: Ceiling for any single delay
        multiplier: Growth factor applied after each failed attempt
    """

    max_attempts: int = Field(default=3, ge=1, le=10)
    initial_delay_seconds: float = Field(default=1.0, ge=0.0, le=60.0)
    max_delay_seconds: float = Field(default=10.0, ge=0.0, le=600.0)
    multiplier: float = Field(default=2.0, ge=1.0, le=10.0)

    @classmethod
    def from_config(cls, config: ReviewConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            initial_delay_seconds=config.initial_delay_seconds,
            max_delay_seconds=config.max_delay_seconds,
            multiplier=config.multiplier,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        delay = self.initial_delay_seconds * (self.multiplier ** (attempt - 1))
        return min(delay, self.max_delay_seconds)


class RetryExhaustedError(Exception):
    """Raised when every attempt failed with a retryable error.

    Attributes:
        attempts: Number of attempts made.
        last_error: The final underlying exception.
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    is_retryable: Callable[[BaseException], bool],
    operation: str = "operation",
) -> T:
    """Call fn until it succeeds, a non-retryable error occurs, or attempts run out.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt.
        policy: Backoff configuration.
        is_retryable: Classifier for exceptions raised by fn.
        operation: Name used in log events.

    Returns:
        The first successful result.

    Raises:
        RetryExhaustedError: If all attempts failed with retryable errors.
        Exception: Any non-retryable error, unchanged, on first occurrence.
    """
    last_error: BaseException | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await fn()
        except Exception as e:
            if not is_retryable(e):
                raise
            last_error = e

            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                logger.warning(
                    "retry_attempt_failed",
                    operation=operation,
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    backoff_seconds=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)

    logger.error(
        "retry_exhausted",
        operation=operation,
        max_attempts=policy.max_attempts,
        error=str(last_error),
    )
    assert last_error is not None
    raise RetryExhaustedError(attempts=policy.max_attempts, last_error=last_error)
