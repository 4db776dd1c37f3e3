"""Shared pytest fixtures for callrelay tests."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import structlog

from callrelay.linear.creator import IssueCreator
from callrelay.logging import set_correlation_id
from callrelay.models import ActionItem, ActionPriority, IssuePayload
from callrelay.retry import RetryPolicy
from callrelay.review.models import MessageRef
from callrelay.store.memory import InMemoryReviewStore

from helpers import FakeClock, make_item, make_payload


@pytest.fixture(autouse=True)
def clear_log_context() -> None:
    """Keep bound review context from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    set_correlation_id(None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryReviewStore:
    return InMemoryReviewStore(clock=clock)


@pytest.fixture
def chat() -> AsyncMock:
    """Chat client mock that posts to channel C123."""
    client = AsyncMock()
    client.post_message.return_value = MessageRef(channel="C123", ts="1717000000.000100")
    client.update_message.return_value = None
    return client


@pytest.fixture
def backend() -> AsyncMock:
    """Issue backend mock returning sequential issue ids."""
    mock = AsyncMock()
    mock.create_issue.side_effect = [f"issue-{n}" for n in range(1, 50)]
    return mock


@pytest.fixture
def fast_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, initial_delay_seconds=0.0, max_delay_seconds=0.0)


@pytest.fixture
def creator(backend: AsyncMock, fast_policy: RetryPolicy) -> IssueCreator:
    return IssueCreator(backend, policy=fast_policy, batch_delay_seconds=0.0)


@pytest.fixture
def two_items() -> tuple[list[ActionItem], list[IssuePayload]]:
    items = [
        make_item("Send pricing deck", assignee="Dana", priority=ActionPriority.HIGH),
        make_item("Book follow-up call", priority=ActionPriority.LOW),
    ]
    payloads = [make_payload("Send pricing deck"), make_payload("Book follow-up call")]
    return items, payloads
