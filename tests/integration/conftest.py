"""Pytest fixtures for integration tests.

The HTTP tests drive the FastAPI app through httpx's ASGI transport with a
prebuilt Services graph: a real review coordinator over the in-memory store,
with mocked Slack, tracker and LLM clients. The lifespan does not run under
ASGITransport, so nothing here opens a network connection.
"""

from __future__ import annotations

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from callrelay.config import CallrelayConfig
from callrelay.linear.creator import IssueCreator
from callrelay.pipeline import WebhookPipeline
from callrelay.retry import RetryPolicy
from callrelay.review.coordinator import ReviewCoordinator
from callrelay.review.models import MessageRef
from callrelay.services import Services
from callrelay.store.memory import InMemoryReviewStore
from callrelay.web.app import create_app

from helpers import full_config

@pytest.fixture
def config() -> CallrelayConfig:
    return full_config()


@pytest.fixture
def slack() -> AsyncMock:
    client = AsyncMock()
    client.post_message.return_value = MessageRef(channel="C123", ts="1717000000.000100")
    return client


@pytest.fixture
def backend() -> AsyncMock:
    mock = AsyncMock()
    mock.create_issue.side_effect = [f"issue-{n}" for n in range(1, 20)]
    return mock


@pytest.fixture
def services(config: CallrelayConfig, slack: AsyncMock, backend: AsyncMock) -> Services:
    store = InMemoryReviewStore()
    creator = IssueCreator(
        backend,
        policy=RetryPolicy(max_attempts=3, initial_delay_seconds=0.0, max_delay_seconds=0.0),
        batch_delay_seconds=0.0,
    )
    coordinator = ReviewCoordinator(store, slack, creator, channel_id="C123")
    pipeline = MagicMock(spec=WebhookPipeline)
    pipeline.process = AsyncMock()
    return Services(
        config=config,
        store=store,
        linear=AsyncMock(),
        extractor=AsyncMock(),
        recap=AsyncMock(),
        archiver=AsyncMock(),
        pipeline=pipeline,
        transformer=AsyncMock(),
        creator=creator,
        slack=slack,
        coordinator=coordinator,
    )


@pytest_asyncio.fixture
async def async_client(
    config: CallrelayConfig, services: Services
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app using the prebuilt services."""
    app = create_app(config, services=services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
