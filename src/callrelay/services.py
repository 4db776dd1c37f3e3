"""Construction of the long-lived service graph from configuration."""

from __future__ import annotations

from dataclasses import dataclass

from callrelay.archive import TranscriptArchiver
from callrelay.config import CallrelayConfig
from callrelay.extraction import ActionItemExtractor, RecapGenerator
from callrelay.linear import IssueCreator, IssueTransformer, LinearClient
from callrelay.logging import get_logger
from callrelay.pipeline import WebhookPipeline
from callrelay.retry import RetryPolicy
from callrelay.review.coordinator import ReviewCoordinator
from callrelay.slack import SlackClient
from callrelay.store import ReviewStore, create_store

logger = get_logger(__name__)


@dataclass
class Services:
    """Everything the HTTP routes need, owned by the application lifespan."""

    config: CallrelayConfig
    store: ReviewStore
    linear: LinearClient
    extractor: ActionItemExtractor
    recap: RecapGenerator
    archiver: TranscriptArchiver
    pipeline: WebhookPipeline
    transformer: IssueTransformer
    creator: IssueCreator
    slack: SlackClient | None = None
    coordinator: ReviewCoordinator | None = None

    async def close(self) -> None:
        await self.pipeline.drain()
        if self.slack is not None:
            await self.slack.close()
        await self.archiver.close()
        await self.extractor.close()
        await self.recap.close()
        await self.linear.close()
        await self.store.close()


def build_services(config: CallrelayConfig) -> Services:
    """Wire clients, the review coordinator and the pipeline together."""
    store = create_store(config.store)
    linear = LinearClient(config.linear)
    creator = IssueCreator(
        linear,
        policy=RetryPolicy.from_config(config.review),
        batch_delay_seconds=config.review.batch_delay_seconds,
    )
    transformer = IssueTransformer(config.linear, directory=linear)
    extractor = ActionItemExtractor(config.openai)
    recap = RecapGenerator(config.openai)
    archiver = TranscriptArchiver(config.github)

    slack: SlackClient | None = None
    coordinator: ReviewCoordinator | None = None
    if config.slack.enabled:
        slack = SlackClient(config.slack)
        coordinator = ReviewCoordinator(
            store,
            slack,
            creator,
            channel_id=config.slack.channel_id,
            ttl_seconds=config.review.ttl_seconds,
        )
    else:
        logger.warning("slack_review_disabled", reason="missing Slack credentials")

    pipeline = WebhookPipeline(
        extractor=extractor,
        transformer=transformer,
        creator=creator,
        archiver=archiver,
        recap=recap,
        chat=slack,
        coordinator=coordinator,
        channel_id=config.slack.channel_id,
    )

    logger.info(
        "services_built",
        store_backend=store.name,
        review_enabled=coordinator is not None,
        archive_enabled=archiver.enabled,
    )
    return Services(
        config=config,
        store=store,
        linear=linear,
        extractor=extractor,
        recap=recap,
        archiver=archiver,
        pipeline=pipeline,
        transformer=transformer,
        creator=creator,
        slack=slack,
        coordinator=coordinator,
    )
