"""Recording webhook processing pipeline.

A verified webhook flows through these steps:

1. Archive the raw payload (background, failures logged).
2. Extract action items from the transcript.
3. Transform each item into an issue payload.
4. Either post a Slack review (when Slack is configured) together with a
   background recap message, or create every issue directly as a batch.

Steps 2-4 are awaited and their failures surface as PipelineError with the
HTTP status the webhook route should answer with.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any

import structlog

from callrelay.archive import TranscriptArchiver
from callrelay.extraction import ActionItemExtractor, ExtractionError, RecapError, RecapGenerator
from callrelay.fathom import RecordingWebhook
from callrelay.linear.creator import IssueCreator
from callrelay.linear.transformer import IssueTransformer
from callrelay.review.coordinator import ReviewCoordinator, ReviewError
from callrelay.slack.client import SlackAPIError, SlackClient

logger = structlog.get_logger(__name__)


class PipelineError(Exception):
    """Raised when a webhook cannot be processed.

    Attributes:
        stage: Pipeline step that failed.
        status_code: HTTP status for the webhook response.
    """

    def __init__(self, stage: str, message: str, status_code: int = 500) -> None:
        self.stage = stage
        self.status_code = status_code
        super().__init__(message)


@dataclass
class PipelineResult:
    """Summary of one processed webhook.

    Attributes:
        message: Human-readable status.
        recording_id: Recording the webhook described.
        action_items_count: Number of extracted action items.
        review_required: Whether items await Slack approval.
        review_id: Review id when a Slack review was posted.
        issues_created: Issue ids created directly.
        failures: Per-item failures from a direct batch create.
    """

    message: str
    recording_id: str
    action_items_count: int = 0
    review_required: bool = False
    review_id: str | None = None
    issues_created: list[str] = field(default_factory=list)
    failures: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "recording_id": self.recording_id,
            "action_items_count": self.action_items_count,
            "review_required": self.review_required,
            "review_id": self.review_id,
            "issues_created": self.issues_created,
            "failures": self.failures,
        }


class WebhookPipeline:
    """Runs a verified recording webhook through extraction and review.

    Attributes:
        extractor: Action item extraction service.
        transformer: Action item to issue payload transform.
        creator: Issue creation client for the direct path.
        archiver: Transcript archive.
        recap: Recap generator for the Slack summary.
        chat: Slack client, or None when Slack is not configured.
        coordinator: Review coordinator, or None when Slack is not configured.
        channel_id: Channel for recap messages.
    """

    def __init__(
        self,
        extractor: ActionItemExtractor,
        transformer: IssueTransformer,
        creator: IssueCreator,
        archiver: TranscriptArchiver,
        recap: RecapGenerator,
        chat: SlackClient | None = None,
        coordinator: ReviewCoordinator | None = None,
        channel_id: str = "",
    ) -> None:
        self.extractor = extractor
        self.transformer = transformer
        self.creator = creator
        self.archiver = archiver
        self.recap = recap
        self.chat = chat
        self.coordinator = coordinator
        self.channel_id = channel_id
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def review_enabled(self) -> bool:
        return self.coordinator is not None

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        # Hold a reference until done so the task is not garbage collected
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for outstanding background work (archive and recap)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def _post_recap(self, webhook: RecordingWebhook) -> None:
        if self.chat is None:
            return
        try:
            text = await self.recap.generate(
                webhook.recording.title,
                webhook.transcript_text,
                webhook.summary,
            )
            await self.chat.post_message(self.channel_id, text)
        except (RecapError, SlackAPIError) as e:
            logger.error("recap_post_failed", recording_id=webhook.recording.id, error=str(e))
            return
        logger.info("recap_posted", recording_id=webhook.recording.id)

    async def process(self, webhook: RecordingWebhook) -> PipelineResult:
        """Process one verified webhook.

        Args:
            webhook: Parsed webhook payload.

        Returns:
            PipelineResult describing what was done.

        Raises:
            PipelineError: If the transcript is missing (400) or extraction,
                transform, review posting or direct creation fails (500).
        """
        recording_id = webhook.recording.id
        log = logger.bind(recording_id=recording_id)
        log.info("webhook_processing_started", title=webhook.recording.title)

        self._spawn(
            self.archiver.archive(recording_id, webhook.recording.title, webhook.to_archive()),
            name=f"archive-{recording_id}",
        )

        transcript = webhook.transcript_text
        if not transcript.strip():
            log.warning("webhook_missing_transcript")
            raise PipelineError("transcript", "No transcript found in webhook", status_code=400)

        try:
            items = await self.extractor.extract(transcript, webhook.summary)
        except ExtractionError as e:
            raise PipelineError("extraction", "Failed to extract action items") from e

        if not items:
            log.info("webhook_no_action_items")
            return PipelineResult(message="No action items found", recording_id=recording_id)

        try:
            payloads = await self.transformer.transform_all(items)
        except Exception as e:
            log.exception("webhook_transform_failed")
            raise PipelineError("transform", "Failed to transform action items") from e

        if self.coordinator is not None:
            self._spawn(self._post_recap(webhook), name=f"recap-{recording_id}")
            try:
                review_id = await self.coordinator.post_review(items, payloads)
            except (ReviewError, ValueError) as e:
                log.error("webhook_review_failed", error=str(e))
                raise PipelineError("review", "Failed to post review to Slack") from e

            log.info("webhook_review_posted", review_id=review_id, item_count=len(items))
            return PipelineResult(
                message="Processing started - recap posting, review pending in Slack",
                recording_id=recording_id,
                action_items_count=len(items),
                review_required=True,
                review_id=review_id,
            )

        batch = await self.creator.create_batch(payloads)
        if not batch.issue_ids and batch.failures:
            log.error("webhook_direct_create_failed", failed=len(batch.failures))
            raise PipelineError("create", "Failed to create Linear issues")

        log.info(
            "webhook_issues_created",
            created=len(batch.issue_ids),
            failed=len(batch.failures),
        )
        return PipelineResult(
            message="Processing complete - issues created in Linear",
            recording_id=recording_id,
            action_items_count=len(items),
            review_required=False,
            issues_created=batch.issue_ids,
            failures=[f.to_dict() for f in batch.failures],
        )
