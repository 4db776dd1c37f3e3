"""Review lifecycle coordination across stateless request handlers.

The coordinator posts a review message with per-item approve/reject buttons
and resolves each click against the review store. It keeps no state of its
own: every invocation reads the authoritative record from the store, mutates
it in memory and writes it back whole. The Slack message is a projection of
that record and is always re-rendered from it.

Consistency level:
    - Each item is resolved at most once in the store; a second action on a
      resolved item reports ALREADY_PROCESSED and creates nothing. Once every
      item is resolved the live record is deleted and a final copy is kept
      under a separate key until the original expiry, so repeat clicks still
      read as ALREADY_PROCESSED rather than NOT_FOUND.
    - The store offers no compare-and-swap. Two clicks on the same item that
      both read the record before either writes it back can both reach the
      tracker. The "processing" message update before each create narrows
      this window but does not close it. The record is re-read before each
      write and the first resolution stored wins; the later click reports
      ALREADY_PROCESSED with the stored state, naming any duplicate issue.
    - Issue creation is at-least-once: a crash between a successful create
      and the store write leaves the item pending with an issue already filed.
    - Failed creates never mark an item approved; it stays pending and the
      reviewer may click again.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog

from callrelay.linear.creator import ApprovalFailedError, IssueCreator
from callrelay.logging import bind_review_context
from callrelay.models import ActionItem, IssuePayload
from callrelay.review.models import (
    ActionDecision,
    ActionOutcome,
    MessageRef,
    OutcomeKind,
    ReviewRequest,
)
from callrelay.review.rendering import (
    error_banner,
    processing_banner,
    render_review,
    render_unavailable,
)
from callrelay.review.state import ItemState
from callrelay.slack.client import SlackAPIError
from callrelay.store.base import ReviewStore, StoreError, resolved_key, review_key

logger = structlog.get_logger(__name__)

DEFAULT_REVIEW_TTL_SECONDS = 30 * 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatClient(Protocol):
    """The chat operations the coordinator needs."""

    async def post_message(
        self, channel: str, text: str, blocks: list[dict[str, Any]] | None = None
    ) -> MessageRef: ...

    async def update_message(
        self, ref: MessageRef, text: str, blocks: list[dict[str, Any]] | None = None
    ) -> None: ...


class ReviewError(Exception):
    """Base exception for review posting failures."""

    pass


class ReviewPostError(ReviewError):
    """Raised when the review message could not be posted."""

    pass


class ReviewPersistenceError(ReviewError):
    """Raised when a posted review could not be saved to the store.

    Attributes:
        review_id: The review whose state was lost.
    """

    def __init__(self, review_id: str, message: str) -> None:
        self.review_id = review_id
        super().__init__(message)


class ReviewCoordinator:
    """Owns the review lifecycle.

    Collaborators are injected and stateless; nothing behavioural is stored
    in the review record itself.

    Attributes:
        store: Review state store.
        chat: Chat client used to post and update review messages.
        issue_creator: Creates the issue for an approved item.
        channel_id: Channel receiving review messages.
        ttl_seconds: Review lifetime from creation.
        now: Source of the current UTC time.
    """

    def __init__(
        self,
        store: ReviewStore,
        chat: ChatClient,
        issue_creator: IssueCreator,
        channel_id: str,
        ttl_seconds: int = DEFAULT_REVIEW_TTL_SECONDS,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.chat = chat
        self.issue_creator = issue_creator
        self.channel_id = channel_id
        self.ttl_seconds = ttl_seconds
        self.now = now or _utcnow

    # ------------------------------------------------------------------ #
    # Posting
    # ------------------------------------------------------------------ #

    async def post_review(
        self,
        items: list[ActionItem],
        issue_payloads: list[IssuePayload],
    ) -> str:
        """Post a new review and persist its state.

        Args:
            items: Candidate action items.
            issue_payloads: Issue payloads, index-aligned with items.

        Returns:
            The new review id.

        Raises:
            ValueError: If items and issue_payloads differ in length.
            ReviewPostError: If the review message could not be posted.
            ReviewPersistenceError: If the message was posted but the review
                could not be saved.
        """
        review = ReviewRequest.create(items, issue_payloads, self.ttl_seconds, now=self.now())
        bind_review_context(review.review_id)
        text, blocks = render_review(review)

        try:
            review.message_ref = await self.chat.post_message(self.channel_id, text, blocks)
        except SlackAPIError as e:
            logger.error("review_post_failed", channel=self.channel_id, error=str(e))
            raise ReviewPostError(f"Failed to post review to Slack: {e}") from e

        try:
            await self.store.put(review_key(review.review_id), review, review.ttl_seconds)
        except StoreError as e:
            # Buttons now exist for a review the store does not know about
            logger.error(
                "review_state_desync",
                stage="post",
                channel=review.message_ref.channel,
                ts=review.message_ref.ts,
                item_count=len(items),
                error=str(e),
            )
            await self._update_message(review.message_ref, *render_unavailable(len(items)))
            raise ReviewPersistenceError(
                review.review_id, f"Review posted but state could not be saved: {e}"
            ) from e

        logger.info(
            "review_posted",
            item_count=len(items),
            ttl_seconds=review.ttl_seconds,
            channel=review.message_ref.channel,
            ts=review.message_ref.ts,
        )
        return review.review_id

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    async def handle_action(
        self,
        review_id: str,
        item_index: int,
        decision: ActionDecision,
    ) -> ActionOutcome:
        """Resolve one reviewer click.

        Never raises; every failure is reported as an outcome.

        Args:
            review_id: Review the clicked button belongs to.
            item_index: Item the clicked button belongs to.
            decision: Approve or reject.

        Returns:
            The outcome, including a user-facing notice.
        """
        bind_review_context(review_id, item_index)
        logger.info("review_action_received", decision=decision.value)

        def outcome(kind: OutcomeKind, text: str, **kwargs: Any) -> ActionOutcome:
            return ActionOutcome(
                kind=kind,
                review_id=review_id,
                item_index=item_index,
                decision=decision,
                text=text,
                **kwargs,
            )

        try:
            review = await self._load(review_id)
        except StoreError as e:
            logger.error("review_store_read_failed", error=str(e))
            return outcome(
                OutcomeKind.PERSISTENCE_FAILED,
                "❌ Review state is temporarily unavailable. Please try again.",
                error=str(e),
            )

        if review is None:
            logger.info("review_action_not_found")
            return outcome(OutcomeKind.NOT_FOUND, "❌ Review not found or expired.")

        if not review.has_item(item_index):
            logger.warning("review_item_unknown", item_count=len(review.items))
            return outcome(OutcomeKind.NOT_FOUND, "❌ Review item not found.")

        title = review.issue_payloads[item_index].title
        current = review.state_of(item_index)
        if current != ItemState.PENDING:
            logger.info("review_action_already_processed", state=current.value)
            return outcome(
                OutcomeKind.ALREADY_PROCESSED,
                f"ℹ️ Item {item_index + 1} (*{title}*) was already {current.value}.",
                issue_id=review.issue_ids.get(item_index),
            )

        if decision == ActionDecision.REJECT:
            latest, applied = await self._resolve(review, item_index, ItemState.REJECTED)
            if not applied:
                stored = latest.state_of(item_index)
                return outcome(
                    OutcomeKind.ALREADY_PROCESSED,
                    f"ℹ️ Item {item_index + 1} (*{title}*) was already {stored.value} "
                    "by another reviewer.",
                    issue_id=latest.issue_ids.get(item_index),
                )
            logger.info("review_item_rejected")
            return outcome(
                OutcomeKind.SUCCESS,
                f"❌ Item {item_index + 1} (*{title}*) rejected - no issue created.",
            )

        return await self._approve(review, item_index, title, outcome)

    async def _approve(self, review: ReviewRequest, item_index: int, title: str, outcome: Any) -> ActionOutcome:
        # Tell anyone looking at the message that this item is in flight
        await self._refresh_message(review, processing_banner(item_index, title))

        try:
            issue_id = await self.issue_creator.create_one(review.issue_payloads[item_index])
        except ApprovalFailedError as e:
            logger.error(
                "review_approval_failed",
                classification=e.classification,
                attempts=e.attempts,
                error=str(e.cause),
            )
            latest = await self._reload(review) or review
            await self._refresh_message(latest, error_banner(item_index, title, str(e.cause)))
            return outcome(
                OutcomeKind.APPROVAL_FAILED,
                f"❌ Could not create issue for item {item_index + 1} (*{title}*). "
                "It is still pending; please try again.",
                error=str(e.cause),
            )
        except Exception as e:
            logger.exception("review_approval_error")
            latest = await self._reload(review) or review
            await self._refresh_message(latest, error_banner(item_index, title, str(e)))
            return outcome(
                OutcomeKind.APPROVAL_FAILED,
                f"❌ Error creating issue for item {item_index + 1} (*{title}*). Please try again.",
                error=str(e),
            )

        latest, applied = await self._resolve(review, item_index, ItemState.APPROVED, issue_id)
        if not applied:
            stored = latest.state_of(item_index)
            return outcome(
                OutcomeKind.ALREADY_PROCESSED,
                f"⚠️ Item {item_index + 1} (*{title}*) was already {stored.value} by another "
                f"reviewer. Duplicate issue `{issue_id}` was created and needs cleanup.",
                issue_id=latest.issue_ids.get(item_index),
                error=f"duplicate issue {issue_id}",
            )
        logger.info("review_item_approved", issue_id=issue_id)
        return outcome(
            OutcomeKind.SUCCESS,
            f"✅ Item {item_index + 1} (*{title}*) approved - issue `{issue_id}` created.",
            issue_id=issue_id,
        )

    # ------------------------------------------------------------------ #
    # Store and message helpers
    # ------------------------------------------------------------------ #

    async def _load(self, review_id: str) -> ReviewRequest | None:
        """Read a live review, falling back to its final record once resolved.

        Raises:
            StoreError: If the store cannot be read.
        """
        review = await self.store.get(review_key(review_id))
        if review is None:
            review = await self.store.get(resolved_key(review_id))
        return review

    async def _reload(self, review: ReviewRequest) -> ReviewRequest | None:
        """Freshest stored copy of a review, or None if it is gone or unreadable."""
        try:
            return await self._load(review.review_id)
        except StoreError as e:
            logger.warning("review_reload_failed", error=str(e))
            return None

    async def _retire(self, review: ReviewRequest) -> None:
        """Replace a fully resolved review's live record with its final record.

        The final record only answers repeat clicks with ALREADY_PROCESSED
        until the original expiry; nothing is ever written back to it.
        """
        try:
            await self.store.put(
                resolved_key(review.review_id), review, review.remaining_ttl(self.now())
            )
        except StoreError as e:
            logger.warning("review_final_record_failed", error=str(e))
        await self.store.delete(review_key(review.review_id))
        logger.info("review_resolved", item_count=len(review.items))

    async def _resolve(
        self,
        review: ReviewRequest,
        item_index: int,
        target: ItemState,
        issue_id: str | None = None,
    ) -> tuple[ReviewRequest, bool]:
        """Apply a resolution to the freshest record and write it back.

        Re-reading just before the write keeps resolutions made concurrently
        on other items. The record is deleted once nothing is pending;
        otherwise it is saved with whatever remains of its original TTL.

        Returns:
            The record as it now stands, and whether this resolution was
            applied. False means another action resolved the item first and
            the stored result was kept.
        """
        key = review_key(review.review_id)
        latest = await self._reload(review)

        if latest is None:
            # Expired (or unreadable) while we were working; nothing to write back to
            logger.warning("review_gone_before_write", target=target.value, issue_id=issue_id)
            review.resolve(item_index, target, issue_id)
            await self._refresh_message(review)
            return review, True

        if latest.state_of(item_index) != ItemState.PENDING:
            logger.error(
                "review_action_race_lost",
                target=target.value,
                existing_state=latest.state_of(item_index).value,
                issue_id=issue_id,
                existing_issue_id=latest.issue_ids.get(item_index),
            )
            await self._refresh_message(latest)
            return latest, False

        latest.resolve(item_index, target, issue_id)
        if latest.is_resolved:
            await self._retire(latest)
        else:
            try:
                await self.store.put(key, latest, latest.remaining_ttl(self.now()))
            except StoreError as e:
                logger.error(
                    "review_state_desync",
                    stage="action",
                    target=target.value,
                    issue_id=issue_id,
                    error=str(e),
                )

        await self._refresh_message(latest)
        return latest, True

    async def _refresh_message(self, review: ReviewRequest, banner: str | None = None) -> None:
        if review.message_ref is None:
            return
        await self._update_message(review.message_ref, *render_review(review, banner))

    async def _update_message(self, ref: MessageRef, text: str, blocks: list[dict[str, Any]]) -> None:
        try:
            await self.chat.update_message(ref, text, blocks)
        except SlackAPIError as e:
            logger.warning("review_message_update_failed", error=str(e))
