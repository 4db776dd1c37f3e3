"""Review request records and action outcomes.

A ReviewRequest is the persisted state of one batch of candidate items
awaiting human disposition. It round-trips through the review store as JSON
and is the single source of truth for the Slack message, which is always
re-rendered from it.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from callrelay.models import ActionItem, IssuePayload
from callrelay.review.state import (
    InvalidItemTransitionError,
    ItemState,
    validate_item_transition,
)


def generate_review_id() -> str:
    """Generate a review id from the current time and a random suffix."""
    return f"review_{int(time.time() * 1000)}_{uuid.uuid4().hex[:10]}"


class MessageRef(BaseModel):
    """Location of a posted chat message.

    Attributes:
        channel: Conversation id.
        ts: Message timestamp, Slack's message id.
    """

    channel: str
    ts: str


class ReviewRequest(BaseModel):
    """One batch of items awaiting approval.

    Only ``item_states`` and ``issue_ids`` change after creation; everything
    else is fixed when the review is posted.

    Attributes:
        review_id: Opaque unique identifier.
        items: Candidate action items, index-aligned with issue_payloads.
        issue_payloads: Issue creation payloads, index-aligned with items.
        created_at: Creation time (UTC).
        ttl_seconds: Lifetime of the review from created_at.
        message_ref: The chat message showing this review, once posted.
        item_states: Per-index disposition.
        issue_ids: Created issue identifier per approved index.
    """

    review_id: str
    items: list[ActionItem]
    issue_payloads: list[IssuePayload]
    created_at: datetime
    ttl_seconds: int = Field(gt=0)
    message_ref: MessageRef | None = None
    item_states: list[ItemState]
    issue_ids: dict[int, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_alignment(self) -> ReviewRequest:
        """Items, payloads and states must stay index-aligned."""
        if not (len(self.items) == len(self.issue_payloads) == len(self.item_states)):
            raise ValueError(
                "items, issue_payloads and item_states must have equal length "
                f"(got {len(self.items)}, {len(self.issue_payloads)}, {len(self.item_states)})"
            )
        return self

    @classmethod
    def create(
        cls,
        items: list[ActionItem],
        issue_payloads: list[IssuePayload],
        ttl_seconds: int,
        review_id: str | None = None,
        now: datetime | None = None,
    ) -> ReviewRequest:
        """Build a fresh review with every item pending."""
        if len(items) != len(issue_payloads):
            raise ValueError(
                f"items and issue_payloads differ in length ({len(items)} != {len(issue_payloads)})"
            )
        return cls(
            review_id=review_id or generate_review_id(),
            items=list(items),
            issue_payloads=list(issue_payloads),
            created_at=now or datetime.now(timezone.utc),
            ttl_seconds=ttl_seconds,
            item_states=[ItemState.PENDING] * len(items),
        )

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(seconds=self.ttl_seconds)

    def remaining_ttl(self, now: datetime | None = None) -> int:
        """Seconds left until the original expiry, at least one."""
        now = now or datetime.now(timezone.utc)
        return max(1, int((self.expires_at - now).total_seconds()))

    def has_item(self, index: int) -> bool:
        return 0 <= index < len(self.items)

    def state_of(self, index: int) -> ItemState:
        return self.item_states[index]

    @property
    def pending_indices(self) -> list[int]:
        return [i for i, state in enumerate(self.item_states) if state == ItemState.PENDING]

    @property
    def is_resolved(self) -> bool:
        """True once no item is pending."""
        return not self.pending_indices

    def resolve(self, index: int, target: ItemState, issue_id: str | None = None) -> None:
        """Move one item out of pending.

        Raises:
            InvalidItemTransitionError: If the item is already resolved.
        """
        current = self.item_states[index]
        if not validate_item_transition(current, target):
            raise InvalidItemTransitionError(current, target, self.review_id, index)
        self.item_states[index] = target
        if issue_id is not None:
            self.issue_ids[index] = issue_id

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, raw: str | bytes) -> ReviewRequest:
        return cls.model_validate_json(raw)


class ActionDecision(str, Enum):
    """Reviewer decision on a single item."""

    APPROVE = "approve"
    REJECT = "reject"


class OutcomeKind(str, Enum):
    """Result classes of handling one reviewer action.

    Kinds:
        SUCCESS: The item was approved (issue created) or rejected.
        NOT_FOUND: The review does not exist or has expired.
        ALREADY_PROCESSED: The item was resolved by an earlier action.
        APPROVAL_FAILED: Issue creation failed; the item stays pending.
        PERSISTENCE_FAILED: The review store could not be read.
    """

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ALREADY_PROCESSED = "already_processed"
    APPROVAL_FAILED = "approval_failed"
    PERSISTENCE_FAILED = "persistence_failed"


@dataclass
class ActionOutcome:
    """Result of ReviewCoordinator.handle_action.

    Attributes:
        kind: Outcome class.
        review_id: Review the action addressed.
        item_index: Item the action addressed.
        decision: The reviewer's decision.
        text: User-facing notice for the acting reviewer.
        issue_id: Created issue id on a successful approval.
        error: Error description for failed outcomes.
    """

    kind: OutcomeKind
    review_id: str
    item_index: int
    decision: ActionDecision
    text: str
    issue_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS
