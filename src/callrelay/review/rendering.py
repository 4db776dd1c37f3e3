"""Slack Block Kit rendering for review messages.

The message body is a pure function of the review's items, payloads and
per-item states: the same inputs always produce identical blocks, with no
timestamps or other hidden inputs. Transient notices (processing, errors)
are composed on top as a separate banner so the per-item section stays
deterministic.
"""

from __future__ import annotations

from typing import Any

from callrelay.models import NO_PRIORITY, ActionItem, IssuePayload
from callrelay.review.models import ReviewRequest
from callrelay.review.state import ItemState
from callrelay.slack.actions import (
    APPROVE_ACTION_ID,
    REJECT_ACTION_ID,
    encode_action_value,
)

Block = dict[str, Any]

DESCRIPTION_LIMIT = 200

PRIORITY_LABELS: dict[int, str] = {
    1: "🔴 High",
    2: "🟡 Medium",
    3: "🟢 Low",
    4: "⚪ No Priority",
}


def priority_label(priority: int | None) -> str:
    """Label for a tracker priority; unknown values read as no priority."""
    return PRIORITY_LABELS.get(priority or NO_PRIORITY, PRIORITY_LABELS[NO_PRIORITY])


def truncate_description(description: str, max_length: int = DESCRIPTION_LIMIT) -> str:
    if len(description) <= max_length:
        return description
    return description[:max_length] + "..."


def _section(text: str) -> Block:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _context(text: str) -> Block:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


def _button(label: str, action_id: str, value: str, style: str) -> Block:
    return {
        "type": "button",
        "text": {"type": "plain_text", "text": label},
        "style": style,
        "action_id": action_id,
        "value": value,
    }


def render_item_blocks(
    review_id: str,
    index: int,
    item: ActionItem,
    payload: IssuePayload,
    state: ItemState,
    issue_id: str | None = None,
) -> list[Block]:
    """Blocks for a single item: details plus buttons or a status badge."""
    text = f"*{index + 1}. {payload.title}*\n{truncate_description(item.description)}"
    text += f"\n\n*Priority:* {priority_label(payload.priority)}"
    if item.assignee:
        text += f"\n*Assignee:* {item.assignee}"

    blocks = [_section(text)]

    if state == ItemState.PENDING:
        value = encode_action_value(review_id, index)
        blocks.append(
            {
                "type": "actions",
                "block_id": f"review_item_{index}",
                "elements": [
                    _button("✅ Approve", APPROVE_ACTION_ID, value, "primary"),
                    _button("❌ Reject", REJECT_ACTION_ID, value, "danger"),
                ],
            }
        )
    elif state == ItemState.APPROVED:
        badge = "✅ *Approved*"
        if issue_id:
            badge += f" · Issue `{issue_id}`"
        blocks.append(_context(badge))
    else:
        blocks.append(_context("❌ *Rejected*"))

    return blocks


def render_review_blocks(
    review_id: str,
    items: list[ActionItem],
    issue_payloads: list[IssuePayload],
    item_states: list[ItemState],
    issue_ids: dict[int, str] | None = None,
) -> list[Block]:
    """Render the full review message body."""
    issue_ids = issue_ids or {}
    approved = sum(1 for s in item_states if s == ItemState.APPROVED)
    rejected = sum(1 for s in item_states if s == ItemState.REJECTED)
    pending = len(item_states) - approved - rejected

    blocks: list[Block] = [
        _section(
            "*📋 Review Action Items for Linear*\n\n"
            f"Found *{len(items)}* action item(s) from the meeting transcript."
        ),
        _context(f"✅ {approved} approved · ❌ {rejected} rejected · ⏳ {pending} pending"),
        {"type": "divider"},
    ]

    for index, (item, payload, state) in enumerate(zip(items, issue_payloads, item_states)):
        blocks.extend(
            render_item_blocks(review_id, index, item, payload, state, issue_ids.get(index))
        )
        blocks.append({"type": "divider"})

    return blocks


def render_review_text(item_states: list[ItemState]) -> str:
    """Plain-text fallback used for notifications."""
    pending = sum(1 for s in item_states if s == ItemState.PENDING)
    if pending:
        return f"📋 Review {len(item_states)} Action Item(s) for Linear ({pending} pending)"
    return f"✅ Review complete - {len(item_states)} action item(s) handled"


def render_review(review: ReviewRequest, banner: str | None = None) -> tuple[str, list[Block]]:
    """Render text and blocks for a stored review, with an optional banner on top."""
    blocks = render_review_blocks(
        review.review_id,
        review.items,
        review.issue_payloads,
        review.item_states,
        review.issue_ids,
    )
    if banner:
        blocks = [_section(banner)] + blocks
    return render_review_text(review.item_states), blocks


def processing_banner(index: int, title: str) -> str:
    return f"⏳ Creating issue for item {index + 1} (*{title}*)... please don't click again."


def error_banner(index: int, title: str, error: str) -> str:
    return (
        f"⚠️ Could not create issue for item {index + 1} (*{title}*): {error}\n"
        "The item is still pending; click Approve to try again."
    )


def render_unavailable(item_count: int) -> tuple[str, list[Block]]:
    """Replacement message for a review whose state could not be saved."""
    text = "⚠️ Review unavailable - state could not be saved"
    return text, [
        _section(
            f"⚠️ *Review unavailable*\n\n{item_count} action item(s) were extracted, but the "
            "review state could not be saved, so these buttons would not work. "
            "Please re-run the pipeline for this recording."
        )
    ]
