"""Slack interactive action identifiers and payload parsing.

Each review item carries two buttons whose value addresses the item
directly as ``<review_id>:<item_index>``, so the action handler needs no
other context to find what was clicked.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

from callrelay.review.models import ActionDecision

APPROVE_ACTION_ID = "approve_item"
REJECT_ACTION_ID = "reject_item"

ACTION_DECISIONS: dict[str, ActionDecision] = {
    APPROVE_ACTION_ID: ActionDecision.APPROVE,
    REJECT_ACTION_ID: ActionDecision.REJECT,
}


def encode_action_value(review_id: str, item_index: int) -> str:
    return f"{review_id}:{item_index}"


def decode_action_value(value: str) -> tuple[str, int]:
    """Split a button value into review id and item index.

    Raises:
        ValueError: If the value is not ``<review_id>:<index>``.
    """
    review_id, sep, index = value.rpartition(":")
    if not sep or not review_id:
        raise ValueError(f"Malformed action value: {value!r}")
    return review_id, int(index)


@dataclass
class ReviewAction:
    """A reviewer's click on an item button.

    Attributes:
        review_id: Review the button belongs to.
        item_index: Item the button belongs to.
        decision: Approve or reject.
        response_url: Where to send the ephemeral reply.
        user_id: Slack user who clicked.
    """

    review_id: str
    item_index: int
    decision: ActionDecision
    response_url: str | None = None
    user_id: str | None = None


def parse_interaction_body(body: bytes) -> dict[str, Any]:
    """Decode the form-encoded ``payload`` field of an interaction request.

    Raises:
        ValueError: If the body is not UTF-8 or its payload field is missing
            or not a JSON object.
    """
    fields = parse_qs(body.decode("utf-8"))
    raw = fields.get("payload")
    if not raw:
        raise ValueError("Interaction body has no payload field")
    payload = json.loads(raw[0])
    if not isinstance(payload, dict):
        raise ValueError(f"Interaction payload is a JSON {type(payload).__name__}, not an object")
    return payload


def parse_review_action(payload: dict[str, Any]) -> ReviewAction | None:
    """Extract a review action from a block_actions payload.

    Returns:
        The parsed action, or None if the payload is not a review button click.
    """
    if payload.get("type") != "block_actions":
        return None

    user = payload.get("user")
    for action in payload.get("actions") or []:
        if not isinstance(action, dict):
            continue
        decision = ACTION_DECISIONS.get(action.get("action_id", ""))
        if decision is None:
            continue
        try:
            review_id, item_index = decode_action_value(str(action.get("value", "")))
        except ValueError:
            return None
        return ReviewAction(
            review_id=review_id,
            item_index=item_index,
            decision=decision,
            response_url=payload.get("response_url"),
            user_id=user.get("id") if isinstance(user, dict) else None,
        )
    return None
