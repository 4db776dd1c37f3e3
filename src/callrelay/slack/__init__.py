"""Slack integration for the review workflow."""

from __future__ import annotations

from callrelay.slack.actions import (
    APPROVE_ACTION_ID,
    REJECT_ACTION_ID,
    ReviewAction,
    parse_interaction_body,
    parse_review_action,
)
from callrelay.slack.client import SlackAPIError, SlackClient
from callrelay.slack.signature import verify_slack_signature

__all__ = [
    "APPROVE_ACTION_ID",
    "REJECT_ACTION_ID",
    "ReviewAction",
    "SlackAPIError",
    "SlackClient",
    "parse_interaction_body",
    "parse_review_action",
    "verify_slack_signature",
]
