"""Test helpers shared by the unit and integration suites."""

from __future__ import annotations

import json
import time
from urllib.parse import urlencode

from callrelay.config import CallrelayConfig
from callrelay.models import ActionItem, IssuePayload
from callrelay.slack.signature import compute_slack_signature

WEBHOOK_SECRET = "whsec_integration"
SIGNING_SECRET = "slack_signing_integration"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_item(title: str, **kwargs: object) -> ActionItem:
    return ActionItem(title=title, description=kwargs.pop("description", f"Details for {title}"), **kwargs)


def make_payload(title: str, **kwargs: object) -> IssuePayload:
    kwargs.setdefault("priority", 2)
    return IssuePayload(title=title, description=f"Details for {title}", team_id="team-1", **kwargs)


def slack_headers(
    body: bytes,
    content_type: str = "application/x-www-form-urlencoded",
    secret: str = SIGNING_SECRET,
) -> dict[str, str]:
    """Headers of a correctly signed Slack request."""
    timestamp = str(int(time.time()))
    return {
        "Content-Type": content_type,
        "X-Slack-Request-Timestamp": timestamp,
        "X-Slack-Signature": compute_slack_signature(secret, timestamp, body),
    }


def interaction_body(action_id: str, value: str) -> bytes:
    """Form-encoded block_actions interaction for one button click."""
    payload = {
        "type": "block_actions",
        "user": {"id": "U123"},
        "response_url": "https://hooks.slack.com/actions/T1/1/abc",
        "actions": [{"action_id": action_id, "value": value}],
    }
    return urlencode({"payload": json.dumps(payload)}).encode()


def full_config(**overrides: object) -> CallrelayConfig:
    """Configuration with every required setting present."""
    settings: dict[str, object] = {
        "fathom": {"webhook_secret": WEBHOOK_SECRET},
        "github": {"token": "ghp_test", "repo_owner": "acme", "repo_name": "calls"},
        "openai": {"api_key": "sk-test"},
        "linear": {"api_key": "lin_api_test", "team_id": "team-1"},
        "slack": {"bot_token": "xoxb-test", "signing_secret": SIGNING_SECRET, "channel_id": "C123"},
    }
    settings.update(overrides)
    return CallrelayConfig(**settings)
