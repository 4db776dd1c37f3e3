"""Slack request signature verification.

Slack signs every request with ``v0=<hex HMAC-SHA256>`` over
``v0:<timestamp>:<raw body>`` using the app's signing secret. Requests older
than five minutes are rejected to limit replay.
"""

from __future__ import annotations

import hashlib
import hmac
import time

SLACK_SIGNATURE_HEADER = "X-Slack-Signature"
SLACK_TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
MAX_REQUEST_AGE_SECONDS = 300


def compute_slack_signature(signing_secret: str, timestamp: str, body: bytes) -> str:
    """Compute the v0 signature for a request body."""
    basestring = b"v0:" + timestamp.encode() + b":" + body
    digest = hmac.new(signing_secret.encode(), basestring, hashlib.sha256).hexdigest()
    return f"v0={digest}"


def verify_slack_signature(
    signing_secret: str,
    body: bytes,
    signature: str | None,
    timestamp: str | None,
    now: float | None = None,
) -> bool:
    """Verify a Slack request signature.

    Args:
        signing_secret: App signing secret.
        body: Raw request body.
        signature: X-Slack-Signature header.
        timestamp: X-Slack-Request-Timestamp header.
        now: Current epoch seconds (defaults to time.time()).

    Returns:
        True if the signature is valid and the request is recent.
    """
    if not signing_secret or not signature or not timestamp:
        return False

    try:
        ts = int(timestamp)
    except ValueError:
        return False

    current = time.time() if now is None else now
    if abs(current - ts) > MAX_REQUEST_AGE_SECONDS:
        return False

    expected = compute_slack_signature(signing_secret, timestamp, body)
    return hmac.compare_digest(expected, signature)
