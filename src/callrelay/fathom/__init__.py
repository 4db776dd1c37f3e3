"""Call recording webhooks: payload models and signature checks."""

from __future__ import annotations

from callrelay.fathom.payload import (
    Recording,
    RecordingWebhook,
    Transcript,
    from_meeting_export,
)
from callrelay.fathom.signature import (
    find_signature,
    sign_body,
    verify_webhook_signature,
)

__all__ = [
    "Recording",
    "RecordingWebhook",
    "Transcript",
    "find_signature",
    "from_meeting_export",
    "sign_body",
    "verify_webhook_signature",
]
