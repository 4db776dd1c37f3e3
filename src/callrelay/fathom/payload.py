"""Call recording webhook payload models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    event_type: str = ""
    timestamp: str = ""


class Recording(BaseModel):
    """Recording metadata.

    Attributes:
        id: Recording identifier, used for the archive filename.
        title: Meeting title.
        started_at: ISO start time.
        ended_at: ISO end time.
        duration_seconds: Recording length.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    title: str = ""
    started_at: str | None = None
    ended_at: str | None = None
    duration_seconds: float | None = None


class TranscriptParagraph(BaseModel):
    model_config = ConfigDict(extra="allow")

    speaker: str = ""
    text: str = ""
    start_time: float | None = None
    end_time: float | None = None


class Transcript(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: str = ""
    paragraphs: list[TranscriptParagraph] = Field(default_factory=list)


class RecordedActionItem(BaseModel):
    """An action item as suggested by the recording service itself."""

    model_config = ConfigDict(extra="allow")

    text: str = ""
    owner: str | None = None


class RecordingWebhook(BaseModel):
    """Inbound webhook for a processed recording.

    Unknown fields are preserved so the archived copy keeps everything the
    sender delivered.
    """

    model_config = ConfigDict(extra="allow")

    event: WebhookEvent = Field(default_factory=WebhookEvent)
    recording: Recording
    transcript: Transcript | None = None
    summary: str | None = None
    action_items: list[RecordedActionItem] = Field(default_factory=list)

    @property
    def transcript_text(self) -> str:
        return self.transcript.text if self.transcript is not None else ""

    def to_archive(self) -> dict[str, Any]:
        """Payload as delivered, for archiving."""
        return self.model_dump(mode="json", exclude_none=True)


def _nested(value: Any, key: str) -> Any:
    return value.get(key) if isinstance(value, dict) else None


def _timestamp_seconds(timestamp: str) -> float:
    """``HH:MM:SS`` to seconds; anything else reads as 0."""
    parts = timestamp.split(":")
    if len(parts) != 3:
        return 0.0
    try:
        hours, minutes, seconds = (float(p) for p in parts)
    except ValueError:
        return 0.0
    return hours * 3600 + minutes * 60 + seconds


def from_meeting_export(data: dict[str, Any]) -> RecordingWebhook:
    """Build a webhook from the meeting export shape.

    The export carries the transcript as a list of
    ``{"speaker": {"display_name"}, "text", "timestamp"}`` entries, the
    summary under ``default_summary.markdown_formatted`` and the id as
    ``recording_id``. Transcript lines are joined as ``Speaker: text``.

    Raises:
        pydantic.ValidationError: If the converted payload is invalid.
    """
    now = datetime.now(timezone.utc)
    entries = [e for e in data.get("transcript") or [] if isinstance(e, dict)]

    paragraphs = []
    for entry in entries:
        name = _nested(entry.get("speaker"), "display_name")
        start = _timestamp_seconds(str(entry.get("timestamp") or "00:00:00"))
        paragraphs.append(
            {
                "speaker": name or "Unknown",
                "text": entry.get("text") or "",
                "start_time": start,
                "end_time": start + 5,
            }
        )

    return RecordingWebhook.model_validate(
        {
            "event": {
                "id": f"test-{int(now.timestamp() * 1000)}",
                "event_type": "recording.processed",
                "timestamp": now.isoformat(),
            },
            "recording": {
                "id": str(data.get("recording_id") or "test-recording"),
                "title": data.get("title") or data.get("meeting_title") or "Test Recording",
                "started_at": data.get("recording_start_time")
                or data.get("scheduled_start_time")
                or now.isoformat(),
                "ended_at": data.get("recording_end_time")
                or data.get("scheduled_end_time")
                or now.isoformat(),
                "duration_seconds": 0,
            },
            "transcript": {
                "text": "\n".join(f"{p['speaker']}: {p['text']}" for p in paragraphs),
                "paragraphs": paragraphs,
            },
            "summary": _nested(data.get("default_summary"), "markdown_formatted") or "",
            "action_items": [
                {"text": item.get("description") or "", "owner": _nested(item.get("assignee"), "name")}
                for item in data.get("action_items") or []
                if isinstance(item, dict)
            ],
            "calendar_invitees": data.get("calendar_invitees") or [],
        }
    )
