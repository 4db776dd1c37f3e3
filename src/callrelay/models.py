"""Shared data models for action items and tracker issue payloads.

Action items are what the extraction step produces from a transcript; issue
payloads are what the tracker accepts. The two lists travel index-aligned
through the review workflow.
"""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, BaseModel, Field, field_validator


class ActionPriority(str, Enum):
    """Priority assigned to an action item during extraction."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Tracker priority scale: 1 is the most urgent, 4 means no priority.
TRACKER_PRIORITY: dict[ActionPriority, int] = {
    ActionPriority.HIGH: 1,
    ActionPriority.MEDIUM: 2,
    ActionPriority.LOW: 3,
}
NO_PRIORITY = 4


class ActionItemMetadata(BaseModel):
    """Transcript context an action item was derived from.

    Attributes:
        original_text: Transcript excerpt that produced the item.
        speaker: Who raised the item, if known.
        timestamp: Offset into the recording in seconds, if known.
    """

    original_text: str
    speaker: str | None = None
    timestamp: float | None = None


class ActionItem(BaseModel):
    """A human-readable action item extracted from a call transcript.

    Attributes:
        title: Concise, actionable title.
        description: Detailed description with transcript context.
        assignee: Person responsible, by name, if mentioned.
        priority: Extraction priority.
        due_date: Deadline as YYYY-MM-DD, if mentioned.
        metadata: Optional transcript context.
    """

    title: str
    description: str = ""
    assignee: str | None = None
    priority: ActionPriority = ActionPriority.MEDIUM
    due_date: str | None = Field(default=None, validation_alias=AliasChoices("due_date", "dueDate"))
    metadata: ActionItemMetadata | None = None

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v: object) -> object:
        """Accept any casing and fall back to medium for unknown values."""
        if v is None:
            return ActionPriority.MEDIUM
        if isinstance(v, str):
            v_lower = v.strip().lower()
            if v_lower not in {p.value for p in ActionPriority}:
                return ActionPriority.MEDIUM
            return v_lower
        return v


class IssuePayload(BaseModel):
    """Input for creating one issue in the tracker.

    Attributes:
        title: Issue title.
        description: Markdown description.
        team_id: Team that owns the issue.
        project_id: Optional project.
        assignee_id: Optional tracker user id.
        priority: 1 (urgent) to 4 (no priority).
        due_date: Optional due date (YYYY-MM-DD).
        state_id: Optional initial workflow state.
        label_ids: Optional label ids.
    """

    title: str
    description: str = ""
    team_id: str
    project_id: str | None = None
    assignee_id: str | None = None
    priority: int | None = Field(default=None, ge=0, le=4)
    due_date: str | None = None
    state_id: str | None = None
    label_ids: list[str] = Field(default_factory=list)

    def to_graphql_input(self) -> dict[str, object]:
        """Convert to the tracker's issueCreate input, dropping unset fields."""
        data: dict[str, object] = {
            "teamId": self.team_id,
            "title": self.title,
            "description": self.description,
            "projectId": self.project_id,
            "assigneeId": self.assignee_id,
            "priority": self.priority,
            "dueDate": self.due_date,
            "stateId": self.state_id,
            "labelIds": self.label_ids or None,
        }
        return {key: value for key, value in data.items() if value is not None}
