"""Transform extracted action items into Linear issue payloads."""

from __future__ import annotations

from typing import Protocol

import structlog

from callrelay.config import LinearConfig
from callrelay.linear.client import IssueBackendError
from callrelay.models import (
    NO_PRIORITY,
    TRACKER_PRIORITY,
    ActionItem,
    ActionPriority,
    IssuePayload,
)

logger = structlog.get_logger(__name__)


class UserDirectory(Protocol):
    """Resolves a person's name to a tracker user id."""

    async def find_user_id(self, name: str) -> str | None: ...


def format_description(item: ActionItem) -> str:
    """Issue description with the transcript context appended."""
    desc = item.description
    if item.metadata is not None:
        if item.metadata.original_text:
            desc += f"\n\n**Original context:**\n{item.metadata.original_text}"
        if item.metadata.speaker:
            desc += f"\n\n**Assigned by:** {item.metadata.speaker}"
    return desc


def tracker_priority(priority: ActionPriority) -> int:
    return TRACKER_PRIORITY.get(priority, NO_PRIORITY)


class IssueTransformer:
    """Maps ActionItems to IssuePayloads for the configured team.

    Assignees are resolved by name through the user directory; a failed or
    empty lookup leaves the issue unassigned rather than failing the item.
    """

    def __init__(self, config: LinearConfig, directory: UserDirectory | None = None) -> None:
        self.team_id = config.team_id
        self.project_id = config.project_id
        self.state_id = config.state_id
        self.directory = directory

    async def _resolve_assignee(self, name: str) -> str | None:
        if self.directory is None:
            return None
        try:
            assignee_id = await self.directory.find_user_id(name)
        except IssueBackendError as e:
            logger.warning("assignee_lookup_failed", assignee=name, error=str(e))
            return None

        if assignee_id:
            logger.debug("assignee_resolved", assignee=name, assignee_id=assignee_id)
        else:
            logger.warning("assignee_not_found", assignee=name)
        return assignee_id

    async def transform(self, item: ActionItem) -> IssuePayload:
        """Build the issue payload for one action item."""
        assignee_id = None
        if item.assignee:
            assignee_id = await self._resolve_assignee(item.assignee)

        return IssuePayload(
            title=item.title,
            description=format_description(item),
            team_id=self.team_id,
            project_id=self.project_id,
            assignee_id=assignee_id,
            priority=tracker_priority(item.priority),
            due_date=item.due_date or None,
            state_id=self.state_id,
        )

    async def transform_all(self, items: list[ActionItem]) -> list[IssuePayload]:
        """Transform items in order, keeping the lists index-aligned."""
        return [await self.transform(item) for item in items]
