"""LLM-backed action item extraction and meeting recaps.

Both services send a single chat completion to OpenAI. Extraction asks for a
JSON object response and validates every entry into an ActionItem; the recap
is free text formatted for Slack.
"""

from __future__ import annotations

import json
from typing import Any

import openai
import structlog
from openai import AsyncOpenAI
from pydantic import ValidationError

from callrelay.config import OpenAIConfig
from callrelay.extraction.prompts import (
    EXTRACTION_SYSTEM_PROMPT,
    RECAP_SYSTEM_PROMPT,
    build_extraction_prompt,
    build_recap_prompt,
)
from callrelay.models import ActionItem

logger = structlog.get_logger(__name__)


class ExtractionError(Exception):
    """Raised when action items could not be extracted from a transcript."""

    pass


class RecapError(Exception):
    """Raised when a meeting recap could not be generated."""

    pass


def parse_action_items(content: str) -> list[ActionItem]:
    """Parse the model's JSON response into action items.

    Entries that fail validation are skipped with a warning so one malformed
    item does not discard the rest.

    Args:
        content: Raw JSON text returned by the model.

    Returns:
        Validated action items, possibly empty.

    Raises:
        ExtractionError: If the content is not a JSON object with an
            ``actionItems`` list.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Model returned invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionError("Model response is not a JSON object")

    raw_items = data.get("actionItems") or []
    if not isinstance(raw_items, list):
        raise ExtractionError("actionItems is not a list")

    items: list[ActionItem] = []
    for position, raw in enumerate(raw_items):
        try:
            items.append(ActionItem.model_validate(raw))
        except ValidationError as e:
            logger.warning("action_item_invalid", position=position, error=str(e))
    return items


class _ChatCompletionService:
    """Shared OpenAI client handling for the extraction services."""

    def __init__(self, config: OpenAIConfig, client: AsyncOpenAI | None = None) -> None:
        self.config = config
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                timeout=self.config.timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def _complete(self, system_prompt: str, user_prompt: str, **kwargs: Any) -> str:
        """Run one chat completion and return the message content.

        Raises:
            openai.OpenAIError: On API or connection failure.
            ValueError: If the response has no content.
        """
        response = await self._get_client().chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **kwargs,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("No response content from OpenAI")
        return content


class ActionItemExtractor(_ChatCompletionService):
    """Extracts action items from a transcript."""

    async def extract(self, transcript: str, summary: str | None = None) -> list[ActionItem]:
        """Extract action items from a transcript.

        Args:
            transcript: Full transcript text.
            summary: Optional meeting summary for extra context.

        Returns:
            Extracted action items; empty for an empty transcript.

        Raises:
            ExtractionError: If the model call fails or returns unusable JSON.
        """
        if not transcript or not transcript.strip():
            logger.warning("extraction_empty_transcript")
            return []

        logger.info("extraction_started", model=self.config.model, transcript_length=len(transcript))
        try:
            content = await self._complete(
                EXTRACTION_SYSTEM_PROMPT,
                build_extraction_prompt(transcript, summary),
                response_format={"type": "json_object"},
            )
        except (openai.OpenAIError, ValueError) as e:
            logger.error("extraction_failed", error=str(e))
            raise ExtractionError(f"Action item extraction failed: {e}") from e

        items = parse_action_items(content)
        logger.info("extraction_completed", item_count=len(items))
        return items


class RecapGenerator(_ChatCompletionService):
    """Generates a Slack-formatted recap of a meeting."""

    async def generate(self, title: str, transcript: str, summary: str | None = None) -> str:
        """Generate a recap headed by the meeting title.

        Raises:
            RecapError: If the model call fails.
        """
        title = title or "Meeting"
        if not transcript or not transcript.strip():
            logger.warning("recap_empty_transcript")
            return f"*{title}*\n\nNo transcript available for recap."

        try:
            content = await self._complete(RECAP_SYSTEM_PROMPT, build_recap_prompt(transcript, summary))
        except (openai.OpenAIError, ValueError) as e:
            logger.error("recap_failed", error=str(e))
            raise RecapError(f"Recap generation failed: {e}") from e

        logger.info("recap_generated", length=len(content))
        return f"*{title}*\n\n{content.strip()}"
