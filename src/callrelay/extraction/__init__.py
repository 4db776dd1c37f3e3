"""Action item extraction and recap generation."""

from __future__ import annotations

from callrelay.extraction.extractor import (
    ActionItemExtractor,
    ExtractionError,
    RecapError,
    RecapGenerator,
    parse_action_items,
)

__all__ = [
    "ActionItemExtractor",
    "ExtractionError",
    "RecapError",
    "RecapGenerator",
    "parse_action_items",
]
