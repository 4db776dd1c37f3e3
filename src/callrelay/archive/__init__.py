"""Transcript archival."""

from __future__ import annotations

from callrelay.archive.github import ArchiveError, TranscriptArchiver, archive_path

__all__ = ["ArchiveError", "TranscriptArchiver", "archive_path"]
