"""HTTP interface for callrelay."""

from __future__ import annotations

from callrelay.web.app import ConfigurationError, create_app

__all__ = ["ConfigurationError", "create_app"]
