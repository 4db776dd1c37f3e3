"""HTTP route factories."""

from __future__ import annotations

from callrelay.web.routes.health import create_health_router
from callrelay.web.routes.slack import create_slack_router
from callrelay.web.routes.testing import create_testing_router
from callrelay.web.routes.webhooks import create_webhooks_router

__all__ = [
    "create_health_router",
    "create_slack_router",
    "create_testing_router",
    "create_webhooks_router",
]
