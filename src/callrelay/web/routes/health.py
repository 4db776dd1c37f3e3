"""Health and readiness endpoints.

``/health/`` is a plain liveness probe. ``/health/ready`` reports which
review store backend is in use and whether the Slack review workflow is
enabled; it does not call any external service.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from callrelay.logging import get_logger

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    """Readiness check response model.

    Attributes:
        status: "ok" when services are wired, "unhealthy" otherwise
        store: Review store backend name
        review_enabled: Whether webhooks go through Slack review
        missing_config: Required settings that are unset
    """

    status: str
    store: str
    review_enabled: bool
    missing_config: list[str]


def create_health_router() -> APIRouter:
    """Create health check router.

    Routes:
        GET /health/ - Basic liveness check
        GET /health/ready - Readiness with service wiring details
    """
    router = APIRouter(prefix="/health", tags=["health"])

    @router.get("/", response_model=HealthResponse)
    async def health() -> dict[str, Any]:
        return {"status": "ok"}

    @router.get("/ready", response_model=ReadinessResponse)
    async def readiness(request: Request) -> dict[str, Any]:
        services = getattr(request.app.state, "services", None)
        if services is None:
            logger.warning("readiness_check_failed", reason="services not initialised")
            return {
                "status": "unhealthy",
                "store": "none",
                "review_enabled": False,
                "missing_config": [],
            }

        return {
            "status": "ok",
            "store": services.store.name,
            "review_enabled": services.coordinator is not None,
            "missing_config": services.config.missing_required(),
        }

    return router
