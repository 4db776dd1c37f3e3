"""FastAPI application factory for callrelay.

The application exposes the recording webhook, the Slack interactivity
endpoint and health probes. Long-lived clients are built in the lifespan
and stored on ``app.state.services``.

Example usage:
    >>> from callrelay.config import load_config
    >>> from callrelay.web.app import create_app
    >>>
    >>> app = create_app(load_config())
    >>>
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=3000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from callrelay import __version__
from callrelay.config import CallrelayConfig
from callrelay.logging import get_logger
from callrelay.services import Services, build_services
from callrelay.web.middleware import RequestLoggingMiddleware
from callrelay.web.routes import (
    create_health_router,
    create_slack_router,
    create_testing_router,
    create_webhooks_router,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing in production.

    Attributes:
        missing: Dotted names of the unset settings.
    """

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build services on startup unless already provided, close them on shutdown."""
    config: CallrelayConfig = app.state.config
    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    services: Services | None = getattr(app.state, "services", None)
    if services is None:
        services = build_services(config)
        app.state.services = services

    yield

    logger.info("app_shutdown_begin")
    await services.close()
    logger.info("app_shutdown_complete")


def create_app(
    config: CallrelayConfig | None = None,
    services: Services | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Configuration. If None, a default config is created.
        services: Prebuilt services, mainly for tests. Built in the lifespan
            when omitted.

    Returns:
        Configured FastAPI application instance.

    Raises:
        ConfigurationError: If required settings are missing in production.
    """
    if config is None:
        config = CallrelayConfig()

    missing = config.missing_required()
    if missing:
        if config.web.environment == "production":
            logger.error("config_missing_required", missing=missing)
            raise ConfigurationError(missing)
        logger.warning("config_missing_required", missing=missing)

    app = FastAPI(
        title="callrelay",
        version=__version__,
        description="Call recording to tracker issues with Slack approval",
        lifespan=lifespan,
    )

    app.state.config = config
    if services is not None:
        app.state.services = services

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(create_health_router())
    app.include_router(create_webhooks_router())
    app.include_router(create_slack_router())
    if config.web.environment != "production":
        app.include_router(create_testing_router())
        logger.info("testing_routes_enabled", prefix="/test")

    logger.info(
        "app_created",
        environment=config.web.environment,
        version=__version__,
    )
    return app
