"""Structured logging for callrelay.

Every component logs through structlog with snake_case event names. Output
goes through a single stdlib handler (stdout, or a size-rotated file) so
uvicorn and library loggers share the same destination.

Two pieces of context are attached automatically:
- ``correlation_id``, set per HTTP request by the request middleware
- ``review_id`` / ``item_index``, bound while a reviewer action is handled

Credentials that end up in an event (bot tokens, API keys, webhook
signatures) are masked before rendering.

Example usage:
    >>> from callrelay.config import LoggingConfig
    >>> from callrelay.logging import setup_logging, get_logger, bind_review_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> logger = get_logger(__name__)
    >>> bind_review_context(review_id="review_1717000000000_ab12cd34e", item_index=0)
    >>> logger.info("review_action_received", decision="approve")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from typing import Any

import structlog

from callrelay.config import LoggingConfig

REDACTED = "***"

# Event keys whose values are credentials
SENSITIVE_KEYS = frozenset(
    {
        "api_key",
        "authorization",
        "bot_token",
        "rest_token",
        "signature",
        "signing_secret",
        "token",
        "webhook_secret",
    }
)

# Client libraries that log every HTTP request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai")

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "callrelay_correlation_id", default=None
)


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor attaching the current request's correlation id."""
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def redact_secrets(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor masking credential values."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def bind_review_context(review_id: str, item_index: int | None = None) -> None:
    """Attach the review (and optionally item) being handled to later events.

    The binding lives in structlog's contextvars, so it follows the current
    task and is dropped with ``structlog.contextvars.clear_contextvars()``.

    Args:
        review_id: Review being acted on
        item_index: Item within the review, if the action targets one
    """
    context: dict[str, Any] = {"review_id": review_id}
    if item_index is not None:
        context["item_index"] = item_index
    structlog.contextvars.bind_contextvars(**context)


def _build_handler(config: LoggingConfig) -> logging.Handler:
    if config.file is None:
        return logging.StreamHandler(sys.stdout)

    config.file.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=config.file,
        maxBytes=config.rotation_size_mb * 1024 * 1024,
        backupCount=config.retention_count,
        encoding="utf-8",
    )


def setup_logging(config: LoggingConfig) -> None:
    """Install the handler and structlog processor chain.

    Replaces any handlers already on the root logger, so calling it twice
    (CLI callback, then app startup) leaves a single destination.

    Args:
        config: Logging section of CallrelayConfig
    """
    level = getattr(logging, config.level)

    handler = _build_handler(config)
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    renderer: Any
    if config.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
