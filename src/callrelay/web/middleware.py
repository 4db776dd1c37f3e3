"""Request logging middleware.

Each request gets a correlation id, taken from ``X-Correlation-ID`` when the
caller sends one and generated otherwise, that is echoed back on the
response and attached to every log event emitted while handling it.

Health probes are logged at debug level. Slack drops interactivity requests
that are not acknowledged within three seconds, so slower Slack
acknowledgements are logged as warnings.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from callrelay.logging import get_logger, set_correlation_id

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
SLACK_ACK_DEADLINE_MS = 3000.0


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Correlation ids and access logging for every request."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        path = request.url.path
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        set_correlation_id(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                duration_ms=_elapsed_ms(started),
                error=str(e),
                exc_info=True,
            )
            raise
        finally:
            set_correlation_id(None)

        duration_ms = _elapsed_ms(started)
        log = logger.debug if path.startswith("/health") else logger.info
        log(
            "request_completed",
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            correlation_id=correlation_id,
        )
        if path.startswith("/slack") and duration_ms > SLACK_ACK_DEADLINE_MS:
            logger.warning(
                "slack_ack_slow",
                duration_ms=duration_ms,
                deadline_ms=SLACK_ACK_DEADLINE_MS,
                correlation_id=correlation_id,
            )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
