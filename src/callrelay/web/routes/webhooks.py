"""Inbound call recording webhook endpoint."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from callrelay.fathom import RecordingWebhook, find_signature, verify_webhook_signature
from callrelay.logging import get_logger
from callrelay.pipeline import PipelineError

logger = get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_webhooks_router() -> APIRouter:
    """Create the recording webhook router.

    Routes:
        POST /webhook/fathom - Verify, parse and process a recording webhook
    """
    router = APIRouter(prefix="/webhook", tags=["webhooks"])

    @router.post("/fathom")
    async def fathom_webhook(request: Request) -> Any:
        services = request.app.state.services
        body = await request.body()

        signature = find_signature(request.headers)
        if not signature:
            logger.warning("webhook_signature_missing")
            return _error(401, "Missing webhook signature")

        if not verify_webhook_signature(services.config.fathom.webhook_secret, signature, body):
            logger.warning("webhook_signature_invalid", body_length=len(body))
            return _error(401, "Invalid signature")

        try:
            webhook = RecordingWebhook.model_validate(json.loads(body))
        except (ValueError, ValidationError) as e:
            logger.warning("webhook_payload_invalid", error=str(e))
            return _error(400, "Invalid webhook payload")

        logger.info("webhook_received", recording_id=webhook.recording.id)

        try:
            result = await services.pipeline.process(webhook)
        except PipelineError as e:
            logger.error("webhook_processing_failed", stage=e.stage, error=str(e))
            return _error(e.status_code, str(e))

        return result.to_dict()

    return router
