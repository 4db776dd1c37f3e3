"""Development endpoints for exercising the pipeline one step at a time.

Mounted under ``/test`` only outside production. Requests are unsigned and
accept either a regular recording webhook body or the meeting export shape
(see ``callrelay.fathom.from_meeting_export``).

Routes:
    POST /test/mock-webhook - Full pipeline, as a signed webhook would run it
    POST /test/test-github - Archive the transcript only
    POST /test/test-extract - Extract action items only
    POST /test/test-recap - Generate the recap only
    POST /test/test-slack - Extract, transform and post a Slack review
    POST /test/test-linear - Extract, transform and create issues directly
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from callrelay.extraction import ExtractionError, RecapError
from callrelay.fathom import RecordingWebhook, from_meeting_export
from callrelay.logging import get_logger
from callrelay.models import ActionItem, IssuePayload
from callrelay.pipeline import PipelineError
from callrelay.review.coordinator import ReviewError
from callrelay.services import Services

logger = get_logger(__name__)


class StepError(Exception):
    """Raised when a development step cannot run.

    Attributes:
        status_code: HTTP status for the response.
    """

    def __init__(self, message: str, status_code: int = 500, detail: str | None = None) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)

    def to_response(self) -> JSONResponse:
        content: dict[str, Any] = {"success": False, "error": str(self)}
        if self.detail:
            content["message"] = self.detail
        return JSONResponse(status_code=self.status_code, content=content)


async def _read_webhook(request: Request) -> RecordingWebhook:
    try:
        data = json.loads(await request.body())
    except ValueError as e:
        raise StepError("Invalid JSON body", 400) from e
    if not isinstance(data, dict):
        raise StepError("Body must be a JSON object", 400)

    try:
        if isinstance(data.get("recording"), dict):
            return RecordingWebhook.model_validate(data)
        return from_meeting_export(data)
    except ValidationError as e:
        raise StepError("Invalid payload", 400, str(e)) from e


def _require_transcript(webhook: RecordingWebhook) -> str:
    transcript = webhook.transcript_text
    if not transcript.strip():
        raise StepError("No transcript found in payload", 400)
    return transcript


async def _extract(services: Services, webhook: RecordingWebhook) -> list[ActionItem]:
    transcript = _require_transcript(webhook)
    try:
        return await services.extractor.extract(transcript, webhook.summary)
    except ExtractionError as e:
        raise StepError("Failed to extract action items", detail=str(e)) from e


async def _transform(services: Services, items: list[ActionItem]) -> list[IssuePayload]:
    try:
        return await services.transformer.transform_all(items)
    except Exception as e:
        logger.exception("test_transform_failed")
        raise StepError("Failed to transform action items", detail=str(e)) from e


def _preview(payloads: list[IssuePayload]) -> list[dict[str, Any]]:
    return [
        {"title": p.title, "priority": p.priority, "assignee_id": p.assignee_id}
        for p in payloads
    ]


def _no_items() -> dict[str, Any]:
    return {"success": True, "message": "No action items found", "action_items": []}


def create_testing_router() -> APIRouter:
    """Create the development router."""
    router = APIRouter(prefix="/test", tags=["testing"])

    @router.post("/mock-webhook")
    async def mock_webhook(request: Request) -> Any:
        services: Services = request.app.state.services
        try:
            webhook = await _read_webhook(request)
        except StepError as e:
            return e.to_response()

        logger.info("test_mock_webhook_received", recording_id=webhook.recording.id)
        try:
            result = await services.pipeline.process(webhook)
        except PipelineError as e:
            logger.error("test_mock_webhook_failed", stage=e.stage, error=str(e))
            return JSONResponse(status_code=e.status_code, content={"error": str(e)})
        return result.to_dict()

    @router.post("/test-github")
    async def test_github(request: Request) -> Any:
        services: Services = request.app.state.services
        try:
            webhook = await _read_webhook(request)
        except StepError as e:
            return e.to_response()

        if not services.archiver.enabled:
            return StepError("GitHub archive is not configured", 400).to_response()

        path = await services.archiver.archive(
            webhook.recording.id, webhook.recording.title, webhook.to_archive()
        )
        if path is None:
            return StepError("Failed to log transcript to GitHub").to_response()
        return {
            "success": True,
            "message": "Transcript logged to GitHub successfully",
            "recording_id": webhook.recording.id,
            "path": path,
        }

    @router.post("/test-extract")
    async def test_extract(request: Request) -> Any:
        services: Services = request.app.state.services
        try:
            items = await _extract(services, await _read_webhook(request))
        except StepError as e:
            return e.to_response()

        return {
            "success": True,
            "message": "Action items extracted successfully",
            "action_items_count": len(items),
            "action_items": [item.model_dump(mode="json") for item in items],
        }

    @router.post("/test-recap")
    async def test_recap(request: Request) -> Any:
        services: Services = request.app.state.services
        try:
            webhook = await _read_webhook(request)
        except StepError as e:
            return e.to_response()

        try:
            recap = await services.recap.generate(
                webhook.recording.title, webhook.transcript_text, webhook.summary
            )
        except RecapError as e:
            return StepError("Failed to generate recap", detail=str(e)).to_response()
        return {"success": True, "message": "Recap generated successfully", "recap": recap}

    @router.post("/test-slack")
    async def test_slack(request: Request) -> Any:
        services: Services = request.app.state.services
        try:
            if services.coordinator is None:
                raise StepError(
                    "Slack reviewer is not configured",
                    400,
                    "Slack credentials are required for this test endpoint",
                )
            items = await _extract(services, await _read_webhook(request))
            if not items:
                return _no_items()
            payloads = await _transform(services, items)
            try:
                review_id = await services.coordinator.post_review(items, payloads)
            except ReviewError as e:
                raise StepError("Failed to post review to Slack", detail=str(e)) from e
        except StepError as e:
            return e.to_response()

        return {
            "success": True,
            "message": "Review posted to Slack successfully",
            "review_id": review_id,
            "action_items_count": len(items),
            "issues_preview": _preview(payloads),
        }

    @router.post("/test-linear")
    async def test_linear(request: Request) -> Any:
        services: Services = request.app.state.services
        try:
            items = await _extract(services, await _read_webhook(request))
            if not items:
                return _no_items()
            payloads = await _transform(services, items)
        except StepError as e:
            return e.to_response()

        batch = await services.creator.create_batch(payloads)
        content = {
            "success": not batch.failures,
            "message": f"Created {len(batch.issue_ids)} of {batch.total} issues in Linear",
            "issues_count": len(batch.issue_ids),
            "issue_ids": batch.issue_ids,
            "failures": [f.to_dict() for f in batch.failures],
            "issues_preview": _preview(payloads),
        }
        if batch.failures and not batch.issue_ids:
            return JSONResponse(status_code=500, content=content)
        return content

    return router
