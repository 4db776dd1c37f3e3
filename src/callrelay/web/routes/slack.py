"""Slack interactivity endpoint.

Slack expects an answer within three seconds, so button clicks are
acknowledged immediately and resolved in a background task. The acting
reviewer is told the outcome through the interaction's ``response_url``.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Request, Response
from fastapi.responses import JSONResponse

from callrelay.logging import get_logger
from callrelay.review.coordinator import ReviewCoordinator
from callrelay.slack import (
    ReviewAction,
    SlackAPIError,
    SlackClient,
    parse_interaction_body,
    parse_review_action,
    verify_slack_signature,
)
from callrelay.slack.signature import SLACK_SIGNATURE_HEADER, SLACK_TIMESTAMP_HEADER

logger = get_logger(__name__)


async def resolve_action(
    coordinator: ReviewCoordinator,
    slack: SlackClient,
    action: ReviewAction,
) -> None:
    """Run one review action and report the outcome to the reviewer."""
    outcome = await coordinator.handle_action(action.review_id, action.item_index, action.decision)
    logger.info(
        "review_action_handled",
        review_id=action.review_id,
        item_index=action.item_index,
        outcome=outcome.kind.value,
        user_id=action.user_id,
    )
    if not action.response_url:
        return
    try:
        await slack.respond(action.response_url, outcome.text)
    except SlackAPIError as e:
        logger.warning("review_action_reply_failed", error=str(e))


def create_slack_router() -> APIRouter:
    """Create the Slack interactivity router.

    Routes:
        POST /slack/events - Button clicks and URL verification
    """
    router = APIRouter(prefix="/slack", tags=["slack"])

    @router.post("/events")
    async def slack_events(request: Request, background_tasks: BackgroundTasks) -> Any:
        services = request.app.state.services
        if services.coordinator is None or services.slack is None:
            return JSONResponse(status_code=404, content={"error": "Slack review is not configured"})

        body = await request.body()
        if not verify_slack_signature(
            services.config.slack.signing_secret,
            body,
            request.headers.get(SLACK_SIGNATURE_HEADER),
            request.headers.get(SLACK_TIMESTAMP_HEADER),
        ):
            logger.warning("slack_signature_invalid")
            return JSONResponse(status_code=401, content={"error": "Invalid signature"})

        if request.headers.get("content-type", "").startswith("application/json"):
            try:
                event = json.loads(body)
            except ValueError:
                return JSONResponse(status_code=400, content={"error": "Invalid JSON"})
            if isinstance(event, dict) and event.get("type") == "url_verification":
                return {"challenge": event.get("challenge")}
            return Response(status_code=200)

        try:
            payload = parse_interaction_body(body)
        except ValueError as e:
            logger.warning("slack_interaction_invalid", error=str(e))
            return JSONResponse(status_code=400, content={"error": "Invalid interaction payload"})

        action = parse_review_action(payload)
        if action is None:
            logger.debug("slack_interaction_ignored", type=payload.get("type"))
            return Response(status_code=200)

        background_tasks.add_task(resolve_action, services.coordinator, services.slack, action)
        return Response(status_code=200)

    return router
