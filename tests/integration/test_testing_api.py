"""Integration tests for the development /test routes."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from callrelay.extraction import ExtractionError, RecapError
from callrelay.linear.client import IssueBackendError
from callrelay.pipeline import PipelineError, PipelineResult
from callrelay.services import Services
from callrelay.slack.client import SlackAPIError
from callrelay.store.base import review_key
from callrelay.web.app import create_app

from helpers import full_config, make_item, make_payload

WEBHOOK = {
    "recording": {"id": "r-1", "title": "ACME sync"},
    "transcript": {"text": "Dana: I'll send the pricing deck by Friday."},
    "summary": "Pricing discussion",
}

MEETING_EXPORT = {
    "recording_id": 777,
    "title": "Roadmap review",
    "default_summary": {"markdown_formatted": "Roadmap"},
    "transcript": [
        {"speaker": {"display_name": "Dana"}, "text": "I'll update the roadmap.", "timestamp": "00:00:10"},
    ],
}

ROUTES = [
    "/test/mock-webhook",
    "/test/test-github",
    "/test/test-extract",
    "/test/test-recap",
    "/test/test-slack",
    "/test/test-linear",
]


def _stub_extraction(services: Services, titles: list[str]) -> None:
    services.extractor.extract.return_value = [make_item(t) for t in titles]
    services.transformer.transform_all.return_value = [make_payload(t) for t in titles]


class TestMounting:
    """Test that the development routes follow the environment."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ROUTES)
    async def test_hidden_in_production(self, services: Services, path: str) -> None:
        app = create_app(full_config(web={"environment": "production"}), services=services)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post(path, json=WEBHOOK)

        assert response.status_code == 404
        services.pipeline.process.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsigned_requests_accepted(self, async_client: AsyncClient, services: Services) -> None:
        services.pipeline.process.return_value = PipelineResult(message="ok", recording_id="r-1")

        response = await async_client.post("/test/mock-webhook", json=WEBHOOK)

        assert response.status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"{not json", b"[1, 2]", b"\xff\xfe"])
    async def test_rejects_unreadable_body(self, async_client: AsyncClient, body: bytes) -> None:
        response = await async_client.post("/test/test-extract", content=body)

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestMockWebhook:
    """Test POST /test/mock-webhook."""

    @pytest.mark.asyncio
    async def test_runs_pipeline(self, async_client: AsyncClient, services: Services) -> None:
        services.pipeline.process.return_value = PipelineResult(
            message="Processing started - recap posting, review pending in Slack",
            recording_id="r-1",
            action_items_count=1,
            review_required=True,
            review_id="review_1_abc",
        )

        response = await async_client.post("/test/mock-webhook", json=WEBHOOK)

        assert response.json()["review_id"] == "review_1_abc"
        webhook = services.pipeline.process.await_args.args[0]
        assert webhook.recording.title == "ACME sync"
        assert webhook.summary == "Pricing discussion"

    @pytest.mark.asyncio
    async def test_converts_meeting_export(self, async_client: AsyncClient, services: Services) -> None:
        services.pipeline.process.return_value = PipelineResult(message="ok", recording_id="777")

        await async_client.post("/test/mock-webhook", json=MEETING_EXPORT)

        webhook = services.pipeline.process.await_args.args[0]
        assert webhook.recording.id == "777"
        assert webhook.recording.title == "Roadmap review"
        assert webhook.transcript_text == "Dana: I'll update the roadmap."
        assert webhook.summary == "Roadmap"

    @pytest.mark.asyncio
    async def test_pipeline_error_status(self, async_client: AsyncClient, services: Services) -> None:
        services.pipeline.process.side_effect = PipelineError(
            "transcript", "No transcript found in webhook", status_code=400
        )

        response = await async_client.post("/test/mock-webhook", json=MEETING_EXPORT)

        assert response.status_code == 400
        assert response.json() == {"error": "No transcript found in webhook"}


class TestArchiveStep:
    """Test POST /test/test-github."""

    @pytest.mark.asyncio
    async def test_archives_transcript(self, async_client: AsyncClient, services: Services) -> None:
        services.archiver.enabled = True
        services.archiver.archive.return_value = "transcripts/2024-06-03_r-1.json"

        response = await async_client.post("/test/test-github", json=WEBHOOK)

        assert response.status_code == 200
        assert response.json()["path"] == "transcripts/2024-06-03_r-1.json"
        recording_id, title, payload = services.archiver.archive.await_args.args
        assert (recording_id, title) == ("r-1", "ACME sync")
        assert payload["summary"] == "Pricing discussion"

    @pytest.mark.asyncio
    async def test_not_configured(self, async_client: AsyncClient, services: Services) -> None:
        services.archiver.enabled = False

        response = await async_client.post("/test/test-github", json=WEBHOOK)

        assert response.status_code == 400
        services.archiver.archive.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_archive_failure(self, async_client: AsyncClient, services: Services) -> None:
        services.archiver.enabled = True
        services.archiver.archive.return_value = None

        response = await async_client.post("/test/test-github", json=WEBHOOK)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to log transcript to GitHub"


class TestExtractStep:
    """Test POST /test/test-extract."""

    @pytest.mark.asyncio
    async def test_returns_items(self, async_client: AsyncClient, services: Services) -> None:
        _stub_extraction(services, ["Send pricing deck", "Book follow-up"])

        response = await async_client.post("/test/test-extract", json=WEBHOOK)

        data = response.json()
        assert data["action_items_count"] == 2
        assert [item["title"] for item in data["action_items"]] == ["Send pricing deck", "Book follow-up"]
        services.extractor.extract.assert_awaited_once_with(
            "Dana: I'll send the pricing deck by Friday.", "Pricing discussion"
        )

    @pytest.mark.asyncio
    async def test_empty_transcript(self, async_client: AsyncClient, services: Services) -> None:
        response = await async_client.post("/test/test-extract", json={"recording": {"id": "r-1"}})

        assert response.status_code == 400
        assert response.json()["error"] == "No transcript found in payload"
        services.extractor.extract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_extraction_error(self, async_client: AsyncClient, services: Services) -> None:
        services.extractor.extract.side_effect = ExtractionError("model returned no content")

        response = await async_client.post("/test/test-extract", json=WEBHOOK)

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Failed to extract action items",
            "message": "model returned no content",
        }


class TestRecapStep:
    """Test POST /test/test-recap."""

    @pytest.mark.asyncio
    async def test_returns_recap(self, async_client: AsyncClient, services: Services) -> None:
        services.recap.generate.return_value = "*ACME sync*\n- Pricing deck due Friday"

        response = await async_client.post("/test/test-recap", json=WEBHOOK)

        assert response.json()["recap"] == "*ACME sync*\n- Pricing deck due Friday"
        services.recap.generate.assert_awaited_once_with(
            "ACME sync", "Dana: I'll send the pricing deck by Friday.", "Pricing discussion"
        )

    @pytest.mark.asyncio
    async def test_recap_error(self, async_client: AsyncClient, services: Services) -> None:
        services.recap.generate.side_effect = RecapError("rate limited")

        response = await async_client.post("/test/test-recap", json=WEBHOOK)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to generate recap"


class TestSlackStep:
    """Test POST /test/test-slack."""

    @pytest.mark.asyncio
    async def test_posts_review(self, async_client: AsyncClient, services: Services) -> None:
        _stub_extraction(services, ["Send pricing deck"])

        response = await async_client.post("/test/test-slack", json=WEBHOOK)

        data = response.json()
        assert response.status_code == 200
        assert data["review_id"].startswith("review_")
        assert data["issues_preview"] == [
            {"title": "Send pricing deck", "priority": 2, "assignee_id": None}
        ]
        assert await services.store.get(review_key(data["review_id"])) is not None
        services.slack.post_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_items(self, async_client: AsyncClient, services: Services) -> None:
        _stub_extraction(services, [])

        response = await async_client.post("/test/test-slack", json=WEBHOOK)

        assert response.json()["action_items"] == []
        services.slack.post_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_review_not_configured(self, async_client: AsyncClient, services: Services) -> None:
        services.coordinator = None

        response = await async_client.post("/test/test-slack", json=WEBHOOK)

        assert response.status_code == 400
        services.extractor.extract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_post_failure(self, async_client: AsyncClient, services: Services) -> None:
        _stub_extraction(services, ["Send pricing deck"])
        services.slack.post_message.side_effect = SlackAPIError("chat.postMessage", "channel_not_found")

        response = await async_client.post("/test/test-slack", json=WEBHOOK)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to post review to Slack"

    @pytest.mark.asyncio
    async def test_extraction_error(self, async_client: AsyncClient, services: Services) -> None:
        services.extractor.extract.side_effect = ExtractionError("bad json")

        response = await async_client.post("/test/test-slack", json=WEBHOOK)

        assert response.status_code == 500
        services.slack.post_message.assert_not_awaited()


class TestLinearStep:
    """Test POST /test/test-linear."""

    @pytest.mark.asyncio
    async def test_creates_issues(
        self, async_client: AsyncClient, services: Services, backend: AsyncMock
    ) -> None:
        _stub_extraction(services, ["Send pricing deck", "Book follow-up"])

        response = await async_client.post("/test/test-linear", json=WEBHOOK)

        data = response.json()
        assert response.status_code == 200
        assert data["success"] is True
        assert data["issue_ids"] == ["issue-1", "issue-2"]
        assert data["message"] == "Created 2 of 2 issues in Linear"
        assert backend.create_issue.await_count == 2

    @pytest.mark.asyncio
    async def test_all_creates_fail(
        self, async_client: AsyncClient, services: Services, backend: AsyncMock
    ) -> None:
        _stub_extraction(services, ["Send pricing deck"])
        backend.create_issue.side_effect = IssueBackendError("Team not found", status_code=400)

        response = await async_client.post("/test/test-linear", json=WEBHOOK)

        data = response.json()
        assert response.status_code == 500
        assert data["success"] is False
        assert data["failures"][0]["error"] == "Team not found"

    @pytest.mark.asyncio
    async def test_transform_error(
        self, async_client: AsyncClient, services: Services, backend: AsyncMock
    ) -> None:
        services.extractor.extract.return_value = [make_item("Send pricing deck")]
        services.transformer.transform_all.side_effect = IssueBackendError("users lookup failed")

        response = await async_client.post("/test/test-linear", json=WEBHOOK)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to transform action items"
        backend.create_issue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_extraction_error(
        self, async_client: AsyncClient, services: Services, backend: AsyncMock
    ) -> None:
        services.extractor.extract.side_effect = ExtractionError("bad json")

        response = await async_client.post("/test/test-linear", content=json.dumps(MEETING_EXPORT))

        assert response.status_code == 500
        backend.create_issue.assert_not_awaited()
