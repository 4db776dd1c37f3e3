"""Unit tests for review store backends."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from callrelay.config import StoreConfig
from callrelay.review.models import ReviewRequest
from callrelay.store import create_store
from callrelay.store.base import StoreError, resolved_key, review_key
from callrelay.store.memory import InMemoryReviewStore
from callrelay.store.rest import RestReviewStore

from helpers import FakeClock, make_item, make_payload

KV_URL = "https://kv.example.com"


def _review(review_id: str = "review_1_store") -> ReviewRequest:
    return ReviewRequest.create([make_item("Task")], [make_payload("Task")], 1800, review_id=review_id)


class TestKeys:
    """Test store key layout."""

    def test_live_and_resolved_keys_differ(self) -> None:
        assert review_key("review_1") == "review:review_1"
        assert resolved_key("review_1") == "review:review_1:resolved"


class TestInMemoryReviewStore:
    """Test the process-local store."""

    @pytest.mark.asyncio
    async def test_put_get_delete(self, store: InMemoryReviewStore) -> None:
        review = _review()
        await store.put("k", review, 60)

        assert await store.get("k") == review
        await store.delete("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_missing_key(self, store: InMemoryReviewStore) -> None:
        assert await store.get("nope") is None
        await store.delete("nope")

    @pytest.mark.asyncio
    async def test_expiry(self, store: InMemoryReviewStore, clock: FakeClock) -> None:
        await store.put("k", _review(), 60)

        clock.advance(59)
        assert await store.get("k") is not None
        clock.advance(1)
        assert await store.get("k") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_put_replaces_and_resets_expiry(self, store: InMemoryReviewStore, clock: FakeClock) -> None:
        await store.put("k", _review("review_a"), 10)
        clock.advance(5)
        await store.put("k", _review("review_b"), 10)
        clock.advance(8)

        stored = await store.get("k")
        assert stored is not None
        assert stored.review_id == "review_b"

    @pytest.mark.asyncio
    async def test_get_returns_independent_copy(self, store: InMemoryReviewStore) -> None:
        await store.put("k", _review(), 60)

        first = await store.get("k")
        first.item_states.clear()

        second = await store.get("k")
        assert len(second.item_states) == 1


class TestRestReviewStore:
    """Test the REST key-value store against a mocked endpoint."""

    @pytest.fixture
    def rest_store(self) -> RestReviewStore:
        return RestReviewStore(KV_URL + "/", "kv-token")

    @pytest.mark.asyncio
    @respx.mock
    async def test_put_sends_set_with_expiry(self, rest_store: RestReviewStore) -> None:
        route = respx.post(KV_URL).mock(return_value=httpx.Response(200, json={"result": "OK"}))
        review = _review()

        await rest_store.put("review:r1", review, 1800)

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer kv-token"
        command = json.loads(request.content)
        assert command[:2] == ["SET", "review:r1"]
        assert command[3:] == ["EX", "1800"]
        assert ReviewRequest.from_json(command[2]) == review
        await rest_store.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_decodes_record(self, rest_store: RestReviewStore) -> None:
        review = _review()
        respx.post(KV_URL).mock(return_value=httpx.Response(200, json={"result": review.to_json()}))

        assert await rest_store.get("review:r1") == review

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_missing_returns_none(self, rest_store: RestReviewStore) -> None:
        respx.post(KV_URL).mock(return_value=httpx.Response(200, json={"result": None}))
        assert await rest_store.get("review:gone") is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_reply_raises(self, rest_store: RestReviewStore) -> None:
        respx.post(KV_URL).mock(
            return_value=httpx.Response(200, json={"error": "WRONGPASS invalid token"})
        )
        with pytest.raises(StoreError, match="WRONGPASS"):
            await rest_store.get("review:r1")

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_raises(self, rest_store: RestReviewStore) -> None:
        respx.post(KV_URL).mock(return_value=httpx.Response(503, text="unavailable"))
        with pytest.raises(StoreError, match="HTTP 503"):
            await rest_store.put("review:r1", _review(), 60)

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_error_raises(self, rest_store: RestReviewStore) -> None:
        respx.post(KV_URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(StoreError):
            await rest_store.get("review:r1")

    @pytest.mark.asyncio
    @respx.mock
    async def test_corrupt_record_raises(self, rest_store: RestReviewStore) -> None:
        respx.post(KV_URL).mock(return_value=httpx.Response(200, json={"result": '{"review_id": 1}'}))
        with pytest.raises(StoreError, match="Corrupt review record"):
            await rest_store.get("review:r1")

    @pytest.mark.asyncio
    @respx.mock
    async def test_delete_swallows_errors(self, rest_store: RestReviewStore) -> None:
        route = respx.post(KV_URL).mock(return_value=httpx.Response(500))
        await rest_store.delete("review:r1")
        assert json.loads(route.calls.last.request.content) == ["DEL", "review:r1"]


class TestCreateStore:
    """Test backend selection from configuration."""

    def test_memory_backend(self) -> None:
        assert create_store(StoreConfig()).name == "memory"

    def test_rest_backend(self) -> None:
        store = create_store(StoreConfig(backend="rest", rest_url=KV_URL, rest_token="t"))
        assert isinstance(store, RestReviewStore)
        assert store.url == KV_URL
