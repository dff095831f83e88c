import asyncio
import json
from datetime import timedelta

import httpx
import pytest
from respx import MockRouter

from yourstop.services.batching import BatchRequestOptions, RequestBatcher
from yourstop.services.errors import BatchItemError, BatchTransportError

BATCH_URL = "http://api.test/api/batch"


@pytest.fixture
async def http_client():
    async with httpx.AsyncClient() as client:
        yield client


def make_batcher(http_client, **kwargs) -> RequestBatcher:
    kwargs.setdefault("max_wait_time", timedelta(milliseconds=20))
    return RequestBatcher(batch_url=BATCH_URL, http_client=http_client, **kwargs)


@pytest.mark.asyncio
async def test_requests_in_window_share_one_call(http_client, respx_mock: MockRouter):
    route = respx_mock.post(BATCH_URL).mock(
        return_value=httpx.Response(
            200,
            json=[
                {"success": True, "data": "A"},
                {"success": True, "data": "B"},
                {"success": False, "error": "x"},
            ],
        )
    )
    batcher = make_batcher(http_client)

    futures = [batcher.enqueue(f"/api/items?n={n}") for n in range(3)]
    results = await asyncio.gather(*futures, return_exceptions=True)

    assert route.call_count == 1
    assert results[0] == "A"
    assert results[1] == "B"
    assert isinstance(results[2], BatchItemError)
    assert str(results[2]) == "x"

    payload = json.loads(route.calls[0].request.content)
    assert [r["url"] for r in payload["requests"]] == [
        "/api/items?n=0",
        "/api/items?n=1",
        "/api/items?n=2",
    ]
    assert all(r["method"] == "GET" for r in payload["requests"])


@pytest.mark.asyncio
async def test_full_batch_dispatches_immediately(http_client, respx_mock: MockRouter):
    route = respx_mock.post(BATCH_URL).mock(
        return_value=httpx.Response(
            200, json=[{"success": True, "data": 1}, {"success": True, "data": 2}]
        )
    )
    batcher = make_batcher(http_client, max_batch_size=2, max_wait_time=timedelta(hours=1))

    futures = [batcher.enqueue("/a"), batcher.enqueue("/a")]

    assert batcher.pending_count() == 0
    assert await asyncio.gather(*futures) == [1, 2]
    assert route.call_count == 1
    assert batcher.get_stats().size_triggered == 1


@pytest.mark.asyncio
async def test_different_keys_are_batched_separately(http_client, respx_mock: MockRouter):
    route = respx_mock.post(BATCH_URL).mock(
        return_value=httpx.Response(200, json=[{"success": True, "data": "ok"}])
    )
    batcher = make_batcher(http_client)

    first = batcher.enqueue("/a")
    second = batcher.enqueue("/b", BatchRequestOptions(method="POST", body={"x": 1}))

    assert batcher.pending_count("GET:/a") == 1
    assert batcher.pending_count("POST:/b") == 1
    assert await asyncio.gather(first, second) == ["ok", "ok"]
    assert route.call_count == 2


@pytest.mark.asyncio
async def test_transport_failure_rejects_whole_batch(http_client, respx_mock: MockRouter):
    respx_mock.post(BATCH_URL).mock(return_value=httpx.Response(503))
    batcher = make_batcher(http_client)

    futures = [batcher.enqueue("/a"), batcher.enqueue("/a")]
    results = await asyncio.gather(*futures, return_exceptions=True)

    assert all(isinstance(r, BatchTransportError) for r in results)
    assert results[0] is results[1]


@pytest.mark.asyncio
async def test_short_response_rejects_unmatched(http_client, respx_mock: MockRouter):
    respx_mock.post(BATCH_URL).mock(
        return_value=httpx.Response(200, json=[{"success": True, "data": "only"}])
    )
    batcher = make_batcher(http_client)

    futures = [batcher.enqueue("/a"), batcher.enqueue("/a")]
    results = await asyncio.gather(*futures, return_exceptions=True)

    assert results[0] == "only"
    assert isinstance(results[1], BatchItemError)


@pytest.mark.asyncio
async def test_flush_sends_without_waiting_for_timer(http_client, respx_mock: MockRouter):
    route = respx_mock.post(BATCH_URL).mock(
        return_value=httpx.Response(200, json=[{"success": True, "data": 7}])
    )
    batcher = make_batcher(http_client, max_wait_time=timedelta(hours=1))

    future = batcher.enqueue("/a")
    await batcher.flush("GET:/a")

    assert future.result() == 7
    assert route.call_count == 1


def test_default_batch_key_strips_query():
    assert RequestBatcher.default_batch_key("/api/x?y=1", "post") == "POST:/api/x"


@pytest.mark.asyncio
async def test_timer_on_flushed_key_sends_nothing(http_client, respx_mock: MockRouter):
    route = respx_mock.post(BATCH_URL).mock(
        return_value=httpx.Response(200, json=[{"success": True, "data": "A"}])
    )
    batcher = make_batcher(http_client)
    key = RequestBatcher.default_batch_key("/api/items")

    future = batcher.enqueue("/api/items?n=1")
    await batcher.flush(key)
    # a timer that fires late finds the key already empty
    batcher._on_timer(key)
    await asyncio.sleep(0.05)

    assert await future == "A"
    assert route.call_count == 1
    assert batcher.pending_count(key) == 0
    assert batcher.get_stats().timeout_triggered == 0
