import asyncio

import pytest

from yourstop.services.cache import TTLCache
from yourstop.services.deduplicator import RequestDeduplicator


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_execution():
    dedup = RequestDeduplicator(cache=TTLCache())
    calls = 0
    release = asyncio.Event()

    async def fetch():
        nonlocal calls
        calls += 1
        await release.wait()
        return "value"

    waiters = [asyncio.create_task(dedup.dedupe("k", fetch)) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()

    assert await asyncio.gather(*waiters) == ["value"] * 3
    assert calls == 1
    assert dedup.get_stats().deduplicated == 2
    assert dedup.get_in_flight_count() == 0


@pytest.mark.asyncio
async def test_cached_value_skips_producer():
    cache = TTLCache()
    dedup = RequestDeduplicator(cache=cache)
    cache.set("k", "cached")

    async def fetch():
        raise AssertionError("producer must not run")

    assert await dedup.dedupe("k", fetch) == "cached"
    assert dedup.get_stats().cache_hits == 1


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter_and_is_not_cached():
    cache = TTLCache()
    dedup = RequestDeduplicator(cache=cache)
    release = asyncio.Event()

    async def fetch():
        await release.wait()
        raise RuntimeError("upstream down")

    waiters = [asyncio.create_task(dedup.dedupe("k", fetch)) for _ in range(2)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert all(isinstance(r, RuntimeError) for r in results)
    assert not cache.has("k")
    assert dedup.get_in_flight_count() == 0


@pytest.mark.asyncio
async def test_use_cache_false_bypasses_cache():
    cache = TTLCache()
    dedup = RequestDeduplicator(cache=cache)
    cache.set("k", "stale")

    async def fetch():
        return "fresh"

    assert await dedup.dedupe("k", fetch, use_cache=False) == "fresh"
    assert cache.get("k") == "stale"


@pytest.mark.asyncio
async def test_cancel_all_cancels_in_flight():
    dedup = RequestDeduplicator(cache=TTLCache())

    async def fetch():
        await asyncio.sleep(10)

    waiter = asyncio.create_task(dedup.dedupe("k", fetch))
    await asyncio.sleep(0)

    assert await dedup.cancel_all() == 1
    with pytest.raises(asyncio.CancelledError):
        await waiter


@pytest.mark.asyncio
async def test_cancelled_request_unwinding_keeps_its_replacement():
    dedup = RequestDeduplicator(cache=TTLCache())
    calls = 0

    async def fetch():
        nonlocal calls
        calls += 1
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            # slow cleanup, still running after a replacement has started
            await asyncio.sleep(0.01)
            raise

    first = asyncio.create_task(dedup.dedupe("k", fetch))
    await asyncio.sleep(0.001)
    assert dedup.cancel("k")

    second = asyncio.create_task(dedup.dedupe("k", fetch))
    await asyncio.sleep(0.02)
    third = asyncio.create_task(dedup.dedupe("k", fetch))
    await asyncio.sleep(0.001)

    assert calls == 2
    assert dedup.get_in_flight_count() == 1
    assert dedup.get_stats().deduplicated == 1

    await dedup.cancel_all()
    results = await asyncio.gather(first, second, third, return_exceptions=True)
    assert all(isinstance(r, asyncio.CancelledError) for r in results)
