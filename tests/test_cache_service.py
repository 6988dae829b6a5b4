"""
Tests for the namespaced cache service.
"""

import asyncio
import gc

import pytest

from workorder_launcher.entities import CacheNamespace, CacheStatus
from workorder_launcher.services import CacheService


def test_make_key():
    assert CacheService.make_key(CacheNamespace.WORKCENTERS) == "workcenters:all"
    assert CacheService.make_key(CacheNamespace.WORKORDERS, "wc", 3) == "workorders:wc:3"


@pytest.mark.asyncio
async def test_wrap_miss_then_hit(cache_service, clock, counting_producer):
    producer = counting_producer(["wo"])

    miss = await cache_service.wrap(CacheNamespace.WORKORDERS, "workorders:wc:1", producer)
    clock.advance(3)
    hit = await cache_service.wrap(CacheNamespace.WORKORDERS, "workorders:wc:1", producer)

    assert producer.calls == 1
    assert miss.status is CacheStatus.MISS
    assert (miss.ttl, miss.remaining) == (15, 15)
    assert hit.status is CacheStatus.HIT
    assert (hit.age, hit.remaining) == (3, 12)


@pytest.mark.asyncio
async def test_zero_ttl_namespace_bypasses_cache(cache_service, counting_producer):
    producer = counting_producer(["result"])

    first = await cache_service.wrap(CacheNamespace.SEARCH, "search:abc", producer)
    second = await cache_service.wrap(CacheNamespace.SEARCH, "search:abc", producer)

    assert producer.calls == 2
    assert first.status is CacheStatus.BYPASS
    assert (second.age, second.ttl, second.remaining) == (0, 0, 0)
    assert len(cache_service.store.items()) == 0


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_fetch(cache_service):
    release = asyncio.Event()
    calls = 0

    async def slow_fetch():
        nonlocal calls
        calls += 1
        await release.wait()
        return ["shared"]

    first = asyncio.create_task(cache_service.wrap(CacheNamespace.WORKCENTERS, "workcenters:all", slow_fetch))
    second = asyncio.create_task(cache_service.wrap(CacheNamespace.WORKCENTERS, "workcenters:all", slow_fetch))
    await asyncio.sleep(0)
    release.set()

    results = await asyncio.gather(first, second)

    assert calls == 1
    assert [r.value for r in results] == [["shared"], ["shared"]]


@pytest.mark.asyncio
async def test_failed_fetch_propagates_to_all_waiters_and_is_not_cached(cache_service):
    release = asyncio.Event()

    async def failing_fetch():
        await release.wait()
        raise RuntimeError("ERP down")

    tasks = [
        asyncio.create_task(cache_service.wrap(CacheNamespace.TAGS, "tags:all", failing_fetch))
        for _ in range(2)
    ]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*tasks, return_exceptions=True)

    assert all(isinstance(r, RuntimeError) for r in results)
    assert cache_service.get("tags:all") is None


@pytest.mark.asyncio
async def test_invalidate_namespace(cache_service, counting_producer):
    producer = counting_producer([])
    await cache_service.wrap(CacheNamespace.WORKORDERS, "workorders:wc:1", producer)
    await cache_service.wrap(CacheNamespace.WORKORDERS, "workorders:detail:4", producer)
    await cache_service.wrap(CacheNamespace.WORKCENTERS, "workcenters:all", producer)

    removed = cache_service.invalidate_namespace(CacheNamespace.WORKORDERS)

    assert removed == 2
    assert cache_service.get("workcenters:all") is not None


@pytest.mark.asyncio
async def test_get_status_reports_each_namespace(cache_service, clock, counting_producer):
    await cache_service.wrap(CacheNamespace.WORKCENTERS, "workcenters:all", counting_producer([]))
    clock.advance(5)

    status = cache_service.get_status()

    assert set(status) == {"workcenters", "tags", "workorders", "search"}
    assert status["workcenters"] == {"has_data": True, "entries": 1, "age": 5, "ttl": 3600, "valid": True}
    assert status["workorders"]["has_data"] is False
    assert status["workorders"]["age"] is None
    assert status["search"]["ttl"] == 0


@pytest.mark.asyncio
async def test_cache_headers(cache_service, counting_producer):
    lookup = await cache_service.wrap(CacheNamespace.WORKORDERS, "workorders:wc:1", counting_producer([]))

    assert CacheService.cache_headers(lookup) == {
        "X-Cache-Status": "MISS",
        "X-Cache-Age": "0",
        "X-Cache-TTL": "15",
        "X-Cache-Remaining": "15",
    }


def test_create_defaults_to_memory_store():
    service = CacheService.create()

    assert service.get_stats().entries == 0


@pytest.mark.asyncio
async def test_read_after_invalidation_does_not_join_stale_fetch(cache_service):
    remote = {"state": "ready"}
    snapshot_taken = asyncio.Event()
    release = asyncio.Event()

    async def fetch():
        snapshot = dict(remote)
        snapshot_taken.set()
        await release.wait()
        return snapshot

    stale = asyncio.create_task(cache_service.wrap(CacheNamespace.WORKORDERS, "workorders:wc:1", fetch))
    await snapshot_taken.wait()

    remote["state"] = "progress"
    cache_service.invalidate_namespace(CacheNamespace.WORKORDERS)
    release.set()
    fresh = await cache_service.wrap(CacheNamespace.WORKORDERS, "workorders:wc:1", fetch)

    assert fresh.value == {"state": "progress"}
    assert (await stale).value == {"state": "ready"}
    assert cache_service.get("workorders:wc:1").value == {"state": "progress"}


@pytest.mark.asyncio
async def test_fetch_started_before_clear_is_not_stored(cache_service):
    release = asyncio.Event()

    async def fetch():
        await release.wait()
        return ["before clear"]

    pending = asyncio.create_task(cache_service.wrap(CacheNamespace.WORKCENTERS, "workcenters:all", fetch))
    await asyncio.sleep(0)
    cache_service.clear()
    release.set()

    assert (await pending).value == ["before clear"]
    assert cache_service.get("workcenters:all") is None


@pytest.mark.asyncio
async def test_failed_fetch_with_cancelled_waiter_leaves_no_unretrieved_error(cache_service):
    loop = asyncio.get_running_loop()
    reported = []
    loop.set_exception_handler(lambda _loop, context: reported.append(context))
    release = asyncio.Event()

    async def failing_fetch():
        await release.wait()
        raise RuntimeError("ERP down")

    waiter = asyncio.create_task(cache_service.wrap(CacheNamespace.TAGS, "tags:all", failing_fetch))
    await asyncio.sleep(0)
    waiter.cancel()
    release.set()

    with pytest.raises(asyncio.CancelledError):
        await waiter
    for _ in range(5):
        await asyncio.sleep(0)
    gc.collect()

    loop.set_exception_handler(None)
    assert reported == []
    assert cache_service.get("tags:all") is None
