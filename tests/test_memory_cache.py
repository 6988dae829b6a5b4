"""
Tests for the in-memory TTL cache store.
"""

import pytest

from workorder_launcher.entities import CacheNamespace, CacheStatus
from workorder_launcher.protocols import CacheStore
from workorder_launcher.repositories import InMemoryCacheRepository


def test_satisfies_cache_store_protocol(memory_store):
    assert isinstance(memory_store, CacheStore)


def test_get_missing_key_counts_miss(memory_store):
    assert memory_store.get("workorders:wc:1") is None
    assert memory_store.get_stats().misses == 1


def test_set_then_get_reports_whole_seconds(memory_store, clock):
    memory_store.set("workorders:wc:1", ["a"])
    clock.advance(4.6)

    lookup = memory_store.get("workorders:wc:1")

    assert lookup.value == ["a"]
    assert lookup.status is CacheStatus.HIT
    assert lookup.from_cache is True
    assert lookup.age == 5
    assert lookup.ttl == 15
    assert lookup.remaining == 10


def test_ttl_resolved_from_key_namespace(memory_store):
    memory_store.set("workcenters:all", [])
    memory_store.set("other:thing", 1)

    assert memory_store.get("workcenters:all").ttl == 3600
    assert memory_store.get("other:thing").ttl == 30


def test_explicit_namespace_wins_over_key_prefix(memory_store):
    memory_store.set("custom-key", 1, namespace=CacheNamespace.WORKORDERS)

    assert memory_store.get("custom-key").ttl == 15


def test_explicit_ttl_wins_over_namespace(memory_store):
    memory_store.set("workcenters:all", [], ttl=5)

    assert memory_store.get("workcenters:all").ttl == 5


def test_entry_expires_exactly_at_ttl(memory_store, clock):
    memory_store.set("workorders:wc:1", "x")

    clock.advance(14)
    assert memory_store.get("workorders:wc:1") is not None

    clock.advance(1)
    assert memory_store.get("workorders:wc:1") is None
    assert "workorders:wc:1" not in memory_store


def test_expired_read_counts_as_miss_and_evicts(memory_store, clock):
    memory_store.set("workorders:wc:1", "x")
    clock.advance(20)

    assert memory_store.get("workorders:wc:1") is None

    stats = memory_store.get_stats()
    assert stats.misses == 1
    assert stats.hits == 0
    assert stats.entries == 0


def test_set_replaces_value_and_restarts_age(memory_store, clock):
    memory_store.set("workorders:wc:1", "old")
    clock.advance(10)
    memory_store.set("workorders:wc:1", "new")
    clock.advance(10)

    lookup = memory_store.get("workorders:wc:1")
    assert lookup.value == "new"
    assert lookup.age == 10


def test_zero_ttl_entry_is_never_live(memory_store):
    memory_store.set("search:abc", ["x"])

    assert memory_store.get("search:abc") is None


def test_invalidate_returns_whether_key_existed(memory_store):
    memory_store.set("tags:all", [])

    assert memory_store.invalidate("tags:all") is True
    assert memory_store.invalidate("tags:all") is False
    assert memory_store.get_stats().invalidations == 1


def test_invalidate_by_prefix_removes_matching_keys_only(memory_store):
    memory_store.set("workorders:wc:1", 1)
    memory_store.set("workorders:wc:2", 2)
    memory_store.set("workorders:detail:9", 3)
    memory_store.set("workcenters:all", 4)

    removed = memory_store.invalidate_by_prefix("workorders:wc:")

    assert removed == 2
    assert "workorders:detail:9" in memory_store
    assert "workcenters:all" in memory_store
    assert memory_store.get_stats().invalidations == 2


def test_clear_returns_prior_size_without_counting_invalidations(memory_store):
    memory_store.set("workorders:wc:1", 1)
    memory_store.set("tags:all", 2)

    assert memory_store.clear() == 2
    assert len(memory_store) == 0
    assert memory_store.get_stats().invalidations == 0


def test_hit_rate_is_rounded_percentage(memory_store):
    assert memory_store.get_stats().hit_rate == 0

    memory_store.set("tags:all", [])
    memory_store.get("tags:all")
    memory_store.get("tags:all")
    memory_store.get("workcenters:all")

    stats = memory_store.get_stats()
    assert stats.hits == 2
    assert stats.misses == 1
    assert stats.hit_rate == 67


@pytest.mark.asyncio
async def test_wrap_fetches_on_miss_then_serves_hit(memory_store, clock, counting_producer):
    producer = counting_producer(["wc"])

    first = await memory_store.wrap("workcenters:all", producer)
    clock.advance(2)
    second = await memory_store.wrap("workcenters:all", producer)

    assert producer.calls == 1
    assert first.status is CacheStatus.MISS
    assert first.from_cache is False
    assert (first.age, first.ttl, first.remaining) == (0, 3600, 3600)
    assert second.status is CacheStatus.HIT
    assert second.from_cache is True
    assert second.age == 2


@pytest.mark.asyncio
async def test_wrap_does_not_store_when_producer_fails(memory_store):
    async def failing():
        raise RuntimeError("ERP down")

    with pytest.raises(RuntimeError):
        await memory_store.wrap("workorders:wc:1", failing)

    assert "workorders:wc:1" not in memory_store


def test_items_lists_live_entries_without_touching_counters(memory_store, clock):
    memory_store.set("workorders:wc:1", 1)
    memory_store.set("workcenters:all", 2)
    clock.advance(20)

    keys = [key for key, _ in memory_store.items()]

    assert keys == ["workcenters:all"]
    stats = memory_store.get_stats()
    assert (stats.hits, stats.misses) == (0, 0)
    assert stats.entries == 1


def test_create_uses_settings_defaults():
    store = InMemoryCacheRepository.create()

    assert store.resolve_ttl("workorders:wc:1") >= 0
    assert store.resolve_ttl("unknown:key", ttl=12) == 12
