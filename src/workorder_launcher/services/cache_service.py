"""Cache service for namespaced read-through caching.

This service sits between the work order service and the cache store. It
builds keys from namespaces, skips caching for namespaces whose TTL is 0,
coalesces concurrent misses on the same key, and reports cache state for the
HTTP headers and the admin endpoints.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from workorder_launcher.entities import CacheLookup, CacheNamespace, CacheStats, CacheStatus
from workorder_launcher.protocols import CacheStore
from workorder_launcher.repositories import InMemoryCacheRepository

logger = logging.getLogger(__name__)


class CacheService:
    """Namespaced read-through cache orchestration.

    This service depends on the CacheStore PROTOCOL, not a concrete
    implementation.

    Example:
        ```python
        cache = CacheService.create()
        key = cache.make_key(CacheNamespace.WORKORDERS, "wc", 3)
        result = await cache.wrap(CacheNamespace.WORKORDERS, key, fetch_workorders)
        headers = cache.cache_headers(result)
        ```
    """

    def __init__(self, store: CacheStore) -> None:
        """Initialize the cache service.

        Args:
            store: Cache storage backend (required).
        """
        self._store = store
        self._in_flight: dict[str, asyncio.Future] = {}
        # Bumped when a key is invalidated while a fetch for it is in flight
        self._generations: dict[str, int] = {}

    @classmethod
    def create(cls, store: CacheStore | None = None) -> "CacheService":
        """Factory method to create CacheService with an in-memory store.

        Args:
            store: Cache storage backend. If None, uses InMemoryCacheRepository.

        Returns:
            Configured CacheService instance
        """
        return cls(store=store or InMemoryCacheRepository.create())

    @staticmethod
    def make_key(namespace: CacheNamespace, *parts: Any) -> str:
        """Build a cache key such as ``workorders:wc:3``.

        Args:
            namespace: Namespace of the key
            *parts: Key components, joined with ``:``

        Returns:
            The cache key
        """
        suffix = ":".join(str(part) for part in parts) if parts else "all"
        return f"{namespace.value}:{suffix}"

    def ttl_for(self, namespace: CacheNamespace) -> float:
        return self._store.resolve_ttl(self.make_key(namespace), namespace=namespace)

    async def wrap(
        self,
        namespace: CacheNamespace,
        key: str,
        producer: Callable[[], Awaitable[Any]],
    ) -> CacheLookup:
        """Return the cached value for ``key`` or fetch it once.

        Business logic:
        1. Namespaces with TTL 0 are not cached: fetch and report BYPASS
        2. A live entry is returned as HIT
        3. On a miss, callers for the same key share a single fetch

        Args:
            namespace: Namespace whose TTL applies
            key: The cache key
            producer: Coroutine function performing the remote fetch

        Returns:
            CacheLookup describing the value and where it came from
        """
        ttl = self.ttl_for(namespace)
        if ttl <= 0:
            value = await producer()
            return CacheLookup(value=value, age=0, ttl=0, remaining=0, status=CacheStatus.BYPASS)

        cached = self._store.get(key)
        if cached is not None:
            return cached

        future = self._in_flight.get(key)
        if future is None:
            generation = self._generations.get(key, 0)
            future = asyncio.ensure_future(self._fetch(namespace, key, producer, generation))
            self._in_flight[key] = future
            future.add_done_callback(lambda done: self._fetch_done(key, done))
        else:
            logger.debug("[CACHE] Joining in-flight fetch for %s", key)

        # Shielded so one cancelled caller does not cancel the fetch for the others.
        value = await asyncio.shield(future)
        whole_ttl = round(ttl)
        return CacheLookup(
            value=value,
            age=0,
            ttl=whole_ttl,
            remaining=whole_ttl,
            status=CacheStatus.MISS,
        )

    async def _fetch(
        self,
        namespace: CacheNamespace,
        key: str,
        producer: Callable[[], Awaitable[Any]],
        generation: int,
    ) -> Any:
        value = await producer()
        if self._generations.get(key, 0) == generation:
            self._store.set(key, value, namespace=namespace)
        else:
            logger.debug("[CACHE] Not storing %s, invalidated during fetch", key)
        return value

    def _fetch_done(self, key: str, future: asyncio.Future) -> None:
        if self._in_flight.get(key) is future:
            del self._in_flight[key]
        # Mark a failure as retrieved even if every waiter was cancelled.
        if not future.cancelled():
            future.exception()

    def _forget_in_flight(self, matches: Callable[[str], bool]) -> None:
        """Detach in-flight fetches of invalidated keys.

        Later reads start a fresh fetch instead of joining one that may have
        read the remote state before the invalidation, and the detached
        fetches do not store their results.
        """
        for key in [key for key in self._in_flight if matches(key)]:
            del self._in_flight[key]
            self._generations[key] = self._generations.get(key, 0) + 1

    def get(self, key: str) -> CacheLookup | None:
        return self._store.get(key)

    def invalidate(self, key: str) -> bool:
        """Remove one cache entry.

        Args:
            key: The cache key

        Returns:
            True if the entry existed
        """
        self._forget_in_flight(lambda candidate: candidate == key)
        return self._store.invalidate(key)

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``.

        Args:
            prefix: Key prefix

        Returns:
            Number of entries removed
        """
        self._forget_in_flight(lambda key: key.startswith(prefix))
        return self._store.invalidate_by_prefix(prefix)

    def invalidate_namespace(self, namespace: CacheNamespace) -> int:
        """Remove every entry of a namespace.

        Args:
            namespace: The namespace to clear

        Returns:
            Number of entries removed
        """
        return self.invalidate_prefix(f"{namespace.value}:")

    def clear(self) -> int:
        """Remove every entry.

        Returns:
            Number of entries removed
        """
        self._forget_in_flight(lambda key: True)
        return self._store.clear()

    def get_stats(self) -> CacheStats:
        return self._store.get_stats()

    def get_status(self) -> dict[str, dict[str, Any]]:
        """Describe each namespace for the cache status probe.

        Returns:
            Mapping of namespace name to ``{has_data, entries, age, ttl, valid}``,
            where ``age`` is the age of the freshest entry
        """
        live = self._store.items()
        status: dict[str, dict[str, Any]] = {}
        for namespace in CacheNamespace:
            prefix = f"{namespace.value}:"
            lookups = [lookup for key, lookup in live if key.startswith(prefix)]
            freshest = min(lookups, key=lambda lookup: lookup.age) if lookups else None
            status[namespace.value] = {
                "has_data": freshest is not None,
                "entries": len(lookups),
                "age": freshest.age if freshest else None,
                "ttl": round(self.ttl_for(namespace)),
                "valid": freshest is not None and freshest.remaining > 0,
            }
        return status

    @staticmethod
    def cache_headers(lookup: CacheLookup) -> dict[str, str]:
        """Build the cache debugging headers of a read response.

        Args:
            lookup: The result of ``wrap``

        Returns:
            ``X-Cache-*`` headers
        """
        return {
            "X-Cache-Status": lookup.status.value,
            "X-Cache-Age": str(lookup.age),
            "X-Cache-TTL": str(lookup.ttl),
            "X-Cache-Remaining": str(lookup.remaining),
        }

    @property
    def store(self) -> CacheStore:
        """Get the underlying store (for testing)."""
        return self._store
