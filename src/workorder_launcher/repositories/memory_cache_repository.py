"""In-memory implementation of CacheStore.

Entries live in a plain dictionary owned by the repository instance. Expired
entries are evicted lazily, on the next read of their key.

The store runs on a single asyncio event loop and holds no locks: every
read-modify-write below completes without awaiting. Sharing an instance
across OS threads requires adding a lock around the dictionary and counters.
"""

import logging
import math
import time
from collections.abc import Awaitable, Callable
from typing import Any

from workorder_launcher.config import settings
from workorder_launcher.entities import (
    CacheEntryEntity,
    CacheLookup,
    CacheNamespace,
    CacheStats,
    CacheStatus,
)

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    """Round half up, matching how ages and rates are displayed."""
    return math.floor(value + 0.5)


def default_ttl_config() -> dict[CacheNamespace, float]:
    """Namespace TTLs from settings."""
    return {
        CacheNamespace.WORKCENTERS: settings.cache_ttl_workcenters,
        CacheNamespace.TAGS: settings.cache_ttl_tags,
        CacheNamespace.WORKORDERS: settings.cache_ttl_workorders,
        CacheNamespace.SEARCH: settings.cache_ttl_search,
    }


class InMemoryCacheRepository:
    """Dictionary-backed TTL cache.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.

    TTL resolution for ``set``:
    1. An explicit ``ttl`` override
    2. The TTL of an explicit ``namespace``
    3. The TTL of the namespace parsed from the key prefix
    4. The default TTL
    """

    def __init__(
        self,
        ttl_config: dict[CacheNamespace, float] | None = None,
        default_ttl: float | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the in-memory cache repository.

        Args:
            ttl_config: TTL in seconds per namespace. Defaults to settings.
            default_ttl: TTL for keys outside any namespace. Defaults to settings.
            clock: Monotonic clock in seconds. Defaults to time.monotonic.
        """
        self._store: dict[str, CacheEntryEntity] = {}
        self._ttl_config = ttl_config if ttl_config is not None else default_ttl_config()
        self._default_ttl = default_ttl if default_ttl is not None else settings.cache_ttl_default
        self._clock = clock or time.monotonic

        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    @classmethod
    def create(
        cls,
        ttl_config: dict[CacheNamespace, float] | None = None,
        default_ttl: float | None = None,
    ) -> "InMemoryCacheRepository":
        """Factory method to create InMemoryCacheRepository with defaults.

        Args:
            ttl_config: TTL per namespace. If None, uses settings.
            default_ttl: Fallback TTL. If None, uses settings.

        Returns:
            Configured InMemoryCacheRepository
        """
        return cls(ttl_config=ttl_config, default_ttl=default_ttl)

    def resolve_ttl(
        self,
        key: str,
        ttl: float | None = None,
        namespace: CacheNamespace | None = None,
    ) -> float:
        """Work out the TTL that ``set`` would apply to ``key``.

        Args:
            key: The cache key
            ttl: Explicit override
            namespace: Explicit namespace

        Returns:
            TTL in seconds
        """
        if ttl is not None:
            return ttl
        namespace = namespace or CacheNamespace.from_key(key)
        if namespace is not None and namespace in self._ttl_config:
            return self._ttl_config[namespace]
        return self._default_ttl

    def _lookup(self, entry: CacheEntryEntity, now: float, status: CacheStatus) -> CacheLookup:
        age = entry.age(now)
        return CacheLookup(
            value=entry.value,
            age=_round_half_up(age),
            ttl=_round_half_up(entry.ttl),
            remaining=_round_half_up(entry.ttl - age),
            status=status,
            from_cache=status is CacheStatus.HIT,
        )

    def get(self, key: str) -> CacheLookup | None:
        """Read a live entry, evicting it if it has expired.

        Args:
            key: The cache key

        Returns:
            CacheLookup with status HIT, or None on a miss
        """
        entry = self._store.get(key)
        if entry is None:
            self._misses += 1
            return None

        now = self._clock()
        if not entry.is_live(now):
            del self._store[key]
            self._misses += 1
            logger.debug("[CACHE] EXPIRED %s", key)
            return None

        self._hits += 1
        return self._lookup(entry, now, CacheStatus.HIT)

    def set(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        namespace: CacheNamespace | None = None,
    ) -> Any:
        """Store a value, replacing any previous entry.

        Args:
            key: The cache key
            value: The payload to store
            ttl: TTL override in seconds
            namespace: Namespace whose TTL applies when no override is given

        Returns:
            The stored value
        """
        resolved = self.resolve_ttl(key, ttl, namespace)
        self._store[key] = CacheEntryEntity(value=value, stored_at=self._clock(), ttl=resolved)
        logger.debug("[CACHE] SET %s (TTL: %ss)", key, resolved)
        return value

    def invalidate(self, key: str) -> bool:
        """Remove one entry.

        Args:
            key: The cache key

        Returns:
            True if the entry existed, False otherwise
        """
        if self._store.pop(key, None) is None:
            return False
        self._invalidations += 1
        logger.info("[CACHE] INVALIDATE %s", key)
        return True

    def invalidate_by_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``.

        Args:
            prefix: Key prefix to match

        Returns:
            Number of entries removed
        """
        keys = [key for key in self._store if key.startswith(prefix)]
        for key in keys:
            del self._store[key]

        if keys:
            self._invalidations += len(keys)
            logger.info('[CACHE] INVALIDATE prefix "%s" (%d keys)', prefix, len(keys))
        return len(keys)

    def clear(self) -> int:
        """Remove every entry.

        Returns:
            Number of entries held before clearing
        """
        count = len(self._store)
        self._store.clear()
        logger.info("[CACHE] CLEAR (%d keys)", count)
        return count

    async def wrap(
        self,
        key: str,
        producer: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
        namespace: CacheNamespace | None = None,
    ) -> CacheLookup:
        """Read-through: return the cached value or produce and store a fresh one.

        Concurrent misses on the same key each call ``producer``; use
        ``CacheService.wrap`` for coalesced fetches.

        Args:
            key: The cache key
            producer: Coroutine function performing the real fetch
            ttl: TTL override in seconds
            namespace: Namespace whose TTL applies when no override is given

        Returns:
            CacheLookup with ``from_cache=True`` on a hit, status MISS otherwise
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = await producer()
        self.set(key, value, ttl=ttl, namespace=namespace)
        resolved = _round_half_up(self.resolve_ttl(key, ttl, namespace))
        return CacheLookup(
            value=value,
            age=0,
            ttl=resolved,
            remaining=resolved,
            status=CacheStatus.MISS,
            from_cache=False,
        )

    def get_stats(self) -> CacheStats:
        """Get cache counters.

        Returns:
            CacheStats with hit rate as a 0-100 integer (0 before any lookup)
        """
        total = self._hits + self._misses
        hit_rate = _round_half_up(self._hits / total * 100) if total > 0 else 0
        return CacheStats(
            entries=len(self._store),
            hits=self._hits,
            misses=self._misses,
            hit_rate=hit_rate,
            invalidations=self._invalidations,
        )

    def items(self) -> list[tuple[str, CacheLookup]]:
        """List live entries without touching the hit/miss counters.

        Returns:
            (key, lookup) pairs for every live entry
        """
        now = self._clock()
        live = []
        for key, entry in list(self._store.items()):
            if entry.is_live(now):
                live.append((key, self._lookup(entry, now, CacheStatus.HIT)))
            else:
                del self._store[key]
        return live

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return key in self._store
