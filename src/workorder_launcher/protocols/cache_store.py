"""Cache storage protocol.

Defines the interface for a key-value store with per-entry TTL, as used by
the read-through caching in ``CacheService``.

Implementations can include:
- In-process dictionary (default)
- Any shared store, provided it keeps the same expiry semantics
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from workorder_launcher.entities import CacheLookup, CacheNamespace, CacheStats


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for TTL cache backends.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed.
    """

    def get(self, key: str) -> CacheLookup | None:
        """Read a live entry.

        Args:
            key: The cache key

        Returns:
            CacheLookup with status HIT, or None if absent or expired
        """
        ...

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
        ...

    def resolve_ttl(
        self,
        key: str,
        ttl: float | None = None,
        namespace: CacheNamespace | None = None,
    ) -> float:
        """Work out the TTL that ``set`` would apply.

        Args:
            key: The cache key
            ttl: Explicit override
            namespace: Explicit namespace

        Returns:
            TTL in seconds
        """
        ...

    def invalidate(self, key: str) -> bool:
        """Remove one entry.

        Args:
            key: The cache key

        Returns:
            True if the entry existed
        """
        ...

    def invalidate_by_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``.

        Args:
            prefix: Key prefix to match

        Returns:
            Number of entries removed
        """
        ...

    def clear(self) -> int:
        """Remove every entry.

        Returns:
            Number of entries held before clearing
        """
        ...

    async def wrap(
        self,
        key: str,
        producer: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
        namespace: CacheNamespace | None = None,
    ) -> CacheLookup:
        """Return the cached value or produce, store and return a fresh one.

        Args:
            key: The cache key
            producer: Coroutine function performing the real fetch
            ttl: TTL override in seconds
            namespace: Namespace whose TTL applies when no override is given

        Returns:
            CacheLookup tagged with ``from_cache``
        """
        ...

    def get_stats(self) -> CacheStats:
        """Get hit/miss/invalidation counters.

        Returns:
            CacheStats snapshot
        """
        ...

    def items(self) -> list[tuple[str, CacheLookup]]:
        """List live entries without touching the hit/miss counters.

        Returns:
            (key, lookup) pairs for every live entry
        """
        ...
