"""Cache domain entities."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class CacheNamespace(str, Enum):
    """Key namespaces, each with its own TTL.

    The value doubles as the key prefix, so invalidating a namespace clears
    every cached view built under it (``workorders:wc:3``,
    ``workorders:detail:12``, ...).
    """

    WORKCENTERS = "workcenters"
    TAGS = "tags"
    WORKORDERS = "workorders"
    SEARCH = "search"

    @classmethod
    def from_key(cls, key: str) -> "CacheNamespace | None":
        """Resolve the namespace a key was built under.

        Args:
            key: A cache key such as ``workorders:wc:3``

        Returns:
            The matching namespace, or None for keys outside any namespace
        """
        prefix = key.split(":", 1)[0]
        try:
            return cls(prefix)
        except ValueError:
            return None


class CacheStatus(str, Enum):
    """Outcome of a cache lookup, as advertised in ``X-Cache-Status``."""

    HIT = "HIT"
    MISS = "MISS"
    BYPASS = "BYPASS"


@dataclass(frozen=True)
class CacheEntryEntity:
    """A stored value with the time it was stored and its time-to-live.

    Attributes:
        value: The cached payload, replaced wholesale and never mutated
        stored_at: Clock reading (seconds) when the entry was written
        ttl: Time-to-live in seconds
    """

    value: Any
    stored_at: float
    ttl: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_live(self, now: float) -> bool:
        return self.age(now) < self.ttl


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache read or read-through.

    Age, TTL and remaining time are whole seconds. A non-positive
    ``remaining`` means the entry is expired.
    """

    value: Any
    age: int
    ttl: int
    remaining: int
    status: CacheStatus
    from_cache: bool = False


@dataclass(frozen=True)
class CacheStats:
    """Counters of a cache store."""

    entries: int
    hits: int
    misses: int
    hit_rate: int
    invalidations: int
