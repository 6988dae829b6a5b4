"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.

Entities should have:
- No JSON serialization logic
- No Pydantic validation
- No external dependencies
"""

from .cache_entry import CacheEntryEntity, CacheLookup, CacheNamespace, CacheStats, CacheStatus
from .manufacturing import (
    BomLine,
    Found,
    Lookup,
    NotFound,
    RecordRef,
    TimeTrackingEntry,
    TransitionResult,
    Workcenter,
    WorkcenterTag,
    Workorder,
    WorkorderGroups,
)
from .session_token import SessionToken

__all__ = [
    "CacheEntryEntity",
    "CacheLookup",
    "CacheNamespace",
    "CacheStats",
    "CacheStatus",
    "SessionToken",
    "RecordRef",
    "Workcenter",
    "WorkcenterTag",
    "Workorder",
    "WorkorderGroups",
    "TimeTrackingEntry",
    "TransitionResult",
    "BomLine",
    "Found",
    "NotFound",
    "Lookup",
]
