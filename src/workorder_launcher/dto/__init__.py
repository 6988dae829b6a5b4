"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import (
    CacheInvalidateRequest,
    StartWorkorderRequest,
    UpdateBomLineRequest,
    UpdateSpecsRequest,
)
from .responses import (
    BomLineItem,
    CacheInvalidateResponse,
    CacheStatsResponse,
    CacheStatusResponse,
    ConnectionTestResponse,
    HealthCheckResponse,
    NamespaceStatus,
    RecordRefItem,
    TimeTrackingItem,
    TransitionResponse,
    UpdateResponse,
    WorkcenterItem,
    WorkcenterTagItem,
    WorkorderGroupsResponse,
    WorkorderItem,
)

__all__ = [
    "StartWorkorderRequest",
    "UpdateSpecsRequest",
    "UpdateBomLineRequest",
    "CacheInvalidateRequest",
    "RecordRefItem",
    "WorkcenterItem",
    "WorkcenterTagItem",
    "WorkorderItem",
    "WorkorderGroupsResponse",
    "TimeTrackingItem",
    "BomLineItem",
    "TransitionResponse",
    "UpdateResponse",
    "ConnectionTestResponse",
    "CacheStatsResponse",
    "NamespaceStatus",
    "CacheStatusResponse",
    "CacheInvalidateResponse",
    "HealthCheckResponse",
]
