"""Response DTOs for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class RecordRefItem(BaseModel):
    """Reference to a related ERP record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class WorkcenterItem(BaseModel):
    """A work center card."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str | None = None
    color: int = 0
    working_state: str | None = None
    tag_ids: list[int] = Field(default_factory=list)


class WorkcenterTagItem(BaseModel):
    """A work center tag."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: int = 0


class WorkorderItem(BaseModel):
    """A work order card."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    display_name: str
    state: str = Field(..., description="ERP state: pending, waiting, ready, progress, done, cancel")
    production: RecordRefItem | None = None
    product: RecordRefItem | None = None
    workcenter: RecordRefItem | None = None
    operation: RecordRefItem | None = None
    qty_producing: float = 0.0
    qty_produced: float = 0.0
    qty_remaining: float = 0.0
    duration_expected: float = Field(0.0, description="Expected duration in minutes")
    duration: float = Field(0.0, description="Time spent so far in minutes")
    date_start: str | None = None
    date_finished: str | None = None


class WorkorderGroupsResponse(BaseModel):
    """Work orders of one work center, split by state."""

    model_config = ConfigDict(from_attributes=True)

    ready: list[WorkorderItem] = Field(default_factory=list)
    active: list[WorkorderItem] = Field(default_factory=list)


class TimeTrackingItem(BaseModel):
    """A time log line of a work order."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    date_start: str | None = None
    date_end: str | None = None
    duration: float = Field(0.0, description="Duration in minutes")
    user: RecordRefItem | None = None
    loss: RecordRefItem | None = None


class BomLineItem(BaseModel):
    """A component of the work order's production order."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    product: RecordRefItem | None = None
    quantity_required: float
    quantity_consumed: float
    uom: RecordRefItem | None = None


class TransitionResponse(BaseModel):
    """Response DTO for start/pause/complete."""

    success: bool = Field(..., description="Whether the operation succeeded")
    workorder_id: int
    action: str
    previous_state: str | None = None
    new_state: str | None = None


class UpdateResponse(BaseModel):
    """Response DTO for edits of specifications."""

    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable status message")


class ConnectionTestResponse(BaseModel):
    """Response DTO for the ERP connection probe."""

    success: bool
    uid: int
    message: str


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    entries: int = Field(..., description="Number of stored entries", ge=0)
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    hit_rate: int = Field(..., description="Hits as a percentage of lookups", ge=0, le=100)
    invalidations: int = Field(..., ge=0)


class NamespaceStatus(BaseModel):
    """Cache state of one namespace."""

    has_data: bool
    entries: int = Field(..., ge=0)
    age: int | None = Field(None, description="Age in seconds of the freshest entry")
    ttl: int = Field(..., description="Namespace TTL in seconds (0 = not cached)", ge=0)
    valid: bool


class CacheStatusResponse(BaseModel):
    """Response DTO for the cache status probe."""

    namespaces: dict[str, NamespaceStatus]
    stats: CacheStatsResponse


class CacheInvalidateResponse(BaseModel):
    """Response DTO for cache invalidation."""

    success: bool
    deleted_count: int = Field(..., ge=0)
    message: str


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    erp_configured: bool
    authenticated: bool
    failure_count: int = Field(0, ge=0)
    last_error: str | None = None
