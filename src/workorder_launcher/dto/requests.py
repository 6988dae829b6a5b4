"""Request DTOs for API endpoints."""

from pydantic import BaseModel, Field


class StartWorkorderRequest(BaseModel):
    """Request DTO for starting a work order.

    The handler will convert this to internal calls to the service layer.
    """

    target_workcenter_id: int | None = Field(
        None,
        description="Work center the operator is at; the work order is moved there first if different",
        gt=0,
    )


class UpdateSpecsRequest(BaseModel):
    """Request DTO for replacing the technical specifications of a work order."""

    note: str = Field(..., description="Instructions shown to the operator (HTML allowed)")


class UpdateBomLineRequest(BaseModel):
    """Request DTO for changing the required quantity of a component."""

    quantity: float = Field(..., description="New required quantity", ge=0.0)


class CacheInvalidateRequest(BaseModel):
    """Request DTO for invalidating cache entries."""

    key: str | None = Field(None, description="Invalidate one exact key")
    prefix: str | None = Field(
        None,
        description="Invalidate every key with this prefix (if key and prefix are null, clears all)",
    )
