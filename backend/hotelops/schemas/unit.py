"""Pydantic v2 request/response schemas for unit types and bookable units."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class UnitTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: str | None = None
    base_price: Decimal = Field(..., gt=0, decimal_places=2)
    capacity: int = Field(2, ge=1)


class UnitCreate(BaseModel):
    """Schema for registering a room or cabin."""

    code: str = Field(..., min_length=1, max_length=20)
    kind: str = Field("room", pattern="^(room|cabin)$")
    unit_type_id: uuid.UUID
    floor: int | None = None
    capacity: int | None = Field(None, ge=1, description="Defaults to the unit type's capacity")
    base_price: Decimal | None = Field(None, gt=0, decimal_places=2, description="Defaults to the unit type's price")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class UnitTypeResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    base_price: Decimal
    capacity: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnitResponse(BaseModel):
    id: uuid.UUID
    code: str
    kind: str
    unit_type_id: uuid.UUID
    floor: int | None = None
    capacity: int
    base_price: Decimal
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnitListResponse(BaseModel):
    items: list[UnitResponse]
    total: int


class AvailabilityResponse(BaseModel):
    """Whether a unit is free for ``[check_in, check_out)`` at the time of the query."""

    unit_id: uuid.UUID
    check_in: date
    check_out: date
    available: bool
    conflicting_booking_id: uuid.UUID | None = None
