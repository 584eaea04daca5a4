"""Pydantic v2 request/response schemas for booking endpoints."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from hotelops.schemas.guest import GuestResponse
from hotelops.schemas.unit import UnitResponse

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    """Schema for creating a new booking.

    The price is never supplied by the caller; it is computed from the
    pricing rule in force on ``check_in``.
    """

    guest_id: uuid.UUID
    unit_id: uuid.UUID
    check_in: date
    check_out: date
    adults: int = Field(1, ge=1)
    children: int = Field(0, ge=0)
    special_requests: str | None = None
    created_by: str | None = Field(None, max_length=255)


class BookingDatesUpdate(BaseModel):
    check_in: date
    check_out: date


class BookingTransition(BaseModel):
    status: str = Field(..., pattern="^(pending|confirmed|checked_in|checked_out|cancelled)$")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class NightlyPriceResponse(BaseModel):
    date: date
    price: Decimal


class BookingResponse(BaseModel):
    """Standard booking response."""

    id: uuid.UUID
    reference: str
    guest_id: uuid.UUID
    unit_id: uuid.UUID
    check_in: date
    check_out: date
    nights: int
    adults: int
    children: int
    total_amount: Decimal
    nightly_prices: list[NightlyPriceResponse] | None = None
    status: str
    special_requests: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    """Derived paid state: completed payments minus refunds."""

    booking_id: uuid.UUID
    total_amount: Decimal
    paid: Decimal
    outstanding: Decimal
    is_paid: bool

    model_config = ConfigDict(from_attributes=True)


class BookingDetailResponse(BookingResponse):
    """Booking with nested guest and unit, plus its balance."""

    guest: GuestResponse | None = None
    unit: UnitResponse | None = None
    balance: BalanceResponse | None = None


class BookingListResponse(BaseModel):
    """Paginated list of bookings."""

    items: list[BookingResponse]
    total: int
