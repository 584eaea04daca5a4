"""Bookings API router.

Creation, rescheduling and every status change go through the booking
engine, which serialises them per unit. The router only translates HTTP.
"""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hotelops.api.deps import get_calendar, get_db
from hotelops.engine import bookings as booking_engine
from hotelops.engine.holidays import HolidayCalendar
from hotelops.engine.payments import Balance, booking_balance
from hotelops.models.booking import Booking
from hotelops.schemas.booking import (
    BalanceResponse,
    BookingCreate,
    BookingDatesUpdate,
    BookingDetailResponse,
    BookingListResponse,
    BookingResponse,
    BookingTransition,
)

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new booking",
)
async def create_booking(
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
    calendar: HolidayCalendar = Depends(get_calendar),
) -> Booking:
    """Create a ``pending`` booking priced by the rule in force on check-in.

    Fails with ``UnitUnavailable`` (409) when any claiming booking overlaps
    the requested nights.
    """
    return await booking_engine.create_booking(db, **body.model_dump(), calendar=calendar)


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List bookings",
)
async def list_bookings(
    unit_id: uuid.UUID | None = Query(None, description="Filter by unit"),
    guest_id: uuid.UUID | None = Query(None, description="Filter by guest"),
    status_filter: str | None = Query(None, alias="status", description="Filter by booking status"),
    check_in_from: date | None = Query(None, description="Bookings with check_in >= this date"),
    check_in_to: date | None = Query(None, description="Bookings with check_in <= this date"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    filters = []
    if unit_id is not None:
        filters.append(Booking.unit_id == unit_id)
    if guest_id is not None:
        filters.append(Booking.guest_id == guest_id)
    if status_filter is not None:
        filters.append(Booking.status == status_filter)
    if check_in_from is not None:
        filters.append(Booking.check_in >= check_in_from)
    if check_in_to is not None:
        filters.append(Booking.check_in <= check_in_to)

    total = (await db.execute(select(func.count()).select_from(Booking).where(*filters))).scalar_one()
    result = await db.execute(
        select(Booking).where(*filters).order_by(Booking.check_in, Booking.created_at).offset(skip).limit(limit)
    )
    return {"items": list(result.scalars().all()), "total": total}


@router.get(
    "/{booking_id}",
    response_model=BookingDetailResponse,
    summary="Get booking detail",
)
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> BookingDetailResponse:
    """Booking with its guest, unit and current balance."""
    booking = await booking_engine.get_booking(db, booking_id)
    detail = BookingDetailResponse.model_validate(booking)
    detail.balance = BalanceResponse.model_validate(await booking_balance(db, booking.id))
    return detail


@router.patch(
    "/{booking_id}/dates",
    response_model=BookingResponse,
    summary="Move a booking to new dates",
)
async def update_dates(
    booking_id: uuid.UUID,
    body: BookingDatesUpdate,
    db: AsyncSession = Depends(get_db),
    calendar: HolidayCalendar = Depends(get_calendar),
) -> Booking:
    return await booking_engine.update_booking_dates(
        db, booking_id, body.check_in, body.check_out, calendar=calendar
    )


@router.post(
    "/{booking_id}/transitions",
    response_model=BookingResponse,
    summary="Apply a status transition",
)
async def transition(
    booking_id: uuid.UUID,
    body: BookingTransition,
    db: AsyncSession = Depends(get_db),
) -> Booking:
    return await booking_engine.transition_booking(db, booking_id, body.status)


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking and release its dates",
)
async def cancel(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Booking:
    return await booking_engine.cancel_booking(db, booking_id)


@router.get(
    "/{booking_id}/balance",
    response_model=BalanceResponse,
    summary="Paid and outstanding amounts",
)
async def get_balance(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Balance:
    return await booking_balance(db, booking_id)
