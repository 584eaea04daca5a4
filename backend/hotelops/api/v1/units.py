"""Unit inventory API router.

Inventory is owned elsewhere; these endpoints register unit types and units
and answer availability questions so the engine can be driven end to end.
"""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hotelops.api.deps import get_db
from hotelops.engine.availability import find_conflict
from hotelops.engine.intervals import IntervalStore
from hotelops.errors import NotFound
from hotelops.models.unit import BookableUnit, UnitType
from hotelops.schemas.unit import (
    AvailabilityResponse,
    UnitCreate,
    UnitListResponse,
    UnitResponse,
    UnitTypeCreate,
    UnitTypeResponse,
)

router = APIRouter(prefix="/api/v1/units", tags=["units"])


# ---------------------------------------------------------------------------
# Unit types
# ---------------------------------------------------------------------------


@router.post(
    "/types",
    response_model=UnitTypeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a unit type",
)
async def create_unit_type(
    body: UnitTypeCreate,
    db: AsyncSession = Depends(get_db),
) -> UnitType:
    unit_type = UnitType(**body.model_dump())
    db.add(unit_type)
    await db.flush()
    await db.refresh(unit_type)
    return unit_type


@router.get(
    "/types",
    response_model=list[UnitTypeResponse],
    summary="List unit types",
)
async def list_unit_types(db: AsyncSession = Depends(get_db)) -> list[UnitType]:
    result = await db.execute(select(UnitType).order_by(UnitType.name))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=UnitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a room or cabin",
)
async def create_unit(
    body: UnitCreate,
    db: AsyncSession = Depends(get_db),
) -> BookableUnit:
    """Create a unit, inheriting capacity and base price from its type when omitted."""
    unit_type = await db.get(UnitType, body.unit_type_id)
    if unit_type is None:
        raise NotFound("UnitType", body.unit_type_id)

    data = body.model_dump()
    data["capacity"] = data["capacity"] or unit_type.capacity
    data["base_price"] = data["base_price"] or unit_type.base_price
    unit = BookableUnit(**data)
    db.add(unit)
    await db.flush()
    await db.refresh(unit)
    return unit


@router.get(
    "",
    response_model=UnitListResponse,
    summary="List units",
)
async def list_units(
    unit_type_id: uuid.UUID | None = Query(None, description="Filter by unit type"),
    status_filter: str | None = Query(None, alias="status", description="Filter by operational status"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(50, ge=1, le=200, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    base_query = select(BookableUnit)
    count_query = select(func.count()).select_from(BookableUnit)
    if unit_type_id is not None:
        base_query = base_query.where(BookableUnit.unit_type_id == unit_type_id)
        count_query = count_query.where(BookableUnit.unit_type_id == unit_type_id)
    if status_filter is not None:
        base_query = base_query.where(BookableUnit.status == status_filter)
        count_query = count_query.where(BookableUnit.status == status_filter)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(base_query.order_by(BookableUnit.code).offset(skip).limit(limit))
    return {"items": list(result.scalars().all()), "total": total}


@router.get(
    "/{unit_id}",
    response_model=UnitResponse,
    summary="Get a unit",
)
async def get_unit(
    unit_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> BookableUnit:
    unit = await db.get(BookableUnit, unit_id)
    if unit is None:
        raise NotFound("Unit", unit_id)
    return unit


@router.get(
    "/{unit_id}/availability",
    response_model=AvailabilityResponse,
    summary="Check whether a unit is free for a date range",
)
async def check_availability(
    unit_id: uuid.UUID,
    check_in: date = Query(..., description="First night"),
    check_out: date = Query(..., description="Departure day (exclusive)"),
    exclude_booking_id: uuid.UUID | None = Query(None, description="Ignore this booking's own claim"),
    db: AsyncSession = Depends(get_db),
) -> AvailabilityResponse:
    """Answer availability for ``[check_in, check_out)``.

    Advisory only: the answer may be stale by the time a booking is attempted.
    """
    if await db.get(BookableUnit, unit_id) is None:
        raise NotFound("Unit", unit_id)

    conflict = await find_conflict(
        IntervalStore(db),
        unit_id,
        check_in,
        check_out,
        excluding_booking_id=exclude_booking_id,
    )
    return AvailabilityResponse(
        unit_id=unit_id,
        check_in=check_in,
        check_out=check_out,
        available=conflict is None,
        conflicting_booking_id=conflict,
    )
