"""Guest directory API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hotelops.api.deps import get_db
from hotelops.errors import NotFound
from hotelops.models.guest import Guest
from hotelops.schemas.guest import GuestCreate, GuestListResponse, GuestResponse

router = APIRouter(prefix="/api/v1/guests", tags=["guests"])


@router.post(
    "",
    response_model=GuestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a guest",
)
async def create_guest(
    body: GuestCreate,
    db: AsyncSession = Depends(get_db),
) -> Guest:
    guest = Guest(**body.model_dump())
    db.add(guest)
    await db.flush()
    await db.refresh(guest)
    return guest


@router.get(
    "",
    response_model=GuestListResponse,
    summary="Search guests",
)
async def list_guests(
    search: str | None = Query(None, description="Match first name, last name, email or phone"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                Guest.first_name.ilike(pattern),
                Guest.last_name.ilike(pattern),
                Guest.email.ilike(pattern),
                Guest.phone.ilike(pattern),
            )
        )

    total = (await db.execute(select(func.count()).select_from(Guest).where(*filters))).scalar_one()
    result = await db.execute(
        select(Guest).where(*filters).order_by(Guest.last_name, Guest.first_name).offset(skip).limit(limit)
    )
    return {"items": list(result.scalars().all()), "total": total}


@router.get(
    "/{guest_id}",
    response_model=GuestResponse,
    summary="Get a guest",
)
async def get_guest(
    guest_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Guest:
    guest = await db.get(Guest, guest_id)
    if guest is None:
        raise NotFound("Guest", guest_id)
    return guest
