"""Pricing rules and quotes API router."""

from __future__ import annotations

import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hotelops.api.deps import get_calendar, get_db
from hotelops.engine import pricing
from hotelops.engine.holidays import HolidayCalendar
from hotelops.engine.pricing import PriceQuote
from hotelops.errors import NotFound
from hotelops.models.pricing_rule import PricingRule
from hotelops.models.unit import BookableUnit, UnitType
from hotelops.schemas.common import MessageResponse
from hotelops.schemas.pricing import (
    PricingRuleCreate,
    PricingRuleListResponse,
    PricingRuleResponse,
    PricingRuleUpdate,
    QuoteRequest,
    QuoteResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/pricing", tags=["pricing"])


async def _get_rule(db: AsyncSession, rule_id: uuid.UUID) -> PricingRule:
    rule = await db.get(PricingRule, rule_id)
    if rule is None:
        raise NotFound("PricingRule", rule_id)
    return rule


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


@router.post(
    "/rules",
    response_model=PricingRuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a pricing rule",
)
async def create_rule(
    body: PricingRuleCreate,
    db: AsyncSession = Depends(get_db),
) -> PricingRule:
    if await db.get(UnitType, body.unit_type_id) is None:
        raise NotFound("UnitType", body.unit_type_id)

    rule = PricingRule(**body.model_dump())
    db.add(rule)
    await db.flush()
    await db.refresh(rule)
    logger.info("Pricing rule %s for unit type %s effective %s", rule.id, rule.unit_type_id, rule.effective_date)
    return rule


@router.get(
    "/rules",
    response_model=PricingRuleListResponse,
    summary="List pricing rules",
)
async def list_rules(
    unit_type_id: uuid.UUID | None = Query(None, description="Filter by unit type"),
    effective_from: date | None = Query(None, description="Rules effective on or after this date"),
    effective_to: date | None = Query(None, description="Rules effective on or before this date"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(50, ge=1, le=200, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    filters = []
    if unit_type_id is not None:
        filters.append(PricingRule.unit_type_id == unit_type_id)
    if effective_from is not None:
        filters.append(PricingRule.effective_date >= effective_from)
    if effective_to is not None:
        filters.append(PricingRule.effective_date <= effective_to)

    total = (await db.execute(select(func.count()).select_from(PricingRule).where(*filters))).scalar_one()
    result = await db.execute(
        select(PricingRule)
        .where(*filters)
        .order_by(PricingRule.effective_date.desc(), PricingRule.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return {"items": list(result.scalars().all()), "total": total}


@router.get(
    "/rules/current/{unit_type_id}",
    response_model=PricingRuleResponse,
    summary="Rule in force for a unit type on a date",
)
async def get_current_rule(
    unit_type_id: uuid.UUID,
    on: date | None = Query(None, description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
) -> PricingRule:
    return await pricing.current_rule(db, unit_type_id, on or date.today())


@router.put(
    "/rules/{rule_id}",
    response_model=PricingRuleResponse,
    summary="Update a pricing rule",
)
async def update_rule(
    rule_id: uuid.UUID,
    body: PricingRuleUpdate,
    db: AsyncSession = Depends(get_db),
) -> PricingRule:
    """Change a rule. Existing bookings keep the prices they were quoted."""
    rule = await _get_rule(db, rule_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(rule, field, value)
    await db.flush()
    await db.refresh(rule)
    return rule


@router.delete(
    "/rules/{rule_id}",
    response_model=MessageResponse,
    summary="Delete a pricing rule",
)
async def delete_rule(
    rule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> dict:
    rule = await _get_rule(db, rule_id)
    await db.delete(rule)
    await db.flush()
    return {"message": "Pricing rule deleted"}


# ---------------------------------------------------------------------------
# Quote
# ---------------------------------------------------------------------------


@router.post(
    "/quote",
    response_model=QuoteResponse,
    summary="Price a stay without booking it",
)
async def quote(
    body: QuoteRequest,
    db: AsyncSession = Depends(get_db),
    calendar: HolidayCalendar = Depends(get_calendar),
) -> PriceQuote:
    """Per-night prices and total for ``[check_in, check_out)``.

    With ``unit_id`` the unit's own base price is the fallback when the rule
    carries none; with only ``unit_type_id`` the type's base price is.
    """
    if body.unit_id is not None:
        unit = await db.get(BookableUnit, body.unit_id)
        if unit is None:
            raise NotFound("Unit", body.unit_id)
        unit_type_id, base_price = unit.unit_type_id, unit.base_price
    elif body.unit_type_id is not None:
        unit_type = await db.get(UnitType, body.unit_type_id)
        if unit_type is None:
            raise NotFound("UnitType", body.unit_type_id)
        unit_type_id, base_price = unit_type.id, unit_type.base_price
    else:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Either unit_id or unit_type_id is required",
        )

    return await pricing.quote(
        db, unit_type_id, body.check_in, body.check_out, base_price=base_price, calendar=calendar
    )
