"""Payments API router: initiate, retry, refund, history."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hotelops.api.deps import get_db
from hotelops.engine import payments as payment_engine
from hotelops.engine.payments import InitiateResult
from hotelops.models.payment import Payment
from hotelops.schemas.payment import (
    PaymentCreate,
    PaymentInitiateResponse,
    PaymentListResponse,
    PaymentResponse,
    RefundCreate,
)

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


def _initiate_response(result: InitiateResult) -> PaymentInitiateResponse:
    response = PaymentInitiateResponse.model_validate(result.payment)
    response.client_secret = result.client_secret
    response.checkout_url = result.checkout_url
    return response


@router.post(
    "",
    response_model=PaymentInitiateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Initiate a payment for a booking",
)
async def initiate_payment(
    body: PaymentCreate,
    db: AsyncSession = Depends(get_db),
) -> PaymentInitiateResponse:
    """Cash settles immediately; other methods return a ``pending`` payment.

    A ``503 GatewayUnavailable`` carries the ``payment_id`` to retry with.
    """
    result = await payment_engine.initiate_payment(
        db,
        booking_id=body.booking_id,
        amount=body.amount,
        method=body.method,
        metadata=body.metadata,
        currency=body.currency,
    )
    return _initiate_response(result)


@router.post(
    "/{payment_id}/retry",
    response_model=PaymentInitiateResponse,
    summary="Retry opening the gateway transaction of a pending payment",
)
async def retry_payment(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> PaymentInitiateResponse:
    return _initiate_response(await payment_engine.retry_gateway(db, payment_id))


@router.post(
    "/{payment_id}/refund",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Refund part or all of a completed payment",
)
async def refund_payment(
    payment_id: uuid.UUID,
    body: RefundCreate,
    db: AsyncSession = Depends(get_db),
) -> Payment:
    return await payment_engine.refund_payment(db, payment_id, body.amount, body.reason)


@router.get(
    "",
    response_model=PaymentListResponse,
    summary="Payment history",
)
async def list_payments(
    booking_id: uuid.UUID | None = Query(None, description="Filter by booking"),
    status_filter: str | None = Query(None, alias="status", description="Filter by payment status"),
    method: str | None = Query(None, description="Filter by payment method"),
    created_from: date | None = Query(None, description="Payments created on or after this date"),
    created_to: date | None = Query(None, description="Payments created on or before this date"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(50, ge=1, le=200, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    filters = []
    if booking_id is not None:
        filters.append(Payment.booking_id == booking_id)
    if status_filter is not None:
        filters.append(Payment.status == status_filter)
    if method is not None:
        filters.append(Payment.method == method)
    if created_from is not None:
        filters.append(Payment.created_at >= datetime.combine(created_from, time.min))
    if created_to is not None:
        filters.append(Payment.created_at < datetime.combine(created_to + timedelta(days=1), time.min))

    total = (await db.execute(select(func.count()).select_from(Payment).where(*filters))).scalar_one()
    result = await db.execute(
        select(Payment).where(*filters).order_by(Payment.created_at.desc()).offset(skip).limit(limit)
    )
    return {"items": list(result.scalars().all()), "total": total}


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Get a payment",
)
async def get_payment(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Payment:
    return await payment_engine.get_payment(db, payment_id)
