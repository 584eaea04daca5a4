"""Pydantic v2 request/response schemas for payment endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PaymentCreate(BaseModel):
    """Start collecting money for a booking.

    Cash payments must carry ``metadata.received_amount``.
    """

    booking_id: uuid.UUID
    amount: Decimal = Field(..., gt=0)
    method: str = Field(..., pattern="^(card|digital_wallet|mobile_money|bank_transfer|cash)$")
    currency: str | None = Field(None, min_length=3, max_length=3)
    metadata: dict[str, Any] = Field(default_factory=dict)


class RefundCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    reason: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PaymentResponse(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    amount: Decimal
    currency: str
    method: str
    status: str
    transaction_ref: str
    external_ref: str | None = None
    refund_of_id: uuid.UUID | None = None
    reason: str | None = None
    gateway_metadata: dict[str, Any] | None = None
    settled_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentInitiateResponse(PaymentResponse):
    """Payment plus the client-side handles a gateway returned (never stored)."""

    client_secret: str | None = None
    checkout_url: str | None = None


class PaymentListResponse(BaseModel):
    items: list[PaymentResponse]
    total: int


class WebhookResponse(BaseModel):
    status: str  # processed, duplicate, ignored
