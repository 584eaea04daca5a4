"""Pydantic v2 request/response schemas for pricing rules and quotes."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PricingRuleCreate(BaseModel):
    """A versioned rule; it governs every stay checking in on or after ``effective_date``."""

    unit_type_id: uuid.UUID
    base_price: Decimal | None = Field(None, gt=0, description="Omit to use each unit's own base price")
    seasonal_multiplier: Decimal = Field(Decimal("1.00"), gt=0)
    weekend_multiplier: Decimal = Field(Decimal("1.20"), gt=0)
    holiday_multiplier: Decimal = Field(Decimal("1.50"), gt=0)
    demand_multiplier: Decimal = Field(Decimal("1.00"), gt=0)
    effective_date: date


class PricingRuleUpdate(BaseModel):
    """Schema for partially updating a rule. All fields optional."""

    base_price: Decimal | None = Field(None, gt=0)
    seasonal_multiplier: Decimal | None = Field(None, gt=0)
    weekend_multiplier: Decimal | None = Field(None, gt=0)
    holiday_multiplier: Decimal | None = Field(None, gt=0)
    demand_multiplier: Decimal | None = Field(None, gt=0)
    effective_date: date | None = None


class QuoteRequest(BaseModel):
    """Quote either a unit (its own base price applies) or a bare unit type."""

    unit_id: uuid.UUID | None = None
    unit_type_id: uuid.UUID | None = None
    check_in: date
    check_out: date


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PricingRuleResponse(BaseModel):
    id: uuid.UUID
    unit_type_id: uuid.UUID
    base_price: Decimal | None = None
    seasonal_multiplier: Decimal
    weekend_multiplier: Decimal
    holiday_multiplier: Decimal
    demand_multiplier: Decimal
    effective_date: date
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def final_price(self) -> Decimal | None:
        """Base price with every multiplier applied."""
        if self.base_price is None:
            return None
        price = (
            self.base_price
            * self.seasonal_multiplier
            * self.weekend_multiplier
            * self.holiday_multiplier
            * self.demand_multiplier
        )
        return price.quantize(Decimal("0.01"))


class PricingRuleListResponse(BaseModel):
    items: list[PricingRuleResponse]
    total: int


class NightQuote(BaseModel):
    date: date
    price: Decimal
    weekend: bool
    holiday: bool

    model_config = ConfigDict(from_attributes=True)


class QuoteResponse(BaseModel):
    unit_type_id: uuid.UUID
    check_in: date
    check_out: date
    nights: int
    nightly: list[NightQuote]
    total: Decimal
    rule_id: uuid.UUID | None = None

    model_config = ConfigDict(from_attributes=True)
