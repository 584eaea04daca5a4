"""Pricing rule model: versioned by effective date per unit type."""

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from hotelops.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class PricingRule(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Multipliers applied to a unit type's nightly price from ``effective_date`` onwards."""

    __tablename__ = "pricing_rules"

    unit_type_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("unit_types.id", ondelete="CASCADE"),
        nullable=False,
    )
    base_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), default=None)  # None = unit's own price
    seasonal_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 3), default=Decimal("1.00"))
    weekend_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 3), default=Decimal("1.20"))
    holiday_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 3), default=Decimal("1.50"))
    demand_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 3), default=Decimal("1.00"))
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (Index("ix_pricing_rules_type_effective", "unit_type_id", "effective_date"),)

    @property
    def final_price(self) -> Decimal | None:
        """Base price with every multiplier applied (the original system's stored ``final_price``)."""
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

    def __repr__(self) -> str:
        return f"<PricingRule(id={self.id}, unit_type_id={self.unit_type_id}, effective={self.effective_date})>"
