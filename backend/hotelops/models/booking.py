"""Booking model: occupancy of one unit for a half-open date range."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import JSON, CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hotelops.database import Base, UUIDPrimaryKeyMixin


class BookingStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"

    ALL = (PENDING, CONFIRMED, CHECKED_IN, CHECKED_OUT, CANCELLED)

    # Statuses whose interval occupies the unit and blocks other bookings.
    CLAIMING = frozenset({PENDING, CONFIRMED, CHECKED_IN})


class Booking(UUIDPrimaryKeyMixin, Base):
    """A reservation linking a guest to a unit for specific dates (check_out exclusive)."""

    __tablename__ = "bookings"

    reference: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    guest_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("guests.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    unit_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookable_units.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    adults: Mapped[int] = mapped_column(Integer, default=1)
    children: Mapped[int] = mapped_column(Integer, default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    nightly_prices: Mapped[list | None] = mapped_column(JSON, default=None)  # [{"date": ..., "price": ...}]
    status: Mapped[str] = mapped_column(
        String(50),
        default=BookingStatus.PENDING,
        index=True,
    )  # pending, confirmed, checked_in, checked_out, cancelled
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    guest: Mapped["Guest"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    unit: Mapped["BookableUnit"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        CheckConstraint("check_in < check_out", name="ck_bookings_dates"),
        Index("ix_bookings_check_in", "check_in"),
    )

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, reference={self.reference}, unit_id={self.unit_id}, status={self.status})>"
