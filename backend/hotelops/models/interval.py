"""Interval store rows: one per booking, indexed by unit and start date."""

import uuid
from datetime import date

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from hotelops.database import Base, UUIDPrimaryKeyMixin


class UnitInterval(UUIDPrimaryKeyMixin, Base):
    """The ``[start, end)`` range a booking holds against a unit.

    ``status`` mirrors the owning booking's status. Rows for checked-out
    bookings are kept for history; cancelled bookings have their row removed.
    """

    __tablename__ = "unit_intervals"

    unit_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookable_units.id", ondelete="CASCADE"),
        nullable=False,
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    start: Mapped[date] = mapped_column(Date, nullable=False)
    end: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (Index("ix_unit_intervals_unit_start", "unit_id", "start"),)

    def __repr__(self) -> str:
        return f"<UnitInterval(unit_id={self.unit_id}, [{self.start}, {self.end}), booking_id={self.booking_id})>"
