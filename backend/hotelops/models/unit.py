"""Bookable inventory: unit types and the rooms/cabins that belong to them."""

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hotelops.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class UnitStatus:
    """Coarse operational flag. Availability comes from the interval store, not from here."""

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    OUT_OF_ORDER = "out_of_order"

    ALL = (AVAILABLE, OCCUPIED, MAINTENANCE, OUT_OF_ORDER)


class UnitType(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A category of unit (e.g. deluxe double, family cabin) that pricing rules attach to."""

    __tablename__ = "unit_types"

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    units: Mapped[list["BookableUnit"]] = relationship(back_populates="unit_type", lazy="selectin")

    def __repr__(self) -> str:
        return f"<UnitType(id={self.id}, name={self.name!r})>"


class BookableUnit(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A physical room or cabin."""

    __tablename__ = "bookable_units"

    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)  # room number / cabin name
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default="room")  # room, cabin
    unit_type_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("unit_types.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    floor: Mapped[int | None] = mapped_column(Integer, default=None)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50),
        default=UnitStatus.AVAILABLE,
    )  # available, occupied, maintenance, out_of_order

    unit_type: Mapped[UnitType] = relationship(back_populates="units", lazy="selectin")

    def __repr__(self) -> str:
        return f"<BookableUnit(id={self.id}, code={self.code!r}, status={self.status})>"
