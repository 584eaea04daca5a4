"""Guest directory model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from hotelops.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Guest(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A person who books stays."""

    __tablename__ = "guests"

    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), index=True, default=None)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    nationality: Mapped[str | None] = mapped_column(String(100), default=None)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Guest(id={self.id}, name={self.full_name!r})>"
