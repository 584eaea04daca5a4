"""Payment model: one collection attempt (or refund) against a booking."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hotelops.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class PaymentStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

    ALL = (PENDING, COMPLETED, FAILED, REFUNDED)


class PaymentMethod:
    CARD = "card"
    DIGITAL_WALLET = "digital_wallet"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"

    ALL = (CARD, DIGITAL_WALLET, MOBILE_MONEY, BANK_TRANSFER, CASH)
    ASYNCHRONOUS = frozenset({CARD, DIGITAL_WALLET, MOBILE_MONEY, BANK_TRANSFER})


class Payment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A payment or refund row. Refunds carry a negative amount and point at their source."""

    __tablename__ = "payments"

    # Back-reference only; payments never drive booking deletion.
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    method: Mapped[str] = mapped_column(String(30), nullable=False)  # card, digital_wallet, mobile_money, ...
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )  # pending, completed, failed, refunded

    # Engine-generated reference, and the gateway's identifier once it assigns one.
    transaction_ref: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    external_ref: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)

    refund_of_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("payments.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    gateway_metadata: Mapped[dict | None] = mapped_column(JSON, default=None)
    settled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (Index("ix_payments_booking_status", "booking_id", "status"),)

    @property
    def is_refund(self) -> bool:
        return self.refund_of_id is not None

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, booking_id={self.booking_id}, amount={self.amount}, "
            f"method={self.method}, status={self.status})>"
        )
