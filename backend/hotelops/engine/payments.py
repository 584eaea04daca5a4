"""Payment reconciliation engine.

Payments move ``pending -> completed`` or ``pending -> failed`` exactly once.
Cash settles immediately; card, wallet, mobile money and bank transfer open
an external transaction and settle when the gateway's verified callback is
reconciled. Refunds are new negative rows, never status flips.

Settlement is a compare-and-swap on the payment row (``WHERE status =
'pending'``) under a per-reference lock, so duplicate or concurrent callbacks
apply once. A successful settlement confirms the booking inside the unit lock
in the same transaction.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hotelops.config import settings
from hotelops.engine.bookings import apply_transition, get_booking, lock_unit_row
from hotelops.engine.locks import payment_locks, unit_locks
from hotelops.engine.transactions import committing
from hotelops.errors import (
    BookingNotPayable,
    GatewayUnavailable,
    InsufficientCash,
    InvalidPaymentAmount,
    InvalidTransition,
    NotFound,
    ReconciliationConflict,
    RefundExceedsPayment,
    UnknownTransaction,
    UnsupportedPaymentMethod,
)
from hotelops.gateways import METHOD_GATEWAYS, CallbackEvent, GatewayAdapter, Outcome, gateway_for_method
from hotelops.models.booking import Booking, BookingStatus
from hotelops.models.payment import Payment, PaymentMethod, PaymentStatus

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

OUTCOME_STATUS = {
    Outcome.SUCCEEDED: PaymentStatus.COMPLETED,
    Outcome.FAILED: PaymentStatus.FAILED,
}

# Booking statuses that can no longer take money.
UNPAYABLE = frozenset({BookingStatus.CANCELLED, BookingStatus.CHECKED_OUT})

# Raw card data is passed to the gateway at most, never stored.
_UNSTORED_METADATA = frozenset({"card_number", "cvv", "expiry_month", "expiry_year"})


@dataclass(frozen=True)
class InitiateResult:
    payment: Payment
    client_secret: str | None = None
    checkout_url: str | None = None


@dataclass(frozen=True)
class ReconcileResult:
    payment: Payment
    applied: bool  # False when the callback repeated an already-applied outcome
    booking_status: str | None = None


@dataclass(frozen=True)
class Balance:
    booking_id: uuid.UUID
    total_amount: Decimal
    paid: Decimal
    outstanding: Decimal
    is_paid: bool


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    # Naive UTC, matching the database's server-side timestamps.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _money(value: Any) -> Decimal:
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as e:
        raise InvalidPaymentAmount(value) from e


def _new_reference(prefix: str) -> str:
    return f"{prefix}_{_now():%Y%m%d%H%M%S}_{secrets.token_hex(5).upper()}"


def _storable(metadata: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in metadata.items() if key not in _UNSTORED_METADATA}


async def get_payment(db: AsyncSession, payment_id: uuid.UUID, *, refresh: bool = False) -> Payment:
    query = select(Payment).where(Payment.id == payment_id)
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    payment = result.scalar_one_or_none()
    if payment is None:
        raise NotFound("Payment", payment_id)
    return payment


async def find_payment_by_reference(db: AsyncSession, reference: str) -> Payment | None:
    """Match a gateway reference against the gateway's id or our own transaction reference."""
    result = await db.execute(
        select(Payment)
        .where(or_(Payment.external_ref == reference, Payment.transaction_ref == reference))
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


# ---------------------------------------------------------------------------
# Initiate
# ---------------------------------------------------------------------------


async def initiate_payment(
    db: AsyncSession,
    *,
    booking_id: uuid.UUID,
    amount: Any,
    method: str,
    metadata: Mapping[str, Any] | None = None,
    currency: str | None = None,
) -> InitiateResult:
    """Start collecting ``amount`` for a booking.

    Cash settles synchronously. Other methods persist a ``pending`` row, then
    call the gateway outside any lock; if the gateway cannot be reached the
    row stays ``pending`` and ``GatewayUnavailable`` tells the caller to retry.
    """
    amount = _money(amount)
    if amount <= 0:
        raise InvalidPaymentAmount(amount, booking_id=booking_id)
    if method not in PaymentMethod.ALL:
        raise UnsupportedPaymentMethod(method)

    metadata = dict(metadata or {})
    currency = (currency or settings.currency).upper()
    booking = await get_booking(db, booking_id)
    if booking.status in UNPAYABLE:
        raise BookingNotPayable(booking.id, booking.status)

    if method == PaymentMethod.CASH:
        return await _settle_cash(db, booking, amount, currency, metadata)

    gateway = gateway_for_method(method)
    payment = Payment(
        booking_id=booking.id,
        amount=amount,
        currency=currency,
        method=method,
        status=PaymentStatus.PENDING,
        transaction_ref=_new_reference("TXN"),
        gateway_metadata={"gateway": gateway.name, **_storable(metadata)},
    )
    db.add(payment)
    await db.commit()
    logger.info(
        "Initiated %s payment %s for booking %s: %s %s",
        method,
        payment.transaction_ref,
        booking.reference,
        amount,
        currency,
    )
    return await _begin(db, payment, gateway, metadata)


async def _begin(
    db: AsyncSession,
    payment: Payment,
    gateway: GatewayAdapter,
    metadata: Mapping[str, Any],
) -> InitiateResult:
    try:
        result = await gateway.begin(payment.amount, payment.currency, payment.transaction_ref, metadata)
    except GatewayUnavailable as e:
        e.details["payment_id"] = payment.id
        logger.warning(
            "Gateway %s unavailable for payment %s (left pending): %s",
            gateway.name,
            payment.transaction_ref,
            e.message,
        )
        raise

    payment.external_ref = result.external_ref
    payment.gateway_metadata = {**(payment.gateway_metadata or {}), **result.metadata}
    await db.commit()
    logger.info("Payment %s opened at %s as %s", payment.transaction_ref, gateway.name, result.external_ref)
    return InitiateResult(payment, client_secret=result.client_secret, checkout_url=result.checkout_url)


async def retry_gateway(
    db: AsyncSession,
    payment_id: uuid.UUID,
    metadata: Mapping[str, Any] | None = None,
) -> InitiateResult:
    """Re-open the external transaction for a pending payment the gateway never acknowledged."""
    payment = await get_payment(db, payment_id)
    if payment.method not in PaymentMethod.ASYNCHRONOUS or payment.is_refund:
        raise UnsupportedPaymentMethod(payment.method)
    if payment.status != PaymentStatus.PENDING:
        raise InvalidTransition(payment.id, payment.status, "retry", entity="payment")
    if payment.external_ref is not None:
        return InitiateResult(payment)

    gateway = gateway_for_method(payment.method)
    return await _begin(db, payment, gateway, {**(payment.gateway_metadata or {}), **(metadata or {})})


async def _settle_cash(
    db: AsyncSession,
    booking: Booking,
    amount: Decimal,
    currency: str,
    metadata: Mapping[str, Any],
) -> InitiateResult:
    received = metadata.get("received_amount")
    received_amount = _money(received) if received is not None else None
    if received_amount is None or received_amount < amount:
        raise InsufficientCash(booking.id, amount, received_amount)

    async with unit_locks.hold(booking.unit_id):
        async with committing(db):
            await lock_unit_row(db, booking.unit_id)
            booking = await get_booking(db, booking.id, refresh=True)
            if booking.status in UNPAYABLE:
                raise BookingNotPayable(booking.id, booking.status)

            payment = Payment(
                booking_id=booking.id,
                amount=amount,
                currency=currency,
                method=PaymentMethod.CASH,
                status=PaymentStatus.COMPLETED,
                transaction_ref=_new_reference("CASH"),
                gateway_metadata={
                    "received_amount": str(received_amount),
                    "change_given": str(received_amount - amount),
                },
                settled_at=_now(),
            )
            db.add(payment)
            await db.flush()
            if booking.status == BookingStatus.PENDING:
                await apply_transition(db, booking, BookingStatus.CONFIRMED, source=f"payment {payment.transaction_ref}")

    logger.info("Cash payment %s completed for booking %s: %s", payment.transaction_ref, booking.reference, amount)
    return InitiateResult(payment)


# ---------------------------------------------------------------------------
# Reconcile
# ---------------------------------------------------------------------------


def _owning_gateway(payment: Payment) -> str | None:
    """The gateway whose callbacks may settle ``payment``. None for cash and refunds."""
    if payment.is_refund:
        return None
    return (payment.gateway_metadata or {}).get("gateway") or METHOD_GATEWAYS.get(payment.method)


def _is_repeat(payment: Payment, event: CallbackEvent) -> bool:
    """True for a callback repeating the applied outcome; raise on a conflicting one."""
    target = OUTCOME_STATUS[event.outcome]
    if payment.status == target:
        return True
    if payment.status != PaymentStatus.PENDING:
        logger.warning(
            "Reconciliation conflict on %s: payment is %s, %s callback %s rejected",
            event.external_ref,
            payment.status,
            event.gateway,
            event.outcome,
        )
        raise ReconciliationConflict(event.external_ref, payment.status, event.outcome)
    return False


async def _compare_and_swap(db: AsyncSession, payment: Payment, event: CallbackEvent) -> bool:
    """Move the payment out of ``pending``. False if another worker settled it first."""
    target = OUTCOME_STATUS[event.outcome]
    gateway_metadata = {
        **(payment.gateway_metadata or {}),
        "outcome": event.outcome,
        "event_id": event.event_id,
        "callback": event.payload,
    }
    result = await db.execute(
        update(Payment)
        .where(Payment.id == payment.id, Payment.status == PaymentStatus.PENDING)
        .values(status=target, settled_at=_now(), gateway_metadata=gateway_metadata)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(payment)
    if result.rowcount == 1:
        return True
    _is_repeat(payment, event)
    return False


async def _confirm_for_payment(db: AsyncSession, payment: Payment) -> str:
    booking = await get_booking(db, payment.booking_id, refresh=True)
    if booking.status == BookingStatus.PENDING:
        await apply_transition(db, booking, BookingStatus.CONFIRMED, source=f"payment {payment.transaction_ref}")
    elif booking.status == BookingStatus.CANCELLED:
        logger.warning(
            "Payment %s completed for cancelled booking %s; refund required",
            payment.transaction_ref,
            booking.reference,
        )
    return booking.status


async def reconcile(db: AsyncSession, event: CallbackEvent) -> ReconcileResult:
    """Apply a verified gateway outcome to its payment exactly once.

    Repeats of the applied outcome are no-ops. A conflicting outcome after a
    terminal state raises ``ReconciliationConflict``. Unknown references raise
    ``UnknownTransaction`` and create nothing.
    """
    if event.outcome not in OUTCOME_STATUS:
        raise ValueError(f"unknown outcome {event.outcome!r}")

    async with payment_locks.hold(event.external_ref):
        async with committing(db):
            payment = await find_payment_by_reference(db, event.external_ref)
            if payment is None:
                logger.warning("%s callback for unknown transaction %s", event.gateway, event.external_ref)
                raise UnknownTransaction(event.external_ref)
            if _owning_gateway(payment) != event.gateway:
                logger.warning(
                    "%s callback for %s ignored: payment %s belongs to %s",
                    event.gateway,
                    event.external_ref,
                    payment.transaction_ref,
                    _owning_gateway(payment),
                )
                raise UnknownTransaction(event.external_ref)

            if _is_repeat(payment, event):
                logger.info("Repeat %s callback for %s ignored", event.outcome, event.external_ref)
                return ReconcileResult(payment, applied=False)

            booking_status = None
            if event.outcome == Outcome.SUCCEEDED:
                booking = await get_booking(db, payment.booking_id)
                async with unit_locks.hold(booking.unit_id):
                    await lock_unit_row(db, booking.unit_id)
                    applied = await _compare_and_swap(db, payment, event)
                    if applied:
                        booking_status = await _confirm_for_payment(db, payment)
                    await db.commit()
            else:
                applied = await _compare_and_swap(db, payment, event)

    if applied:
        logger.info(
            "Payment %s %s via %s callback",
            payment.transaction_ref,
            payment.status,
            event.gateway,
        )
    return ReconcileResult(payment, applied=applied, booking_status=booking_status)


# ---------------------------------------------------------------------------
# Refund
# ---------------------------------------------------------------------------


async def refunded_total(db: AsyncSession, payment_id: uuid.UUID) -> Decimal:
    result = await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.refund_of_id == payment_id,
            Payment.status == PaymentStatus.COMPLETED,
        )
    )
    return -_money(result.scalar_one())


async def refund_payment(
    db: AsyncSession,
    payment_id: uuid.UUID,
    refund_amount: Any,
    reason: str | None = None,
) -> Payment:
    """Issue a refund as a new negative, completed payment row."""
    refund_amount = _money(refund_amount)
    if refund_amount <= 0:
        raise InvalidPaymentAmount(refund_amount, payment_id=payment_id)

    async with payment_locks.hold(f"refund:{payment_id}"):
        async with committing(db):
            source = await get_payment(db, payment_id, refresh=True)
            if source.status != PaymentStatus.COMPLETED or source.is_refund:
                raise InvalidTransition(source.id, source.status, "refunded", entity="payment")

            refundable = source.amount - await refunded_total(db, source.id)
            if refund_amount > refundable:
                raise RefundExceedsPayment(source.id, refund_amount, refundable)

            refund = Payment(
                booking_id=source.booking_id,
                amount=-refund_amount,
                currency=source.currency,
                method=source.method,
                status=PaymentStatus.COMPLETED,
                transaction_ref=_new_reference("REF"),
                refund_of_id=source.id,
                reason=reason or "Refund processed",
                gateway_metadata={"refund_of": source.transaction_ref},
                settled_at=_now(),
            )
            db.add(refund)

    logger.info("Refunded %s of payment %s as %s", refund_amount, source.transaction_ref, refund.transaction_ref)
    return refund


# ---------------------------------------------------------------------------
# Balance
# ---------------------------------------------------------------------------


async def booking_balance(db: AsyncSession, booking_id: uuid.UUID) -> Balance:
    """Paid state derived by summing completed payments (refunds are negative)."""
    booking = await get_booking(db, booking_id)
    result = await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.booking_id == booking.id,
            Payment.status == PaymentStatus.COMPLETED,
        )
    )
    paid = _money(result.scalar_one())
    total = _money(booking.total_amount)
    return Balance(
        booking_id=booking.id,
        total_amount=total,
        paid=paid,
        outstanding=max(total - paid, Decimal("0.00")),
        is_paid=paid >= total,
    )
