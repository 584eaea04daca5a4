"""Booking engine error taxonomy.

Every error carries its ``kind`` (the taxonomy name), the HTTP status the
API layer maps it to, whether the caller may retry, and the identifiers of
whatever it is about (booking id, unit id, date range, transaction reference)
so the caller can present a precise message.
"""

from __future__ import annotations

from typing import Any


class BookingEngineError(Exception):
    """Base class for all engine errors."""

    kind: str = "BookingEngineError"
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = {key: value for key, value in details.items() if value is not None}

    def to_dict(self) -> dict[str, Any]:
        """Serialise for an API response body."""
        return {
            "error": self.kind,
            "message": self.message,
            "retryable": self.retryable,
            **{key: str(value) for key, value in self.details.items()},
        }

    def __repr__(self) -> str:
        return f"<{self.kind}({self.message!r}, {self.details})>"


class NotFound(BookingEngineError):
    kind = "NotFound"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id)


class InvalidRange(BookingEngineError):
    kind = "InvalidRange"
    status_code = 422

    def __init__(self, check_in: Any, check_out: Any, unit_id: Any = None) -> None:
        super().__init__(
            f"check_out ({check_out}) must be after check_in ({check_in})",
            check_in=check_in,
            check_out=check_out,
            unit_id=unit_id,
        )


class InvalidOccupancy(BookingEngineError):
    kind = "InvalidOccupancy"
    status_code = 422

    def __init__(self, adults: int, children: int) -> None:
        super().__init__(
            f"At least 1 adult and no negative children required (adults={adults}, children={children})",
            adults=adults,
            children=children,
        )


class CapacityExceeded(BookingEngineError):
    kind = "CapacityExceeded"
    status_code = 422

    def __init__(self, unit_id: Any, capacity: int, requested: int) -> None:
        super().__init__(
            f"Unit capacity is {capacity} guests, but {requested} guests were specified",
            unit_id=unit_id,
            capacity=capacity,
            requested=requested,
        )


class UnitUnavailable(BookingEngineError):
    kind = "UnitUnavailable"
    status_code = 409

    def __init__(self, unit_id: Any, check_in: Any, check_out: Any, conflicting_booking_id: Any = None) -> None:
        super().__init__(
            f"Unit {unit_id} is not available from {check_in} to {check_out}",
            unit_id=unit_id,
            check_in=check_in,
            check_out=check_out,
            conflicting_booking_id=conflicting_booking_id,
        )


class NoPricingRule(BookingEngineError):
    kind = "NoPricingRule"
    status_code = 404

    def __init__(self, unit_type_id: Any, on: Any) -> None:
        super().__init__(
            f"No pricing rule for unit type {unit_type_id} effective on or before {on}",
            unit_type_id=unit_type_id,
            check_in=on,
        )


class InvalidTransition(BookingEngineError):
    kind = "InvalidTransition"
    status_code = 409

    def __init__(self, entity_id: Any, current: str, requested: str, entity: str = "booking") -> None:
        super().__init__(
            f"Cannot move {entity} {entity_id} from {current} to {requested}",
            **{f"{entity}_id": entity_id},
            current_status=current,
            requested_status=requested,
        )


class BookingNotPayable(BookingEngineError):
    kind = "BookingNotPayable"
    status_code = 409

    def __init__(self, booking_id: Any, status: str) -> None:
        super().__init__(
            f"Booking {booking_id} is {status} and cannot take payments",
            booking_id=booking_id,
            current_status=status,
        )


class InvalidPaymentAmount(BookingEngineError):
    kind = "InvalidPaymentAmount"
    status_code = 422

    def __init__(self, amount: Any, booking_id: Any = None, payment_id: Any = None) -> None:
        super().__init__(
            f"Amount must be greater than zero, got {amount}",
            amount=amount,
            booking_id=booking_id,
            payment_id=payment_id,
        )


class UnsupportedPaymentMethod(BookingEngineError):
    kind = "UnsupportedPaymentMethod"
    status_code = 422

    def __init__(self, method: str) -> None:
        super().__init__(f"Unsupported payment method {method!r}", method=method)


class InsufficientCash(BookingEngineError):
    kind = "InsufficientCash"
    status_code = 422

    def __init__(self, booking_id: Any, amount: Any, received_amount: Any) -> None:
        super().__init__(
            f"Insufficient cash received ({received_amount} < {amount})",
            booking_id=booking_id,
            amount=amount,
            received_amount=received_amount,
        )


class RefundExceedsPayment(BookingEngineError):
    kind = "RefundExceedsPayment"
    status_code = 422

    def __init__(self, payment_id: Any, refund_amount: Any, refundable: Any) -> None:
        super().__init__(
            f"Refund of {refund_amount} exceeds the refundable {refundable} on payment {payment_id}",
            payment_id=payment_id,
            refund_amount=refund_amount,
            refundable=refundable,
        )


class UnknownTransaction(BookingEngineError):
    kind = "UnknownTransaction"
    status_code = 404

    def __init__(self, external_ref: str) -> None:
        super().__init__(f"No payment matches transaction {external_ref}", external_ref=external_ref)


class ReconciliationConflict(BookingEngineError):
    kind = "ReconciliationConflict"
    status_code = 409

    def __init__(self, external_ref: str, current: str, outcome: str) -> None:
        super().__init__(
            f"Payment {external_ref} is already {current}; refusing {outcome} outcome",
            external_ref=external_ref,
            current_status=current,
            outcome=outcome,
        )


class AuthenticityCheckFailed(BookingEngineError):
    kind = "AuthenticityCheckFailed"
    status_code = 400

    def __init__(self, gateway: str, reason: str, external_ref: str | None = None) -> None:
        super().__init__(
            f"{gateway} callback failed authenticity check: {reason}",
            gateway=gateway,
            external_ref=external_ref,
        )


class GatewayUnavailable(BookingEngineError):
    """Transient gateway failure. The payment stays pending and may be retried."""

    kind = "GatewayUnavailable"
    status_code = 503
    retryable = True

    def __init__(self, gateway: str, reason: str, payment_id: Any = None) -> None:
        super().__init__(
            f"{gateway} gateway unavailable: {reason}",
            gateway=gateway,
            payment_id=payment_id,
        )
