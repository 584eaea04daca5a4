"""Booking engine: interval store, availability, pricing, booking state machine, payments."""

from hotelops.engine.availability import ensure_available, find_conflict, is_available, validate_range
from hotelops.engine.bookings import (
    apply_transition,
    cancel_booking,
    check_in,
    check_out,
    create_booking,
    get_booking,
    transition_booking,
    update_booking_dates,
)
from hotelops.engine.intervals import Interval, IntervalStore, overlaps
from hotelops.engine.payments import (
    Balance,
    InitiateResult,
    ReconcileResult,
    booking_balance,
    initiate_payment,
    reconcile,
    refund_payment,
    retry_gateway,
)
from hotelops.engine.pricing import PriceQuote, PricingRuleIndex, price_stay, quote

__all__ = [
    "Balance",
    "InitiateResult",
    "Interval",
    "IntervalStore",
    "PriceQuote",
    "PricingRuleIndex",
    "ReconcileResult",
    "apply_transition",
    "booking_balance",
    "cancel_booking",
    "check_in",
    "check_out",
    "create_booking",
    "ensure_available",
    "find_conflict",
    "get_booking",
    "initiate_payment",
    "is_available",
    "overlaps",
    "price_stay",
    "quote",
    "reconcile",
    "refund_payment",
    "retry_gateway",
    "transition_booking",
    "update_booking_dates",
    "validate_range",
]
