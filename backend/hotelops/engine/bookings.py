"""Booking state machine.

    pending -> confirmed -> checked_in -> checked_out
    pending | confirmed -> cancelled

Every operation that claims, moves or releases a unit's interval runs inside
that unit's lock and commits before the lock is released, so two requests
for the same unit can never both observe "available".
"""

from __future__ import annotations

import logging
import secrets
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hotelops.engine.availability import ensure_available, validate_range
from hotelops.engine.holidays import HolidayCalendar
from hotelops.engine.intervals import IntervalStore
from hotelops.engine.locks import unit_locks
from hotelops.engine.pricing import quote
from hotelops.engine.transactions import committing
from hotelops.errors import CapacityExceeded, InvalidOccupancy, InvalidTransition, NotFound
from hotelops.models.booking import Booking, BookingStatus
from hotelops.models.guest import Guest
from hotelops.models.unit import BookableUnit, UnitStatus

logger = logging.getLogger(__name__)

TRANSITIONS: dict[str, frozenset[str]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CHECKED_IN, BookingStatus.CANCELLED}),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.CHECKED_OUT}),
    BookingStatus.CHECKED_OUT: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# Statuses in which a booking's dates may still change.
RESCHEDULABLE = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

_REFERENCE_ATTEMPTS = 20


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_booking(db: AsyncSession, booking_id: uuid.UUID, *, refresh: bool = False) -> Booking:
    """Fetch a booking or raise ``NotFound``.

    ``refresh`` re-reads the row even if the session already holds it, which
    is required inside a critical section.
    """
    query = select(Booking).where(Booking.id == booking_id)
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFound("Booking", booking_id)
    return booking


async def get_unit(db: AsyncSession, unit_id: uuid.UUID) -> BookableUnit:
    unit = await db.get(BookableUnit, unit_id)
    if unit is None:
        raise NotFound("Unit", unit_id)
    return unit


async def lock_unit_row(db: AsyncSession, unit_id: uuid.UUID) -> BookableUnit:
    """Row-lock the unit (PostgreSQL) so other application instances serialise too."""
    result = await db.execute(
        select(BookableUnit)
        .where(BookableUnit.id == unit_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _generate_reference(db: AsyncSession) -> str:
    """``BK`` + yymm + four random digits, unique across bookings."""
    prefix = datetime.now(timezone.utc).strftime("BK%y%m")
    for _ in range(_REFERENCE_ATTEMPTS):
        reference = f"{prefix}{secrets.randbelow(10000):04d}"
        exists = await db.execute(select(Booking.id).where(Booking.reference == reference))
        if exists.scalar_one_or_none() is None:
            return reference
    raise RuntimeError("could not allocate a unique booking reference")


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def _is_reference_clash(error: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed: bookings.reference";
    # PostgreSQL: 'unique constraint "bookings_reference_key"'.
    return "reference" in str(error.orig)


async def _claim(
    db: AsyncSession,
    *,
    unit_id: uuid.UUID,
    reference: str,
    check_in: date,
    check_out: date,
    fields: dict,
) -> Booking:
    """Check availability, insert the booking and claim its interval under the unit lock."""
    async with unit_locks.hold(unit_id):
        async with committing(db):
            await lock_unit_row(db, unit_id)
            store = IntervalStore(db)
            await ensure_available(store, unit_id, check_in, check_out)

            booking = Booking(
                reference=reference,
                unit_id=unit_id,
                check_in=check_in,
                check_out=check_out,
                status=BookingStatus.PENDING,
                **fields,
            )
            db.add(booking)
            await db.flush()
            await store.insert(unit_id, check_in, check_out, booking.id, BookingStatus.PENDING)
    return booking


async def create_booking(
    db: AsyncSession,
    *,
    guest_id: uuid.UUID,
    unit_id: uuid.UUID,
    check_in: date,
    check_out: date,
    adults: int = 1,
    children: int = 0,
    special_requests: str | None = None,
    created_by: str | None = None,
    calendar: HolidayCalendar | None = None,
) -> Booking:
    """Create a ``pending`` booking and claim its interval.

    Validation and pricing happen before the unit lock; the availability
    check, booking insert and interval claim happen inside it. A reference
    drawn concurrently by a booking on another unit is redrawn.
    """
    validate_range(check_in, check_out, unit_id)
    if adults < 1 or children < 0:
        raise InvalidOccupancy(adults, children)

    if await db.get(Guest, guest_id) is None:
        raise NotFound("Guest", guest_id)
    unit = await get_unit(db, unit_id)
    unit_code = unit.code

    if adults + children > unit.capacity:
        raise CapacityExceeded(unit.id, unit.capacity, adults + children)

    price = await quote(db, unit.unit_type_id, check_in, check_out, base_price=unit.base_price, calendar=calendar)
    fields = {
        "guest_id": guest_id,
        "adults": adults,
        "children": children,
        "total_amount": price.total,
        "nightly_prices": price.schedule(),
        "special_requests": special_requests,
        "created_by": created_by,
    }

    for attempt in range(1, _REFERENCE_ATTEMPTS + 1):
        reference = await _generate_reference(db)
        try:
            booking = await _claim(
                db, unit_id=unit_id, reference=reference, check_in=check_in, check_out=check_out, fields=fields
            )
        except IntegrityError as e:
            if not _is_reference_clash(e) or attempt == _REFERENCE_ATTEMPTS:
                raise
            logger.warning("Booking reference %s was taken concurrently; drawing another", reference)
            continue
        break

    await db.refresh(booking)
    logger.info(
        "Created booking %s on unit %s for [%s, %s), %s nights, total %s",
        booking.reference,
        unit_code,
        check_in,
        check_out,
        price.nights,
        price.total,
    )
    return booking


async def update_booking_dates(
    db: AsyncSession,
    booking_id: uuid.UUID,
    check_in: date,
    check_out: date,
    *,
    calendar: HolidayCalendar | None = None,
) -> Booking:
    """Move a pending or confirmed booking to new dates and reprice it."""
    booking = await get_booking(db, booking_id)
    validate_range(check_in, check_out, booking.unit_id)
    if booking.status not in RESCHEDULABLE:
        raise InvalidTransition(booking.id, booking.status, "rescheduled")

    unit = await get_unit(db, booking.unit_id)
    price = await quote(db, unit.unit_type_id, check_in, check_out, base_price=unit.base_price, calendar=calendar)

    async with unit_locks.hold(unit.id):
        async with committing(db):
            await lock_unit_row(db, unit.id)
            booking = await get_booking(db, booking_id, refresh=True)
            if booking.status not in RESCHEDULABLE:
                raise InvalidTransition(booking.id, booking.status, "rescheduled")

            store = IntervalStore(db)
            await ensure_available(store, unit.id, check_in, check_out, excluding_booking_id=booking.id)

            previous = (booking.check_in, booking.check_out)
            booking.check_in = check_in
            booking.check_out = check_out
            booking.total_amount = price.total
            booking.nightly_prices = price.schedule()
            await store.move(booking.id, check_in, check_out)
            await db.flush()

    await db.refresh(booking)
    logger.info(
        "Moved booking %s from [%s, %s) to [%s, %s), new total %s",
        booking.reference,
        previous[0],
        previous[1],
        check_in,
        check_out,
        price.total,
    )
    return booking


async def apply_transition(
    db: AsyncSession,
    booking: Booking,
    target: str,
    *,
    source: str = "manual",
) -> Booking:
    """Move ``booking`` to ``target`` without committing.

    The caller must hold the booking's unit lock and have re-read the booking
    inside it.
    """
    if target not in TRANSITIONS.get(booking.status, frozenset()):
        raise InvalidTransition(booking.id, booking.status, target)

    store = IntervalStore(db)
    previous = booking.status
    booking.status = target

    if target == BookingStatus.CANCELLED:
        await store.remove(booking.id)
    else:
        await store.set_status(booking.id, target)

    if target == BookingStatus.CHECKED_IN:
        unit = await get_unit(db, booking.unit_id)
        unit.status = UnitStatus.OCCUPIED
    elif target == BookingStatus.CHECKED_OUT:
        unit = await get_unit(db, booking.unit_id)
        unit.status = UnitStatus.AVAILABLE

    await db.flush()
    logger.info("Booking %s: %s -> %s (%s)", booking.reference, previous, target, source)
    return booking


async def transition_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    target: str,
    *,
    source: str = "manual",
) -> Booking:
    """Validate and apply a single state transition, serialised per unit."""
    booking = await get_booking(db, booking_id)
    async with unit_locks.hold(booking.unit_id):
        async with committing(db):
            await lock_unit_row(db, booking.unit_id)
            booking = await get_booking(db, booking_id, refresh=True)
            await apply_transition(db, booking, target, source=source)

    await db.refresh(booking)
    return booking


async def cancel_booking(db: AsyncSession, booking_id: uuid.UUID, *, source: str = "manual") -> Booking:
    """Cancel a pending or confirmed booking and release its interval immediately."""
    return await transition_booking(db, booking_id, BookingStatus.CANCELLED, source=source)


async def check_in(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    return await transition_booking(db, booking_id, BookingStatus.CHECKED_IN)


async def check_out(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    return await transition_booking(db, booking_id, BookingStatus.CHECKED_OUT)
