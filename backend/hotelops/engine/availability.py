"""Availability checker: answers whether a unit is free for a candidate range."""

import logging
import uuid
from datetime import date

from hotelops.engine.intervals import IntervalStore, first_overlap
from hotelops.errors import InvalidRange, UnitUnavailable
from hotelops.models.booking import BookingStatus

logger = logging.getLogger(__name__)


def validate_range(check_in: date, check_out: date, unit_id: uuid.UUID | None = None) -> None:
    """Raise ``InvalidRange`` unless ``check_in < check_out``."""
    if check_in >= check_out:
        raise InvalidRange(check_in, check_out, unit_id=unit_id)


async def find_conflict(
    store: IntervalStore,
    unit_id: uuid.UUID,
    check_in: date,
    check_out: date,
    excluding_booking_id: uuid.UUID | None = None,
) -> uuid.UUID | None:
    """Return the booking id of a claiming interval overlapping the range, if any."""
    validate_range(check_in, check_out, unit_id)
    intervals = await store.intervals_for(unit_id, statuses=BookingStatus.CLAIMING)
    if excluding_booking_id is not None:
        intervals = [i for i in intervals if i.booking_id != excluding_booking_id]
    conflict = first_overlap(intervals, check_in, check_out)
    return conflict.booking_id if conflict else None


async def is_available(
    store: IntervalStore,
    unit_id: uuid.UUID,
    check_in: date,
    check_out: date,
    excluding_booking_id: uuid.UUID | None = None,
) -> bool:
    """True when no claiming interval on the unit overlaps ``[check_in, check_out)``.

    The answer is only safe to act on while holding the unit's lock.
    """
    conflict = await find_conflict(store, unit_id, check_in, check_out, excluding_booking_id)
    return conflict is None


async def ensure_available(
    store: IntervalStore,
    unit_id: uuid.UUID,
    check_in: date,
    check_out: date,
    excluding_booking_id: uuid.UUID | None = None,
) -> None:
    """Raise ``UnitUnavailable`` naming the conflicting booking when the range is taken."""
    conflict = await find_conflict(store, unit_id, check_in, check_out, excluding_booking_id)
    if conflict is not None:
        logger.info(
            "Unit %s unavailable for [%s, %s): held by booking %s",
            unit_id,
            check_in,
            check_out,
            conflict,
        )
        raise UnitUnavailable(unit_id, check_in, check_out, conflicting_booking_id=conflict)
