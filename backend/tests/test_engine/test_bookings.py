"""Tests for the booking state machine."""

import asyncio
import random
import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from hotelops.engine import bookings
from hotelops.engine.intervals import IntervalStore
from hotelops.errors import CapacityExceeded, InvalidOccupancy, InvalidRange, InvalidTransition, NotFound, UnitUnavailable
from hotelops.models import Booking, BookingStatus, UnitInterval

pytestmark = pytest.mark.asyncio


async def _book(db, inventory, check_in: date, check_out: date, **kwargs) -> Booking:
    return await bookings.create_booking(
        db,
        guest_id=inventory["guest"].id,
        unit_id=kwargs.pop("unit_id", inventory["unit"].id),
        check_in=check_in,
        check_out=check_out,
        **kwargs,
    )


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestCreateBooking:
    async def test_creates_pending_booking_with_price_and_interval(self, db_session, inventory) -> None:
        booking = await _book(db_session, inventory, date(2024, 6, 7), date(2024, 6, 9), adults=2)

        assert booking.status == BookingStatus.PENDING
        assert booking.reference.startswith("BK")
        assert len(booking.reference) == 10
        assert booking.total_amount == Decimal("240.00")
        assert booking.nightly_prices == [
            {"date": "2024-06-07", "price": "120.00"},
            {"date": "2024-06-08", "price": "120.00"},
        ]

        (interval,) = await IntervalStore(db_session).intervals_for(inventory["unit"].id)
        assert (interval.start, interval.end, interval.booking_id) == (date(2024, 6, 7), date(2024, 6, 9), booking.id)
        assert interval.status == BookingStatus.PENDING

    async def test_overlap_rejected_and_touching_accepted(self, db_session, inventory) -> None:
        b1 = await _book(db_session, inventory, date(2024, 6, 1), date(2024, 6, 5))

        with pytest.raises(UnitUnavailable) as exc:
            await _book(db_session, inventory, date(2024, 6, 3), date(2024, 6, 6))
        assert exc.value.details["conflicting_booking_id"] == b1.id
        assert await _count(db_session, Booking) == 1

        b3 = await _book(db_session, inventory, date(2024, 6, 5), date(2024, 6, 8))
        assert b3.status == BookingStatus.PENDING

    async def test_same_dates_on_another_unit(self, db_session, inventory) -> None:
        await _book(db_session, inventory, date(2024, 6, 1), date(2024, 6, 5))
        other = await _book(db_session, inventory, date(2024, 6, 1), date(2024, 6, 5), unit_id=inventory["other_unit"].id)
        assert other.unit_id == inventory["other_unit"].id

    async def test_session_usable_after_rejection(self, db_session, inventory) -> None:
        b1 = await _book(db_session, inventory, date(2024, 6, 1), date(2024, 6, 5))
        with pytest.raises(UnitUnavailable):
            await _book(db_session, inventory, date(2024, 6, 2), date(2024, 6, 4))

        # Objects loaded before the rejection stay readable.
        assert b1.check_out == date(2024, 6, 5)
        assert inventory["unit"].code == "R1"
        b2 = await _book(db_session, inventory, date(2024, 6, 5), date(2024, 6, 6))
        assert b2.reference != b1.reference

    async def test_reference_taken_concurrently_is_redrawn(self, db_session, inventory, monkeypatch) -> None:
        b1 = await _book(db_session, inventory, date(2024, 6, 1), date(2024, 6, 5))
        taken = b1.reference
        guest_id = inventory["guest"].id
        other_unit_id = inventory["other_unit"].id
        drawn = iter([taken, "BK99990001"])

        async def fake_reference(db):
            return next(drawn)

        monkeypatch.setattr(bookings, "_generate_reference", fake_reference)
        booking = await bookings.create_booking(
            db_session,
            guest_id=guest_id,
            unit_id=other_unit_id,
            check_in=date(2024, 6, 1),
            check_out=date(2024, 6, 5),
        )

        assert booking.reference == "BK99990001"
        assert booking.unit_id == other_unit_id
        assert await _count(db_session, Booking) == 2
        assert await _count(db_session, UnitInterval) == 2

    async def test_capacity_exceeded(self, db_session, inventory) -> None:
        with pytest.raises(CapacityExceeded) as exc:
            await _book(db_session, inventory, date(2024, 6, 1), date(2024, 6, 3), adults=2, children=1)
        assert exc.value.details == {"unit_id": inventory["unit"].id, "capacity": 2, "requested": 3}
        assert await _count(db_session, Booking) == 0

    @pytest.mark.parametrize("adults, children", [(0, 0), (1, -1)])
    async def test_invalid_occupancy(self, db_session, inventory, adults, children) -> None:
        with pytest.raises(InvalidOccupancy):
            await _book(db_session, inventory, date(2024, 6, 1), date(2024, 6, 3), adults=adults, children=children)

    async def test_invalid_range(self, db_session, inventory) -> None:
        with pytest.raises(InvalidRange):
            await _book(db_session, inventory, date(2024, 6, 3), date(2024, 6, 3))
        assert await _count(db_session, UnitInterval) == 0

    async def test_unknown_guest_and_unit(self, db_session, inventory) -> None:
        with pytest.raises(NotFound):
            await bookings.create_booking(
                db_session, guest_id=uuid.uuid4(), unit_id=inventory["unit"].id,
                check_in=date(2024, 6, 1), check_out=date(2024, 6, 2),
            )
        with pytest.raises(NotFound):
            await _book(db_session, inventory, date(2024, 6, 1), date(2024, 6, 2), unit_id=uuid.uuid4())


class TestUpdateDates:
    async def test_moves_interval_and_reprices(self, db_session, inventory) -> None:
        booking = await _book(db_session, inventory, date(2024, 6, 3), date(2024, 6, 5))
        assert booking.total_amount == Decimal("200.00")

        moved = await bookings.update_booking_dates(db_session, booking.id, date(2024, 6, 7), date(2024, 6, 10))
        assert (moved.check_in, moved.check_out) == (date(2024, 6, 7), date(2024, 6, 10))
        # Fri, Sat weekend priced; Sun not.
        assert moved.total_amount == Decimal("340.00")

        (interval,) = await IntervalStore(db_session).intervals_for(inventory["unit"].id)
        assert (interval.start, interval.end) == (date(2024, 6, 7), date(2024, 6, 10))

    async def test_overlapping_own_dates_allowed(self, db_session, inventory) -> None:
        booking = await _book(db_session, inventory, date(2024, 6, 3), date(2024, 6, 6))
        moved = await bookings.update_booking_dates(db_session, booking.id, date(2024, 6, 4), date(2024, 6, 7))
        assert moved.check_in == date(2024, 6, 4)

    async def test_conflict_with_other_booking(self, db_session, inventory) -> None:
        await _book(db_session, inventory, date(2024, 6, 10), date(2024, 6, 12))
        booking = await _book(db_session, inventory, date(2024, 6, 3), date(2024, 6, 5))
        with pytest.raises(UnitUnavailable):
            await bookings.update_booking_dates(db_session, booking.id, date(2024, 6, 9), date(2024, 6, 11))

        unchanged = await bookings.get_booking(db_session, booking.id, refresh=True)
        assert (unchanged.check_in, unchanged.check_out) == (date(2024, 6, 3), date(2024, 6, 5))

    async def test_not_allowed_after_check_in(self, db_session, inventory) -> None:
        booking = await _book(db_session, inventory, date(2024, 6, 3), date(2024, 6, 5))
        await bookings.transition_booking(db_session, booking.id, BookingStatus.CONFIRMED)
        await bookings.check_in(db_session, booking.id)
        with pytest.raises(InvalidTransition):
            await bookings.update_booking_dates(db_session, booking.id, date(2024, 6, 4), date(2024, 6, 6))


class TestTransitions:
    async def test_full_lifecycle(self, db_session, inventory) -> None:
        booking = await _book(db_session, inventory, date(2024, 6, 3), date(2024, 6, 5))
        unit = inventory["unit"]

        await bookings.transition_booking(db_session, booking.id, BookingStatus.CONFIRMED)
        checked_in = await bookings.check_in(db_session, booking.id)
        assert checked_in.status == BookingStatus.CHECKED_IN
        await db_session.refresh(unit)
        assert unit.status == "occupied"

        checked_out = await bookings.check_out(db_session, booking.id)
        assert checked_out.status == BookingStatus.CHECKED_OUT
        await db_session.refresh(unit)
        assert unit.status == "available"

        # The interval is kept for history but no longer blocks the dates.
        (interval,) = await IntervalStore(db_session).intervals_for(unit.id)
        assert interval.status == BookingStatus.CHECKED_OUT
        again = await _book(db_session, inventory, date(2024, 6, 3), date(2024, 6, 5))
        assert again.status == BookingStatus.PENDING

    async def test_cancel_releases_dates_immediately(self, db_session, inventory) -> None:
        b1 = await _book(db_session, inventory, date(2024, 6, 1), date(2024, 6, 5))
        cancelled = await bookings.cancel_booking(db_session, b1.id)
        assert cancelled.status == BookingStatus.CANCELLED
        assert await IntervalStore(db_session).intervals_for(inventory["unit"].id) == []

        rebooked = await _book(db_session, inventory, date(2024, 6, 1), date(2024, 6, 5))
        assert rebooked.status == BookingStatus.PENDING

    async def test_checked_in_to_pending_rejected(self, db_session, inventory) -> None:
        booking = await _book(db_session, inventory, date(2024, 6, 3), date(2024, 6, 5))
        await bookings.transition_booking(db_session, booking.id, BookingStatus.CONFIRMED)
        await bookings.check_in(db_session, booking.id)

        with pytest.raises(InvalidTransition) as exc:
            await bookings.transition_booking(db_session, booking.id, BookingStatus.PENDING)
        assert exc.value.details["current_status"] == "checked_in"
        assert exc.value.details["requested_status"] == "pending"

        current = await bookings.get_booking(db_session, booking.id, refresh=True)
        assert current.status == BookingStatus.CHECKED_IN

    @pytest.mark.parametrize(
        "path, target",
        [
            ([], BookingStatus.CHECKED_IN),
            ([], BookingStatus.CHECKED_OUT),
            ([BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN], BookingStatus.CANCELLED),
            ([BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN, BookingStatus.CHECKED_OUT], BookingStatus.CHECKED_IN),
            ([BookingStatus.CANCELLED], BookingStatus.CONFIRMED),
            ([], "archived"),
        ],
    )
    async def test_illegal_transitions(self, db_session, inventory, path, target) -> None:
        booking = await _book(db_session, inventory, date(2024, 6, 3), date(2024, 6, 5))
        for step in path:
            await bookings.transition_booking(db_session, booking.id, step)
        with pytest.raises(InvalidTransition):
            await bookings.transition_booking(db_session, booking.id, target)

    async def test_unknown_booking(self, db_session, inventory) -> None:
        with pytest.raises(NotFound):
            await bookings.cancel_booking(db_session, uuid.uuid4())


class TestConcurrency:
    async def test_concurrent_overlapping_requests_claim_once(self, session_factory, inventory) -> None:
        async def attempt(check_in: date, check_out: date):
            async with session_factory() as session:
                return await _book(session, inventory, check_in, check_out)

        results = await asyncio.gather(
            attempt(date(2024, 6, 1), date(2024, 6, 5)),
            attempt(date(2024, 6, 3), date(2024, 6, 7)),
            attempt(date(2024, 6, 4), date(2024, 6, 6)),
            return_exceptions=True,
        )
        created = [r for r in results if isinstance(r, Booking)]
        rejected = [r for r in results if isinstance(r, UnitUnavailable)]
        assert len(created) == 1
        assert len(rejected) == 2

        async with session_factory() as session:
            assert await _count(session, Booking) == 1
            assert await _count(session, UnitInterval) == 1

    @pytest.mark.parametrize("seed", range(5))
    async def test_no_claiming_overlap_after_random_requests(self, session_factory, inventory, seed) -> None:
        rng = random.Random(seed)

        async def attempt(offset: int, nights: int):
            async with session_factory() as session:
                check_in = date(2024, 6, 1) + timedelta(days=offset)
                check_out = check_in + timedelta(days=nights)
                return await _book(session, inventory, check_in, check_out)

        await asyncio.gather(
            *(attempt(rng.randint(0, 20), rng.randint(1, 4)) for _ in range(12)),
            return_exceptions=True,
        )

        async with session_factory() as session:
            intervals = await IntervalStore(session).intervals_for(
                inventory["unit"].id, statuses=BookingStatus.CLAIMING
            )
        assert intervals
        for left, right in zip(intervals, intervals[1:]):
            assert left.end <= right.start
