"""Interval store: per-unit ``[start, end)`` ranges held by bookings.

The store is a plain indexed container. It does not stop overlapping
claims itself; callers check availability under the unit lock first.
"""

from __future__ import annotations

import bisect
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hotelops.models.interval import UnitInterval


@dataclass(frozen=True, order=True)
class Interval:
    start: date
    end: date
    booking_id: uuid.UUID
    status: str


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Half-open overlap test: a checkout on day X and a check-in on day X do not overlap."""
    return a_start < b_end and b_start < a_end


def first_overlap(intervals: Sequence[Interval], start: date, end: date) -> Interval | None:
    """Return the first interval overlapping ``[start, end)``.

    ``intervals`` must be sorted by start date. Only intervals starting before
    ``end`` can overlap, so the scan stops at the bisection point.
    """
    starts = [interval.start for interval in intervals]
    stop = bisect.bisect_left(starts, end)
    for interval in intervals[:stop]:
        if overlaps(interval.start, interval.end, start, end):
            return interval
    return None


class IntervalStore:
    """Database-backed interval store bound to a session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def intervals_for(
        self,
        unit_id: uuid.UUID,
        statuses: Iterable[str] | None = None,
    ) -> list[Interval]:
        """Intervals held against a unit, ordered by start date."""
        query = select(UnitInterval).where(UnitInterval.unit_id == unit_id)
        if statuses is not None:
            query = query.where(UnitInterval.status.in_(list(statuses)))
        query = query.order_by(UnitInterval.start, UnitInterval.end)
        result = await self.db.execute(query)
        return [
            Interval(row.start, row.end, row.booking_id, row.status)
            for row in result.scalars().all()
        ]

    async def insert(
        self,
        unit_id: uuid.UUID,
        start: date,
        end: date,
        booking_id: uuid.UUID,
        status: str,
    ) -> UnitInterval:
        row = UnitInterval(unit_id=unit_id, start=start, end=end, booking_id=booking_id, status=status)
        self.db.add(row)
        await self.db.flush()
        return row

    async def move(self, booking_id: uuid.UUID, start: date, end: date) -> None:
        await self.db.execute(
            update(UnitInterval)
            .where(UnitInterval.booking_id == booking_id)
            .values(start=start, end=end)
        )

    async def set_status(self, booking_id: uuid.UUID, status: str) -> None:
        await self.db.execute(
            update(UnitInterval).where(UnitInterval.booking_id == booking_id).values(status=status)
        )

    async def remove(self, booking_id: uuid.UUID) -> None:
        await self.db.execute(delete(UnitInterval).where(UnitInterval.booking_id == booking_id))
