"""Holiday calendar hook consulted by the pricing calculator."""

from collections.abc import Iterable
from datetime import date
from typing import Protocol

from hotelops.config import settings


class HolidayCalendar(Protocol):
    def is_holiday(self, day: date) -> bool: ...


class FixedHolidayCalendar:
    """Holidays from an explicit list of dates."""

    def __init__(self, holidays: Iterable[date] = ()) -> None:
        self._holidays = frozenset(holidays)

    def is_holiday(self, day: date) -> bool:
        return day in self._holidays

    def __repr__(self) -> str:
        return f"<FixedHolidayCalendar({len(self._holidays)} dates)>"


def default_calendar() -> FixedHolidayCalendar:
    """Calendar built from ``settings.holiday_dates``."""
    return FixedHolidayCalendar(settings.holiday_dates)
