"""Shared API dependencies, single import point for all routers::

    from hotelops.api.deps import get_db, get_calendar
"""

from hotelops.database import get_db
from hotelops.engine.holidays import HolidayCalendar, default_calendar


def get_calendar() -> HolidayCalendar:
    """Holiday calendar used for quotes and bookings; override to plug in another source."""
    return default_calendar()


__all__ = [
    "get_calendar",
    "get_db",
]
