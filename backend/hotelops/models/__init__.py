"""SQLAlchemy models for the booking engine.

All models are imported here so that Alembic and ``Base.metadata.create_all``
can discover them. If you add a new model, import it in this file.
"""

from hotelops.models.booking import Booking, BookingStatus
from hotelops.models.guest import Guest
from hotelops.models.interval import UnitInterval
from hotelops.models.payment import Payment, PaymentMethod, PaymentStatus
from hotelops.models.pricing_rule import PricingRule
from hotelops.models.unit import BookableUnit, UnitStatus, UnitType

__all__ = [
    "BookableUnit",
    "Booking",
    "BookingStatus",
    "Guest",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "PricingRule",
    "UnitInterval",
    "UnitStatus",
    "UnitType",
]
