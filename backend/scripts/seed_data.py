"""Seed the database with sample unit types, rooms, cabins, guests and pricing rules.

A handful of bookings are created through the booking engine so their
intervals and prices are consistent with the rules seeded here.

Run from the backend directory:
    python -m scripts.seed_data
"""

import asyncio
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete

from hotelops.database import Base, async_session_factory, engine
from hotelops.engine.bookings import cancel_booking, create_booking
from hotelops.engine.payments import initiate_payment
from hotelops.models import BookableUnit, Booking, Guest, Payment, PricingRule, UnitInterval, UnitType

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

UNIT_TYPES = [
    {"name": "Single Room", "description": "Standard single occupancy room", "base_price": Decimal("50.00"), "capacity": 1},
    {"name": "Double Room", "description": "Standard double occupancy room", "base_price": Decimal("80.00"), "capacity": 2},
    {"name": "Suite", "description": "Luxury suite with separate living area", "base_price": Decimal("150.00"), "capacity": 4},
    {"name": "Family Room", "description": "Large room suitable for families", "base_price": Decimal("120.00"), "capacity": 6},
    {"name": "Lake Cabin", "description": "Two-bedroom cabin by the lake", "base_price": Decimal("180.00"), "capacity": 5},
]

# (code, kind, unit type name, floor)
UNITS = [
    ("101", "room", "Single Room", 1),
    ("102", "room", "Single Room", 1),
    ("201", "room", "Double Room", 2),
    ("202", "room", "Double Room", 2),
    ("301", "room", "Suite", 3),
    ("302", "room", "Suite", 3),
    ("401", "room", "Family Room", 4),
    ("402", "room", "Family Room", 4),
    ("C-1", "cabin", "Lake Cabin", None),
    ("C-2", "cabin", "Lake Cabin", None),
]

GUESTS = [
    {"first_name": "Abebe", "last_name": "Kebede", "email": "abebe.kebede@example.com", "phone": "+251911000001", "nationality": "Ethiopian"},
    {"first_name": "Sarah", "last_name": "Mitchell", "email": "sarah.mitchell@example.com", "phone": "+14155550123", "nationality": "American"},
    {"first_name": "Hiroshi", "last_name": "Tanaka", "email": "hiroshi.tanaka@example.com", "phone": "+819012345678", "nationality": "Japanese"},
    {"first_name": "Amara", "last_name": "Okafor", "email": "amara.okafor@example.com", "phone": "+2348012345678", "nationality": "Nigerian"},
    {"first_name": "Lena", "last_name": "Schmidt", "email": "lena.schmidt@example.com", "phone": "+4915112345678", "nationality": "German"},
]


async def seed() -> None:
    """Recreate the sample data set."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        # Clear in dependency order
        for model in (Payment, UnitInterval, Booking, PricingRule, BookableUnit, UnitType, Guest):
            await session.execute(delete(model))
        await session.commit()

        types = {}
        for data in UNIT_TYPES:
            unit_type = UnitType(**data)
            session.add(unit_type)
            types[unit_type.name] = unit_type
        await session.flush()
        print(f"Created {len(types)} unit types")

        units = {}
        for code, kind, type_name, floor in UNITS:
            unit_type = types[type_name]
            unit = BookableUnit(
                code=code,
                kind=kind,
                unit_type_id=unit_type.id,
                floor=floor,
                capacity=unit_type.capacity,
                base_price=unit_type.base_price,
            )
            session.add(unit)
            units[code] = unit
        await session.flush()
        print(f"Created {len(units)} units")

        guests = [Guest(**data) for data in GUESTS]
        session.add_all(guests)
        await session.flush()
        print(f"Created {len(guests)} guests")

        # Standing rules from the start of the year, plus a high-season bump for the cabins.
        today = date.today()
        year_start = date(today.year, 1, 1)
        for unit_type in types.values():
            session.add(
                PricingRule(
                    unit_type_id=unit_type.id,
                    base_price=None,
                    seasonal_multiplier=Decimal("1.00"),
                    weekend_multiplier=Decimal("1.20"),
                    holiday_multiplier=Decimal("1.50"),
                    demand_multiplier=Decimal("1.00"),
                    effective_date=year_start,
                )
            )
        session.add(
            PricingRule(
                unit_type_id=types["Lake Cabin"].id,
                base_price=Decimal("200.00"),
                seasonal_multiplier=Decimal("1.25"),
                weekend_multiplier=Decimal("1.20"),
                holiday_multiplier=Decimal("1.50"),
                demand_multiplier=Decimal("1.10"),
                effective_date=date(today.year, 6, 1),
            )
        )
        await session.commit()
        print(f"Created {len(types) + 1} pricing rules")

        # Bookings go through the engine so intervals and prices stay consistent.
        stays = [
            (guests[0], units["201"], 7, 3, "cash"),
            (guests[1], units["301"], 10, 4, None),
            (guests[2], units["C-1"], 14, 2, "cash"),
            (guests[3], units["401"], 21, 5, None),
            (guests[4], units["202"], 30, 2, "cancel"),
        ]
        for guest, unit, offset, nights, action in stays:
            check_in = today + timedelta(days=offset)
            booking = await create_booking(
                session,
                guest_id=guest.id,
                unit_id=unit.id,
                check_in=check_in,
                check_out=check_in + timedelta(days=nights),
                adults=1,
                created_by="seed",
            )
            if action == "cash":
                await initiate_payment(
                    session,
                    booking_id=booking.id,
                    amount=booking.total_amount,
                    method="cash",
                    metadata={"received_amount": str(booking.total_amount)},
                )
            elif action == "cancel":
                await cancel_booking(session, booking.id, source="seed")
            print(f"   {booking.reference}: unit {unit.code} {check_in} x{nights} = {booking.total_amount}")

        print()
        print("=" * 60)
        print("Seed Summary")
        print("=" * 60)
        print(f"   Unit types: {len(types)}")
        print(f"   Units:      {len(units)}")
        print(f"   Guests:     {len(guests)}")
        print(f"   Bookings:   {len(stays)}")
        print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
