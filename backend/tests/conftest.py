"""Shared test configuration and fixtures.

Every test gets its own SQLite database file under ``tmp_path`` so that
concurrent sessions in one test see each other's commits, and tests never
see each other's data.
"""

import os

# Settings are read at import time; configure them before hotelops is imported.
os.environ.update(
    {
        "DATABASE_URL": "sqlite+aiosqlite:///./hotelops-test.db",
        "ENVIRONMENT": "test",
        "STRIPE_SECRET_KEY": "sk_test_hotelops",
        "STRIPE_WEBHOOK_SECRET": "whsec_test_hotelops",
        "CHAPA_SECRET_KEY": "CHASECK_TEST-hotelops",
        "CHAPA_WEBHOOK_SECRET": "chapa_test_hotelops",
        "BANK_TRANSFER_WEBHOOK_SECRET": "bank_test_hotelops",
    }
)

from collections.abc import AsyncGenerator, Iterator
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hotelops.api.v1 import webhooks
from hotelops.database import Base, get_db
from hotelops.errors import GatewayUnavailable
from hotelops.gateways import BeginResult, GatewayAdapter, register_gateway
from hotelops.main import app
from hotelops.models import BookableUnit, Guest, PricingRule, UnitType

# ---------------------------------------------------------------------------
# Per-test database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Engine on a fresh SQLite file with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hotelops.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the per-test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(webhooks, "async_session_factory", session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Inventory fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def unit_type(db_session: AsyncSession) -> UnitType:
    unit_type = UnitType(name="Double Room", description="Standard double", base_price=Decimal("100.00"), capacity=2)
    db_session.add(unit_type)
    await db_session.commit()
    return unit_type


@pytest_asyncio.fixture
async def unit(db_session: AsyncSession, unit_type: UnitType) -> BookableUnit:
    """Unit R1: capacity 2, base price 100.00."""
    unit = BookableUnit(
        code="R1",
        kind="room",
        unit_type_id=unit_type.id,
        floor=1,
        capacity=2,
        base_price=Decimal("100.00"),
        status="available",
    )
    db_session.add(unit)
    await db_session.commit()
    return unit


@pytest_asyncio.fixture
async def other_unit(db_session: AsyncSession, unit_type: UnitType) -> BookableUnit:
    unit = BookableUnit(
        code="R2",
        kind="room",
        unit_type_id=unit_type.id,
        floor=1,
        capacity=2,
        base_price=Decimal("100.00"),
        status="available",
    )
    db_session.add(unit)
    await db_session.commit()
    return unit


@pytest_asyncio.fixture
async def pricing_rule(db_session: AsyncSession, unit_type: UnitType) -> PricingRule:
    """Only the weekend multiplier differs from 1."""
    rule = PricingRule(
        unit_type_id=unit_type.id,
        base_price=None,
        seasonal_multiplier=Decimal("1.00"),
        weekend_multiplier=Decimal("1.20"),
        holiday_multiplier=Decimal("1.50"),
        demand_multiplier=Decimal("1.00"),
        effective_date=date(2024, 1, 1),
    )
    db_session.add(rule)
    await db_session.commit()
    return rule


@pytest_asyncio.fixture
async def guest(db_session: AsyncSession) -> Guest:
    guest = Guest(first_name="Abebe", last_name="Kebede", email="abebe@example.com", phone="+251911000001")
    db_session.add(guest)
    await db_session.commit()
    return guest


@pytest.fixture
def inventory(unit, other_unit, pricing_rule, guest) -> dict:
    return {"unit": unit, "other_unit": other_unit, "rule": pricing_rule, "guest": guest}


# ---------------------------------------------------------------------------
# Gateway fixtures
# ---------------------------------------------------------------------------


class FakeGateway(GatewayAdapter):
    """Stands in for Stripe: records begin calls and can simulate an outage."""

    name = "stripe"

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.unavailable = False

    async def begin(self, amount, currency, reference, metadata) -> BeginResult:
        self.calls.append({"amount": amount, "currency": currency, "reference": reference, "metadata": dict(metadata)})
        if self.unavailable:
            raise GatewayUnavailable(self.name, "connection reset by peer")
        return BeginResult(
            external_ref=f"pi_{reference}",
            metadata={"gateway": self.name, "payment_intent": f"pi_{reference}"},
            client_secret=f"pi_{reference}_secret",
        )

    def parse_callback(self, payload, headers):
        return None


@pytest.fixture
def fake_gateway() -> Iterator[FakeGateway]:
    gateway = FakeGateway()
    previous = register_gateway(gateway)
    yield gateway
    register_gateway(previous)
