"""Pricing calculator: deterministic per-night dynamic prices.

For each night in ``[check_in, check_out)`` the calculator starts from the
rule's base price, applies the weekend multiplier on weekend nights and the
holiday multiplier on holidays, and always applies the seasonal and demand
multipliers. Each night is rounded to cents (half-up) before summing, so the
total is the sum of the rounded nightly prices.
"""

from __future__ import annotations

import bisect
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hotelops.config import settings
from hotelops.engine.availability import validate_range
from hotelops.engine.holidays import HolidayCalendar, default_calendar
from hotelops.errors import InvalidRange, NoPricingRule
from hotelops.models.pricing_rule import PricingRule

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class NightlyPrice:
    date: date
    price: Decimal
    weekend: bool = False
    holiday: bool = False

    def as_dict(self) -> dict[str, str]:
        return {"date": self.date.isoformat(), "price": str(self.price)}


@dataclass(frozen=True)
class PriceQuote:
    unit_type_id: uuid.UUID
    check_in: date
    check_out: date
    nights: int
    nightly: tuple[NightlyPrice, ...]
    total: Decimal
    rule_id: uuid.UUID | None = None

    @property
    def nightly_prices(self) -> list[Decimal]:
        return [night.price for night in self.nightly]

    def schedule(self) -> list[dict[str, str]]:
        """JSON-friendly per-night schedule, as stored on the booking."""
        return [night.as_dict() for night in self.nightly]


@dataclass
class PricingRuleIndex:
    """Pricing rules of one unit type, sorted by ``(effective_date, created_at)``.

    ``rule_for(day)`` returns the most recent rule effective on or before
    ``day``. Rules sharing an effective date resolve to the one created last.
    """

    unit_type_id: uuid.UUID
    rules: list[PricingRule] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.rules = sorted(self.rules, key=_rule_sort_key)
        self._dates = [rule.effective_date for rule in self.rules]

    def add(self, rule: PricingRule) -> None:
        self.rules.append(rule)
        self.__post_init__()

    def rule_for(self, day: date) -> PricingRule:
        position = bisect.bisect_right(self._dates, day)
        if position == 0:
            raise NoPricingRule(self.unit_type_id, day)
        return self.rules[position - 1]

    def __len__(self) -> int:
        return len(self.rules)


def _rule_sort_key(rule: PricingRule) -> tuple:
    # created_at is filled by the database; rules not yet flushed sort last on their date.
    created = rule.created_at.isoformat() if getattr(rule, "created_at", None) else "~"
    return (rule.effective_date, created)


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def count_nights(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def price_stay(
    rule: PricingRule,
    check_in: date,
    check_out: date,
    *,
    base_price: Decimal | None = None,
    calendar: HolidayCalendar | None = None,
    weekend_days: Iterable[int] | None = None,
) -> PriceQuote:
    """Price a stay under a single rule. Pure: no database access.

    ``base_price`` is used when the rule carries none of its own.
    """
    nights = count_nights(check_in, check_out)
    if nights <= 0:
        raise InvalidRange(check_in, check_out)

    calendar = calendar or default_calendar()
    weekend = frozenset(settings.weekend_days if weekend_days is None else weekend_days)
    start_price = rule.base_price if rule.base_price is not None else base_price
    if start_price is None:
        raise NoPricingRule(rule.unit_type_id, check_in)
    start_price = Decimal(start_price)

    nightly: list[NightlyPrice] = []
    for offset in range(nights):
        day = check_in + timedelta(days=offset)
        is_weekend = day.weekday() in weekend
        is_holiday = calendar.is_holiday(day)

        price = start_price
        if is_weekend:
            price *= rule.weekend_multiplier
        if is_holiday:
            price *= rule.holiday_multiplier
        price *= rule.seasonal_multiplier
        price *= rule.demand_multiplier

        nightly.append(NightlyPrice(day, _round(price), weekend=is_weekend, holiday=is_holiday))

    total = sum((night.price for night in nightly), Decimal("0.00"))
    return PriceQuote(
        unit_type_id=rule.unit_type_id,
        check_in=check_in,
        check_out=check_out,
        nights=nights,
        nightly=tuple(nightly),
        total=total,
        rule_id=rule.id,
    )


async def load_rule_index(db: AsyncSession, unit_type_id: uuid.UUID) -> PricingRuleIndex:
    result = await db.execute(select(PricingRule).where(PricingRule.unit_type_id == unit_type_id))
    return PricingRuleIndex(unit_type_id, list(result.scalars().all()))


async def current_rule(db: AsyncSession, unit_type_id: uuid.UUID, on: date) -> PricingRule:
    """The rule in force for a unit type on a given date."""
    index = await load_rule_index(db, unit_type_id)
    return index.rule_for(on)


async def quote(
    db: AsyncSession,
    unit_type_id: uuid.UUID,
    check_in: date,
    check_out: date,
    *,
    base_price: Decimal | None = None,
    calendar: HolidayCalendar | None = None,
) -> PriceQuote:
    """Quote a stay using the latest rule effective on or before ``check_in``."""
    validate_range(check_in, check_out)
    rule = await current_rule(db, unit_type_id, check_in)
    result = price_stay(rule, check_in, check_out, base_price=base_price, calendar=calendar)
    logger.debug(
        "Quoted unit type %s [%s, %s): %s nights, total %s (rule %s)",
        unit_type_id,
        check_in,
        check_out,
        result.nights,
        result.total,
        rule.id,
    )
    return result
