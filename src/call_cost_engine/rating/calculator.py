"""Cost calculation and rounding helpers for call billing."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

from call_cost_engine.domain.constants import CENTS, SECONDS_PER_MINUTE, TENTHS, ZERO

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Coerce to Decimal without inheriting binary float noise."""

    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def call_cost(duration_seconds: int, price_per_minute: Number) -> Decimal:
    """Return the unrounded cost of a call; fractional minutes bill proportionally."""

    if duration_seconds < 0:
        raise ValueError("duration_seconds must be non-negative")
    price = to_decimal(price_per_minute)
    if price <= ZERO or duration_seconds == 0:
        return ZERO
    return Decimal(duration_seconds) / Decimal(SECONDS_PER_MINUTE) * price


def round_cents(amount: Number) -> Decimal:
    return to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def round_tenths(amount: Number) -> Decimal:
    return to_decimal(amount).quantize(TENTHS, rounding=ROUND_HALF_UP)


def round_half_up(amount: Number) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""

    return int(to_decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def whole_minutes(duration_seconds: int) -> int:
    """Truncate a duration to whole minutes."""

    return max(duration_seconds, 0) // SECONDS_PER_MINUTE


def total_cost(costs: Iterable[Decimal]) -> Decimal:
    """Sum unrounded costs and round once, at the end."""

    return round_cents(sum(costs, ZERO))
