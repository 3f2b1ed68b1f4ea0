from decimal import Decimal

import pytest

from call_cost_engine.rating.calculator import (
    call_cost,
    round_cents,
    round_half_up,
    round_tenths,
    to_decimal,
    total_cost,
    whole_minutes,
)


def test_two_minutes_at_five_cents():
    assert call_cost(120, Decimal("0.05")) == Decimal("0.10")


def test_fractional_minutes_bill_proportionally():
    cost = call_cost(90, Decimal("0.05"))
    assert cost == Decimal("0.075")
    assert round_cents(cost) == Decimal("0.08")


def test_zero_duration_costs_nothing():
    assert call_cost(0, Decimal("0.25")) == Decimal("0")


def test_zero_price_costs_nothing():
    assert call_cost(600, Decimal("0")) == Decimal("0")


def test_negative_duration_is_rejected():
    with pytest.raises(ValueError):
        call_cost(-1, Decimal("0.05"))


def test_float_price_does_not_leak_binary_noise():
    assert call_cost(60, 0.1) == Decimal("0.1")
    assert to_decimal(0.1) == Decimal("0.1")


def test_sum_then_round_differs_from_round_then_sum():
    costs = [call_cost(90, Decimal("0.05"))] * 3
    assert total_cost(costs) == Decimal("0.23")
    assert sum(round_cents(cost) for cost in costs) == Decimal("0.24")


def test_round_half_up_goes_away_from_zero_on_halves():
    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("3.5")) == 4
    assert round_half_up(Decimal("2.49")) == 2


def test_round_tenths():
    assert round_tenths(Decimal("3.45")) == Decimal("3.5")
    assert round_tenths(7) == Decimal("7.0")


def test_whole_minutes_truncates():
    assert whole_minutes(119) == 1
    assert whole_minutes(120) == 2
    assert whole_minutes(59) == 0
