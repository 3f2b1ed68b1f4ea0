"""Cost projection for prospective office sites."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from call_cost_engine.domain.constants import FULL_PERCENT, MONTHS_PER_YEAR, ZERO
from call_cost_engine.domain.interfaces import IScenarioEstimator
from call_cost_engine.domain.models import (
    DestinationEstimate,
    RateEntry,
    ScenarioInput,
    ScenarioResult,
    ScenarioSummary,
)
from call_cost_engine.rating.calculator import round_cents, round_half_up
from call_cost_engine.rating.resolver import RateResolver
from call_cost_engine.utils.validators import validate_scenario


class ScenarioEstimator(IScenarioEstimator):
    """Synthesizes call volume per destination and prices it.

    Destination percentages are applied as given. They are not required to
    sum to 100; ``ScenarioSummary.percentage_total`` exposes any gap so the
    caller can warn about it.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def estimate(
        self, scenario: ScenarioInput, rates: Iterable[RateEntry] | RateResolver
    ) -> ScenarioResult:
        validate_scenario(scenario)
        resolver = rates if isinstance(rates, RateResolver) else RateResolver(rates)

        total_calls = Decimal(scenario.user_count) * scenario.calls_per_user_per_month
        total_minutes = total_calls * scenario.avg_minutes_per_call

        priced: List[Tuple[Decimal, DestinationEstimate]] = []
        for share in scenario.destinations:
            fraction = share.percentage / FULL_PERCENT
            calls = round_half_up(total_calls * fraction)
            minutes = round_half_up(total_minutes * fraction)
            resolution = resolver.resolve(
                scenario.origin_country,
                share.country,
                scenario.call_type,
                scenario.carrier_id,
            )
            cost = Decimal(minutes) * resolution.price_per_minute
            priced.append(
                (
                    cost,
                    DestinationEstimate(
                        country=share.country,
                        percentage=share.percentage,
                        calls=calls,
                        minutes=minutes,
                        rate_per_minute=resolution.price_per_minute,
                        monthly_cost=round_cents(cost),
                        rate_found=resolution.found,
                        rate_tier=resolution.tier,
                    ),
                )
            )

        monthly_total = sum((cost for cost, _ in priced), ZERO)
        priced.sort(key=lambda item: (-item[0], -item[1].calls, item[1].country))
        breakdown = tuple(estimate for _, estimate in priced)

        summary = ScenarioSummary(
            origin_country=scenario.origin_country,
            user_count=scenario.user_count,
            calls_per_user_per_month=scenario.calls_per_user_per_month,
            avg_minutes_per_call=scenario.avg_minutes_per_call,
            total_monthly_calls=total_calls,
            total_monthly_minutes=total_minutes,
            monthly_cost=round_cents(monthly_total),
            yearly_cost=round_cents(monthly_total * MONTHS_PER_YEAR),
            cost_per_user=round_cents(monthly_total / scenario.user_count),
            percentage_total=sum((s.percentage for s in scenario.destinations), ZERO),
            carrier_id=scenario.carrier_id,
        )
        result = ScenarioResult(summary=summary, breakdown=breakdown)

        self._logger.info(
            "scenario_estimated",
            extra={
                "origin_country": scenario.origin_country,
                "destinations": len(breakdown),
                "monthly_cost": str(summary.monthly_cost),
            },
        )
        if result.unrated_destinations:
            self._logger.warning(
                "unrated_destinations",
                extra={
                    "origin_country": scenario.origin_country,
                    "countries": list(result.unrated_destinations),
                },
            )
        return result
