"""Input validation helpers used at the engine boundary."""

from __future__ import annotations

from typing import Optional

from call_cost_engine.domain.constants import ZERO
from call_cost_engine.domain.exceptions import InvalidScenarioError, ValidationError
from call_cost_engine.domain.models import DateRange, ScenarioInput


def validate_scenario(scenario: ScenarioInput) -> None:
    """Reject scenarios the estimator cannot price; nothing is clamped."""

    if not scenario.origin_country or not scenario.origin_country.strip():
        raise InvalidScenarioError("origin_country is required")
    if scenario.user_count is None or scenario.user_count < 1:
        raise InvalidScenarioError(
            "user_count must be at least 1", context={"user_count": scenario.user_count}
        )
    if scenario.calls_per_user_per_month is None or scenario.calls_per_user_per_month <= ZERO:
        raise InvalidScenarioError(
            "calls_per_user_per_month must be greater than zero",
            context={"calls_per_user_per_month": scenario.calls_per_user_per_month},
        )
    if scenario.avg_minutes_per_call is None or scenario.avg_minutes_per_call <= ZERO:
        raise InvalidScenarioError(
            "avg_minutes_per_call must be greater than zero",
            context={"avg_minutes_per_call": scenario.avg_minutes_per_call},
        )
    if scenario.destinations is None:
        raise InvalidScenarioError("destinations are required")
    for share in scenario.destinations:
        if share.percentage < ZERO:
            raise InvalidScenarioError(
                "destination percentage must not be negative",
                context={"country": share.country, "percentage": share.percentage},
            )


def validate_month(month: Optional[int], year: Optional[int]) -> Optional[DateRange]:
    """Build a month window from optional filters; both or neither must be given."""

    if month is None and year is None:
        return None
    if month is None or year is None:
        raise ValidationError(
            "month and year must be supplied together",
            context={"month": month, "year": year},
        )
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12", context={"month": month})
    return DateRange.for_month(year, month)


def validate_limit(limit: int) -> int:
    if limit < 1:
        raise ValidationError("limit must be at least 1", context={"limit": limit})
    return limit
