"""Derive estimator templates from historical call data."""

from __future__ import annotations

from collections import Counter, defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence

from call_cost_engine.analytics.aggregator import group_key
from call_cost_engine.analytics.calendar import year_month
from call_cost_engine.domain.constants import FULL_PERCENT, SECONDS_PER_MINUTE
from call_cost_engine.domain.exceptions import TemplateNotFoundError
from call_cost_engine.domain.models import (
    CallRecord,
    DateRange,
    GroupBy,
    RateEntry,
    TemplateDestination,
    TemplateOverview,
    TemplateProfile,
)
from call_cost_engine.rating.calculator import round_half_up, round_tenths

DEFAULT_DESTINATION_LIMIT = 10


class TemplateBuilder:
    """Builds scenario profiles from one origin country's history."""

    def __init__(self, destination_limit: int = DEFAULT_DESTINATION_LIMIT) -> None:
        if destination_limit < 1:
            raise ValueError("destination_limit must be at least 1")
        self._destination_limit = destination_limit

    def derive(
        self, records: Iterable[CallRecord], origin_country: str, year: int
    ) -> TemplateProfile:
        window = DateRange.for_year(year)
        calls = [
            record
            for record in records
            if record.origin_country == origin_country
            and window.contains(record.call_date)
        ]
        if not calls:
            raise TemplateNotFoundError(
                context={"origin_country": origin_country, "year": year}
            )

        total_calls = len(calls)
        total_seconds = sum(record.duration_seconds for record in calls)
        user_count = len({record.user_email for record in calls})
        months = len({year_month(record.call_date) for record in calls})

        per_user = Decimal(total_calls) / user_count
        return TemplateProfile(
            origin_country=origin_country,
            year=year,
            user_count=user_count,
            total_calls=total_calls,
            months_with_data=months,
            avg_calls_per_user=round_tenths(per_user),
            avg_calls_per_user_per_month=round_tenths(per_user / max(months, 1)),
            avg_minutes_per_call=round_tenths(
                Decimal(total_seconds) / total_calls / SECONDS_PER_MINUTE
            ),
            destinations=tuple(self._distribution(calls)),
        )

    def _distribution(self, calls: Sequence[CallRecord]) -> List[TemplateDestination]:
        counts: Counter[str] = Counter()
        seconds: Dict[str, int] = defaultdict(int)
        for record in calls:
            key = group_key(record, GroupBy.DEST_COUNTRY)
            counts[key] += 1
            seconds[key] += record.duration_seconds

        total = len(calls)
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        kept = ranked[: self._destination_limit]
        shares = [
            TemplateDestination(
                country=country,
                calls=count,
                percentage=round_half_up(Decimal(count) * FULL_PERCENT / total),
                avg_minutes=round_tenths(
                    Decimal(seconds[country]) / count / SECONDS_PER_MINUTE
                ),
            )
            for country, count in kept
        ]
        return _absorb_remainder(shares)


def _absorb_remainder(shares: List[TemplateDestination]) -> List[TemplateDestination]:
    """Push the rounding remainder into the largest share so the set sums to 100."""

    if not shares:
        return shares
    remainder = FULL_PERCENT - sum(share.percentage for share in shares)
    if remainder:
        largest = shares[0]
        shares[0] = largest.model_copy(
            update={"percentage": largest.percentage + remainder}
        )
    return shares


def overview(records: Iterable[CallRecord], year: int) -> List[TemplateOverview]:
    """Origin countries with call data in ``year``, busiest first."""

    window = DateRange.for_year(year)
    calls: Counter[str] = Counter()
    users: Dict[str, set] = defaultdict(set)
    for record in records:
        if not record.origin_country or not window.contains(record.call_date):
            continue
        calls[record.origin_country] += 1
        users[record.origin_country].add(record.user_email)
    items = [
        TemplateOverview(
            country=country, user_count=len(users[country]), call_count=count, year=year
        )
        for country, count in calls.items()
    ]
    return sorted(items, key=lambda item: (-item.call_count, item.country))


def available_years(records: Iterable[CallRecord]) -> List[int]:
    return sorted({record.call_date.year for record in records}, reverse=True)


def destination_options(
    records: Iterable[CallRecord], rates: Iterable[RateEntry]
) -> List[str]:
    """Destination countries seen in calls or priced in the catalog."""

    countries = {record.dest_country for record in records if record.dest_country}
    countries.update(entry.dest_country for entry in rates if entry.dest_country)
    return sorted(countries)


def origin_options(rates: Iterable[RateEntry]) -> List[str]:
    """Origin countries that have at least one rate."""

    return sorted({entry.origin_country for entry in rates})
