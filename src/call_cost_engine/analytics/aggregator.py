"""Pure business-logic helpers for cost aggregation."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from call_cost_engine.domain.constants import TOTAL_KEY, UNKNOWN_KEY, ZERO
from call_cost_engine.domain.exceptions import InvalidGroupingError
from call_cost_engine.domain.interfaces import ICostAggregator
from call_cost_engine.domain.models import (
    AggregatedBucket,
    CallRecord,
    DashboardStats,
    DateRange,
    GroupBy,
    PricedCall,
    RateEntry,
)
from call_cost_engine.rating.calculator import call_cost, round_cents, whole_minutes
from call_cost_engine.rating.catalog import RateCatalog
from call_cost_engine.rating.resolver import RateResolver

from .calendar import month_key, month_span, parse_month_key, year_month


@dataclass
class GroupTally:
    """Running totals for one group key.

    Tallies combine by plain summation and set union, so partial tallies
    built from disjoint slices of the input merge into the same result as a
    single pass over all of it.
    """

    calls: int = 0
    seconds: int = 0
    cost: Decimal = ZERO
    unrated: int = 0
    users: Set[str] = field(default_factory=set)
    names: Set[str] = field(default_factory=set)

    def add(self, priced: PricedCall) -> None:
        record = priced.record
        self.calls += 1
        self.seconds += record.duration_seconds
        self.cost += priced.cost
        if not priced.resolution.found:
            self.unrated += 1
        self.users.add(record.user_email)
        if record.user_name:
            self.names.add(record.user_name)

    def combine(self, other: "GroupTally") -> "GroupTally":
        return GroupTally(
            calls=self.calls + other.calls,
            seconds=self.seconds + other.seconds,
            cost=self.cost + other.cost,
            unrated=self.unrated + other.unrated,
            users=self.users | other.users,
            names=self.names | other.names,
        )


Tallies = Dict[str, GroupTally]

_KEY_FUNCTIONS: Mapping[GroupBy, Callable[[CallRecord], Optional[str]]] = {
    GroupBy.USER: lambda record: record.user_email,
    GroupBy.DEST_COUNTRY: lambda record: record.dest_country,
    GroupBy.ORIGIN_COUNTRY: lambda record: record.origin_country,
    GroupBy.MONTH: lambda record: month_key(record.call_date),
}


def coerce_group_by(value: GroupBy | str) -> GroupBy:
    try:
        return GroupBy(value)
    except ValueError as exc:
        raise InvalidGroupingError(
            context={"group_by": value, "allowed": [g.value for g in GroupBy]}
        ) from exc


def group_key(record: CallRecord, group_by: GroupBy) -> str:
    """Bucket key for a record; missing values land in the Unknown bucket."""

    value = _KEY_FUNCTIONS[group_by](record)
    if value is None or not value.strip():
        return UNKNOWN_KEY
    return value


def rank_buckets(
    buckets: Iterable[AggregatedBucket], limit: Optional[int] = None
) -> List[AggregatedBucket]:
    """Order by cost desc, then calls desc, then key asc."""

    ranked = sorted(buckets, key=lambda b: (-b.total_cost, -b.total_calls, b.key))
    if limit is not None:
        return ranked[: max(limit, 0)]
    return ranked


def filter_records(
    records: Iterable[CallRecord],
    *,
    date_range: Optional[DateRange] = None,
    carrier_id: Optional[int] = None,
) -> List[CallRecord]:
    return [
        record
        for record in records
        if (date_range is None or date_range.contains(record.call_date))
        and (carrier_id is None or record.carrier_id == carrier_id)
    ]


def resolver_for(rates: Iterable[RateEntry]) -> RateResolver:
    if isinstance(rates, RateResolver):
        return rates
    if isinstance(rates, RateCatalog):
        return rates.resolver()
    return RateResolver(rates)


def price_calls(
    records: Iterable[CallRecord],
    rates: Iterable[RateEntry] | RateResolver,
    *,
    carrier_id: Optional[int] = None,
) -> List[PricedCall]:
    """Resolve and cost each record independently."""

    resolver = resolver_for(rates)
    priced: List[PricedCall] = []
    for record in records:
        resolution = resolver.resolve(
            record.origin_country, record.dest_country, record.call_type, carrier_id
        )
        priced.append(
            PricedCall(
                record=record,
                resolution=resolution,
                cost=call_cost(record.duration_seconds, resolution.price_per_minute),
            )
        )
    return priced


class CostAggregator(ICostAggregator):
    """Folds priced calls into per-user, per-country and per-month buckets."""

    def aggregate(
        self,
        records: Sequence[CallRecord],
        rates: Iterable[RateEntry] | RateResolver,
        group_by: GroupBy | str,
        *,
        date_range: Optional[DateRange] = None,
        carrier_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[AggregatedBucket]:
        grouping = coerce_group_by(group_by)
        selected = filter_records(records, date_range=date_range, carrier_id=carrier_id)
        priced = price_calls(selected, rates, carrier_id=carrier_id)
        return self.finalize(
            self.fold(priced, grouping), grouping, date_range=date_range, limit=limit
        )

    def fold(self, priced: Iterable[PricedCall], group_by: GroupBy | str) -> Tallies:
        grouping = coerce_group_by(group_by)
        tallies: Tallies = {}
        for item in priced:
            key = group_key(item.record, grouping)
            tallies.setdefault(key, GroupTally()).add(item)
        return tallies

    def merge(self, *partials: Tallies) -> Tallies:
        merged: Tallies = {}
        for partial in partials:
            for key, tally in partial.items():
                merged[key] = merged.get(key, GroupTally()).combine(tally)
        return merged

    def finalize(
        self,
        tallies: Tallies,
        group_by: GroupBy | str,
        *,
        date_range: Optional[DateRange] = None,
        limit: Optional[int] = None,
    ) -> List[AggregatedBucket]:
        """Turn tallies into buckets.

        Month buckets form a complete chronological series and are never
        truncated; ``limit`` applies to ranked groupings only.
        """

        grouping = coerce_group_by(group_by)
        if grouping is GroupBy.MONTH:
            keys = self._month_keys(tallies, date_range)
            return [
                self._to_bucket(key, tallies.get(key, GroupTally()), grouping)
                for key in keys
            ]
        buckets = [
            self._to_bucket(key, tally, grouping) for key, tally in tallies.items()
        ]
        return rank_buckets(buckets, limit)

    def totals(self, tallies: Tallies, group_by: GroupBy | str) -> AggregatedBucket:
        """Collapse every group into a single "Total" bucket."""

        grouping = coerce_group_by(group_by)
        overall = GroupTally()
        for tally in tallies.values():
            overall = overall.combine(tally)
        return AggregatedBucket(
            group_by=grouping,
            key=TOTAL_KEY,
            total_calls=overall.calls,
            total_seconds=overall.seconds,
            total_minutes=whole_minutes(overall.seconds),
            total_cost=round_cents(overall.cost),
            distinct_users=len(overall.users),
            unrated_calls=overall.unrated,
        )

    def dashboard_stats(self, priced: Sequence[PricedCall]) -> DashboardStats:
        tally = GroupTally()
        for item in priced:
            tally.add(item)
        total = round_cents(tally.cost)
        average = round_cents(tally.cost / tally.calls) if tally.calls else ZERO
        return DashboardStats(
            total_calls=tally.calls,
            total_minutes=whole_minutes(tally.seconds),
            total_cost=total,
            distinct_users=len(tally.users),
            unrated_calls=tally.unrated,
            average_cost_per_call=average,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _month_keys(tallies: Tallies, date_range: Optional[DateRange]) -> List[str]:
        if date_range is not None:
            return month_span(year_month(date_range.start), year_month(date_range.end))
        if not tallies:
            return []
        bounds = sorted(tallies)
        return month_span(parse_month_key(bounds[0]), parse_month_key(bounds[-1]))

    @staticmethod
    def _to_bucket(key: str, tally: GroupTally, group_by: GroupBy) -> AggregatedBucket:
        is_user = group_by is GroupBy.USER
        return AggregatedBucket(
            group_by=group_by,
            key=key,
            label=min(tally.names) if is_user and tally.names else None,
            total_calls=tally.calls,
            total_seconds=tally.seconds,
            total_minutes=whole_minutes(tally.seconds),
            total_cost=round_cents(tally.cost),
            distinct_users=None if is_user else len(tally.users),
            unrated_calls=tally.unrated,
        )

