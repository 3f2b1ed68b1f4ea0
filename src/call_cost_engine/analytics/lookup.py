"""Direct user lookup over call records."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from call_cost_engine.domain.exceptions import UserNotFoundError, ValidationError
from call_cost_engine.domain.models import (
    AggregatedBucket,
    CallDetail,
    CallRecord,
    DateRange,
    GroupBy,
    PricedCall,
    RateEntry,
    UserDetail,
)
from call_cost_engine.rating.calculator import total_cost, whole_minutes
from call_cost_engine.rating.resolver import RateResolver

from .aggregator import CostAggregator, filter_records, price_calls


def match_user(records: Iterable[CallRecord], query: str) -> List[CallRecord]:
    """Case-insensitive substring match against user email.

    Grouping elsewhere keys on the exact email string; only this lookup path
    folds case.
    """

    if not query or not query.strip():
        raise ValidationError("User query must be non-empty")
    needle = query.strip().lower()
    return [record for record in records if needle in record.user_email.lower()]


def find_user(
    records: Sequence[CallRecord],
    rates: Iterable[RateEntry] | RateResolver,
    query: str,
    *,
    date_range: Optional[DateRange] = None,
    carrier_id: Optional[int] = None,
) -> UserDetail:
    """Return the resolved calls and totals for the user matching ``query``.

    Raises:
        UserNotFoundError: no record matches the query within the filters.
    """

    selected = filter_records(records, date_range=date_range, carrier_id=carrier_id)
    matched = match_user(selected, query)
    if not matched:
        raise UserNotFoundError(context={"query": query})

    matched.sort(key=lambda record: record.call_date, reverse=True)
    priced = price_calls(matched, rates, carrier_id=carrier_id)
    newest = matched[0]
    total_seconds = sum(item.record.duration_seconds for item in priced)
    return UserDetail(
        user_name=newest.user_name,
        user_email=newest.user_email,
        total_calls=len(priced),
        total_seconds=total_seconds,
        total_minutes=whole_minutes(total_seconds),
        total_cost=total_cost(item.cost for item in priced),
        unrated_calls=sum(1 for item in priced if not item.resolution.found),
        calls=tuple(_detail(item) for item in priced),
    )


def user_trend(
    records: Sequence[CallRecord],
    rates: Iterable[RateEntry] | RateResolver,
    query: str,
    *,
    date_range: Optional[DateRange] = None,
    carrier_id: Optional[int] = None,
    aggregator: Optional[CostAggregator] = None,
) -> List[AggregatedBucket]:
    """Monthly buckets for the matched user, one per calendar month."""

    selected = filter_records(records, date_range=date_range, carrier_id=carrier_id)
    matched = match_user(selected, query)
    if not matched:
        raise UserNotFoundError(context={"query": query})
    aggregator = aggregator or CostAggregator()
    priced = price_calls(matched, rates, carrier_id=carrier_id)
    return aggregator.finalize(
        aggregator.fold(priced, GroupBy.MONTH), GroupBy.MONTH, date_range=date_range
    )


def _detail(item: PricedCall) -> CallDetail:
    record = item.record
    return CallDetail(
        call_date=record.call_date,
        duration_seconds=record.duration_seconds,
        call_type=record.call_type,
        source_number=record.source_number,
        destination_number=record.destination_number,
        origin_country=record.origin_country,
        dest_country=record.dest_country,
        price_per_minute=item.resolution.price_per_minute,
        rate_found=item.resolution.found,
        cost=item.display_cost,
    )
