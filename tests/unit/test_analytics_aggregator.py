from datetime import datetime
from decimal import Decimal

import pytest

from call_cost_engine.analytics.aggregator import (
    CostAggregator,
    group_key,
    price_calls,
    rank_buckets,
)
from call_cost_engine.domain.exceptions import InvalidGroupingError
from call_cost_engine.domain.models import (
    AggregatedBucket,
    CallRecord,
    DateRange,
    GroupBy,
    RateEntry,
)

RATES = [
    RateEntry(origin_country="UK", destination="Germany", price_per_minute="0.05"),
    RateEntry(origin_country="UK", destination="India-Mobile", price_per_minute="0.10"),
    RateEntry(
        origin_country="UK",
        destination="India-Mobile",
        price_per_minute="0.08",
        carrier_id=2,
    ),
]


def _call(
    email: str,
    seconds: int,
    dest: str | None = "Germany",
    when: datetime = datetime(2024, 3, 10, 9, 30),
    *,
    name: str = "",
    origin: str | None = "UK",
    carrier_id: int | None = None,
) -> CallRecord:
    return CallRecord(
        user_name=name,
        user_email=email,
        call_date=when,
        duration_seconds=seconds,
        origin_country=origin,
        dest_country=dest,
        carrier_id=carrier_id,
    )


def _by_key(buckets):
    return {bucket.key: bucket for bucket in buckets}


def test_aggregate_by_user_sums_then_rounds():
    agg = CostAggregator()
    records = [_call("a@x.com", 90), _call("a@x.com", 90), _call("a@x.com", 90)]

    (bucket,) = agg.aggregate(records, RATES, GroupBy.USER)

    assert bucket.total_calls == 3
    assert bucket.total_seconds == 270
    assert bucket.total_minutes == 4
    assert bucket.total_cost == Decimal("0.23")
    assert bucket.distinct_users is None


def test_user_label_uses_display_name():
    agg = CostAggregator()
    records = [_call("a@x.com", 60, name="Alice"), _call("a@x.com", 60)]

    (bucket,) = agg.aggregate(records, RATES, "user")

    assert bucket.label == "Alice"


def test_aggregate_orders_by_cost_then_calls_then_key():
    agg = CostAggregator()
    records = [
        _call("cheap@x.com", 60),
        _call("pricey@x.com", 60, dest="India"),
        _call("b@x.com", 60),
        _call("b@x.com", 0),
    ]

    buckets = agg.aggregate(records, RATES, GroupBy.USER)

    assert [b.key for b in buckets] == ["pricey@x.com", "b@x.com", "cheap@x.com"]


def test_missing_destination_buckets_under_unknown():
    agg = CostAggregator()
    records = [_call("a@x.com", 60, dest=None), _call("b@x.com", 60, dest="  ")]

    buckets = agg.aggregate(records, RATES, GroupBy.DEST_COUNTRY)

    assert [b.key for b in buckets] == ["Unknown"]
    assert buckets[0].distinct_users == 2
    assert buckets[0].unrated_calls == 2
    assert buckets[0].total_cost == Decimal("0.00")


def test_unrated_calls_are_counted_not_hidden():
    agg = CostAggregator()
    records = [_call("a@x.com", 60), _call("a@x.com", 60, dest="Peru")]

    (bucket,) = agg.aggregate(records, RATES, GroupBy.USER)

    assert bucket.total_calls == 2
    assert bucket.unrated_calls == 1
    assert bucket.has_unrated_calls
    assert bucket.total_cost == Decimal("0.05")


def test_distinct_users_are_case_sensitive():
    agg = CostAggregator()
    records = [_call("Bob@x.com", 60), _call("bob@x.com", 60)]

    (bucket,) = agg.aggregate(records, RATES, GroupBy.DEST_COUNTRY)
    users = agg.aggregate(records, RATES, GroupBy.USER)

    assert bucket.distinct_users == 2
    assert len(users) == 2


def test_date_range_and_carrier_filter_before_grouping():
    agg = CostAggregator()
    records = [
        _call("a@x.com", 60, dest="India", carrier_id=2),
        _call("a@x.com", 60, dest="India", carrier_id=3),
        _call("a@x.com", 60, dest="India", when=datetime(2024, 4, 1), carrier_id=2),
    ]

    (bucket,) = agg.aggregate(
        records,
        RATES,
        GroupBy.ORIGIN_COUNTRY,
        date_range=DateRange.for_month(2024, 3),
        carrier_id=2,
    )

    assert bucket.total_calls == 1
    assert bucket.total_cost == Decimal("0.08")


def test_month_grouping_fills_gaps_chronologically():
    agg = CostAggregator()
    records = [
        _call("a@x.com", 60, when=datetime(2024, 3, 31, 23, 59)),
        _call("a@x.com", 120, when=datetime(2024, 1, 5)),
    ]

    buckets = agg.aggregate(records, RATES, GroupBy.MONTH)

    assert [b.key for b in buckets] == ["2024-01", "2024-02", "2024-03"]
    assert buckets[1].total_calls == 0
    assert buckets[1].total_cost == Decimal("0")
    assert buckets[2].total_cost == Decimal("0.05")


def test_month_grouping_spans_date_range():
    agg = CostAggregator()
    records = [_call("a@x.com", 60, when=datetime(2024, 6, 1))]

    buckets = agg.aggregate(
        records, RATES, GroupBy.MONTH, date_range=DateRange.for_year(2024)
    )

    assert len(buckets) == 12
    assert buckets[0].key == "2024-01"
    assert buckets[-1].key == "2024-12"
    assert sum(b.total_calls for b in buckets) == 1


def test_limit_keeps_top_buckets():
    agg = CostAggregator()
    records = [_call(f"u{i}@x.com", 60 * (i + 1)) for i in range(5)]

    buckets = agg.aggregate(records, RATES, GroupBy.USER, limit=2)

    assert [b.key for b in buckets] == ["u4@x.com", "u3@x.com"]


def test_fold_and_merge_is_associative():
    agg = CostAggregator()
    records = [
        _call("a@x.com", 90),
        _call("b@x.com", 45, dest="India"),
        _call("a@x.com", 30, dest="Peru"),
        _call("c@x.com", 200, dest=None),
        _call("b@x.com", 61),
    ]
    priced = price_calls(records, RATES)

    whole = agg.finalize(agg.fold(priced, GroupBy.DEST_COUNTRY), GroupBy.DEST_COUNTRY)
    merged = agg.merge(
        agg.fold(priced[:2], GroupBy.DEST_COUNTRY),
        agg.fold(priced[2:], GroupBy.DEST_COUNTRY),
    )

    assert agg.finalize(merged, GroupBy.DEST_COUNTRY) == whole


def test_totals_collapse_all_groups():
    agg = CostAggregator()
    records = [_call("a@x.com", 90), _call("b@x.com", 90), _call("b@x.com", 90)]
    tallies = agg.fold(price_calls(records, RATES), GroupBy.USER)

    total = agg.totals(tallies, GroupBy.USER)

    assert total.key == "Total"
    assert total.total_calls == 3
    assert total.distinct_users == 2
    assert total.total_cost == Decimal("0.23")


def test_dashboard_stats():
    agg = CostAggregator()
    records = [_call("a@x.com", 120), _call("b@x.com", 60, dest="Peru")]

    stats = agg.dashboard_stats(price_calls(records, RATES))

    assert stats.total_calls == 2
    assert stats.total_minutes == 3
    assert stats.total_cost == Decimal("0.10")
    assert stats.distinct_users == 2
    assert stats.unrated_calls == 1
    assert stats.average_cost_per_call == Decimal("0.05")


def test_dashboard_stats_empty():
    stats = CostAggregator().dashboard_stats([])

    assert stats.total_calls == 0
    assert stats.average_cost_per_call == Decimal("0")


def test_unknown_grouping_is_rejected():
    with pytest.raises(InvalidGroupingError):
        CostAggregator().aggregate([], RATES, "carrier")


def test_group_key_for_month():
    record = _call("a@x.com", 60, when=datetime(2024, 11, 2))
    assert group_key(record, GroupBy.MONTH) == "2024-11"


def test_rank_buckets_breaks_ties_by_key():
    buckets = [
        AggregatedBucket(group_by=GroupBy.USER, key=key, total_calls=1)
        for key in ("b", "a", "c")
    ]
    assert [b.key for b in rank_buckets(buckets)] == ["a", "b", "c"]


def test_aware_call_dates_aggregate_under_month_window():
    record = CallRecord(
        user_email="a@x.com",
        call_date="2024-03-05T10:00:00Z",
        duration_seconds=60,
        origin_country="UK",
        dest_country="Germany",
    )

    (bucket,) = CostAggregator().aggregate(
        [record], RATES, GroupBy.USER, date_range=DateRange.for_month(2024, 3)
    )
    months = CostAggregator().aggregate([record], RATES, GroupBy.MONTH)

    assert bucket.total_calls == 1
    assert bucket.total_cost == Decimal("0.05")
    assert [b.key for b in months] == ["2024-03"]


def test_month_grouping_ignores_limit():
    agg = CostAggregator()
    records = [_call("a@x.com", 60, when=datetime(2024, m, 1)) for m in (1, 2, 3)]

    buckets = agg.aggregate(records, RATES, GroupBy.MONTH, limit=1)

    assert [b.key for b in buckets] == ["2024-01", "2024-02", "2024-03"]
