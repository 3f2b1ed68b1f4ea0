from datetime import datetime
from decimal import Decimal

import pytest

from call_cost_engine.analytics.lookup import find_user, match_user, user_trend
from call_cost_engine.domain.exceptions import (
    NotFoundError,
    UserNotFoundError,
    ValidationError,
)
from call_cost_engine.domain.models import CallRecord, DateRange, RateEntry

RATES = [RateEntry(origin_country="UK", destination="Germany", price_per_minute="0.05")]


def _call(email: str, when: datetime, seconds: int = 60, name: str = "") -> CallRecord:
    return CallRecord(
        user_name=name,
        user_email=email,
        call_date=when,
        duration_seconds=seconds,
        origin_country="UK",
        dest_country="Germany",
        destination_number="+49301234567",
    )


RECORDS = [
    _call("Alice.Smith@corp.com", datetime(2024, 1, 3), 90, name="Alice S."),
    _call("alice.smith@corp.com", datetime(2024, 3, 9), 90, name="Alice Smith"),
    _call("bob@corp.com", datetime(2024, 2, 1), 60, name="Bob"),
]


def test_match_user_is_case_insensitive_substring():
    matched = match_user(RECORDS, "ALICE")

    assert len(matched) == 2


def test_blank_query_is_a_validation_error():
    with pytest.raises(ValidationError):
        match_user(RECORDS, "   ")


def test_find_user_lists_newest_first_with_identity_from_newest():
    detail = find_user(RECORDS, RATES, "alice")

    assert detail.user_email == "alice.smith@corp.com"
    assert detail.user_name == "Alice Smith"
    assert [call.call_date for call in detail.calls] == [
        datetime(2024, 3, 9),
        datetime(2024, 1, 3),
    ]
    assert detail.total_calls == 2
    assert detail.total_minutes == 3
    assert detail.total_cost == Decimal("0.15")
    assert detail.calls[0].cost == Decimal("0.08")
    assert detail.calls[0].rate_found is True


def test_find_user_respects_date_range():
    detail = find_user(RECORDS, RATES, "alice", date_range=DateRange.for_month(2024, 1))

    assert detail.total_calls == 1
    assert detail.user_name == "Alice S."


def test_unknown_user_raises_not_found():
    with pytest.raises(UserNotFoundError) as excinfo:
        find_user(RECORDS, RATES, "carol")

    assert isinstance(excinfo.value, NotFoundError)
    assert excinfo.value.context == {"query": "carol"}


def test_user_trend_returns_monthly_buckets():
    buckets = user_trend(RECORDS, RATES, "alice")

    assert [b.key for b in buckets] == ["2024-01", "2024-02", "2024-03"]
    assert [b.total_calls for b in buckets] == [1, 0, 1]


def test_user_trend_unknown_user():
    with pytest.raises(UserNotFoundError):
        user_trend(RECORDS, RATES, "nobody")
