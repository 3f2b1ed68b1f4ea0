from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from call_cost_engine.domain.models import (
    CallRecord,
    DateRange,
    DestinationShare,
    MatchTier,
    RateEntry,
    RateResolution,
    ScenarioInput,
    TemplateDestination,
    TemplateProfile,
    derive_dest_country,
)


def test_derive_dest_country_takes_leading_segment():
    assert derive_dest_country("Afghanistan-Mobile") == "Afghanistan"
    assert derive_dest_country(" Germany - Fixed ") == "Germany"
    assert derive_dest_country("India") == "India"


def test_rate_entry_derives_dest_country_from_label():
    entry = RateEntry(
        origin_country="UK", destination="Afghanistan-Mobile", price_per_minute="0.3"
    )
    assert entry.dest_country == "Afghanistan"
    assert entry.call_type == "Outbound"
    assert entry.price_per_minute == Decimal("0.3000")


def test_rate_entry_keeps_explicit_dest_country():
    entry = RateEntry(
        origin_country="UK",
        destination="Kosovo-Mobile",
        dest_country="Serbia",
        price_per_minute=Decimal("0.2"),
    )
    assert entry.dest_country == "Serbia"


def test_rate_entry_rejects_negative_price():
    with pytest.raises(ValidationError):
        RateEntry(origin_country="UK", destination="India", price_per_minute="-0.01")


def test_rate_entry_rejects_blank_lane_fields():
    with pytest.raises(ValidationError):
        RateEntry(origin_country="  ", destination="India", price_per_minute="0.01")


def test_rate_entry_key_includes_carrier():
    entry = RateEntry(
        origin_country="UK", destination="India", price_per_minute="0.1", carrier_id=3
    )
    assert entry.key == ("UK", "India", "Outbound", 3)


def test_rate_entry_is_frozen():
    entry = RateEntry(origin_country="UK", destination="India", price_per_minute="0.1")
    with pytest.raises(ValidationError):
        entry.price_per_minute = Decimal("1")  # type: ignore[misc]


def test_call_record_rejects_negative_duration():
    with pytest.raises(ValidationError):
        CallRecord(
            user_email="a@example.com",
            call_date=datetime(2024, 1, 1),
            duration_seconds=-5,
        )


def test_resolution_requires_consistent_tier():
    with pytest.raises(ValidationError):
        RateResolution(found=False, tier=MatchTier.EXACT)


def test_resolution_not_found_defaults():
    resolution = RateResolution.not_found()
    assert resolution.found is False
    assert resolution.price_per_minute == Decimal("0")
    assert resolution.tier is MatchTier.NONE


def test_date_range_for_month_covers_last_day():
    window = DateRange.for_month(2024, 2)
    assert window.contains(datetime(2024, 2, 29, 23, 59, 59))
    assert not window.contains(datetime(2024, 3, 1))
    assert window.start == datetime(2024, 2, 1)


def test_date_range_for_december_rolls_year():
    window = DateRange.for_month(2023, 12)
    assert window.contains(datetime(2023, 12, 31, 12))
    assert not window.contains(datetime(2024, 1, 1))


def test_date_range_rejects_inverted_bounds():
    with pytest.raises(ValidationError):
        DateRange(start=datetime(2024, 2, 1), end=datetime(2024, 1, 1))


def test_scenario_input_accepts_country_percentage_pairs():
    scenario = ScenarioInput(
        origin_country="UK",
        user_count=10,
        calls_per_user_per_month=20,
        avg_minutes_per_call=3,
        destinations=[("Germany", 60), ("India", 40)],
    )
    assert scenario.destinations == (
        DestinationShare(country="Germany", percentage=Decimal("60")),
        DestinationShare(country="India", percentage=Decimal("40")),
    )


def test_scenario_input_rejects_zero_users():
    with pytest.raises(ValidationError):
        ScenarioInput(
            origin_country="UK",
            user_count=0,
            calls_per_user_per_month=20,
            avg_minutes_per_call=3,
        )


def test_template_profile_prefills_scenario():
    profile = TemplateProfile(
        origin_country="UK",
        year=2024,
        user_count=4,
        total_calls=96,
        months_with_data=3,
        avg_calls_per_user=Decimal("24.0"),
        avg_calls_per_user_per_month=Decimal("8.0"),
        avg_minutes_per_call=Decimal("2.5"),
        destinations=(
            TemplateDestination(
                country="India", calls=60, percentage=63, avg_minutes=Decimal("2.0")
            ),
            TemplateDestination(
                country="Germany", calls=36, percentage=37, avg_minutes=Decimal("3.0")
            ),
        ),
    )

    scenario = profile.to_scenario(carrier_id=7)

    assert scenario.user_count == 4
    assert scenario.calls_per_user_per_month == Decimal("8.0")
    assert [share.country for share in scenario.destinations] == ["India", "Germany"]
    assert scenario.carrier_id == 7


def test_call_date_is_normalised_to_naive_utc():
    record = CallRecord(
        user_email="a@example.com",
        call_date="2024-03-31T23:30:00-02:00",
        duration_seconds=60,
    )

    assert record.call_date == datetime(2024, 4, 1, 1, 30)
    assert record.call_date.tzinfo is None


def test_date_range_accepts_aware_bounds_and_moments():
    window = DateRange(
        start=datetime(2024, 3, 1, tzinfo=timezone.utc),
        end=datetime(2024, 3, 31, 23, 59, tzinfo=timezone.utc),
    )

    assert window.start.tzinfo is None
    assert window.contains(datetime(2024, 3, 5, 10, tzinfo=timezone.utc))
    assert DateRange.for_month(2024, 3).contains(
        datetime(2024, 3, 5, 10, tzinfo=timezone(timedelta(hours=5)))
    )
