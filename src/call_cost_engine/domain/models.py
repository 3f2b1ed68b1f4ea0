"""Domain value objects describing calls, rates and computed cost views."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from .constants import (
    CENTS,
    DEFAULT_CALL_TYPE,
    DESTINATION_SEPARATOR,
    RATE_PRECISION,
    ZERO,
)


def derive_dest_country(destination: str) -> str:
    """Return the country part of a destination label ("Afghanistan-Mobile" -> "Afghanistan")."""

    return destination.split(DESTINATION_SEPARATOR)[0].strip()


def to_naive_utc(moment: datetime) -> datetime:
    """Convert an aware timestamp to naive UTC; naive values are taken as UTC already."""

    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


class GroupBy(str, Enum):
    """Grouping keys supported by the aggregator."""

    USER = "user"
    DEST_COUNTRY = "dest_country"
    ORIGIN_COUNTRY = "origin_country"
    MONTH = "month"


class MatchTier(str, Enum):
    """Fallback tier at which a rate lookup matched."""

    EXACT = "exact"
    LABEL = "label"
    RELAXED = "relaxed"
    NONE = "none"


class CallRecord(BaseModel):
    """One observed outbound call, already parsed by the ingestion layer."""

    model_config = ConfigDict(frozen=True)

    user_name: str = ""
    user_email: str
    call_date: datetime
    duration_seconds: int = Field(..., ge=0)
    call_type: str = DEFAULT_CALL_TYPE
    source_number: Optional[str] = None
    destination_number: Optional[str] = None
    origin_country: Optional[str] = None
    dest_country: Optional[str] = None
    carrier_id: Optional[int] = None

    @field_validator("call_date")
    @classmethod
    def normalize_call_date(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class RateEntry(BaseModel):
    """Billing rate for a single lane."""

    model_config = ConfigDict(frozen=True)

    origin_country: str
    destination: str
    dest_country: str = ""
    call_type: str = DEFAULT_CALL_TYPE
    price_per_minute: Decimal = Field(..., ge=0)
    carrier_id: Optional[int] = None
    effective_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def fill_dest_country(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("dest_country"):
            destination = data.get("destination")
            if isinstance(destination, str):
                data = {**data, "dest_country": derive_dest_country(destination)}
        return data

    @field_validator("origin_country", "destination", "call_type")
    @classmethod
    def validate_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("rate lane fields must be non-empty")
        return value

    @field_validator("price_per_minute")
    @classmethod
    def quantize_price(cls, value: Decimal) -> Decimal:
        return value.quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)

    @field_validator("effective_date", "end_date")
    @classmethod
    def normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value) if value is not None else None

    @property
    def key(self) -> Tuple[str, str, str, Optional[int]]:
        """Unique lane identity; upserts on the same key replace the entry."""

        return (self.origin_country, self.destination, self.call_type, self.carrier_id)


class RateResolution(BaseModel):
    """Outcome of resolving one lane against a rate set."""

    model_config = ConfigDict(frozen=True)

    price_per_minute: Decimal = ZERO
    found: bool = False
    tier: MatchTier = MatchTier.NONE
    entry: Optional[RateEntry] = None

    @model_validator(mode="after")
    def validate_consistency(self) -> "RateResolution":
        if self.found != (self.entry is not None):
            raise ValueError("found flag must match presence of a rate entry")
        if self.found == (self.tier == MatchTier.NONE):
            raise ValueError("resolved rates must carry a match tier")
        return self

    @classmethod
    def not_found(cls) -> "RateResolution":
        return cls()

    @classmethod
    def matched(cls, entry: RateEntry, tier: MatchTier) -> "RateResolution":
        return cls(
            price_per_minute=entry.price_per_minute, found=True, tier=tier, entry=entry
        )


class PricedCall(BaseModel):
    """A call paired with its resolved rate and unrounded cost."""

    model_config = ConfigDict(frozen=True)

    record: CallRecord
    resolution: RateResolution
    cost: Decimal = Field(..., ge=0)

    @property
    def display_cost(self) -> Decimal:
        return self.cost.quantize(CENTS, rounding=ROUND_HALF_UP)


class DateRange(BaseModel):
    """Inclusive reporting window."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def normalize_bounds(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("start must not be after end")
        return self

    def contains(self, moment: datetime) -> bool:
        return self.start <= to_naive_utc(moment) <= self.end

    @classmethod
    def for_month(cls, year: int, month: int) -> "DateRange":
        start = datetime(year, month, 1)
        if month == 12:
            following = datetime(year + 1, 1, 1)
        else:
            following = datetime(year, month + 1, 1)
        return cls(start=start, end=following - timedelta(microseconds=1))

    @classmethod
    def for_year(cls, year: int) -> "DateRange":
        return cls(
            start=datetime(year, 1, 1),
            end=datetime(year + 1, 1, 1) - timedelta(microseconds=1),
        )


class AggregatedBucket(BaseModel):
    """Grouped totals for one key (user, country, location or month)."""

    model_config = ConfigDict(frozen=True)

    group_by: GroupBy
    key: str
    label: Optional[str] = None
    total_calls: int = Field(0, ge=0)
    total_seconds: int = Field(0, ge=0)
    total_minutes: int = Field(0, ge=0)
    total_cost: Decimal = Field(ZERO, ge=0)
    distinct_users: Optional[int] = Field(default=None, ge=0)
    unrated_calls: int = Field(0, ge=0)

    @property
    def has_unrated_calls(self) -> bool:
        return self.unrated_calls > 0


class DashboardStats(BaseModel):
    """Headline totals for a reporting period."""

    model_config = ConfigDict(frozen=True)

    total_calls: int
    total_minutes: int
    total_cost: Decimal
    distinct_users: int
    unrated_calls: int
    average_cost_per_call: Decimal


class CallDetail(BaseModel):
    """Per-call line shown in a user detail view."""

    model_config = ConfigDict(frozen=True)

    call_date: datetime
    duration_seconds: int
    call_type: str
    source_number: Optional[str] = None
    destination_number: Optional[str] = None
    origin_country: Optional[str] = None
    dest_country: Optional[str] = None
    price_per_minute: Decimal
    rate_found: bool
    cost: Decimal


class UserDetail(BaseModel):
    """Resolved call list and totals for a looked-up user."""

    model_config = ConfigDict(frozen=True)

    user_name: str
    user_email: str
    total_calls: int
    total_seconds: int
    total_minutes: int
    total_cost: Decimal
    unrated_calls: int
    calls: Tuple[CallDetail, ...] = Field(default_factory=tuple)


class DestinationShare(BaseModel):
    """Share of scenario call volume going to one destination country."""

    model_config = ConfigDict(frozen=True)

    country: str
    percentage: Decimal = Field(..., ge=0)

    @field_validator("country")
    @classmethod
    def validate_country(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("destination country must be non-empty")
        return value


class ScenarioInput(BaseModel):
    """Hypothetical site profile fed to the estimator."""

    model_config = ConfigDict(frozen=True)

    origin_country: str
    user_count: int = Field(..., ge=1)
    calls_per_user_per_month: Decimal = Field(..., gt=0)
    avg_minutes_per_call: Decimal = Field(..., gt=0)
    destinations: Tuple[DestinationShare, ...] = Field(default_factory=tuple)
    carrier_id: Optional[int] = None
    call_type: str = DEFAULT_CALL_TYPE

    @field_validator("origin_country")
    @classmethod
    def validate_origin(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("origin_country must be non-empty")
        return value

    @field_validator("destinations", mode="before")
    @classmethod
    def coerce_pairs(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(
                {"country": item[0], "percentage": item[1]}
                if isinstance(item, (list, tuple))
                else item
                for item in value
            )
        return value


class DestinationEstimate(BaseModel):
    """Projected volume and cost for one scenario destination."""

    model_config = ConfigDict(frozen=True)

    country: str
    percentage: Decimal
    calls: int
    minutes: int
    rate_per_minute: Decimal
    monthly_cost: Decimal
    rate_found: bool
    rate_tier: MatchTier = MatchTier.NONE


class ScenarioSummary(BaseModel):
    """Roll-up of a scenario estimate."""

    model_config = ConfigDict(frozen=True)

    origin_country: str
    user_count: int
    calls_per_user_per_month: Decimal
    avg_minutes_per_call: Decimal
    total_monthly_calls: Decimal
    total_monthly_minutes: Decimal
    monthly_cost: Decimal
    yearly_cost: Decimal
    cost_per_user: Decimal
    percentage_total: Decimal
    carrier_id: Optional[int] = None


class ScenarioResult(BaseModel):
    """Estimator output: summary plus per-destination breakdown."""

    model_config = ConfigDict(frozen=True)

    summary: ScenarioSummary
    breakdown: Tuple[DestinationEstimate, ...] = Field(default_factory=tuple)

    @property
    def unrated_destinations(self) -> Tuple[str, ...]:
        return tuple(item.country for item in self.breakdown if not item.rate_found)


class TemplateDestination(BaseModel):
    """Destination share observed in historical data."""

    model_config = ConfigDict(frozen=True)

    country: str
    calls: int
    percentage: int
    avg_minutes: Decimal


class TemplateProfile(BaseModel):
    """Scenario profile derived from one origin country's history."""

    model_config = ConfigDict(frozen=True)

    origin_country: str
    year: int
    user_count: int
    total_calls: int
    months_with_data: int
    avg_calls_per_user: Decimal
    avg_calls_per_user_per_month: Decimal
    avg_minutes_per_call: Decimal
    destinations: Tuple[TemplateDestination, ...] = Field(default_factory=tuple)

    def to_scenario(self, *, carrier_id: Optional[int] = None) -> ScenarioInput:
        """Pre-fill an estimator input from this profile."""

        return ScenarioInput(
            origin_country=self.origin_country,
            user_count=self.user_count,
            calls_per_user_per_month=self.avg_calls_per_user_per_month,
            avg_minutes_per_call=self.avg_minutes_per_call,
            destinations=tuple(
                DestinationShare(country=item.country, percentage=item.percentage)
                for item in self.destinations
            ),
            carrier_id=carrier_id,
        )


class TemplateOverview(BaseModel):
    """Origin country that has enough history to act as a template."""

    model_config = ConfigDict(frozen=True)

    country: str
    user_count: int
    call_count: int
    year: int


class RateCatalogStats(BaseModel):
    """Counts describing a rate catalog snapshot."""

    model_config = ConfigDict(frozen=True)

    total_rates: int
    origin_countries: int
    destination_countries: int
