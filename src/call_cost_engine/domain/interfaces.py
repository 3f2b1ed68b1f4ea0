"""Domain-level interfaces defining contracts for engine collaborators."""

from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, Sequence

from .models import (
    AggregatedBucket,
    CallRecord,
    DateRange,
    GroupBy,
    RateEntry,
    RateResolution,
    ScenarioInput,
    ScenarioResult,
)


class ICallRecordRepository(Protocol):
    """Data access for ingested call records."""

    def add(self, records: Iterable[CallRecord]) -> int:
        """Persist the records and return how many were stored."""

    def find(
        self,
        *,
        date_range: Optional[DateRange] = None,
        carrier_id: Optional[int] = None,
        origin_country: Optional[str] = None,
    ) -> List[CallRecord]:
        """Return records matching every supplied filter."""

    def delete_all(self) -> int:
        """Remove every stored record and return the count removed."""


class IRateRepository(Protocol):
    """Data access for rate entries."""

    def upsert(self, entry: RateEntry) -> None:
        """Insert the entry or replace the one sharing its lane key."""

    def find(
        self,
        *,
        origin_country: Optional[str] = None,
        carrier_id: Optional[int] = None,
    ) -> List[RateEntry]:
        """Return rate entries matching every supplied filter."""

    def delete(
        self,
        origin_country: str,
        destination: str,
        call_type: str,
        carrier_id: Optional[int] = None,
    ) -> bool:
        """Delete one lane; return True when a row was removed."""

    def delete_all(self) -> int:
        """Remove every stored rate and return the count removed."""


class IRateResolver(Protocol):
    """Resolves the billable per-minute price for a lane."""

    def resolve(
        self,
        origin_country: Optional[str],
        dest_country: Optional[str],
        call_type: str,
        carrier_id: Optional[int] = None,
    ) -> RateResolution:
        """Return the best matching rate or a not-found resolution."""


class ICostAggregator(Protocol):
    """Folds priced calls into grouped buckets."""

    def aggregate(
        self,
        records: Sequence[CallRecord],
        rates: Sequence[RateEntry],
        group_by: GroupBy,
        *,
        date_range: Optional[DateRange] = None,
        carrier_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[AggregatedBucket]:
        """Return one bucket per group key, ranked for presentation."""


class IScenarioEstimator(Protocol):
    """Projects monthly cost for a hypothetical site."""

    def estimate(
        self, scenario: ScenarioInput, rates: Sequence[RateEntry]
    ) -> ScenarioResult:
        """Return the per-destination breakdown and summary."""

