"""Engine facade serving the reporting and estimation views."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from call_cost_engine.analytics.aggregator import (
    CostAggregator,
    coerce_group_by,
    filter_records,
    price_calls,
)
from call_cost_engine.analytics.lookup import find_user, user_trend
from call_cost_engine.core.config import EngineConfig
from call_cost_engine.domain.constants import DEFAULT_CALL_TYPE
from call_cost_engine.domain.interfaces import ICallRecordRepository, IRateRepository
from call_cost_engine.domain.models import (
    AggregatedBucket,
    CallRecord,
    DashboardStats,
    DateRange,
    GroupBy,
    RateCatalogStats,
    RateResolution,
    ScenarioInput,
    ScenarioResult,
    TemplateOverview,
    TemplateProfile,
    UserDetail,
)
from call_cost_engine.estimation.estimator import ScenarioEstimator
from call_cost_engine.estimation.templates import (
    TemplateBuilder,
    available_years,
    destination_options,
    origin_options,
    overview,
)
from call_cost_engine.rating.catalog import RateCatalog
from call_cost_engine.utils.validators import validate_limit, validate_month


class CostEngine:
    """High-level API consumed by the HTTP, export and UI collaborators.

    Every call loads a fresh snapshot of calls and rates from the injected
    repositories; nothing resolved is cached between calls.
    """

    def __init__(
        self,
        call_repository: ICallRecordRepository,
        rate_repository: IRateRepository,
        *,
        config: Optional[EngineConfig] = None,
        aggregator: Optional[CostAggregator] = None,
        estimator: Optional[ScenarioEstimator] = None,
        template_builder: Optional[TemplateBuilder] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._calls = call_repository
        self._rates = rate_repository
        self._config = config or EngineConfig()
        self._aggregator = aggregator or CostAggregator()
        self._estimator = estimator or ScenarioEstimator()
        self._templates = template_builder or TemplateBuilder(
            self._config.template_destination_limit
        )
        self._logger = logger or logging.getLogger(__name__)

    @property
    def config(self) -> EngineConfig:
        return self._config

    # ------------------------------------------------------------------
    # Usage reports
    # ------------------------------------------------------------------
    def aggregate(
        self,
        group_by: GroupBy | str,
        *,
        month: Optional[int] = None,
        year: Optional[int] = None,
        date_range: Optional[DateRange] = None,
        carrier_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[AggregatedBucket]:
        window = self._window(month, year, date_range)
        carrier = self._carrier(carrier_id)
        records, catalog = self._load(window, carrier)
        buckets = self._aggregator.aggregate(
            records,
            catalog,
            group_by,
            date_range=window,
            carrier_id=carrier,
            limit=limit,
        )
        self._log_buckets("usage_summary_computed", group_by, buckets)
        return buckets

    def usage_summary(self, **filters: Any) -> List[AggregatedBucket]:
        """Per-user totals, most expensive first."""

        return self.aggregate(GroupBy.USER, **filters)

    def top_users(self, *, limit: Optional[int] = None, **filters: Any) -> List[AggregatedBucket]:
        size = validate_limit(limit if limit is not None else self._config.top_n_limit)
        return self.aggregate(GroupBy.USER, limit=size, **filters)

    def top_destinations(
        self, *, limit: Optional[int] = None, **filters: Any
    ) -> List[AggregatedBucket]:
        size = validate_limit(
            limit if limit is not None else self._config.top_destination_limit
        )
        return self.aggregate(GroupBy.DEST_COUNTRY, limit=size, **filters)

    def locations(self, **filters: Any) -> List[AggregatedBucket]:
        """Per-origin-country totals for the location map."""

        return self.aggregate(GroupBy.ORIGIN_COUNTRY, **filters)

    def monthly_costs(
        self, year: Optional[int] = None, *, carrier_id: Optional[int] = None
    ) -> List[AggregatedBucket]:
        """Twelve month buckets for ``year``; months without calls are zero."""

        selected_year = year if year is not None else datetime.now().year
        return self.aggregate(
            GroupBy.MONTH,
            date_range=DateRange.for_year(selected_year),
            carrier_id=carrier_id,
        )

    def dashboard_stats(
        self,
        *,
        month: Optional[int] = None,
        year: Optional[int] = None,
        date_range: Optional[DateRange] = None,
        carrier_id: Optional[int] = None,
    ) -> DashboardStats:
        window = self._window(month, year, date_range)
        carrier = self._carrier(carrier_id)
        records, catalog = self._load(window, carrier)
        selected = filter_records(records, date_range=window, carrier_id=carrier)
        stats = self._aggregator.dashboard_stats(
            price_calls(selected, catalog, carrier_id=carrier)
        )
        if stats.unrated_calls:
            self._logger.warning(
                "unrated_calls", extra={"count": stats.unrated_calls, "view": "dashboard"}
            )
        return stats

    def user_detail(
        self,
        query: str,
        *,
        month: Optional[int] = None,
        year: Optional[int] = None,
        date_range: Optional[DateRange] = None,
        carrier_id: Optional[int] = None,
    ) -> UserDetail:
        window = self._window(month, year, date_range)
        carrier = self._carrier(carrier_id)
        records, catalog = self._load(window, carrier)
        detail = find_user(records, catalog, query, date_range=window, carrier_id=carrier)
        self._logger.info(
            "user_detail_computed",
            extra={"query": query, "calls": detail.total_calls},
        )
        return detail

    def user_trend(
        self,
        query: str,
        *,
        date_range: Optional[DateRange] = None,
        carrier_id: Optional[int] = None,
    ) -> List[AggregatedBucket]:
        carrier = self._carrier(carrier_id)
        records, catalog = self._load(date_range, carrier)
        return user_trend(
            records,
            catalog,
            query,
            date_range=date_range,
            carrier_id=carrier,
            aggregator=self._aggregator,
        )

    # ------------------------------------------------------------------
    # Rates
    # ------------------------------------------------------------------
    def lookup_rate(
        self,
        origin_country: Optional[str],
        dest_country: Optional[str],
        call_type: str = DEFAULT_CALL_TYPE,
        carrier_id: Optional[int] = None,
    ) -> RateResolution:
        catalog = RateCatalog(self._rates.find(origin_country=origin_country or None))
        return catalog.lookup(
            origin_country, dest_country, call_type, self._carrier(carrier_id)
        )

    def rate_stats(self) -> RateCatalogStats:
        return RateCatalog(self._rates.find()).stats()

    # ------------------------------------------------------------------
    # Estimation
    # ------------------------------------------------------------------
    def estimate(self, scenario: ScenarioInput) -> ScenarioResult:
        if scenario.carrier_id is None and self._config.default_carrier_id is not None:
            scenario = scenario.model_copy(
                update={"carrier_id": self._config.default_carrier_id}
            )
        catalog = RateCatalog(self._rates.find(origin_country=scenario.origin_country))
        return self._estimator.estimate(scenario, catalog.resolver())

    def template(self, origin_country: str, year: Optional[int] = None) -> TemplateProfile:
        selected_year = year if year is not None else datetime.now().year
        records = self._calls.find(
            date_range=DateRange.for_year(selected_year), origin_country=origin_country
        )
        return self._templates.derive(records, origin_country, selected_year)

    def templates(self, year: Optional[int] = None) -> List[TemplateOverview]:
        selected_year = year if year is not None else datetime.now().year
        return overview(
            self._calls.find(date_range=DateRange.for_year(selected_year)), selected_year
        )

    def available_years(self) -> List[int]:
        return available_years(self._calls.find())

    def destination_options(self) -> List[str]:
        return destination_options(self._calls.find(), self._rates.find())

    def origin_options(self) -> List[str]:
        return origin_options(self._rates.find())

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    @staticmethod
    def to_dataframe(rows: Sequence[Any]) -> Any:
        """Export computed rows (buckets, estimates) to a pandas DataFrame."""

        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pandas is required for dataframe export") from exc

        return pd.DataFrame([row.model_dump() for row in rows])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load(
        self, window: Optional[DateRange], carrier_id: Optional[int]
    ) -> Tuple[List[CallRecord], RateCatalog]:
        records = self._calls.find(date_range=window, carrier_id=carrier_id)
        catalog = RateCatalog(self._rates.find(carrier_id=carrier_id))
        return records, catalog

    def _carrier(self, carrier_id: Optional[int]) -> Optional[int]:
        return carrier_id if carrier_id is not None else self._config.default_carrier_id

    @staticmethod
    def _window(
        month: Optional[int], year: Optional[int], date_range: Optional[DateRange]
    ) -> Optional[DateRange]:
        if date_range is not None:
            return date_range
        return validate_month(month, year)

    def _log_buckets(
        self, event: str, group_by: GroupBy | str, buckets: Sequence[AggregatedBucket]
    ) -> None:
        grouping = coerce_group_by(group_by).value
        unrated = sum(bucket.unrated_calls for bucket in buckets)
        self._logger.info(
            event,
            extra={"group_by": grouping, "buckets": len(buckets)},
        )
        if unrated:
            self._logger.warning(
                "unrated_calls", extra={"count": unrated, "group_by": grouping}
            )
