"""Dependency injection container for building fully-wired CostEngine instances."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from call_cost_engine.analytics.aggregator import CostAggregator
from call_cost_engine.core.config import EngineConfig
from call_cost_engine.core.engine import CostEngine
from call_cost_engine.domain.interfaces import ICallRecordRepository, IRateRepository
from call_cost_engine.estimation.estimator import ScenarioEstimator
from call_cost_engine.estimation.templates import TemplateBuilder
from call_cost_engine.storage.sqlite_repository import (
    SQLiteCallRecordRepository,
    SQLiteRateRepository,
)


class DIContainer:
    """Factory helpers that assemble a CostEngine with default wiring."""

    @staticmethod
    def create_engine(
        *,
        config: Optional[EngineConfig] = None,
        database_path: str | Path | None = None,
    ) -> CostEngine:
        cfg = config or EngineConfig.from_env()
        db_path = DIContainer._resolve_database_path(cfg, database_path)

        call_repository = SQLiteCallRecordRepository(db_path)
        rate_repository = SQLiteRateRepository(db_path)

        return CostEngine(
            call_repository,
            rate_repository,
            config=cfg,
            aggregator=CostAggregator(),
            estimator=ScenarioEstimator(),
            template_builder=TemplateBuilder(cfg.template_destination_limit),
        )

    @staticmethod
    def create_custom_engine(
        *,
        call_repository: ICallRecordRepository,
        rate_repository: IRateRepository,
        config: Optional[EngineConfig] = None,
        aggregator: Optional[CostAggregator] = None,
        estimator: Optional[ScenarioEstimator] = None,
        template_builder: Optional[TemplateBuilder] = None,
    ) -> CostEngine:
        return CostEngine(
            call_repository,
            rate_repository,
            config=config,
            aggregator=aggregator,
            estimator=estimator,
            template_builder=template_builder,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _resolve_database_path(
        config: EngineConfig, database_path: str | Path | None
    ) -> str:
        """Explicit paths win over the configured one."""
        if database_path is not None and str(database_path).strip():
            return str(database_path)
        return config.database_path
