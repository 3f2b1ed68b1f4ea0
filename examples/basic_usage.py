"""Basic reporting and estimation example using the built-in DI container."""

from datetime import datetime

from call_cost_engine.core.config import EngineConfig
from call_cost_engine.core.container import DIContainer
from call_cost_engine.domain.models import CallRecord, RateEntry, ScenarioInput
from call_cost_engine.storage.sqlite_repository import (
    SQLiteCallRecordRepository,
    SQLiteRateRepository,
)


def main() -> None:
    config = EngineConfig(database_path="demo_calls.db")
    rates = SQLiteRateRepository(config.database_path)
    rates.upsert(
        RateEntry(origin_country="UK", destination="India-Mobile", price_per_minute="0.05")
    )
    SQLiteCallRecordRepository(config.database_path).add(
        [
            CallRecord(
                user_name="Demo User",
                user_email="demo@example.com",
                call_date=datetime(2024, 1, 15, 10),
                duration_seconds=90,
                origin_country="UK",
                dest_country="India",
            )
        ]
    )

    engine = DIContainer.create_engine(config=config)

    for bucket in engine.top_users(year=2024, month=1):
        print(bucket.key, bucket.total_minutes, bucket.total_cost)

    result = engine.estimate(
        ScenarioInput(
            origin_country="UK",
            user_count=25,
            calls_per_user_per_month=40,
            avg_minutes_per_call=4,
            destinations=[("India", 100)],
        )
    )
    print("Monthly:", result.summary.monthly_cost)
    print("Yearly:", result.summary.yearly_cost)


if __name__ == "__main__":
    main()
