"""SQLite-backed call record and rate repositories."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from call_cost_engine.domain.interfaces import ICallRecordRepository, IRateRepository
from call_cost_engine.domain.models import CallRecord, DateRange, RateEntry

_CREATE_CALLS_SQL = """
CREATE TABLE IF NOT EXISTS call_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_name TEXT NOT NULL,
    user_email TEXT NOT NULL,
    call_date TEXT NOT NULL,
    duration INTEGER NOT NULL,
    call_type TEXT NOT NULL,
    source_number TEXT,
    destination_number TEXT,
    origin_country TEXT,
    dest_country TEXT,
    carrier_id INTEGER
);
"""

_CREATE_CALL_INDEXES_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_call_records_date ON call_records (call_date);",
    "CREATE INDEX IF NOT EXISTS idx_call_records_user ON call_records (user_email);",
    "CREATE INDEX IF NOT EXISTS idx_call_records_origin ON call_records (origin_country);",
    "CREATE INDEX IF NOT EXISTS idx_call_records_carrier ON call_records (call_date, carrier_id);",
)

# carrier_key stores -1 for rates without a carrier so the unique lane
# constraint also covers them (NULLs never collide in SQLite indexes).
_CREATE_RATES_SQL = """
CREATE TABLE IF NOT EXISTS rates (
    origin_country TEXT NOT NULL,
    destination TEXT NOT NULL,
    dest_country TEXT NOT NULL,
    call_type TEXT NOT NULL,
    price_per_minute TEXT NOT NULL,
    carrier_key INTEGER NOT NULL,
    effective_date TEXT,
    end_date TEXT,
    PRIMARY KEY (origin_country, destination, call_type, carrier_key)
);
"""

_INSERT_CALL_SQL = """
INSERT INTO call_records (user_name, user_email, call_date, duration, call_type,
    source_number, destination_number, origin_country, dest_country, carrier_id)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_CALLS_SQL = """
SELECT user_name, user_email, call_date, duration, call_type, source_number,
    destination_number, origin_country, dest_country, carrier_id
FROM call_records
"""

_UPSERT_RATE_SQL = """
INSERT INTO rates (origin_country, destination, dest_country, call_type,
    price_per_minute, carrier_key, effective_date, end_date)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(origin_country, destination, call_type, carrier_key) DO UPDATE SET
    dest_country=excluded.dest_country,
    price_per_minute=excluded.price_per_minute,
    effective_date=excluded.effective_date,
    end_date=excluded.end_date;
"""

_SELECT_RATES_SQL = """
SELECT origin_country, destination, dest_country, call_type, price_per_minute,
    carrier_key, effective_date, end_date
FROM rates
"""

_NO_CARRIER = -1


class SQLiteCallRecordRepository(ICallRecordRepository):
    """Stores ingested call records; persistence only, no pricing."""

    def __init__(self, db_path: str | Path):
        self._db_path = str(db_path)
        self._ensure_schema()

    def add(self, records: Iterable[CallRecord]) -> int:
        rows = [self._record_to_row(record) for record in records]
        with sqlite3.connect(self._db_path) as conn:
            conn.executemany(_INSERT_CALL_SQL, rows)
            conn.commit()
        return len(rows)

    def find(
        self,
        *,
        date_range: Optional[DateRange] = None,
        carrier_id: Optional[int] = None,
        origin_country: Optional[str] = None,
    ) -> List[CallRecord]:
        clauses: List[str] = []
        params: List[Any] = []
        if date_range is not None:
            clauses.append("call_date BETWEEN ? AND ?")
            params.extend([date_range.start.isoformat(), date_range.end.isoformat()])
        if carrier_id is not None:
            clauses.append("carrier_id = ?")
            params.append(carrier_id)
        if origin_country is not None:
            clauses.append("origin_country = ?")
            params.append(origin_country)
        sql = _SELECT_CALLS_SQL
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY call_date ASC, id ASC;"
        with sqlite3.connect(self._db_path) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_record(row) for row in rows]

    def delete_all(self) -> int:
        with sqlite3.connect(self._db_path) as conn:
            deleted = conn.execute("DELETE FROM call_records;").rowcount
            conn.commit()
        return deleted

    def _ensure_schema(self) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(_CREATE_CALLS_SQL)
            for statement in _CREATE_CALL_INDEXES_SQL:
                conn.execute(statement)
            conn.commit()

    @staticmethod
    def _record_to_row(record: CallRecord) -> Tuple[Any, ...]:
        return (
            record.user_name,
            record.user_email,
            record.call_date.isoformat(),
            record.duration_seconds,
            record.call_type,
            record.source_number,
            record.destination_number,
            record.origin_country,
            record.dest_country,
            record.carrier_id,
        )

    @staticmethod
    def _row_to_record(row: Tuple[Any, ...]) -> CallRecord:
        (
            user_name,
            user_email,
            call_date,
            duration,
            call_type,
            source_number,
            destination_number,
            origin_country,
            dest_country,
            carrier_id,
        ) = row
        return CallRecord(
            user_name=user_name,
            user_email=user_email,
            call_date=datetime.fromisoformat(call_date),
            duration_seconds=duration,
            call_type=call_type,
            source_number=source_number,
            destination_number=destination_number,
            origin_country=origin_country,
            dest_country=dest_country,
            carrier_id=carrier_id,
        )


class SQLiteRateRepository(IRateRepository):
    """Stores rate entries keyed by lane; writes are upserts."""

    def __init__(self, db_path: str | Path):
        self._db_path = str(db_path)
        self._ensure_schema()

    def upsert(self, entry: RateEntry) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(
                _UPSERT_RATE_SQL,
                (
                    entry.origin_country,
                    entry.destination,
                    entry.dest_country,
                    entry.call_type,
                    str(entry.price_per_minute),
                    _carrier_key(entry.carrier_id),
                    _iso_or_none(entry.effective_date),
                    _iso_or_none(entry.end_date),
                ),
            )
            conn.commit()

    def find(
        self,
        *,
        origin_country: Optional[str] = None,
        carrier_id: Optional[int] = None,
    ) -> List[RateEntry]:
        clauses: List[str] = []
        params: List[Any] = []
        if origin_country is not None:
            clauses.append("origin_country = ?")
            params.append(origin_country)
        if carrier_id is not None:
            clauses.append("carrier_key = ?")
            params.append(carrier_id)
        sql = _SELECT_RATES_SQL
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY origin_country ASC, destination ASC;"
        with sqlite3.connect(self._db_path) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def delete(
        self,
        origin_country: str,
        destination: str,
        call_type: str,
        carrier_id: Optional[int] = None,
    ) -> bool:
        with sqlite3.connect(self._db_path) as conn:
            deleted = conn.execute(
                "DELETE FROM rates WHERE origin_country = ? AND destination = ? "
                "AND call_type = ? AND carrier_key = ?;",
                (origin_country, destination, call_type, _carrier_key(carrier_id)),
            ).rowcount
            conn.commit()
        return deleted > 0

    def delete_all(self) -> int:
        with sqlite3.connect(self._db_path) as conn:
            deleted = conn.execute("DELETE FROM rates;").rowcount
            conn.commit()
        return deleted

    def _ensure_schema(self) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(_CREATE_RATES_SQL)
            conn.commit()

    @staticmethod
    def _row_to_entry(row: Tuple[Any, ...]) -> RateEntry:
        (
            origin_country,
            destination,
            dest_country,
            call_type,
            price,
            carrier_key,
            effective_date,
            end_date,
        ) = row
        return RateEntry(
            origin_country=origin_country,
            destination=destination,
            dest_country=dest_country,
            call_type=call_type,
            price_per_minute=Decimal(price),
            carrier_id=None if carrier_key == _NO_CARRIER else carrier_key,
            effective_date=_parse_or_none(effective_date),
            end_date=_parse_or_none(end_date),
        )


def _carrier_key(carrier_id: Optional[int]) -> int:
    return _NO_CARRIER if carrier_id is None else carrier_id


def _iso_or_none(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_or_none(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None
