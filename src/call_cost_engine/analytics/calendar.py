"""Calendar-month helpers for trend buckets."""

from __future__ import annotations

from datetime import datetime
from typing import List, Tuple

YearMonth = Tuple[int, int]


def month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def year_month(moment: datetime) -> YearMonth:
    return moment.year, moment.month


def month_span(first: YearMonth, last: YearMonth) -> List[str]:
    """Return every month key from ``first`` to ``last`` inclusive."""

    keys: List[str] = []
    year, month = first
    while (year, month) <= last:
        keys.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return keys


def parse_month_key(key: str) -> YearMonth:
    year, month = key.split("-")
    return int(year), int(month)
