"""Fixed engine constants shared by rating, aggregation and estimation."""

from __future__ import annotations

from decimal import Decimal

DEFAULT_CALL_TYPE = "Outbound"
UNKNOWN_KEY = "Unknown"
TOTAL_KEY = "Total"

# Destination labels look like "Afghanistan-Mobile"; the country is the part
# before the first separator.
DESTINATION_SEPARATOR = "-"

ZERO = Decimal("0")
CENTS = Decimal("0.01")
TENTHS = Decimal("0.1")
RATE_PRECISION = Decimal("0.0001")
SECONDS_PER_MINUTE = 60
MONTHS_PER_YEAR = 12
FULL_PERCENT = 100
