"""Immutable per-request snapshot of rate entries."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from call_cost_engine.domain.constants import DEFAULT_CALL_TYPE
from call_cost_engine.domain.models import RateCatalogStats, RateEntry, RateResolution

from .resolver import RateResolver

LaneKey = Tuple[str, str, str, Optional[int]]


class RateCatalog:
    """Read-only rate set loaded once per request.

    Entries sharing a lane key collapse to the last one supplied, mirroring
    upsert semantics of the rate store.
    """

    def __init__(self, entries: Iterable[RateEntry] = ()) -> None:
        lanes: Dict[LaneKey, RateEntry] = {}
        for entry in entries:
            lanes[entry.key] = entry
        self._entries: Tuple[RateEntry, ...] = tuple(
            sorted(lanes.values(), key=_sort_key)
        )
        self._resolver: Optional[RateResolver] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RateEntry]:
        return iter(self._entries)

    @property
    def entries(self) -> Tuple[RateEntry, ...]:
        return self._entries

    def for_origin(self, origin_country: str) -> "RateCatalog":
        return RateCatalog(e for e in self._entries if e.origin_country == origin_country)

    def for_carrier(self, carrier_id: int) -> "RateCatalog":
        return RateCatalog(e for e in self._entries if e.carrier_id == carrier_id)

    def origins(self) -> List[str]:
        return sorted({entry.origin_country for entry in self._entries})

    def destinations(self, origin_country: Optional[str] = None) -> List[str]:
        return sorted(
            {
                entry.dest_country
                for entry in self._entries
                if origin_country is None or entry.origin_country == origin_country
            }
        )

    def carriers(self) -> List[int]:
        return sorted(
            {entry.carrier_id for entry in self._entries if entry.carrier_id is not None}
        )

    def stats(self) -> RateCatalogStats:
        return RateCatalogStats(
            total_rates=len(self._entries),
            origin_countries=len(self.origins()),
            destination_countries=len(self.destinations()),
        )

    def resolver(self) -> RateResolver:
        """Return the resolver indexing this snapshot, built on first use."""

        if self._resolver is None:
            self._resolver = RateResolver(self._entries)
        return self._resolver

    def lookup(
        self,
        origin_country: Optional[str],
        dest_country: Optional[str],
        call_type: str = DEFAULT_CALL_TYPE,
        carrier_id: Optional[int] = None,
    ) -> RateResolution:
        return self.resolver().resolve(origin_country, dest_country, call_type, carrier_id)


def _sort_key(entry: RateEntry) -> Tuple[str, str, str, int]:
    return (
        entry.origin_country,
        entry.destination,
        entry.call_type,
        entry.carrier_id or 0,
    )
