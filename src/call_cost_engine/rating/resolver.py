"""Geographic rate resolution through the exact -> label -> relaxed fallback."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Hashable, Iterable, Optional, Tuple

from call_cost_engine.domain.constants import DEFAULT_CALL_TYPE
from call_cost_engine.domain.interfaces import IRateResolver
from call_cost_engine.domain.models import MatchTier, RateEntry, RateResolution

# Index keys carry this marker instead of a carrier id when the lookup is not
# restricted to one carrier.
_ANY_CARRIER = object()

_TIERS = (MatchTier.EXACT, MatchTier.LABEL, MatchTier.RELAXED)


def _preference(entry: RateEntry) -> Tuple[str, int, int, str, Decimal]:
    """Sort key deciding between entries that satisfy the same tier."""

    carrier_rank = 0 if entry.carrier_id is None else 1
    return (
        entry.destination,
        carrier_rank,
        entry.carrier_id or 0,
        entry.call_type,
        entry.price_per_minute,
    )


def _lookup_keys(
    entry: RateEntry, scope: Hashable
) -> Iterable[Tuple[MatchTier, Tuple[Hashable, ...]]]:
    yield MatchTier.EXACT, (scope, entry.origin_country, entry.dest_country, entry.call_type)
    yield MatchTier.LABEL, (scope, entry.origin_country, entry.destination, entry.call_type)
    yield MatchTier.RELAXED, (scope, entry.origin_country, entry.dest_country)


class RateResolver(IRateResolver):
    """Resolves lanes against an immutable rate snapshot.

    The snapshot is indexed once at construction so per-call resolution is a
    dictionary lookup per tier. Instances hold no mutable state after
    construction and can be shared across threads for one request.
    """

    def __init__(self, rates: Iterable[RateEntry]) -> None:
        self._index: Dict[MatchTier, Dict[Tuple[Hashable, ...], RateEntry]] = {
            tier: {} for tier in _TIERS
        }
        for entry in rates:
            scopes = [_ANY_CARRIER]
            if entry.carrier_id is not None:
                scopes.append(entry.carrier_id)
            for scope in scopes:
                for tier, key in _lookup_keys(entry, scope):
                    self._keep_preferred(tier, key, entry)

    def resolve(
        self,
        origin_country: Optional[str],
        dest_country: Optional[str],
        call_type: str = DEFAULT_CALL_TYPE,
        carrier_id: Optional[int] = None,
    ) -> RateResolution:
        if not _present(origin_country) or not _present(dest_country):
            return RateResolution.not_found()

        scope: Hashable = _ANY_CARRIER if carrier_id is None else carrier_id
        candidates = (
            (MatchTier.EXACT, (scope, origin_country, dest_country, call_type)),
            (MatchTier.LABEL, (scope, origin_country, dest_country, call_type)),
            (MatchTier.RELAXED, (scope, origin_country, dest_country)),
        )
        for tier, key in candidates:
            entry = self._index[tier].get(key)
            if entry is not None:
                return RateResolution.matched(entry, tier)
        return RateResolution.not_found()

    def _keep_preferred(
        self, tier: MatchTier, key: Tuple[Hashable, ...], entry: RateEntry
    ) -> None:
        bucket = self._index[tier]
        current = bucket.get(key)
        if current is None or _preference(entry) < _preference(current):
            bucket[key] = entry


def resolve_rate(
    rates: Iterable[RateEntry],
    origin_country: Optional[str],
    dest_country: Optional[str],
    call_type: str = DEFAULT_CALL_TYPE,
    carrier_id: Optional[int] = None,
) -> RateResolution:
    """One-shot resolution; build a RateResolver to resolve many calls."""

    return RateResolver(rates).resolve(
        origin_country, dest_country, call_type, carrier_id
    )


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())
