"""
Canonical record types shared by the spot pipeline.

Every feed adapter produces ``Spot`` records; the filter engine consumes a
``FilterSet`` built from the preferences persisted by the web front end.
"""

import json
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass
class Spot:
    """A report that ``call`` was heard by ``spotter`` on ``freq`` (MHz)."""

    spotter: str
    call: str
    freq: str
    comment: str = ''
    time: str = ''
    source: str = ''
    last_seen: float = 0.0
    spotter_grid: Optional[str] = None
    dx_grid: Optional[str] = None
    spotter_lat: Optional[float] = None
    spotter_lon: Optional[float] = None
    dx_lat: Optional[float] = None
    dx_lon: Optional[float] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        """Identity of a spot: the same station, frequency and reporter."""
        return (self.call, self.freq, self.spotter)

    @property
    def freq_mhz(self) -> float:
        try:
            return float(self.freq)
        except (TypeError, ValueError):
            return 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Render the list-view shape exposed by the API."""
        return {
            'freq': self.freq,
            'call': self.call,
            'comment': self.comment,
            'time': self.time,
            'spotter': self.spotter,
            'source': self.source,
            'timestamp': int(self.last_seen * 1000),
        }


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(',') if item.strip()]
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _as_zone_list(value: Any) -> List[int]:
    zones = []
    for item in _as_list(value):
        try:
            zones.append(int(item))
        except (TypeError, ValueError):
            continue
    return zones


# camelCase keys used by the persisted front-end settings
_FILTER_ALIASES = {
    'cqZones': 'cq_zones',
    'ituZones': 'itu_zones',
    'excludeList': 'exclude_list',
    'watchlistOnly': 'watchlist_only',
    'spotRetentionMinutes': 'spot_retention_minutes',
}


@dataclass
class FilterSet:
    """User-selected spot filters. An empty set passes everything."""

    bands: List[str] = field(default_factory=list)
    modes: List[str] = field(default_factory=list)
    cq_zones: List[int] = field(default_factory=list)
    itu_zones: List[int] = field(default_factory=list)
    continents: List[str] = field(default_factory=list)
    callsign: str = ''
    watchlist: List[str] = field(default_factory=list)
    exclude_list: List[str] = field(default_factory=list)
    watchlist_only: bool = False
    spot_retention_minutes: int = 30

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'FilterSet':
        """Build a FilterSet from persisted settings (camelCase or snake_case).

        Raises ValueError when ``data`` is not a mapping.
        """
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("filters must be a JSON object")

        normalized = {}
        for key, value in data.items():
            normalized[_FILTER_ALIASES.get(key, key)] = value

        retention = normalized.get('spot_retention_minutes') or 30
        try:
            retention = int(retention)
        except (TypeError, ValueError):
            retention = 30

        return cls(
            bands=[str(b) for b in _as_list(normalized.get('bands'))],
            modes=[str(m).upper() for m in _as_list(normalized.get('modes'))],
            cq_zones=_as_zone_list(normalized.get('cq_zones')),
            itu_zones=_as_zone_list(normalized.get('itu_zones')),
            continents=[str(c).upper() for c in _as_list(normalized.get('continents'))],
            callsign=str(normalized.get('callsign') or ''),
            watchlist=[str(w) for w in _as_list(normalized.get('watchlist'))],
            exclude_list=[str(e) for e in _as_list(normalized.get('exclude_list'))],
            watchlist_only=_as_bool(normalized.get('watchlist_only', False)),
            spot_retention_minutes=max(1, retention),
        )

    @classmethod
    def from_json(cls, text: Optional[str]) -> 'FilterSet':
        if not text:
            return cls()
        return cls.from_dict(json.loads(text))

    def to_dict(self) -> Dict[str, Any]:
        """Render with the camelCase keys the front end persists."""
        data = asdict(self)
        for camel, snake in _FILTER_ALIASES.items():
            data[camel] = data.pop(snake)
        return data

    def is_empty(self) -> bool:
        """True when no predicate is active (retention is not a predicate)."""
        return not (
            self.bands or self.modes or self.cq_zones or self.itu_zones
            or self.continents or self.callsign.strip() or self.exclude_list
            or (self.watchlist_only and self.watchlist)
        )


FilterLike = Union[FilterSet, Dict[str, Any], None]


def coerce_filters(filters: FilterLike) -> FilterSet:
    """Accept a FilterSet, a plain settings dict or None."""
    if isinstance(filters, FilterSet):
        return filters
    return FilterSet.from_dict(filters)
