"""
Spot filtering for the list and path views.

``matches`` is a pure predicate. Zone and continent filters key off the
spotter's callsign, so they select spots by where the report came from.
"""

import re
from typing import List, Optional, Sequence

from models import Spot, FilterLike, coerce_filters
from dxcc_data import get_callsign_info
from .constants import BAND_RANGES, OTHER_BAND
from .helpers import safe_float

# Checked in order; the digital modes go first so "FT8" is never read as
# something shorter
_MODE_PATTERNS = [
    ('FT8', re.compile(r'FT8')),
    ('FT4', re.compile(r'FT4')),
    ('CW', re.compile(r'\bCW\b')),
    ('SSB', re.compile(r'\b(?:SSB|LSB|USB)\b')),
    ('RTTY', re.compile(r'\bRTTY\b')),
    ('PSK', re.compile(r'\bB?PSK\d*\b')),
    ('AM', re.compile(r'\bAM\b')),
    ('FM', re.compile(r'\bFM\b')),
]


def band_from_freq(freq) -> str:
    """Band name for a frequency in MHz, or ``'other'``."""
    mhz = safe_float(freq)
    if mhz is None:
        return OTHER_BAND
    # Tolerate kHz input
    if mhz >= 1000:
        mhz = mhz / 1000

    for band, low, high in BAND_RANGES:
        if band == '11m':
            if low <= mhz < high:
                return band
        elif low <= mhz <= high:
            return band
    return OTHER_BAND


def detect_mode(comment: Optional[str]) -> Optional[str]:
    """Operating mode named in a spot comment, or ``None``."""
    if not comment:
        return None
    upper = comment.upper()
    for mode, pattern in _MODE_PATTERNS:
        if pattern.search(upper):
            return mode
    return None


def _contains_any(needles: Sequence[str], *haystacks: str) -> bool:
    for needle in needles:
        needle = needle.strip().upper()
        if not needle:
            continue
        for haystack in haystacks:
            if needle in haystack:
                return True
    return False


def matches(spot: Spot, filters: FilterLike) -> bool:
    """True when ``spot`` passes every active filter.

    Checks run in a fixed order and stop at the first rejection: watchlist,
    exclude list, CQ zone, ITU zone, continent, band, mode, callsign search.
    """
    filters = coerce_filters(filters)
    if filters.is_empty():
        return True

    call = (spot.call or '').upper()
    spotter = (spot.spotter or '').upper()

    if filters.watchlist_only and filters.watchlist:
        if not _contains_any(filters.watchlist, call, spotter):
            return False

    if filters.exclude_list and _contains_any(filters.exclude_list, call, spotter):
        return False

    if filters.cq_zones or filters.itu_zones or filters.continents:
        origin = get_callsign_info(spotter)

        if filters.cq_zones:
            if origin['cq_zone'] is None or origin['cq_zone'] not in filters.cq_zones:
                return False

        if filters.itu_zones:
            if origin['itu_zone'] is None or origin['itu_zone'] not in filters.itu_zones:
                return False

        if filters.continents:
            if origin['continent'] is None or origin['continent'] not in filters.continents:
                return False

    if filters.bands and band_from_freq(spot.freq) not in filters.bands:
        return False

    if filters.modes:
        mode = detect_mode(spot.comment)
        if mode is None or mode not in filters.modes:
            return False

    search = filters.callsign.strip().upper()
    if search and search not in call and search not in spotter:
        return False

    return True


def apply_filters(spots: List[Spot], filters: FilterLike) -> List[Spot]:
    """Keep the spots that pass ``filters``, preserving order."""
    filters = coerce_filters(filters)
    if filters.is_empty():
        return list(spots)
    return [spot for spot in spots if matches(spot, filters)]
