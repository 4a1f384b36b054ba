"""
DX cluster service.

Owns the spot store and wires the pieces together: polling the feeds,
persisting the user's filters, and building the list, path and propagation
views served by the API.
"""

import logging
import threading
import time
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pytz

from models import FilterSet, FilterLike, Spot, coerce_filters
from database import Database, FILTERS_KEY, SOURCE_KEY
from data_sources.spots_data import SpotsDataProvider
from data_sources.solar_data import SolarDataProvider
from calculations.propagation_calculator import PropagationCalculator
from calculations.spot_filter import apply_filters, band_from_freq, detect_mode
from dxcc_data import estimate_location
from utils.cache_manager import CacheManager
from utils.geocoding import (
    calculate_bearing, calculate_distance, extract_grids_from_comment, grid_to_latlon,
    great_circle_path,
)
from utils.spot_store import SpotStore

logger = logging.getLogger(__name__)

PATH_POINTS = 50


def _round_path(segments) -> List[List[List[float]]]:
    return [[[round(lat, 4), round(lon, 4)] for lat, lon in segment] for segment in segments]


def validate_coordinates(lat: Any, lon: Any, label: str) -> Tuple[float, float]:
    """Parse and range-check a coordinate pair, raising ValueError."""
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        raise ValueError(f"{label} coordinates must be numeric")
    if not -90 <= lat <= 90:
        raise ValueError(f"{label} latitude out of range: {lat}")
    if not -180 <= lon <= 180:
        raise ValueError(f"{label} longitude out of range: {lon}")
    return lat, lon


class DXClusterService:
    """Aggregated spot state plus the derived views."""

    def __init__(self, config, database: Database, cache_manager: CacheManager,
                 spots_provider: Optional[SpotsDataProvider] = None,
                 solar_provider: Optional[SolarDataProvider] = None,
                 calculator: Optional[PropagationCalculator] = None):
        self.config = config
        self.database = database
        self.cache_manager = cache_manager
        self.spots_provider = spots_provider or SpotsDataProvider(config)
        self.solar_provider = solar_provider or SolarDataProvider(
            cache=cache_manager, cache_duration=config.SOLAR_CACHE_TTL)
        self.calculator = calculator or PropagationCalculator()

        filters = self.get_filters()
        self.store = SpotStore(retention_minutes=filters.spot_retention_minutes,
                               max_size=config.SPOT_STORE_MAX)

        self._state_lock = threading.Lock()
        self._polls_completed = 0
        self.last_source: Optional[str] = None
        self.last_poll: Optional[float] = None
        self.last_count = 0

    # Polling

    @property
    def loading(self) -> bool:
        """True until the first poll has finished, with or without data."""
        with self._state_lock:
            return self._polls_completed == 0

    def poll(self, source: Optional[str] = None) -> Dict[str, Any]:
        """Run one poll: fetch through the selection policy, then merge.

        Raises ValueError for an unknown source id.
        """
        source = source or self.get_source()
        seq = self.store.next_sequence()
        spots, used = self.spots_provider.fetch_spots(source)
        applied = self.store.merge(spots, seq)

        with self._state_lock:
            self._polls_completed += 1
            if applied:
                self.last_poll = time.time()
                self.last_count = len(spots)
                if used:
                    self.last_source = used

        if spots:
            logger.info(f"Poll {seq}: {len(spots)} spots from {used}, {len(self.store)} in store")
        else:
            logger.info(f"Poll {seq}: no spots from {source}")

        return {'sequence': seq, 'applied': applied, 'source': used, 'count': len(spots)}

    def poll_task(self):
        """Background entry point; failures are logged and the next tick retries."""
        try:
            self.poll()
        except Exception as e:
            logger.error(f"Spot poll failed: {e}")

    # Preferences

    def get_source(self) -> str:
        stored = self.database.get_user_preference(SOURCE_KEY)
        return stored or self.config.DX_CLUSTER_SOURCE

    def set_source(self, source: str) -> str:
        source = (source or '').strip().lower()
        known = {entry['id'] for entry in self.spots_provider.list_sources()}
        if source not in known:
            raise ValueError(f"Unknown spot source: {source}")
        self.database.store_user_preference(SOURCE_KEY, source)
        return source

    def get_filters(self) -> FilterSet:
        stored = self.database.get_json_preference(FILTERS_KEY)
        if not isinstance(stored, dict):
            return FilterSet(spot_retention_minutes=self.config.SPOT_RETENTION_MINUTES)
        return FilterSet.from_dict(stored)

    def set_filters(self, data: FilterLike) -> Tuple[FilterSet, int]:
        """Persist a new filter set and apply its retention immediately.

        Returns the filters and the number of spots the new retention evicted.
        """
        filters = coerce_filters(data)
        self.database.store_json_preference(FILTERS_KEY, filters.to_dict())
        evicted = self.store.set_retention(filters.spot_retention_minutes)
        if evicted:
            logger.info(f"Retention now {filters.spot_retention_minutes} min, evicted {evicted} spots")
        return filters, evicted

    def _resolve_filters(self, filters: FilterLike) -> FilterSet:
        return self.get_filters() if filters is None else coerce_filters(filters)

    # Views

    def list_view(self, filters: FilterLike = None) -> List[Dict[str, Any]]:
        """Filtered spots, newest first, capped for display."""
        max_spots, _ = self.config.view_limits()
        spots = apply_filters(self.store.snapshot(), self._resolve_filters(filters))
        return [spot.to_dict() for spot in spots[:max_spots]]

    def path_view(self, filters: FilterLike = None) -> List[Dict[str, Any]]:
        """Filtered spots with both endpoints located, plus their great-circle path.

        Spots whose spotter or DX station cannot be placed are left out.
        """
        _, max_paths = self.config.view_limits()
        paths = []
        for spot in apply_filters(self.store.snapshot(), self._resolve_filters(filters)):
            located = self._locate(spot)
            if located is None:
                continue
            paths.append(located)
            if len(paths) >= max_paths:
                break
        return paths

    def _locate(self, spot: Spot) -> Optional[Dict[str, Any]]:
        comment_spotter_grid, comment_dx_grid = extract_grids_from_comment(spot.comment)

        dx = self._resolve_endpoint(spot.call, spot.dx_grid, comment_dx_grid)
        spotter = self._resolve_endpoint(spot.spotter, spot.spotter_grid, comment_spotter_grid)
        if dx is None or spotter is None:
            return None

        located = replace(spot, spotter_lat=spotter['lat'], spotter_lon=spotter['lon'],
                          dx_lat=dx['lat'], dx_lon=dx['lon'],
                          spotter_grid=spotter['grid'], dx_grid=dx['grid'])

        path = great_circle_path(located.spotter_lat, located.spotter_lon,
                                 located.dx_lat, located.dx_lon, PATH_POINTS)
        return {
            'id': f"{located.call}-{located.freq}-{located.spotter}",
            'spotter': located.spotter,
            'spotterLat': located.spotter_lat,
            'spotterLon': located.spotter_lon,
            'spotterGrid': located.spotter_grid,
            'spotterCountry': spotter['country'],
            'spotterLocSource': spotter['source'],
            'dxCall': located.call,
            'dxLat': located.dx_lat,
            'dxLon': located.dx_lon,
            'dxGrid': located.dx_grid,
            'dxCountry': dx['country'],
            'dxLocSource': dx['source'],
            'distance': round(calculate_distance(located.spotter_lat, located.spotter_lon,
                                                 located.dx_lat, located.dx_lon)),
            'bearing': round(calculate_bearing(located.spotter_lat, located.spotter_lon,
                                               located.dx_lat, located.dx_lon)),
            'freq': located.freq,
            'band': band_from_freq(located.freq),
            'mode': detect_mode(located.comment),
            'comment': located.comment,
            'time': located.time,
            'source': located.source,
            'timestamp': int(located.last_seen * 1000),
            'path': _round_path(path),
        }

    @staticmethod
    def _resolve_endpoint(call: str, feed_grid: Optional[str],
                          comment_grid: Optional[str]) -> Optional[Dict[str, Any]]:
        # Feed locator, then a locator in the comment, then the callsign prefix
        for grid in (feed_grid, comment_grid):
            position = grid_to_latlon(grid) if grid else None
            if position is not None:
                return {'lat': position[0], 'lon': position[1], 'grid': grid.upper(),
                        'country': '', 'source': 'grid'}

        estimate = estimate_location(call)
        if estimate is None:
            return None
        return {'lat': estimate['lat'], 'lon': estimate['lon'], 'grid': estimate['grid'],
                'country': estimate['country'], 'source': 'prefix'}

    def status(self) -> Dict[str, Any]:
        stats = self.store.stats()
        with self._state_lock:
            last_poll = self.last_poll
            last_source = self.last_source
            last_count = self.last_count
        return {
            'loading': self.loading,
            'total_spots': stats['total_spots'],
            'last_source': last_source,
            'last_source_name': self.spots_provider.source_name(last_source),
            'last_count': last_count,
            'last_poll': datetime.fromtimestamp(last_poll, tz=pytz.utc).isoformat() if last_poll else None,
            'sequence': stats['sequence'],
            'rejected_polls': stats['rejected_merges'],
            'retention_minutes': stats['retention_minutes'],
            'low_memory_mode': bool(self.config.LOW_MEMORY_MODE),
        }

    # Propagation

    def propagation(self, de_lat: Any, de_lon: Any, dx_lat: Any, dx_lon: Any,
                    current_hour: Optional[int] = None) -> Dict[str, Any]:
        """Band reliability for a path, memoized per path, solar snapshot and hour."""
        de_lat, de_lon = validate_coordinates(de_lat, de_lon, 'DE')
        dx_lat, dx_lon = validate_coordinates(dx_lat, dx_lon, 'DX')

        solar = self.solar_provider.get_solar_indices()
        if current_hour is None:
            current_hour = datetime.now(pytz.utc).hour

        key = (
            f"{de_lat:.2f},{de_lon:.2f}:{dx_lat:.2f},{dx_lon:.2f}:"
            f"{solar['sfi']}:{solar['ssn']}:{solar['kIndex']}:{current_hour}"
        )
        cached = self.cache_manager.get('propagation', key)
        if cached is not None:
            return cached

        result = self.calculator.predict(de_lat, de_lon, dx_lat, dx_lon, solar, current_hour)
        self.cache_manager.set('propagation', key, result)
        return result

    def solar_indices(self) -> Dict[str, Any]:
        return self.solar_provider.get_solar_history()

    def shutdown(self):
        self.spots_provider.close()
