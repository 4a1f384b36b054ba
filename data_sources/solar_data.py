"""
Solar data provider for the DX Cluster app.

Fetches space-weather indices from NOAA SWPC:
- 10.7 cm solar flux (SFI)
- Planetary K-index, observed and forecast
- Observed sunspot number (SSN)

Each index is best-effort on its own. When a feed is unavailable the
propagation defaults (SFI 150, SSN 100, K 2) are used instead.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz

from data_sources.http_client import TimedRequest
from calculations.constants import DEFAULT_SFI, DEFAULT_SSN, DEFAULT_K_INDEX, API_TIMEOUT_SOLAR
from calculations.helpers import safe_float, estimate_ssn_from_sfi
from utils.logging_config import log_error_once

logger = logging.getLogger(__name__)

NOAA_BASE = 'https://services.swpc.noaa.gov'


class SolarDataProvider:
    """Provider for live solar indices."""

    def __init__(self, cache=None, cache_duration: int = 300, session=None):
        self.flux_url = f"{NOAA_BASE}/json/f107_cm_flux.json"
        self.kp_url = f"{NOAA_BASE}/products/noaa-planetary-k-index.json"
        self.kp_forecast_url = f"{NOAA_BASE}/products/noaa-planetary-k-index-forecast.json"
        self.sunspot_url = f"{NOAA_BASE}/json/solar-cycle/observed-solar-cycle-indices.json"
        self.cache = cache
        self.cache_duration = cache_duration
        self.session = session

    def _get_json(self, url: str) -> Optional[Any]:
        req = TimedRequest(url, timeout=API_TIMEOUT_SOLAR, session=self.session)
        data = req.get_json()
        if data is None and req.last_error:
            log_error_once('Solar', f"{url}: {req.last_error}", logger)
        return data

    def get_solar_indices(self) -> Dict[str, Any]:
        """Current SFI, SSN and K-index for the propagation model.

        Always returns a complete dict. ``source`` is ``'NOAA SWPC'`` when at
        least one index came from the live feeds, ``'default'`` otherwise.
        """
        if self.cache is not None:
            cached = self.cache.get('solar', 'indices')
            if cached:
                return cached

        try:
            indices = self._fetch_indices()
        except Exception as e:
            logger.error(f"Error getting solar indices: {e}")
            return self._get_fallback_indices()

        if self.cache is not None and indices['source'] != 'default':
            self.cache.set('solar', 'indices', indices, self.cache_duration)
        return indices

    def _fetch_indices(self) -> Dict[str, Any]:
        sfi = self._latest_flux(self._get_json(self.flux_url))
        k_index = self._latest_kp(self._get_json(self.kp_url))
        ssn = self._latest_ssn(self._get_json(self.sunspot_url))

        live = any(value is not None for value in (sfi, k_index, ssn))
        if ssn is None and sfi is not None:
            ssn = estimate_ssn_from_sfi(sfi)

        return {
            'sfi': sfi if sfi is not None else DEFAULT_SFI,
            'ssn': ssn if ssn is not None else DEFAULT_SSN,
            'kIndex': k_index if k_index is not None else DEFAULT_K_INDEX,
            'source': 'NOAA SWPC' if live else 'default',
            'timestamp': datetime.now(pytz.utc).isoformat(),
        }

    @staticmethod
    def _latest_flux(data: Any) -> Optional[int]:
        if not isinstance(data, list) or not data:
            return None
        latest = data[-1]
        if not isinstance(latest, dict):
            return None
        flux = safe_float(latest.get('flux', latest.get('value')))
        return round(flux) if flux and flux > 0 else None

    @staticmethod
    def _latest_kp(data: Any) -> Optional[int]:
        # First row is a header
        if not isinstance(data, list) or len(data) < 2:
            return None
        latest = data[-1]
        if not isinstance(latest, (list, tuple)) or len(latest) < 2:
            return None
        kp = safe_float(latest[1])
        return int(kp) if kp is not None else None

    @staticmethod
    def _latest_ssn(data: Any) -> Optional[int]:
        if not isinstance(data, list) or not data:
            return None
        latest = data[-1]
        if not isinstance(latest, dict):
            return None
        ssn = safe_float(latest.get('ssn'))
        return max(0, round(ssn)) if ssn is not None else None

    def get_solar_history(self) -> Dict[str, Any]:
        """Current values plus short histories for display.

        SFI: last 30 daily values. Kp: last 24 three-hour values plus the
        forecast. SSN: last 12 monthly values.
        """
        if self.cache is not None:
            cached = self.cache.get('solar', 'history')
            if cached:
                return cached

        result = {
            'sfi': {'current': None, 'history': []},
            'kp': {'current': None, 'history': [], 'forecast': []},
            'ssn': {'current': None, 'history': []},
            'timestamp': datetime.now(pytz.utc).isoformat(),
        }

        try:
            result['sfi']['history'] = self._flux_history(self._get_json(self.flux_url))
            result['kp']['history'] = self._kp_rows(self._get_json(self.kp_url))[-24:]
            result['kp']['forecast'] = self._kp_rows(self._get_json(self.kp_forecast_url))
            result['ssn']['history'] = self._ssn_history(self._get_json(self.sunspot_url))
        except Exception as e:
            logger.error(f"Error getting solar history: {e}")

        for name in ('sfi', 'kp', 'ssn'):
            history = result[name]['history']
            result[name]['current'] = history[-1]['value'] if history else None

        if self.cache is not None and any(result[name]['history'] for name in ('sfi', 'kp', 'ssn')):
            self.cache.set('solar', 'history', result, self.cache_duration)
        return result

    @staticmethod
    def _flux_history(data: Any) -> List[Dict[str, Any]]:
        if not isinstance(data, list):
            return []
        history = []
        for entry in data[-30:]:
            if not isinstance(entry, dict):
                continue
            value = safe_float(entry.get('flux', entry.get('value')), 0.0)
            history.append({'date': entry.get('time_tag') or entry.get('date'), 'value': round(value)})
        return history

    @staticmethod
    def _kp_rows(data: Any) -> List[Dict[str, Any]]:
        if not isinstance(data, list) or len(data) < 2:
            return []
        rows = []
        for row in data[1:]:
            if isinstance(row, (list, tuple)) and len(row) >= 2:
                rows.append({'time': row[0], 'value': safe_float(row[1], 0.0)})
        return rows

    @staticmethod
    def _ssn_history(data: Any) -> List[Dict[str, Any]]:
        if not isinstance(data, list):
            return []
        history = []
        for entry in data[-12:]:
            if not isinstance(entry, dict):
                continue
            value = safe_float(entry.get('ssn'), 0.0)
            history.append({'date': str(entry.get('time-tag') or entry.get('time_tag') or ''),
                            'value': round(value)})
        return history

    def _get_fallback_indices(self) -> Dict[str, Any]:
        """Degraded-accuracy defaults used when every solar feed fails."""
        return {
            'sfi': DEFAULT_SFI,
            'ssn': DEFAULT_SSN,
            'kIndex': DEFAULT_K_INDEX,
            'source': 'default',
            'timestamp': datetime.now(pytz.utc).isoformat(),
        }
