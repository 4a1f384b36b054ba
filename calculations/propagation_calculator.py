"""
Propagation calculator for DX paths.

Estimates per-band reliability for a point-to-point HF path over a 24 hour
UTC cycle from solar flux (SFI), sunspot number (SSN) and planetary K-index.
"""

import math
from datetime import datetime
from typing import Dict, List, Optional
import logging

import pytz

from utils.geocoding import calculate_distance, path_midpoint
from .constants import BAND_FREQUENCIES, DEFAULT_SFI, DEFAULT_SSN, DEFAULT_K_INDEX
from .helpers import clamp_reliability, safe_float, snr_from_reliability, status_from_reliability

logger = logging.getLogger(__name__)

MODEL_NAME = 'Heuristic MUF/LUF'


class PropagationCalculator:
    """Calculator for per-band path reliability."""

    def __init__(self, band_frequencies: Optional[Dict[str, float]] = None):
        self.band_frequencies = dict(band_frequencies or BAND_FREQUENCIES)

    @staticmethod
    def calculate_fof2(ssn: float, hour: int) -> float:
        """Diurnal critical frequency estimate, peaking at 12 UTC."""
        return 0.9 * math.sqrt(max(ssn, 0) + 15) * (1 + 0.4 * math.cos((hour - 12) * math.pi / 12))

    def calculate_muf(self, distance_km: float, mid_lat: float, ssn: float, hour: int) -> float:
        """Maximum usable frequency (MHz) for the path at ``hour`` UTC."""
        fof2 = self.calculate_fof2(ssn, hour)
        distance_factor = math.sqrt(1 + distance_km / 3500)
        latitude_factor = 1 - abs(mid_lat) / 200
        return fof2 * distance_factor * latitude_factor * 3.5

    @staticmethod
    def local_solar_hour(hour: int, mid_lon: float) -> float:
        return (hour + mid_lon / 15) % 24

    def calculate_luf(self, sfi: float, k_index: float, hour: int, mid_lon: float = 0.0) -> float:
        """Lowest usable frequency (MHz); D-layer absorption is higher by day."""
        local_hour = self.local_solar_hour(hour, mid_lon)
        day_night = 1.5 if 6 <= local_hour <= 18 else 0.5
        return 2 + (sfi / 100) * day_night + k_index * 0.5

    def reliability(self, freq: float, distance_km: float, mid_lat: float, mid_lon: float,
                    hour: int, sfi: float, ssn: float, k_index: float) -> int:
        """Reliability (0-99) of ``freq`` MHz for the path at ``hour`` UTC."""
        muf = self.calculate_muf(distance_km, mid_lat, ssn, hour)
        luf = self.calculate_luf(sfi, k_index, hour, mid_lon)

        if freq > muf:
            value = max(0.0, 50 - (freq - muf) * 10)
        elif freq < luf:
            value = max(0.0, 50 - (luf - freq) * 15)
        else:
            window = muf - luf
            if window <= 0:
                value = 50.0
            else:
                mid = (muf + luf) / 2
                value = 50 + 45 * (1 - abs(freq - mid) / window)

        # Geomagnetic storms
        if k_index >= 5:
            value *= 0.3
        elif k_index >= 4:
            value *= 0.6
        elif k_index >= 3:
            value *= 0.8

        # Long paths need more hops
        if distance_km > 15000:
            value *= 0.7
        elif distance_km > 10000:
            value *= 0.85

        # High bands need solar flux
        if freq >= 21 and sfi < 100:
            value *= min(1.0, sfi / 100)
        if freq >= 28 and sfi < 120:
            value *= min(1.0, sfi / 120)

        return clamp_reliability(value)

    def predict(self, de_lat: float, de_lon: float, dx_lat: float, dx_lon: float,
                solar: Optional[Dict] = None, current_hour: Optional[int] = None) -> Dict:
        """Predict band reliability between two points.

        Args:
            de_lat, de_lon: Origin coordinates
            dx_lat, dx_lon: Destination coordinates
            solar: Dict with ``sfi``, ``ssn``, ``kIndex`` and optionally ``source``;
                   missing values fall back to the defaults
            current_hour: UTC hour used for ``currentBands``; defaults to now
        """
        solar = solar or {}
        sfi = safe_float(solar.get('sfi'), DEFAULT_SFI)
        ssn = safe_float(solar.get('ssn'), DEFAULT_SSN)
        k_index = safe_float(solar.get('kIndex', solar.get('k_index')), DEFAULT_K_INDEX)

        if current_hour is None:
            current_hour = datetime.now(pytz.utc).hour
        current_hour = int(current_hour) % 24

        distance = calculate_distance(de_lat, de_lon, dx_lat, dx_lon)
        mid_lat, mid_lon = path_midpoint(de_lat, de_lon, dx_lat, dx_lon)

        hourly: Dict[str, List[Dict]] = {}
        current_bands = []
        for band, freq in self.band_frequencies.items():
            predictions = []
            for hour in range(24):
                value = self.reliability(freq, distance, mid_lat, mid_lon, hour, sfi, ssn, k_index)
                predictions.append({'hour': hour, 'reliability': value, 'snr': snr_from_reliability(value)})
            hourly[band] = predictions

            now_value = predictions[current_hour]['reliability']
            current_bands.append({
                'band': band,
                'freq': freq,
                'reliability': now_value,
                'snr': snr_from_reliability(now_value),
                'status': status_from_reliability(now_value),
            })

        current_bands.sort(key=lambda entry: entry['reliability'], reverse=True)

        return {
            'solarData': {
                'sfi': sfi,
                'ssn': ssn,
                'kIndex': k_index,
                'source': solar.get('source', 'default'),
            },
            'distance': round(distance),
            'muf': round(self.calculate_muf(distance, mid_lat, ssn, current_hour), 1),
            'luf': round(self.calculate_luf(sfi, k_index, current_hour, mid_lon), 1),
            'currentHour': current_hour,
            'currentBands': current_bands,
            'hourlyPredictions': hourly,
            'model': MODEL_NAME,
            'dataSource': f"Estimated from SFI {sfi:g}, SSN {ssn:g}, K {k_index:g}",
        }
