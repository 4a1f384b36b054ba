"""
Data sources for the DX Cluster app.

- Spot feeds (DXSpider proxy, HamQTH, WA0O DX cache, POTA, SOTA)
- Solar indices (NOAA SWPC)
"""

from .spots_data import SpotsDataProvider
from .solar_data import SolarDataProvider

__all__ = [
    'SpotsDataProvider',
    'SolarDataProvider'
]
