"""
Calculation utilities for the DX Cluster app.

- Spot filtering (band, mode, zones, watchlist)
- Propagation predictions
"""

from .propagation_calculator import PropagationCalculator
from .spot_filter import apply_filters

__all__ = [
    'PropagationCalculator',
    'apply_filters'
]
