"""
Shared helper functions for DX cluster calculations.
"""

from typing import Any, Optional
from .constants import (
    STATUS_THRESHOLDS, STATUS_CLOSED, SNR_THRESHOLDS, SNR_FLOOR,
    RELIABILITY_MIN, RELIABILITY_MAX
)


def safe_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Convert ``value`` to float, returning ``default`` when it is not numeric."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(str(value).strip())
    except (ValueError, TypeError):
        return default
    if result != result:  # NaN
        return default
    return result


def clamp_reliability(value: float) -> int:
    """Round and clamp a reliability estimate to an integer percentage."""
    return int(max(RELIABILITY_MIN, min(RELIABILITY_MAX, round(value))))


def status_from_reliability(reliability: float) -> str:
    for threshold, label in STATUS_THRESHOLDS:
        if reliability >= threshold:
            return label
    return STATUS_CLOSED


def snr_from_reliability(reliability: float) -> str:
    for threshold, label in SNR_THRESHOLDS:
        if reliability >= threshold:
            return label
    return SNR_FLOOR


def estimate_ssn_from_sfi(sfi: float) -> int:
    """Rough sunspot number from solar flux, used when the SSN feed is missing."""
    return max(0, round((sfi - 67) / 0.97))
