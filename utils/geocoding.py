"""
Geographic helpers for DX paths.

Maidenhead grid conversion, great-circle distance/bearing/midpoint, and
great-circle polylines for map rendering. Paths that cross the antimeridian
are returned as separate segments, never as unwrapped longitudes.
"""

import logging
import math
import re
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

# Separations below this (radians) are treated as zero or antipodal
_MIN_SEPARATION = 0.0001

_GRID_RE = re.compile(r'^[A-R]{2}(?:[0-9]{2}(?:[A-X]{2}(?:[0-9]{2})?)?)?$')
_GRID_TOKEN = r'[A-Ra-r]{2}[0-9]{2}(?:[A-Xa-x]{2})?'
_DUAL_GRID_RE = re.compile(r'\b(' + _GRID_TOKEN + r')\s*(?:<>|->|/|<)\s*(' + _GRID_TOKEN + r')\b')
_ANY_GRID_RE = re.compile(r'\b(' + _GRID_TOKEN + r')\b')

Point = Tuple[float, float]


def latlon_to_grid(lat: float, lon: float) -> str:
    """Convert latitude/longitude to a 6 character Maidenhead locator."""
    # Keep the poles and the antimeridian inside the last field
    lat = min(max(lat, -90.0), 90.0 - 1e-9)
    lon = normalize_longitude(lon)
    lon = min(max(lon, -180.0), 180.0 - 1e-9)

    lon = lon + 180
    lat = lat + 90

    lon_field = int(lon / 20)
    lat_field = int(lat / 10)

    lon_square = int((lon % 20) / 2)
    lat_square = int(lat % 10)

    lon_subsquare = int((lon % 2) * 12)
    lat_subsquare = int((lat % 1) * 24)

    grid = chr(ord('A') + lon_field) + chr(ord('A') + lat_field)
    grid += str(lon_square) + str(lat_square)
    grid += chr(ord('a') + lon_subsquare) + chr(ord('a') + lat_subsquare)

    return grid


def is_valid_grid(grid: Optional[str]) -> bool:
    """A locator with at least field and square, field letters A-R."""
    if not grid or len(grid) < 4:
        return False
    return bool(_GRID_RE.match(grid.strip().upper()))


def grid_to_latlon(grid: Optional[str]) -> Optional[Point]:
    """Convert a 2/4/6/8 character locator to the (lat, lon) of its centre."""
    if not grid or not isinstance(grid, str):
        return None

    grid = grid.strip().upper()
    if not _GRID_RE.match(grid):
        return None

    lon = (ord(grid[0]) - ord('A')) * 20 - 180.0
    lat = (ord(grid[1]) - ord('A')) * 10 - 90.0
    lon_size, lat_size = 20.0, 10.0

    if len(grid) >= 4:
        lon += int(grid[2]) * 2
        lat += int(grid[3])
        lon_size, lat_size = 2.0, 1.0

    if len(grid) >= 6:
        lon += (ord(grid[4]) - ord('A')) * (5 / 60)
        lat += (ord(grid[5]) - ord('A')) * (2.5 / 60)
        lon_size, lat_size = 5 / 60, 2.5 / 60

    if len(grid) >= 8:
        lon += int(grid[6]) * (0.5 / 60)
        lat += int(grid[7]) * (0.25 / 60)
        lon_size, lat_size = 0.5 / 60, 0.25 / 60

    return (lat + lat_size / 2, lon + lon_size / 2)


def extract_grids_from_comment(comment: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Find locators in a spot comment.

    ``FN20<>EM79``, ``FN20->EM79``, ``FN20/EM79`` and ``FN20<EM79`` name the
    spotter then the DX station. Otherwise two bare locators are read the same
    way, and a single locator belongs to the DX station.

    Returns ``(spotter_grid, dx_grid)``.
    """
    if not comment or not isinstance(comment, str):
        return None, None

    dual = _DUAL_GRID_RE.search(comment)
    if dual:
        first, second = dual.group(1).upper(), dual.group(2).upper()
        if is_valid_grid(first) and is_valid_grid(second):
            return first, second

    grids = [g.upper() for g in _ANY_GRID_RE.findall(comment) if is_valid_grid(g.upper())]
    if len(grids) >= 2:
        return grids[0], grids[1]
    if len(grids) == 1:
        return None, grids[0]
    return None, None


def normalize_longitude(lon: float) -> float:
    """Wrap a longitude into [-180, 180)."""
    return ((lon + 180.0) % 360.0) - 180.0


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (haversine) distance in km."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing in degrees, 0-360 clockwise from north."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_lambda = math.radians(lon2 - lon1)
    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def path_midpoint(lat1: float, lon1: float, lat2: float, lon2: float) -> Point:
    """Arithmetic midpoint used by the propagation model, antimeridian-safe."""
    mid_lat = (lat1 + lat2) / 2
    mid_lon = (lon1 + lon2) / 2
    if abs(lon1 - lon2) > 180:
        mid_lon = (lon1 + lon2 + 360) / 2
        if mid_lon > 180:
            mid_lon -= 360
    return mid_lat, mid_lon


def great_circle_path(lat1: float, lon1: float, lat2: float, lon2: float,
                      n: int = 100) -> List[List[Point]]:
    """Interpolate ``n + 1`` points along the great circle.

    Returns a list of polyline segments. A new segment begins wherever two
    consecutive longitudes differ by more than 180 degrees. Coincident and
    antipodal endpoints have no unique great circle, so those come back as
    one segment holding just the two endpoints.
    """
    n = max(1, int(n))
    phi1, lam1 = math.radians(lat1), math.radians(lon1)
    phi2, lam2 = math.radians(lat2), math.radians(lon2)

    d = 2 * math.asin(math.sqrt(
        math.sin((phi1 - phi2) / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin((lam1 - lam2) / 2) ** 2
    ))

    if d < _MIN_SEPARATION or abs(math.pi - d) < _MIN_SEPARATION:
        return [[(lat1, lon1), (lat2, lon2)]]

    sin_d = math.sin(d)
    points = []
    for i in range(n + 1):
        f = i / n
        a = math.sin((1 - f) * d) / sin_d
        b = math.sin(f * d) / sin_d
        x = a * math.cos(phi1) * math.cos(lam1) + b * math.cos(phi2) * math.cos(lam2)
        y = a * math.cos(phi1) * math.sin(lam1) + b * math.cos(phi2) * math.sin(lam2)
        z = a * math.sin(phi1) + b * math.sin(phi2)
        points.append((
            math.degrees(math.atan2(z, math.sqrt(x * x + y * y))),
            math.degrees(math.atan2(y, x)),
        ))

    segments = [[points[0]]]
    for prev, curr in zip(points, points[1:]):
        if abs(curr[1] - prev[1]) > 180:
            segments.append([])
        segments[-1].append(curr)

    return segments
