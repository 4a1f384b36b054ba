"""
Tests for locator conversion and great-circle geometry.
"""

import pytest

from utils.geocoding import (
    calculate_bearing, calculate_distance, extract_grids_from_comment, great_circle_path,
    grid_to_latlon, is_valid_grid, latlon_to_grid, normalize_longitude, path_midpoint,
)


def test_grid_to_latlon_square_centre():
    assert grid_to_latlon('FN20') == pytest.approx((40.5, -75.0))
    assert grid_to_latlon('jo51') == pytest.approx((51.5, 11.0))


def test_grid_to_latlon_field_only():
    assert grid_to_latlon('FN') == pytest.approx((45.0, -70.0))


def test_subsquare_lies_inside_its_square():
    lat, lon = grid_to_latlon('FN20xr')
    assert 40.0 <= lat < 41.0
    assert -76.0 <= lon < -74.0


@pytest.mark.parametrize('grid', ['ZZ99', 'FN2', '', None, 'FN20zz', 12])
def test_grid_to_latlon_invalid(grid):
    assert grid_to_latlon(grid) is None


def test_latlon_to_grid():
    assert latlon_to_grid(40.5, -75.0).startswith('FN20')
    assert latlon_to_grid(51.5, 11.0).startswith('JO51')
    # The pole stays inside the last field
    assert latlon_to_grid(90.0, 179.99)[:2] == 'RR'


def test_is_valid_grid():
    assert is_valid_grid('FN20')
    assert is_valid_grid('fn20xr')
    assert not is_valid_grid('FN')
    assert not is_valid_grid('SN20')


@pytest.mark.parametrize('comment, expected', [
    ('FN20<>EM79 tnx', ('FN20', 'EM79')),
    ('FN20->EM79', ('FN20', 'EM79')),
    ('ft8 fn20 em79', ('FN20', 'EM79')),
    ('FT8 JO51 -10dB', (None, 'JO51')),
    ('599 tnx QSO', (None, None)),
    ('TEAM effort', (None, None)),
    ('', (None, None)),
])
def test_extract_grids_from_comment(comment, expected):
    assert extract_grids_from_comment(comment) == expected


def test_normalize_longitude():
    assert normalize_longitude(190) == -170
    assert normalize_longitude(180) == -180
    assert normalize_longitude(-75) == -75


def test_distance_and_bearing():
    assert calculate_distance(0, 0, 0, 1) == pytest.approx(111.19, abs=0.05)
    assert calculate_distance(10, 20, 10, 20) == 0
    assert calculate_bearing(0, 0, 0, 10) == pytest.approx(90)
    assert calculate_bearing(0, 0, 10, 0) == pytest.approx(0)


def test_path_midpoint_across_antimeridian():
    assert path_midpoint(0, 170, 0, -160) == pytest.approx((0, -175))
    assert path_midpoint(10, 10, 20, 30) == pytest.approx((15, 20))


def test_great_circle_path_single_segment():
    segments = great_circle_path(40.5, -75.0, 51.5, 11.0, n=20)
    assert len(segments) == 1
    points = segments[0]
    assert len(points) == 21
    assert points[0] == pytest.approx((40.5, -75.0))
    assert points[-1] == pytest.approx((51.5, 11.0))


def test_great_circle_path_splits_at_antimeridian():
    # Tokyo to Honolulu crosses 180
    segments = great_circle_path(35.7, 139.7, 21.3, -157.9, n=50)

    assert len(segments) == 2
    assert sum(len(segment) for segment in segments) == 51
    for segment in segments:
        for prev, curr in zip(segment, segment[1:]):
            assert abs(curr[1] - prev[1]) <= 180


def test_great_circle_path_degenerate_endpoints():
    assert great_circle_path(10, 10, 10, 10) == [[(10, 10), (10, 10)]]
    assert great_circle_path(0, 0, 0, 180) == [[(0, 0), (0, 180)]]
