"""
Unit tests for olc_distance.
"""

import numpy as np
import pytest

import olc_distance
from flight_stats import straight_line_km
from igc_utils import haversine_km
from olc_distance import best_distance_km, maximum_distance_km, olc_stride


def _random_walk(make_frame, n, seed):
    rng = np.random.default_rng(seed)
    lats = 45.0 + np.cumsum(rng.normal(0, 0.001, n))
    lons = 6.0 + np.cumsum(rng.normal(0, 0.001, n))
    return make_frame([1000] * n, lats=lats, lons=lons)


def _nested_scan(df, step, sep=100):
    lat = df["lat"].to_numpy(float)
    lon = df["lon"].to_numpy(float)
    n = len(lat)
    d = haversine_km(lat[:, None], lon[:, None], lat[None, :], lon[None, :])
    best = 0.0
    for i in range(0, n, step):
        for j in range(i + sep, n, step):
            for k in range(j + sep, n, step):
                best = max(best, d[0, i] + d[i, j] + d[j, k] + d[k, n - 1])
    return best


def test_stride():
    assert olc_stride(99) == 1
    assert olc_stride(999) == 1
    assert olc_stride(1000) == 2
    assert olc_stride(36000) == 72


def test_short_track_returns_straight_line(make_frame):
    df = make_frame([1000] * 99, lats=45.0 + np.arange(99) * 0.001)
    assert best_distance_km(df) == pytest.approx(straight_line_km(df))
    assert best_distance_km(df, straight_km=12.5) == 12.5


def test_too_short_for_three_turnpoints(make_frame):
    # 150 fixes: no k can sit 200 fixes in
    df = make_frame([1000] * 150, lats=45.0 + np.arange(150) * 0.001)
    assert best_distance_km(df) == pytest.approx(straight_line_km(df))


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_never_below_straight_line(make_frame, seed):
    df = _random_walk(make_frame, 700, seed)
    assert best_distance_km(df) >= straight_line_km(df)


def test_matches_nested_scan(make_frame):
    df = _random_walk(make_frame, 260, 11)
    expected = max(straight_line_km(df), _nested_scan(df, step=1))
    assert best_distance_km(df) == pytest.approx(expected, rel=1e-9)


def test_matches_nested_scan_with_stride(make_frame, monkeypatch):
    monkeypatch.setattr(olc_distance, "OLC_TARGET_SAMPLES", 100)
    df = _random_walk(make_frame, 330, 5)
    assert olc_stride(len(df)) == 3
    expected = max(straight_line_km(df), _nested_scan(df, step=3))
    assert best_distance_km(df) == pytest.approx(expected, rel=1e-9)


def test_triangle_beats_straight_line(make_frame):
    # out 0.3 deg north, across 0.3 deg east, back to start
    n = 300
    lats = np.r_[np.linspace(45.0, 45.3, 100), np.full(100, 45.3), np.linspace(45.3, 45.0, 100)]
    lons = np.r_[np.full(100, 6.0), np.linspace(6.0, 6.3, 100), np.linspace(6.3, 6.0, 100)]
    df = make_frame([1000] * n, lats=lats, lons=lons)
    assert straight_line_km(df) == pytest.approx(0.0, abs=1e-9)
    assert best_distance_km(df) > 60.0


def test_maximum_distance(make_frame):
    lats = [45.0, 45.1, 45.2, 45.1, 45.0]
    df = make_frame([1000] * 5, lats=lats)
    assert maximum_distance_km(df) == pytest.approx(haversine_km(45.0, 6.0, 45.2, 6.0))
    assert maximum_distance_km(df) > straight_line_km(df)


def test_maximum_distance_empty(make_frame):
    assert maximum_distance_km(make_frame([])) == 0.0
