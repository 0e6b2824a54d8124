"""Tests for great-circle distances, bearings and derived per-sample metrics."""

import math

import numpy as np
import pandas as pd
import pytest

from banshee import constants
from banshee import metrics
from banshee.models import GeoPoint


def test_distance_to_self_is_zero():
    p = GeoPoint(lat=51.5, lon=-0.12)
    assert metrics.distance(p, p) == 0.0


def test_distance_is_symmetric(five_point_track):
    a, b = five_point_track[0], five_point_track[-1]
    assert metrics.distance(a, b) == pytest.approx(metrics.distance(b, a))


def test_one_degree_of_latitude():
    a = GeoPoint(lat=0.0, lon=0.0)
    b = GeoPoint(lat=1.0, lon=0.0)
    expected = constants.EARTH_RADIUS_M * math.pi / 180.0
    assert metrics.distance(a, b) == pytest.approx(expected, rel=1e-9)


def test_antipodal_points_do_not_produce_nan():
    a = GeoPoint(lat=0.0, lon=0.0)
    b = GeoPoint(lat=0.0, lon=180.0)
    d = metrics.distance(a, b)
    assert not math.isnan(d)
    assert d == pytest.approx(math.pi * constants.EARTH_RADIUS_M)


def test_haversine_is_vectorized():
    lats = np.array([0.0, 1.0, 2.0])
    lons = np.zeros(3)
    d = metrics.haversine_m(lats[:-1], lons[:-1], lats[1:], lons[1:])
    assert d.shape == (2,)
    assert d[0] == pytest.approx(d[1])


def test_geopoint_distance_to_matches_distance(five_point_track):
    a, b = five_point_track[:2]
    assert a.distance_to(b) == metrics.distance(a, b)


def test_five_point_track_total(five_point_track):
    total = metrics.total_distance(five_point_track)
    assert 200.0 < total < 210.0


@pytest.mark.parametrize("n_points", [2, 5, 50])
def test_equally_spaced_total(uniform_track, n_points):
    track = uniform_track(n_points, step_m=25.0, bearing_deg=60.0)
    assert metrics.total_distance(track) == pytest.approx((n_points - 1) * 25.0, abs=1e-6)


def test_total_distance_of_short_tracks():
    assert metrics.total_distance([]) == 0.0
    assert metrics.total_distance([GeoPoint(lat=1.0, lon=1.0)]) == 0.0


def test_cumulative_distances(five_point_track):
    cum = metrics.cumulative_distances(five_point_track)
    assert len(cum) == len(five_point_track)
    assert cum[0] == 0.0
    assert np.all(np.diff(cum) > 0)
    assert cum[-1] == pytest.approx(metrics.total_distance(five_point_track))


def test_cumulative_distances_edge_cases():
    assert len(metrics.cumulative_distances([])) == 0
    assert list(metrics.cumulative_distances([GeoPoint(lat=1.0, lon=1.0)])) == [0.0]


@pytest.mark.parametrize(
    "lat, lon, expected",
    [
        (1.0, 0.0, 0.0),
        (0.0, 1.0, 90.0),
        (-1.0, 0.0, 180.0),
        (0.0, -1.0, 270.0),
    ],
)
def test_bearing_cardinal_directions(lat, lon, expected):
    origin = GeoPoint(lat=0.0, lon=0.0)
    assert metrics.bearing(origin, GeoPoint(lat=lat, lon=lon)) == pytest.approx(expected)


def test_bearing_range(five_point_track):
    for a, b in zip(five_point_track, five_point_track[1:]):
        assert 0.0 <= metrics.bearing(a, b) < 360.0
        assert 0.0 <= metrics.bearing(b, a) < 360.0


def test_destination_point_round_trip():
    lat, lon = metrics.destination_point(47.0, 8.0, 135.0, 1234.5)
    d = metrics.distance(GeoPoint(lat=47.0, lon=8.0), GeoPoint(lat=lat, lon=lon))
    assert d == pytest.approx(1234.5, abs=1e-6)


def test_latlon_to_xy_axes():
    ref_lat, ref_lon = np.deg2rad(45.0), np.deg2rad(7.0)
    x, y = metrics.latlon_to_xy(np.array([45.0, 45.001]), np.array([7.001, 7.0]), ref_lat, ref_lon)
    assert x[0] > 0 and y[0] == pytest.approx(0.0)
    assert x[1] == pytest.approx(0.0) and y[1] > 0


def test_compute_derived_metrics(five_point_track):
    df = pd.DataFrame([p.to_dict() for p in five_point_track])
    result = metrics.compute_derived_metrics(df)

    for column in ("elapsed_s", "segment_distance_m", "distance_m", "speed_mps", "pace_sec_per_km", "bearing_deg"):
        assert column in result.columns
    assert list(result["elapsed_s"]) == [0.0, 5.0, 10.0, 15.0, 20.0]
    assert result["distance_m"].iloc[-1] == pytest.approx(metrics.total_distance(five_point_track))
    # ~51 m every 5 s
    assert result["speed_mps"].iloc[-1] == pytest.approx(10.2, abs=0.2)
    assert result["pace_sec_per_km"].iloc[-1] == pytest.approx(1000.0 / result["speed_mps"].iloc[-1])
    # the input frame is left untouched
    assert "distance_m" not in df.columns


def test_compute_derived_metrics_prefers_recorded_speed(five_point_track):
    df = pd.DataFrame([p.to_dict() for p in five_point_track])
    df["speed"] = [None, 3.0, None, 4.0, None]
    result = metrics.compute_derived_metrics(df)
    assert result["speed_mps"].iloc[1] == 3.0
    assert result["speed_mps"].iloc[3] == 4.0
    assert result["speed_mps"].iloc[2] == pytest.approx(10.2, abs=0.2)
