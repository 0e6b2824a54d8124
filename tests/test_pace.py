"""Tests for pace conversions, display formatting, splits and current speed."""

import math

import pytest

from banshee import constants
from banshee import metrics
from banshee import pace
from banshee.models import GeoPoint


# ============================================================================
# CONVERSIONS
# ============================================================================

def test_calculate_pace():
    assert pace.calculate_pace(1000.0, 300_000) == pytest.approx(300.0)
    assert pace.calculate_pace(5000.0, 1_500_000) == pytest.approx(300.0)


@pytest.mark.parametrize("distance_m, duration_ms", [(0.0, 1000), (-5.0, 1000), (100.0, 0), (100.0, -1)])
def test_calculate_pace_degenerate_inputs(distance_m, duration_ms):
    assert pace.calculate_pace(distance_m, duration_ms) == 0.0
    assert pace.calculate_pace_per_mile(distance_m, duration_ms) == 0.0


def test_calculate_pace_per_mile():
    assert pace.calculate_pace_per_mile(constants.METERS_PER_MILE, 480_000) == pytest.approx(480.0)


def test_speed_pace_conversions():
    assert pace.speed_to_pace(2.5) == pytest.approx(400.0)
    assert pace.pace_to_speed(400.0) == pytest.approx(2.5)
    assert pace.speed_to_pace(0.0) == 0.0
    assert pace.pace_to_speed(-1.0) == 0.0


def test_calculate_speed_kmh():
    assert pace.calculate_speed_kmh(1000.0, 360_000) == pytest.approx(10.0)
    assert pace.calculate_speed_kmh(1000.0, 0) == 0.0


# ============================================================================
# FORMATTING
# ============================================================================

@pytest.mark.parametrize(
    "value, expected",
    [
        (300.0, "5:00"),
        (330.9, "5:30"),
        (59.0, "0:59"),
        (3600.0, "60:00"),
    ],
)
def test_format_pace(value, expected):
    assert pace.format_pace(value) == expected


@pytest.mark.parametrize("value", [0.0, -10.0, None, math.nan, math.inf])
def test_format_pace_placeholder(value):
    assert pace.format_pace(value) == constants.PACE_PLACEHOLDER


def test_format_pace_per_mile():
    # 300 s/km * 1.60934 = 482.8 s/mi
    assert pace.format_pace_per_mile(300.0) == "8:02"
    assert pace.format_pace_per_mile(None) == constants.PACE_PLACEHOLDER
    assert pace.format_pace_per_mile(0.0) == constants.PACE_PLACEHOLDER


@pytest.mark.parametrize(
    "duration_ms, expected",
    [
        (0, "0:00"),
        (59_999, "0:59"),
        (61_000, "1:01"),
        (3_599_000, "59:59"),
        (3_600_000, "1:00:00"),
        (3_661_000, "1:01:01"),
        (-5_000, "0:00"),
    ],
)
def test_format_duration(duration_ms, expected):
    assert pace.format_duration(duration_ms) == expected


def test_format_distance():
    assert pace.format_distance(0.0) == "0 m"
    assert pace.format_distance(999.4) == "999 m"
    assert pace.format_distance(1000.0) == "1.00 km"
    assert pace.format_distance(21_097.5) == "21.10 km"


def test_format_distance_miles():
    assert pace.format_distance_miles(100.0) == "328 ft"
    assert pace.format_distance_miles(constants.METERS_PER_MILE) == "1.00 mi"


# ============================================================================
# SPLITS
# ============================================================================

def test_five_point_track_splits(five_point_track):
    splits = pace.calculate_splits(five_point_track, 100.0)

    assert len(splits) == 2
    assert [s.number for s in splits] == [1, 2]
    assert [s.cumulative_distance_m for s in splits] == [100.0, 200.0]
    for split in splits:
        # ~51 m per 5 s, so each 100 m split takes just under 10 s
        assert 9000 < split.duration_ms < 10500
        assert split.distance_m == 100.0
        assert split.pace_sec_per_km == pytest.approx(pace.calculate_pace(100.0, split.duration_ms))
    assert splits[1].cumulative_time_ms == splits[0].duration_ms + splits[1].duration_ms


@pytest.mark.parametrize("split_distance_m", [50.0, 100.0, 250.0, 1000.0])
def test_split_count_and_boundaries(uniform_track, split_distance_m):
    track = uniform_track(108, step_m=10.0, step_ms=4000)
    total = metrics.total_distance(track)
    splits = pace.calculate_splits(track, split_distance_m)

    assert len(splits) == math.floor(total / split_distance_m)
    for k, split in enumerate(splits, start=1):
        assert split.duration_ms > 0
        assert split.cumulative_distance_m == pytest.approx(k * split_distance_m)
        # 2.5 m/s
        assert split.duration_ms == pytest.approx(split_distance_m / 2.5 * 1000, abs=2)


def test_segment_crossing_several_boundaries():
    start = GeoPoint(lat=10.0, lon=10.0, timestamp_ms=0)
    lat, lon = metrics.destination_point(10.0, 10.0, 45.0, 350.0)
    track = [start, GeoPoint(lat=lat, lon=lon, timestamp_ms=35_000)]

    splits = pace.calculate_splits(track, 100.0)

    assert len(splits) == 3
    assert [s.cumulative_distance_m for s in splits] == [100.0, 200.0, 300.0]
    assert [s.cumulative_time_ms for s in splits] == [10_000, 20_000, 30_000]
    assert all(s.duration_ms == 10_000 for s in splits)


def test_splits_on_short_or_invalid_input(five_point_track):
    assert pace.calculate_splits([], 100.0) == []
    assert pace.calculate_splits(five_point_track[:1], 100.0) == []
    assert pace.calculate_splits(five_point_track, 1000.0) == []
    assert pace.calculate_splits(five_point_track, 0.0) == []
    assert pace.calculate_splits(five_point_track, -100.0) == []


def test_splits_accept_precomputed_cumulative(five_point_track):
    cum = metrics.cumulative_distances(five_point_track)
    assert pace.calculate_splits(five_point_track, 100.0, cum) == pace.calculate_splits(five_point_track, 100.0)


# ============================================================================
# CURRENT SPEED
# ============================================================================

def test_current_speed_uniform(uniform_track):
    track = uniform_track(20, step_m=10.0, step_ms=4000)
    assert pace.current_speed(track) == pytest.approx(2.5)
    assert pace.current_speed(track, window_size=2) == pytest.approx(2.5)


def test_current_speed_uses_trailing_window(uniform_track):
    # slow first half, fast second half
    track = uniform_track(20, step_m=10.0, step_ms=[10_000] * 10 + [2_000] * 9)
    assert pace.current_speed(track, window_size=5) == pytest.approx(5.0)


def test_current_speed_degenerate():
    p = GeoPoint(lat=0.0, lon=0.0, timestamp_ms=1000)
    q = GeoPoint(lat=0.0, lon=0.001, timestamp_ms=1000)
    assert pace.current_speed([]) == 0.0
    assert pace.current_speed([p]) == 0.0
    assert pace.current_speed([p, q]) == 0.0


# ============================================================================
# PROJECTIONS & ESTIMATES
# ============================================================================

def test_estimate_finish_time():
    # 1 km in 5:00 projects a 5K in 25:00
    assert pace.estimate_finish_time(5000.0, 1000.0, 300_000) == 1_500_000
    assert pace.estimate_finish_time(1000.0, 1000.0, 300_000) == 300_000


@pytest.mark.parametrize("distance_m, duration_ms", [(0.0, 300_000), (-1.0, 300_000), (1000.0, 0), (1000.0, -5)])
def test_estimate_finish_time_without_progress(distance_m, duration_ms):
    assert pace.estimate_finish_time(5000.0, distance_m, duration_ms) is None


def test_estimate_calories():
    assert pace.estimate_calories(70.0, 10_000.0) == pytest.approx(700.0)
    assert pace.estimate_calories(70.0, 0.0) == 0.0


def test_project_distance_at_time():
    # 2.5 m/s for an hour
    assert pace.project_distance_at_time(250.0, 100_000, 3_600_000) == pytest.approx(9000.0)
    assert pace.project_distance_at_time(250.0, 0, 3_600_000) == 0.0
    assert pace.project_distance_at_time(250.0, -1, 3_600_000) == 0.0
