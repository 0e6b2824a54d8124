"""Shared fixtures for the track engine tests."""

import pytest
from loguru import logger

from banshee import metrics
from banshee.models import Activity, ActivityType, GeoPoint


@pytest.fixture
def five_point_track() -> list[GeoPoint]:
    """Five points 5 s apart, about 51 m apart, heading north-east (~205 m total)."""
    return [
        GeoPoint(lat=40.7128, lon=-74.0060, timestamp_ms=0),
        GeoPoint(lat=40.7132, lon=-74.0057, timestamp_ms=5000),
        GeoPoint(lat=40.7136, lon=-74.0054, timestamp_ms=10000),
        GeoPoint(lat=40.7140, lon=-74.0051, timestamp_ms=15000),
        GeoPoint(lat=40.7144, lon=-74.0048, timestamp_ms=20000),
    ]


def build_uniform_track(
    n_points: int,
    step_m: float = 10.0,
    step_ms=4000,
    start=(40.0, -75.0),
    bearing_deg: float = 0.0,
    t0: int = 0,
) -> list[GeoPoint]:
    """Track of equally spaced points along one bearing.

    step_ms is either a constant segment duration or a list with one
    duration per segment.
    """
    durations = step_ms if isinstance(step_ms, list) else [step_ms] * (n_points - 1)
    lat, lon = start
    timestamp = t0
    points = []
    for i in range(n_points):
        points.append(GeoPoint(lat=lat, lon=lon, timestamp_ms=timestamp))
        if i < n_points - 1:
            lat, lon = metrics.destination_point(lat, lon, bearing_deg, step_m)
            timestamp += durations[i]
    return points


@pytest.fixture
def uniform_track():
    """Factory for equally spaced tracks (10 m every 4 s by default, 2.5 m/s)."""
    return build_uniform_track


@pytest.fixture
def make_activity():
    """Factory wrapping a track into an activity."""
    def _make(track, activity_type=ActivityType.RUN, activity_id="run-1", recorded_at=1_700_000_000_000):
        return Activity(
            id=activity_id,
            name="Test Run",
            activity_type=activity_type,
            coordinates=tuple(track),
            recorded_at=recorded_at,
        )
    return _make


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
