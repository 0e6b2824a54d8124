"""
Track Interpolation for GPS Track Analysis

This module looks up positions, times and distances along a track at an
arbitrary elapsed time or distance offset.

All lookups share one bracketing scan: the track is walked in sequence order
and the first pair of consecutive points whose key (time offset or
cumulative distance) straddles the target is used. Timestamps are expected
to be non-decreasing but are not validated; with out-of-order input the
first qualifying bracket still wins, so corrupt data gives a defined answer
instead of an exception.
"""

from typing import Callable, Optional, Sequence

import numpy as np

from . import constants
from . import metrics
from .models import GeoPoint


def _elapsed_ms(track: Sequence[GeoPoint], idx: int) -> int:
    return track[idx].timestamp_ms - track[0].timestamp_ms


def track_duration_ms(track: Sequence[GeoPoint]) -> int:
    """Last timestamp minus first timestamp, 0 for fewer than two points."""
    if len(track) < 2:
        return 0
    return _elapsed_ms(track, len(track) - 1)


def _find_bracket(count: int, key: Callable[[int], float], target: float) -> Optional[int]:
    """
    Find the first segment whose key range contains the target.

    Args:
        count: Number of points in the track.
        key: Key value of point i (time offset or cumulative distance).
        target: Value to bracket.

    Returns:
        Index i such that key(i) <= target <= key(i + 1), or None.
    """
    for i in range(count - 1):
        if key(i) <= target <= key(i + 1):
            return i
    return None


def _lerp_optional(a: Optional[float], b: Optional[float], fraction: float) -> Optional[float]:
    if a is not None and b is not None:
        return a + (b - a) * fraction
    return a if a is not None else b


def interpolate_between(p1: GeoPoint, p2: GeoPoint, fraction: float) -> GeoPoint:
    """
    Linearly interpolate between two points.

    Latitude, longitude and timestamp are interpolated; altitude and speed
    are interpolated when both points carry them, otherwise the one value
    present is kept. Accuracy is taken from p1.

    Args:
        p1: Segment start point.
        p2: Segment end point.
        fraction: Position within the segment, 0.0 = p1 and 1.0 = p2.

    Returns:
        Interpolated point (p1 or p2 itself at the segment ends).
    """
    if fraction <= 0.0:
        return p1
    if fraction >= 1.0:
        return p2

    return GeoPoint(
        lat=p1.lat + (p2.lat - p1.lat) * fraction,
        lon=p1.lon + (p2.lon - p1.lon) * fraction,
        timestamp_ms=p1.timestamp_ms + int((p2.timestamp_ms - p1.timestamp_ms) * fraction),
        altitude=_lerp_optional(p1.altitude, p2.altitude, fraction),
        accuracy=p1.accuracy,
        speed=_lerp_optional(p1.speed, p2.speed, fraction),
    )


def _cumulative(track: Sequence[GeoPoint], cumulative: Optional[np.ndarray]) -> np.ndarray:
    if cumulative is None:
        return metrics.cumulative_distances(track)
    return cumulative


def interpolate_by_time(track: Sequence[GeoPoint], elapsed_ms: float) -> Optional[GeoPoint]:
    """
    Position along a track at an elapsed time.

    Args:
        track: Ordered GPS points.
        elapsed_ms: Milliseconds since the first point.

    Returns:
        Interpolated point. The first point for a single-point track or a
        non-positive time, the last point beyond the track duration, and
        None for an empty track.
    """
    if not track:
        return None
    if len(track) == 1 or elapsed_ms <= 0:
        return track[0]

    i = _find_bracket(len(track), lambda idx: _elapsed_ms(track, idx), elapsed_ms)
    if i is None:
        return track[-1]

    segment_ms = _elapsed_ms(track, i + 1) - _elapsed_ms(track, i)
    if segment_ms <= 0:
        return track[i]

    fraction = (elapsed_ms - _elapsed_ms(track, i)) / segment_ms
    return interpolate_between(track[i], track[i + 1], fraction)


def interpolate_by_distance(
    track: Sequence[GeoPoint],
    target_m: float,
    cumulative: Optional[np.ndarray] = None,
) -> Optional[GeoPoint]:
    """
    Position along a track at a distance from the start.

    Args:
        track: Ordered GPS points.
        target_m: Distance from the start in meters.
        cumulative: Precomputed cumulative distances, computed if omitted.

    Returns:
        Interpolated point, the first point for a non-positive distance, the
        last point at or beyond the total distance, None for an empty track.
        Segments shorter than SEGMENT_EPSILON_M resolve to their start point.
    """
    if not track:
        return None
    if len(track) == 1 or target_m <= 0:
        return track[0]

    cum = _cumulative(track, cumulative)
    if target_m >= cum[-1]:
        return track[-1]

    i = _find_bracket(len(track), lambda idx: cum[idx], target_m)
    if i is None:
        return track[-1]

    segment_m = cum[i + 1] - cum[i]
    if segment_m < constants.SEGMENT_EPSILON_M:
        return track[i]

    fraction = float((target_m - cum[i]) / segment_m)
    return interpolate_between(track[i], track[i + 1], fraction)


def time_at_distance(
    track: Sequence[GeoPoint],
    target_m: float,
    cumulative: Optional[np.ndarray] = None,
) -> Optional[int]:
    """
    Elapsed time at which a track reaches a given distance.

    Args:
        track: Ordered GPS points.
        target_m: Distance from the start in meters.
        cumulative: Precomputed cumulative distances, computed if omitted.

    Returns:
        Milliseconds since the first point: 0 for a non-positive distance,
        the track duration at or beyond the total distance, None for an empty
        track or when no segment brackets the distance.
    """
    if not track:
        return None
    if target_m <= 0:
        return 0

    cum = _cumulative(track, cumulative)
    if target_m >= cum[-1]:
        return track_duration_ms(track)

    i = _find_bracket(len(track), lambda idx: cum[idx], target_m)
    if i is None:
        return None

    base_ms = _elapsed_ms(track, i)
    segment_m = cum[i + 1] - cum[i]
    if segment_m <= constants.SEGMENT_EPSILON_M:
        return base_ms

    segment_ms = _elapsed_ms(track, i + 1) - base_ms
    fraction = float((target_m - cum[i]) / segment_m)
    return base_ms + int(round(segment_ms * fraction))


def distance_at_time(
    track: Sequence[GeoPoint],
    elapsed_ms: float,
    cumulative: Optional[np.ndarray] = None,
) -> Optional[float]:
    """
    Distance covered along a track at an elapsed time.

    Args:
        track: Ordered GPS points.
        elapsed_ms: Milliseconds since the first point.
        cumulative: Precomputed cumulative distances, computed if omitted.

    Returns:
        Distance in meters: 0.0 for a non-positive time, the total distance
        beyond the track duration, None for an empty track.
    """
    if not track:
        return None
    if elapsed_ms <= 0:
        return 0.0

    cum = _cumulative(track, cumulative)
    i = _find_bracket(len(track), lambda idx: _elapsed_ms(track, idx), elapsed_ms)
    if i is None:
        return float(cum[-1])

    segment_ms = _elapsed_ms(track, i + 1) - _elapsed_ms(track, i)
    if segment_ms <= 0:
        return float(cum[i])

    fraction = (elapsed_ms - _elapsed_ms(track, i)) / segment_ms
    return float(cum[i] + (cum[i + 1] - cum[i]) * fraction)
