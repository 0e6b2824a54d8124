"""
Pace and Split Engine for GPS Track Analysis

This module handles pace/speed conversions, display formatting of pace,
duration and distance, fixed-distance split computation and the
instantaneous speed estimate used on the live tracking screen, plus finish
time, distance and calorie projections from the current average pace.

Degenerate inputs (zero or negative distance, duration or speed) produce a
0.0 sentinel rather than an exception; the formatters render that sentinel
as a placeholder string.
"""

import math
from typing import List, Optional, Sequence

import numpy as np

from . import constants
from . import metrics
from .models import GeoPoint, Split


# ============================================================================
# CONVERSIONS
# ============================================================================

def calculate_pace(distance_m: float, duration_ms: float) -> float:
    """
    Calculate pace in seconds per kilometer.

    Args:
        distance_m: Distance covered in meters.
        duration_ms: Time taken in milliseconds.

    Returns:
        Pace in sec/km, or 0.0 if distance or duration is not positive.
    """
    if distance_m <= 0 or duration_ms <= 0:
        return 0.0
    return (duration_ms / 1000.0) / (distance_m / constants.METERS_PER_KM)


def calculate_pace_per_mile(distance_m: float, duration_ms: float) -> float:
    """Pace in seconds per mile, or 0.0 for non-positive inputs."""
    if distance_m <= 0 or duration_ms <= 0:
        return 0.0
    return (duration_ms / 1000.0) / (distance_m / constants.METERS_PER_MILE)


def speed_to_pace(speed_mps: float) -> float:
    """Convert speed (m/s) to pace (sec/km); 0.0 for non-positive speed."""
    if speed_mps <= 0:
        return 0.0
    return constants.METERS_PER_KM / speed_mps


def pace_to_speed(pace_sec_per_km: float) -> float:
    """Convert pace (sec/km) to speed (m/s); 0.0 for non-positive pace."""
    if pace_sec_per_km <= 0:
        return 0.0
    return constants.METERS_PER_KM / pace_sec_per_km


def calculate_speed_kmh(distance_m: float, duration_ms: float) -> float:
    """Average speed in km/h; 0.0 for non-positive duration."""
    if duration_ms <= 0:
        return 0.0
    return (distance_m / 1000.0) / (duration_ms / 3_600_000.0)


# ============================================================================
# FORMATTING
# ============================================================================

def format_pace(pace_sec_per_km: Optional[float]) -> str:
    """
    Format a pace as M:SS.

    Seconds are truncated, so 330.9 sec/km is shown as "5:30".

    Args:
        pace_sec_per_km: Pace in seconds per kilometer.

    Returns:
        Formatted pace, or PACE_PLACEHOLDER for a missing, zero, negative,
        NaN or infinite pace.
    """
    if pace_sec_per_km is None or not math.isfinite(pace_sec_per_km) or pace_sec_per_km <= 0:
        return constants.PACE_PLACEHOLDER

    total_seconds = int(pace_sec_per_km)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def format_pace_per_mile(pace_sec_per_km: Optional[float]) -> str:
    """Format a per-kilometer pace as M:SS per mile."""
    if pace_sec_per_km is None:
        return constants.PACE_PLACEHOLDER
    return format_pace(pace_sec_per_km * constants.KM_PER_MILE)


def format_duration(duration_ms: float) -> str:
    """
    Format a duration as M:SS, or H:MM:SS once it reaches one hour.

    Args:
        duration_ms: Duration in milliseconds; negative values show as 0:00.

    Returns:
        Formatted duration string.
    """
    total_seconds = max(0, int(duration_ms) // 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_distance(distance_m: float) -> str:
    """Format a distance as whole meters below 1 km, else kilometers with 2 decimals."""
    if distance_m < constants.METERS_PER_KM:
        return f"{distance_m:.0f} m"
    return f"{distance_m / constants.METERS_PER_KM:.2f} km"


def format_distance_miles(distance_m: float) -> str:
    """Format a distance as feet below 0.1 mi, else miles with 2 decimals."""
    miles = distance_m / constants.METERS_PER_MILE
    if miles < 0.1:
        return f"{distance_m * constants.FEET_PER_METER:.0f} ft"
    return f"{miles:.2f} mi"


# ============================================================================
# SPLITS & SPEED
# ============================================================================

def calculate_splits(
    track: Sequence[GeoPoint],
    split_distance_m: float = constants.DEFAULT_SPLIT_DISTANCE_M,
    cumulative: Optional[np.ndarray] = None,
) -> List[Split]:
    """
    Calculate fixed-distance splits for a track.

    Walks the cumulative distance array and, for every multiple of the split
    distance, interpolates the exact time the boundary was crossed. A split
    lasts from the previous boundary time to its own boundary time, so
    splits never overlap and cover the track up to the last full split. A
    segment crossing several boundaries yields one split per boundary. The
    trailing partial distance is not reported.

    Args:
        track: Ordered GPS points.
        split_distance_m: Split length in meters (e.g. 1000 for km splits).
        cumulative: Precomputed cumulative distances, computed if omitted.

    Returns:
        List of splits, empty if the track is shorter than one split or the
        split distance is not positive.
    """
    if len(track) < 2 or split_distance_m <= 0:
        return []

    cum = metrics.cumulative_distances(track) if cumulative is None else cumulative
    if cum[-1] < split_distance_m:
        return []

    start_ms = track[0].timestamp_ms
    splits = []
    target = split_distance_m
    prev_split_ms = 0

    for i in range(1, len(track)):
        while cum[i] >= target:
            segment_m = cum[i] - cum[i - 1]
            base_ms = track[i - 1].timestamp_ms - start_ms
            if segment_m > constants.SEGMENT_EPSILON_M:
                fraction = float((target - cum[i - 1]) / segment_m)
                segment_ms = track[i].timestamp_ms - track[i - 1].timestamp_ms
                boundary_ms = base_ms + int(round(segment_ms * fraction))
            else:
                boundary_ms = track[i].timestamp_ms - start_ms

            duration_ms = boundary_ms - prev_split_ms
            splits.append(Split(
                number=len(splits) + 1,
                distance_m=split_distance_m,
                duration_ms=duration_ms,
                pace_sec_per_km=calculate_pace(split_distance_m, duration_ms),
                cumulative_distance_m=target,
                cumulative_time_ms=boundary_ms,
            ))

            prev_split_ms = boundary_ms
            target = split_distance_m * (len(splits) + 1)

    return splits


def current_speed(track: Sequence[GeoPoint], window_size: int = constants.DEFAULT_SPEED_WINDOW) -> float:
    """
    Estimate the current speed from the most recent points.

    Uses the straight-line distance between the first and last point of the
    trailing window divided by the time between them.

    Args:
        track: Ordered GPS points.
        window_size: Number of trailing points to use.

    Returns:
        Speed in m/s, or 0.0 if the window has fewer than two points or no
        elapsed time.
    """
    if len(track) < 2 or window_size < 2:
        return 0.0

    window = track[max(0, len(track) - window_size):]
    first, last = window[0], window[-1]

    elapsed_ms = last.timestamp_ms - first.timestamp_ms
    if elapsed_ms <= 0:
        return 0.0

    return metrics.distance(first, last) / (elapsed_ms / 1000.0)


# ============================================================================
# PROJECTIONS & ESTIMATES
# ============================================================================

def estimate_finish_time(
    target_distance_m: float,
    current_distance_m: float,
    current_duration_ms: float,
) -> Optional[int]:
    """
    Finish time for a target distance if the current average pace holds.

    Args:
        target_distance_m: Distance of the whole run in meters.
        current_distance_m: Distance covered so far.
        current_duration_ms: Time taken so far.

    Returns:
        Estimated total duration in milliseconds, or None when nothing has
        been covered yet.
    """
    if current_distance_m <= 0 or current_duration_ms <= 0:
        return None

    ms_per_meter = current_duration_ms / current_distance_m
    return int(target_distance_m * ms_per_meter)


def estimate_calories(weight_kg: float, distance_m: float) -> float:
    """Rough energy estimate in kcal: about 1 kcal per kg per km."""
    return weight_kg * (distance_m / constants.METERS_PER_KM) * constants.KCAL_PER_KG_KM


def project_distance_at_time(
    current_distance_m: float,
    current_duration_ms: float,
    target_duration_ms: float,
) -> float:
    """
    Distance covered by target_duration_ms at the current average speed.

    Returns:
        Projected distance in meters; 0.0 for a non-positive current
        duration.
    """
    if current_duration_ms <= 0:
        return 0.0
    return current_distance_m / current_duration_ms * target_duration_ms
