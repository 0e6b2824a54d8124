"""
Personal-Best Segment Finder for GPS Track Analysis

This module finds the fastest sub-segment of an activity covering each
standard distance of its activity type, and merges the results into a
personal-best registry.

The search is a two-pointer sliding window over the cumulative distance
array. Both the start and the end pointer only move forward, so each
standard distance costs O(n) pointer advancement.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from . import constants
from . import metrics
from .models import Activity, GeoPoint, PersonalBest, PersonalBestsRegistry, SegmentResult


def _time_at_cumulative(
    track: Sequence[GeoPoint],
    cumulative: np.ndarray,
    end_idx: int,
    target_cumulative: float,
) -> float:
    """Timestamp at which the track reaches target_cumulative inside segment end_idx-1 -> end_idx."""
    prev, curr = track[end_idx - 1], track[end_idx]
    segment_m = cumulative[end_idx] - cumulative[end_idx - 1]
    if segment_m <= constants.SEGMENT_EPSILON_M:
        return float(curr.timestamp_ms)

    fraction = float((target_cumulative - cumulative[end_idx - 1]) / segment_m)
    return prev.timestamp_ms + (curr.timestamp_ms - prev.timestamp_ms) * fraction


def find_best_segment(
    track: Sequence[GeoPoint],
    cumulative: np.ndarray,
    target_distance_m: float,
) -> Optional[SegmentResult]:
    """
    Find the fastest time to cover target_distance_m anywhere in a track.

    For each start index the end index is advanced (never reset) until the
    window spans at least the target distance; the exact time at
    cumulative[start] + target is then interpolated inside the last segment
    and the smallest elapsed time is kept.

    Args:
        track: Ordered GPS points.
        cumulative: Cumulative distances parallel to the track.
        target_distance_m: Distance to cover in meters.

    Returns:
        SegmentResult with the best time and the start/end indices, or None
        if the track has fewer than two points, the target is not positive,
        or the track is shorter than the target.
    """
    n = len(track)
    if n < 2 or target_distance_m <= 0 or cumulative[-1] < target_distance_m:
        return None

    best: Optional[SegmentResult] = None
    end_idx = 0

    for start_idx in range(n):
        while end_idx < n and cumulative[end_idx] - cumulative[start_idx] < target_distance_m:
            end_idx += 1
        if end_idx >= n:
            break

        end_time = _time_at_cumulative(track, cumulative, end_idx, cumulative[start_idx] + target_distance_m)
        elapsed_ms = int(round(end_time - track[start_idx].timestamp_ms))

        if best is None or elapsed_ms < best.time_ms:
            best = SegmentResult(
                distance_meters=target_distance_m,
                time_ms=elapsed_ms,
                start_idx=start_idx,
                end_idx=end_idx,
            )

    return best


def calculate_segment_times(activity: Activity) -> List[SegmentResult]:
    """
    Best segment for every standard distance of the activity's type.

    Standard distances longer than the activity are skipped.

    Args:
        activity: Activity to analyze.

    Returns:
        List of segment results in ascending distance order.
    """
    cumulative = metrics.cumulative_distances(activity.coordinates)
    results = []

    for target in activity.activity_type.pb_distances:
        if target > activity.total_distance_meters:
            continue
        segment = find_best_segment(activity.coordinates, cumulative, target)
        if segment is not None:
            results.append(segment)

    return results


def _to_personal_best(activity: Activity, segment: SegmentResult) -> PersonalBest:
    return PersonalBest(
        activity_type=activity.activity_type,
        distance_meters=segment.distance_meters,
        time_ms=segment.time_ms,
        activity_id=activity.id,
        achieved_at=activity.recorded_at,
    )


def calculate_pbs_for_activity(activity: Activity) -> List[PersonalBest]:
    """Candidate personal bests of an activity, without comparing to a registry."""
    return [_to_personal_best(activity, s) for s in calculate_segment_times(activity)]


def update_pbs(
    existing: PersonalBestsRegistry,
    activity: Activity,
) -> Tuple[PersonalBestsRegistry, List[PersonalBest]]:
    """
    Merge an activity's segment results into a personal-best registry.

    A result replaces the stored record only when it is strictly faster; ties
    and slower results are dropped. The input registry is not modified.

    Args:
        existing: Current registry.
        activity: Completed activity.

    Returns:
        Tuple of (updated registry copy, newly achieved personal bests).
    """
    registry = existing.copy()
    achieved = []

    for candidate in calculate_pbs_for_activity(activity):
        if registry.update(candidate):
            achieved.append(candidate)

    if achieved:
        logger.info(
            "Activity {} set {} personal best(s): {}",
            activity.id,
            len(achieved),
            ", ".join(pb.distance_name for pb in achieved),
        )

    return registry, achieved
