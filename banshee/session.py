"""
Session Builder for GPS Track Analysis

This module orchestrates the complete analysis pipeline for one activity,
combining all processing steps into a single payload with all analysis
results.
"""

from pathlib import Path
from typing import Dict, Optional, Sequence

from loguru import logger

from . import constants
from . import data_loading
from . import export
from . import ghost
from . import metrics
from . import pace
from . import personal_best
from . import telemetry
from .errors import TrackDecodeError
from .models import Activity, ActivityType, GeoPoint, PersonalBestsRegistry


def load_activity(
    data_file: Path,
    activity_type: ActivityType = ActivityType.RUN,
    name: Optional[str] = None,
) -> Activity:
    """
    Load an activity from a track file.

    JSON files may hold either a full activity or a bare array of points;
    any other file is read as CSV.

    Args:
        data_file: Path to a .json or .csv track file.
        activity_type: Activity type used when the file holds bare points.
        name: Display name; defaults to the file stem.

    Returns:
        The loaded activity.

    Raises:
        TrackDecodeError: If the file content is malformed.
    """
    data_file = Path(data_file)
    display_name = name or data_file.stem.replace("_", " ").title()

    if data_file.suffix.lower() == ".json":
        try:
            text = data_file.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise TrackDecodeError(f"Track file {data_file} is not valid UTF-8: {exc}") from exc
        if text.lstrip().startswith("{"):
            return data_loading.activity_from_json(text)
        points = data_loading.track_from_json(text)
    else:
        points = data_loading.load_track_csv(data_file)

    recorded_at = points[0].timestamp_ms if points else 0
    return Activity(
        id=data_file.stem,
        name=display_name,
        activity_type=activity_type,
        coordinates=tuple(points),
        recorded_at=recorded_at,
    )


def build_activity_payload(
    activity: Activity,
    split_distance_m: float = constants.DEFAULT_SPLIT_DISTANCE_M,
    registry: Optional[PersonalBestsRegistry] = None,
    reference: Optional[Sequence[GeoPoint]] = None,
) -> Dict:
    """
    Build complete analysis payload for an activity.

    Main entry point that orchestrates the pipeline:
    1. Computes the cumulative distance array once
    2. Builds per-sample telemetry and track GeoJSON
    3. Computes fixed-distance splits
    4. Finds best segments for the activity type's standard distances
    5. Optionally merges them into a personal-best registry
    6. Optionally builds a delta trace against a reference (ghost) track

    Args:
        activity: Activity to analyze.
        split_distance_m: Split length in meters. Defaults to 1 km.
        registry: Existing personal bests; when given, the payload reports
            the updated registry and the newly achieved records.
        reference: Reference track for the delta trace.

    Returns:
        Dictionary containing:
        - summary: Activity summary with formatted distance, duration, pace
        - track: GeoJSON FeatureCollection (None for an empty track)
        - telemetry: List of telemetry records
        - splits: List of split records
        - segments: Best segment per covered standard distance
        - personal_bests: Updated registry and new records (if registry given)
        - delta_trace: Time delta vs the reference (if reference given)
    """
    points = activity.coordinates
    cumulative = metrics.cumulative_distances(points)

    frame = telemetry.build_track_frame(points)
    telemetry_records = telemetry.build_telemetry_records(frame)
    track_geojson = telemetry.telemetry_to_geojson(telemetry_records) if telemetry_records else None

    splits = pace.calculate_splits(points, split_distance_m, cumulative)

    segments = []
    for segment in personal_best.calculate_segment_times(activity):
        segments.append({
            "distance_meters": segment.distance_meters,
            "distance_name": ActivityType.distance_name(segment.distance_meters),
            "time_ms": segment.time_ms,
            "time": pace.format_duration(segment.time_ms),
            "pace": pace.format_pace(pace.calculate_pace(segment.distance_meters, segment.time_ms)),
            "start_idx": segment.start_idx,
            "end_idx": segment.end_idx,
        })

    summary = activity.to_summary().to_dict()
    average_pace = pace.calculate_pace(activity.total_distance_meters, activity.duration_ms)
    summary.update({
        "distance": pace.format_distance(activity.total_distance_meters),
        "duration": pace.format_duration(activity.duration_ms),
        "pace": pace.format_pace(average_pace),
        "pace_per_mile": pace.format_pace_per_mile(average_pace),
        "speed_kmh": pace.calculate_speed_kmh(activity.total_distance_meters, activity.duration_ms),
    })

    payload = {
        "summary": summary,
        "track": track_geojson,
        "telemetry": telemetry_records,
        "splits": [export.split_record(s) for s in splits],
        "segments": segments,
    }

    if registry is not None:
        updated, achieved = personal_best.update_pbs(registry, activity)
        payload["personal_bests"] = {
            "registry": updated.to_dict(),
            "new_records": [pb.to_dict() for pb in achieved],
        }

    if reference is not None:
        payload["delta_trace"] = ghost.build_delta_trace(reference, points)

    logger.debug(
        "Built payload for activity {}: {} points, {} splits, {} segments",
        activity.id,
        len(points),
        len(splits),
        len(segments),
    )
    return payload


def build_session_payload(data_file: Path, activity_type: ActivityType = ActivityType.RUN) -> Dict:
    """
    Load a track file and build its analysis payload.

    Raises:
        TrackDecodeError: If the file content is malformed.
    """
    activity = load_activity(data_file, activity_type)
    return build_activity_payload(activity)
