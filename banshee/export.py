"""
Export Functions for GPS Track Analysis

This module serializes activities, splits and personal bests to JSON and
CSV for storage or external analysis.
"""

import csv
import io
import json
from typing import Dict, List, Sequence

from . import pace
from . import utils
from .models import Activity, GeoPoint, PersonalBestsRegistry, Split


def split_record(split: Split) -> Dict:
    """Split as a JSON-ready dictionary, with formatted pace."""
    return {
        "number": split.number,
        "distance_m": split.distance_m,
        "duration_ms": split.duration_ms,
        "pace_sec_per_km": utils.round_float(split.pace_sec_per_km, 1),
        "pace_formatted": pace.format_pace(split.pace_sec_per_km),
        "cumulative_distance_m": split.cumulative_distance_m,
        "cumulative_time_ms": split.cumulative_time_ms,
    }


def track_to_json(track: Sequence[GeoPoint]) -> str:
    return json.dumps([p.to_dict() for p in track])


def activity_to_json(activity: Activity, indent=None) -> str:
    return json.dumps(activity.to_dict(), indent=indent)


def registry_to_json(registry: PersonalBestsRegistry, indent=None) -> str:
    return json.dumps(registry.to_dict(), indent=indent)


def splits_to_json(splits: List[Split]) -> str:
    return json.dumps([split_record(s) for s in splits])


def export_splits_csv(splits: List[Split]) -> str:
    """
    Export splits to CSV format.

    Args:
        splits: Splits from pace.calculate_splits().

    Returns:
        CSV string with one row per split.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow([
        "split",
        "distance_m",
        "duration",
        "pace",
        "cumulative_distance_m",
        "cumulative_time",
    ])

    for split in splits:
        writer.writerow([
            split.number,
            split.distance_m,
            pace.format_duration(split.duration_ms),
            pace.format_pace(split.pace_sec_per_km),
            utils.round_float(split.cumulative_distance_m, 2),
            pace.format_duration(split.cumulative_time_ms),
        ])

    return buffer.getvalue()


def export_track_csv(track: Sequence[GeoPoint]) -> str:
    """
    Export a track to CSV in the format read by data_loading.load_track_csv().

    Missing optional fields are written as empty cells.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(["timestamp_ms", "lat", "lon", "altitude", "accuracy", "speed"])
    for point in track:
        writer.writerow([
            point.timestamp_ms,
            point.lat,
            point.lon,
            "" if point.altitude is None else point.altitude,
            "" if point.accuracy is None else point.accuracy,
            "" if point.speed is None else point.speed,
        ])

    return buffer.getvalue()
