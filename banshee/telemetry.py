"""
Telemetry and GeoJSON Conversion for GPS Track Analysis

This module converts a track into a per-sample metrics DataFrame, telemetry
records and GeoJSON suitable for map display and API responses.
"""

import pandas as pd
from typing import Dict, List, Sequence
from . import metrics
from . import pace
from . import utils
from .models import GeoPoint

TRACK_COLUMNS = ["timestamp_ms", "lat", "lon", "altitude", "accuracy", "speed"]


def build_track_frame(track: Sequence[GeoPoint]) -> pd.DataFrame:
    """
    Build a DataFrame of a track with derived metrics.

    Args:
        track: Ordered GPS points.

    Returns:
        DataFrame with one row per point: the recorded fields plus the
        columns added by metrics.compute_derived_metrics(). Empty (with the
        recorded columns) for an empty track.
    """
    df = pd.DataFrame([p.to_dict() for p in track], columns=TRACK_COLUMNS)
    return metrics.compute_derived_metrics(df)


def build_telemetry_records(df: pd.DataFrame) -> List[Dict]:
    """
    Convert a track frame to a list of telemetry record dictionaries.

    Args:
        df: DataFrame from build_track_frame().

    Returns:
        List of dictionaries, one per sample, with elapsed time, position,
        distance, speed, pace and bearing.
    """
    records = []

    for row in df.itertuples():
        pace_sec_per_km = utils.round_float(row.pace_sec_per_km, 1)
        records.append({
            "timestamp_ms": int(row.timestamp_ms),
            "elapsed_s": utils.round_float(row.elapsed_s),
            "lat": utils.preserve_precision(row.lat),
            "lon": utils.preserve_precision(row.lon),
            "altitude": utils.round_float(row.altitude, 2),
            "distance_m": utils.round_float(row.distance_m, 2),
            "speed_mps": utils.round_float(row.speed_mps),
            "pace_sec_per_km": pace_sec_per_km,
            "pace": pace.format_pace(pace_sec_per_km),
            "bearing_deg": utils.round_float(row.bearing_deg, 2),
        })

    return records


def telemetry_to_geojson(telemetry: List[Dict]) -> Dict:
    """
    Convert telemetry records to a GeoJSON FeatureCollection.

    Creates a LineString feature for the track path and Point features for
    the start and finish.

    Args:
        telemetry: List of telemetry record dictionaries.

    Returns:
        GeoJSON FeatureCollection.

    Raises:
        ValueError: If no valid coordinates are found in telemetry.
    """
    coordinates = [
        [sample["lon"], sample["lat"]]
        for sample in telemetry
        if sample["lat"] is not None and sample["lon"] is not None
    ]

    if not coordinates:
        raise ValueError("No valid coordinates were generated from telemetry.")

    line_feature = {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": coordinates},
        "properties": {
            "sampleCount": len(coordinates),
            "distance_m": telemetry[-1]["distance_m"],
        },
    }

    markers = [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": coords},
            "properties": {"marker": marker},
        }
        for marker, coords in (("start", coordinates[0]), ("finish", coordinates[-1]))
    ]

    return {"type": "FeatureCollection", "features": [line_feature] + markers}
