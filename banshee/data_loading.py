"""
Data Loading and Decoding for GPS Track Analysis

This module loads tracks from CSV files and decodes the JSON forms of
tracks, activities and personal-best registries handed over by storage or
a foreign caller. Malformed input raises TrackDecodeError; nothing is
partially recovered.
"""

import json
from pathlib import Path
from typing import List, Union

import numpy as np
import pandas as pd
from loguru import logger

from . import utils
from .errors import TrackDecodeError
from .models import Activity, Banshee, GeoPoint, PersonalBest, PersonalBestsRegistry

REQUIRED_CSV_COLUMNS = ("lat", "lon", "timestamp_ms")
OPTIONAL_CSV_COLUMNS = ("altitude", "accuracy", "speed")

_DECODE_ERRORS = (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError, OverflowError)


def load_track_csv(file_path: Union[str, Path]) -> List[GeoPoint]:
    """
    Load a track from a CSV file.

    The file must have lat, lon and timestamp_ms columns; altitude, accuracy
    and speed are optional. Every row must carry finite coordinates and a
    finite timestamp.

    Args:
        file_path: Path to the CSV file.

    Returns:
        List of GPS points in file order.

    Raises:
        TrackDecodeError: If the file cannot be parsed, a required column
            is missing or a row has an unparseable or non-finite value.
    """
    try:
        df = pd.read_csv(file_path, float_precision="round_trip")
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise TrackDecodeError(f"Could not parse track CSV {file_path}: {exc}") from exc

    missing = [c for c in REQUIRED_CSV_COLUMNS if c not in df.columns]
    if missing:
        raise TrackDecodeError(f"Track CSV {file_path} is missing columns: {', '.join(missing)}")

    for column in REQUIRED_CSV_COLUMNS:
        df[column] = pd.to_numeric(df[column], errors="coerce")

    # NaN (unparseable) and +/-inf both fail
    valid = np.isfinite(df[list(REQUIRED_CSV_COLUMNS)].to_numpy(dtype=float)).all(axis=1)
    if not valid.all():
        # Line numbers count the header as line 1
        bad_lines = [int(i) + 2 for i in np.flatnonzero(~valid)]
        logger.warning("Rejected track CSV {}: bad values on line(s) {}", file_path, bad_lines)
        raise TrackDecodeError(
            f"Track CSV {file_path} has unparseable or non-finite values on line(s): "
            f"{', '.join(str(n) for n in bad_lines)}"
        )

    points = []
    for row in df.to_dict("records"):
        points.append(GeoPoint(
            lat=float(row["lat"]),
            lon=float(row["lon"]),
            timestamp_ms=int(row["timestamp_ms"]),
            altitude=utils.optional_float(row.get("altitude")),
            accuracy=utils.optional_float(row.get("accuracy")),
            speed=utils.optional_float(row.get("speed")),
        ))

    return points


def _loads(text: Union[str, bytes], what: str):
    try:
        return json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Malformed {} JSON: {}", what, exc)
        raise TrackDecodeError(f"Malformed {what} JSON: {exc}") from exc


# ============================================================================
# DECODERS FOR PARSED DATA
# ============================================================================

def decode_point(data) -> GeoPoint:
    try:
        return GeoPoint.from_dict(data)
    except _DECODE_ERRORS as exc:
        raise TrackDecodeError(f"Invalid track point: {exc!r}") from exc


def decode_track(data) -> List[GeoPoint]:
    """
    Decode a parsed array of points into a track.

    Raises:
        TrackDecodeError: If the data is not an array of valid points.
    """
    if not isinstance(data, list):
        raise TrackDecodeError("Track must be an array of points")
    return [decode_point(p) for p in data]


def decode_activity(data) -> Activity:
    """
    Decode a parsed activity.

    Raises:
        TrackDecodeError: If a field is missing or has the wrong type.
    """
    try:
        return Activity.from_dict(data)
    except _DECODE_ERRORS as exc:
        raise TrackDecodeError(f"Invalid activity: {exc!r}") from exc


def decode_personal_best(data) -> PersonalBest:
    try:
        return PersonalBest.from_dict(data)
    except _DECODE_ERRORS as exc:
        raise TrackDecodeError(f"Invalid personal best: {exc!r}") from exc


def decode_registry(data) -> PersonalBestsRegistry:
    """
    Decode a parsed personal-best registry ({"records": [...]}).

    Raises:
        TrackDecodeError: If the registry or one of its records is invalid.
    """
    try:
        return PersonalBestsRegistry.from_dict(data)
    except _DECODE_ERRORS as exc:
        raise TrackDecodeError(f"Invalid personal bests: {exc!r}") from exc


def decode_banshee(data) -> Banshee:
    try:
        return Banshee.from_dict(data)
    except _DECODE_ERRORS as exc:
        raise TrackDecodeError(f"Invalid banshee: {exc!r}") from exc


# ============================================================================
# JSON TEXT DECODERS
# ============================================================================

def track_from_json(text: Union[str, bytes]) -> List[GeoPoint]:
    """
    Decode a JSON array of points into a track.

    Raises:
        TrackDecodeError: If the text is not a JSON array of valid points.
    """
    return decode_track(_loads(text, "track"))


def activity_from_json(text: Union[str, bytes]) -> Activity:
    """
    Decode an activity.

    Raises:
        TrackDecodeError: If the JSON is malformed or a field is missing or
            has the wrong type.
    """
    return decode_activity(_loads(text, "activity"))


def personal_best_from_json(text: Union[str, bytes]) -> PersonalBest:
    return decode_personal_best(_loads(text, "personal best"))


def registry_from_json(text: Union[str, bytes]) -> PersonalBestsRegistry:
    """
    Decode a personal-best registry ({"records": [...]}).

    Raises:
        TrackDecodeError: If the JSON is malformed or a record is invalid.
    """
    return decode_registry(_loads(text, "personal bests"))


def banshee_from_json(text: Union[str, bytes]) -> Banshee:
    return decode_banshee(_loads(text, "banshee"))
