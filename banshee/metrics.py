"""
Geo Distance Metrics for GPS Track Analysis

This module computes great-circle distances, cumulative distance arrays and
bearings for tracks of GPS points, plus the derived per-sample metrics
(elapsed time, distance along the track, speed, pace, bearing) used for
telemetry payloads.
"""

import numpy as np
import pandas as pd
from typing import Sequence, Tuple
from . import constants


def latlon_to_xy(lat, lon, ref_lat_rad: float, ref_lon_rad: float) -> Tuple:
    """
    Convert latitude/longitude to local Cartesian coordinates (x, y).

    Uses a simple equirectangular projection approximation, suitable for
    the few hundred meters around a runner where Earth's curvature can be
    approximated as flat.

    Args:
        lat: Latitude value(s) in degrees.
        lon: Longitude value(s) in degrees.
        ref_lat_rad: Reference latitude in radians.
        ref_lon_rad: Reference longitude in radians.

    Returns:
        Tuple of (x_m, y_m) in meters, where x is east and y is north.
    """
    R = constants.EARTH_RADIUS_M
    lat_rad = np.deg2rad(lat)
    lon_rad = np.deg2rad(lon)

    x = (lon_rad - ref_lon_rad) * np.cos(ref_lat_rad) * R
    y = (lat_rad - ref_lat_rad) * R

    return x, y


def haversine_m(lat1, lon1, lat2, lon2):
    """
    Calculate the great-circle distance between points on Earth.

    Uses the Haversine formula on a sphere of radius EARTH_RADIUS_M. Works
    element-wise on numpy arrays as well as on scalars.

    Args:
        lat1, lon1: Latitude and longitude of the first point(s) in degrees.
        lat2, lon2: Latitude and longitude of the second point(s) in degrees.

    Returns:
        Distance in meters between the points.
    """
    lat1_rad, lon1_rad = np.deg2rad(lat1), np.deg2rad(lon1)
    lat2_rad, lon2_rad = np.deg2rad(lat2), np.deg2rad(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    # Rounding can push a just past 1 for antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arcsin(np.sqrt(a))

    return constants.EARTH_RADIUS_M * c


def distance(p1, p2) -> float:
    """
    Great-circle distance in meters between two GPS points.

    Args:
        p1: First point (anything with lat/lon attributes).
        p2: Second point.

    Returns:
        Distance in meters. Symmetric, and 0.0 for identical coordinates.
    """
    return float(haversine_m(p1.lat, p1.lon, p2.lat, p2.lon))


def _coordinate_arrays(track: Sequence) -> Tuple[np.ndarray, np.ndarray]:
    lats = np.fromiter((p.lat for p in track), dtype=float, count=len(track))
    lons = np.fromiter((p.lon for p in track), dtype=float, count=len(track))
    return lats, lons


def segment_distances(track: Sequence) -> np.ndarray:
    """Distances between consecutive points; one shorter than the track."""
    if len(track) < 2:
        return np.zeros(0)
    lats, lons = _coordinate_arrays(track)
    return haversine_m(lats[:-1], lons[:-1], lats[1:], lons[1:])


def cumulative_distances(track: Sequence) -> np.ndarray:
    """
    Build the cumulative distance array for a track.

    cum[0] is 0 and cum[i] is the distance along the track up to point i.

    Args:
        track: Ordered sequence of GPS points.

    Returns:
        Float array parallel to the track (empty for an empty track).
    """
    if len(track) == 0:
        return np.zeros(0)
    return np.concatenate(([0.0], np.cumsum(segment_distances(track))))


def total_distance(track: Sequence) -> float:
    """
    Total distance of a track in meters.

    Args:
        track: Ordered sequence of GPS points.

    Returns:
        Sum of consecutive point distances, 0.0 for fewer than two points.
    """
    if len(track) < 2:
        return 0.0
    return float(cumulative_distances(track)[-1])


def bearing(p1, p2) -> float:
    """
    Initial bearing from p1 to p2.

    Args:
        p1: Start point.
        p2: End point.

    Returns:
        Bearing in degrees in [0, 360), 0 = north, 90 = east.
    """
    lat1_rad = np.deg2rad(p1.lat)
    lat2_rad = np.deg2rad(p2.lat)
    dlon = np.deg2rad(p2.lon - p1.lon)

    x = np.sin(dlon) * np.cos(lat2_rad)
    y = np.cos(lat1_rad) * np.sin(lat2_rad) - np.sin(lat1_rad) * np.cos(lat2_rad) * np.cos(dlon)

    degrees = (float(np.rad2deg(np.arctan2(x, y))) + 360.0) % 360.0
    # -0.0 + 360 can round back to exactly 360.0
    return 0.0 if degrees >= 360.0 else degrees


def destination_point(lat: float, lon: float, bearing_deg: float, distance_m: float) -> Tuple[float, float]:
    """
    Point reached by travelling distance_m from (lat, lon) along bearing_deg.

    Args:
        lat: Start latitude in degrees.
        lon: Start longitude in degrees.
        bearing_deg: Initial bearing in degrees.
        distance_m: Distance to travel in meters.

    Returns:
        (lat, lon) of the destination in degrees.
    """
    lat_rad = np.deg2rad(lat)
    lon_rad = np.deg2rad(lon)
    bearing_rad = np.deg2rad(bearing_deg)
    angular = distance_m / constants.EARTH_RADIUS_M

    dest_lat = np.arcsin(
        np.sin(lat_rad) * np.cos(angular)
        + np.cos(lat_rad) * np.sin(angular) * np.cos(bearing_rad)
    )
    dest_lon = lon_rad + np.arctan2(
        np.sin(bearing_rad) * np.sin(angular) * np.cos(lat_rad),
        np.cos(angular) - np.sin(lat_rad) * np.sin(dest_lat),
    )

    return float(np.rad2deg(dest_lat)), float(np.rad2deg(dest_lon))


def compute_derived_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Compute derived per-sample metrics for a track frame.

    Calculates:
    - Elapsed time from the first sample
    - Segment distances and cumulative distance (haversine)
    - Speed (recorded GPS speed, or computed from position changes)
    - Pace in seconds per kilometer
    - Bearing (direction of travel)

    Args:
        df: DataFrame with lat, lon and timestamp_ms columns, and an
            optional speed column.

    Returns:
        DataFrame with additional columns: elapsed_s, segment_distance_m,
        distance_m, speed_mps, pace_sec_per_km, bearing_deg.
    """
    if df.empty:
        return df

    df = df.copy()

    df["elapsed_s"] = (df["timestamp_ms"] - df["timestamp_ms"].iloc[0]) / 1000.0

    lat = df["lat"].to_numpy(dtype=float)
    lon = df["lon"].to_numpy(dtype=float)
    segment = np.zeros(len(df))
    segment[1:] = haversine_m(lat[:-1], lon[:-1], lat[1:], lon[1:])
    df["segment_distance_m"] = segment
    df["distance_m"] = df["segment_distance_m"].cumsum()

    # Fill missing GPS speed with speed computed from position changes
    dt = df["elapsed_s"].diff().replace({0: np.nan})
    computed_speed = (df["segment_distance_m"] / dt).replace([np.inf, -np.inf], np.nan)
    if "speed" in df.columns:
        recorded = pd.to_numeric(df["speed"], errors="coerce")
        df["speed_mps"] = recorded.fillna(computed_speed)
    else:
        df["speed_mps"] = computed_speed
    df["speed_mps"] = df["speed_mps"].ffill().fillna(0)

    pace = 1000.0 / df["speed_mps"].where(df["speed_mps"] > 0)
    df["pace_sec_per_km"] = pace.fillna(0)

    dlon = np.deg2rad(np.diff(lon))
    lat1 = np.deg2rad(lat[:-1])
    lat2 = np.deg2rad(lat[1:])
    x = np.sin(dlon) * np.cos(lat2)
    y = np.cos(lat1) * np.sin(lat2) - np.sin(lat1) * np.cos(lat2) * np.cos(dlon)
    heading = np.zeros(len(df))
    heading[1:] = (np.rad2deg(np.arctan2(x, y)) + 360.0) % 360.0
    df["bearing_deg"] = heading

    return df
