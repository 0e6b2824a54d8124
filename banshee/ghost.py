"""
Ghost (Banshee) Pacing for GPS Track Analysis

This module compares a live runner against a reference track, the "ghost"
or "banshee": who is ahead, by how much time and by how much distance. It
also covers synthetic constant-pace pacers and delta traces comparing a
whole recorded track against a reference.

A GhostSession holds its reference track in an immutable snapshot. Replacing
the track builds a new snapshot and swaps the reference under a lock, so any
number of readers can query concurrently without seeing a partial update.
"""

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from . import constants
from . import interpolation
from . import metrics
from . import pace
from . import utils
from .models import Activity, GeoPoint, GhostState, PacingStatus

# How the runner's distance along the reference track is estimated
PROJECTION_NEAREST = "nearest"
PROJECTION_SEGMENT = "segment"
PROJECTIONS = (PROJECTION_NEAREST, PROJECTION_SEGMENT)

PACE_PRESETS: List[Tuple[float, str]] = [
    (240.0, "4:00/km (Elite)"),
    (270.0, "4:30/km"),
    (300.0, "5:00/km"),
    (330.0, "5:30/km"),
    (360.0, "6:00/km"),
    (390.0, "6:30/km"),
    (420.0, "7:00/km"),
    (480.0, "8:00/km"),
    (540.0, "9:00/km"),
    (600.0, "10:00/km"),
]


@dataclass(frozen=True)
class _Snapshot:
    points: Tuple[GeoPoint, ...]
    cumulative: np.ndarray
    lats: np.ndarray
    lons: np.ndarray
    total_distance_m: float


def _build_snapshot(track: Sequence[GeoPoint]) -> _Snapshot:
    points = tuple(track)
    cumulative = metrics.cumulative_distances(points)
    cumulative.setflags(write=False)
    lats = np.array([p.lat for p in points], dtype=float)
    lons = np.array([p.lon for p in points], dtype=float)
    total = float(cumulative[-1]) if len(points) > 1 else 0.0
    return _Snapshot(points, cumulative, lats, lons, total)


def _nearest_point_distance(snapshot: _Snapshot, current: GeoPoint) -> float:
    """Distance along the reference to the reference point nearest the runner."""
    gaps = metrics.haversine_m(current.lat, current.lon, snapshot.lats, snapshot.lons)
    # argmin keeps the first of equally near points
    return float(snapshot.cumulative[int(np.argmin(gaps))])


def _segment_projection_distance(snapshot: _Snapshot, current: GeoPoint) -> float:
    """Distance along the reference to the closest point on any segment."""
    if len(snapshot.points) < 2:
        return 0.0

    x, y = metrics.latlon_to_xy(
        snapshot.lats, snapshot.lons, np.deg2rad(current.lat), np.deg2rad(current.lon)
    )
    ax, ay = x[:-1], y[:-1]
    dx, dy = x[1:] - ax, y[1:] - ay
    length_sq = dx ** 2 + dy ** 2

    # The runner sits at the origin of the local projection
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(length_sq > 0, -(ax * dx + ay * dy) / length_sq, 0.0)
    t = np.clip(t, 0.0, 1.0)
    gap_sq = (ax + t * dx) ** 2 + (ay + t * dy) ** 2

    i = int(np.argmin(gap_sq))
    segment_m = snapshot.cumulative[i + 1] - snapshot.cumulative[i]
    return float(snapshot.cumulative[i] + t[i] * segment_m)


_RUNNER_DISTANCE = {
    PROJECTION_NEAREST: _nearest_point_distance,
    PROJECTION_SEGMENT: _segment_projection_distance,
}


class GhostSession:
    """
    Real-time pacing against a reference track.

    Args:
        reference_track: GPS points of the run to race against.
        projection: "nearest" estimates the runner's distance as the distance
            along the reference to its nearest recorded point; "segment"
            projects onto the closest reference segment instead.

    Raises:
        ValueError: If the projection name is unknown.
    """

    def __init__(self, reference_track: Sequence[GeoPoint] = (), projection: str = PROJECTION_NEAREST):
        if projection not in PROJECTIONS:
            raise ValueError(f"Unknown projection {projection!r}; expected one of {PROJECTIONS}")
        self.projection = projection
        self._lock = threading.Lock()
        self._snapshot = _build_snapshot(reference_track)

    @classmethod
    def from_activity(cls, activity: Activity, projection: str = PROJECTION_NEAREST) -> "GhostSession":
        return cls(activity.coordinates, projection=projection)

    def replace_track(self, reference_track: Sequence[GeoPoint]) -> None:
        """Swap in a new reference track; in-flight queries finish on the old one."""
        snapshot = _build_snapshot(reference_track)
        with self._lock:
            self._snapshot = snapshot
        logger.debug(
            "Ghost reference replaced: {} points, {:.1f} m",
            len(snapshot.points),
            snapshot.total_distance_m,
        )

    # Properties ----------------------------------------------------------

    @property
    def reference_points(self) -> Tuple[GeoPoint, ...]:
        return self._snapshot.points

    @property
    def best_run_distance(self) -> float:
        """Total distance of the reference track in meters."""
        return self._snapshot.total_distance_m

    @property
    def best_run_duration_ms(self) -> int:
        """Duration of the reference track in milliseconds."""
        return interpolation.track_duration_ms(self._snapshot.points)

    @property
    def is_empty(self) -> bool:
        return not self._snapshot.points

    # Queries -------------------------------------------------------------

    def _ghost_distance(self, snapshot: _Snapshot, elapsed_ms: float) -> float:
        distance = interpolation.distance_at_time(snapshot.points, elapsed_ms, snapshot.cumulative)
        return 0.0 if distance is None else distance

    def _runner_distance(self, snapshot: _Snapshot, current: GeoPoint) -> float:
        return _RUNNER_DISTANCE[self.projection](snapshot, current)

    def _ghost_time(self, snapshot: _Snapshot, distance_m: float) -> int:
        time_ms = interpolation.time_at_distance(snapshot.points, distance_m, snapshot.cumulative)
        if time_ms is None:
            return interpolation.track_duration_ms(snapshot.points)
        return time_ms

    def ghost_distance_at(self, elapsed_ms: float) -> float:
        """Distance the ghost has covered after elapsed_ms."""
        return self._ghost_distance(self._snapshot, elapsed_ms)

    def runner_distance(self, current_point: GeoPoint) -> float:
        """Estimated distance of the runner along the reference track."""
        snapshot = self._snapshot
        if not snapshot.points:
            return 0.0
        return self._runner_distance(snapshot, current_point)

    def pacing_status(self, current_point: GeoPoint, elapsed_ms: float) -> PacingStatus:
        """
        Compare the runner with the ghost.

        Args:
            current_point: The runner's current position.
            elapsed_ms: Milliseconds since the runner started.

        Returns:
            BEHIND if the ghost has covered more distance than the runner,
            AHEAD otherwise, UNKNOWN if the reference track is empty.
        """
        snapshot = self._snapshot
        if not snapshot.points:
            return PacingStatus.UNKNOWN

        ghost_m = self._ghost_distance(snapshot, elapsed_ms)
        runner_m = self._runner_distance(snapshot, current_point)
        if ghost_m > runner_m:
            return PacingStatus.BEHIND
        return PacingStatus.AHEAD

    def is_behind(self, current_point: GeoPoint, elapsed_ms: float) -> bool:
        return self.pacing_status(current_point, elapsed_ms) is PacingStatus.BEHIND

    def time_difference_ms(self, current_point: GeoPoint, elapsed_ms: float) -> int:
        """
        Time gap between the runner and the ghost at the runner's position.

        Args:
            current_point: The runner's current position.
            elapsed_ms: Milliseconds since the runner started.

        Returns:
            elapsed_ms minus the time the ghost needed to reach the runner's
            distance. Positive means the runner is behind schedule; 0 for an
            empty reference track.
        """
        snapshot = self._snapshot
        if not snapshot.points:
            return 0

        runner_m = self._runner_distance(snapshot, current_point)
        return int(elapsed_ms) - self._ghost_time(snapshot, runner_m)

    def distance_difference_m(self, current_point: GeoPoint, elapsed_ms: float) -> float:
        """Ghost distance minus runner distance (positive = ghost ahead)."""
        snapshot = self._snapshot
        if not snapshot.points:
            return 0.0
        return self._ghost_distance(snapshot, elapsed_ms) - self._runner_distance(snapshot, current_point)

    def ghost_state(self, current_point: GeoPoint, elapsed_ms: float) -> Optional[GhostState]:
        """
        Full ghost state for one tick of the tracking screen.

        All values are computed from the same snapshot.

        Returns:
            GhostState with the ghost position and deltas, or None if the
            reference track is empty.
        """
        snapshot = self._snapshot
        if not snapshot.points:
            return None
        return self._state(snapshot, current_point, elapsed_ms)

    def compare(self, current_point: GeoPoint, elapsed_ms: float) -> Tuple[PacingStatus, Optional[GhostState]]:
        """
        Pacing status and ghost state for one tick, from a single snapshot.

        A concurrent replace_track never mixes two reference tracks into one
        result, and the runner is projected onto the reference only once.

        Returns:
            (status, state). The state's time_delta_ms and
            distance_delta_meters equal time_difference_ms and
            distance_difference_m. (UNKNOWN, None) for an empty reference.
        """
        snapshot = self._snapshot
        if not snapshot.points:
            return PacingStatus.UNKNOWN, None

        state = self._state(snapshot, current_point, elapsed_ms)
        if state.distance_delta_meters > 0:
            return PacingStatus.BEHIND, state
        return PacingStatus.AHEAD, state

    def _state(self, snapshot: _Snapshot, current_point: GeoPoint, elapsed_ms: float) -> GhostState:
        position = interpolation.interpolate_by_time(snapshot.points, elapsed_ms)
        ghost_m = self._ghost_distance(snapshot, elapsed_ms)
        runner_m = self._runner_distance(snapshot, current_point)

        return GhostState(
            lat=position.lat,
            lon=position.lon,
            distance_meters=ghost_m,
            time_delta_ms=int(elapsed_ms) - self._ghost_time(snapshot, runner_m),
            distance_delta_meters=ghost_m - runner_m,
        )


# ============================================================================
# SYNTHETIC PACER
# ============================================================================

def pacer_state(
    start: GeoPoint,
    target_pace_sec_per_km: float,
    elapsed_ms: float,
    route: Optional[Sequence[GeoPoint]] = None,
) -> Optional[GhostState]:
    """
    Position of a constant-pace pacer.

    The pacer follows the route when one is given, otherwise it is shown at
    the start point.

    Args:
        start: Start position of the run.
        target_pace_sec_per_km: Pacer pace in seconds per kilometer.
        elapsed_ms: Milliseconds since the start.
        route: Optional planned route for the pacer to follow.

    Returns:
        GhostState of the pacer, or None for a non-positive pace.
    """
    if target_pace_sec_per_km <= 0:
        return None

    distance_m = pace.pace_to_speed(target_pace_sec_per_km) * max(0.0, elapsed_ms) / 1000.0

    position = start
    if route:
        position = interpolation.interpolate_by_distance(route, distance_m)

    return GhostState(lat=position.lat, lon=position.lon, distance_meters=distance_m)


def calculate_ghost_delta(
    ghost_distance_m: float,
    ghost_time_ms: int,
    runner_distance_m: float,
    runner_time_ms: int,
    target_pace_sec_per_km: Optional[float] = None,
) -> GhostState:
    """
    Ghost deltas from distances already known to the caller.

    With a target pace (synthetic pacer) the time delta is the time needed to
    close the distance gap at that pace; otherwise it is the plain difference
    of the two times.
    """
    distance_delta = ghost_distance_m - runner_distance_m

    if target_pace_sec_per_km is not None:
        speed = pace.pace_to_speed(target_pace_sec_per_km)
        time_delta = int(distance_delta / speed * 1000.0) if speed > 0 else 0
    else:
        time_delta = ghost_time_ms - runner_time_ms

    return GhostState(
        lat=0.0,
        lon=0.0,
        distance_meters=ghost_distance_m,
        time_delta_ms=time_delta,
        distance_delta_meters=distance_delta,
    )


def format_ghost_delta(distance_delta_m: float) -> str:
    """
    Format a ghost distance delta for display ("50m behind", "1.20km ahead").

    A positive delta means the ghost is ahead, so the runner is "behind".
    """
    abs_distance = abs(distance_delta_m)
    direction = "behind" if distance_delta_m > 0 else "ahead"

    if abs_distance < constants.EVEN_DELTA_M:
        return "Even"
    if abs_distance < 1000.0:
        return f"{abs_distance:.0f}m {direction}"
    return f"{abs_distance / 1000.0:.2f}km {direction}"


def check_position_change(previous_delta_m: float, current_delta_m: float, threshold_m: float) -> int:
    """
    Detect the runner crossing from ahead to behind or back.

    Returns:
        -1 if the runner fell behind, 1 if the runner pulled ahead, 0 if
        nothing changed beyond the threshold.
    """
    was_ahead = previous_delta_m < -threshold_m
    was_behind = previous_delta_m > threshold_m
    is_ahead = current_delta_m < -threshold_m
    is_behind = current_delta_m > threshold_m

    if was_ahead and is_behind:
        return -1
    if was_behind and is_ahead:
        return 1
    return 0


# ============================================================================
# DELTA TRACES
# ============================================================================

def build_delta_trace(reference: Sequence[GeoPoint], track: Sequence[GeoPoint]) -> List[Dict]:
    """
    Build a time delta trace comparing a track to a reference track.

    For each sample of the track, the reference time at the same distance is
    interpolated and subtracted from the track's elapsed time.

    Args:
        reference: Reference (ghost) track.
        track: Track to compare.

    Returns:
        List of {distance_m, time_delta_s} dictionaries; positive deltas mean
        the track is slower than the reference. Empty if either track has
        fewer than two points.
    """
    if len(reference) < 2 or len(track) < 2:
        return []

    ref_dist = metrics.cumulative_distances(reference)
    ref_time = np.array([p.timestamp_ms - reference[0].timestamp_ms for p in reference], dtype=float) / 1000.0

    track_dist = metrics.cumulative_distances(track)
    track_time = np.array([p.timestamp_ms - track[0].timestamp_ms for p in track], dtype=float) / 1000.0

    ref_time_at_distance = np.interp(track_dist, ref_dist, ref_time, left=ref_time[0], right=ref_time[-1])
    deltas = track_time - ref_time_at_distance

    return [
        {
            "distance_m": utils.round_float(d, 2),
            "time_delta_s": utils.round_float(delta, 3),
        }
        for d, delta in zip(track_dist, deltas)
    ]
