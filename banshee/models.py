"""
Data Models for GPS Track Analysis

This module defines the value types passed in and out of the track engine:
GPS points, splits, activities, personal bests, ghost (banshee) descriptions
and pacing results. Points, splits and segment results are immutable; the
personal-best registry is the only collection with update semantics.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from . import metrics


# ============================================================================
# POINTS & SPLITS
# ============================================================================

@dataclass(frozen=True)
class GeoPoint:
    """
    A single GPS sample.

    Attributes:
        lat: Latitude in decimal degrees (-90 to 90).
        lon: Longitude in decimal degrees (-180 to 180).
        timestamp_ms: Milliseconds, either since the start of the run or
            since the Unix epoch. Computations only use offsets from the
            first point of a track, so both conventions work.
        altitude: Altitude in meters, if recorded.
        accuracy: Horizontal accuracy in meters, if recorded.
        speed: Instantaneous speed in m/s, if recorded.
    """
    lat: float
    lon: float
    timestamp_ms: int = 0
    altitude: Optional[float] = None
    accuracy: Optional[float] = None
    speed: Optional[float] = None

    def is_valid(self) -> bool:
        """Check that the coordinates are inside the valid lat/lon ranges."""
        return -90.0 <= self.lat <= 90.0 and -180.0 <= self.lon <= 180.0

    def distance_to(self, other: "GeoPoint") -> float:
        """Great-circle distance in meters to another point."""
        return metrics.distance(self, other)

    def to_dict(self) -> Dict:
        return {
            "lat": self.lat,
            "lon": self.lon,
            "timestamp_ms": self.timestamp_ms,
            "altitude": self.altitude,
            "accuracy": self.accuracy,
            "speed": self.speed,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "GeoPoint":
        """
        Build a point from its dictionary form.

        Raises:
            KeyError: If lat, lon or timestamp_ms is missing.
            TypeError, ValueError: If a field has the wrong type or lat, lon
                or timestamp_ms is not finite.
        """
        def _finite(name: str) -> float:
            value = float(data[name])
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value}")
            return value

        def _optional(name: str) -> Optional[float]:
            value = data.get(name)
            return None if value is None else float(value)

        return cls(
            lat=_finite("lat"),
            lon=_finite("lon"),
            timestamp_ms=int(_finite("timestamp_ms")),
            altitude=_optional("altitude"),
            accuracy=_optional("accuracy"),
            speed=_optional("speed"),
        )


@dataclass(frozen=True)
class Split:
    """
    One fixed-distance segment of a track.

    Attributes:
        number: Split number (1-indexed).
        distance_m: Distance covered by this split in meters.
        duration_ms: Time taken for this split.
        pace_sec_per_km: Pace over the split in seconds per kilometer.
        cumulative_distance_m: Track distance at the end of the split.
        cumulative_time_ms: Elapsed time at the end of the split.
    """
    number: int
    distance_m: float
    duration_ms: int
    pace_sec_per_km: float
    cumulative_distance_m: float
    cumulative_time_ms: int


class PacingStatus(Enum):
    """Position of the runner relative to the ghost."""
    AHEAD = "ahead"
    BEHIND = "behind"
    UNKNOWN = "unknown"


# ============================================================================
# ACTIVITY TYPES
# ============================================================================

class ActivityType(Enum):
    """Supported activity types, serialized in snake_case."""
    RUN = "run"
    WALK = "walk"
    CYCLE = "cycle"
    ROLLER_SKATE = "roller_skate"

    @property
    def pb_distances(self) -> Tuple[float, ...]:
        """Standard personal-best distances in meters, ascending."""
        return STANDARD_DISTANCES_M[self]

    def to_int(self) -> int:
        """Integer code used by foreign-call boundaries."""
        return ACTIVITY_TYPE_CODES.index(self)

    @classmethod
    def from_int(cls, value: int) -> Optional["ActivityType"]:
        """Activity type for an integer code, or None for unknown codes."""
        if 0 <= value < len(ACTIVITY_TYPE_CODES):
            return ACTIVITY_TYPE_CODES[value]
        return None

    @staticmethod
    def distance_name(distance_m: float) -> str:
        """Human-readable name for a standard distance ("5K", "Marathon", ...)."""
        return DISTANCE_NAMES.get(int(distance_m), "Custom")


_FOOT_DISTANCES_M = (1_000.0, 5_000.0, 10_000.0, 21_097.5, 42_195.0)

STANDARD_DISTANCES_M: Dict[ActivityType, Tuple[float, ...]] = {
    ActivityType.RUN: _FOOT_DISTANCES_M,
    ActivityType.WALK: _FOOT_DISTANCES_M,
    ActivityType.CYCLE: (10_000.0, 25_000.0, 50_000.0, 100_000.0),
    ActivityType.ROLLER_SKATE: _FOOT_DISTANCES_M,
}

# 0 = run, 1 = walk, 2 = cycle, 3 = roller skate
ACTIVITY_TYPE_CODES: List[ActivityType] = [
    ActivityType.RUN,
    ActivityType.WALK,
    ActivityType.CYCLE,
    ActivityType.ROLLER_SKATE,
]

DISTANCE_NAMES: Dict[int, str] = {
    1_000: "1K",
    5_000: "5K",
    10_000: "10K",
    21_097: "Half Marathon",
    21_098: "Half Marathon",
    25_000: "25K",
    42_195: "Marathon",
    50_000: "50K",
    100_000: "100K",
}


# ============================================================================
# ACTIVITIES
# ============================================================================

@dataclass(frozen=True)
class ActivitySummary:
    """Coordinate-free view of an activity for list display."""
    id: str
    name: str
    activity_type: ActivityType
    total_distance_meters: float
    duration_ms: int
    recorded_at: int
    pace_min_per_km: float

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "activity_type": self.activity_type.value,
            "total_distance_meters": self.total_distance_meters,
            "duration_ms": self.duration_ms,
            "recorded_at": self.recorded_at,
            "pace_min_per_km": self.pace_min_per_km,
        }


@dataclass(frozen=True)
class Activity:
    """
    A recorded activity with its GPS track.

    Total distance and duration are derived from the coordinates when the
    activity is created.

    Attributes:
        id: Unique identifier.
        name: Display name (e.g. "Morning 5K").
        activity_type: Run, walk, cycle or roller skate.
        coordinates: Ordered GPS points.
        recorded_at: Epoch milliseconds when the activity was recorded.
        total_distance_meters: Sum of segment distances.
        duration_ms: Last timestamp minus first timestamp.
    """
    id: str
    name: str
    activity_type: ActivityType
    coordinates: Tuple[GeoPoint, ...]
    recorded_at: int = 0
    total_distance_meters: float = field(init=False)
    duration_ms: int = field(init=False)

    def __post_init__(self):
        coordinates = tuple(self.coordinates)
        object.__setattr__(self, "coordinates", coordinates)
        object.__setattr__(self, "total_distance_meters", metrics.total_distance(coordinates))
        if len(coordinates) < 2:
            duration = 0
        else:
            duration = max(0, coordinates[-1].timestamp_ms - coordinates[0].timestamp_ms)
        object.__setattr__(self, "duration_ms", duration)

    @property
    def average_pace_min_per_km(self) -> float:
        """Average pace in minutes per kilometer, 0.0 for a zero-distance activity."""
        if self.total_distance_meters <= 0:
            return 0.0
        return (self.duration_ms / 60_000.0) / (self.total_distance_meters / 1000.0)

    @property
    def average_speed_kmh(self) -> float:
        """Average speed in km/h, 0.0 for a zero-duration activity."""
        if self.duration_ms <= 0:
            return 0.0
        return (self.total_distance_meters / 1000.0) / (self.duration_ms / 3_600_000.0)

    def to_summary(self) -> ActivitySummary:
        return ActivitySummary(
            id=self.id,
            name=self.name,
            activity_type=self.activity_type,
            total_distance_meters=self.total_distance_meters,
            duration_ms=self.duration_ms,
            recorded_at=self.recorded_at,
            pace_min_per_km=self.average_pace_min_per_km,
        )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "activity_type": self.activity_type.value,
            "coordinates": [point.to_dict() for point in self.coordinates],
            "total_distance_meters": self.total_distance_meters,
            "duration_ms": self.duration_ms,
            "recorded_at": self.recorded_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Activity":
        """
        Build an activity from its dictionary form.

        Stored distance and duration are ignored and recomputed from the
        coordinates.
        """
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            activity_type=ActivityType(data["activity_type"]),
            coordinates=tuple(GeoPoint.from_dict(p) for p in data["coordinates"]),
            recorded_at=int(data.get("recorded_at", 0)),
        )


@dataclass
class ActivityIndex:
    """Index of activity summaries for list screens."""
    activities: List[ActivitySummary] = field(default_factory=list)

    def add(self, summary: ActivitySummary) -> None:
        self.activities.append(summary)

    def remove(self, activity_id: str) -> None:
        self.activities = [a for a in self.activities if a.id != activity_id]

    def sorted_by_date(self) -> List[ActivitySummary]:
        """Most recent first."""
        return sorted(self.activities, key=lambda a: a.recorded_at, reverse=True)

    def filter_by_type(self, activity_type: ActivityType) -> List[ActivitySummary]:
        return [a for a in self.activities if a.activity_type is activity_type]


# ============================================================================
# PERSONAL BESTS
# ============================================================================

@dataclass(frozen=True)
class SegmentResult:
    """Fastest sub-segment of a track covering a target distance."""
    distance_meters: float
    time_ms: int
    start_idx: int
    end_idx: int


@dataclass(frozen=True)
class PersonalBest:
    """
    Best time for one (activity type, standard distance) pair.

    Attributes:
        activity_type: Activity type the record belongs to.
        distance_meters: Standard distance in meters (e.g. 5000.0).
        time_ms: Best time to cover the distance.
        activity_id: Activity that achieved the record.
        achieved_at: Epoch milliseconds when the record was set.
        pace_min_per_km: Average pace over the segment, derived.
    """
    activity_type: ActivityType
    distance_meters: float
    time_ms: int
    activity_id: str
    achieved_at: int = 0
    pace_min_per_km: float = field(init=False)

    def __post_init__(self):
        if self.distance_meters > 0:
            pace = (self.time_ms / 60_000.0) / (self.distance_meters / 1000.0)
        else:
            pace = 0.0
        object.__setattr__(self, "pace_min_per_km", pace)

    @property
    def key(self) -> Tuple[ActivityType, int]:
        return registry_key(self.activity_type, self.distance_meters)

    @property
    def distance_name(self) -> str:
        return ActivityType.distance_name(self.distance_meters)

    def format_time(self) -> str:
        """Record time as M:SS, or H:MM:SS from one hour."""
        # pace imports this module
        from . import pace

        return pace.format_duration(self.time_ms)

    def format_pace(self) -> str:
        """Pace as "M:SS /km"."""
        total_seconds = int(self.pace_min_per_km * 60.0)
        return f"{total_seconds // 60}:{total_seconds % 60:02d} /km"

    def to_dict(self) -> Dict:
        return {
            "activity_type": self.activity_type.value,
            "distance_meters": self.distance_meters,
            "time_ms": self.time_ms,
            "activity_id": self.activity_id,
            "achieved_at": self.achieved_at,
            "pace_min_per_km": self.pace_min_per_km,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "PersonalBest":
        return cls(
            activity_type=ActivityType(data["activity_type"]),
            distance_meters=float(data["distance_meters"]),
            time_ms=int(data["time_ms"]),
            activity_id=str(data["activity_id"]),
            achieved_at=int(data.get("achieved_at", 0)),
        )


def registry_key(activity_type: ActivityType, distance_meters: float) -> Tuple[ActivityType, int]:
    """Registry key: activity type plus distance rounded to the nearest meter."""
    return activity_type, int(round(distance_meters))


@dataclass
class PersonalBestsRegistry:
    """
    Collection of personal bests, one record per (activity type, distance).

    Owned by the persistence layer; the track engine only reads it and
    produces updated copies.
    """
    records: List[PersonalBest] = field(default_factory=list)

    def get(self, activity_type: ActivityType, distance_meters: float) -> Optional[PersonalBest]:
        key = registry_key(activity_type, distance_meters)
        return next((pb for pb in self.records if pb.key == key), None)

    def for_type(self, activity_type: ActivityType) -> List[PersonalBest]:
        return [pb for pb in self.records if pb.activity_type is activity_type]

    def update(self, pb: PersonalBest) -> bool:
        """
        Add or replace a record.

        A record replaces the existing one for the same key only when it is
        strictly faster.

        Args:
            pb: Candidate record.

        Returns:
            True if the registry changed.
        """
        for idx, existing in enumerate(self.records):
            if existing.key == pb.key:
                if pb.time_ms < existing.time_ms:
                    self.records[idx] = pb
                    return True
                return False
        self.records.append(pb)
        return True

    def remove_for_activity(self, activity_id: str) -> None:
        self.records = [pb for pb in self.records if pb.activity_id != activity_id]

    def copy(self) -> "PersonalBestsRegistry":
        return PersonalBestsRegistry(records=list(self.records))

    def to_dict(self) -> Dict:
        return {"records": [pb.to_dict() for pb in self.records]}

    @classmethod
    def from_dict(cls, data: Dict) -> "PersonalBestsRegistry":
        return cls(records=[PersonalBest.from_dict(r) for r in data["records"]])


# ============================================================================
# GHOST / BANSHEE
# ============================================================================

class BansheeKind(Enum):
    """What the ghost is made of."""
    RECORDED_RUN = "recorded_run"
    SYNTHETIC_PACER = "synthetic_pacer"


# Payload attribute carried by each kind of ghost
BANSHEE_PAYLOAD_FIELD: Dict[BansheeKind, str] = {
    BansheeKind.RECORDED_RUN: "run_id",
    BansheeKind.SYNTHETIC_PACER: "target_pace_sec_per_km",
}


@dataclass(frozen=True)
class Banshee:
    """
    A ghost to race against: a previously recorded run or a constant-pace pacer.

    Only the payload field named in BANSHEE_PAYLOAD_FIELD for the kind is set.
    """
    kind: BansheeKind
    name: str
    run_id: Optional[str] = None
    target_pace_sec_per_km: Optional[float] = None

    @classmethod
    def from_run(cls, run_id: str, name: str) -> "Banshee":
        return cls(kind=BansheeKind.RECORDED_RUN, name=name, run_id=run_id)

    @classmethod
    def pacer(cls, target_pace_sec_per_km: float, name: str) -> "Banshee":
        return cls(
            kind=BansheeKind.SYNTHETIC_PACER,
            name=name,
            target_pace_sec_per_km=target_pace_sec_per_km,
        )

    @classmethod
    def pacer_from_min_per_km(cls, minutes: float, name: str) -> "Banshee":
        return cls.pacer(minutes * 60.0, name)

    @property
    def is_pacer(self) -> bool:
        return self.kind is BansheeKind.SYNTHETIC_PACER

    @property
    def payload(self):
        return getattr(self, BANSHEE_PAYLOAD_FIELD[self.kind])

    def to_dict(self) -> Dict:
        payload_field = BANSHEE_PAYLOAD_FIELD[self.kind]
        return {"kind": self.kind.value, "name": self.name, payload_field: self.payload}

    @classmethod
    def from_dict(cls, data: Dict) -> "Banshee":
        kind = BansheeKind(data["kind"])
        payload = data[BANSHEE_PAYLOAD_FIELD[kind]]
        if kind is BansheeKind.RECORDED_RUN:
            return cls.from_run(str(payload), str(data.get("name", "")))
        return cls.pacer(float(payload), str(data.get("name", "")))


@dataclass(frozen=True)
class GhostState:
    """
    Ghost position and deltas relative to the runner.

    Attributes:
        lat: Ghost latitude.
        lon: Ghost longitude.
        distance_meters: Distance covered by the ghost.
        time_delta_ms: Runner elapsed time minus ghost time at the runner's
            distance (positive = runner behind).
        distance_delta_meters: Ghost distance minus runner distance
            (positive = ghost ahead).
    """
    lat: float
    lon: float
    distance_meters: float
    time_delta_ms: int = 0
    distance_delta_meters: float = 0.0

    @property
    def is_ahead(self) -> bool:
        """True when the ghost is ahead of the runner."""
        return self.distance_delta_meters > 0.0

    def to_dict(self) -> Dict:
        return {
            "lat": self.lat,
            "lon": self.lon,
            "distance_meters": self.distance_meters,
            "time_delta_ms": self.time_delta_ms,
            "distance_delta_meters": self.distance_delta_meters,
        }
