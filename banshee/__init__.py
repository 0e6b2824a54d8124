"""
Banshee Track Engine

This package processes GPS tracks recorded during runs, walks, rides and
skates: distances, pace and splits, interpolation along a track, ghost
pacing against a previous run, and personal-best segments.

The functions and types below are the in-process API; the HTTP adapter and
the command line script are thin layers on top of it.
"""

# Import constants
from .constants import DATA_DIR, DEFAULT_SPLIT_DISTANCE_M, PACE_PLACEHOLDER

# Import errors
from .errors import TrackDecodeError

# Import data models
from .models import (
    Activity,
    ActivityIndex,
    ActivitySummary,
    ActivityType,
    Banshee,
    BansheeKind,
    GeoPoint,
    GhostState,
    PacingStatus,
    PersonalBest,
    PersonalBestsRegistry,
    SegmentResult,
    Split,
)

# Import geo distance functions
from .metrics import (
    bearing,
    cumulative_distances,
    destination_point,
    distance,
    haversine_m,
    total_distance,
)

# Import interpolation functions
from .interpolation import (
    distance_at_time,
    interpolate_by_distance,
    interpolate_by_time,
    time_at_distance,
    track_duration_ms,
)

# Import pace and split functions
from .pace import (
    calculate_pace,
    calculate_pace_per_mile,
    calculate_speed_kmh,
    calculate_splits,
    current_speed,
    estimate_calories,
    estimate_finish_time,
    format_distance,
    format_distance_miles,
    format_duration,
    format_pace,
    format_pace_per_mile,
    pace_to_speed,
    project_distance_at_time,
    speed_to_pace,
)

# Import ghost pacing
from .ghost import (
    PACE_PRESETS,
    GhostSession,
    build_delta_trace,
    calculate_ghost_delta,
    check_position_change,
    format_ghost_delta,
    pacer_state,
)

# Import personal-best functions
from .personal_best import (
    calculate_pbs_for_activity,
    calculate_segment_times,
    find_best_segment,
    update_pbs,
)

# Import codec functions
from .data_loading import (
    activity_from_json,
    banshee_from_json,
    decode_activity,
    decode_banshee,
    decode_point,
    decode_registry,
    decode_track,
    load_track_csv,
    personal_best_from_json,
    registry_from_json,
    track_from_json,
)
from .export import (
    activity_to_json,
    export_splits_csv,
    export_track_csv,
    registry_to_json,
    splits_to_json,
    track_to_json,
)

# Import session builder functions
from .session import (
    build_activity_payload,
    build_session_payload,
    load_activity,
)

__version__ = "0.1.0"
