"""
Constants for GPS Track Analysis

This module defines the numeric constants, display placeholders and data
paths used throughout the track engine.
"""

import os
from pathlib import Path

# Mean Earth radius used by the haversine formula
EARTH_RADIUS_M = 6_371_000.0

METERS_PER_KM = 1000.0
METERS_PER_MILE = 1609.344
KM_PER_MILE = 1.60934
FEET_PER_METER = 3.28084

# Rough running energy cost
KCAL_PER_KG_KM = 1.0

# Segments shorter than this snap to their start point during interpolation
SEGMENT_EPSILON_M = 0.001

PACE_PLACEHOLDER = "--:--"

DEFAULT_SPLIT_DISTANCE_M = 1000.0
DEFAULT_SPEED_WINDOW = 5

# Ghost delta below this many meters is displayed as "Even"
EVEN_DELTA_M = 1.0

# Track data folder is one level up from banshee/
DATA_DIR = Path(os.environ.get("BANSHEE_DATA_DIR", Path(__file__).parent.parent / "Track Data"))

# Ghost sessions idle longer than this are dropped by the HTTP adapter
GHOST_SESSION_TTL_S = float(os.environ.get("BANSHEE_GHOST_TTL_S", 3600))
# Least recently used session is evicted once this many are live
MAX_GHOST_SESSIONS = int(os.environ.get("BANSHEE_MAX_GHOST_SESSIONS", 1000))
