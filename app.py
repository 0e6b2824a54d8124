"""
FastAPI Web Application for GPS Track Analysis

This module provides a REST API over the banshee track engine: analysis of
track files found in the data directory, stateless compute endpoints for
activities sent by a client, and ghost pacing sessions held by handle id.
"""

import json
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from loguru import logger
from pydantic import BaseModel, Field

from banshee import constants
from banshee import data_loading
from banshee import export
from banshee import ghost
from banshee import interpolation
from banshee import pace
from banshee import personal_best
from banshee import session as session_builder
from banshee.errors import TrackDecodeError


# ============================================================================
# APPLICATION SETUP
# ============================================================================

app = FastAPI(title="Banshee Track Engine")

TRACK_FILE_PATTERNS = ("*.csv", "*.json")


@app.exception_handler(TrackDecodeError)
async def handle_decode_error(request: Request, exc: TrackDecodeError):
    logger.warning("Rejected malformed input on {}: {}", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# ============================================================================
# REQUEST MODELS
# ============================================================================

class AnalyzeRequest(BaseModel):
    """Activity to analyze, with optional registry and ghost reference."""
    activity: Dict[str, Any]
    split_distance_m: float = Field(constants.DEFAULT_SPLIT_DISTANCE_M, gt=0)
    registry: Optional[Dict[str, Any]] = None
    reference: Optional[List[Dict[str, Any]]] = None


class InterpolateRequest(BaseModel):
    track: List[Dict[str, Any]]
    elapsed_ms: Optional[float] = None
    distance_m: Optional[float] = None


class PersonalBestsRequest(BaseModel):
    activity: Dict[str, Any]
    registry: Dict[str, Any] = Field(default_factory=lambda: {"records": []})


class GhostCreateRequest(BaseModel):
    track: List[Dict[str, Any]]
    projection: str = ghost.PROJECTION_NEAREST


class GhostReplaceRequest(BaseModel):
    track: List[Dict[str, Any]]


class GhostStatusRequest(BaseModel):
    point: Dict[str, Any]
    elapsed_ms: float


class PacerRequest(BaseModel):
    banshee: Dict[str, Any]
    start: Dict[str, Any]
    elapsed_ms: float
    route: Optional[List[Dict[str, Any]]] = None


# ============================================================================
# DATASET DISCOVERY
# ============================================================================

def get_available_datasets() -> list:
    """
    Discover track files in the data directory.

    Scans the data directory for .csv and .json track files and returns a
    list of available datasets with their filenames.

    Returns:
        List of dictionaries with 'filename' and 'display_name' keys.
    """
    data_dir = Path(constants.DATA_DIR)
    datasets = []

    if not data_dir.exists():
        return datasets

    for pattern in TRACK_FILE_PATTERNS:
        for file_path in data_dir.glob(pattern):
            datasets.append({
                "filename": file_path.name,
                "display_name": file_path.stem.replace("_", " ").title(),
            })

    datasets.sort(key=lambda x: x["filename"])
    return datasets


# ============================================================================
# SESSION LOADING & CACHING
# ============================================================================

def resolve_dataset_file(dataset_filename: Optional[str]) -> Path:
    """
    Path of a dataset in the data directory.

    Args:
        dataset_filename: Name of the data file. If None, the first
            available dataset is used.

    Raises:
        HTTPException: 404 if the dataset does not exist.
    """
    if dataset_filename is None:
        datasets = get_available_datasets()
        if not datasets:
            raise HTTPException(status_code=404, detail="No datasets available")
        dataset_filename = datasets[0]["filename"]

    # Only plain file names inside the data directory are served
    data_file = Path(constants.DATA_DIR) / Path(dataset_filename).name
    if not data_file.is_file():
        raise HTTPException(status_code=404, detail=f"Dataset file not found: {dataset_filename}")
    return data_file


# Cache for analyzed datasets (dataset_filename -> payload)
session_cache: Dict[str, dict] = {}


def load_session(dataset_filename: Optional[str] = None) -> dict:
    """
    Load and analyze a track file from the data directory.

    Payloads are cached to avoid reprocessing on subsequent requests.

    Args:
        dataset_filename: Name of the data file to load. If None, the first
            available dataset is used.

    Returns:
        Analysis payload from session.build_session_payload().

    Raises:
        HTTPException: 404 if the dataset does not exist.
        TrackDecodeError: If the file is malformed (mapped to 422).
    """
    data_file = resolve_dataset_file(dataset_filename)
    dataset_filename = data_file.name

    if dataset_filename in session_cache:
        return session_cache[dataset_filename]

    payload = session_builder.build_session_payload(data_file)
    session_cache[dataset_filename] = payload
    logger.info("Analyzed dataset {}", dataset_filename)
    return payload


# ============================================================================
# API ROUTES - DATASETS
# ============================================================================

@app.get("/api/datasets")
def get_datasets():
    """List available track files."""
    return get_available_datasets()


@app.get("/api/session")
def get_session(dataset: Optional[str] = Query(None, description="Dataset filename to load")):
    """
    Get the complete analysis payload for a dataset.

    Returns summary, track GeoJSON, telemetry, splits and best segments.
    """
    return load_session(dataset)


@app.get("/api/track")
def get_track(dataset: Optional[str] = Query(None, description="Dataset filename to load")):
    return load_session(dataset)["track"]


@app.get("/api/telemetry")
def get_telemetry(dataset: Optional[str] = Query(None, description="Dataset filename to load")):
    return load_session(dataset)["telemetry"]


@app.get("/api/splits")
def get_splits(dataset: Optional[str] = Query(None, description="Dataset filename to load")):
    return load_session(dataset)["splits"]


# ============================================================================
# API ROUTES - EXPORT
# ============================================================================

@app.get("/api/export/session")
def export_session(dataset: Optional[str] = Query(None, description="Dataset filename to export")):
    """
    Export the complete analysis payload as a JSON download.

    Returns:
        PlainTextResponse with a Content-Disposition header. Filename:
        banshee_session.json
    """
    payload = load_session(dataset)
    body = json.dumps(payload, indent=2)
    headers = {"Content-Disposition": "attachment; filename=banshee_session.json"}
    return PlainTextResponse(body, media_type="application/json", headers=headers)


@app.get("/api/export/splits")
def export_splits(
    dataset: Optional[str] = Query(None, description="Dataset filename to export"),
    split_distance_m: float = Query(constants.DEFAULT_SPLIT_DISTANCE_M, gt=0),
):
    """
    Export a dataset's splits as a CSV download.

    Returns:
        PlainTextResponse with a Content-Disposition header. Filename:
        splits.csv
    """
    activity = session_builder.load_activity(resolve_dataset_file(dataset))
    splits = pace.calculate_splits(activity.coordinates, split_distance_m)
    headers = {"Content-Disposition": "attachment; filename=splits.csv"}
    return PlainTextResponse(export.export_splits_csv(splits), media_type="text/csv", headers=headers)


# ============================================================================
# API ROUTES - COMPUTE
# ============================================================================

@app.post("/api/analyze")
def analyze_activity(request: AnalyzeRequest):
    """Analyze an activity sent by the client."""
    activity = data_loading.decode_activity(request.activity)
    registry = None
    if request.registry is not None:
        registry = data_loading.decode_registry(request.registry)
    reference = None
    if request.reference is not None:
        reference = data_loading.decode_track(request.reference)

    return session_builder.build_activity_payload(
        activity,
        split_distance_m=request.split_distance_m,
        registry=registry,
        reference=reference,
    )


@app.post("/api/interpolate")
def interpolate(request: InterpolateRequest):
    """
    Look up a position along a track by elapsed time and/or distance.

    Returns:
        Dictionary with 'by_time' and 'by_distance' entries for whichever
        lookups were requested; a null point means the track is empty.
    """
    if request.elapsed_ms is None and request.distance_m is None:
        raise HTTPException(status_code=422, detail="Provide elapsed_ms, distance_m or both")

    track = data_loading.decode_track(request.track)
    result = {}

    if request.elapsed_ms is not None:
        point = interpolation.interpolate_by_time(track, request.elapsed_ms)
        result["by_time"] = {
            "point": point.to_dict() if point else None,
            "distance_m": interpolation.distance_at_time(track, request.elapsed_ms),
        }

    if request.distance_m is not None:
        point = interpolation.interpolate_by_distance(track, request.distance_m)
        result["by_distance"] = {
            "point": point.to_dict() if point else None,
            "elapsed_ms": interpolation.time_at_distance(track, request.distance_m),
        }

    return result


@app.post("/api/personal-bests")
def update_personal_bests(request: PersonalBestsRequest):
    """Merge an activity's best segments into a personal-best registry."""
    activity = data_loading.decode_activity(request.activity)
    registry = data_loading.decode_registry(request.registry)
    updated, achieved = personal_best.update_pbs(registry, activity)
    return {
        "registry": updated.to_dict(),
        "new_records": [pb.to_dict() for pb in achieved],
    }


@app.get("/api/pace-presets")
def get_pace_presets():
    return [{"pace_sec_per_km": p, "label": label} for p, label in ghost.PACE_PRESETS]


@app.post("/api/pacer")
def get_pacer_state(request: PacerRequest):
    """
    Position of a synthetic pacer.

    Raises:
        HTTPException: 422 if the banshee is a recorded run or its pace is
            not positive.
    """
    banshee = data_loading.decode_banshee(request.banshee)
    if not banshee.is_pacer:
        raise HTTPException(status_code=422, detail="Banshee is not a synthetic pacer")

    start = data_loading.decode_point(request.start)
    route = data_loading.decode_track(request.route) if request.route is not None else None
    state = ghost.pacer_state(start, banshee.target_pace_sec_per_km, request.elapsed_ms, route)
    if state is None:
        raise HTTPException(status_code=422, detail="Pacer pace must be positive")
    return state.to_dict()


# ============================================================================
# API ROUTES - GHOST SESSIONS
# ============================================================================

# Live ghost sessions (ghost_id -> GhostSession) and their last use
ghost_sessions: Dict[str, ghost.GhostSession] = {}
ghost_last_used: Dict[str, float] = {}
ghost_sessions_lock = threading.Lock()


def prune_ghost_sessions(now: float) -> None:
    """Drop idle sessions; caller holds ghost_sessions_lock."""
    expired = [gid for gid, used in ghost_last_used.items() if now - used > constants.GHOST_SESSION_TTL_S]
    for gid in expired:
        ghost_sessions.pop(gid, None)
        ghost_last_used.pop(gid, None)
    if expired:
        logger.info("Expired {} idle ghost session(s)", len(expired))


def get_ghost_session(ghost_id: str) -> ghost.GhostSession:
    now = time.monotonic()
    with ghost_sessions_lock:
        prune_ghost_sessions(now)
        session = ghost_sessions.get(ghost_id)
        if session is not None:
            ghost_last_used[ghost_id] = now
    if session is None:
        raise HTTPException(status_code=404, detail=f"Ghost session not found: {ghost_id}")
    return session


def ghost_summary(ghost_id: str, session: ghost.GhostSession) -> dict:
    return {
        "ghost_id": ghost_id,
        "projection": session.projection,
        "point_count": len(session.reference_points),
        "best_run_distance": session.best_run_distance,
        "best_run_duration_ms": session.best_run_duration_ms,
    }


@app.post("/api/ghosts", status_code=201)
def create_ghost(request: GhostCreateRequest):
    """Start a ghost session against a reference track."""
    track = data_loading.decode_track(request.track)
    try:
        session = ghost.GhostSession(track, projection=request.projection)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    ghost_id = uuid.uuid4().hex
    now = time.monotonic()
    with ghost_sessions_lock:
        prune_ghost_sessions(now)
        while ghost_sessions and len(ghost_sessions) >= constants.MAX_GHOST_SESSIONS:
            oldest = min(ghost_last_used, key=ghost_last_used.get)
            ghost_sessions.pop(oldest, None)
            ghost_last_used.pop(oldest, None)
            logger.info("Evicted ghost session {} (session limit reached)", oldest)
        ghost_sessions[ghost_id] = session
        ghost_last_used[ghost_id] = now
    logger.info("Created ghost session {} ({} points)", ghost_id, len(track))
    return ghost_summary(ghost_id, session)


@app.put("/api/ghosts/{ghost_id}")
def replace_ghost_track(ghost_id: str, request: GhostReplaceRequest):
    """Replace the reference track of a running ghost session."""
    session = get_ghost_session(ghost_id)
    session.replace_track(data_loading.decode_track(request.track))
    logger.info("Replaced reference track of ghost session {}", ghost_id)
    return ghost_summary(ghost_id, session)


@app.post("/api/ghosts/{ghost_id}/status")
def get_ghost_status(ghost_id: str, request: GhostStatusRequest):
    """
    Compare the runner's current position with the ghost.

    Returns:
        Pacing status, time and distance deltas, the ghost state and a
        display string for the distance delta.
    """
    session = get_ghost_session(ghost_id)
    point = data_loading.decode_point(request.point)

    status, state = session.compare(point, request.elapsed_ms)
    if state is None:
        return {
            "status": status.value,
            "time_difference_ms": 0,
            "distance_difference_m": 0.0,
            "ghost": None,
            "delta_display": None,
        }
    return {
        "status": status.value,
        "time_difference_ms": state.time_delta_ms,
        "distance_difference_m": state.distance_delta_meters,
        "ghost": state.to_dict(),
        "delta_display": ghost.format_ghost_delta(state.distance_delta_meters),
    }


@app.delete("/api/ghosts/{ghost_id}", status_code=204)
def delete_ghost(ghost_id: str):
    with ghost_sessions_lock:
        session = ghost_sessions.pop(ghost_id, None)
        ghost_last_used.pop(ghost_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Ghost session not found: {ghost_id}")
    logger.info("Closed ghost session {}", ghost_id)
    return Response(status_code=204)


# ============================================================================
# RUN INSTRUCTIONS
# ============================================================================
# Run with: uvicorn app:app --reload
