"""Tests for telemetry records, GeoJSON output and the analysis payload builder."""

import json

import pytest

from banshee import metrics
from banshee import session
from banshee import telemetry
from banshee.errors import TrackDecodeError
from banshee.models import ActivityType, PersonalBestsRegistry


def test_build_track_frame(five_point_track):
    df = telemetry.build_track_frame(five_point_track)
    assert len(df) == 5
    assert df["distance_m"].iloc[-1] == pytest.approx(metrics.total_distance(five_point_track))


def test_build_track_frame_empty():
    df = telemetry.build_track_frame([])
    assert df.empty
    assert telemetry.build_telemetry_records(df) == []


def test_telemetry_records(five_point_track):
    records = telemetry.build_telemetry_records(telemetry.build_track_frame(five_point_track))

    assert len(records) == 5
    first, last = records[0], records[-1]
    assert first["timestamp_ms"] == 0
    assert first["distance_m"] == 0.0
    assert first["pace"] == "--:--"
    assert first["altitude"] is None
    assert last["elapsed_s"] == 20.0
    assert last["lat"] == 40.7144
    # ~10.2 m/s is a 1:37 /km pace
    assert last["pace"].startswith("1:3")
    assert 0.0 <= last["bearing_deg"] < 360.0


def test_telemetry_to_geojson(five_point_track):
    records = telemetry.build_telemetry_records(telemetry.build_track_frame(five_point_track))
    geojson = telemetry.telemetry_to_geojson(records)

    assert geojson["type"] == "FeatureCollection"
    line, start, finish = geojson["features"]
    assert line["geometry"]["type"] == "LineString"
    assert line["geometry"]["coordinates"][0] == [-74.0060, 40.7128]
    assert line["properties"]["sampleCount"] == 5
    assert start["properties"]["marker"] == "start"
    assert finish["geometry"]["coordinates"] == [-74.0048, 40.7144]


def test_telemetry_to_geojson_requires_coordinates():
    with pytest.raises(ValueError):
        telemetry.telemetry_to_geojson([])


def test_build_activity_payload(five_point_track, make_activity):
    activity = make_activity(five_point_track)
    payload = session.build_activity_payload(activity, split_distance_m=100.0)

    assert set(payload) == {"summary", "track", "telemetry", "splits", "segments"}
    assert payload["summary"]["id"] == "run-1"
    assert payload["summary"]["activity_type"] == "run"
    assert payload["summary"]["duration"] == "0:20"
    assert payload["summary"]["distance"].endswith(" m")
    assert len(payload["splits"]) == 2
    assert payload["splits"][0]["pace_formatted"] != "--:--"
    assert payload["segments"] == []
    assert len(payload["telemetry"]) == 5
    # the payload is plain JSON
    json.dumps(payload)


def test_build_activity_payload_with_registry_and_reference(uniform_track, make_activity, log_messages):
    activity = make_activity(uniform_track(111, step_m=10.0, step_ms=3000))
    reference = uniform_track(111, step_m=10.0, step_ms=4000)

    payload = session.build_activity_payload(activity, registry=PersonalBestsRegistry(), reference=reference)

    assert [s["distance_name"] for s in payload["segments"]] == ["1K"]
    assert payload["segments"][0]["time"] == "5:00"
    assert len(payload["personal_bests"]["new_records"]) == 1
    assert payload["personal_bests"]["registry"]["records"][0]["distance_meters"] == 1000.0
    # 1 s per 10 m faster than the reference
    assert payload["delta_trace"][-1]["time_delta_s"] == pytest.approx(-110.0)
    assert any("Built payload" in m for m in log_messages)


def test_build_activity_payload_empty_track(make_activity):
    payload = session.build_activity_payload(make_activity([]))
    assert payload["track"] is None
    assert payload["telemetry"] == []
    assert payload["splits"] == []
    assert payload["summary"]["pace"] == "--:--"


def test_load_activity_from_csv(tmp_path):
    path = tmp_path / "tempo_run.csv"
    path.write_text("lat,lon,timestamp_ms\n40.7128,-74.0060,1000\n40.7132,-74.0057,6000\n")

    activity = session.load_activity(path, ActivityType.WALK)

    assert activity.id == "tempo_run"
    assert activity.name == "Tempo Run"
    assert activity.activity_type is ActivityType.WALK
    assert activity.duration_ms == 5000
    assert activity.recorded_at == 1000


def test_load_activity_from_json(tmp_path, five_point_track, make_activity):
    points_file = tmp_path / "points.json"
    points_file.write_text(json.dumps([p.to_dict() for p in five_point_track]))
    assert session.load_activity(points_file).coordinates == tuple(five_point_track)

    activity = make_activity(five_point_track, ActivityType.CYCLE, activity_id="ride-9")
    activity_file = tmp_path / "activity.json"
    activity_file.write_text(json.dumps(activity.to_dict()))
    assert session.load_activity(activity_file) == activity


def test_build_session_payload_rejects_malformed_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("[{")
    with pytest.raises(TrackDecodeError):
        session.build_session_payload(path)


def test_load_activity_invalid_utf8(tmp_path):
    path = tmp_path / "garbled.json"
    path.write_bytes(b'[{"lat": "\xff"}]')
    with pytest.raises(TrackDecodeError):
        session.load_activity(path)
