# tests/unit/test_schemas.py
import logging
from types import SimpleNamespace

from core.session import SessionState, StartMode, create_session
from sdk.config import AppConfig
from sdk.schemas import (
    RaceSetup,
    parse_result,
    parse_session_snapshot,
    parse_setup,
    restore_session,
    snapshot_session,
)


def _running_session():
    session = create_session(SimpleNamespace(label="2 laps", total_laps=2), StartMode.STAGGERED, ["Ada", "Grace"])
    session.start_athlete("Ada", 1000)
    session.start_athlete("Grace", 1500)
    session.record_lap(4000)
    return session


def test_snapshot_restores_identical_timing_state():
    session = _running_session()
    raw = snapshot_session(session).model_dump(mode="json")

    restored = restore_session(parse_session_snapshot(raw))
    assert restored.session_id == session.session_id
    assert restored.participants == session.participants
    assert restored.active_name == "Grace"
    assert restored.state is SessionState.IN_PROGRESS
    ada = restored.athlete_timings["Ada"]
    assert ada.lap_timestamps == [4000]
    assert ada.lap_splits_ms == [3000]
    assert isinstance(ada.total_laps, int)


def test_bad_session_json_is_discarded(caplog):
    caplog.set_level(logging.WARNING, logger="sdk.schemas")
    raw = snapshot_session(_running_session()).model_dump(mode="json")
    raw["athlete_timings"].pop("Grace")

    assert parse_session_snapshot(raw) is None
    assert parse_session_snapshot({"nope": 1}) is None
    assert parse_session_snapshot(None) is None
    assert "discarding stored session" in caplog.text


def test_lap_without_start_is_rejected():
    raw = snapshot_session(_running_session()).model_dump(mode="json")
    raw["athlete_timings"]["Grace"]["start_time"] = None
    raw["athlete_timings"]["Grace"]["lap_timestamps"] = [10]
    assert parse_session_snapshot(raw) is None


def test_parse_setup_falls_back_field_by_field():
    cfg = AppConfig()
    setup = parse_setup(
        {"sport": "sup", "distance_id": "sup-2lap", "start_mode": "sideways", "selected_athletes": ["Ada"]},
        cfg,
    )
    assert setup.sport == "sup"
    assert setup.distance_id == "sup-2lap"
    assert setup.start_mode is StartMode.MASS
    assert setup.selected_athletes == ["Ada"]


def test_parse_setup_normalizes_unknown_references():
    cfg = AppConfig()
    setup = parse_setup({"sport": "curling", "distance_id": "x", "event_type": "Olympics"}, cfg)
    assert setup == RaceSetup().normalized(cfg)
    assert setup.sport == "cycling"
    assert setup.distance_id == "cycling-5k"
    assert setup.event_type == "Practice"

    assert parse_setup("garbage", cfg) == RaceSetup()


def test_distance_must_belong_to_sport():
    setup = RaceSetup(sport="sup", distance_id="cycling-10k").normalized(AppConfig())
    assert setup.distance_id == "sup-1lap"


def test_parse_result_skips_malformed():
    assert parse_result({"id": "x"}) is None
