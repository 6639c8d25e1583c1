# tests/unit/test_runtime.py
import pytest

from config.paths import Paths
from core.events import FinishActive, RecordLap, StartAll, StartAthlete, SwitchAthlete
from core.session import SessionState, StartMode
from sdk.config import AppConfig
from sdk.runtime import RaceController
from sdk.schemas import RaceSetup
from storage.json_store import read_jsonl


@pytest.fixture
def paths(tmp_path):
    p = Paths(tmp_path / "data", tmp_path / "logs")
    p.ensure_all()
    return p


@pytest.fixture
def ctl(paths):
    return RaceController(paths, AppConfig())


def _setup(mode=StartMode.STAGGERED, distance_id="sup-1lap", names=("Ada", "Grace")):
    return RaceSetup(sport="sup", event_type="Practice", distance_id=distance_id, start_mode=mode,
                     selected_athletes=list(names))


def test_dispatch_without_session_is_rejected(ctl):
    assert ctl.dispatch(RecordLap(ts_ms=1)).accepted is False


def test_new_session_uses_setup_and_persists(ctl, paths):
    session = ctl.new_session(_setup())
    assert session.sport == "Stand-Up Paddleboarding (SUP)"
    assert session.distance == "1 lap"
    assert session.total_laps == 1
    assert paths.session_file.exists()
    assert ctl.setup_store.load().distance_id == "sup-1lap"


def test_custom_laps_are_snapped(ctl):
    session = ctl.new_session(_setup(), custom_laps=2)
    assert session.distance == "2 laps"
    assert ctl.new_session(_setup(), custom_laps=12.3).total_laps == 12.5


def test_empty_selection_raises(ctl):
    from core.session import SessionError

    with pytest.raises(SessionError):
        ctl.new_session(_setup(names=()))


def test_full_staggered_race_through_dispatch(ctl, paths):
    session = ctl.new_session(_setup())
    assert ctl.dispatch(StartAthlete(name="Ada", ts_ms=1000)).accepted
    assert ctl.dispatch(StartAthlete(name="Grace", ts_ms=1100)).accepted

    out = ctl.dispatch(RecordLap(ts_ms=5000))
    assert out.switched_to == "Grace"
    out = ctl.dispatch(RecordLap(ts_ms=8000))
    assert out.switched_to == "Ada"
    assert ctl.dispatch(FinishActive(ts_ms=11000)).active == "Grace"
    assert ctl.draft is None

    out = ctl.dispatch(FinishActive(ts_ms=14000))
    assert out.completed
    assert session.state is SessionState.COMPLETED
    assert ctl.has_unsaved_results
    assert [r.total_time_ms for r in ctl.draft.records] == [10000, 12900]

    journal = read_jsonl(paths.race_journal(session.session_id))
    assert [e["command"]["kind"] for e in journal] == ["start", "start", "lap", "lap", "finish", "finish"]
    assert journal[-1]["state"] == "completed"


def test_rejected_commands_are_journaled_but_not_persisted(ctl, paths):
    session = ctl.new_session(_setup(mode=StartMode.MASS))
    before = paths.session_file.read_text(encoding="utf-8")
    out = ctl.dispatch(RecordLap(ts_ms=10))
    assert out.accepted is False
    assert paths.session_file.read_text(encoding="utf-8") == before
    (entry,) = read_jsonl(paths.race_journal(session.session_id))
    assert entry["accepted"] is False


def test_load_restores_session_and_draft(ctl, paths):
    ctl.new_session(_setup(mode=StartMode.MASS, names=("Ada",)))
    ctl.dispatch(StartAll(ts_ms=0))
    ctl.dispatch(RecordLap(ts_ms=900))
    ctl.dispatch(FinishActive(ts_ms=1000))
    assert ctl.set_notes("Ada", "windy")

    again = RaceController.load(paths, AppConfig())
    assert again.session.session_id == ctl.session.session_id
    assert again.has_unsaved_results
    assert again.draft.records[0].notes == "windy"

    saved = again.save_results()
    assert [r.athlete_name for r in saved] == ["Ada"]
    assert again.save_results() == []
    assert again.history.load()[0].notes == "windy"
    assert RaceController.load(paths, AppConfig()).has_unsaved_results is False


def test_switch_and_reset(ctl, paths):
    ctl.new_session(_setup(mode=StartMode.MASS))
    out = ctl.dispatch(SwitchAthlete(direction=-1, ts_ms=5))
    assert out.accepted and out.switched_to == "Grace"
    ctl.reset()
    assert ctl.session is None
    assert not paths.session_file.exists()
    assert RaceController.load(paths, AppConfig()).session is None


def test_corrupt_session_file_starts_clean(paths):
    paths.session_file.write_text("{broken", encoding="utf-8")
    assert RaceController.load(paths, AppConfig()).session is None
