# tests/unit/test_session.py
from types import SimpleNamespace

import pytest

from core.session import (
    Session,
    SessionError,
    SessionState,
    StartMode,
    active_record,
    all_started,
    create_session,
    finalize_results,
    finish_active,
    is_session_complete,
    normalize_name,
    record_lap,
    start_all_mass,
    start_athlete,
    switch_athlete,
    unfinished_names,
)


def _distance(total_laps, label="test"):
    return SimpleNamespace(label=label, total_laps=total_laps)


def _staggered(names, total_laps=1):
    return create_session(_distance(total_laps), StartMode.STAGGERED, names)


def test_creation_builds_one_record_per_participant():
    session = create_session(_distance(12.5, "5k"), "mass", ["Ada", "Grace"], sport="Cycling", event_type="Practice")
    assert session.participants == ("Ada", "Grace")
    assert set(session.athlete_timings) == {"Ada", "Grace"}
    assert all(r.total_laps == 12.5 for r in session.athlete_timings.values())
    assert session.active_index == 0
    assert session.distance == "5k"
    assert session.state is SessionState.AWAITING_STARTS


def test_names_are_normalized_and_deduplicated():
    assert normalize_name("  Ada   Lovelace ") == "Ada Lovelace"
    session = _staggered(["  Ada ", "Ada", "", "Grace"])
    assert session.participants == ("Ada", "Grace")


@pytest.mark.parametrize(
    "total_laps, mode, names",
    [
        (2, "mass", []),
        (2, "mass", ["   "]),
        (0, "mass", ["Ada"]),
        (-1, "mass", ["Ada"]),
        (2, "relay", ["Ada"]),
    ],
)
def test_invalid_setup_raises(total_laps, mode, names):
    with pytest.raises(SessionError):
        create_session(_distance(total_laps), mode, names)


def test_mass_start_stamps_same_instant():
    session = create_session(_distance(2), StartMode.MASS, ["A", "B", "C"])
    assert start_all_mass(session, 5000)
    assert [session.athlete_timings[n].start_time for n in "ABC"] == [5000, 5000, 5000]
    assert session.state is SessionState.IN_PROGRESS
    assert start_all_mass(session, 6000) is False


def test_mass_mode_rejects_individual_starts():
    session = create_session(_distance(2), StartMode.MASS, ["A", "B"])
    assert start_athlete(session, "A", 100) is False


def test_staggered_waits_for_every_start():
    session = _staggered(["A", "B", "C"])
    assert start_all_mass(session, 0) is False
    assert start_athlete(session, "B", 100)
    assert session.state is SessionState.AWAITING_STARTS
    assert start_athlete(session, "A", 250)
    assert session.state is SessionState.AWAITING_STARTS
    assert start_athlete(session, "A", 300) is False
    assert start_athlete(session, "Z", 300) is False
    assert start_athlete(session, "C", 400)
    assert session.state is SessionState.IN_PROGRESS
    assert session.athlete_timings["A"].start_time == 250


def test_switch_wraps_both_ways():
    session = _staggered(["A", "B", "C"])
    assert switch_athlete(session, -1)
    assert session.active_name == "C"
    assert switch_athlete(session, 1)
    assert session.active_name == "A"
    assert switch_athlete(session, 0) is False


def test_lap_and_finish_only_touch_active_athlete():
    session = create_session(_distance(1), StartMode.MASS, ["A", "B"])
    start_all_mass(session, 0)
    switch_athlete(session, 1)
    assert record_lap(session, 1000).athlete_name == "B"
    assert session.athlete_timings["A"].lap_timestamps == []
    # mass mode never auto-advances
    assert session.active_name == "B"


def test_lap_rejected_before_start():
    session = _staggered(["A", "B"])
    assert record_lap(session, 100) is None
    assert finish_active(session, 100) is False


def test_auto_advance_skips_finished_athletes():
    session = _staggered(["A", "B", "C"], total_laps=1)
    for name, ts in (("A", 0), ("B", 10), ("C", 20)):
        start_athlete(session, name, ts)

    switch_athlete(session, -1)
    assert session.active_name == "C"
    record_lap(session, 100)
    assert session.active_name == "A"
    switch_athlete(session, -1)
    assert finish_active(session, 200)
    assert session.athlete_timings["C"].finished
    assert session.active_name == "A"

    record_lap(session, 300)
    assert session.active_name == "B"
    # from B the wrap skips C and lands on A
    record_lap(session, 400)
    assert session.active_name == "A"


def test_staggered_cycle_until_completion():
    session = _staggered(["Ada", "Grace"], total_laps=1)
    start_athlete(session, "Ada", 1000)
    start_athlete(session, "Grace", 1100)

    record_lap(session, 5000)
    assert session.active_name == "Grace"
    record_lap(session, 8000)
    assert session.active_name == "Ada"

    assert finish_active(session, 11000)
    assert session.active_name == "Grace"
    assert session.results is None

    assert finish_active(session, 14000)
    assert is_session_complete(session)
    assert session.state is SessionState.COMPLETED
    assert [r.athlete_name for r in session.results] == ["Ada", "Grace"]


def test_finish_rejected_until_policy_met():
    session = create_session(_distance(12.5), StartMode.MASS, ["A"])
    start_all_mass(session, 0)
    for i in range(11):
        record_lap(session, (i + 1) * 100)
    assert finish_active(session, 2000) is False
    record_lap(session, 1200)
    assert finish_active(session, 2000)


def test_full_scenario_two_laps():
    session = create_session(_distance(2), StartMode.MASS, ["A"])
    start_all_mass(session, 0)
    record_lap(session, 1000)
    record_lap(session, 2500)
    assert finish_active(session, 2500)

    (result,) = session.results
    assert result.total_time_ms == 2500
    assert result.lap_splits_ms == (1000, 1500)
    assert result.average_lap_ms == 1250


def test_finalize_is_rejected_while_incomplete_and_stable_after():
    session = create_session(_distance(1), StartMode.MASS, ["A", "B"])
    start_all_mass(session, 0)
    assert finalize_results(session, 10) is None

    record_lap(session, 100)
    finish_active(session, 150)
    switch_athlete(session, 1)
    record_lap(session, 200)
    finish_active(session, 250)

    first = finalize_results(session, 9_999)
    second = finalize_results(session, 123_456)
    assert first == second
    assert first[0].id != first[1].id
    assert len({r.date_iso for r in first}) == 1


def test_restored_session_must_match_participants():
    session = _staggered(["A", "B"])
    with pytest.raises(SessionError):
        Session(
            total_laps=1,
            start_mode="staggered",
            participants=["A", "B", "C"],
            athlete_timings=session.athlete_timings,
        )


def test_read_helpers_track_progress():
    session = _staggered(["A", "B"], total_laps=1)
    assert all_started(session) is False
    start_athlete(session, "A", 0)
    start_athlete(session, "B", 5)
    assert all_started(session)
    assert active_record(session).athlete_name == "A"

    record_lap(session, 100)
    assert active_record(session).athlete_name == "B"
    assert unfinished_names(session) == ["A", "B"]
    record_lap(session, 200)
    finish_active(session, 300)
    assert unfinished_names(session) == ["B"]
    finish_active(session, 400)
    assert unfinished_names(session) == []
