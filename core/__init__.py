"""Timing core: split arithmetic, lap policy, athlete records and the race session."""

from .session import (
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
    record_lap,
    start_all_mass,
    start_athlete,
    switch_athlete,
    unfinished_names,
)

__all__ = [
    "Session",
    "SessionError",
    "SessionState",
    "StartMode",
    "active_record",
    "all_started",
    "create_session",
    "finalize_results",
    "finish_active",
    "is_session_complete",
    "record_lap",
    "start_all_mass",
    "start_athlete",
    "switch_athlete",
    "unfinished_names",
]
