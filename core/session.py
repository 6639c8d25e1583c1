"""Race session state machine.

A :class:`Session` owns the participants of one race attempt, one
:class:`~core.timing.athlete.AthleteTimingRecord` per participant and the
active-athlete cursor.  It moves through::

    awaiting_starts -> in_progress -> completed

Mass starts stamp one shared instant on every athlete.  Staggered starts
are independent per athlete, and in staggered mode the cursor moves on to
the next unfinished athlete after every lap and every finish so the coach
can keep tapping as athletes pass.

Laps and finishes always target the active athlete.  Illegal actions are
no-ops that return ``False`` (or ``None``); callers are expected to keep the
matching control disabled.  The last accepted finish finalizes the results
in the same call.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

import ulid

from .results import ResultRecord, build_results
from .timing.athlete import AthleteTimingRecord
from .timing.lap_policy import is_valid_total_laps

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class SessionError(ValueError):
    """Raised when a session cannot be constructed from the given setup."""


class StartMode(str, Enum):
    MASS = "mass"
    STAGGERED = "staggered"


class SessionState(str, Enum):
    AWAITING_STARTS = "awaiting_starts"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def normalize_name(value: str) -> str:
    """Trim and collapse inner whitespace: ``"  Ada   L "`` -> ``"Ada L"``."""

    return _WHITESPACE.sub(" ", value.strip())


def _unique_names(names: Iterable[str]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for raw in names:
        name = normalize_name(raw)
        if name:
            seen.setdefault(name, None)
    return tuple(seen)


class Session:
    def __init__(
        self,
        *,
        total_laps,
        start_mode: StartMode,
        participants: Iterable[str],
        sport: str = "",
        event_type: str = "",
        distance: str = "",
        session_id: Optional[str] = None,
        athlete_timings: Optional[Dict[str, AthleteTimingRecord]] = None,
        active_index: int = 0,
        results: Optional[List[ResultRecord]] = None,
    ) -> None:
        if not is_valid_total_laps(total_laps):
            raise SessionError(f"total laps must be a positive number, got {total_laps!r}")
        try:
            start_mode = StartMode(start_mode)
        except ValueError as exc:
            raise SessionError(f"unknown start mode: {start_mode!r}") from exc
        names = _unique_names(participants)
        if not names:
            raise SessionError("a session needs at least one participant")

        self.session_id = session_id or str(ulid.new())
        self.sport = sport
        self.event_type = event_type
        self.distance = distance
        self.total_laps = total_laps
        self.start_mode = start_mode
        self.participants = names
        if athlete_timings is None:
            athlete_timings = {
                name: AthleteTimingRecord(athlete_name=name, total_laps=total_laps) for name in names
            }
        elif set(athlete_timings) != set(names):
            raise SessionError("athlete timings do not match the participant list")
        self.athlete_timings = athlete_timings
        self.active_index = active_index % len(names)
        self.results = list(results) if results is not None else None

    def __repr__(self) -> str:
        return (
            f"Session(id={self.session_id!r}, state={self.state.value}, "
            f"participants={list(self.participants)!r}, active={self.active_name!r})"
        )

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        if self.is_complete():
            return SessionState.COMPLETED
        if self.all_started():
            return SessionState.IN_PROGRESS
        return SessionState.AWAITING_STARTS

    @property
    def active_name(self) -> str:
        return self.participants[self.active_index]

    @property
    def active_record(self) -> AthleteTimingRecord:
        return self.athlete_timings[self.active_name]

    def all_started(self) -> bool:
        return all(self.athlete_timings[n].start_time is not None for n in self.participants)

    def is_complete(self) -> bool:
        return all(self.athlete_timings[n].finish_time is not None for n in self.participants)

    def unfinished_names(self) -> List[str]:
        return [n for n in self.participants if self.athlete_timings[n].finish_time is None]

    # ------------------------------------------------------------------
    # Starts
    # ------------------------------------------------------------------
    def start_athlete(self, name: str, now: int) -> bool:
        if self.start_mode is not StartMode.STAGGERED:
            return False
        record = self.athlete_timings.get(name)
        if record is None or not record.start(now):
            return False
        logger.debug("started %s at %d", name, now)
        if self.all_started():
            logger.info("all %d athletes started; session in progress", len(self.participants))
        return True

    def start_all_mass(self, now: int) -> bool:
        if self.start_mode is not StartMode.MASS:
            return False
        started = [name for name in self.participants if self.athlete_timings[name].start(now)]
        if started:
            logger.info("mass start at %d for %d athletes", now, len(started))
        return bool(started)

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------
    def switch_athlete(self, direction: int) -> bool:
        count = len(self.participants)
        if count == 0 or direction == 0:
            return False
        step = 1 if direction > 0 else -1
        self.active_index = (self.active_index + step) % count
        return True

    def _advance_to_next_unfinished(self) -> None:
        count = len(self.participants)
        for offset in range(1, count + 1):
            idx = (self.active_index + offset) % count
            if self.athlete_timings[self.participants[idx]].finish_time is None:
                self.active_index = idx
                return

    # ------------------------------------------------------------------
    # Laps and finishes (active athlete only)
    # ------------------------------------------------------------------
    def record_lap(self, now: int) -> Optional[AthleteTimingRecord]:
        record = self.active_record
        if not record.record_lap(now):
            return None
        logger.debug("lap %d for %s at %d", record.laps_completed, record.athlete_name, now)
        if self.start_mode is StartMode.STAGGERED:
            self._advance_to_next_unfinished()
        return record

    def finish_active(self, now: int) -> bool:
        record = self.active_record
        if not record.finish(now):
            return False
        logger.info("%s finished at %d", record.athlete_name, now)
        if self.is_complete():
            self.finalize_results(now)
        elif self.start_mode is StartMode.STAGGERED:
            self._advance_to_next_unfinished()
        return True

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------
    def finalize_results(self, now: int) -> Optional[List[ResultRecord]]:
        """Finalize once; later calls return the same batch.

        Returns ``None`` while some athlete is still unfinished.
        """

        if not self.is_complete():
            return None
        if self.results is None:
            self.results = build_results(self, now)
            logger.info("session %s finalized with %d results", self.session_id, len(self.results))
        return list(self.results)


# ----------------------------------------------------------------------
# Functional surface used by the UI layer
# ----------------------------------------------------------------------


def create_session(
    distance,
    start_mode,
    participants: Iterable[str],
    *,
    sport: str = "",
    event_type: str = "",
) -> Session:
    """Create a session for ``distance`` (anything with ``label``/``total_laps``)."""

    return Session(
        total_laps=distance.total_laps,
        start_mode=start_mode,
        participants=participants,
        sport=sport,
        event_type=event_type,
        distance=distance.label,
    )


def start_athlete(session: Session, name: str, now: int) -> bool:
    return session.start_athlete(name, now)


def start_all_mass(session: Session, now: int) -> bool:
    return session.start_all_mass(now)


def record_lap(session: Session, now: int) -> Optional[AthleteTimingRecord]:
    return session.record_lap(now)


def finish_active(session: Session, now: int) -> bool:
    return session.finish_active(now)


def switch_athlete(session: Session, direction: int) -> bool:
    return session.switch_athlete(direction)


def is_session_complete(session: Session) -> bool:
    return session.is_complete()


def all_started(session: Session) -> bool:
    return session.all_started()


def active_record(session: Session) -> AthleteTimingRecord:
    return session.active_record


def unfinished_names(session: Session) -> List[str]:
    return session.unfinished_names()


def finalize_results(session: Session, now: int) -> Optional[List[ResultRecord]]:
    return session.finalize_results(now)


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
    "normalize_name",
    "record_lap",
    "start_all_mass",
    "start_athlete",
    "switch_athlete",
    "unfinished_names",
]
