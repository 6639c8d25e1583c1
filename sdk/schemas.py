"""Validated shapes for everything written to or read from storage.

Stored JSON is never trusted: each loader validates through these models
and falls back (setup defaults, "no session", skipped history entry) on a
shape mismatch instead of failing.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from core.results import ResultRecord, plain_number
from core.session import Session, SessionError, StartMode
from core.timing.athlete import AthleteTimingRecord
from core.timing.splits import compute_lap_splits

from .config import AppConfig

logger = logging.getLogger(__name__)

SchemaVersion = Literal["v1"]


class RaceSetup(BaseModel):
    """Choices made on the setup screen, remembered between races."""

    sport: str = "cycling"
    event_type: str = "Practice"
    distance_id: str = "cycling-5k"
    start_mode: StartMode = StartMode.MASS
    selected_athletes: List[str] = Field(default_factory=list)

    def normalized(self, cfg: AppConfig) -> "RaceSetup":
        """Replace references the config does not know with its defaults."""
        sport = self.sport if self.sport in cfg.sports else cfg.default_sport
        distance_ids = {d.id for d in cfg.distances_for(sport)}
        distance_id = self.distance_id if self.distance_id in distance_ids else cfg.distances_for(sport)[0].id
        event_type = self.event_type if self.event_type in cfg.event_types else cfg.event_types[0]
        return self.model_copy(update={"sport": sport, "distance_id": distance_id, "event_type": event_type})


class AthleteTimingSnapshot(BaseModel):
    athlete_name: str
    total_laps: float = Field(gt=0)
    start_time: Optional[int] = None
    lap_timestamps: List[int] = Field(default_factory=list)
    finish_time: Optional[int] = None

    @model_validator(mode="after")
    def _check_lifecycle(self) -> "AthleteTimingSnapshot":
        if self.start_time is None and (self.lap_timestamps or self.finish_time is not None):
            raise ValueError("laps or finish recorded without a start time")
        return self

    def to_record(self) -> AthleteTimingRecord:
        record = AthleteTimingRecord(
            athlete_name=self.athlete_name,
            total_laps=plain_number(self.total_laps),
            start_time=self.start_time,
            lap_timestamps=list(self.lap_timestamps),
            finish_time=self.finish_time,
        )
        # splits are derived, never stored
        record.lap_splits_ms = compute_lap_splits(record.start_time, record.lap_timestamps)
        return record


class SessionSnapshot(BaseModel):
    v: SchemaVersion = "v1"
    session_id: str
    sport: str = ""
    event_type: str = ""
    distance: str = ""
    total_laps: float = Field(gt=0)
    start_mode: StartMode
    participants: List[str] = Field(min_length=1)
    athlete_timings: Dict[str, AthleteTimingSnapshot]
    active_index: int = Field(0, ge=0)
    results: Optional[List[ResultRecord]] = None
    results_saved: bool = False

    @model_validator(mode="after")
    def _check_participants(self) -> "SessionSnapshot":
        if set(self.participants) != set(self.athlete_timings):
            raise ValueError("athlete_timings must hold exactly one entry per participant")
        if self.active_index >= len(self.participants):
            raise ValueError("active_index out of range")
        return self


def snapshot_session(session: Session, results_saved: bool = False) -> SessionSnapshot:
    return SessionSnapshot(
        session_id=session.session_id,
        sport=session.sport,
        event_type=session.event_type,
        distance=session.distance,
        total_laps=float(session.total_laps),
        start_mode=session.start_mode,
        participants=list(session.participants),
        athlete_timings={
            name: AthleteTimingSnapshot(
                athlete_name=record.athlete_name,
                total_laps=float(record.total_laps),
                start_time=record.start_time,
                lap_timestamps=list(record.lap_timestamps),
                finish_time=record.finish_time,
            )
            for name, record in session.athlete_timings.items()
        },
        active_index=session.active_index,
        results=session.results,
        results_saved=results_saved,
    )


def restore_session(snapshot: SessionSnapshot) -> Session:
    return Session(
        session_id=snapshot.session_id,
        sport=snapshot.sport,
        event_type=snapshot.event_type,
        distance=snapshot.distance,
        total_laps=plain_number(snapshot.total_laps),
        start_mode=snapshot.start_mode,
        participants=snapshot.participants,
        athlete_timings={name: snap.to_record() for name, snap in snapshot.athlete_timings.items()},
        active_index=snapshot.active_index,
        results=snapshot.results,
    )


def parse_session_snapshot(raw: Any) -> Optional[SessionSnapshot]:
    """Validate stored session JSON; ``None`` when it does not fit."""
    if raw is None:
        return None
    try:
        snapshot = SessionSnapshot.model_validate(raw)
        restore_session(snapshot)
    except (ValidationError, SessionError) as exc:
        logger.warning("discarding stored session: %s", exc)
        return None
    return snapshot


def parse_setup(raw: Any, cfg: AppConfig) -> RaceSetup:
    """Validate stored setup JSON, falling back to defaults field by field."""
    if not isinstance(raw, dict):
        return RaceSetup().normalized(cfg)
    try:
        setup = RaceSetup.model_validate(raw)
    except ValidationError as exc:
        logger.warning("stored setup is invalid (%s); using defaults", exc)
        fields = {}
        for key, value in raw.items():
            if key not in RaceSetup.model_fields:
                continue
            try:
                RaceSetup.model_validate({key: value})
            except ValidationError:
                continue
            fields[key] = value
        setup = RaceSetup.model_validate(fields)
    return setup.normalized(cfg)


def parse_result(raw: Any) -> Optional[ResultRecord]:
    try:
        return ResultRecord.model_validate(raw)
    except ValidationError as exc:
        logger.warning("skipping malformed result record: %s", exc)
        return None


__all__ = [
    "AthleteTimingSnapshot",
    "RaceSetup",
    "SessionSnapshot",
    "parse_result",
    "parse_session_snapshot",
    "parse_setup",
    "restore_session",
    "snapshot_session",
]
