"""Reduce a completed session into immutable per-athlete result records."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from .timing.splits import compute_average_lap, compute_total_time

if TYPE_CHECKING:  # pragma: no cover
    from .session import Session

Number = Union[int, float]


def plain_number(value) -> Number:
    """``2.0`` -> ``2``; ``12.5`` stays a float."""

    as_float = float(value)
    return int(as_float) if as_float.is_integer() else as_float


def iso_from_ms(ts_ms: int) -> str:
    """UTC ISO-8601 string with millisecond precision and a ``Z`` suffix."""

    seconds, millis = divmod(int(ts_ms), 1000)
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ResultRecord(BaseModel):
    """One athlete's result from one finalized session.

    Records are frozen.  Notes are edited by swapping in a copy made with
    :meth:`with_notes`.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    athlete_name: str
    sport: str
    event_type: str
    distance: str
    total_laps: Number
    start_mode: str
    start_time: Optional[int] = None
    lap_timestamps: Tuple[int, ...] = ()
    lap_splits_ms: Tuple[int, ...] = ()
    finish_time: Optional[int] = None
    total_time_ms: Optional[int] = None
    average_lap_ms: Optional[int] = None
    date_iso: str
    notes: str = ""

    def with_notes(self, notes: str) -> "ResultRecord":
        return self.model_copy(update={"notes": notes})


def build_results(session: "Session", now: int) -> List[ResultRecord]:
    """Build one record per participant, in participant order."""

    date_iso = iso_from_ms(now)
    records: List[ResultRecord] = []
    for name in session.participants:
        athlete = session.athlete_timings[name]
        records.append(
            ResultRecord(
                id=f"{date_iso}-{name}",
                athlete_name=name,
                sport=session.sport,
                event_type=session.event_type,
                distance=session.distance,
                total_laps=plain_number(athlete.total_laps),
                start_mode=session.start_mode.value,
                start_time=athlete.start_time,
                lap_timestamps=tuple(athlete.lap_timestamps),
                lap_splits_ms=tuple(athlete.lap_splits_ms),
                finish_time=athlete.finish_time,
                total_time_ms=compute_total_time(athlete.start_time, athlete.finish_time),
                average_lap_ms=compute_average_lap(athlete.lap_splits_ms, athlete.total_laps),
                date_iso=date_iso,
            )
        )
    return records


class ResultsDraft:
    """A finalized batch that has not yet been committed to history."""

    def __init__(self, records: List[ResultRecord], saved: bool = False) -> None:
        # edited in place so the owning session sees the notes too
        self._records = records
        self.saved = saved

    @property
    def records(self) -> Tuple[ResultRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def has_unsaved(self) -> bool:
        return bool(self._records) and not self.saved

    def set_notes(self, athlete_name: str, notes: str) -> bool:
        for idx, record in enumerate(self._records):
            if record.athlete_name == athlete_name:
                self._records[idx] = record.with_notes(notes)
                return True
        return False

    def mark_saved(self) -> None:
        self.saved = True


__all__ = ["ResultRecord", "ResultsDraft", "build_results", "iso_from_ms", "plain_number"]
