from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .lap_policy import can_finish
from .splits import compute_lap_splits, compute_total_time

logger = logging.getLogger(__name__)


class AthleteState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass
class AthleteTimingRecord:
    """Start, lap and finish timestamps for one athlete in one session.

    ``start``, ``record_lap`` and ``finish`` return ``False`` and leave the
    record untouched when the transition is not allowed.
    """

    athlete_name: str
    total_laps: float
    start_time: Optional[int] = None
    lap_timestamps: List[int] = field(default_factory=list)
    lap_splits_ms: List[int] = field(default_factory=list)
    finish_time: Optional[int] = None

    def __setattr__(self, name, value):
        if name == "total_laps" and "total_laps" in self.__dict__:
            raise AttributeError("total_laps is fixed once the record exists")
        super().__setattr__(name, value)

    @property
    def state(self) -> AthleteState:
        if self.start_time is None:
            return AthleteState.NOT_STARTED
        if self.finish_time is None:
            return AthleteState.RUNNING
        return AthleteState.FINISHED

    @property
    def running(self) -> bool:
        return self.state is AthleteState.RUNNING

    @property
    def finished(self) -> bool:
        return self.finish_time is not None

    @property
    def can_finish(self) -> bool:
        return self.running and can_finish(self.lap_timestamps, self.total_laps)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(self, now: int) -> bool:
        if self.start_time is not None:
            return False
        self.start_time = now
        return True

    def record_lap(self, now: int) -> bool:
        if not self.running:
            return False
        anchor = self.lap_timestamps[-1] if self.lap_timestamps else self.start_time
        if now < anchor:
            logger.warning(
                "clock skew for %s: lap at %d is %d ms before the previous mark; split clamped to 0",
                self.athlete_name,
                now,
                anchor - now,
            )
        self.lap_timestamps.append(now)
        self.lap_splits_ms = compute_lap_splits(self.start_time, self.lap_timestamps)
        return True

    def finish(self, now: int) -> bool:
        if not self.can_finish:
            return False
        self.finish_time = now
        return True

    # ------------------------------------------------------------------
    # Read-only views for the live display
    # ------------------------------------------------------------------
    @property
    def laps_completed(self) -> int:
        return len(self.lap_timestamps)

    @property
    def last_split_ms(self) -> Optional[int]:
        return self.lap_splits_ms[-1] if self.lap_splits_ms else None

    def elapsed_ms(self, now: int) -> Optional[int]:
        """Running total; frozen at the finish time once finished."""
        end = self.finish_time if self.finish_time is not None else now
        return compute_total_time(self.start_time, end)

    def current_lap_ms(self, now: int) -> Optional[int]:
        if self.start_time is None:
            return None
        anchor = self.lap_timestamps[-1] if self.lap_timestamps else self.start_time
        end = self.finish_time if self.finish_time is not None else now
        return max(0, end - anchor)


__all__ = ["AthleteState", "AthleteTimingRecord"]
