"""Live timing display.

:func:`render_live` turns the session into the lines shown on the live
screen.  It only reads.  :class:`LiveTicker` calls a render callback on a
background thread at a fixed rate; because the callback never mutates timing
state, ticks may be skipped or delayed without consequence, and the ticker
can be stopped whenever the live view goes away.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from core.results import plain_number
from core.session import Session
from core.timing.athlete import AthleteTimingRecord
from core.timing.lap_policy import required_lap_count
from core.timing.splits import format_duration
from sdk.ids import NS_PER_MS, now_monotonic_ns


def athlete_abbreviation(name: str) -> str:
    """Short tag used to say whose timer is active: ``Grace`` -> ``GR``."""

    words = name.split()
    if len(words) >= 2:
        return (words[0][0] + words[1][0]).upper()
    return name[:2].upper()


def lap_button_label(record: AthleteTimingRecord) -> str:
    required = required_lap_count(record.total_laps)
    next_lap = min(record.laps_completed + 1, max(required, 1))
    return f"Lap {next_lap} / {required} ({athlete_abbreviation(record.athlete_name)})"


def lap_counter_label(record: AthleteTimingRecord) -> str:
    return f"Lap {record.laps_completed} / {plain_number(record.total_laps)}"


class SwitchFlash:
    """Transient "Now timing: XX" notice that hides itself after a while."""

    def __init__(self, duration_s: float = 1.5) -> None:
        self.duration_ms = int(duration_s * 1000)
        self.text = ""
        self._shown_at: Optional[int] = None

    def show(self, athlete_name: str, now: int) -> None:
        self.text = f"Now timing: {athlete_abbreviation(athlete_name)}"
        self._shown_at = now

    def visible(self, now: int) -> bool:
        if self._shown_at is None:
            return False
        return now - self._shown_at < self.duration_ms


def flash_from_journal(
    entries: Iterable[Dict[str, Any]], first_active: str, duration_s: float = 1.5
) -> SwitchFlash:
    """Rebuild the switch notice from the last change of ``active`` in a race journal."""

    flash = SwitchFlash(duration_s)
    previous = first_active
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        active = entry.get("active")
        ts_ms = (entry.get("command") or {}).get("ts_ms")
        if active and active != previous and isinstance(ts_ms, int):
            flash.show(active, ts_ms)
        if active:
            previous = active
    return flash


@dataclass(frozen=True)
class LiveFrame:
    athlete_name: str
    position: str
    timer: str
    current_lap: str
    lap_counter: str
    last_split: str
    lap_button: str
    can_lap: bool
    can_finish: bool
    flash: Optional[str] = None

    def lines(self) -> List[str]:
        out = [
            f"{self.athlete_name}  ({self.position})",
            self.timer,
            self.current_lap,
            f"{self.lap_counter}   {self.last_split}",
        ]
        controls = [self.lap_button if self.can_lap else "", "Finish" if self.can_finish else ""]
        out.append("   ".join(c for c in controls if c) or "(finished)")
        if self.flash:
            out.append(self.flash)
        return out


def render_live(session: Session, now: int, flash: Optional[SwitchFlash] = None) -> LiveFrame:
    record = session.active_record
    elapsed = record.elapsed_ms(now)
    current = record.current_lap_ms(now)
    last = record.last_split_ms
    return LiveFrame(
        athlete_name=record.athlete_name,
        position=f"{session.active_index + 1} of {len(session.participants)}",
        timer=format_duration(elapsed or 0),
        current_lap=f"Current lap: {format_duration(current or 0)}",
        lap_counter=lap_counter_label(record),
        last_split=f"Last split: {format_duration(last)}" if last else "Last split: —",
        lap_button=lap_button_label(record),
        can_lap=record.running,
        can_finish=record.can_finish,
        flash=flash.text if flash is not None and flash.visible(now) else None,
    )


class LiveTicker:
    """Call ``render`` every ``1 / hz`` seconds until stopped."""

    def __init__(self, render: Callable[[], None], hz: float = 10.0) -> None:
        self._render = render
        self._interval = 1.0 / max(0.1, float(hz))
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._thread and self._thread.is_alive():  # already running
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="live-ticker", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._stop_event.wait(timeout)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            start = now_monotonic_ns()
            self._render()
            self.ticks += 1
            elapsed = (now_monotonic_ns() - start) / NS_PER_MS / 1000.0
            wait_for = self._interval - elapsed
            if wait_for > 0:
                self._stop_event.wait(wait_for)


__all__ = [
    "LiveFrame",
    "LiveTicker",
    "SwitchFlash",
    "athlete_abbreviation",
    "flash_from_journal",
    "lap_button_label",
    "lap_counter_label",
    "render_live",
]
