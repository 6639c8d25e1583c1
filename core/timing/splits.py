"""Pure duration helpers for lap timing.

Every instant handled here is an integer count of epoch milliseconds and
every duration is an integer count of milliseconds.  Nothing in this module
keeps state: callers pass timestamps in and get derived values back.

Negative raw differences (a clock that stepped backwards between two taps)
are clamped to ``0`` rather than rejected.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence

MS_PER_SECOND = 1000
SECONDS_PER_MINUTE = 60


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_lap_splits(start_time: Optional[int], lap_timestamps: Iterable[int]) -> List[int]:
    """Return the chained split durations for ``lap_timestamps``.

    The first split is measured from ``start_time``; each following split is
    measured from the previous lap timestamp.
    """

    if start_time is None:
        return []
    splits: List[int] = []
    prev = start_time
    for ts in lap_timestamps:
        splits.append(max(0, ts - prev))
        prev = ts
    return splits


def compute_total_time(start_time: Optional[int], finish_time: Optional[int]) -> Optional[int]:
    if start_time is None or finish_time is None:
        return None
    return max(0, finish_time - start_time)


def compute_average_lap(lap_splits: Sequence[int], total_laps) -> Optional[int]:
    """Average lap duration over the *nominal* number of laps.

    The divisor is ``total_laps`` (possibly fractional), not the number of
    recorded splits, so a 12.5 lap race averages over 12.5 laps.
    """

    if not total_laps:
        return None
    if len(lap_splits) == 0:
        return None
    return _round_half_up(sum(lap_splits) / float(total_laps))


def format_duration(ms) -> str:
    """Format ``ms`` as ``MM:SS.mmm`` (minutes widen past 99)."""

    safe = max(0, math.floor(ms))
    total_seconds = safe // MS_PER_SECOND
    minutes = total_seconds // SECONDS_PER_MINUTE
    seconds = total_seconds % SECONDS_PER_MINUTE
    millis = safe % MS_PER_SECOND
    return f"{minutes:02d}:{seconds:02d}.{millis:03d}"


def format_optional_duration(ms: Optional[int], placeholder: str = "—") -> str:
    if ms is None:
        return placeholder
    return format_duration(ms)


__all__ = [
    "compute_average_lap",
    "compute_lap_splits",
    "compute_total_time",
    "format_duration",
    "format_optional_duration",
]
