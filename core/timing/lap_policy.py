"""Rules deciding when an athlete has done enough laps to finish."""

from __future__ import annotations

import math
from numbers import Real
from typing import Sequence


def required_lap_count(total_laps) -> int:
    """Number of recorded laps needed before a finish is accepted.

    Whole distances need every lap.  Fractional distances (``12.5``) need the
    whole laps only; the trailing part-lap is covered by the finish tap.
    """

    if float(total_laps).is_integer():
        return int(total_laps)
    return math.floor(total_laps)


def can_finish(lap_timestamps: Sequence[int], total_laps) -> bool:
    return len(lap_timestamps) >= required_lap_count(total_laps)


def is_valid_total_laps(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(float(value)) and value > 0


def coerce_lap_count(value: float, minimum: float, maximum: float, step: float) -> float:
    """Snap ``value`` to the nearest ``step`` and clamp it to the bounds.

    ``coerce_lap_count(12.3, 0.5, 200, 0.5)`` gives ``12.5``; a non-finite
    value gives ``minimum``.
    """

    if not math.isfinite(value):
        return minimum
    snapped = round(value / step) * step
    return min(maximum, max(minimum, snapped))


__all__ = ["can_finish", "coerce_lap_count", "is_valid_total_laps", "required_lap_count"]
