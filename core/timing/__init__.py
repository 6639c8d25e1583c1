from .athlete import AthleteState, AthleteTimingRecord
from .lap_policy import can_finish, required_lap_count
from .splits import compute_average_lap, compute_lap_splits, compute_total_time, format_duration

__all__ = [
    "AthleteState",
    "AthleteTimingRecord",
    "can_finish",
    "compute_average_lap",
    "compute_lap_splits",
    "compute_total_time",
    "format_duration",
    "required_lap_count",
]
