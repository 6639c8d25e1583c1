# tests/unit/test_splits.py
import pytest

from core.timing.splits import (
    compute_average_lap,
    compute_lap_splits,
    compute_total_time,
    format_duration,
    format_optional_duration,
)


def test_splits_are_chained_from_start():
    assert compute_lap_splits(1000, [2000, 3500, 5000]) == [1000, 1500, 1500]


def test_splits_without_start_are_empty():
    assert compute_lap_splits(None, [2000]) == []


def test_backwards_clock_clamps_to_zero_and_moves_anchor():
    # the anchor moves to the skewed timestamp, it is not kept at the start
    assert compute_lap_splits(1000, [900, 2000]) == [0, 1100]


@pytest.mark.parametrize(
    "start, laps",
    [
        (0, []),
        (0, [5, 5, 5]),
        (100, [50, 300, 200, 900]),
        (10, list(range(0, 1000, 7))),
    ],
)
def test_split_count_matches_laps_and_never_negative(start, laps):
    splits = compute_lap_splits(start, laps)
    assert len(splits) == len(laps)
    assert all(s >= 0 for s in splits)


def test_total_time():
    assert compute_total_time(1000, 4500) == 3500
    assert compute_total_time(5000, 1000) == 0
    assert compute_total_time(None, 1000) is None
    assert compute_total_time(1000, None) is None


def test_average_lap_uses_nominal_lap_count():
    assert compute_average_lap([1000, 1000], 2) == 1000
    assert compute_average_lap([1000, 1500], 2) == 1250
    # 12 recorded laps in a 12.5 lap race average over 12.5
    assert compute_average_lap([1000] * 12 + [500], 12.5) == 1000
    assert compute_average_lap([1250] * 12, 12.5) == 1200


def test_average_lap_rounds_half_up():
    assert compute_average_lap([1, 4], 2) == 3


def test_average_lap_missing_inputs():
    assert compute_average_lap([1000], 0) is None
    assert compute_average_lap([], 2) is None


def test_format_duration():
    assert format_duration(61500) == "01:01.500"
    assert format_duration(0) == "00:00.000"
    assert format_duration(-5) == "00:00.000"
    assert format_duration(1234.9) == "00:01.234"
    assert format_duration(100 * 60 * 1000) == "100:00.000"


def test_format_optional_duration():
    assert format_optional_duration(None) == "—"
    assert format_optional_duration(0) == "00:00.000"
    assert format_optional_duration(2500) == "00:02.500"
