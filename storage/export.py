"""CSV export of finalized or saved results."""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterable, Sequence

from core.results import ResultRecord

CSV_HEADERS = [
    "athleteName",
    "sport",
    "eventType",
    "distance",
    "totalLaps",
    "startMode",
    "startTime",
    "finishTime",
    "totalTimeMs",
    "averageLapMs",
    "lapSplitsMs",
    "dateISO",
    "notes",
]


def _cell(value) -> str:
    return "" if value is None else str(value)


def result_row(result: ResultRecord) -> list:
    return [
        result.athlete_name,
        result.sport,
        result.event_type,
        result.distance,
        _cell(result.total_laps),
        result.start_mode,
        _cell(result.start_time),
        _cell(result.finish_time),
        _cell(result.total_time_ms),
        _cell(result.average_lap_ms),
        "|".join(str(ms) for ms in result.lap_splits_ms),
        result.date_iso,
        result.notes or "",
    ]


def build_csv(results: Iterable[ResultRecord]) -> str:
    """Header line plus one row per result, ``\\n`` separated, no trailing newline."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for result in results:
        writer.writerow(result_row(result))
    return buf.getvalue().rstrip("\n")


def write_csv(results: Sequence[ResultRecord], out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(build_csv(results))
        fh.write("\n")
    return out_path


__all__ = ["CSV_HEADERS", "build_csv", "result_row", "write_csv"]
