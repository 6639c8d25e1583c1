"""Saved results, newest batch first, in ``history.json``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from core.results import ResultRecord
from sdk.schemas import parse_result

from .json_store import load_json, write_json

logger = logging.getLogger(__name__)


class HistoryStore:
    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> List[ResultRecord]:
        raw = load_json(self.path, [])
        if not isinstance(raw, list):
            logger.warning("history file %s is not a list; ignoring it", self.path)
            return []
        records = [parse_result(item) for item in raw]
        return [r for r in records if r is not None]

    def save(self, records: Sequence[ResultRecord]) -> None:
        write_json(self.path, [r.model_dump(mode="json") for r in records])

    def prepend(self, batch: Iterable[ResultRecord]) -> List[ResultRecord]:
        records = list(batch) + self.load()
        self.save(records)
        return records

    def delete(self, result_id: str) -> bool:
        records = self.load()
        kept = [r for r in records if r.id != result_id]
        if len(kept) == len(records):
            return False
        self.save(kept)
        return True

    def rename_athlete(self, old: str, new: str) -> int:
        records = self.load()
        changed = 0
        updated = []
        for record in records:
            if record.athlete_name == old:
                record = record.model_copy(update={"athlete_name": new})
                changed += 1
            updated.append(record)
        if changed:
            self.save(updated)
        return changed


def filter_results(
    records: Iterable[ResultRecord],
    athlete: Optional[str] = None,
    sport: Optional[str] = None,
    event_type: Optional[str] = None,
) -> List[ResultRecord]:
    """Keep records matching every filter that is set (empty means "all")."""
    out = []
    for r in records:
        if athlete and r.athlete_name != athlete:
            continue
        if sport and r.sport != sport:
            continue
        if event_type and r.event_type != event_type:
            continue
        out.append(r)
    return out


def distinct_values(records: Iterable[ResultRecord], field: str) -> List[str]:
    """Distinct values of ``field`` in first-seen order, for filter pickers."""
    seen = {}
    for r in records:
        seen.setdefault(getattr(r, field), None)
    return list(seen)


__all__ = ["HistoryStore", "distinct_values", "filter_results"]
