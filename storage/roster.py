"""Athlete roster kept in ``athletes.json``.

Renames and removals are propagated to the remembered setup selection (and,
for renames, to the saved history) so the three files never disagree about
who an athlete is.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from core.session import normalize_name

from .history import HistoryStore
from .json_store import load_json, write_json
from .setup_store import SetupStore

logger = logging.getLogger(__name__)


def replace_name(values: List[str], old: str, new: str) -> List[str]:
    return [new if v == old else v for v in values]


class Roster:
    def __init__(self, path, setup_store: SetupStore, history: HistoryStore) -> None:
        self.path = path
        self.setup_store = setup_store
        self.history = history

    def load(self) -> List[str]:
        raw = load_json(self.path, [])
        if not isinstance(raw, list):
            logger.warning("roster file %s is not a list; ignoring it", self.path)
            return []
        names: List[str] = []
        for item in raw:
            if not isinstance(item, str):
                continue
            name = normalize_name(item)
            if name and name not in names:
                names.append(name)
        return names

    def save(self, names: List[str]) -> None:
        write_json(self.path, names)

    def add(self, value: str) -> Optional[str]:
        """Add and auto-select an athlete; returns the stored name or ``None``."""
        name = normalize_name(value)
        if not name:
            return None
        names = self.load()
        if name in names:
            return None
        names.append(name)
        self.save(names)
        setup = self.setup_store.load()
        if name not in setup.selected_athletes:
            self.setup_store.save(
                setup.model_copy(update={"selected_athletes": setup.selected_athletes + [name]})
            )
        return name

    def rename(self, old: str, value: str) -> bool:
        new = normalize_name(value)
        names = self.load()
        if not new or new == old or old not in names or new in names:
            return False
        self.save(replace_name(names, old, new))
        setup = self.setup_store.load()
        self.setup_store.save(
            setup.model_copy(update={"selected_athletes": replace_name(setup.selected_athletes, old, new)})
        )
        changed = self.history.rename_athlete(old, new)
        logger.info("renamed %s -> %s (%d history records)", old, new, changed)
        return True

    def remove(self, name: str) -> bool:
        names = self.load()
        if name not in names:
            return False
        self.save([n for n in names if n != name])
        setup = self.setup_store.load()
        self.setup_store.save(
            setup.model_copy(update={"selected_athletes": [n for n in setup.selected_athletes if n != name]})
        )
        return True

    def set_selected(self, name: str, selected: bool) -> bool:
        if name not in self.load():
            return False
        setup = self.setup_store.load()
        current = [n for n in setup.selected_athletes if n != name]
        if selected:
            current.append(name)
        self.setup_store.save(setup.model_copy(update={"selected_athletes": current}))
        return True


__all__ = ["Roster", "replace_name"]
