from __future__ import annotations

from pathlib import Path

from sdk.config import AppConfig
from sdk.schemas import RaceSetup, parse_setup

from .json_store import load_json, write_json


class SetupStore:
    """Persist the last race setup in ``setup.json``."""

    def __init__(self, path: Path, cfg: AppConfig) -> None:
        self.path = path
        self.cfg = cfg

    def load(self) -> RaceSetup:
        return parse_setup(load_json(self.path, {}), self.cfg)

    def save(self, setup: RaceSetup) -> None:
        write_json(self.path, setup.model_dump(mode="json"))
