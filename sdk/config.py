
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from core.session import StartMode

logger = logging.getLogger(__name__)

EVENT_TYPES = ["Practice", "Area Games", "Regional Games", "State Games"]
START_MODE_LABELS = {StartMode.MASS: "Mass start", StartMode.STAGGERED: "Staggered start"}


class DistanceConfig(BaseModel):
    id: str
    label: str
    total_laps: float = Field(gt=0)


class SportConfig(BaseModel):
    label: str
    distances: List[DistanceConfig] = Field(min_length=1)


def build_sup_distances(max_laps: int) -> List[DistanceConfig]:
    """SUP races are whole laps: ``1 lap``, ``2 laps`` ... ``max_laps laps``."""
    return [
        DistanceConfig(id=f"sup-{n}lap", label="1 lap" if n == 1 else f"{n} laps", total_laps=n)
        for n in range(1, max_laps + 1)
    ]


def default_sports() -> Dict[str, SportConfig]:
    return {
        "cycling": SportConfig(
            label="Cycling",
            distances=[
                DistanceConfig(id="cycling-5k", label="5k (12.5 laps)", total_laps=12.5),
                DistanceConfig(id="cycling-10k", label="10k (25 laps)", total_laps=25),
            ],
        ),
        "sup": SportConfig(label="Stand-Up Paddleboarding (SUP)", distances=build_sup_distances(2)),
    }


class AppConfig(BaseModel):
    sports: Dict[str, SportConfig] = Field(default_factory=default_sports, min_length=1)
    event_types: List[str] = Field(default_factory=lambda: list(EVENT_TYPES), min_length=1)
    tick_hz: float = Field(10.0, gt=0)
    switch_flash_seconds: float = Field(1.5, ge=0)
    custom_lap_min: float = 0.5
    custom_lap_max: float = 200
    custom_lap_step: float = 0.5

    @property
    def default_sport(self) -> str:
        return next(iter(self.sports))

    def all_distances(self) -> List[DistanceConfig]:
        return [d for sport in self.sports.values() for d in sport.distances]

    def distances_for(self, sport: str) -> List[DistanceConfig]:
        cfg = self.sports.get(sport) or self.sports[self.default_sport]
        return list(cfg.distances)

    def sport_label(self, sport: str) -> str:
        cfg = self.sports.get(sport)
        return cfg.label if cfg else sport

    def find_distance(self, distance_id: Optional[str]) -> DistanceConfig:
        """Look up ``distance_id``; unknown ids fall back to the first distance."""
        distances = self.all_distances()
        for d in distances:
            if d.id == distance_id:
                return d
        if distance_id:
            logger.warning("unknown distance id %r; using %r", distance_id, distances[0].id)
        return distances[0]


def load_app_config(path: Optional[Path] = None) -> AppConfig:
    """Read the optional JSON config; a missing or malformed file yields defaults."""
    if path is None:
        env = os.getenv("COACHTIMER_CONFIG")
        if not env:
            return AppConfig()
        path = Path(env)
    try:
        return AppConfig.model_validate_json(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("config file %s not found; using defaults", path)
    except (OSError, ValidationError) as exc:
        logger.warning("config file %s is invalid (%s); using defaults", path, exc)
    return AppConfig()


SDK_CONFIG = load_app_config()
