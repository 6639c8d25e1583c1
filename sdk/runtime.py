
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from config.paths import Paths, get_paths
from core.events import (
    AnyCommand,
    FinishActive,
    RecordLap,
    StartAll,
    StartAthlete,
    SwitchAthlete,
    command_dump,
)
from core.results import ResultRecord, ResultsDraft
from core.session import Session, create_session
from core.timing.lap_policy import coerce_lap_count
from storage.history import HistoryStore
from storage.json_store import JsonlWriter, load_json, write_json
from storage.roster import Roster
from storage.setup_store import SetupStore

from .config import SDK_CONFIG, AppConfig, DistanceConfig
from .schemas import RaceSetup, parse_session_snapshot, restore_session, snapshot_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandOutcome:
    accepted: bool
    active: Optional[str] = None
    switched_to: Optional[str] = None
    completed: bool = False


class RaceController:
    """Single owner of the current session, its results draft and the stores.

    Every state change goes through :meth:`dispatch`; each dispatched command
    is appended to the race journal together with whether it was accepted.
    """
    def __init__(self, paths: Optional[Paths] = None, cfg: Optional[AppConfig] = None):
        self.paths = paths or get_paths()
        self.cfg = cfg or SDK_CONFIG
        self.setup_store = SetupStore(self.paths.setup_file, self.cfg)
        self.history = HistoryStore(self.paths.history_file)
        self.roster = Roster(self.paths.athletes_file, self.setup_store, self.history)
        self.session: Optional[Session] = None
        self.draft: Optional[ResultsDraft] = None

    @classmethod
    def load(cls, paths: Optional[Paths] = None, cfg: Optional[AppConfig] = None) -> "RaceController":
        ctl = cls(paths, cfg)
        snapshot = parse_session_snapshot(load_json(ctl.paths.session_file, None))
        if snapshot is not None:
            ctl.session = restore_session(snapshot)
            if ctl.session.results is not None:
                ctl.draft = ResultsDraft(ctl.session.results, saved=snapshot.results_saved)
        return ctl

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def new_session(self, setup: Optional[RaceSetup] = None, custom_laps: Optional[float] = None) -> Session:
        setup = (setup or self.setup_store.load()).normalized(self.cfg)
        self.setup_store.save(setup)
        distance = self.cfg.find_distance(setup.distance_id)
        if custom_laps is not None:
            if not math.isfinite(custom_laps):
                logger.warning("custom lap count %r is not a number; using the minimum", custom_laps)
            laps = coerce_lap_count(
                custom_laps, self.cfg.custom_lap_min, self.cfg.custom_lap_max, self.cfg.custom_lap_step
            )
            distance = DistanceConfig(id="custom", label=f"{laps:g} laps", total_laps=laps)
        self.session = create_session(
            distance,
            setup.start_mode,
            setup.selected_athletes,
            sport=self.cfg.sport_label(setup.sport),
            event_type=setup.event_type,
        )
        self.draft = None
        self.persist()
        logger.info("new session %s: %s", self.session.session_id, ", ".join(self.session.participants))
        return self.session

    def reset(self) -> None:
        """Drop the session and any unsaved results. Callers warn first."""
        if self.has_unsaved_results:
            logger.warning("discarding %d unsaved results", len(self.draft))
        self.session = None
        self.draft = None
        self.paths.session_file.unlink(missing_ok=True)

    @property
    def has_unsaved_results(self) -> bool:
        return self.draft is not None and self.draft.has_unsaved

    def persist(self) -> None:
        if self.session is None:
            return
        saved = self.draft.saved if self.draft is not None else False
        write_json(self.paths.session_file, snapshot_session(self.session, saved).model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def dispatch(self, command: AnyCommand) -> CommandOutcome:
        session = self.session
        if session is None:
            return CommandOutcome(accepted=False)
        before = session.active_name
        now = command.ts_ms
        if isinstance(command, StartAthlete):
            accepted = session.start_athlete(command.name, now)
        elif isinstance(command, StartAll):
            accepted = session.start_all_mass(now)
        elif isinstance(command, RecordLap):
            accepted = session.record_lap(now) is not None
        elif isinstance(command, FinishActive):
            accepted = session.finish_active(now)
        elif isinstance(command, SwitchAthlete):
            accepted = session.switch_athlete(command.direction)
        else:
            raise TypeError(f"unsupported command: {command!r}")

        if session.results is not None and self.draft is None:
            self.draft = ResultsDraft(session.results)
        after = session.active_name
        outcome = CommandOutcome(
            accepted=accepted,
            active=after,
            switched_to=after if after != before else None,
            completed=session.is_complete(),
        )
        self._journal(command, outcome)
        if accepted:
            self.persist()
        return outcome

    def _journal(self, command: AnyCommand, outcome: CommandOutcome) -> None:
        entry = {
            "command": command_dump(command),
            "accepted": outcome.accepted,
            "active": outcome.active,
            "state": self.session.state.value,
        }
        with JsonlWriter(self.paths.race_journal(self.session.session_id)) as writer:
            writer.write(entry)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    def set_notes(self, athlete_name: str, notes: str) -> bool:
        if self.draft is None or not self.draft.set_notes(athlete_name, notes):
            return False
        self.persist()
        return True

    def save_results(self) -> List[ResultRecord]:
        """Commit the draft to history (newest first); returns what was saved."""
        if self.draft is None or len(self.draft) == 0 or self.draft.saved:
            return []
        records = list(self.draft.records)
        self.history.prepend(records)
        self.draft.mark_saved()
        self.persist()
        logger.info("saved %d results to %s", len(records), self.history.path)
        return records
