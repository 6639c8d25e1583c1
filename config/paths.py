# config/paths.py
"""
Centralized, cross-platform path management for coachtimer.

Design goals
- Single source of truth for the data and logs locations
- Honors these env vars:
    COACHTIMER_DATA_ROOT, COACHTIMER_LOGS_ROOT
- Sensible OS defaults when env vars are not provided
- Safe directory creation with writeability checks
- Helpers for the stored files (roster, setup, live session, history, race journals)
"""

from __future__ import annotations

import errno
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# ---------- OS defaults (used only if env vars not set) ----------

def _platform_default_base() -> Path:
    """
    Returns an OS-specific base directory for user data, following conventions:
    - Windows: %LOCALAPPDATA%/CoachTimer
    - macOS:   ~/Library/Application Support/CoachTimer
    - Linux:   ~/.local/share/coachtimer
    """
    if sys.platform.startswith("win"):
        base = os.getenv("LOCALAPPDATA") or os.getenv("APPDATA") or str(Path.home() / "AppData" / "Local")
        return Path(base) / "CoachTimer"
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "CoachTimer"
    else:
        # Linux / other POSIX
        return Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share")) / "coachtimer"


# ---------- Environment overrides ----------

def _env_or_default_data_root() -> Path:
    return Path(os.getenv("COACHTIMER_DATA_ROOT", _platform_default_base() / "data"))


def _env_or_default_logs_root() -> Path:
    return Path(os.getenv("COACHTIMER_LOGS_ROOT", _platform_default_base() / "logs"))


# ---------- Core dataclass ----------

@dataclass(frozen=True)
class Paths:
    """
    Canonical path container for coachtimer.

    Most callers should obtain a singleton instance via get_paths().
    """
    data_root: Path
    logs_root: Path

    @staticmethod
    def from_env() -> "Paths":
        return Paths(_env_or_default_data_root(), _env_or_default_logs_root())

    # ----- stored files -----

    @property
    def athletes_file(self) -> Path:
        return self.data_root / "athletes.json"

    @property
    def setup_file(self) -> Path:
        return self.data_root / "setup.json"

    @property
    def session_file(self) -> Path:
        # the race in progress (or finished but not yet reset)
        return self.data_root / "session.json"

    @property
    def history_file(self) -> Path:
        return self.data_root / "history.json"

    @property
    def races_root(self) -> Path:
        return self.data_root / "races"

    def race_dir(self, session_id: str) -> Path:
        """Return the per-race directory holding its command journal."""
        return self.races_root / session_id

    def race_journal(self, session_id: str) -> Path:
        return self.race_dir(session_id) / "events.jsonl"

    # ----- setup / validation -----

    def ensure_all(self) -> None:
        for p in [self.data_root, self.logs_root, self.races_root]:
            p.mkdir(parents=True, exist_ok=True)

    def verify_writeable(self) -> None:
        """
        Raise OSError if critical roots are not writeable.
        """
        for p in [self.data_root, self.logs_root]:
            try:
                p.mkdir(parents=True, exist_ok=True)
                test = p / ".write_test"
                test.write_text("ok", encoding="utf-8")
                test.unlink(missing_ok=True)
            except Exception as e:
                raise OSError(errno.EACCES, f"Not writeable: {p}", e)


# ---------- Singleton access ----------

_paths_singleton: Optional[Paths] = None

def get_paths(force_refresh: bool = False) -> Paths:
    """
    Return a cached Paths instance.
    """
    global _paths_singleton
    if force_refresh or _paths_singleton is None:
        _paths_singleton = Paths.from_env()
        _paths_singleton.ensure_all()
    return _paths_singleton
