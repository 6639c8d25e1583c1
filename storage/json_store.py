from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Any, IO
from threading import Lock

logger = logging.getLogger(__name__)


class JsonlWriter:
    """
    Minimal, robust JSONL writer with periodic flush.
    Not thread-safe across processes, but thread-safe within a process.
    """
    def __init__(self, out_path: Path, flush_every: int = 1):
        ensure_dir(out_path.parent)
        self._f: IO[str] = out_path.open("a", encoding="utf-8")
        self._n = 0
        self._flush_every = flush_every
        self._lock = Lock()

    def write(self, obj) -> None:
        line = json.dumps(obj, ensure_ascii=False)
        with self._lock:
            self._f.write(line + "\n")
            self._n += 1
            if self._n % self._flush_every == 0:
                self._f.flush()

    def close(self):
        with self._lock:
            if self._f.closed:
                return
            try:
                self._f.flush()
            finally:
                self._f.close()

    def __enter__(self) -> "JsonlWriter":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def load_json(path: Path, fallback: Any) -> Any:
    """Return the parsed contents of ``path`` or ``fallback`` if absent/corrupt."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return fallback
    if not raw.strip():
        return fallback
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("ignoring unreadable %s: %s", path, exc)
        return fallback


def write_json(path: Path, payload: Any) -> None:
    """Write ``payload`` atomically (temp file + rename)."""
    ensure_dir(path.parent)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


def read_jsonl(path: Path) -> list:
    """Parsed lines of ``path``; unreadable lines are skipped with a warning."""
    if not path.exists():
        return []
    out = []
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            out.append(json.loads(line))
        except json.JSONDecodeError as exc:
            logger.warning("skipping unreadable line %d of %s: %s", lineno, path, exc)
    return out
