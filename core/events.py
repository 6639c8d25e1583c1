"""Command models consumed by the race controller.

Each user action (start, lap, finish, switch) is a discrete message.  The
controller applies it to the session and journals it; nothing else mutates
timing state.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Union

import time

import ulid
from pydantic import BaseModel, ConfigDict, Field


def now_ts_ms() -> int:
    """Return the current timestamp in milliseconds."""

    return int(time.time() * 1000)


def new_command_id() -> str:
    """Generate a ULID based identifier for commands."""

    return str(ulid.new())


class Command(BaseModel):
    """Base command: an id and the instant the action happened."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_command_id)
    ts_ms: int = Field(default_factory=now_ts_ms)


class StartAthlete(Command):
    kind: Literal["start"] = "start"
    name: str


class StartAll(Command):
    kind: Literal["start_all"] = "start_all"


class RecordLap(Command):
    kind: Literal["lap"] = "lap"


class FinishActive(Command):
    kind: Literal["finish"] = "finish"


class SwitchAthlete(Command):
    kind: Literal["switch"] = "switch"
    direction: Literal[-1, 1] = 1


AnyCommand = Union[StartAthlete, StartAll, RecordLap, FinishActive, SwitchAthlete]


def command_dump(command: Command) -> Dict[str, Any]:
    """Return a JSON-ready ``dict`` for ``command``."""

    return command.model_dump(mode="json")


__all__ = [
    "AnyCommand",
    "Command",
    "FinishActive",
    "RecordLap",
    "StartAll",
    "StartAthlete",
    "SwitchAthlete",
    "command_dump",
    "new_command_id",
    "now_ts_ms",
]
