"""
Side-effect command definitions for the pileup reducer.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    Stable discriminants used for logging and runtime dispatch.
    """

    BROADCAST = "BROADCAST"
    UNICAST = "UNICAST"
    LOG_EVENT = "LOG_EVENT"


class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


@dataclass(frozen=True)
class Broadcast(Command):
    """
    Deliver a message to every open session.

    The originator is included unless exclude_session_id names it.
    """
    message: dict[str, Any]
    exclude_session_id: int | None = None
    command_type: CommandType = CommandType.BROADCAST


@dataclass(frozen=True)
class Unicast(Command):
    """Deliver a message to one session if its transport is open."""
    session_id: int
    message: dict[str, Any]
    command_type: CommandType = CommandType.UNICAST


@dataclass(frozen=True)
class LogEvent(Command):
    """Structured observability record for a reducer decision."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
