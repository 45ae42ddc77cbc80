"""
Runtime execution shell for the shared pileup.

Responsibilities:
- Own the single authoritative PileupState
- Call the pure reducer
- Execute emitted commands (fan-out, unicast, logging)

Non-responsibilities:
- Transport I/O (sessions' writer tasks do the actual sending)
- Any pileup rule (the reducer owns all of them)
"""

from __future__ import annotations

import time

from observability.logger import log_event
from session.registry import SessionRegistry
from store.commands import Broadcast, Command, LogEvent, Unicast
from store.events import Event
from store.reducer import reduce
from store.state_dataclass import PileupState


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class PileupRuntime:
    """
    Runtime boundary between the pure reducer and the session registry.

    Guarantees:
    - Reducer is called exactly once per event
    - State is swapped before any command executes
    - Commands execute in reducer-emitted order
    - handle_event contains no await point, so on a single event loop
      each event's mutation and fan-out complete before the next event
      is looked at; no lock is needed
    """

    def __init__(
        self,
        *,
        registry: SessionRegistry,
        initial_state: PileupState | None = None,
    ) -> None:
        self._registry = registry
        self._state = initial_state if initial_state is not None else PileupState()

    @property
    def state(self) -> PileupState:
        """
        Current immutable state.

        Treat as read-only; only handle_event replaces it.
        """
        return self._state

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    def handle_event(self, event: Event) -> None:
        """Reduce one event and execute the resulting commands."""
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        for cmd in commands:
            self._execute_command(cmd)

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    def _execute_command(self, cmd: Command) -> None:
        if isinstance(cmd, Broadcast):
            self._registry.broadcast_all(cmd.message, exclude=cmd.exclude_session_id)

        elif isinstance(cmd, Unicast):
            if not self._registry.unicast(cmd.session_id, cmd.message):
                log_event({
                    "ts_ms": _now_ms(),
                    "level": "DEBUG",
                    "event_type": "UNICAST_DROPPED",
                    "session_id": cmd.session_id,
                    "msg_type": cmd.message.get("type"),
                })

        elif isinstance(cmd, LogEvent):
            log_event(cmd.event)

        else:
            log_event({
                "ts_ms": _now_ms(),
                "level": "ERROR",
                "event_type": "UNKNOWN_COMMAND",
                "command_type": getattr(cmd, "command_type", None),
            })
