"""
Participant session container.

- One per connected participant
- Owns its transport handle exclusively
- Owns a FIFO outbox; enqueueing is synchronous so the reducer's
  fan-out never yields to the event loop
- A writer task drains the outbox to the transport
- NOT a state machine; contains no pileup logic
"""

from __future__ import annotations

import asyncio
import json
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from observability.logger import log_event
from session.connection_status import ConnectionStatus


SendText = Callable[[str], Awaitable[None]]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class ParticipantSession:
    """Mutable runtime container for a single connected participant."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: int
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Transport (opaque to everything but the writer)
    # ------------------------------------------------------------------

    connection_status: ConnectionStatus = ConnectionStatus.UP
    websocket: Any = None  # starlette WebSocket in practice

    def __post_init__(self) -> None:
        self._control_out: deque[dict[str, Any]] = deque()
        self._outbox_ready = asyncio.Event()

    # ------------------------------------------------------------------
    # Outbox
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.connection_status is ConnectionStatus.UP

    def enqueue_control(self, msg: dict[str, Any]) -> bool:
        """
        Queue a message for delivery.

        Returns False (message dropped) if the transport is not UP; the
        session is assumed to be tearing down.
        """
        if not self.is_open:
            return False
        self._control_out.append(msg)
        self._outbox_ready.set()
        return True

    def drain_control(self) -> tuple[dict[str, Any], ...]:
        """
        Atomically drain all pending messages in FIFO order.

        After this call the outbox is empty.
        """
        if not self._control_out:
            return ()
        out = tuple(self._control_out)
        self._control_out.clear()
        return out

    def pending(self) -> int:
        return len(self._control_out)

    def mark_closing(self) -> None:
        if self.connection_status is ConnectionStatus.UP:
            self.connection_status = ConnectionStatus.CLOSING

    def mark_down(self) -> None:
        self.connection_status = ConnectionStatus.DOWN
        self._control_out.clear()

    # ------------------------------------------------------------------
    # Writer
    # ------------------------------------------------------------------

    async def run_writer(self, send_text: SendText) -> None:
        """
        Flush the outbox to the transport until the session closes.

        Send failures are swallowed: the session is marked CLOSING and
        the reader side will observe the disconnect.
        """
        while self.is_open:
            await self._outbox_ready.wait()
            self._outbox_ready.clear()

            for msg in self.drain_control():
                try:
                    await send_text(json.dumps(msg))
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    log_event({
                        "ts_ms": _now_ms(),
                        "level": "WARNING",
                        "event_type": "SEND_FAILED",
                        "session_id": self.session_id,
                        "msg_type": msg.get("type"),
                        "exception": type(exc).__name__,
                        "message": str(exc),
                    })
                    self.mark_closing()
                    return
