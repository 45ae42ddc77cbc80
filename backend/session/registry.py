"""
Session registry and broadcast engine.

- Assigns monotonic, never-reused session ids
- Owns every ParticipantSession (and through it, every transport)
- unicast / broadcast_all are synchronous "send if open" operations:
  delivery to a closed or closing session is silently dropped
"""

from __future__ import annotations

from itertools import count
from typing import Any, Iterator

from constants import FIRST_SESSION_ID
from session.connection_status import ConnectionStatus
from session.participant import ParticipantSession


class SessionRegistry:
    """All currently connected participants, keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[int, ParticipantSession] = {}
        self._ids = count(FIRST_SESSION_ID)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self, websocket: Any = None) -> ParticipantSession:
        """Register a freshly accepted transport under a new id."""
        session = ParticipantSession(
            session_id=next(self._ids),
            connection_status=ConnectionStatus.UP,
            websocket=websocket,
        )
        self._sessions[session.session_id] = session
        return session

    def close(self, session_id: int) -> ParticipantSession | None:
        """Remove a session; pending outbound messages are discarded."""
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.mark_down()
        return session

    def get(self, session_id: int) -> ParticipantSession | None:
        return self._sessions.get(session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[ParticipantSession]:
        return iter(list(self._sessions.values()))

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def unicast(self, session_id: int, message: dict[str, Any]) -> bool:
        """Deliver to one session. Returns False if it was dropped."""
        session = self._sessions.get(session_id)
        if session is None:
            return False
        return session.enqueue_control(message)

    def broadcast_all(
        self,
        message: dict[str, Any],
        *,
        exclude: int | None = None,
    ) -> int:
        """
        Deliver to every open session, the originator included unless
        excluded. Returns the number of sessions that accepted it.
        """
        delivered = 0
        for session in self._sessions.values():
            if session.session_id == exclude:
                continue
            if session.enqueue_control(message):
                delivered += 1
        return delivered
