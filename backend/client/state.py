"""
Client-side mirror of the shared pileup state.

The server is authoritative; this object only records what the server
last said. apply() is the single place server messages change it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from protocol import messages as m
from store.state_dataclass import QueueEntry, SessionConfig


@dataclass
class ClientState:
    client_id: int | None = None
    backlog: tuple[QueueEntry, ...] = ()
    config: SessionConfig = field(default_factory=SessionConfig)
    audio_client_id: int | None = None
    is_audio_owner: bool = False
    connected_clients: int = 0

    # Snapshot received on the current connection
    synced: bool = False

    # Last failure text from audioClaimResult, for display
    last_claim_error: str | None = None

    def apply(self, message: Mapping[str, Any]) -> bool:
        """
        Update the mirror from one server message.

        Returns True if the message type changes client state. playCallsign
        and waterfallFrame are actions, not state, and return False.
        """
        kind = message.get("type")

        if kind == m.STATE:
            self.client_id = message.get("clientId")
            self.backlog = _entries(message.get("backlog"))
            self.config = SessionConfig.from_wire(message.get("config") or {})
            self.audio_client_id = message.get("audioClientId")
            self.is_audio_owner = bool(message.get("isAudioClient"))
            self.connected_clients = int(message.get("connectedClients") or 0)
            self.synced = True
            return True

        if kind == m.BACKLOG_UPDATED:
            self.backlog = _entries(message.get("backlog"))
            return True

        if kind == m.CONFIG_UPDATED:
            self.config = SessionConfig.from_wire(message.get("config") or {})
            return True

        if kind == m.AUDIO_CLIENT_CHANGED:
            self.audio_client_id = message.get("audioClientId")
            self.is_audio_owner = (
                self.audio_client_id is not None and self.audio_client_id == self.client_id
            )
            return True

        if kind == m.AUDIO_CLAIM_RESULT:
            if message.get("success"):
                self.is_audio_owner = True
                self.audio_client_id = self.client_id
                self.last_claim_error = None
            else:
                self.last_claim_error = message.get("message") or "Failed to claim audio output"
            return True

        if kind == m.CLIENT_COUNT:
            self.connected_clients = int(message.get("count") or 0)
            return True

        return False

    def disconnected(self) -> None:
        """Forget per-connection facts; the next snapshot restores them."""
        self.synced = False
        self.is_audio_owner = False
        self.audio_client_id = None
        self.client_id = None


def _entries(raw: Any) -> tuple[QueueEntry, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(QueueEntry.from_wire(item) for item in raw if isinstance(item, Mapping))
