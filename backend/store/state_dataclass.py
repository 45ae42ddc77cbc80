"""
Authoritative pileup state container.

Rules:
- Pure data model; frozen dataclasses only.
- Contains ALL state the reducer may ever need.
- Wire conversion lives here so every component agrees on key names.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from constants import (
    DAH_FREQUENCY_DEFAULT_HZ,
    DELAY_BETWEEN_ITEMS_DEFAULT_MS,
    DIT_FREQUENCY_DEFAULT_HZ,
    FIRST_ENTRY_ID,
    WPM_DEFAULT,
)


# =============================================================================
# Queue entry
# =============================================================================

@dataclass(frozen=True)
class QueueEntry:
    """One pending callsign announcement."""

    id: int
    callsign: str
    submitted_by: int
    # ISO-8601 UTC
    submitted_at: str

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "callsign": self.callsign,
            "addedBy": self.submitted_by,
            "addedAt": self.submitted_at,
        }

    @staticmethod
    def from_wire(data: Mapping[str, Any]) -> QueueEntry:
        """Build from a server payload (client side mirror)."""
        return QueueEntry(
            id=int(data["id"]),
            callsign=str(data["callsign"]),
            submitted_by=int(data.get("addedBy") or 0),
            submitted_at=str(data.get("addedAt") or ""),
        )


# =============================================================================
# Shared transmission parameters
# =============================================================================

@dataclass(frozen=True)
class SessionConfig:
    """Single shared config instance; replaced only via validated merges."""

    wpm: float = WPM_DEFAULT
    delay_between_items_ms: float = DELAY_BETWEEN_ITEMS_DEFAULT_MS
    dit_frequency_hz: float = DIT_FREQUENCY_DEFAULT_HZ
    dah_frequency_hz: float = DAH_FREQUENCY_DEFAULT_HZ

    def to_wire(self) -> dict[str, Any]:
        return {
            "wpm": self.wpm,
            "delayBetweenItems": self.delay_between_items_ms,
            "ditFrequency": self.dit_frequency_hz,
            "dahFrequency": self.dah_frequency_hz,
        }

    @staticmethod
    def from_wire(data: Mapping[str, Any]) -> SessionConfig:
        """
        Build from a server payload.

        Missing keys keep their defaults; the server is trusted to have
        validated the values already.
        """
        defaults = SessionConfig()
        return SessionConfig(
            wpm=data.get("wpm", defaults.wpm),
            delay_between_items_ms=data.get(
                "delayBetweenItems", defaults.delay_between_items_ms
            ),
            dit_frequency_hz=data.get("ditFrequency", defaults.dit_frequency_hz),
            dah_frequency_hz=data.get("dahFrequency", defaults.dah_frequency_hz),
        )


# Wire field name -> SessionConfig attribute
CONFIG_WIRE_FIELDS: dict[str, str] = {
    "wpm": "wpm",
    "delayBetweenItems": "delay_between_items_ms",
    "ditFrequency": "dit_frequency_hz",
    "dahFrequency": "dah_frequency_hz",
}


# =============================================================================
# Pileup state
# =============================================================================

@dataclass(frozen=True)
class PileupState:
    """Immutable snapshot of the shared queue, config and audio ownership."""

    backlog: tuple[QueueEntry, ...] = ()
    config: SessionConfig = field(default_factory=SessionConfig)

    # At most one holder; None means the slot is open
    audio_owner_id: int | None = None

    # Connected participants (source of the client count)
    session_ids: frozenset[int] = frozenset()

    # Monotonic; bumped on every add and never reused
    next_entry_id: int = FIRST_ENTRY_ID

    def backlog_wire(self) -> list[dict[str, Any]]:
        return [entry.to_wire() for entry in self.backlog]
