"""
Event definitions for the pileup reducer.

Rules:
- Events describe facts that have occurred (a participant did something,
  a connection opened or closed).
- Events carry data only (no behavior).
- Payloads are already structurally decoded by the session gateway;
  semantic validation (bounds, normalization) is the reducer's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """Canonical event types understood by the reducer."""

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    SESSION_CONNECTED = "SESSION_CONNECTED"
    SESSION_DISCONNECTED = "SESSION_DISCONNECTED"

    # ------------------------------------------------------------------
    # Backlog
    # ------------------------------------------------------------------
    ADD_CALLSIGN = "ADD_CALLSIGN"
    REMOVE_CALLSIGN = "REMOVE_CALLSIGN"
    CLEAR_BACKLOG = "CLEAR_BACKLOG"
    REORDER_BACKLOG = "REORDER_BACKLOG"
    CALLSIGN_PLAYED = "CALLSIGN_PLAYED"
    PLAY_NEXT = "PLAY_NEXT"

    # ------------------------------------------------------------------
    # Audio ownership
    # ------------------------------------------------------------------
    CLAIM_AUDIO = "CLAIM_AUDIO"
    RELEASE_AUDIO = "RELEASE_AUDIO"

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------
    UPDATE_CONFIG = "UPDATE_CONFIG"

    # ------------------------------------------------------------------
    # Spectral relay
    # ------------------------------------------------------------------
    WATERFALL_FRAME = "WATERFALL_FRAME"


# =============================================================================
# Base Events
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    event_type: discriminant
    ts_ms: wall-clock timestamp supplied by the gateway (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


@dataclass(frozen=True)
class ParticipantEvent(Event):
    """Event originating from (or about) a single connected session."""

    session_id: int


# =============================================================================
# Connection lifecycle
# =============================================================================

@dataclass(frozen=True)
class SessionConnected(ParticipantEvent):
    """Transport accepted and registered."""


@dataclass(frozen=True)
class SessionDisconnected(ParticipantEvent):
    """Transport closed; session already removed from the registry."""
    reason: str | None = None


# =============================================================================
# Backlog
# =============================================================================

@dataclass(frozen=True)
class AddCallsign(ParticipantEvent):
    """Raw (not yet normalized) callsign submission."""
    callsign: str


@dataclass(frozen=True)
class RemoveCallsign(ParticipantEvent):
    entry_id: int


@dataclass(frozen=True)
class ClearBacklog(ParticipantEvent):
    pass


@dataclass(frozen=True)
class ReorderBacklog(ParticipantEvent):
    """Requested order; may be partial, stale or contain unknown ids."""
    order: tuple[int, ...]


@dataclass(frozen=True)
class CallsignPlayed(ParticipantEvent):
    """The audio owner finished announcing this entry."""
    entry_id: int


@dataclass(frozen=True)
class PlayNext(ParticipantEvent):
    """Ask the audio owner to announce the head of the backlog."""


# =============================================================================
# Audio ownership
# =============================================================================

@dataclass(frozen=True)
class ClaimAudio(ParticipantEvent):
    pass


@dataclass(frozen=True)
class ReleaseAudio(ParticipantEvent):
    pass


# =============================================================================
# Config
# =============================================================================

@dataclass(frozen=True)
class UpdateConfig(ParticipantEvent):
    """Partial config keyed by wire field names; unvalidated."""
    partial: Mapping[str, Any]


# =============================================================================
# Spectral relay
# =============================================================================

@dataclass(frozen=True)
class WaterfallFrame(ParticipantEvent):
    """Downsampled magnitude frame, 0..255 per bin."""
    bins: tuple[int, ...]
