"""
Pure pileup reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every event is handled or explicitly ignored (logged).
- Delta broadcasts are emitted only when the relevant state actually
  changed; log commands always come last.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable

from constants import CLAIM_CONFLICT_MESSAGE
from protocol import messages
from store.arbitration import ClaimOutcome, claim, release
from store.commands import Broadcast, Command, LogEvent, Unicast
from store.events import (
    AddCallsign,
    CallsignPlayed,
    ClaimAudio,
    ClearBacklog,
    Event,
    ParticipantEvent,
    PlayNext,
    ReleaseAudio,
    RemoveCallsign,
    ReorderBacklog,
    SessionConnected,
    SessionDisconnected,
    UpdateConfig,
    WaterfallFrame,
)
from store.mutations import (
    add_entry,
    clear_backlog,
    mark_played,
    remove_entry,
    reorder_backlog,
    update_config,
)
from store.state_dataclass import PileupState

Result = tuple[PileupState, tuple[Command, ...]]


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: PileupState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
    *,
    level: str = "INFO",
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "level": level,
            "event_type": event.event_type.value,
            "session_id": event.session_id if isinstance(event, ParticipantEvent) else None,
            "decision": decision,
            "backlog_len": len(state.backlog),
            "audio_owner_id": state.audio_owner_id,
            "connected": len(state.session_ids),
            "details": details or {},
        }
    )


def _ignore(state: PileupState, event: Event, reason: str) -> Result:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _iso_utc(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).isoformat()


def _backlog_changed(
    old: PileupState,
    new: PileupState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> Result:
    """Broadcast the new backlog if it differs, otherwise log a no-op."""
    if new is old:
        return _ignore(old, event, f"{decision}_noop")
    return new, (
        Broadcast(messages.backlog_updated(new)),
        _log(new, event, decision, details),
    )


# =============================================================================
# Connection lifecycle
# =============================================================================

def _on_connected(state: PileupState, event: SessionConnected) -> Result:
    new_state = replace(state, session_ids=state.session_ids | {event.session_id})
    return new_state, (
        # Baseline first: no delta may reach a session before its snapshot
        Unicast(event.session_id, messages.state_snapshot(new_state, event.session_id)),
        Broadcast(messages.client_count(len(new_state.session_ids))),
        _log(new_state, event, "session_connected"),
    )


def _on_disconnected(state: PileupState, event: SessionDisconnected) -> Result:
    new_state = replace(state, session_ids=state.session_ids - {event.session_id})
    new_state, cleared = release(new_state, event.session_id)

    commands: list[Command] = []
    if cleared:
        commands.append(Broadcast(messages.audio_client_changed(None)))
    commands.append(Broadcast(messages.client_count(len(new_state.session_ids))))
    commands.append(
        _log(
            new_state,
            event,
            "session_disconnected",
            {"reason": event.reason, "released_audio": cleared},
        )
    )
    return new_state, tuple(commands)


# =============================================================================
# Backlog
# =============================================================================

def _on_add(state: PileupState, event: AddCallsign) -> Result:
    new_state = add_entry(
        state,
        event.callsign,
        submitted_by=event.session_id,
        submitted_at=_iso_utc(event.ts_ms),
    )
    if new_state is state:
        return _ignore(state, event, "empty_callsign")
    entry = new_state.backlog[-1]
    return new_state, (
        Broadcast(messages.backlog_updated(new_state)),
        _log(new_state, event, "callsign_added", {"entry_id": entry.id, "callsign": entry.callsign}),
    )


def _on_remove(state: PileupState, event: RemoveCallsign) -> Result:
    return _backlog_changed(
        state, remove_entry(state, event.entry_id), event,
        "callsign_removed", {"entry_id": event.entry_id},
    )


def _on_played(state: PileupState, event: CallsignPlayed) -> Result:
    return _backlog_changed(
        state, mark_played(state, event.entry_id), event,
        "callsign_played", {"entry_id": event.entry_id},
    )


def _on_clear(state: PileupState, event: ClearBacklog) -> Result:
    new_state = clear_backlog(state)
    # Always broadcast: clearing is unconditional
    return new_state, (
        Broadcast(messages.backlog_updated(new_state)),
        _log(new_state, event, "backlog_cleared", {"removed": len(state.backlog)}),
    )


def _on_reorder(state: PileupState, event: ReorderBacklog) -> Result:
    new_state = reorder_backlog(state, event.order)
    return new_state, (
        Broadcast(messages.backlog_updated(new_state)),
        _log(new_state, event, "backlog_reordered", {"requested": list(event.order)}),
    )


def _on_play_next(state: PileupState, event: PlayNext) -> Result:
    if state.audio_owner_id is None:
        return _ignore(state, event, "no_audio_owner")
    if not state.backlog:
        return _ignore(state, event, "backlog_empty")
    head = state.backlog[0]
    return state, (
        Unicast(state.audio_owner_id, messages.play_callsign(head)),
        _log(state, event, "play_next", {"entry_id": head.id}),
    )


# =============================================================================
# Audio ownership
# =============================================================================

def _on_claim(state: PileupState, event: ClaimAudio) -> Result:
    new_state, outcome = claim(state, event.session_id)

    if outcome is ClaimOutcome.GRANTED:
        return new_state, (
            Broadcast(messages.audio_client_changed(event.session_id)),
            Unicast(event.session_id, messages.audio_claim_result(True)),
            _log(new_state, event, "audio_claimed"),
        )

    if outcome is ClaimOutcome.ALREADY_OWNER:
        return new_state, (
            Unicast(event.session_id, messages.audio_claim_result(True)),
            _log(new_state, event, "audio_claim_reconfirmed"),
        )

    return new_state, (
        Unicast(
            event.session_id,
            messages.audio_claim_result(False, CLAIM_CONFLICT_MESSAGE),
        ),
        _log(new_state, event, "audio_claim_conflict", {"holder": state.audio_owner_id}),
    )


def _on_release(state: PileupState, event: ReleaseAudio) -> Result:
    new_state, cleared = release(state, event.session_id)
    if not cleared:
        return _ignore(state, event, "not_audio_owner")
    return new_state, (
        Broadcast(messages.audio_client_changed(None)),
        _log(new_state, event, "audio_released"),
    )


# =============================================================================
# Config
# =============================================================================

def _on_update_config(state: PileupState, event: UpdateConfig) -> Result:
    new_config, changed = update_config(state.config, event.partial)
    if not changed:
        return _ignore(state, event, "no_valid_config_change")
    new_state = replace(state, config=new_config)
    dropped = sorted(set(event.partial) - set(changed))
    return new_state, (
        Broadcast(messages.config_updated(new_config)),
        _log(new_state, event, "config_updated", {"changed": list(changed), "unchanged_or_dropped": dropped}),
    )


# =============================================================================
# Spectral relay
# =============================================================================

def _on_waterfall_frame(state: PileupState, event: WaterfallFrame) -> Result:
    if state.audio_owner_id != event.session_id:
        return _ignore(state, event, "waterfall_from_non_owner")
    return state, (
        Broadcast(messages.waterfall_frame(event.bins), exclude_session_id=event.session_id),
        _log(state, event, "waterfall_relayed", {"bins": len(event.bins)}, level="DEBUG"),
    )


# =============================================================================
# Dispatch
# =============================================================================

_HANDLERS: dict[type, Callable[[PileupState, Any], Result]] = {
    SessionConnected: _on_connected,
    SessionDisconnected: _on_disconnected,
    AddCallsign: _on_add,
    RemoveCallsign: _on_remove,
    CallsignPlayed: _on_played,
    ClearBacklog: _on_clear,
    ReorderBacklog: _on_reorder,
    PlayNext: _on_play_next,
    ClaimAudio: _on_claim,
    ReleaseAudio: _on_release,
    UpdateConfig: _on_update_config,
    WaterfallFrame: _on_waterfall_frame,
}


def reduce(state: PileupState, event: Event) -> Result:
    """
    Pure reducer for the shared pileup state.

    Given the current state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Unknown event classes are explicitly ignored.
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        return _ignore(state, event, "unhandled_event")
    return handler(state, event)
