"""
JSON message vocabulary for the pileup channel.

Client -> Server:
    addCallsign{callsign}       removeCallsign{id}       clearBacklog{}
    reorderBacklog{order}       claimAudio{}             releaseAudio{}
    updateConfig{config}        playNext{}               callsignPlayed{id}
    waterfallFrame{bins}

Server -> Client:
    state{clientId, backlog, config, audioClientId, isAudioClient,
          connectedClients}
    backlogUpdated{backlog}     configUpdated{config}
    audioClientChanged{audioClientId}
    audioClaimResult{success, isAudioClient?, message?}
    clientCount{count}          playCallsign{item}       waterfallFrame{bins}

Builders below are the only place payload shapes are spelled out.
"""

from __future__ import annotations

from typing import Any, Sequence

from store.state_dataclass import PileupState, QueueEntry, SessionConfig


# -------------------------
# Client -> Server types
# -------------------------

ADD_CALLSIGN = "addCallsign"
REMOVE_CALLSIGN = "removeCallsign"
CLEAR_BACKLOG = "clearBacklog"
REORDER_BACKLOG = "reorderBacklog"
CLAIM_AUDIO = "claimAudio"
RELEASE_AUDIO = "releaseAudio"
UPDATE_CONFIG = "updateConfig"
PLAY_NEXT = "playNext"
CALLSIGN_PLAYED = "callsignPlayed"
WATERFALL_FRAME = "waterfallFrame"

# -------------------------
# Server -> Client types
# -------------------------

STATE = "state"
BACKLOG_UPDATED = "backlogUpdated"
CONFIG_UPDATED = "configUpdated"
AUDIO_CLIENT_CHANGED = "audioClientChanged"
AUDIO_CLAIM_RESULT = "audioClaimResult"
CLIENT_COUNT = "clientCount"
PLAY_CALLSIGN = "playCallsign"


# -------------------------
# Server -> Client builders (waterfall_frame serves both ways)
# -------------------------

def state_snapshot(state: PileupState, session_id: int) -> dict[str, Any]:
    """Full baseline sent once, before any delta reaches the session."""
    return {
        "type": STATE,
        "clientId": session_id,
        "backlog": state.backlog_wire(),
        "config": state.config.to_wire(),
        "audioClientId": state.audio_owner_id,
        "isAudioClient": state.audio_owner_id == session_id,
        "connectedClients": len(state.session_ids),
    }


def backlog_updated(state: PileupState) -> dict[str, Any]:
    return {"type": BACKLOG_UPDATED, "backlog": state.backlog_wire()}


def config_updated(config: SessionConfig) -> dict[str, Any]:
    return {"type": CONFIG_UPDATED, "config": config.to_wire()}


def audio_client_changed(owner_id: int | None) -> dict[str, Any]:
    return {"type": AUDIO_CLIENT_CHANGED, "audioClientId": owner_id}


def audio_claim_result(success: bool, message: str | None = None) -> dict[str, Any]:
    msg: dict[str, Any] = {"type": AUDIO_CLAIM_RESULT, "success": success}
    if success:
        msg["isAudioClient"] = True
    if message is not None:
        msg["message"] = message
    return msg


def client_count(count: int) -> dict[str, Any]:
    return {"type": CLIENT_COUNT, "count": count}


def play_callsign(entry: QueueEntry) -> dict[str, Any]:
    return {"type": PLAY_CALLSIGN, "item": entry.to_wire()}


def waterfall_frame(bins: Sequence[int]) -> dict[str, Any]:
    return {"type": WATERFALL_FRAME, "bins": list(bins)}


# -------------------------
# Client -> Server builders
# -------------------------

def add_callsign(callsign: str) -> dict[str, Any]:
    return {"type": ADD_CALLSIGN, "callsign": callsign}


def remove_callsign(entry_id: int) -> dict[str, Any]:
    return {"type": REMOVE_CALLSIGN, "id": entry_id}


def clear_backlog() -> dict[str, Any]:
    return {"type": CLEAR_BACKLOG}


def reorder_backlog(order: Sequence[int]) -> dict[str, Any]:
    return {"type": REORDER_BACKLOG, "order": list(order)}


def claim_audio() -> dict[str, Any]:
    return {"type": CLAIM_AUDIO}


def release_audio() -> dict[str, Any]:
    return {"type": RELEASE_AUDIO}


def update_config(partial: dict[str, Any]) -> dict[str, Any]:
    """`partial` uses wire keys (wpm, delayBetweenItems, ditFrequency, dahFrequency)."""
    return {"type": UPDATE_CONFIG, "config": dict(partial)}


def play_next() -> dict[str, Any]:
    return {"type": PLAY_NEXT}


def callsign_played(entry_id: int) -> dict[str, Any]:
    return {"type": CALLSIGN_PLAYED, "id": entry_id}
