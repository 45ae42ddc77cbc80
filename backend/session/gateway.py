"""
Session gateway.

Responsibilities:
- Owns one participant's registry entry for the life of its connection
- Decodes inbound JSON into reducer events (structural checks only)
- Logs and drops malformed payloads without closing the connection
- Forwards events into the shared runtime

NOT responsible for:
- Any pileup rule (normalization, bounds, arbitration)
- Sending (the session's writer task does that)
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, TYPE_CHECKING

from constants import LOG_PAYLOAD_PREVIEW_CHARS
from observability.logger import log_event
from protocol import messages
from store.events import (
    AddCallsign,
    CallsignPlayed,
    ClaimAudio,
    ClearBacklog,
    Event,
    EventType,
    PlayNext,
    ReleaseAudio,
    RemoveCallsign,
    ReorderBacklog,
    SessionConnected,
    SessionDisconnected,
    UpdateConfig,
    WaterfallFrame,
)
from store.validation import coerce_bins, coerce_entry_id, coerce_order
from session.participant import ParticipantSession

if TYPE_CHECKING:
    from store.runtime import PileupRuntime


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class InvalidPayload(ValueError):
    """A known message type whose fields cannot be decoded."""


# ------------------------------------------------------------------
# Per-type decoders: (session_id, ts_ms, data) -> Event
# ------------------------------------------------------------------

def _decode_add(sid: int, ts: int, data: dict[str, Any]) -> Event:
    callsign = data.get("callsign")
    if not isinstance(callsign, str):
        raise InvalidPayload("callsign must be a string")
    return AddCallsign(event_type=EventType.ADD_CALLSIGN, ts_ms=ts, session_id=sid, callsign=callsign)


def _decode_remove(sid: int, ts: int, data: dict[str, Any]) -> Event:
    entry_id = coerce_entry_id(data.get("id"))
    if entry_id is None:
        raise InvalidPayload("id must be an integer")
    return RemoveCallsign(event_type=EventType.REMOVE_CALLSIGN, ts_ms=ts, session_id=sid, entry_id=entry_id)


def _decode_played(sid: int, ts: int, data: dict[str, Any]) -> Event:
    entry_id = coerce_entry_id(data.get("id"))
    if entry_id is None:
        raise InvalidPayload("id must be an integer")
    return CallsignPlayed(event_type=EventType.CALLSIGN_PLAYED, ts_ms=ts, session_id=sid, entry_id=entry_id)


def _decode_reorder(sid: int, ts: int, data: dict[str, Any]) -> Event:
    order = coerce_order(data.get("order"))
    if order is None:
        raise InvalidPayload("order must be a list")
    return ReorderBacklog(event_type=EventType.REORDER_BACKLOG, ts_ms=ts, session_id=sid, order=order)


def _decode_config(sid: int, ts: int, data: dict[str, Any]) -> Event:
    partial = data.get("config")
    if not isinstance(partial, dict):
        raise InvalidPayload("config must be an object")
    return UpdateConfig(event_type=EventType.UPDATE_CONFIG, ts_ms=ts, session_id=sid, partial=partial)


def _decode_waterfall(sid: int, ts: int, data: dict[str, Any]) -> Event:
    bins = coerce_bins(data.get("bins"))
    if bins is None:
        raise InvalidPayload("bins must be a non-empty list of 0..255 integers")
    return WaterfallFrame(event_type=EventType.WATERFALL_FRAME, ts_ms=ts, session_id=sid, bins=bins)


_DECODERS: dict[str, Callable[[int, int, dict[str, Any]], Event]] = {
    messages.ADD_CALLSIGN: _decode_add,
    messages.REMOVE_CALLSIGN: _decode_remove,
    messages.CALLSIGN_PLAYED: _decode_played,
    messages.REORDER_BACKLOG: _decode_reorder,
    messages.UPDATE_CONFIG: _decode_config,
    messages.WATERFALL_FRAME: _decode_waterfall,
    messages.CLEAR_BACKLOG: lambda sid, ts, _: ClearBacklog(
        event_type=EventType.CLEAR_BACKLOG, ts_ms=ts, session_id=sid
    ),
    messages.CLAIM_AUDIO: lambda sid, ts, _: ClaimAudio(
        event_type=EventType.CLAIM_AUDIO, ts_ms=ts, session_id=sid
    ),
    messages.RELEASE_AUDIO: lambda sid, ts, _: ReleaseAudio(
        event_type=EventType.RELEASE_AUDIO, ts_ms=ts, session_id=sid
    ),
    messages.PLAY_NEXT: lambda sid, ts, _: PlayNext(
        event_type=EventType.PLAY_NEXT, ts_ms=ts, session_id=sid
    ),
}


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """One gateway == one connection == one participant session."""

    def __init__(self, *, runtime: PileupRuntime) -> None:
        self._runtime = runtime
        self.session: ParticipantSession | None = None

    def on_ws_connect(self, websocket: Any = None) -> ParticipantSession:
        """
        Register the transport and announce the new session.

        The full-state snapshot is queued on this session before any
        other message can be.
        """
        self.session = self._runtime.registry.open(websocket)
        self._runtime.handle_event(
            SessionConnected(
                event_type=EventType.SESSION_CONNECTED,
                ts_ms=_now_ms(),
                session_id=self.session.session_id,
            )
        )
        return self.session

    def on_ws_disconnect(self, reason: str | None = None) -> None:
        """Tear down; releases audio ownership if this session held it."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return

        session_id = self.session.session_id
        # Unregister first so nothing is queued to a dead transport
        self._runtime.registry.close(session_id)
        self._runtime.handle_event(
            SessionDisconnected(
                event_type=EventType.SESSION_DISCONNECTED,
                ts_ms=_now_ms(),
                session_id=session_id,
                reason=reason,
            )
        )
        self.session = None

    def on_json_message(self, payload: str) -> None:
        """Decode one inbound text frame and dispatch it."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:LOG_PAYLOAD_PREVIEW_CHARS],
            })
            return

        session_id = self.session.session_id

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "JSON_DECODE_ERROR",
                "session_id": session_id,
                "error": str(e),
                "payload_preview": payload[:LOG_PAYLOAD_PREVIEW_CHARS],
            })
            return

        if not isinstance(data, dict):
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "INVALID_PAYLOAD",
                "session_id": session_id,
                "error": "message must be a JSON object",
            })
            return

        msg_type = data.get("type")
        decoder = _DECODERS.get(msg_type) if isinstance(msg_type, str) else None
        if decoder is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "msg_type": repr(msg_type),
                "session_id": session_id,
            })
            return

        try:
            event = decoder(session_id, _now_ms(), data)
        except InvalidPayload as e:
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "INVALID_PAYLOAD",
                "session_id": session_id,
                "msg_type": msg_type,
                "error": str(e),
            })
            return

        self._runtime.handle_event(event)

    def on_binary_message(self, payload: bytes) -> None:
        """The channel is JSON only; binary frames are logged and dropped."""
        log_event({
            "ts_ms": _now_ms(),
            "level": "WARNING",
            "event_type": "BINARY_NOT_SUPPORTED",
            "session_id": self.session.session_id if self.session else None,
            "payload_len": len(payload),
        })
