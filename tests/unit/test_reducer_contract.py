# pylint: disable=missing-module-docstring,missing-function-docstring

from typing import Any

from store.commands import Broadcast, Command, LogEvent, Unicast
from store.events import (
    AddCallsign,
    CallsignPlayed,
    ClaimAudio,
    ClearBacklog,
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
from store.reducer import reduce
from store.state_dataclass import PileupState


TS = 1_700_000_000_000


def connected(*session_ids: int) -> PileupState:
    state = PileupState()
    for sid in session_ids:
        state, _ = reduce(state, SessionConnected(EventType.SESSION_CONNECTED, TS, sid))
    return state


def add(state: PileupState, sid: int, callsign: str) -> PileupState:
    state, _ = reduce(state, AddCallsign(EventType.ADD_CALLSIGN, TS, sid, callsign))
    return state


def claim(state: PileupState, sid: int) -> tuple[PileupState, tuple[Command, ...]]:
    return reduce(state, ClaimAudio(EventType.CLAIM_AUDIO, TS, sid))


def messages(commands: tuple[Command, ...]) -> list[tuple[str, Any, dict[str, Any]]]:
    out: list[tuple[str, Any, dict[str, Any]]] = []
    for cmd in commands:
        if isinstance(cmd, Broadcast):
            out.append(("broadcast", cmd.exclude_session_id, cmd.message))
        elif isinstance(cmd, Unicast):
            out.append(("unicast", cmd.session_id, cmd.message))
    return out


def logs(commands: tuple[Command, ...]) -> list[dict[str, Any]]:
    return [cmd.event for cmd in commands if isinstance(cmd, LogEvent)]


# ---------------------------------------------------------------------
# LogEvent contract
# ---------------------------------------------------------------------

def test_every_decision_emits_logevent_with_required_fields():
    state = connected(1)

    _, commands = reduce(state, RemoveCallsign(EventType.REMOVE_CALLSIGN, TS, 1, 42))

    payload = logs(commands)[0]
    for key in (
        "ts_ms",
        "event_type",
        "session_id",
        "decision",
        "backlog_len",
        "audio_owner_id",
        "connected",
        "details",
    ):
        assert key in payload
    assert payload["decision"] == "ignore"
    assert isinstance(commands[-1], LogEvent)


# ---------------------------------------------------------------------
# Connect / disconnect
# ---------------------------------------------------------------------

def test_snapshot_is_unicast_before_client_count_broadcast():
    state = connected(1)

    state, commands = reduce(state, SessionConnected(EventType.SESSION_CONNECTED, TS, 2))

    sent = messages(commands)
    assert sent[0][0] == "unicast"
    assert sent[0][1] == 2
    snapshot = sent[0][2]
    assert snapshot["type"] == "state"
    assert snapshot["clientId"] == 2
    assert snapshot["connectedClients"] == 2
    assert snapshot["isAudioClient"] is False
    assert snapshot["audioClientId"] is None
    assert set(snapshot) == {
        "type", "clientId", "backlog", "config", "audioClientId",
        "isAudioClient", "connectedClients",
    }
    assert sent[1] == ("broadcast", None, {"type": "clientCount", "count": 2})


def test_snapshot_carries_backlog_and_config():
    state = add(connected(1), 1, "w1aw")

    _, commands = reduce(state, SessionConnected(EventType.SESSION_CONNECTED, TS, 2))

    snapshot = messages(commands)[0][2]
    assert [e["callsign"] for e in snapshot["backlog"]] == ["W1AW"]
    assert set(snapshot["backlog"][0]) == {"id", "callsign", "addedBy", "addedAt"}
    assert set(snapshot["config"]) == {"wpm", "delayBetweenItems", "ditFrequency", "dahFrequency"}


def test_disconnect_of_owner_releases_and_broadcasts():
    state, _ = claim(connected(1, 2), 1)

    state, commands = reduce(
        state,
        SessionDisconnected(EventType.SESSION_DISCONNECTED, TS, 1, reason="client_disconnect"),
    )

    assert state.audio_owner_id is None
    assert messages(commands) == [
        ("broadcast", None, {"type": "audioClientChanged", "audioClientId": None}),
        ("broadcast", None, {"type": "clientCount", "count": 1}),
    ]


def test_disconnect_of_non_owner_keeps_owner():
    state, _ = claim(connected(1, 2), 1)

    state, commands = reduce(state, SessionDisconnected(EventType.SESSION_DISCONNECTED, TS, 2))

    assert state.audio_owner_id == 1
    assert messages(commands) == [
        ("broadcast", None, {"type": "clientCount", "count": 1}),
    ]


# ---------------------------------------------------------------------
# Backlog
# ---------------------------------------------------------------------

def test_add_broadcasts_full_backlog_with_iso_timestamp():
    state = connected(1)

    state, commands = reduce(state, AddCallsign(EventType.ADD_CALLSIGN, TS, 1, " k1abc "))

    [(kind, _, msg)] = messages(commands)
    assert kind == "broadcast"
    assert msg["type"] == "backlogUpdated"
    assert msg["backlog"][0]["callsign"] == "K1ABC"
    assert msg["backlog"][0]["addedBy"] == 1
    assert msg["backlog"][0]["addedAt"].startswith("2023-11-14T22:13:20")


def test_empty_callsign_is_ignored_without_broadcast():
    state = connected(1)

    new_state, commands = reduce(state, AddCallsign(EventType.ADD_CALLSIGN, TS, 1, "   "))

    assert new_state is state
    assert messages(commands) == []
    assert logs(commands)[0]["details"]["reason"] == "empty_callsign"


def test_remove_absent_id_is_silent():
    state = add(connected(1), 1, "A")

    new_state, commands = reduce(state, RemoveCallsign(EventType.REMOVE_CALLSIGN, TS, 1, 99))

    assert new_state is state
    assert messages(commands) == []


def test_played_removes_and_broadcasts():
    state = add(add(connected(1), 1, "A"), 1, "B")

    state, commands = reduce(state, CallsignPlayed(EventType.CALLSIGN_PLAYED, TS, 1, 1))

    assert [e.callsign for e in state.backlog] == ["B"]
    assert messages(commands)[0][2]["type"] == "backlogUpdated"


def test_clear_and_reorder_always_broadcast():
    state = connected(1)

    _, commands = reduce(state, ClearBacklog(EventType.CLEAR_BACKLOG, TS, 1))
    assert messages(commands)[0][2] == {"type": "backlogUpdated", "backlog": []}

    _, commands = reduce(state, ReorderBacklog(EventType.REORDER_BACKLOG, TS, 1, ()))
    assert messages(commands)[0][2] == {"type": "backlogUpdated", "backlog": []}


def test_reorder_example():
    state = connected(1)
    for callsign in ("A", "B", "C"):
        state = add(state, 1, callsign)

    state, _ = reduce(state, ReorderBacklog(EventType.REORDER_BACKLOG, TS, 1, (3, 1)))

    assert [e.callsign for e in state.backlog] == ["C", "A", "B"]


def test_play_next_unicasts_head_to_owner_only():
    state = add(add(connected(1, 2), 2, "A"), 2, "B")
    state, _ = claim(state, 1)

    new_state, commands = reduce(state, PlayNext(EventType.PLAY_NEXT, TS, 2))

    assert new_state is state
    [(kind, target, msg)] = messages(commands)
    assert (kind, target) == ("unicast", 1)
    assert msg["type"] == "playCallsign"
    assert msg["item"]["callsign"] == "A"


def test_play_next_without_owner_or_backlog_is_ignored():
    state = add(connected(1), 1, "A")
    _, commands = reduce(state, PlayNext(EventType.PLAY_NEXT, TS, 1))
    assert messages(commands) == []

    state, _ = claim(connected(1), 1)
    _, commands = reduce(state, PlayNext(EventType.PLAY_NEXT, TS, 1))
    assert messages(commands) == []


# ---------------------------------------------------------------------
# Arbitration
# ---------------------------------------------------------------------

def test_claim_granted_broadcasts_then_confirms():
    state = connected(1, 2)

    state, commands = claim(state, 1)

    assert state.audio_owner_id == 1
    assert messages(commands) == [
        ("broadcast", None, {"type": "audioClientChanged", "audioClientId": 1}),
        ("unicast", 1, {"type": "audioClaimResult", "success": True, "isAudioClient": True}),
    ]


def test_claim_conflict_only_tells_claimant():
    state, _ = claim(connected(1, 2), 1)

    new_state, commands = claim(state, 2)

    assert new_state is state
    [(kind, target, msg)] = messages(commands)
    assert (kind, target) == ("unicast", 2)
    assert msg["success"] is False
    assert msg["message"]


def test_reclaim_by_owner_does_not_rebroadcast():
    state, _ = claim(connected(1), 1)

    _, commands = claim(state, 1)

    assert [m[0] for m in messages(commands)] == ["unicast"]


def test_release_by_non_owner_is_silent():
    state, _ = claim(connected(1, 2), 1)

    new_state, commands = reduce(state, ReleaseAudio(EventType.RELEASE_AUDIO, TS, 2))

    assert new_state is state
    assert messages(commands) == []


def test_release_by_owner_broadcasts_null():
    state, _ = claim(connected(1, 2), 1)

    state, commands = reduce(state, ReleaseAudio(EventType.RELEASE_AUDIO, TS, 1))

    assert state.audio_owner_id is None
    assert messages(commands) == [
        ("broadcast", None, {"type": "audioClientChanged", "audioClientId": None}),
    ]


# ---------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------

def test_config_update_broadcasts_merged_config():
    state = connected(1)

    state, commands = reduce(
        state, UpdateConfig(EventType.UPDATE_CONFIG, TS, 1, {"wpm": 25, "ditFrequency": 5})
    )

    [(_, _, msg)] = messages(commands)
    assert msg["type"] == "configUpdated"
    assert msg["config"]["wpm"] == 25
    assert msg["config"]["ditFrequency"] == 600
    assert state.config.wpm == 25


def test_config_update_without_change_is_silent():
    state = connected(1)

    new_state, commands = reduce(state, UpdateConfig(EventType.UPDATE_CONFIG, TS, 1, {"wpm": 999}))

    assert new_state is state
    assert messages(commands) == []


# ---------------------------------------------------------------------
# Waterfall relay
# ---------------------------------------------------------------------

def test_waterfall_from_non_owner_is_ignored():
    state, _ = claim(connected(1, 2), 1)

    new_state, commands = reduce(state, WaterfallFrame(EventType.WATERFALL_FRAME, TS, 2, (1, 2, 3)))

    assert new_state is state
    assert not [c for c in commands if isinstance(c, Broadcast)]
    assert logs(commands)[0]["details"]["reason"] == "waterfall_from_non_owner"


def test_waterfall_without_any_owner_is_ignored():
    state = connected(1)

    _, commands = reduce(state, WaterfallFrame(EventType.WATERFALL_FRAME, TS, 1, (1,)))

    assert messages(commands) == []


def test_waterfall_from_owner_is_relayed_to_others():
    state, _ = claim(connected(1, 2), 1)

    _, commands = reduce(state, WaterfallFrame(EventType.WATERFALL_FRAME, TS, 1, (0, 128, 255)))

    assert messages(commands) == [
        ("broadcast", 1, {"type": "waterfallFrame", "bins": [0, 128, 255]}),
    ]
