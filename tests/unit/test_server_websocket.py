# pylint: disable=missing-module-docstring,missing-function-docstring

from fastapi.testclient import TestClient

from config import AppConfig
from constants import CLAIM_CONFLICT_MESSAGE
from server.app import create_app


def make_client() -> TestClient:
    config = AppConfig(
        env="test",
        log_level="ERROR",
        host="127.0.0.1",
        port=0,
        cors_origins=("*",),
        default_wpm=20,
        default_delay_ms=1000,
        default_dit_hz=600,
        default_dah_hz=600,
    )
    return TestClient(create_app(config))


def test_health_reports_empty_session():
    client = make_client()

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "sessions": 0, "backlog": 0}


def test_snapshot_arrives_before_any_delta():
    client = make_client()

    with client.websocket_connect("/ws") as ws:
        first = ws.receive_json()
        second = ws.receive_json()

    assert first["type"] == "state"
    assert first["clientId"] == 1
    assert first["backlog"] == []
    assert first["isAudioClient"] is False
    assert first["config"] == {"wpm": 20, "delayBetweenItems": 1000, "ditFrequency": 600, "dahFrequency": 600}
    assert second == {"type": "clientCount", "count": 1}


def test_two_participants_share_backlog_and_arbitrate_audio():
    client = make_client()

    with client.websocket_connect("/ws") as alice:
        assert alice.receive_json()["type"] == "state"
        assert alice.receive_json() == {"type": "clientCount", "count": 1}

        with client.websocket_connect("/ws") as bob:
            bob_state = bob.receive_json()
            assert bob_state["clientId"] == 2
            assert bob.receive_json() == {"type": "clientCount", "count": 2}
            assert alice.receive_json() == {"type": "clientCount", "count": 2}

            # Shared backlog
            alice.send_json({"type": "addCallsign", "callsign": " w1aw "})
            update_a = alice.receive_json()
            update_b = bob.receive_json()
            assert update_a == update_b
            assert [e["callsign"] for e in update_a["backlog"]] == ["W1AW"]
            entry = update_a["backlog"][0]
            assert entry["addedBy"] == 1

            # Bob claims the free slot
            bob.send_json({"type": "claimAudio"})
            assert bob.receive_json() == {"type": "audioClientChanged", "audioClientId": 2}
            assert bob.receive_json() == {"type": "audioClaimResult", "success": True, "isAudioClient": True}
            assert alice.receive_json() == {"type": "audioClientChanged", "audioClientId": 2}

            # Alice is refused while Bob holds it
            alice.send_json({"type": "claimAudio"})
            assert alice.receive_json() == {
                "type": "audioClaimResult",
                "success": False,
                "message": CLAIM_CONFLICT_MESSAGE,
            }

            # playNext reaches only the owner
            alice.send_json({"type": "playNext"})
            assert bob.receive_json() == {"type": "playCallsign", "item": entry}

            bob.send_json({"type": "callsignPlayed", "id": entry["id"]})
            assert bob.receive_json() == {"type": "backlogUpdated", "backlog": []}
            assert alice.receive_json() == {"type": "backlogUpdated", "backlog": []}

            # Waterfall frames go to everyone but the sender
            bob.send_json({"type": "waterfallFrame", "bins": [0, 128, 255]})
            assert alice.receive_json() == {"type": "waterfallFrame", "bins": [0, 128, 255]}

        # Owner leaving frees the slot
        assert alice.receive_json() == {"type": "audioClientChanged", "audioClientId": None}
        assert alice.receive_json() == {"type": "clientCount", "count": 1}


def test_malformed_message_keeps_connection_open():
    client = make_client()

    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.receive_json()

        ws.send_text("{not json")
        ws.send_json({"type": "updateConfig", "config": {"wpm": 35, "ditFrequency": 5}})

        assert ws.receive_json() == {
            "type": "configUpdated",
            "config": {"wpm": 35, "delayBetweenItems": 1000, "ditFrequency": 600, "dahFrequency": 600},
        }
