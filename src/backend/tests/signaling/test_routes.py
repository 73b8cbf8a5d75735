# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from common.config import config
from signaling.main import create_app


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(create_app()) as test_client:
        yield test_client


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_ice_servers_stun_only(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(config, "STUN_SERVER", "stun:stun.example.org:3478")
    monkeypatch.setattr(config, "TURN_URL", "turn:turn.example.org:3478")
    monkeypatch.setattr(config, "TURN_USER", None)
    monkeypatch.setattr(config, "TURN_PASS", "secret")

    response = client.get("/iceServers")

    assert response.status_code == 200
    assert response.json() == {"iceServers": [{"urls": "stun:stun.example.org:3478"}]}


def test_ice_servers_include_turn_when_fully_configured(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(config, "STUN_SERVER", "stun:stun.l.google.com:19302")
    monkeypatch.setattr(config, "TURN_URL", "turn:turn.example.org:3478")
    monkeypatch.setattr(config, "TURN_USER", "alice")
    monkeypatch.setattr(config, "TURN_PASS", "secret")

    response = client.get("/iceServers")

    assert response.json() == {
        "iceServers": [
            {"urls": "stun:stun.l.google.com:19302"},
            {
                "urls": "turn:turn.example.org:3478",
                "username": "alice",
                "credential": "secret",
            },
        ]
    }


def test_signaling_end_to_end(client: TestClient) -> None:
    """Create, join, offer, viewer leaves, broadcaster leaves."""
    relay = client.app.state.relay

    with client.websocket_connect("/") as broadcaster:
        broadcaster.send_json({"type": "create-session"})
        created = broadcaster.receive_json()
        assert created["type"] == "session-created"
        session_id = created["sessionId"]

        with client.websocket_connect("/ws") as viewer:
            viewer.send_json({"type": "join-session", "sessionId": session_id})
            assert viewer.receive_json() == {"type": "joined", "sessionId": session_id}
            joined = broadcaster.receive_json()
            assert joined["type"] == "viewer-joined"
            viewer_id = joined["viewerId"]

            broadcaster.send_json(
                {
                    "type": "offer",
                    "sessionId": session_id,
                    "payload": {"target": viewer_id, "sdp": "v=0...", "sdpType": "offer"},
                }
            )
            offer = viewer.receive_json()
            assert offer["type"] == "offer"
            assert offer["sdp"] == "v=0..."
            assert offer["sdpType"] == "offer"
            broadcaster_id = offer["from"]
            assert broadcaster_id != viewer_id

        assert broadcaster.receive_json() == {"type": "viewer-left", "viewerId": viewer_id}
        assert len(relay.store) == 1

    assert len(relay.store) == 0
    assert relay.connections == {}


def test_broadcaster_drop_dismisses_viewer(client: TestClient) -> None:
    relay = client.app.state.relay

    with client.websocket_connect("/") as viewer:
        with client.websocket_connect("/") as broadcaster:
            broadcaster.send_json({"type": "create-session"})
            session_id = broadcaster.receive_json()["sessionId"]
            viewer.send_json({"type": "join-session", "sessionId": session_id})
            assert viewer.receive_json()["type"] == "joined"
            assert broadcaster.receive_json()["type"] == "viewer-joined"

        assert viewer.receive_json() == {"type": "session-closed"}
        with pytest.raises(WebSocketDisconnect):
            viewer.receive_json()

    assert len(relay.store) == 0


def test_join_bogus_session_over_websocket(client: TestClient) -> None:
    with client.websocket_connect("/") as joiner:
        joiner.send_json({"type": "join-session", "sessionId": "bogus"})
        assert joiner.receive_json() == {"type": "error", "message": "Session not found"}

        # the connection is still usable afterwards
        joiner.send_json({"type": "create-session"})
        assert joiner.receive_json()["type"] == "session-created"


def test_malformed_frames_keep_connection_open(client: TestClient) -> None:
    with client.websocket_connect("/") as ws:
        ws.send_text("definitely not json")
        ws.send_bytes(b'{"payload": {}}')
        ws.send_json({"type": "create-session"})
        assert ws.receive_json()["type"] == "session-created"


def test_static_client_served_next_to_api(tmp_path: Path) -> None:
    (tmp_path / "index.html").write_text("<html>sharer</html>")

    with TestClient(create_app(static_dir=tmp_path)) as client:
        assert client.get("/").text == "<html>sharer</html>"
        assert client.get("/health").json() == {"ok": True}
        with client.websocket_connect("/") as ws:
            ws.send_json({"type": "create-session"})
            assert ws.receive_json()["type"] == "session-created"
