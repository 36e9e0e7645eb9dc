"""
Tests for the /ws/sync message-sync WebSocket.
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from resumable_gateway.core.lifecycle import SessionLifecycleManager
from resumable_gateway.core.session import SessionStore
from resumable_gateway.main import create_app

from .fakes import ScriptedUpstream


@pytest.fixture
def client() -> TestClient:
    manager = SessionLifecycleManager(store=SessionStore(), upstream=ScriptedUpstream())
    return TestClient(create_app(lifecycle=manager))


class TestSyncWebSocket:
    """Tests for the sync protocol."""

    def test_welcome_on_connect(self, client):
        with client.websocket_connect("/ws/sync") as ws:
            welcome = ws.receive_json()

        assert welcome["type"] == "welcome"
        assert welcome["message"] == "Connected to WebSocket server!"
        datetime.fromisoformat(welcome["timestamp"])

    def test_sync_request_is_acknowledged(self, client):
        record = {"id": "m1", "role": "user", "content": "hi"}

        with client.websocket_connect("/ws/sync") as ws:
            ws.receive_json()
            ws.send_json({"type": "MESSAGE_SYNC_REQUEST", "data": record})
            reply = ws.receive_json()

        assert reply == {
            "type": "MESSAGE_SYNC_RESPONSE",
            "data": {**record, "syncStatus": "synced"},
        }

    def test_unknown_type_gets_error_and_stays_open(self, client):
        with client.websocket_connect("/ws/sync") as ws:
            ws.receive_json()
            ws.send_json({"type": "PING"})
            assert ws.receive_json() == {"type": "ERROR", "message": "Invalid type"}

            ws.send_json({"type": "MESSAGE_SYNC_REQUEST", "data": {"id": "m2"}})
            assert ws.receive_json()["data"] == {"id": "m2", "syncStatus": "synced"}

    @pytest.mark.parametrize("frame", ["{broken", "[1, 2]", '"text"'])
    def test_malformed_frames(self, client, frame):
        with client.websocket_connect("/ws/sync") as ws:
            ws.receive_json()
            ws.send_text(frame)
            reply = ws.receive_json()

        assert reply == {"type": "ERROR", "message": "Invalid message format"}

    def test_non_object_data_is_rejected(self, client):
        with client.websocket_connect("/ws/sync") as ws:
            ws.receive_json()
            ws.send_json({"type": "MESSAGE_SYNC_REQUEST", "data": "nope"})
            reply = ws.receive_json()

        assert reply == {"type": "ERROR", "message": "Invalid message format"}
