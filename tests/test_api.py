"""HTTP and WebSocket surface of the console app."""

import json

import pytest
from fastapi.testclient import TestClient

from mcp_inspector.api import create_app
from mcp_inspector.context import InspectorContext
from mcp_inspector.storage import RedisClients
from conftest import FakeRedis


@pytest.fixture
def backing_redis():
    return FakeRedis()


@pytest.fixture
def client(test_config, backing_redis):
    context = InspectorContext(config=test_config, redis_clients=RedisClients(client=backing_redis))
    with TestClient(create_app(context)) as test_client:
        yield test_client


def receive_until(ws, event_type, limit=10):
    for _ in range(limit):
        event = ws.receive_json()
        if event["type"] == event_type:
            return event
    raise AssertionError(f"no {event_type} event received")


class TestHealth:

    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["redis"] == "healthy"
        assert body["observers"] == 0
        assert body["sessions"] == 0

    def test_degraded_when_redis_down(self, test_config):
        broken = FakeRedis()
        broken.fail = True
        context = InspectorContext(config=test_config, redis_clients=RedisClients(client=broken))

        with TestClient(create_app(context)) as test_client:
            body = test_client.get("/health").json()

        assert body["status"] == "degraded"
        assert body["redis"] == "unavailable"

    def test_stats(self, client):
        body = client.get("/api/stats").json()

        assert body["messages"] == {"totalMessages": 0, "totalClients": 0, "sessionsWithMessages": 0}
        assert body["observers"]["connectionCount"] == 0
        assert body["sessions"] == 0
        assert body["retention"]["running"] is True


class TestConsoleSocket:

    def test_greeting_then_client_list(self, client):
        with client.websocket_connect("/ws/console") as ws:
            greeting = ws.receive_json()
            listing = ws.receive_json()

        assert greeting["type"] == "connection_established"
        assert greeting["payload"]["connectionId"]
        assert listing["type"] == "client_list"
        assert listing["payload"]["clients"] == []

    def test_malformed_frame_answered_with_error(self, client):
        with client.websocket_connect("/ws/console") as ws:
            ws.receive_json()
            ws.receive_json()

            ws.send_text("{ invalid")
            event = ws.receive_json()

        assert event["type"] == "error"
        assert event["payload"]["message"] == "Malformed command"

    def test_notification_without_sessions_reaches_all_observers(self, client):
        with client.websocket_connect("/ws/console") as first:
            first.receive_json()
            first.receive_json()
            with client.websocket_connect("/ws/console") as second:
                second.receive_json()
                second.receive_json()
                receive_until(first, "client_list")

                first.send_text(json.dumps({
                    "type": "trigger_notification",
                    "payload": {"level": "info", "data": "hello"},
                }))

                for ws in (first, second):
                    event = receive_until(ws, "notification_error")
                    assert "No active MCP client session" in event["payload"]["error"]

    def test_history_request(self, client):
        with client.websocket_connect("/ws/console") as ws:
            ws.receive_json()
            ws.receive_json()

            ws.send_text(json.dumps({"type": "get_message_history", "payload": {"sessionId": "nobody"}}))
            event = ws.receive_json()

        assert event["type"] == "message_history"
        assert event["payload"] == {"sessionId": "nobody", "messages": [], "hasMore": False}

    def test_binary_frame_is_dispatched(self, client):
        with client.websocket_connect("/ws/console") as ws:
            ws.receive_json()
            ws.receive_json()

            ws.send_bytes(b'{"type": "get_clients"}')
            event = ws.receive_json()

        assert event["type"] == "client_list"

    def test_undecodable_binary_frame_keeps_connection(self, client):
        with client.websocket_connect("/ws/console") as ws:
            ws.receive_json()
            ws.receive_json()

            ws.send_bytes(b"\xff\xfe")
            error = ws.receive_json()
            assert client.app.state.context.hub.status()["connectionCount"] == 1

            ws.send_text(json.dumps({"type": "get_clients"}))
            listing = ws.receive_json()

        assert error["type"] == "error"
        assert error["payload"]["message"] == "Malformed command"
        assert listing["type"] == "client_list"
