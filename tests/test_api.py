"""Tests for the FastAPI endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fakes import FakeProvider, rate_limited
from fastapi.testclient import TestClient

from advisor_agent.errors import BadRequest
from advisor_agent.history import Turn
from advisor_agent.server import app
from advisor_agent.services.request_log import RequestLog


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def orchestrator(make_orchestrator, provider):
    """Attach a fake-backed orchestrator to app state (mirrors the lifespan)."""
    orch = make_orchestrator(provider)
    app.state.orchestrator = orch
    app.state.request_log = RequestLog(50)
    yield orch
    app.state.orchestrator = None
    app.state.request_log = None


@pytest.fixture
def client(orchestrator):
    return TestClient(app)


class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "teachermada-agent"


class TestChatEndpoint:
    def test_chat_returns_structured_reply(self, client):
        response = client.post(
            "/api/agent/chat",
            json={"userId": "u1", "message": "Bonjour", "context": {"language": "fr", "stage": "visitor"}},
        )
        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"reply", "detected_language", "intent", "next_action"}
        assert data["intent"] == "greeting"

    def test_chat_records_history_under_user_id(self, client, orchestrator):
        client.post("/api/agent/chat", json={"userId": "u42", "message": "Salut"})
        turns = orchestrator.store.get("u42")
        assert turns[0] == Turn.user("Salut")
        assert len(turns) == 2

    def test_session_id_field_name_also_accepted(self, client, orchestrator):
        client.post("/api/agent/chat", json={"session_id": "s1", "message": "Salut"})
        assert len(orchestrator.store.get("s1")) == 2

    def test_empty_message_is_400(self, client, provider):
        response = client.post("/api/agent/chat", json={"userId": "u1", "message": ""})
        assert response.status_code == 400
        assert provider.calls == []

    def test_missing_user_id_is_400(self, client, provider):
        response = client.post("/api/agent/chat", json={"message": "Hello"})
        assert response.status_code == 400
        assert provider.calls == []

    def test_provider_outage_still_returns_fallback(self, client, provider):
        provider.default = rate_limited()
        response = client.post("/api/agent/chat", json={"userId": "u1", "message": "Hello"})
        assert response.status_code == 200
        data = response.json()
        assert data["intent"] == "unknown"
        assert data["next_action"] == "none"

    def test_unexpected_error_does_not_leak(self, client):
        broken = MagicMock()
        broken.process_message.side_effect = RuntimeError("store exploded")
        app.state.orchestrator = broken
        response = client.post("/api/agent/chat", json={"userId": "u1", "message": "Hello"})
        assert response.status_code == 500
        detail = response.json()["detail"]
        assert "store exploded" not in detail
        assert "internal error" in detail.lower()

    def test_bad_request_from_orchestrator_is_400(self, client):
        broken = MagicMock()
        broken.process_message.side_effect = BadRequest("Message must not be empty.")
        app.state.orchestrator = broken
        response = client.post("/api/agent/chat", json={"userId": "u1", "message": "x"})
        assert response.status_code == 400

    def test_response_includes_request_id_header(self, client):
        response = client.post("/api/agent/chat", json={"userId": "u1", "message": "Hi"})
        assert "X-Request-ID" in response.headers

    def test_client_supplied_request_id_is_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "my-trace-id-123"})
        assert response.headers["X-Request-ID"] == "my-trace-id-123"


class TestMessengerEndpoint:
    def test_messenger_format(self, client):
        response = client.get("/api/agent/chat", params={"prompt": "Bonjour", "id": "psid-1"})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["contextId"] == "psid-1"
        assert data["response"]
        assert data["meta"] == {"intent": "greeting", "lang": "fr", "next_action": "ask_question"}

    def test_messenger_keeps_history_per_id(self, client, orchestrator):
        client.get("/api/agent/chat", params={"prompt": "one", "id": "psid-1"})
        client.get("/api/agent/chat", params={"prompt": "two", "id": "psid-1"})
        assert len(orchestrator.store.get("psid-1")) == 4

    def test_missing_prompt_is_400(self, client):
        response = client.get("/api/agent/chat", params={"id": "psid-1"})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing 'prompt' parameter"}

    def test_unexpected_error_uses_messenger_format(self, client):
        broken = MagicMock()
        broken.process_message.side_effect = RuntimeError("store exploded")
        app.state.orchestrator = broken
        response = client.get("/api/agent/chat", params={"prompt": "Bonjour", "id": "psid-1"})
        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["contextId"] == "psid-1"
        assert "store exploded" not in data["response"]
        assert "detail" not in data
        assert "meta" not in data

    def test_rejected_message_uses_error_format(self, client):
        broken = MagicMock()
        broken.process_message.side_effect = BadRequest("A session id is required.")
        app.state.orchestrator = broken
        response = client.get("/api/agent/chat", params={"prompt": "Bonjour", "id": "psid-1"})
        assert response.status_code == 400
        assert response.json() == {"error": "A session id is required."}

    def test_without_id_uses_throwaway_session(self, client, orchestrator):
        response = client.get("/api/agent/chat", params={"prompt": "hello"})
        assert response.status_code == 200
        assert response.json()["contextId"] is None


class TestLogsEndpoint:
    def test_logs_are_newest_first(self, client):
        client.post("/api/agent/chat", json={"userId": "u1", "message": "Hi"})
        response = client.get("/api/logs")
        assert response.status_code == 200
        types = [entry["type"] for entry in response.json()]
        assert types == ["response", "request"]

    def test_bad_request_logged_as_error(self, client):
        client.post("/api/agent/chat", json={"userId": "u1", "message": " "})
        types = [entry["type"] for entry in client.get("/api/logs").json()]
        assert types == ["error", "request"]


class TestAgentNotReady:
    def test_returns_503_when_orchestrator_missing(self):
        app.state.orchestrator = None
        client = TestClient(app)
        response = client.post("/api/agent/chat", json={"userId": "u1", "message": "Hello"})
        assert response.status_code == 503
        assert "starting up" in response.json()["detail"].lower()


class TestRootEndpoint:
    def test_root_returns_service_info(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "TeacherMada Advisor Agent"
        assert "docs" in data
