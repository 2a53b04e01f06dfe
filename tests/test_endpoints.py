"""Tests for API endpoints."""

import pytest
from fastapi.testclient import TestClient

from fpl_chat.main import app
from fpl_chat.models.chat import StreamEvent
from fpl_chat.services.chat import get_chat_service
from fpl_chat.utils.rate_limit import RequestRateLimiter, get_chat_rate_limiter
from tests.conftest import json_lines

client = TestClient(app)

VALID_BODY = {"messages": [{"role": "user", "content": "Who should I captain?"}], "apiKey": "sk-body"}


class FakeChatService:
    """Records requests and replays a fixed event sequence."""

    def __init__(self, events, rejection=None):
        self.events = events
        self.rejection = rejection
        self.calls = []

    def validate_request(self, request, api_key):
        if self.rejection:
            raise ValueError(self.rejection)

    async def stream_chat(self, request, api_key):
        self.calls.append((request, api_key))
        for event in self.events:
            yield event


@pytest.fixture
def chat_service():
    service = FakeChatService([StreamEvent.text("Captain "), StreamEvent.text("Saka."), StreamEvent.done()])
    limiter = RequestRateLimiter("100/minute")
    app.dependency_overrides[get_chat_service] = lambda: service
    app.dependency_overrides[get_chat_rate_limiter] = lambda: limiter
    yield service
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check_returns_200(self):
        """Test that health check returns 200 status."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_check_response_structure(self):
        """Test that health check returns expected JSON structure."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert "timestamp" in data

    def test_health_check_content_type(self):
        """Test that health check returns JSON content type."""
        response = client.get("/health")
        assert response.headers["content-type"] == "application/json"


class TestChatEndpoint:
    """Tests for the streaming chat endpoint."""

    def test_streams_events(self, chat_service):
        """Test that a valid request returns framed events ending in done."""
        response = client.post("/api/chat", json=VALID_BODY)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert json_lines(response.content) == [
            {"type": "text_delta", "content": "Captain "},
            {"type": "text_delta", "content": "Saka."},
            {"type": "done"},
        ]

    def test_request_fields_parsed(self, chat_service):
        """Test that camelCase options reach the chat service."""
        client.post("/api/chat", json={**VALID_BODY, "managerId": 42, "showThinking": True})

        request, api_key = chat_service.calls[0]
        assert request.manager_id == 42
        assert request.show_thinking is True
        assert request.messages[0].content == "Who should I captain?"
        assert api_key == "sk-body"

    def test_env_api_key_fallback(self, chat_service, monkeypatch):
        """Test that the server key is used when the body has none."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")

        response = client.post("/api/chat", json={"messages": VALID_BODY["messages"]})

        assert response.status_code == 200
        assert chat_service.calls[0][1] == "sk-env"

    def test_missing_api_key(self, chat_service, monkeypatch):
        """Test that a request without any key is rejected before streaming."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        response = client.post("/api/chat", json={"messages": VALID_BODY["messages"]})

        assert response.status_code == 401
        assert response.json()["code"] == "API_KEY_MISSING"
        assert chat_service.calls == []

    def test_invalid_body(self, chat_service):
        """Test that a schema violation is a 400 with details."""
        response = client.post("/api/chat", json={"messages": [{"role": "system", "content": "hi"}]})

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INVALID_REQUEST"
        assert data["details"][0]["loc"][:2] == ["messages", 0]

    def test_missing_messages(self, chat_service):
        """Test that a body without messages is rejected."""
        response = client.post("/api/chat", json={"apiKey": "sk-body"})
        assert response.status_code == 400

    def test_non_json_body(self, chat_service):
        """Test that a body that is not JSON is a 400 without details."""
        response = client.post("/api/chat", content=b"not json", headers={"content-type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request", "code": "INVALID_REQUEST"}

    def test_message_over_token_limit(self, chat_service):
        """Test that an over-long message is a 400 before any streaming."""
        chat_service.rejection = "Message exceeds token limit: 9000 tokens > 8000 limit"

        response = client.post("/api/chat", json=VALID_BODY)

        assert response.status_code == 400
        assert response.json() == {
            "error": "Message exceeds token limit: 9000 tokens > 8000 limit",
            "code": "INVALID_REQUEST",
        }
        assert chat_service.calls == []

    def test_rate_limited(self, chat_service):
        """Test that requests over the limit get 429 with Retry-After."""
        limiter = RequestRateLimiter("2/minute")
        app.dependency_overrides[get_chat_rate_limiter] = lambda: limiter

        statuses = [client.post("/api/chat", json=VALID_BODY).status_code for _ in range(3)]

        assert statuses == [200, 200, 429]
        response = client.post("/api/chat", json=VALID_BODY)
        assert response.json()["code"] == "RATE_LIMITED"
        assert int(response.headers["retry-after"]) >= 1

    def test_error_event_ends_stream(self):
        """Test that an in-stream failure is delivered as a single error frame."""
        service = FakeChatService([StreamEvent.text("Partial"), StreamEvent.failure("Overloaded")])
        app.dependency_overrides[get_chat_service] = lambda: service
        app.dependency_overrides[get_chat_rate_limiter] = lambda: RequestRateLimiter("100/minute")
        try:
            response = client.post("/api/chat", json=VALID_BODY)
        finally:
            app.dependency_overrides.clear()

        frames = json_lines(response.content)
        assert frames[-1] == {"type": "error", "content": "Overloaded"}
        assert {"type": "done"} not in frames


class TestToolsEndpoint:
    """Tests for the tool catalogue endpoint."""

    def test_lists_tools_in_order(self):
        """Test that the catalogue lists every tool with its input schema."""
        response = client.get("/api/tools")

        assert response.status_code == 200
        tools = response.json()["tools"]
        assert len(tools) == 13
        assert tools[0]["name"] == "get_my_squad"
        assert tools[0]["input_schema"]["type"] == "object"


class TestDocumentation:
    """Tests for generated API documentation."""

    def test_openapi_schema(self):
        """Test that the OpenAPI schema lists the chat routes."""
        schema = client.get("/openapi.json").json()

        assert schema["info"]["title"] == "FPL Chat Assistant"
        assert "/api/chat" in schema["paths"]
        assert "/api/tools" in schema["paths"]

    def test_docs_available(self):
        """Test that the interactive docs page is served."""
        assert client.get("/docs").status_code == 200
