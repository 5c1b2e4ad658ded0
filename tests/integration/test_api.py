"""Integration tests for the API.

The DI container is pointed at in-memory fakes, so no API keys or network
access are needed.
"""

import json

import pytest
from fastapi.testclient import TestClient

from kbchat.core.exceptions import LLMError
from kbchat.main import create_app
from tests.conftest import BOT_ID


def parse_sse(body: str) -> list[tuple[str, str]]:
    """Split an SSE body into (event, data) pairs."""
    events = []
    for block in body.replace("\r\n", "\n").split("\n\n"):
        event, data = None, []
        for line in block.split("\n"):
            if line.startswith("event:"):
                event = line[len("event:") :].strip()
            elif line.startswith("data:"):
                value = line[len("data:") :]
                data.append(value[1:] if value.startswith(" ") else value)
        if event:
            events.append((event, "\n".join(data)))
    return events


@pytest.fixture(autouse=True)
def reset_sse_exit_event():
    """sse-starlette keeps a module-level exit event bound to the first event loop."""
    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = None
    yield


@pytest.fixture
def client(override_container):
    """Create test client."""
    app = create_app()
    with TestClient(app) as client:
        yield client


class TestChatAPI:
    """Tests for the chat endpoint."""

    def test_chat_streams_tokens_then_done(self, client, mock_llm):
        response = client.post(
            f"/api/v1/bots/{BOT_ID}/chat",
            json={"messages": [{"role": "user", "content": "What are your hours?"}], "session_id": "sess-1"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)
        tokens = [data for event, data in events if event == "token"]
        assert "".join(tokens) == "This is a mock response."
        assert events[-1][0] == "done"
        assert json.loads(events[-1][1])["session_id"] == "sess-1"
        assert len(mock_llm.calls) == 1

    def test_unknown_bot_is_404(self, client):
        response = client.post(
            "/api/v1/bots/nope/chat",
            json={"messages": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.parametrize(
        "body",
        [
            {"messages": []},
            {"messages": [{"role": "robot", "content": "hi"}]},
            {"messages": [{"role": "user", "content": "x" * 4001}]},
            {"messages": [{"role": "user"}]},
            {},
        ],
    )
    def test_invalid_body_is_400(self, client, body):
        response = client.post(f"/api/v1/bots/{BOT_ID}/chat", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_credentials_is_500(self, client, mock_llm):
        mock_llm.ready = False

        response = client.post(
            f"/api/v1/bots/{BOT_ID}/chat",
            json={"messages": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "CONFIG_ERROR"

    def test_model_failure_mid_stream_emits_llm_error_event(self, client, mock_llm):
        mock_llm.error = LLMError("OpenAI request failed: Connection error.", provider="openai")

        response = client.post(
            f"/api/v1/bots/{BOT_ID}/chat",
            json={"messages": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 200
        events = parse_sse(response.text)
        assert events[-1][0] == "error"
        error = json.loads(events[-1][1])["error"]
        assert error["code"] == "LLM_ERROR"
        assert error["details"] == {"provider": "openai"}
        assert "done" not in [event for event, _ in events]


class TestSourcesAPI:
    """Tests for source ingestion, listing and deletion."""

    def test_ingest_list_delete(self, client):
        created = client.post(
            f"/api/v1/bots/{BOT_ID}/sources",
            json={"name": "faq.txt", "text": "Refunds take 14 days. Shipping is free.", "type": "txt"},
        )
        assert created.status_code == 200
        body = created.json()
        assert body["chunks_created"] == body["chunks_attempted"] == 1

        listed = client.get(f"/api/v1/bots/{BOT_ID}/sources").json()
        assert listed["total"] == 1
        assert listed["sources"][0]["status"] == "completed"
        assert listed["sources"][0]["chunk_count"] == 1

        deleted = client.delete(f"/api/v1/bots/{BOT_ID}/sources/{body['source_id']}")
        assert deleted.status_code == 200
        assert deleted.json()["chunks_deleted"] == 1
        assert client.get(f"/api/v1/bots/{BOT_ID}/sources").json()["total"] == 0

    def test_empty_document_is_422(self, client):
        response = client.post(f"/api/v1/bots/{BOT_ID}/sources", json={"name": "blank.pdf", "text": "  "})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "EMPTY_DOCUMENT"

    def test_unknown_bot_is_404(self, client):
        response = client.post("/api/v1/bots/nope/sources", json={"name": "faq.txt", "text": "Hello."})
        assert response.status_code == 404

    def test_delete_unknown_source_is_404(self, client):
        assert client.delete(f"/api/v1/bots/{BOT_ID}/sources/missing").status_code == 404


class TestLeadsAPI:
    """Tests for lead capture and listing."""

    def test_capture_and_list(self, client, notifier):
        response = client.post(
            "/api/v1/leads/capture",
            json={"bot_id": BOT_ID, "email": "Pat@Example.com", "session_id": "sess-1", "name": "Pat"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["created"] is True
        assert body["lead"]["email"] == "pat@example.com"
        assert body["lead"]["status"] == "sent"
        assert len(notifier.sent) == 1

        leads = client.get("/api/v1/leads", params={"bot_id": BOT_ID}).json()
        assert leads["total"] == 1
        assert leads["leads"][0]["name"] == "Pat"

    def test_capture_invalid_email_is_400(self, client):
        response = client.post("/api/v1/leads/capture", json={"bot_id": BOT_ID, "email": "nope"})
        assert response.status_code == 400


class TestHealthAPI:
    """Tests for the health endpoint."""

    def test_health_endpoint(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["storage_backend"] == "in_memory"
        assert data["retrieval_strategies"] == ["scan"]
