"""Tests for the loreweaver HTTP API."""

import json

import pytest
from fastapi.testclient import TestClient

from loreweaver.api import create_app
from loreweaver.engine import NarrativeEngine
from loreweaver.errors import BackendTransportError
from loreweaver.llm import MockCompletionClient

from conftest import NOT_LORE, is_classifier_call, lore_classification


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def responses():
    """Mutable script for the mock backend: classifier verdict and reply."""
    return {"classification": NOT_LORE, "reply": "The stars wheel overhead."}


@pytest.fixture
def engine(world, settings, responses):
    def respond(messages, options):
        if is_classifier_call(messages):
            return responses["classification"]
        reply = responses["reply"]
        if isinstance(reply, Exception):
            raise reply
        return reply

    return NarrativeEngine.from_world(world, settings, MockCompletionClient(responder=respond))


@pytest.fixture
def api_client(settings, engine):
    """Test client with lifespan events run."""
    with TestClient(create_app(settings, engine=engine)) as client:
        yield client


def sse_payloads(body: str) -> list:
    payloads = []
    for line in body.splitlines():
        if line.startswith("data: "):
            data = line[len("data: "):]
            payloads.append(data if data == "[DONE]" else json.loads(data))
    return payloads


# -----------------------------------------------------------------------------
# Tests
# -----------------------------------------------------------------------------

class TestHealth:
    def test_health(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["model"] == "mock-model"


class TestContext:
    def test_assembles(self, api_client):
        response = api_client.post("/context", json={
            "types": ["character", "session_history"],
            "session_id": "s1",
            "include_ids": ["luke"],
        })
        assert response.status_code == 200
        body = response.json()
        assert body["context"].startswith("# Recent Session History")
        assert "## Luke Skywalker" in body["context"]
        assert body["failures"] == {}

    def test_invalid_request(self, api_client):
        """max_items must be positive."""
        response = api_client.post("/context", json={"max_items": 0})
        assert response.status_code == 422

    def test_unknown_type_rejected(self, api_client):
        response = api_client.post("/context", json={"types": ["starship"]})
        assert response.status_code == 422


class TestLoreQuery:
    def test_lore(self, api_client, responses):
        responses["classification"] = lore_classification(["Luke Skywalker"])
        responses["reply"] = "He was born on Tatooine."

        response = api_client.post("/lore/query", json={"query": "Where was Luke Skywalker born?"})

        body = response.json()
        assert body["is_lore_query"] is True
        assert body["response"].startswith("He was born on Tatooine.")

    def test_not_lore(self, api_client):
        body = api_client.post("/lore/query", json={"query": "I jump"}).json()
        assert body == {"ok": True, "is_lore_query": False, "response": ""}


class TestChat:
    def test_narrative(self, api_client):
        response = api_client.post("/chat", json={"message": "I look around", "session_id": "s1"})
        assert response.status_code == 200
        body = response.json()
        assert body["response"] == "The stars wheel overhead."
        assert body["response_type"] == "narrative"

    def test_backend_down_is_502(self, api_client, responses):
        """Transport failures map to a generic retry message."""
        responses["reply"] = BackendTransportError("connection refused")

        response = api_client.post("/chat", json={"message": "I look around"})

        assert response.status_code == 502
        body = response.json()
        assert body["ok"] is False
        assert "please try again" in body["error"]
        assert "connection refused" not in body["error"]

    def test_empty_message_rejected(self, api_client):
        assert api_client.post("/chat", json={"message": ""}).status_code == 422


class TestChatStream:
    def test_frames_end_with_done(self, api_client):
        response = api_client.post("/chat/stream", json={"message": "I look around"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        payloads = sse_payloads(response.text)
        assert payloads[-1] == "[DONE]"
        assert "".join(p["content"] for p in payloads[:-1]) == "The stars wheel overhead."

    def test_error_frame(self, api_client, responses):
        responses["reply"] = BackendTransportError("down")

        payloads = sse_payloads(api_client.post("/chat/stream", json={"message": "x"}).text)

        assert "error" in payloads[0]
        assert payloads[-1] == "[DONE]"


class TestAnalysis:
    def test_degrades_without_json(self, api_client):
        """Unparsable model output still yields a full bundle of defaults."""
        response = api_client.post("/analysis", json={"text": "Luke ignites his saber."})

        assert response.status_code == 200
        analysis = response.json()["analysis"]
        assert analysis["sentiment"]["overall"] == "neutral"
        assert analysis["contradictions"]["consistencyScore"] == 85
        assert "sentiment" in analysis["degraded"]
