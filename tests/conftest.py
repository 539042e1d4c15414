"""
Pytest fixtures for loreweaver tests.

Provides seeded in-memory stores, mock completion clients and httpx
MockTransport backends for isolated testing.
"""

import json
from typing import Callable

import httpx
import pytest

from loreweaver.config import Settings
from loreweaver.context import ContextAssembler
from loreweaver.llm import ChatMessage, CompletionOptions, MockCompletionClient
from loreweaver.sources import KnowledgeBase, build_world


WORLD = {
    "characters": [
        {
            "id": "luke",
            "name": "Luke Skywalker",
            "species": "Human",
            "gender": "Male",
            "occupation": "Jedi Knight",
            "homeworld": "Tatooine",
            "affiliation": ["Rebel Alliance"],
            "forceUser": True,
            "alignment": "Light Side",
            "personality": ["Idealistic", "Brave"],
            "biography": "Raised on a moisture farm.",
        },
        {
            "id": "leia",
            "name": "Leia Organa",
            "species": "Human",
            "occupation": "Senator",
            "homeworld": "Alderaan",
        },
    ],
    "locations": [
        {
            "id": "tatooine",
            "name": "Tatooine",
            "type": "Planet",
            "region": "Outer Rim",
            "climate": "Arid",
            "description": "A desert world orbiting twin suns.",
        },
    ],
    "factions": [
        {"id": "rebels", "name": "Rebel Alliance", "leader": "Mon Mothma", "ideology": "Republic"},
    ],
    "events": [
        {"id": "yavin", "title": "Battle of Yavin", "date": "0 BBY", "significance": 10},
    ],
    "lore": [
        {
            "id": "lore-tatooine",
            "title": "Tatooine",
            "category": "location",
            "era": "Galactic Civil War",
            "canonicity": "canon",
            "content": "Tatooine is a desert planet, homeworld of Luke Skywalker.",
        },
        {
            "id": "lore-luke",
            "title": "Luke Skywalker",
            "category": "character",
            "content": "Luke Skywalker grew up on Tatooine with his aunt and uncle.",
        },
    ],
    "story_events": [
        {
            "id": "se-1",
            "title": "Cantina Brawl",
            "description": "A fight broke out in the Tatooine cantina.",
            "location": "Mos Eisley",
            "importance": 6,
        },
    ],
    "sessions": [
        {"id": "s1", "name": "Escape", "currentStateId": "ws1"},
    ],
    "messages": [
        {
            "id": "m1",
            "sessionId": "s1",
            "timestamp": "2024-05-04T12:00:00.000Z",
            "sender": {"type": "player", "name": "Kira"},
            "type": "action",
            "content": "I look for a pilot.",
        },
        {
            "id": "m2",
            "sessionId": "s1",
            "timestamp": "2024-05-04T12:01:00.000Z",
            "sender": {"type": "system", "name": "Game Master"},
            "type": "narrative",
            "content": "A smuggler eyes you from a booth.",
        },
    ],
    "world_states": [
        {
            "id": "ws1",
            "sessionId": "s1",
            "timestamp": "2024-05-04T12:01:00.000Z",
            "entities": {"characters": [{"id": "luke", "status": "active", "location": "mos-eisley"}]},
            "plotPoints": [{"type": "main", "description": "Leave the planet", "status": "active"}],
            "activeQuests": [{"id": "q1", "status": "in_progress", "progress": 30, "nextSteps": ["Hire a pilot"]}],
        },
    ],
}


def lore_classification(names: list[str], query_type: str = "character", confidence: float = 0.9) -> str:
    """Classifier output as the model would return it."""
    return json.dumps({
        "isLoreQuery": True,
        "queryType": query_type,
        "extractedEntities": names,
        "confidenceLevel": confidence,
    })


NOT_LORE = json.dumps({
    "isLoreQuery": False,
    "queryType": None,
    "extractedEntities": [],
    "confidenceLevel": 0.95,
})


def is_classifier_call(messages: list[ChatMessage]) -> bool:
    return "analyzing Star Wars lore queries" in messages[0].content


def completion_body(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def sse_body(*pieces: str) -> str:
    frames = [
        "data: " + json.dumps({"choices": [{"delta": {"content": p}}]}) + "\n\n"
        for p in pieces
    ]
    return "".join(frames) + "data: [DONE]\n\n"


@pytest.fixture
def world():
    """Freshly seeded in-memory stores."""
    return build_world(WORLD)


@pytest.fixture
def knowledge(world):
    return KnowledgeBase(world.graph, world.documents, world.vectors)


@pytest.fixture
def assembler(knowledge):
    return ContextAssembler(knowledge)


@pytest.fixture
def mock_client():
    """Mock completion client with a fixed response."""
    return MockCompletionClient()


@pytest.fixture
def settings(tmp_path):
    """Settings that ignore the process environment."""
    return Settings.from_env(environ={}, api_url="http://backend.test")


@pytest.fixture
def mock_transport():
    """
    Build an httpx.MockTransport from a handler.

    Requests seen by the transport are collected in the returned list.
    """
    def factory(handler: Callable[[httpx.Request], httpx.Response]):
        seen: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        return httpx.MockTransport(record), seen

    return factory
