"""
Knowledge source interfaces.

Three narrow read interfaces stand in for the graph, document and vector
databases. Any call may raise; KnowledgeBase turns failures into empty
results with an attached error.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


WORLD_KNOWLEDGE = "WorldKnowledge"
STORY_EVENTS = "StoryEvent"

MESSAGES = "messages"
SESSIONS = "sessions"
WORLD_STATES = "world_states"


@dataclass
class GraphQuery:
    """
    Node lookup by label.

    ids and name_contains are optional filters; name_contains matches
    case-insensitively anywhere in the node's name.
    """
    label: str
    ids: list[str] | None = None
    name_contains: str | None = None
    limit: int | None = None


@dataclass
class DocumentQuery:
    """Equality-filtered, optionally sorted read from one collection."""
    collection: str
    where: dict[str, Any] = field(default_factory=dict)
    sort_by: str | None = None
    descending: bool = False
    limit: int | None = None


@dataclass
class SearchFilter:
    """Restrict search results to items whose field equals value."""
    path: str
    value: str


@runtime_checkable
class GraphStore(Protocol):
    """
    Read interface for the entity graph.

    Implementations:
    - MemoryGraphStore: In-memory nodes (testing, demo)
    """

    async def read(self, query: GraphQuery) -> list[dict]:
        """Return node property maps matching the query."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Read interface for session documents."""

    async def find(self, query: DocumentQuery) -> list[dict]:
        ...


@runtime_checkable
class VectorStore(Protocol):
    """Read interface for semantic search."""

    async def semantic_search(
        self,
        collection: str,
        query: str,
        fields: list[str],
        limit: int,
        filter: SearchFilter | None = None,
    ) -> list[dict]:
        """Return up to limit items, most relevant first, projected to fields."""
        ...
