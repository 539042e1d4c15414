"""
Typed reads over the knowledge sources.

Every method returns a SourceResult: the mapped records, plus the error
if the underlying store call failed. Callers can tell "nothing there"
(empty items, no error) from "could not look" (empty items, error set).
"""

import logging
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pydantic import ValidationError

from ..errors import SourceRetrievalError
from .base import (
    MESSAGES,
    SESSIONS,
    STORY_EVENTS,
    WORLD_KNOWLEDGE,
    WORLD_STATES,
    DocumentQuery,
    DocumentStore,
    GraphQuery,
    GraphStore,
    SearchFilter,
    VectorStore,
)
from .models import (
    ENTITY_MODELS,
    Entity,
    EntityKind,
    LoreEntry,
    Session,
    SessionMessage,
    StoryEvent,
    WorldState,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

LORE_FIELDS = ["title", "content", "category", "era", "canonicity", "importance"]
STORY_EVENT_FIELDS = ["title", "description", "participants", "location", "importance", "type"]


@dataclass
class SourceResult(Generic[T]):
    items: list[T] = field(default_factory=list)
    error: SourceRetrievalError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return bool(self.items)

    def first(self) -> T | None:
        return self.items[0] if self.items else None


def _map_records(model: type[R], records: list[dict], source: str) -> list[R]:
    mapped = []
    for record in records:
        try:
            mapped.append(model.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {source} record: {e.error_count()} errors")
    return mapped


class KnowledgeBase:
    """
    Typed facade over the graph, document and vector stores.

    Store exceptions never escape; they are logged and returned in
    SourceResult.error.
    """

    def __init__(self, graph: GraphStore, documents: DocumentStore, vectors: VectorStore):
        self.graph = graph
        self.documents = documents
        self.vectors = vectors

    async def _read_graph(self, kind: EntityKind, query: GraphQuery, operation: str) -> SourceResult[Entity]:
        try:
            records = await self.graph.read(query)
        except Exception as e:
            error = SourceRetrievalError("graph", operation, e)
            logger.warning(str(error))
            return SourceResult(error=error)
        return SourceResult(_map_records(ENTITY_MODELS[kind], records, kind.value))

    # -------------------------------------------------------------------------
    # Graph
    # -------------------------------------------------------------------------

    async def entities_by_id(self, kind: EntityKind, ids: list[str], limit: int) -> SourceResult[Entity]:
        query = GraphQuery(label=kind.label, ids=list(ids), limit=limit)
        return await self._read_graph(kind, query, f"{kind.value} lookup by id")

    async def sample_entities(self, kind: EntityKind, limit: int) -> SourceResult[Entity]:
        query = GraphQuery(label=kind.label, limit=limit)
        return await self._read_graph(kind, query, f"{kind.value} sample")

    async def all_entities(self, kind: EntityKind) -> SourceResult[Entity]:
        return await self._read_graph(kind, GraphQuery(label=kind.label), f"{kind.value} listing")

    async def find_by_name(self, kind: EntityKind, name: str, limit: int = 1) -> SourceResult[Entity]:
        """Case-insensitive substring match on the entity name."""
        query = GraphQuery(label=kind.label, name_contains=name, limit=limit)
        return await self._read_graph(kind, query, f"{kind.value} search")

    # -------------------------------------------------------------------------
    # Vector
    # -------------------------------------------------------------------------

    async def _search(
        self,
        collection: str,
        query: str,
        fields: list[str],
        limit: int,
        filter: SearchFilter | None = None,
    ) -> tuple[list[dict], SourceRetrievalError | None]:
        try:
            return await self.vectors.semantic_search(collection, query, fields, limit, filter), None
        except Exception as e:
            error = SourceRetrievalError("vector", f"{collection} search", e)
            logger.warning(str(error))
            return [], error

    async def search_knowledge(
        self,
        query: str,
        limit: int,
        category: str | None = None,
    ) -> SourceResult[LoreEntry]:
        """World-knowledge entries most related to query."""
        filter = SearchFilter(path="category", value=category) if category else None
        fields = ["title", "content", "category"] if category else LORE_FIELDS
        records, error = await self._search(WORLD_KNOWLEDGE, query, fields, limit, filter)
        return SourceResult(_map_records(LoreEntry, records, WORLD_KNOWLEDGE), error)

    async def related_story_events(self, query: str, limit: int) -> SourceResult[StoryEvent]:
        records, error = await self._search(STORY_EVENTS, query, STORY_EVENT_FIELDS, limit)
        return SourceResult(_map_records(StoryEvent, records, STORY_EVENTS), error)

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    async def _find(self, query: DocumentQuery, operation: str) -> tuple[list[dict], SourceRetrievalError | None]:
        try:
            return await self.documents.find(query), None
        except Exception as e:
            error = SourceRetrievalError("documents", operation, e)
            logger.warning(str(error))
            return [], error

    async def recent_messages(self, session_id: str, limit: int) -> SourceResult[SessionMessage]:
        """The newest `limit` messages of a session, oldest first."""
        query = DocumentQuery(
            collection=MESSAGES,
            where={"sessionId": session_id},
            sort_by="timestamp",
            descending=True,
            limit=limit,
        )
        records, error = await self._find(query, "recent messages")
        messages = _map_records(SessionMessage, records, MESSAGES)
        messages.reverse()
        return SourceResult(messages, error)

    async def current_world_state(self, session_id: str) -> SourceResult[WorldState]:
        """The world state the session currently points at (zero or one item)."""
        records, error = await self._find(
            DocumentQuery(collection=SESSIONS, where={"id": session_id}, limit=1),
            "session lookup",
        )
        sessions = _map_records(Session, records, SESSIONS)
        if error or not sessions or not sessions[0].current_state_id:
            return SourceResult(error=error)

        records, error = await self._find(
            DocumentQuery(
                collection=WORLD_STATES,
                where={"id": sessions[0].current_state_id},
                limit=1,
            ),
            "world state lookup",
        )
        return SourceResult(_map_records(WorldState, records, WORLD_STATES), error)
