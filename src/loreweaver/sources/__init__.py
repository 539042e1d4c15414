"""Knowledge source adapters and typed records."""

from .base import (
    DocumentQuery,
    DocumentStore,
    GraphQuery,
    GraphStore,
    SearchFilter,
    VectorStore,
)
from .knowledge import KnowledgeBase, SourceResult
from .memory import MemoryDocumentStore, MemoryGraphStore, MemoryVectorStore
from .models import (
    Character,
    Entity,
    EntityKind,
    Event,
    Faction,
    Item,
    Location,
    LoreEntry,
    Session,
    SessionMessage,
    StoryEvent,
    WorldState,
)
from .seed import World, build_world, load_world

__all__ = [
    "DocumentQuery",
    "DocumentStore",
    "GraphQuery",
    "GraphStore",
    "SearchFilter",
    "VectorStore",
    "KnowledgeBase",
    "SourceResult",
    "MemoryDocumentStore",
    "MemoryGraphStore",
    "MemoryVectorStore",
    "Character",
    "Entity",
    "EntityKind",
    "Event",
    "Faction",
    "Item",
    "Location",
    "LoreEntry",
    "Session",
    "SessionMessage",
    "StoryEvent",
    "WorldState",
    "World",
    "build_world",
    "load_world",
]
