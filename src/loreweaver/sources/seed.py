"""
World-file loading for the in-memory sources.

A world file is YAML with any of these top-level lists:

    characters, locations, factions, items, events   -> graph nodes
    lore, story_events                               -> vector store
    sessions, messages, world_states                 -> document store

Records use the same keys the stores do (camelCase where the store uses
it, e.g. `sessionId`, `currentStateId`, `forceUser`).
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .base import MESSAGES, SESSIONS, STORY_EVENTS, WORLD_KNOWLEDGE, WORLD_STATES
from .memory import MemoryDocumentStore, MemoryGraphStore, MemoryVectorStore


logger = logging.getLogger(__name__)

GRAPH_SECTIONS = {
    "characters": "Character",
    "locations": "Location",
    "factions": "Faction",
    "items": "Item",
    "events": "Event",
}
VECTOR_SECTIONS = {
    "lore": WORLD_KNOWLEDGE,
    "story_events": STORY_EVENTS,
}
DOCUMENT_SECTIONS = {
    "sessions": SESSIONS,
    "messages": MESSAGES,
    "world_states": WORLD_STATES,
}


@dataclass
class World:
    """The three in-memory stores for one world."""
    graph: MemoryGraphStore = field(default_factory=MemoryGraphStore)
    documents: MemoryDocumentStore = field(default_factory=MemoryDocumentStore)
    vectors: MemoryVectorStore = field(default_factory=MemoryVectorStore)


def build_world(data: dict) -> World:
    """Populate in-memory stores from an already-parsed mapping."""
    world = World()
    for section, label in GRAPH_SECTIONS.items():
        for node in data.get(section) or []:
            world.graph.add(label, node)
    for section, collection in VECTOR_SECTIONS.items():
        for obj in data.get(section) or []:
            world.vectors.add(collection, obj)
    for section, collection in DOCUMENT_SECTIONS.items():
        for doc in data.get(section) or []:
            world.documents.insert(collection, doc)

    unknown = set(data) - set(GRAPH_SECTIONS) - set(VECTOR_SECTIONS) - set(DOCUMENT_SECTIONS)
    if unknown:
        logger.warning(f"Ignoring unknown world sections: {', '.join(sorted(unknown))}")
    return world


def load_world(path: Path | str) -> World:
    """
    Load a YAML world file.

    Raises:
        FileNotFoundError: path does not exist
        ValueError: file is not a YAML mapping
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"World file {path} must contain a mapping at the top level")

    world = build_world(data)
    logger.info(f"Loaded world from {path}")
    return world
