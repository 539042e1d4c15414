"""
Context assembly types.

ContextType order in PRIORITY_ORDER decides which sources are fetched
first and where their fragments appear in the output.
"""

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field


class ContextType(str, Enum):
    """Knowledge categories that can contribute context."""
    CHARACTER = "character"
    LOCATION = "location"
    FACTION = "faction"
    ITEM = "item"
    EVENT = "event"
    LORE = "lore"
    SESSION_HISTORY = "session_history"
    WORLD_STATE = "world_state"


PRIORITY_ORDER: tuple[ContextType, ...] = (
    ContextType.SESSION_HISTORY,    # Most recent conversation
    ContextType.WORLD_STATE,        # Current state of the world
    ContextType.CHARACTER,          # Characters involved
    ContextType.LOCATION,           # Current location
    ContextType.EVENT,              # Recent events
    ContextType.FACTION,            # Relevant factions
    ContextType.ITEM,               # Relevant items
    ContextType.LORE,               # Background lore
)

DEFAULT_MAX_ITEMS = 5
DEFAULT_MAX_TOKENS = 4000


def prioritize(types) -> list[ContextType]:
    """Requested types in fixed priority order; input order is irrelevant."""
    requested = {ContextType(t) for t in types}
    return [t for t in PRIORITY_ORDER if t in requested]


class ContextRequest(BaseModel):
    """One assembly request."""
    types: list[ContextType] = Field(default_factory=lambda: list(PRIORITY_ORDER))
    session_id: str | None = None
    include_ids: list[str] = Field(default_factory=list)
    query: str | None = None
    max_items: int = Field(default=DEFAULT_MAX_ITEMS, ge=1)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=1)


@dataclass
class RenderedFragment:
    """A fully rendered section; never partially truncated."""
    source_type: ContextType
    text: str
    tokens: int = 0


@dataclass
class AssembledContext:
    """Result of one assembly: fragments in order plus what failed."""
    fragments: list[RenderedFragment] = field(default_factory=list)
    failures: dict[ContextType, str] = field(default_factory=dict)
    skipped: list[ContextType] = field(default_factory=list)
    remaining_tokens: int = 0

    @property
    def text(self) -> str:
        return "\n\n".join(f.text for f in self.fragments)

    @property
    def degraded(self) -> bool:
        return bool(self.failures)
