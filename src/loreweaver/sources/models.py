"""
Typed records for knowledge-source data.

Raw records from the graph, document and vector stores are mapped onto
these models at the KnowledgeBase boundary. Field aliases accept the
camelCase keys the stores use; snake_case works too.
"""

from datetime import datetime
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class EntityKind(str, Enum):
    CHARACTER = "character"
    LOCATION = "location"
    FACTION = "faction"
    ITEM = "item"
    EVENT = "event"

    @property
    def label(self) -> str:
        """Graph node label for this kind."""
        return self.value.capitalize()


class Record(BaseModel):
    """Base for all mapped records."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# -----------------------------------------------------------------------------
# Graph entities
# -----------------------------------------------------------------------------

class Entity(Record):
    """A named node in the graph store."""
    kind: ClassVar[EntityKind]

    id: str = ""
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or ""


class Character(Entity):
    kind: ClassVar[EntityKind] = EntityKind.CHARACTER

    species: str | None = None
    gender: str | None = None
    occupation: str | None = None
    homeworld: str | None = None
    affiliation: list[str] | str | None = None
    force_user: bool = Field(default=False, alias="forceUser")
    alignment: str | None = None
    personality: list[str] | str | None = None
    biography: str | None = None


class Location(Entity):
    kind: ClassVar[EntityKind] = EntityKind.LOCATION

    type: str | None = None
    region: str | None = None
    climate: str | None = None
    population: str | int | None = None
    government: str | None = None
    description: str | None = None


class Faction(Entity):
    kind: ClassVar[EntityKind] = EntityKind.FACTION

    type: str | None = None
    leader: str | None = None
    headquarters: str | None = None
    founded: str | None = None
    ideology: str | None = None
    goals: list[str] | str | None = None
    strength: str | int | None = None
    description: str | None = None


class Item(Entity):
    kind: ClassVar[EntityKind] = EntityKind.ITEM

    type: str | None = None
    manufacturer: str | None = None
    item_class: str | None = Field(default=None, alias="class")
    rarity: str | None = None
    description: str | None = None
    abilities: list[str] | str | None = None


class Event(Entity):
    """A timeline event, from the graph or from story-event search."""
    kind: ClassVar[EntityKind] = EntityKind.EVENT

    title: str | None = None
    description: str | None = None
    date: str | None = None
    location: str | None = None
    significance: str | int | None = None

    @property
    def display_name(self) -> str:
        return self.title or self.name or ""


ENTITY_MODELS: dict[EntityKind, type[Entity]] = {
    EntityKind.CHARACTER: Character,
    EntityKind.LOCATION: Location,
    EntityKind.FACTION: Faction,
    EntityKind.ITEM: Item,
    EntityKind.EVENT: Event,
}


# -----------------------------------------------------------------------------
# Vector-store records
# -----------------------------------------------------------------------------

class LoreEntry(Record):
    """A WorldKnowledge entry."""
    id: str = ""
    title: str | None = None
    content: str | None = None
    category: str | None = None
    era: str | None = None
    canonicity: str | None = None
    importance: int | None = None


class StoryEvent(Record):
    """A StoryEvent entry: something that happened in play."""
    id: str = ""
    title: str | None = None
    description: str | None = None
    participants: list[str] = Field(default_factory=list)
    location: str | None = None
    era: str | None = None
    type: str | None = None
    importance: int | None = None
    timestamp: str | None = None

    def to_event(self) -> Event:
        return Event(
            id=self.id,
            title=self.title,
            description=self.description,
            date=self.timestamp,
            location=self.location,
            significance=self.importance,
        )


# -----------------------------------------------------------------------------
# Document-store records
# -----------------------------------------------------------------------------

class MessageSender(Record):
    name: str | None = None
    type: str | None = None


class SessionMessage(Record):
    id: str = ""
    session_id: str = Field(default="", alias="sessionId")
    timestamp: datetime | None = None
    sender: MessageSender | None = None
    type: str | None = None
    content: str | None = None


class Session(Record):
    id: str = ""
    name: str | None = None
    current_state_id: str | None = Field(default=None, alias="currentStateId")


class EntityStatus(Record):
    id: str
    status: str | None = None
    location: str | None = None
    notes: str | None = None


class WorldEntities(Record):
    characters: list[EntityStatus] = Field(default_factory=list)
    locations: list[EntityStatus] = Field(default_factory=list)
    factions: list[EntityStatus] = Field(default_factory=list)


class PlotPoint(Record):
    type: str | None = None
    description: str | None = None
    status: str | None = None


class QuestState(Record):
    id: str
    status: str | None = None
    progress: int = 0
    next_steps: list[str] = Field(default_factory=list, alias="nextSteps")


class WorldState(Record):
    """Snapshot of the world for one session."""
    id: str = ""
    session_id: str | None = Field(default=None, alias="sessionId")
    timestamp: datetime | None = None
    entities: WorldEntities = Field(default_factory=WorldEntities)
    plot_points: list[PlotPoint] = Field(default_factory=list, alias="plotPoints")
    active_quests: list[QuestState] = Field(default_factory=list, alias="activeQuests")
