"""
Lore question answering.

Flow per input:

    classify -> not lore -> ""            (caller continues the story)
    classify -> lore -> resolve names -> none found -> deflect
    classify -> lore -> resolve names -> found -> synthesize -> attach related

Answers are synthesized only from the resolved records; the model is
told not to add anything else.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

from ..llm.base import CompletionOptions, CompletionProvider, system, user
from ..sources.knowledge import KnowledgeBase
from ..sources.models import Entity, EntityKind
from .classifier import LoreClassifier, QueryClassification, QueryType


logger = logging.getLogger(__name__)

ANSWER_TEMPERATURE = 0.3
ANSWER_MAX_TOKENS = 300
RELATED_KNOWLEDGE_LIMIT = 3
RELATED_EVENT_LIMIT = 2
RELATED_SHOWN = 2
RELATED_PREVIEW_CHARS = 100

APOLOGY_MESSAGE = "I'm sorry, I couldn't retrieve that information from our database right now."
DEFLECT_MESSAGE = (
    "I searched our Star Wars database but couldn't find specific information about that. "
    "Could you be more specific or ask about a different character, location, or faction?"
)
ERROR_MESSAGE = (
    "I encountered an error while searching our Star Wars database. "
    "Please try your question again."
)

# Attributes handed to the answer prompt, per entity kind
LOOKUP_FIELDS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.CHARACTER: (
        "id", "name", "species", "occupation", "homeworld", "affiliation",
        "forceUser", "alignment", "personality", "biography",
    ),
    EntityKind.LOCATION: (
        "id", "name", "type", "region", "climate", "population", "government", "description",
    ),
    EntityKind.FACTION: (
        "id", "name", "type", "leader", "headquarters", "founded", "ideology", "goals", "description",
    ),
}

SEARCH_ORDER = (EntityKind.CHARACTER, EntityKind.LOCATION, EntityKind.FACTION)

ANSWER_SYSTEM_PROMPT = """You are a knowledgeable Star Wars lore expert and Game Master.
Answer the user's question using ONLY the provided database information.
Be accurate, concise, and engaging. If the information isn't available in the database, say so.
Stay in character as a helpful GM who knows the Star Wars universe well.

Available Information:
{facts}"""


def determine_entity_type(attributes: dict[str, Any]) -> str:
    """Guess the kind of entity from which attributes are filled in."""
    if attributes.get("species") or attributes.get("occupation"):
        return "character"
    if attributes.get("climate") or attributes.get("region"):
        return "location"
    if attributes.get("ideology") or attributes.get("leader"):
        return "faction"
    return "unknown"


class ResolvedEntity(BaseModel):
    """A name from the input matched to a graph record."""
    identifier: str
    display_name: str
    type_tag: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    entity_type: str = "unknown"

    @classmethod
    def from_entity(cls, entity: Entity) -> "ResolvedEntity":
        raw = entity.model_dump(by_alias=True)
        fields = LOOKUP_FIELDS.get(entity.kind, tuple(raw))
        attributes = {name: raw.get(name) for name in fields}
        return cls(
            identifier=entity.id,
            display_name=entity.display_name,
            type_tag=entity.kind.value,
            attributes=attributes,
            entity_type=determine_entity_type(attributes),
        )

    def get(self, name: str) -> Any:
        return self.attributes.get(name)


class RelatedItem(BaseModel):
    title: str | None = None
    content: str | None = None
    type: str


class LoreQueryResult(BaseModel):
    is_lore_query: bool = False
    query_type: QueryType | None = None
    entities: list[ResolvedEntity] = Field(default_factory=list)
    direct_answer: str = ""
    related_content: list[RelatedItem] = Field(default_factory=list)


def _value(value: Any) -> str:
    if value is None or value == "" or value == []:
        return "Unknown"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def format_fact_sheet(entities: list[ResolvedEntity]) -> str:
    """Render resolved entities for the answer prompt."""
    blocks = []
    for entity in entities:
        kind = entity.entity_type
        lines = [f"{kind.capitalize()}: {entity.display_name}"]
        if kind == "character":
            lines += [
                f"- Species: {_value(entity.get('species'))}",
                f"- Occupation: {_value(entity.get('occupation'))}",
                f"- Homeworld: {_value(entity.get('homeworld'))}",
                f"- Affiliation: {_value(entity.get('affiliation'))}",
            ]
            if entity.get("biography"):
                lines.append(f"- Biography: {entity.get('biography')}")
        elif kind == "location":
            lines += [
                f"- Type: {_value(entity.get('type'))}",
                f"- Region: {_value(entity.get('region'))}",
                f"- Climate: {_value(entity.get('climate'))}",
                f"- Population: {_value(entity.get('population'))}",
            ]
            if entity.get("description"):
                lines.append(f"- Description: {entity.get('description')}")
        elif kind == "faction":
            lines += [
                f"- Type: {_value(entity.get('type'))}",
                f"- Leader: {_value(entity.get('leader'))}",
                f"- Headquarters: {_value(entity.get('headquarters'))}",
            ]
            if entity.get("description"):
                lines.append(f"- Description: {entity.get('description')}")
        blocks.append("\n".join(lines) + "\n")
    return "\n".join(blocks)


def format_related(items: list[RelatedItem]) -> str:
    """Bullet list of related items, or "" if none are usable."""
    bullets = []
    for item in items[:RELATED_SHOWN]:
        if item.title and item.content:
            bullets.append(f"• {item.title}: {item.content[:RELATED_PREVIEW_CHARS]}...")
    if not bullets:
        return ""
    return "\n\n**Related Information:**\n" + "\n".join(bullets) + "\n"


class LoreQueryService:
    """Answers lore questions from the knowledge sources."""

    def __init__(self, client: CompletionProvider, knowledge: KnowledgeBase):
        self.client = client
        self.knowledge = knowledge
        self.classifier = LoreClassifier(client)

    async def analyze_lore_query(self, text: str) -> LoreQueryResult:
        """Classify, resolve and (when entities are found) answer."""
        classification = await self.classifier.classify(text)
        if not classification.is_lore_query:
            return LoreQueryResult()

        entities = await self.find_entities(classification)
        result = LoreQueryResult(
            is_lore_query=True,
            query_type=classification.query_type,
            entities=entities,
        )
        if entities:
            result.direct_answer = await self.synthesize_answer(text, entities)
            result.related_content = await self.find_related_content(text)
        return result

    async def find_entities(self, classification: QueryClassification) -> list[ResolvedEntity]:
        """First graph match for each extracted name."""
        kinds = SEARCH_ORDER
        if classification.query_type in ("character", "location", "faction"):
            kinds = (EntityKind(classification.query_type),)

        found: list[ResolvedEntity] = []
        for name in classification.extracted_entity_names:
            for kind in kinds:
                match = await self.knowledge.find_by_name(kind, name, limit=1)
                entity = match.first()
                if entity is not None:
                    found.append(ResolvedEntity.from_entity(entity))
                    break
            else:
                logger.debug(f"No graph entity matches '{name}'")
        return found

    async def synthesize_answer(self, text: str, entities: list[ResolvedEntity]) -> str:
        """Ask for an answer constrained to the fact sheet; apologise on failure."""
        messages = [
            system(ANSWER_SYSTEM_PROMPT.format(facts=format_fact_sheet(entities))),
            user(text),
        ]
        options = CompletionOptions(temperature=ANSWER_TEMPERATURE, max_tokens=ANSWER_MAX_TOKENS)
        try:
            response = await self.client.create_chat_completion(messages, options)
        except Exception as e:
            logger.error(f"Failed to generate lore answer: {e}")
            return APOLOGY_MESSAGE
        return response.strip()

    async def find_related_content(self, text: str) -> list[RelatedItem]:
        knowledge = await self.knowledge.search_knowledge(text, RELATED_KNOWLEDGE_LIMIT)
        events = await self.knowledge.related_story_events(text, RELATED_EVENT_LIMIT)
        related = [
            RelatedItem(title=k.title, content=k.content, type="world_knowledge")
            for k in knowledge.items
        ]
        related += [
            RelatedItem(title=e.title, content=e.description, type="story_event")
            for e in events.items
        ]
        return related

    async def process_lore_query(self, text: str, session_id: str | None = None) -> str:
        """
        Answer text if it is a lore question.

        Returns "" when it is not, so the caller can continue normally.
        """
        try:
            result = await self.analyze_lore_query(text)
        except Exception as e:
            logger.error(f"Failed to process lore query (session={session_id}): {e}")
            return ERROR_MESSAGE

        if not result.is_lore_query:
            return ""
        if not result.entities:
            return DEFLECT_MESSAGE
        return result.direct_answer + format_related(result.related_content)
