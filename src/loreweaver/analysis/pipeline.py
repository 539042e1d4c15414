"""
Story analysis pipeline.

Entity extraction, a one-shot content summary and the contradiction
check run concurrently; sentiment and theme refinement then run
concurrently on top of their results. Each axis that fails (transport
error or unparsable JSON) falls back to its neutral default without
affecting the others.
"""

import asyncio
import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..context.assembly import ContextAssembler
from ..context.types import ContextRequest, ContextType
from ..errors import AnalysisParseError, BackendTransportError, JSONExtractionError
from ..llm.base import CompletionOptions, CompletionProvider, system, user
from ..llm.jsonrepair import parse_json_object
from ..sources.knowledge import KnowledgeBase
from ..sources.models import EntityKind
from .schemas import (
    AnalysisBundle,
    ContradictionCheck,
    DialogueAnalysis,
    EntityExtraction,
    ExtractedEntity,
    ExtractedEvent,
    SentimentAnalysis,
    StoryContentAnalysis,
    ThemeAnalysis,
)


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

CROSS_REFERENCE_KINDS: dict[str, EntityKind] = {
    "characters": EntityKind.CHARACTER,
    "locations": EntityKind.LOCATION,
    "factions": EntityKind.FACTION,
    "items": EntityKind.ITEM,
}

SESSION_CONTEXT_TYPES = [ContextType.SESSION_HISTORY, ContextType.WORLD_STATE]
SESSION_CONTEXT_MAX_TOKENS = 1000


EXTRACTION_PROMPT = """Analyze the following Star Wars story content and extract all mentioned entities with high precision.

For each entity, provide:
1. Exact name as mentioned
2. Confidence score (0.0-1.0)
3. Context snippet where mentioned
4. Entity type and subtype

Return valid JSON:
{{
  "characters": [{{"name": "string", "confidence": 0.0-1.0, "context": "string"}}],
  "locations": [{{"name": "string", "confidence": 0.0-1.0, "context": "string"}}],
  "factions": [{{"name": "string", "confidence": 0.0-1.0, "context": "string"}}],
  "items": [{{"name": "string", "confidence": 0.0-1.0, "context": "string", "type": "string"}}],
  "events": [{{"description": "string", "type": "string", "significance": 1-10, "participants": ["string"]}}]
}}

Content:
{content}"""

CONTENT_PROMPT = """Analyze the following Star Wars story content and extract:

1. ENTITIES (characters, locations, factions, items mentioned)
2. SENTIMENT (overall mood, tension level 0-10, emotional atmosphere)
3. THEMES (Star Wars themes present: hope, redemption, power, corruption, etc.)
4. EVENTS (significant events with type and significance 1-10)

Provide your analysis in valid JSON format:

{{
  "entities": {{
    "characters": ["character names"],
    "locations": ["location names"],
    "factions": ["faction names"],
    "items": ["item names"]
  }},
  "sentiment": {{
    "overall": "positive|negative|neutral",
    "tension": 0-10,
    "mood": "descriptive mood"
  }},
  "themes": ["theme names"],
  "events": [
    {{
      "type": "event type",
      "significance": 1-10,
      "description": "brief description"
    }}
  ]
}}

Content to analyze:
{content}"""

SENTIMENT_PROMPT = """Analyze the emotional content and sentiment of this Star Wars story segment:

Consider:
1. Overall emotional tone (positive/negative/neutral)
2. Tension level (0-10, where 10 is extreme tension)
3. Dominant mood
4. Individual character emotions and their intensity
5. Conflict level (0-10, where 10 is active warfare)

Characters mentioned: {characters}

Return JSON:
{{
  "overall": "positive|negative|neutral",
  "tension": 0-10,
  "mood": "descriptive mood",
  "emotions": [{{"character": "name", "emotion": "emotion", "intensity": 0-10}}],
  "conflictLevel": 0-10
}}

Content:
{content}"""

THEME_PROMPT = """Analyze the Star Wars themes in this content and rate their presence:

Rate each Star Wars theme (0-10):
- Hope: Optimism, belief in a better future
- Redemption: Characters seeking to atone or change
- Power: Corruption, authority, control
- Corruption: Fall to darkness, moral decay
- Sacrifice: Characters giving up something important
- Legacy: Passing down traditions, knowledge, responsibility
- Destiny: Fate, chosen ones, prophetic elements

Also identify narrative arc types and their progression.

Return JSON:
{{
  "primaryThemes": ["theme1", "theme2"],
  "starWarsThemes": {{
    "hope": 0-10,
    "redemption": 0-10,
    "power": 0-10,
    "corruption": 0-10,
    "sacrifice": 0-10,
    "legacy": 0-10,
    "destiny": 0-10
  }},
  "narrativeArcs": [
    {{"type": "arc type", "progress": 0-100, "description": "brief description"}}
  ]
}}

Previously identified themes: {themes}

Content:
{content}"""

CONTRADICTION_PROMPT = """Analyze this Star Wars story content for internal contradictions and consistency issues:

Check for:
1. Factual contradictions (conflicting information)
2. Character behavior inconsistencies
3. Timeline contradictions
4. Star Wars lore violations

Rate each contradiction's severity (low/medium/high).
Provide an overall consistency score (0-100, where 100 is perfectly consistent).

Return JSON:
{{
  "contradictions": [
    {{
      "type": "fact|character|timeline|lore",
      "description": "description of contradiction",
      "severity": "low|medium|high",
      "conflictingElements": ["element1", "element2"]
    }}
  ],
  "consistencyScore": 0-100
}}
{session_context}
Content to analyze:
{content}"""

DIALOGUE_PROMPT = """Analyze dialogue in this Star Wars content:

Known characters: {characters}

Extract:
1. Speaker identification for each line of dialogue
2. Voice consistency issues for each character
3. Emotional tone of each speaker

Return JSON:
{{
  "speakers": [{{"name": "speaker", "confidence": 0-1, "dialogue": "what they said"}}],
  "voiceConsistency": [{{"character": "name", "consistency": 0-100, "issues": ["issue1"]}}],
  "emotionalTones": [{{"speaker": "name", "emotion": "emotion", "intensity": 0-10}}]
}}

Content:
{content}"""


def _coerce(model: type[M], data: Any, axis: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise AnalysisParseError(axis, f"{e.error_count()} invalid fields") from e
    except (ValueError, OverflowError) as e:
        raise AnalysisParseError(axis, str(e)) from e


class StoryAnalyzer:
    """Multi-aspect analysis of generated story text."""

    def __init__(
        self,
        client: CompletionProvider,
        knowledge: KnowledgeBase,
        assembler: ContextAssembler | None = None,
    ):
        self.client = client
        self.knowledge = knowledge
        self.assembler = assembler

    async def _complete_json(
        self,
        axis: str,
        system_prompt: str,
        prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> dict:
        """
        One analysis call, parsed as a JSON object.

        Raises:
            AnalysisParseError: transport failure or unusable output
        """
        messages = [system(system_prompt), user(prompt)]
        options = CompletionOptions(temperature=temperature, max_tokens=max_tokens)
        try:
            response = await self.client.create_chat_completion(messages, options)
        except BackendTransportError as e:
            logger.error(f"{axis} analysis request failed: {e}")
            raise AnalysisParseError(axis, str(e)) from e
        try:
            return parse_json_object(response, repair=True)
        except JSONExtractionError as e:
            logger.warning(f"Failed to parse {axis} analysis: {e}")
            raise AnalysisParseError(axis, str(e)) from e

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    async def analyze_story(self, text: str, session_id: str | None = None) -> AnalysisBundle:
        """Run every analysis axis over text."""
        logger.debug(f"Starting story analysis: {len(text)} chars, session={session_id}")
        degraded: list[str] = []

        entities, content, contradictions = await asyncio.gather(
            self._axis("entities", self.extract_entities(text), EntityExtraction, degraded),
            self._axis("content", self.analyze_story_content(text), StoryContentAnalysis, degraded),
            self._axis(
                "contradictions",
                self.check_contradictions(text, session_id),
                ContradictionCheck,
                degraded,
            ),
        )

        sentiment, themes = await asyncio.gather(
            self._axis("sentiment", self.analyze_sentiment(text, entities), SentimentAnalysis, degraded),
            self._axis(
                "themes",
                self.analyze_themes(text, content.themes),
                lambda: ThemeAnalysis(primary_themes=list(content.themes)),
                degraded,
            ),
        )

        return AnalysisBundle(
            entities=entities,
            sentiment=sentiment,
            themes=themes,
            contradictions=contradictions,
            analysis=content,
            degraded=sorted(degraded),
        )

    async def _axis(self, name: str, call, default_factory, degraded: list[str]):
        try:
            return await call
        except AnalysisParseError as e:
            logger.warning(f"Using default for {name}: {e}")
            degraded.append(name)
            return default_factory()

    # -------------------------------------------------------------------------
    # Axes
    # -------------------------------------------------------------------------

    async def extract_entities(self, text: str) -> EntityExtraction:
        """
        Extract named entities and cross-reference them with the graph.

        Raises:
            AnalysisParseError: extraction output unusable
        """
        data = await self._complete_json(
            "entities",
            "You are an expert entity extractor for Star Wars content. Be precise and thorough.",
            EXTRACTION_PROMPT.format(content=text),
            temperature=0.2,
            max_tokens=1500,
        )

        categories = list(CROSS_REFERENCE_KINDS)
        resolved = await asyncio.gather(*(
            self.cross_reference(CROSS_REFERENCE_KINDS[c], _entity_list(data.get(c))) for c in categories
        ))
        events = [
            event for event in (_safe(ExtractedEvent, raw) for raw in _list(data.get("events")))
            if event is not None
        ]
        return EntityExtraction(events=events, **dict(zip(categories, resolved)))

    async def cross_reference(
        self,
        kind: EntityKind,
        extracted: list[ExtractedEntity],
    ) -> list[ExtractedEntity]:
        """
        Mark each entity new or existing, one lookup at a time.

        A failed lookup leaves that entity marked new.
        """
        result = []
        for entity in extracted:
            match = await self.knowledge.find_by_name(kind, entity.name, limit=1)
            existing = match.first()
            result.append(entity.model_copy(update={
                "is_new": existing is None,
                "existing_id": existing.id if existing is not None else None,
            }))
        return result

    async def analyze_story_content(self, text: str) -> StoryContentAnalysis:
        data = await self._complete_json(
            "content",
            "You are an expert Star Wars story analyst. "
            "Provide detailed analysis in the exact JSON format requested.",
            CONTENT_PROMPT.format(content=text),
            temperature=0.3,
            max_tokens=1000,
        )
        return _coerce(StoryContentAnalysis, data, "content")

    async def analyze_sentiment(self, text: str, entities: EntityExtraction) -> SentimentAnalysis:
        data = await self._complete_json(
            "sentiment",
            "You are an expert in emotional analysis and narrative sentiment.",
            SENTIMENT_PROMPT.format(
                characters=", ".join(c.name for c in entities.characters),
                content=text,
            ),
            temperature=0.3,
            max_tokens=800,
        )
        return _coerce(SentimentAnalysis, data, "sentiment")

    async def analyze_themes(self, text: str, basic_themes: list[str]) -> ThemeAnalysis:
        data = await self._complete_json(
            "themes",
            "You are an expert in Star Wars narrative themes and storytelling.",
            THEME_PROMPT.format(themes=", ".join(basic_themes), content=text),
            temperature=0.4,
            max_tokens=1000,
        )
        return _coerce(ThemeAnalysis, data, "themes")

    async def check_contradictions(self, text: str, session_id: str | None = None) -> ContradictionCheck:
        """Consistency check, with recent session context when available."""
        session_context = ""
        if session_id and self.assembler is not None:
            session_context = await self.assembler.assemble_context(ContextRequest(
                types=SESSION_CONTEXT_TYPES,
                session_id=session_id,
                max_tokens=SESSION_CONTEXT_MAX_TOKENS,
            ))

        data = await self._complete_json(
            "contradictions",
            "You are an expert Star Wars lore keeper and story consistency checker.",
            CONTRADICTION_PROMPT.format(
                session_context=f"\nSession Context: {session_context}\n" if session_context else "",
                content=text,
            ),
            temperature=0.2,
            max_tokens=1000,
        )
        return _coerce(ContradictionCheck, data, "contradictions")

    async def analyze_dialogue(self, text: str, known_characters: list[str]) -> DialogueAnalysis:
        """Speaker attribution and voice consistency; empty on failure."""
        try:
            data = await self._complete_json(
                "dialogue",
                "You are an expert in dialogue analysis and character voice consistency.",
                DIALOGUE_PROMPT.format(characters=", ".join(known_characters), content=text),
                temperature=0.3,
                max_tokens=1200,
            )
            return _coerce(DialogueAnalysis, data, "dialogue")
        except AnalysisParseError as e:
            logger.warning(f"Using default for dialogue: {e}")
            return DialogueAnalysis()


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _safe(model: type[M], raw: Any) -> M | None:
    try:
        return model.model_validate(raw)
    except (ValidationError, ValueError, OverflowError):
        logger.debug(f"Skipping malformed {model.__name__}: {raw!r}")
        return None


def _entity_list(value: Any) -> list[ExtractedEntity]:
    entities = []
    for raw in _list(value):
        if isinstance(raw, str):
            raw = {"name": raw}
        entity = _safe(ExtractedEntity, raw)
        if entity is not None and entity.name:
            entities.append(entity)
    return entities
