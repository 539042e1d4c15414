"""
Pydantic models for story analysis results.

Field aliases match the camelCase keys the model is asked to return, and
numeric fields are clamped into their documented ranges on the way in.
Every model's defaults are the neutral fallback used when its analysis
call cannot be parsed.
"""

import math
from typing import Annotated, Any, Callable, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _clamped(low: float, high: float, cast: Callable[[Any], Any]) -> Callable[[Any], Any]:
    def clamp(value: Any) -> Any:
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"expected a number, got {value!r}")
        if not math.isfinite(number):
            raise ValueError(f"expected a finite number, got {value!r}")
        if cast is int:
            number = round(number)
        return cast(min(max(number, low), high))
    return clamp


def _sentiment(value: Any) -> str:
    text = str(value or "").strip().lower()
    return text if text in ("positive", "negative", "neutral") else "neutral"


def _severity(value: Any) -> str:
    text = str(value or "").strip().lower()
    return text if text in ("low", "medium", "high") else "medium"


Score10 = Annotated[int, BeforeValidator(_clamped(0, 10, int))]
Percent = Annotated[int, BeforeValidator(_clamped(0, 100, int))]
Confidence = Annotated[float, BeforeValidator(_clamped(0.0, 1.0, float))]
Overall = Annotated[Literal["positive", "negative", "neutral"], BeforeValidator(_sentiment)]
Severity = Annotated[Literal["low", "medium", "high"], BeforeValidator(_severity)]


class AnalysisModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# -----------------------------------------------------------------------------
# Entities
# -----------------------------------------------------------------------------

class ExtractedEntity(AnalysisModel):
    """A named entity found in the text, checked against the graph."""
    name: str
    confidence: Confidence = 0.0
    context: str = ""
    type: str | None = None
    is_new: bool = Field(default=True, alias="isNew")
    existing_id: str | None = Field(default=None, alias="existingId")


class ExtractedEvent(AnalysisModel):
    description: str = ""
    type: str = "unknown"
    significance: Score10 = 5
    location: str | None = None
    participants: list[str] = Field(default_factory=list)


class EntityExtraction(AnalysisModel):
    characters: list[ExtractedEntity] = Field(default_factory=list)
    locations: list[ExtractedEntity] = Field(default_factory=list)
    factions: list[ExtractedEntity] = Field(default_factory=list)
    items: list[ExtractedEntity] = Field(default_factory=list)
    events: list[ExtractedEvent] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Sentiment, themes, contradictions
# -----------------------------------------------------------------------------

class Emotion(AnalysisModel):
    character: str | None = None
    emotion: str = ""
    intensity: Score10 = 0


class SentimentAnalysis(AnalysisModel):
    overall: Overall = "neutral"
    tension: Score10 = 5
    mood: str = "uncertain"
    emotions: list[Emotion] = Field(default_factory=list)
    conflict_level: Score10 = Field(default=5, alias="conflictLevel")


class ThemeScores(AnalysisModel):
    hope: Score10 = 5
    redemption: Score10 = 5
    power: Score10 = 5
    corruption: Score10 = 5
    sacrifice: Score10 = 5
    legacy: Score10 = 5
    destiny: Score10 = 5


class NarrativeArc(AnalysisModel):
    type: str = ""
    progress: Percent = 0
    description: str = ""


class ThemeAnalysis(AnalysisModel):
    primary_themes: list[str] = Field(default_factory=list, alias="primaryThemes")
    star_wars_themes: ThemeScores = Field(default_factory=ThemeScores, alias="starWarsThemes")
    narrative_arcs: list[NarrativeArc] = Field(default_factory=list, alias="narrativeArcs")


class Contradiction(AnalysisModel):
    type: str = "fact"
    description: str = ""
    severity: Severity = "low"
    conflicting_elements: list[str] = Field(default_factory=list, alias="conflictingElements")


class ContradictionCheck(AnalysisModel):
    contradictions: list[Contradiction] = Field(default_factory=list)
    consistency_score: Percent = Field(default=85, alias="consistencyScore")


# -----------------------------------------------------------------------------
# Single-call content summary
# -----------------------------------------------------------------------------

class EntityNames(AnalysisModel):
    characters: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    factions: list[str] = Field(default_factory=list)
    items: list[str] = Field(default_factory=list)


class BasicSentiment(AnalysisModel):
    overall: Overall = "neutral"
    tension: Score10 = 5
    mood: str = "unknown"


class StoryContentAnalysis(AnalysisModel):
    """One-shot summary of entities, sentiment, themes and events."""
    entities: EntityNames = Field(default_factory=EntityNames)
    sentiment: BasicSentiment = Field(default_factory=BasicSentiment)
    themes: list[str] = Field(default_factory=list)
    events: list[ExtractedEvent] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Dialogue
# -----------------------------------------------------------------------------

class Speaker(AnalysisModel):
    name: str
    confidence: Confidence = 0.0
    dialogue: str = ""


class VoiceConsistency(AnalysisModel):
    character: str
    consistency: Percent = 100
    issues: list[str] = Field(default_factory=list)


class EmotionalTone(AnalysisModel):
    speaker: str
    emotion: str = ""
    intensity: Score10 = 0


class DialogueAnalysis(AnalysisModel):
    speakers: list[Speaker] = Field(default_factory=list)
    voice_consistency: list[VoiceConsistency] = Field(default_factory=list, alias="voiceConsistency")
    emotional_tones: list[EmotionalTone] = Field(default_factory=list, alias="emotionalTones")


# -----------------------------------------------------------------------------
# Bundle
# -----------------------------------------------------------------------------

class AnalysisBundle(AnalysisModel):
    """Everything analyze_story produces for one text."""
    entities: EntityExtraction = Field(default_factory=EntityExtraction)
    sentiment: SentimentAnalysis = Field(default_factory=SentimentAnalysis)
    themes: ThemeAnalysis = Field(default_factory=ThemeAnalysis)
    contradictions: ContradictionCheck = Field(default_factory=ContradictionCheck)
    analysis: StoryContentAnalysis = Field(default_factory=StoryContentAnalysis)
    degraded: list[str] = Field(default_factory=list)
