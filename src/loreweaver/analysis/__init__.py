"""Story analysis: entities, sentiment, themes and contradictions."""

from .pipeline import StoryAnalyzer
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
    ThemeScores,
)

__all__ = [
    "StoryAnalyzer",
    "AnalysisBundle",
    "ContradictionCheck",
    "DialogueAnalysis",
    "EntityExtraction",
    "ExtractedEntity",
    "ExtractedEvent",
    "SentimentAnalysis",
    "StoryContentAnalysis",
    "ThemeAnalysis",
    "ThemeScores",
]
