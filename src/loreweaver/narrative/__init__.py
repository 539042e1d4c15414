"""Content generation on top of the completion client."""

from .generator import NarrativeGenerator, fallback_character

__all__ = ["NarrativeGenerator", "fallback_character"]
