"""
loreweaver - narrative engine.

Assembles prompt context from graph, document and vector knowledge
sources, answers lore questions from stored facts, analyzes story text
and generates narrative through an OpenAI-compatible completion backend.
"""

from .config import Settings, configure_logging
from .engine import ChatReply, NarrativeEngine

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "configure_logging",
    "ChatReply",
    "NarrativeEngine",
    "__version__",
]
