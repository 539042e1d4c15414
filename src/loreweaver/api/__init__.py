"""
loreweaver HTTP API.

FastAPI app exposing context assembly, lore answers, chat and analysis.
"""

from .schemas import (
    AnalysisRequest,
    AnalysisResponse,
    ChatRequest,
    ChatResponse,
    ContextQueryRequest,
    ContextResponse,
    ErrorResponse,
    LoreQueryRequest,
    LoreQueryResponse,
)
from .server import create_app

__all__ = [
    "create_app",
    "AnalysisRequest",
    "AnalysisResponse",
    "ChatRequest",
    "ChatResponse",
    "ContextQueryRequest",
    "ContextResponse",
    "ErrorResponse",
    "LoreQueryRequest",
    "LoreQueryResponse",
]
