"""
Pydantic schemas for the loreweaver HTTP API.

Requests reuse the service-level models where one already exists
(ContextRequest, AnalysisBundle); the rest are thin envelopes.
"""

from typing import Literal

from pydantic import BaseModel, Field

from ..analysis import AnalysisBundle
from ..context import ContextRequest, ContextType


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------

class ContextQueryRequest(ContextRequest):
    """POST /context body."""
    pass


class LoreQueryRequest(BaseModel):
    """POST /lore/query body."""
    query: str = Field(min_length=1)
    session_id: str | None = None


class ChatRequest(BaseModel):
    """POST /chat and POST /chat/stream body."""
    message: str = Field(min_length=1)
    session_id: str | None = None
    include_ids: list[str] = Field(default_factory=list)


class AnalysisRequest(BaseModel):
    """POST /analysis body."""
    text: str = Field(min_length=1)
    session_id: str | None = None


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------

class ContextResponse(BaseModel):
    """Assembled context plus what could not be included."""
    ok: bool = True
    context: str
    failures: dict[ContextType, str] = {}
    skipped: list[ContextType] = []
    remaining_tokens: int


class LoreQueryResponse(BaseModel):
    """
    Lore answer.

    is_lore_query is False (and response empty) when the text was not a
    lore question.
    """
    ok: bool = True
    is_lore_query: bool
    response: str = ""


class ChatResponse(BaseModel):
    ok: bool = True
    response: str
    response_type: Literal["lore", "narrative"]
    context_length: int = 0


class AnalysisResponse(BaseModel):
    ok: bool = True
    analysis: AnalysisBundle


class ErrorResponse(BaseModel):
    """Standard error response."""
    ok: bool = False
    error: str
    code: str | None = None
