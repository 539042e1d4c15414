"""
Context assembly for loreweaver.

Selects, renders and budgets knowledge fragments for prompts.
"""

from .assembly import ContextAssembler
from .budget import TokenBudget, estimate_tokens
from .types import (
    PRIORITY_ORDER,
    AssembledContext,
    ContextRequest,
    ContextType,
    RenderedFragment,
    prioritize,
)

__all__ = [
    "ContextAssembler",
    "TokenBudget",
    "estimate_tokens",
    "PRIORITY_ORDER",
    "AssembledContext",
    "ContextRequest",
    "ContextType",
    "RenderedFragment",
    "prioritize",
]
