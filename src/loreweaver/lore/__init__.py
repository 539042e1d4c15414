"""Lore query classification and answering."""

from .classifier import LoreClassifier, QueryClassification, parse_classification
from .query import (
    DEFLECT_MESSAGE,
    LoreQueryResult,
    LoreQueryService,
    RelatedItem,
    ResolvedEntity,
    determine_entity_type,
    format_fact_sheet,
    format_related,
)

__all__ = [
    "LoreClassifier",
    "QueryClassification",
    "parse_classification",
    "DEFLECT_MESSAGE",
    "LoreQueryResult",
    "LoreQueryService",
    "RelatedItem",
    "ResolvedEntity",
    "determine_entity_type",
    "format_fact_sheet",
    "format_related",
]
