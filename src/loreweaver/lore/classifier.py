"""
Lore query classification.

Asks the completion backend whether free text is a request for world
facts, which kind of entity it is about, and which names it mentions.
"""

import json
import logging
import re
from typing import Literal

from pydantic import BaseModel, Field

from ..errors import BackendTransportError, ClassificationParseError
from ..llm.base import CompletionOptions, CompletionProvider, system, user


logger = logging.getLogger(__name__)

QueryType = Literal["character", "location", "faction", "event", "general"]
QUERY_TYPES = ("character", "location", "faction", "event", "general")

CONFIDENCE_THRESHOLD = 0.7
CLASSIFY_TEMPERATURE = 0.1
CLASSIFY_MAX_TOKENS = 200

BRACED_SPAN = re.compile(r"\{[\s\S]*\}")

CLASSIFIER_SYSTEM_PROMPT = (
    "You are an expert at analyzing Star Wars lore queries. Always respond with valid JSON."
)

CLASSIFIER_PROMPT = """Analyze this user input to determine if it's asking for Star Wars lore information:

"{text}"

Respond with JSON in this exact format:
{{
  "isLoreQuery": true/false,
  "queryType": "character|location|faction|event|general|null",
  "extractedEntities": ["entity1", "entity2"],
  "confidenceLevel": 0.0-1.0
}}

Examples:
- "Where was Luke Skywalker born?" → isLoreQuery: true, queryType: "character", extractedEntities: ["Luke Skywalker"]
- "What is Tatooine like?" → isLoreQuery: true, queryType: "location", extractedEntities: ["Tatooine"]
- "I want to attack the stormtroopers" → isLoreQuery: false, queryType: null
- "Tell me about the Rebel Alliance" → isLoreQuery: true, queryType: "faction", extractedEntities: ["Rebel Alliance"]"""


class QueryClassification(BaseModel):
    """Classifier verdict for one input."""
    is_lore_query: bool = False
    query_type: QueryType | None = None
    extracted_entity_names: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @classmethod
    def not_lore(cls) -> "QueryClassification":
        return cls()


def parse_classification(response: str) -> QueryClassification:
    """
    Parse classifier output.

    Low-confidence answers are downgraded to "not a lore query".

    Raises:
        ClassificationParseError: no usable JSON object in the response
    """
    match = BRACED_SPAN.search(response or "")
    if not match:
        raise ClassificationParseError("No JSON found in response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ClassificationParseError(f"Invalid classifier JSON: {e}") from e
    if not isinstance(data, dict):
        raise ClassificationParseError("Classifier JSON is not an object")

    try:
        confidence = float(data.get("confidenceLevel") or 0.0)
    except (TypeError, ValueError):
        confidence = 0.0
    confidence = min(max(confidence, 0.0), 1.0)

    if not data.get("isLoreQuery") or confidence < CONFIDENCE_THRESHOLD:
        return QueryClassification(confidence=confidence)

    query_type = data.get("queryType")
    if query_type not in QUERY_TYPES:
        query_type = None

    names = data.get("extractedEntities") or []
    if not isinstance(names, list):
        names = [names]

    return QueryClassification(
        is_lore_query=True,
        query_type=query_type,
        extracted_entity_names=[str(n).strip() for n in names if str(n).strip()],
        confidence=confidence,
    )


class LoreClassifier:
    """Classifies input as lore question or narrative action."""

    def __init__(self, client: CompletionProvider):
        self.client = client

    async def classify(self, text: str) -> QueryClassification:
        """Never raises; any failure means "not a lore query"."""
        messages = [
            system(CLASSIFIER_SYSTEM_PROMPT),
            user(CLASSIFIER_PROMPT.format(text=text)),
        ]
        options = CompletionOptions(
            temperature=CLASSIFY_TEMPERATURE,
            max_tokens=CLASSIFY_MAX_TOKENS,
        )

        try:
            response = await self.client.create_chat_completion(messages, options)
        except BackendTransportError as e:
            logger.error(f"Lore classification request failed: {e}")
            return QueryClassification.not_lore()

        try:
            return parse_classification(response)
        except ClassificationParseError as e:
            logger.warning(f"Failed to parse lore query classification: {e}")
            return QueryClassification.not_lore()
