"""
Post-processing and validation of generated content.

Validation failures are reported in the returned ProcessedResponse
rather than raised; call raise_for_errors() to get an exception instead.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal

from ..errors import JSONExtractionError, ResponseFormatError
from .jsonrepair import parse_json_object


logger = logging.getLogger(__name__)

ResponseFormat = Literal["text", "json", "dialogue"]

SURROUNDING_QUOTES = re.compile(r"^[\"']|[\"']$")
BLANK_LINES = re.compile(r"\n\s*\n")
NARRATION_MARKERS = ("*", "[", "(")


@dataclass
class ValidationRules:
    max_length: int | None = None
    required_fields: list[str] = field(default_factory=list)
    forbidden_content: list[str] = field(default_factory=list)


@dataclass
class ProcessedResponse:
    valid: bool
    processed: Any
    errors: list[str] = field(default_factory=list)

    def raise_for_errors(self) -> Any:
        """Return the processed value, or raise if validation failed."""
        if not self.valid:
            raise ResponseFormatError(self.errors)
        return self.processed


def process_response(
    raw: str,
    expected_format: ResponseFormat = "text",
    rules: ValidationRules | None = None,
) -> ProcessedResponse:
    """
    Clean up and validate a raw completion.

    Args:
        raw: Text returned by the backend
        expected_format: "text" (unchanged), "json" (parsed object) or
            "dialogue" (quotes stripped, blank lines collapsed)
        rules: Optional length, required-field and forbidden-content checks
    """
    rules = rules or ValidationRules()
    errors: list[str] = []
    processed: Any = raw

    if rules.max_length and len(raw) > rules.max_length:
        errors.append(f"Response exceeds maximum length of {rules.max_length} characters")

    lowered = raw.lower()
    for forbidden in rules.forbidden_content:
        if forbidden.lower() in lowered:
            errors.append(f"Response contains forbidden content: {forbidden}")

    if expected_format == "json":
        try:
            processed = parse_json_object(raw, repair=True)
        except JSONExtractionError as e:
            logger.debug(f"JSON response rejected: {e}")
            errors.append("Invalid JSON format")
            processed = None
        else:
            for name in rules.required_fields:
                if name not in processed:
                    errors.append(f"Missing required field: {name}")

    elif expected_format == "dialogue":
        processed = SURROUNDING_QUOTES.sub("", raw)
        processed = BLANK_LINES.sub("\n", processed).strip()
        if any(marker in processed for marker in NARRATION_MARKERS):
            errors.append("Dialogue contains narration or action descriptions")

    return ProcessedResponse(valid=not errors, processed=processed, errors=errors)
