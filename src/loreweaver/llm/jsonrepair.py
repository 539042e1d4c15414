"""
Extract-and-repair for JSON embedded in model output.

Models asked for JSON often wrap it in prose or a fenced block, leave
trailing commas, or forget to quote keys. This module recovers what it
can. It is a best-effort degrade path: callers decide whether a failure
becomes a default value or an error.
"""

import json
import logging
import re
from typing import Any

from ..errors import JSONExtractionError


logger = logging.getLogger(__name__)

FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
BRACED_SPAN = re.compile(r"\{[\s\S]*\}")
NUMBER = re.compile(r"-?\d+(\.\d+)?([eE][+-]?\d+)?")
BARE_LITERALS = frozenset({"true", "false", "null"})


def extract_json_text(text: str) -> str | None:
    """
    Find the JSON candidate in free text.

    Prefers a fenced ```json block, else the span from the first `{`
    to the last `}`. Returns None when neither exists.
    """
    if not text:
        return None
    fenced = FENCED_JSON.search(text)
    if fenced:
        return fenced.group(1).strip()
    braced = BRACED_SPAN.search(text)
    if braced:
        return braced.group(0)
    return None


def _is_identifier_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$"


def _last_significant(out: list[str]) -> str:
    for piece in reversed(out):
        stripped = piece.rstrip()
        if stripped:
            return stripped[-1]
    return ""


def _skip_string(text: str, i: int) -> int:
    """Return the index just past the string literal starting at i."""
    j = i + 1
    while j < len(text):
        if text[j] == "\\":
            j += 2
            continue
        if text[j] == '"':
            return j + 1
        j += 1
    return len(text)


def _repair_value(raw: str) -> str:
    stripped = raw.strip()
    if not stripped:
        return raw
    if stripped in BARE_LITERALS or NUMBER.fullmatch(stripped):
        return raw
    if len(stripped) >= 2 and stripped[0] == stripped[-1] == "'":
        stripped = stripped[1:-1]
    trailing = raw[len(raw.rstrip()):]
    return json.dumps(stripped, ensure_ascii=False) + trailing


def repair_json(text: str) -> str:
    """
    Apply light repairs outside of string literals.

    - drop trailing commas before `}` or `]`
    - quote bare object keys
    - quote bare scalar values (numbers, true, false and null stay bare)
    """
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]

        if ch == '"':
            end = _skip_string(text, i)
            out.append(text[i:end])
            i = end
            continue

        if ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                i += 1
                continue
            out.append(ch)
            i += 1
            continue

        if ch == ":":
            out.append(ch)
            i += 1
            while i < n and text[i].isspace():
                out.append(text[i])
                i += 1
            if i < n and text[i] not in '"{[':
                j = i
                while j < n and text[j] not in ",}]\n":
                    j += 1
                out.append(_repair_value(text[i:j]))
                i = j
            continue

        if _is_identifier_start(ch) and _last_significant(out) in ("{", ","):
            j = i
            while j < n and (text[j].isalnum() or text[j] in "_$-"):
                j += 1
            k = j
            while k < n and text[k].isspace():
                k += 1
            if k < n and text[k] == ":":
                out.append(f'"{text[i:j]}"')
                i = j
                continue

        out.append(ch)
        i += 1
    return "".join(out)


def parse_json_object(text: str, repair: bool = False) -> dict[str, Any]:
    """
    Extract and parse a JSON object from model output.

    Raises:
        JSONExtractionError: no object found, or it would not parse
    """
    candidate = extract_json_text(text)
    if candidate is None:
        raise JSONExtractionError("No JSON object found in response")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        if not repair:
            raise JSONExtractionError(f"Invalid JSON: {e}") from e
        try:
            data = json.loads(repair_json(candidate))
        except json.JSONDecodeError as e2:
            raise JSONExtractionError(f"Invalid JSON after repair: {e2}") from e2

    if not isinstance(data, dict):
        raise JSONExtractionError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_json_or_default(text: str, default: Any, repair: bool = False) -> Any:
    """Like parse_json_object, but returns default instead of raising."""
    try:
        return parse_json_object(text, repair=repair)
    except JSONExtractionError as e:
        logger.warning(f"Falling back to default: {e}")
        return default
