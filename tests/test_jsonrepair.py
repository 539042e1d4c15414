"""Tests for JSON extraction and repair of model output."""

import pytest

from loreweaver.errors import JSONExtractionError
from loreweaver.llm.jsonrepair import (
    extract_json_text,
    parse_json_object,
    parse_json_or_default,
    repair_json,
)


class TestExtraction:
    """Finding the JSON candidate in prose."""

    def test_prefers_fenced_block(self):
        """A ```json block wins over other braces in the text."""
        text = 'Note {not this}\n```json\n{"a": 1}\n```\nbye'
        assert extract_json_text(text) == '{"a": 1}'

    def test_braced_span(self):
        """Without a fence, take first { to last }."""
        text = 'Here you go: {"a": {"b": 2}} hope that helps'
        assert extract_json_text(text) == '{"a": {"b": 2}}'

    def test_nothing_found(self):
        assert extract_json_text("no json here") is None
        assert extract_json_text("") is None


class TestRepair:
    """Light repairs applied outside string literals."""

    def test_bare_keys_and_trailing_comma(self):
        """The canonical broken object parses after repair."""
        result = parse_json_object('{name: "Luke", age: 19,}', repair=True)
        assert result == {"name": "Luke", "age": 19}

    def test_literals_stay_bare(self):
        """Numbers, true, false and null are not quoted."""
        result = parse_json_object("{a: true, b: null, c: -1.5, d: false}", repair=True)
        assert result == {"a": True, "b": None, "c": -1.5, "d": False}

    def test_bare_string_value_quoted(self):
        result = parse_json_object("{mood: tense}", repair=True)
        assert result == {"mood": "tense"}

    def test_single_quoted_value(self):
        result = parse_json_object("{mood: 'grim'}", repair=True)
        assert result == {"mood": "grim"}

    def test_strings_with_commas_and_colons_survive(self):
        """Punctuation inside string literals is left alone."""
        text = '{"summary": "He said: wait, then left,", "n": 2,}'
        assert parse_json_object(text, repair=True) == {
            "summary": "He said: wait, then left,",
            "n": 2,
        }

    def test_trailing_comma_in_array(self):
        assert parse_json_object('{"xs": [1, 2,]}', repair=True) == {"xs": [1, 2]}

    def test_valid_json_unchanged(self):
        text = '{"a": [1, {"b": "c"}]}'
        assert repair_json(text) == text


class TestParse:
    """parse_json_object and parse_json_or_default."""

    def test_without_repair_fails_on_broken_json(self):
        with pytest.raises(JSONExtractionError):
            parse_json_object('{name: "Luke"}')

    def test_no_candidate_raises(self):
        with pytest.raises(JSONExtractionError):
            parse_json_object("Sorry, I can't do that.", repair=True)

    def test_default_returned(self):
        assert parse_json_or_default("nothing", {"x": 1}) == {"x": 1}

    def test_default_not_used_on_success(self):
        assert parse_json_or_default('{"x": 2}', {"x": 1}) == {"x": 2}
