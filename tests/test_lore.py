"""Tests for lore query classification and answering."""

import asyncio

import pytest

from loreweaver.errors import BackendTransportError, ClassificationParseError
from loreweaver.llm import MockCompletionClient
from loreweaver.lore import (
    DEFLECT_MESSAGE,
    LoreClassifier,
    LoreQueryService,
    RelatedItem,
    ResolvedEntity,
    format_related,
    parse_classification,
)
from loreweaver.lore.query import APOLOGY_MESSAGE
from loreweaver.sources import Character

from conftest import NOT_LORE, is_classifier_call, lore_classification


def scripted(classification: str, answer: str = "Luke was born on Tatooine."):
    """Mock client answering the classifier and the synthesizer differently."""
    def respond(messages, options):
        return classification if is_classifier_call(messages) else answer
    return MockCompletionClient(responder=respond)


class TestParseClassification:
    """Classifier output parsing."""

    def test_lore_query(self):
        result = parse_classification(lore_classification(["Luke Skywalker"]))
        assert result.is_lore_query
        assert result.query_type == "character"
        assert result.extracted_entity_names == ["Luke Skywalker"]
        assert result.confidence == pytest.approx(0.9)

    def test_low_confidence_downgraded(self):
        """Below 0.7 confidence is treated as not a lore query."""
        result = parse_classification(lore_classification(["Luke"], confidence=0.5))
        assert not result.is_lore_query

    def test_threshold_inclusive(self):
        assert parse_classification(lore_classification(["Luke"], confidence=0.7)).is_lore_query

    def test_json_inside_prose(self):
        result = parse_classification("Sure! " + lore_classification(["Tatooine"], "location") + " Done.")
        assert result.query_type == "location"

    def test_unknown_query_type_dropped(self):
        result = parse_classification(lore_classification(["X"], query_type="starship"))
        assert result.is_lore_query
        assert result.query_type is None

    def test_no_json(self):
        with pytest.raises(ClassificationParseError):
            parse_classification("I think so.")


class TestLoreClassifier:
    """Classifier never raises."""

    def test_unparsable_means_not_lore(self):
        client = MockCompletionClient(responses=["no idea"])
        result = asyncio.run(LoreClassifier(client).classify("hi"))
        assert not result.is_lore_query

    def test_transport_error_means_not_lore(self):
        def fail(messages, options):
            raise BackendTransportError("down")

        result = asyncio.run(LoreClassifier(MockCompletionClient(responder=fail)).classify("hi"))
        assert not result.is_lore_query

    def test_request_options(self):
        client = MockCompletionClient(responses=[NOT_LORE])
        asyncio.run(LoreClassifier(client).classify("Where was Luke born?"))
        options = client.calls[0]["options"]
        assert options.temperature == 0.1
        assert options.max_tokens == 200
        assert "Where was Luke born?" in client.calls[0]["messages"][1].content


class TestProcessLoreQuery:
    """End-to-end lore answering against seeded stores."""

    def test_answers_from_graph(self, knowledge):
        """A known character is answered from its stored facts."""
        client = scripted(lore_classification(["Luke Skywalker"]))
        service = LoreQueryService(client, knowledge)

        answer = asyncio.run(service.process_lore_query("Where was Luke Skywalker born?"))

        assert answer.startswith("Luke was born on Tatooine.")
        synth = client.calls[1]
        facts = synth["messages"][0].content
        assert "Character: Luke Skywalker" in facts
        assert "- Homeworld: Tatooine" in facts
        assert synth["options"].temperature == 0.3
        assert synth["options"].max_tokens == 300

    def test_related_information_appended(self, knowledge):
        client = scripted(lore_classification(["Luke Skywalker"]))
        service = LoreQueryService(client, knowledge)

        answer = asyncio.run(service.process_lore_query("Luke Skywalker Tatooine"))

        assert "\n\n**Related Information:**\n• " in answer

    def test_not_lore_returns_empty(self, knowledge):
        service = LoreQueryService(scripted(NOT_LORE), knowledge)
        assert asyncio.run(service.process_lore_query("I attack the stormtroopers")) == ""

    def test_unknown_entity_deflects(self, knowledge):
        """No graph match means the fixed deflection, not a made-up answer."""
        client = scripted(lore_classification(["Jar Jar Binks"]))
        service = LoreQueryService(client, knowledge)

        assert asyncio.run(service.process_lore_query("Who is Jar Jar Binks?")) == DEFLECT_MESSAGE
        assert len(client.calls) == 1

    def test_general_type_searches_all_kinds(self, knowledge):
        client = scripted(lore_classification(["Rebel"], query_type="general"))
        service = LoreQueryService(client, knowledge)

        result = asyncio.run(service.analyze_lore_query("Tell me about the Rebels"))

        assert [e.identifier for e in result.entities] == ["rebels"]
        assert result.entities[0].entity_type == "faction"

    def test_synthesis_failure_apologises(self, knowledge):
        def respond(messages, options):
            if is_classifier_call(messages):
                return lore_classification(["Luke"])
            raise BackendTransportError("down")

        service = LoreQueryService(MockCompletionClient(responder=respond), knowledge)
        answer = asyncio.run(service.process_lore_query("Who is Luke?"))
        assert answer.startswith(APOLOGY_MESSAGE)


class TestFormatting:
    def test_resolved_entity_type_from_attributes(self):
        entity = ResolvedEntity.from_entity(Character(id="c1", name="Rey", species="Human"))
        assert entity.entity_type == "character"
        assert entity.get("species") == "Human"
        assert "homeworld" in entity.attributes

    def test_related_preview_truncated(self):
        items = [
            RelatedItem(title="A", content="x" * 150, type="world_knowledge"),
            RelatedItem(title="B", content="short", type="story_event"),
            RelatedItem(title="C", content="never shown", type="story_event"),
        ]
        text = format_related(items)
        assert f"• A: {'x' * 100}..." in text
        assert "• B: short..." in text
        assert "C:" not in text

    def test_related_without_content_skipped(self):
        assert format_related([RelatedItem(title="A", content=None, type="story_event")]) == ""
