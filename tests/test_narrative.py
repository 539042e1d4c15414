"""Tests for template- and strategy-driven generation."""

import asyncio

import pytest

from loreweaver.errors import JSONExtractionError
from loreweaver.llm import GenerationStrategy, MockCompletionClient
from loreweaver.narrative import NarrativeGenerator, fallback_character


class TestCharacterGeneration:
    def test_repaired_json(self):
        """Sloppy JSON from the model is repaired."""
        client = MockCompletionClient(responses=['Here: {name: "Kira Vos", species: Twi\'lek,}'])
        result = asyncio.run(NarrativeGenerator(client).generate_character(
            era="Old Republic", species="Twi'lek", affiliation="Independent",
            character_type="smuggler", force_sensitive=False,
        ))
        assert result == {"name": "Kira Vos", "species": "Twi'lek"}

    def test_prompt_rendered(self):
        client = MockCompletionClient(responses=['{"name": "x"}'])
        asyncio.run(NarrativeGenerator(client).generate_character(
            era="Old Republic", species="Human", affiliation="Jedi",
            character_type="knight", force_sensitive=True,
        ))
        call = client.calls[0]
        prompt = call["messages"][0].content
        assert "Old Republic" in prompt
        assert "true" in prompt
        assert call["options"].temperature == 0.8

    def test_fallback_on_garbage(self):
        client = MockCompletionClient(responses=["I cannot help with that."])
        result = asyncio.run(NarrativeGenerator(client).generate_character(
            era="x", species="x", affiliation="x", character_type="x", force_sensitive=False,
        ))
        assert result == fallback_character()
        assert result["error"] is True


class TestLocationAndQuest:
    def test_location_parsed(self):
        client = MockCompletionClient(responses=['```json\n{"name": "Dune Sea"}\n```'])
        result = asyncio.run(NarrativeGenerator(client).generate_location(
            planet="Tatooine", region="Outer Rim", location_type="desert",
            era="Galactic Civil War", atmosphere="bleak",
        ))
        assert result == {"name": "Dune Sea"}

    def test_location_garbage_raises(self):
        client = MockCompletionClient(responses=["no json"])
        with pytest.raises(JSONExtractionError):
            asyncio.run(NarrativeGenerator(client).generate_location(
                planet="x", region="x", location_type="x", era="x", atmosphere="x",
            ))

    def test_quest_token_limit(self):
        client = MockCompletionClient(responses=['{"title": "The Long Night"}'])
        result = asyncio.run(NarrativeGenerator(client).generate_quest(
            era="x", location="x", theme="x", quest_type="rescue", difficulty="hard",
            notable_npcs="Han Solo",
        ))
        assert result["title"] == "The Long Night"
        assert client.calls[0]["options"].max_tokens == 1500

    def test_quest_garbage_raises(self):
        client = MockCompletionClient(responses=["{broken"])
        with pytest.raises(JSONExtractionError):
            asyncio.run(NarrativeGenerator(client).generate_quest(
                era="x", location="x", theme="x", quest_type="x", difficulty="x",
            ))


class TestPromptDriven:
    def test_strategy(self):
        client = MockCompletionClient(responses=["The hatch hisses open."])
        strategy = GenerationStrategy(
            name="tense", system_prompt="Write tensely.", temperature=0.6,
            max_tokens=120, stop_sequences=["###"],
        )
        result = asyncio.run(NarrativeGenerator(client).generate_with_strategy(
            strategy, "Aboard a freighter", "I open the hatch",
        ))
        assert result == "The hatch hisses open."
        call = client.calls[0]
        assert [m.role for m in call["messages"]] == ["system", "user", "user"]
        assert call["options"].stop == ["###"]
        assert call["options"].max_tokens == 120

    @pytest.mark.parametrize("length,tokens", [("short", 150), ("medium", 300), ("long", 500)])
    def test_contextual_length_tokens(self, length, tokens):
        client = MockCompletionClient()
        asyncio.run(NarrativeGenerator(client).generate_contextual_narrative(
            "context", "I run", length=length, tone="suspenseful",
        ))
        call = client.calls[0]
        assert call["options"].max_tokens == tokens
        assert "suspenseful" in call["messages"][0].content

    def test_character_dialogue(self):
        client = MockCompletionClient(responses=["Never tell me the odds."])
        result = asyncio.run(NarrativeGenerator(client).generate_character_dialogue(
            name="Han Solo", personality=["cocky", "loyal"], knowledge="smuggler",
            current_emotion="impatient", situation="asteroid field", target_audience="C-3PO",
        ))
        assert result == "Never tell me the odds."
        system_prompt = client.calls[0]["messages"][0].content
        assert "You are Han Solo" in system_prompt
        assert "cocky, loyal" in system_prompt
        assert "Standard Basic" in system_prompt

    def test_dialogue_template(self):
        client = MockCompletionClient()
        asyncio.run(NarrativeGenerator(client).generate_dialogue(
            "Yoda", "Teach me", species="Unknown", speech_pattern="inverted",
        ))
        prompt = client.calls[0]["messages"][0].content
        assert "Yoda" in prompt
        assert "Teach me" in prompt
