"""
Template- and strategy-driven content generation.

Wraps the completion client with the prompt shapes used for characters,
locations, quests, dialogue and story continuation.
"""

import logging
from typing import Any, Literal

from ..errors import JSONExtractionError
from ..llm.base import (
    CompletionOptions,
    CompletionProvider,
    GenerationStrategy,
    system,
    user,
)
from ..llm.jsonrepair import parse_json_object


logger = logging.getLogger(__name__)

NarrativeStyle = Literal["action", "dialogue", "description", "introspection"]
NarrativeLength = Literal["short", "medium", "long"]
NarrativeTone = Literal["dramatic", "lighthearted", "suspenseful", "mysterious"]

LENGTH_GUIDE: dict[str, str] = {
    "short": "1-2 sentences (50-100 words)",
    "medium": "2-3 paragraphs (150-250 words)",
    "long": "3-4 paragraphs (250-400 words)",
}
LENGTH_TOKENS: dict[str, int] = {"short": 150, "medium": 300, "long": 500}

CONTEXTUAL_SYSTEM_PROMPT = """You are an expert Star Wars narrative writer. Generate a {tone} {style}-focused continuation that is {length}.

Style Guidelines:
- Action: Focus on movement, combat, physical activities
- Dialogue: Emphasize character speech and conversation
- Description: Rich sensory details and environmental storytelling
- Introspection: Character thoughts, emotions, internal conflict

Tone Guidelines:
- Dramatic: High stakes, emotional weight, epic scope
- Lighthearted: Humor, adventure, optimism
- Suspenseful: Tension, uncertainty, anticipation
- Mysterious: Intrigue, secrets, unanswered questions

Maintain Star Wars authenticity and universe consistency."""

CHARACTER_VOICE_PROMPT = """You are {name}, a Star Wars character with the following traits:

Personality: {personality}
Speech Pattern: {speech_pattern}
Knowledge Level: {knowledge}
Current Emotional State: {emotion}

You must:
1. Stay in character at all times
2. Use speech patterns and vocabulary consistent with your background
3. Respond appropriately to the situation and audience
4. Consider your emotional state and relationship dynamics
5. Include subtle character-specific mannerisms or phrases

Respond with dialogue only - no narration or action descriptions."""


def fallback_character() -> dict[str, Any]:
    """Placeholder returned when a generated character cannot be parsed."""
    return {
        "name": "Generated Character",
        "species": "Human",
        "occupation": "Character generation failed - JSON parsing error",
        "background": "This character was generated but the response format needs improvement.",
        "error": True,
    }


class NarrativeGenerator:
    """Generates characters, places, quests, dialogue and story text."""

    def __init__(self, client: CompletionProvider):
        self.client = client

    # -------------------------------------------------------------------------
    # Template-driven
    # -------------------------------------------------------------------------

    async def generate_character(
        self,
        era: str,
        species: str,
        affiliation: str,
        character_type: str,
        force_sensitive: bool,
        context: str = "",
    ) -> dict[str, Any]:
        """
        Generate a character sheet.

        Unparsable output is repaired where possible; otherwise a
        placeholder flagged with "error": True is returned.
        """
        response = await self.client.generate_narrative(
            "character-generation",
            {
                "context": context,
                "era": era,
                "species": species,
                "affiliation": affiliation,
                "character_type": character_type,
                "force_sensitive": force_sensitive,
            },
            temperature=0.8,
        )
        try:
            return parse_json_object(response, repair=True)
        except JSONExtractionError as e:
            logger.error(f"Failed to parse character generation response: {e}")
            return fallback_character()

    async def generate_location(
        self,
        planet: str,
        region: str,
        location_type: str,
        era: str,
        atmosphere: str,
        context: str = "",
    ) -> dict[str, Any]:
        """
        Generate a location description.

        Raises:
            JSONExtractionError: response held no usable JSON object
        """
        response = await self.client.generate_narrative(
            "location-description",
            {
                "context": context,
                "planet": planet,
                "region": region,
                "location_type": location_type,
                "era": era,
                "atmosphere": atmosphere,
            },
            temperature=0.7,
        )
        try:
            return parse_json_object(response)
        except JSONExtractionError as e:
            logger.error(f"Failed to parse location generation response: {e}")
            raise JSONExtractionError("Invalid response format from location generation") from e

    async def generate_narrative_continuation(
        self,
        era: str,
        location: str,
        session_summary: str,
        recent_events: str,
        current_scene: str,
        player_characters: str,
        npcs_present: str,
        last_message: str,
        context: str = "",
    ) -> str:
        return await self.client.generate_narrative(
            "narrative-continuation",
            {
                "context": context,
                "era": era,
                "location": location,
                "session_summary": session_summary,
                "recent_events": recent_events,
                "current_scene": current_scene,
                "player_characters": player_characters,
                "npcs_present": npcs_present,
                "last_message": last_message,
            },
            temperature=0.8,
        )

    async def generate_dialogue(
        self,
        character_name: str,
        player_input: str,
        context: str = "",
        **details: str,
    ) -> str:
        """
        Dialogue for one character from the dialogue template.

        details fills the remaining template fields: species, occupation,
        affiliation, personality, speech_pattern, knowledge,
        emotional_state, relationship, location, situation, topic and
        previous_dialogue.
        """
        return await self.client.generate_narrative(
            "dialogue-generation",
            {
                **details,
                "context": context,
                "character_name": character_name,
                "player_input": player_input,
            },
            temperature=0.7,
        )

    async def generate_quest(
        self,
        era: str,
        location: str,
        theme: str,
        quest_type: str,
        difficulty: str,
        context: str = "",
        **details: str,
    ) -> dict[str, Any]:
        """
        Generate a quest outline.

        details fills plot_status, player_characters, notable_npcs,
        previous_adventures, duration, required_hooks and restrictions.

        Raises:
            JSONExtractionError: response held no usable JSON object
        """
        response = await self.client.generate_narrative(
            "quest-generation",
            {
                **details,
                "context": context,
                "era": era,
                "location": location,
                "theme": theme,
                "quest_type": quest_type,
                "difficulty": difficulty,
            },
            temperature=0.7,
            max_tokens=1500,
        )
        try:
            return parse_json_object(response)
        except JSONExtractionError as e:
            logger.error(f"Failed to parse quest generation response: {e}")
            raise JSONExtractionError("Invalid response format from quest generation") from e

    # -------------------------------------------------------------------------
    # Prompt-driven
    # -------------------------------------------------------------------------

    async def generate_with_strategy(
        self,
        strategy: GenerationStrategy,
        context: str,
        user_input: str | None = None,
    ) -> str:
        messages = [system(strategy.system_prompt), user(context)]
        if user_input:
            messages.append(user(user_input))
        return await self.client.create_chat_completion(
            messages,
            CompletionOptions(
                temperature=strategy.temperature,
                max_tokens=strategy.max_tokens,
                stop=strategy.stop_sequences or None,
            ),
        )

    async def generate_contextual_narrative(
        self,
        context: str,
        user_action: str,
        style: NarrativeStyle = "description",
        length: NarrativeLength = "medium",
        tone: NarrativeTone = "dramatic",
    ) -> str:
        """Continuation shaped by style, length and tone guides."""
        messages = [
            system(CONTEXTUAL_SYSTEM_PROMPT.format(tone=tone, style=style, length=LENGTH_GUIDE[length])),
            user(f"Context: {context}\n\nUser Action: {user_action}\n\nProvide the narrative continuation:"),
        ]
        return await self.client.create_chat_completion(
            messages,
            CompletionOptions(temperature=0.8, max_tokens=LENGTH_TOKENS[length]),
        )

    async def generate_character_dialogue(
        self,
        name: str,
        personality: list[str],
        knowledge: str,
        current_emotion: str,
        situation: str,
        target_audience: str,
        previous_context: str = "",
        speech_pattern: str | None = None,
    ) -> str:
        """In-character dialogue only, no narration."""
        messages = [
            system(CHARACTER_VOICE_PROMPT.format(
                name=name,
                personality=", ".join(personality),
                speech_pattern=speech_pattern or "Standard Basic",
                knowledge=knowledge,
                emotion=current_emotion,
            )),
            user(
                f"Situation: {situation}\n\nSpeaking to: {target_audience}\n\n"
                f"Previous Context: {previous_context}\n\nRespond as {name}:"
            ),
        ]
        return await self.client.create_chat_completion(
            messages,
            CompletionOptions(temperature=0.7, max_tokens=200),
        )
