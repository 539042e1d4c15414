"""
NarrativeEngine: wires the knowledge sources, completion client and services.

Every service receives its dependencies explicitly; nothing here is a
module-level singleton. Construct one engine per process (or per test).
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Literal

from .analysis import StoryAnalyzer
from .config import Settings
from .context import ContextAssembler, ContextRequest, ContextType
from .llm import CompletionClient, CompletionOptions, CompletionProvider, system, user
from .lore import LoreQueryService
from .narrative import NarrativeGenerator
from .sources import (
    DocumentStore,
    GraphStore,
    KnowledgeBase,
    VectorStore,
    load_world,
)
from .sources.seed import World


logger = logging.getLogger(__name__)

GM_SYSTEM_PROMPT = """You are an expert Star Wars Game Master running a tabletop RPG session.
Your role is to:
1. Continue the story based on player actions
2. Describe scenes, NPCs, and environments vividly
3. Present challenges and opportunities
4. Ask engaging questions to drive the narrative forward
5. Maintain Star Wars authenticity and atmosphere

Guidelines:
- Be creative and engaging
- Present choices and consequences
- Include sensory details
- Maintain appropriate pacing
- Respond to player actions meaningfully
- Ask what the player wants to do next when appropriate

Current Session Context:
{context}"""

GM_USER_PROMPT = """Player action/statement: "{message}"

As the Game Master, respond to this player input with an engaging narrative continuation. Include scene description, NPC reactions, consequences of actions, and/or new story developments as appropriate."""

STREAM_SYSTEM_PROMPT = """You are an expert Star Wars Game Master. Respond to the player's action with engaging narrative continuation.

Session Context: {context}"""

GM_TEMPERATURE = 0.8
GM_MAX_TOKENS = 400

CHAT_CONTEXT_TYPES = [
    ContextType.SESSION_HISTORY,
    ContextType.WORLD_STATE,
    ContextType.CHARACTER,
    ContextType.LOCATION,
]
CHAT_CONTEXT_TOKENS = 2000
CHAT_CONTEXT_ITEMS = 8

STREAM_CONTEXT_TYPES = [ContextType.SESSION_HISTORY, ContextType.WORLD_STATE]
STREAM_CONTEXT_TOKENS = 1500


@dataclass
class ChatReply:
    """One answer to a player message."""
    response: str
    response_type: Literal["lore", "narrative"]
    context_length: int = 0


class NarrativeEngine:
    """
    The assembled system.

    Usable as an async context manager; otherwise call start() before
    serving and aclose() afterwards.
    """

    def __init__(
        self,
        settings: Settings | None,
        graph: GraphStore,
        documents: DocumentStore,
        vectors: VectorStore,
        client: CompletionProvider | None = None,
    ):
        self.settings = settings or Settings.from_env()
        self.knowledge = KnowledgeBase(graph, documents, vectors)
        self.client = client or CompletionClient(self.settings)
        self.assembler = ContextAssembler(self.knowledge)
        self.lore = LoreQueryService(self.client, self.knowledge)
        self.analyzer = StoryAnalyzer(self.client, self.knowledge, self.assembler)
        self.generator = NarrativeGenerator(self.client)

    @classmethod
    def from_world(
        cls,
        world: World,
        settings: Settings | None = None,
        client: CompletionProvider | None = None,
    ) -> "NarrativeEngine":
        return cls(settings, world.graph, world.documents, world.vectors, client=client)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        client: CompletionProvider | None = None,
    ) -> "NarrativeEngine":
        """
        Build an engine over in-memory stores.

        Seeds them from settings.world_file when one is configured.
        """
        settings = settings or Settings.from_env()
        world = load_world(settings.world_file) if settings.world_file else World()
        return cls.from_world(world, settings, client)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> bool:
        """Check the completion backend. Returns whether it is ready."""
        check = getattr(self.client, "check_health", None)
        if check is None:
            return True
        ready = await check()
        if ready:
            self.client.is_available = True
            logger.info(f"Completion backend ready (model {self.client.model_name})")
        else:
            logger.warning("Completion backend not ready; requests will fail until it is")
        return ready

    async def aclose(self) -> None:
        close = getattr(self.client, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "NarrativeEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------------------

    async def respond(
        self,
        message: str,
        session_id: str | None = None,
        include_ids: list[str] | None = None,
    ) -> ChatReply:
        """
        Answer a player message.

        Lore questions get a fact-grounded answer; anything else gets a
        Game Master continuation built on session context.

        Raises:
            BackendTransportError: the narrative completion failed
        """
        lore_answer = await self.lore.process_lore_query(message, session_id)
        if lore_answer:
            return ChatReply(response=lore_answer, response_type="lore")

        context = await self.assembler.assemble_context(ContextRequest(
            types=CHAT_CONTEXT_TYPES,
            session_id=session_id,
            include_ids=include_ids or [],
            max_tokens=CHAT_CONTEXT_TOKENS,
            max_items=CHAT_CONTEXT_ITEMS,
        ))
        response = await self.client.create_chat_completion(
            [
                system(GM_SYSTEM_PROMPT.format(context=context)),
                user(GM_USER_PROMPT.format(message=message)),
            ],
            CompletionOptions(temperature=GM_TEMPERATURE, max_tokens=GM_MAX_TOKENS),
        )
        return ChatReply(response=response, response_type="narrative", context_length=len(context))

    async def stream_response(
        self,
        message: str,
        session_id: str | None = None,
    ) -> AsyncIterator[str]:
        """
        Yield an answer incrementally.

        A lore answer arrives as a single chunk; a narrative continuation
        is streamed as the backend produces it.
        """
        lore_answer = await self.lore.process_lore_query(message, session_id)
        if lore_answer:
            yield lore_answer
            return

        context = await self.assembler.assemble_context(ContextRequest(
            types=STREAM_CONTEXT_TYPES,
            session_id=session_id,
            max_tokens=STREAM_CONTEXT_TOKENS,
        ))
        messages = [
            system(STREAM_SYSTEM_PROMPT.format(context=context)),
            user(f"Player: {message}"),
        ]
        options = CompletionOptions(temperature=GM_TEMPERATURE, max_tokens=GM_MAX_TOKENS)
        async for chunk in self.client.stream_chat_completion(messages, options):
            yield chunk
