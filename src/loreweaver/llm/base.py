"""
Base completion abstraction.

Defines the message/option types and the interface every completion
provider implements. Services depend on CompletionProvider, never on a
concrete HTTP client, so tests can swap in MockCompletionClient.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, AsyncIterator, Literal, Mapping

from ..errors import BackendTransportError
from .templates import TemplateLoader


logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7

DEFAULT_NARRATIVE_TEMPERATURE = 0.7
DEFAULT_NARRATIVE_MAX_TOKENS = 1024
RETRY_TEMPERATURE = 0.5
RETRY_MAX_TOKENS = 512


@dataclass
class ChatMessage:
    """A message in the conversation."""
    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionOptions:
    """Per-request generation options."""
    model: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    stop: list[str] | None = None
    use_cache: bool = True

    @property
    def effective_temperature(self) -> float:
        """Temperature the backend will actually sample at."""
        if self.temperature is None:
            return DEFAULT_TEMPERATURE
        return self.temperature

    def cache_fields(self) -> dict:
        """Fields that distinguish one request from another."""
        data = asdict(self)
        data.pop("use_cache")
        return data


def system(content: str) -> ChatMessage:
    return ChatMessage(role="system", content=content)


def user(content: str) -> ChatMessage:
    return ChatMessage(role="user", content=content)


@dataclass
class GenerationStrategy:
    """A named system prompt plus sampling settings."""
    name: str
    system_prompt: str
    temperature: float
    max_tokens: int
    stop_sequences: list[str] = field(default_factory=list)


class CompletionProvider(ABC):
    """
    Abstract base class for completion backends.

    All providers must implement:
    - create_chat_completion(): blocking request returning the full text
    - stream_chat_completion(): async iterator over content deltas

    and set `templates` for generate_narrative().
    """

    templates: TemplateLoader

    @property
    @abstractmethod
    def model_name(self) -> str:
        """The default model identifier."""
        pass

    @abstractmethod
    async def create_chat_completion(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> str:
        """
        Send a chat completion request.

        Args:
            messages: Conversation to complete
            options: Sampling options (temperature, max_tokens, ...)

        Returns:
            The assistant message content

        Raises:
            BackendTransportError: backend unreachable or returned an error
        """
        pass

    @abstractmethod
    def stream_chat_completion(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[str]:
        """Yield non-empty content deltas until the stream ends."""
        pass

    async def generate_narrative(
        self,
        template_name: str,
        context: Mapping[str, Any],
        temperature: float | None = None,
        max_tokens: int | None = None,
        retry_on_failure: bool = False,
    ) -> str:
        """
        Render a template and complete it as a single user message.

        With retry_on_failure, a transport failure is retried once at a
        lower temperature and token limit.

        Raises:
            TemplateNotFoundError: no such template
            BackendTransportError: backend failed (after the retry, if any)
        """
        prompt = self.templates.render(template_name, context)
        messages = [user(prompt)]
        options = CompletionOptions(
            temperature=DEFAULT_NARRATIVE_TEMPERATURE if temperature is None else temperature,
            max_tokens=DEFAULT_NARRATIVE_MAX_TOKENS if max_tokens is None else max_tokens,
        )

        try:
            return await self.create_chat_completion(messages, options)
        except BackendTransportError as e:
            if not retry_on_failure:
                raise
            logger.warning(f"Retrying {template_name} with adjusted parameters: {e}")
            return await self.create_chat_completion(
                messages,
                CompletionOptions(temperature=RETRY_TEMPERATURE, max_tokens=RETRY_MAX_TOKENS),
            )
