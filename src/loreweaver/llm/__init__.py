"""Completion backend client for loreweaver."""

import re
from typing import AsyncIterator, Callable

from ..config import DEFAULT_TEMPLATES_DIR
from .base import (
    ChatMessage,
    CompletionOptions,
    CompletionProvider,
    GenerationStrategy,
    system,
    user,
)
from .cache import CompletionCache, make_cache_key
from .client import CompletionClient
from .jsonrepair import extract_json_text, parse_json_object, parse_json_or_default, repair_json
from .responses import ProcessedResponse, ValidationRules, process_response
from .streaming import SSEFrameParser, StreamEvent
from .templates import TemplateLoader, render_template

__all__ = [
    "ChatMessage",
    "CompletionOptions",
    "CompletionProvider",
    "GenerationStrategy",
    "system",
    "user",
    "CompletionCache",
    "make_cache_key",
    "CompletionClient",
    "MockCompletionClient",
    "extract_json_text",
    "parse_json_object",
    "parse_json_or_default",
    "repair_json",
    "ProcessedResponse",
    "ValidationRules",
    "process_response",
    "SSEFrameParser",
    "StreamEvent",
    "TemplateLoader",
    "render_template",
]


# -----------------------------------------------------------------------------
# Mock Client for Testing
# -----------------------------------------------------------------------------

Responder = Callable[[list[ChatMessage], CompletionOptions], str]


class MockCompletionClient(CompletionProvider):
    """
    Mock completion client for testing.

    Allows configuring responses without actual API calls.
    """

    def __init__(
        self,
        responses: list[str] | None = None,
        responder: Responder | None = None,
        model_name: str = "mock-model",
        templates: TemplateLoader | None = None,
    ):
        """
        Initialize mock client.

        Args:
            responses: List of responses to return in order.
                       Cycles through if more calls than responses.
            responder: Callable picking a response from the request.
                       Takes precedence over responses; may raise.
            model_name: Name to report as model_name property.
            templates: Template loader for generate_narrative.
                       Defaults to the packaged templates.
        """
        self.templates = templates or TemplateLoader(DEFAULT_TEMPLATES_DIR)
        self._responses = responses or ["Mock response"]
        self._responder = responder
        self._call_count = 0
        self._model_name = model_name
        self.calls: list[dict] = []  # Record of all calls made

    @property
    def model_name(self) -> str:
        return self._model_name

    def _next_response(self, messages: list[ChatMessage], options: CompletionOptions) -> str:
        if self._responder is not None:
            return self._responder(messages, options)
        response = self._responses[self._call_count % len(self._responses)]
        self._call_count += 1
        return response

    async def create_chat_completion(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> str:
        """Return next mock response."""
        options = options or CompletionOptions()
        self.calls.append({"method": "complete", "messages": messages, "options": options})
        return self._next_response(messages, options)

    async def stream_chat_completion(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[str]:
        """Yield the next mock response word by word."""
        options = options or CompletionOptions()
        self.calls.append({"method": "stream", "messages": messages, "options": options})
        for piece in re.findall(r"\s*\S+", self._next_response(messages, options)):
            yield piece

    def set_responses(self, responses: list[str]) -> None:
        """Update the list of responses."""
        self._responses = responses
        self._call_count = 0

    def reset(self) -> None:
        """Reset call count and recorded calls."""
        self._call_count = 0
        self.calls.clear()
