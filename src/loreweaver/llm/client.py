"""
HTTP client for an OpenAI-compatible completion backend.

Handles response caching for low-temperature requests and streamed
completions over server-sent events.
"""

import logging
from typing import Any, AsyncIterator, Callable

import httpx

from ..config import Settings
from ..errors import BackendTransportError
from .base import ChatMessage, CompletionOptions, CompletionProvider
from .cache import CompletionCache, make_cache_key
from .responses import ProcessedResponse, ResponseFormat, ValidationRules, process_response
from .streaming import SSEFrameParser
from .templates import TemplateLoader


logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
MODELS_PATH = "/v1/models"
HEALTH_PATH = "/readyz"

# Requests sampled below this temperature are treated as deterministic
CACHE_TEMPERATURE_CEILING = 0.3


class CompletionClient(CompletionProvider):
    """
    Client for a LocalAI / OpenAI-compatible chat completion API.

    Usable as an async context manager; otherwise call aclose() when done.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        cache: CompletionCache | None = None,
        templates: TemplateLoader | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Connection and cache settings (defaults from environment)
            cache: Response cache to share; one is created from settings if omitted
            templates: Template loader; defaults to settings.templates_dir
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.settings = settings or Settings.from_env()
        self.cache = cache or CompletionCache(
            ttl_seconds=self.settings.cache_ttl_seconds,
            sweep_threshold=self.settings.cache_sweep_threshold,
            capacity=self.settings.cache_capacity,
        )
        self.templates = templates or TemplateLoader(self.settings.templates_dir)
        self.is_available = False
        self._http = httpx.AsyncClient(
            base_url=self.settings.api_url.rstrip("/"),
            timeout=httpx.Timeout(self.settings.timeout_seconds),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.settings.api_key}",
            },
            transport=transport,
        )

    @property
    def model_name(self) -> str:
        return self.settings.default_model

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Confirm the backend is ready.

        Raises:
            BackendTransportError: health check failed
        """
        if not await self.check_health():
            raise BackendTransportError("Completion backend is not ready")
        self.is_available = True
        logger.info(f"Connected to completion backend at {self.settings.api_url}")

    async def check_health(self) -> bool:
        try:
            response = await self._http.get(HEALTH_PATH)
        except httpx.HTTPError as e:
            logger.error(f"Completion backend health check failed: {e}")
            return False
        return response.status_code == 200

    async def list_models(self) -> list[dict]:
        """Models the backend reports as loaded."""
        data = await self._request_json("GET", MODELS_PATH)
        models = data.get("data", [])
        return [m for m in models if isinstance(m, dict)]

    # -------------------------------------------------------------------------
    # Completions
    # -------------------------------------------------------------------------

    def _build_payload(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions,
        stream: bool = False,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": options.model or self.model_name,
            "messages": [m.to_dict() for m in messages],
        }
        for key in ("temperature", "top_p", "max_tokens", "stop"):
            value = getattr(options, key)
            if value is not None:
                payload[key] = value
        if stream:
            payload["stream"] = True
        return payload

    async def _request_json(
        self,
        method: str,
        path: str,
        payload: dict | None = None,
    ) -> dict:
        try:
            response = await self._http.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Request to {path} failed: {e}")
            raise BackendTransportError(f"Completion backend unreachable: {e}") from e

        if response.status_code >= 400:
            logger.error(f"{path} returned HTTP {response.status_code}: {response.text[:200]}")
            raise BackendTransportError(
                f"Completion backend returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendTransportError(f"Malformed response from {path}") from e
        if not isinstance(data, dict):
            raise BackendTransportError(f"Malformed response from {path}")
        return data

    def _is_cacheable(self, options: CompletionOptions) -> bool:
        return options.use_cache and options.effective_temperature < CACHE_TEMPERATURE_CEILING

    async def create_chat_completion(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> str:
        options = options or CompletionOptions()
        cache_key = None

        if self._is_cacheable(options):
            cache_key = make_cache_key(messages, options)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Using cached response {cache_key[:16]}")
                return cached

        data = await self._request_json(
            "POST", CHAT_COMPLETIONS_PATH, self._build_payload(messages, options)
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise BackendTransportError("Completion response missing choices") from e
        content = content or ""

        if cache_key is not None:
            self.cache.set(cache_key, content)
        return content

    async def stream_chat_completion(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[str]:
        options = options or CompletionOptions()
        payload = self._build_payload(messages, options, stream=True)
        parser = SSEFrameParser()

        try:
            async with self._http.stream("POST", CHAT_COMPLETIONS_PATH, json=payload) as response:
                if response.status_code >= 400:
                    await response.aread()
                    logger.error(f"Streaming request returned HTTP {response.status_code}")
                    raise BackendTransportError(
                        f"Completion backend returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                async for text in response.aiter_text():
                    for event in parser.feed(text):
                        if event.done:
                            return
                        yield event.content
                for event in parser.flush():
                    if event.done:
                        return
                    yield event.content
        except httpx.HTTPError as e:
            logger.error(f"Stream error: {e}")
            raise BackendTransportError(f"Stream interrupted: {e}") from e

    async def create_streaming_chat_completion(
        self,
        messages: list[ChatMessage],
        on_chunk: Callable[[str], None],
        on_complete: Callable[[], None],
        on_error: Callable[[Exception], None],
        options: CompletionOptions | None = None,
    ) -> None:
        """
        Callback form of stream_chat_completion.

        on_complete fires exactly once when the stream ends normally;
        on_error replaces it when the transport fails.
        """
        try:
            async for chunk in self.stream_chat_completion(messages, options):
                on_chunk(chunk)
        except BackendTransportError as e:
            on_error(e)
            return
        on_complete()

    @staticmethod
    def process_response(
        raw: str,
        expected_format: ResponseFormat = "text",
        rules: ValidationRules | None = None,
    ) -> ProcessedResponse:
        return process_response(raw, expected_format, rules)
