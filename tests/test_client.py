"""
Tests for the HTTP completion client.

The backend is an httpx.MockTransport; no network is used.
"""

import asyncio
import json

import httpx
import pytest

from loreweaver.errors import BackendTransportError, TemplateNotFoundError
from loreweaver.llm import CompletionClient, CompletionOptions, system, user

from conftest import completion_body, sse_body


def make_client(settings, transport):
    return CompletionClient(settings, transport=transport)


MESSAGES = [system("You are terse."), user("Say hi")]


class TestChatCompletion:
    """Blocking completions and caching."""

    def test_returns_content(self, settings, mock_transport):
        transport, seen = mock_transport(lambda r: httpx.Response(200, json=completion_body("Hi")))
        client = make_client(settings, transport)

        result = asyncio.run(client.create_chat_completion(MESSAGES, CompletionOptions(temperature=0.8)))

        assert result == "Hi"
        body = json.loads(seen[0].content)
        assert body["model"] == settings.default_model
        assert body["temperature"] == 0.8
        assert body["messages"][1] == {"role": "user", "content": "Say hi"}
        assert seen[0].headers["Authorization"] == f"Bearer {settings.api_key}"

    def test_low_temperature_cached(self, settings, mock_transport):
        """The second identical low-temperature request is served from cache."""
        transport, seen = mock_transport(lambda r: httpx.Response(200, json=completion_body("Hi")))
        client = make_client(settings, transport)
        options = CompletionOptions(temperature=0.1)

        async def twice():
            return (
                await client.create_chat_completion(MESSAGES, options),
                await client.create_chat_completion(MESSAGES, options),
            )

        assert asyncio.run(twice()) == ("Hi", "Hi")
        assert len(seen) == 1

    def test_zero_temperature_cached(self, settings, mock_transport):
        """Temperature 0 counts as deterministic, not as unset."""
        transport, seen = mock_transport(lambda r: httpx.Response(200, json=completion_body("Hi")))
        client = make_client(settings, transport)
        options = CompletionOptions(temperature=0)

        async def twice():
            await client.create_chat_completion(MESSAGES, options)
            await client.create_chat_completion(MESSAGES, options)

        asyncio.run(twice())
        assert len(seen) == 1

    def test_high_temperature_not_cached(self, settings, mock_transport):
        transport, seen = mock_transport(lambda r: httpx.Response(200, json=completion_body("Hi")))
        client = make_client(settings, transport)
        options = CompletionOptions(temperature=0.8)

        async def twice():
            await client.create_chat_completion(MESSAGES, options)
            await client.create_chat_completion(MESSAGES, options)

        asyncio.run(twice())
        assert len(seen) == 2

    def test_use_cache_false_bypasses(self, settings, mock_transport):
        transport, seen = mock_transport(lambda r: httpx.Response(200, json=completion_body("Hi")))
        client = make_client(settings, transport)
        options = CompletionOptions(temperature=0.1, use_cache=False)

        async def twice():
            await client.create_chat_completion(MESSAGES, options)
            await client.create_chat_completion(MESSAGES, options)

        asyncio.run(twice())
        assert len(seen) == 2

    def test_http_error_raises(self, settings, mock_transport):
        """A 500 from the backend becomes BackendTransportError."""
        transport, _ = mock_transport(lambda r: httpx.Response(500, text="boom"))
        client = make_client(settings, transport)

        with pytest.raises(BackendTransportError) as exc_info:
            asyncio.run(client.create_chat_completion(MESSAGES))
        assert exc_info.value.status_code == 500

    def test_connection_error_raises(self, settings, mock_transport):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        transport, _ = mock_transport(refuse)
        client = make_client(settings, transport)

        with pytest.raises(BackendTransportError):
            asyncio.run(client.create_chat_completion(MESSAGES))

    def test_failure_not_cached(self, settings, mock_transport):
        """A failed request leaves nothing in the cache."""
        transport, _ = mock_transport(lambda r: httpx.Response(503))
        client = make_client(settings, transport)

        with pytest.raises(BackendTransportError):
            asyncio.run(client.create_chat_completion(MESSAGES, CompletionOptions(temperature=0.1)))
        assert len(client.cache) == 0


class TestStreaming:
    """Pull-based and callback streaming."""

    def test_stream_yields_deltas(self, settings, mock_transport):
        transport, seen = mock_transport(
            lambda r: httpx.Response(200, text=sse_body("Hi", " there"))
        )
        client = make_client(settings, transport)

        async def collect():
            return [c async for c in client.stream_chat_completion(MESSAGES)]

        assert asyncio.run(collect()) == ["Hi", " there"]
        assert json.loads(seen[0].content)["stream"] is True

    def test_callbacks(self, settings, mock_transport):
        """Chunks arrive in order and on_complete fires exactly once."""
        transport, _ = mock_transport(
            lambda r: httpx.Response(200, text=sse_body("Hi", " there"))
        )
        client = make_client(settings, transport)
        chunks, completions, errors = [], [], []

        asyncio.run(client.create_streaming_chat_completion(
            MESSAGES,
            on_chunk=chunks.append,
            on_complete=lambda: completions.append(True),
            on_error=errors.append,
        ))

        assert chunks == ["Hi", " there"]
        assert completions == [True]
        assert errors == []

    def test_stream_error_goes_to_on_error(self, settings, mock_transport):
        transport, _ = mock_transport(lambda r: httpx.Response(502))
        client = make_client(settings, transport)
        completions, errors = [], []

        asyncio.run(client.create_streaming_chat_completion(
            MESSAGES,
            on_chunk=lambda c: None,
            on_complete=lambda: completions.append(True),
            on_error=errors.append,
        ))

        assert completions == []
        assert len(errors) == 1
        assert isinstance(errors[0], BackendTransportError)


class TestLifecycle:
    """Health, models and initialization."""

    def test_health_ok(self, settings, mock_transport):
        transport, seen = mock_transport(lambda r: httpx.Response(200, json={"status": "ok"}))
        client = make_client(settings, transport)

        asyncio.run(client.initialize())

        assert client.is_available
        assert seen[0].url.path == "/readyz"

    def test_health_failure(self, settings, mock_transport):
        transport, _ = mock_transport(lambda r: httpx.Response(503))
        client = make_client(settings, transport)

        assert asyncio.run(client.check_health()) is False
        with pytest.raises(BackendTransportError):
            asyncio.run(client.initialize())

    def test_list_models(self, settings, mock_transport):
        transport, _ = mock_transport(
            lambda r: httpx.Response(200, json={"data": [{"id": "narrative-mistral-7b"}]})
        )
        client = make_client(settings, transport)

        assert asyncio.run(client.list_models()) == [{"id": "narrative-mistral-7b"}]


class TestGenerateNarrative:
    """Template rendering plus completion, with optional retry."""

    def test_renders_template(self, settings, mock_transport):
        transport, seen = mock_transport(lambda r: httpx.Response(200, json=completion_body("text")))
        client = make_client(settings, transport)

        asyncio.run(client.generate_narrative("narrative-continuation", {"era": "Old Republic"}))

        body = json.loads(seen[0].content)
        assert len(body["messages"]) == 1
        assert "Old Republic" in body["messages"][0]["content"]
        assert body["max_tokens"] == 1024

    def test_explicit_zero_temperature_kept(self, settings, mock_transport):
        transport, seen = mock_transport(lambda r: httpx.Response(200, json=completion_body("text")))
        client = make_client(settings, transport)

        asyncio.run(client.generate_narrative("narrative-continuation", {}, temperature=0))

        assert json.loads(seen[0].content)["temperature"] == 0

    def test_retry_on_failure(self, settings, mock_transport):
        """One retry at the lower temperature after a transport failure."""
        responses = iter([httpx.Response(500), httpx.Response(200, json=completion_body("ok"))])
        transport, seen = mock_transport(lambda r: next(responses))
        client = make_client(settings, transport)

        result = asyncio.run(client.generate_narrative(
            "narrative-continuation", {}, retry_on_failure=True,
        ))

        assert result == "ok"
        retry = json.loads(seen[1].content)
        assert retry["temperature"] == 0.5
        assert retry["max_tokens"] == 512

    def test_no_retry_by_default(self, settings, mock_transport):
        transport, seen = mock_transport(lambda r: httpx.Response(500))
        client = make_client(settings, transport)

        with pytest.raises(BackendTransportError):
            asyncio.run(client.generate_narrative("narrative-continuation", {}))
        assert len(seen) == 1

    def test_unknown_template(self, settings, mock_transport):
        transport, _ = mock_transport(lambda r: httpx.Response(200, json=completion_body("x")))
        client = make_client(settings, transport)

        with pytest.raises(TemplateNotFoundError):
            asyncio.run(client.generate_narrative("no-such-template", {}))


class TestProcessResponse:
    def test_json_format_repairs(self):
        processed = CompletionClient.process_response("{name: Luke,}", "json")
        assert processed.valid
