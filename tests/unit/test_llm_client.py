"""Tests for Reply Generator adapters."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from belief_chat.core.exceptions import (
    ConfigurationError,
    GeneratorTimeoutError,
    GeneratorUnavailableError,
)
from belief_chat.llm.client import (
    AnthropicReplyGenerator,
    OfflineReplyGenerator,
    OpenAIReplyGenerator,
    get_reply_generator,
)

HISTORY = [
    {"role": "assistant", "content": "Hi! How did your view change?"},
    {"role": "user", "content": "My friend showed me the data"},
]


def make_generator(cls, **overrides):
    params = dict(
        model="test-model",
        base_url="https://example.test/v1",
        api_key="test-key",
        temperature=0.7,
        max_tokens=300,
        timeout=30.0,
    )
    params.update(overrides)
    return cls(**params)


def mock_http(MockClient, payload=None, post_side_effect=None, status_error=None):
    """Wire a patched httpx.AsyncClient to return `payload` from post()."""
    mock_client = AsyncMock()
    response = MagicMock()
    response.json.return_value = payload
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    else:
        response.raise_for_status = MagicMock()
    if post_side_effect is not None:
        mock_client.post.side_effect = post_side_effect
    else:
        mock_client.post.return_value = response
    MockClient.return_value.__aenter__.return_value = mock_client
    return mock_client


class TestOpenAIReplyGenerator:
    """Tests for OpenAIReplyGenerator."""

    @pytest.mark.asyncio
    async def test_generate_success(self):
        payload = {
            "choices": [{"message": {"content": "  What did the data show you?  "}}],
            "model": "test-model",
            "usage": {"prompt_tokens": 12, "completion_tokens": 7},
        }
        with patch("httpx.AsyncClient") as MockClient:
            mock_client = mock_http(MockClient, payload)
            generator = make_generator(OpenAIReplyGenerator)

            reply = await generator.generate("SYSTEM PROMPT", HISTORY)

        assert reply == "What did the data show you?"
        url = mock_client.post.call_args.args[0]
        body = mock_client.post.call_args.kwargs["json"]
        headers = mock_client.post.call_args.kwargs["headers"]
        assert url == "https://example.test/v1/chat/completions"
        assert headers["Authorization"] == "Bearer test-key"
        assert body["messages"][0] == {"role": "system", "content": "SYSTEM PROMPT"}
        # Chat history must open with a user turn
        assert body["messages"][1]["role"] == "user"
        assert body["messages"][-1] == HISTORY[-1]

    @pytest.mark.asyncio
    async def test_timeout_maps_to_generator_timeout(self):
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, post_side_effect=httpx.ReadTimeout("slow"))
            generator = make_generator(OpenAIReplyGenerator)

            with pytest.raises(GeneratorTimeoutError):
                await generator.generate("prompt", HISTORY)

    @pytest.mark.asyncio
    async def test_http_error_maps_to_unavailable(self):
        request = httpx.Request("POST", "https://example.test/v1/chat/completions")
        error = httpx.HTTPStatusError(
            "server error", request=request, response=httpx.Response(503, request=request)
        )
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, payload={}, status_error=error)
            generator = make_generator(OpenAIReplyGenerator)

            with pytest.raises(GeneratorUnavailableError, match="503"):
                await generator.generate("prompt", HISTORY)

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_unavailable(self):
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, post_side_effect=httpx.ConnectError("refused"))
            generator = make_generator(OpenAIReplyGenerator)

            with pytest.raises(GeneratorUnavailableError):
                await generator.generate("prompt", HISTORY)

    @pytest.mark.asyncio
    async def test_empty_reply_is_unavailable(self):
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, {"choices": [{"message": {"content": "   "}}]})
            generator = make_generator(OpenAIReplyGenerator)

            with pytest.raises(GeneratorUnavailableError):
                await generator.generate("prompt", HISTORY)

    @pytest.mark.asyncio
    async def test_null_usage_is_tolerated(self):
        payload = {
            "choices": [{"message": {"content": "Hello there"}}],
            "usage": None,
        }
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, payload)
            generator = make_generator(OpenAIReplyGenerator)

            reply = await generator.generate("prompt", HISTORY)

        assert reply == "Hello there"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            ["not", "an", "object"],
            {"choices": ["not an object"]},
            {"choices": [{"message": {"content": ["text"]}}]},
        ],
    )
    async def test_malformed_body_is_unavailable(self, payload):
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, payload)
            generator = make_generator(OpenAIReplyGenerator)

            with pytest.raises(GeneratorUnavailableError):
                await generator.generate("prompt", HISTORY)

    @pytest.mark.asyncio
    async def test_single_attempt_only(self):
        with patch("httpx.AsyncClient") as MockClient:
            mock_client = mock_http(MockClient, post_side_effect=httpx.ReadTimeout("slow"))
            generator = make_generator(OpenAIReplyGenerator)

            with pytest.raises(GeneratorTimeoutError):
                await generator.generate("prompt", HISTORY)

        assert mock_client.post.call_count == 1


class TestAnthropicReplyGenerator:
    """Tests for AnthropicReplyGenerator."""

    @pytest.mark.asyncio
    async def test_generate_success(self):
        payload = {
            "content": [{"type": "text", "text": "How did that feel?"}],
            "model": "test-model",
            "usage": {"input_tokens": 10, "output_tokens": 5},
        }
        with patch("httpx.AsyncClient") as MockClient:
            mock_client = mock_http(MockClient, payload)
            generator = make_generator(AnthropicReplyGenerator)

            reply = await generator.generate("SYSTEM PROMPT", HISTORY)

        assert reply == "How did that feel?"
        body = mock_client.post.call_args.kwargs["json"]
        headers = mock_client.post.call_args.kwargs["headers"]
        assert mock_client.post.call_args.args[0] == "https://example.test/v1/messages"
        assert headers["x-api-key"] == "test-key"
        assert body["system"] == "SYSTEM PROMPT"
        assert body["messages"][0]["role"] == "user"

    @pytest.mark.asyncio
    async def test_null_usage_is_tolerated(self):
        payload = {"content": [{"type": "text", "text": "Go on."}], "usage": None}
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, payload)
            generator = make_generator(AnthropicReplyGenerator)

            assert await generator.generate("prompt", HISTORY) == "Go on."

    @pytest.mark.asyncio
    async def test_malformed_body_is_unavailable(self):
        with patch("httpx.AsyncClient") as MockClient:
            mock_http(MockClient, {"content": [None]})
            generator = make_generator(AnthropicReplyGenerator)

            with pytest.raises(GeneratorUnavailableError):
                await generator.generate("prompt", HISTORY)


class TestOfflineReplyGenerator:
    @pytest.mark.asyncio
    async def test_always_unavailable(self):
        with pytest.raises(GeneratorUnavailableError):
            await OfflineReplyGenerator().generate("prompt", HISTORY)


class TestGetReplyGenerator:
    """Tests for the factory."""

    def test_offline(self):
        assert isinstance(get_reply_generator("offline"), OfflineReplyGenerator)

    def test_openai_requires_key(self):
        with patch("belief_chat.llm.client.settings") as mock_settings:
            mock_settings.openai_api_key = None
            with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
                get_reply_generator("openai")

    def test_anthropic_requires_key(self):
        with patch("belief_chat.llm.client.settings") as mock_settings:
            mock_settings.anthropic_api_key = None
            with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
                get_reply_generator("anthropic")

    def test_openai_uses_settings(self):
        with patch("belief_chat.llm.client.settings") as mock_settings:
            mock_settings.openai_api_key = "sk-test"
            mock_settings.generator_model = None
            mock_settings.generator_base_url = "http://localhost:9999/v1/"
            mock_settings.generator_timeout = 12.0
            mock_settings.generator_temperature = 0.5
            mock_settings.generator_max_tokens = 200

            generator = get_reply_generator("openai")

        assert isinstance(generator, OpenAIReplyGenerator)
        assert generator.model == "gpt-4o-mini"
        assert generator.base_url == "http://localhost:9999/v1"
        assert generator.timeout == 12.0

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unknown generator provider"):
            get_reply_generator("kimi")
