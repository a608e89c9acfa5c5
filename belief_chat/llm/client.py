"""
Reply Generator abstraction over hosted text models.

Provides an async interface for interviewer replies with:
- Structured logging of requests/responses
- Timeout handling (mapped to GeneratorTimeoutError)
- Usage tracking (tokens)

Supported providers:
- openai: Chat Completions API (or any OpenAI-compatible endpoint)
- anthropic: Claude Messages API
- offline: never calls a model; every turn uses the fallback pool

Adapters make exactly one attempt. Retries and the overall deadline belong to
the ConversationDirector.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import time

import httpx
import structlog

from belief_chat.core.config import settings
from belief_chat.core.exceptions import (
    ConfigurationError,
    GeneratorTimeoutError,
    GeneratorUnavailableError,
)

log = structlog.get_logger(__name__)


OPENAI_DEFAULTS = dict(
    model="gpt-4o-mini",
    base_url="https://api.openai.com/v1",
)

ANTHROPIC_DEFAULTS = dict(
    model="claude-sonnet-4-6",
    base_url="https://api.anthropic.com/v1",
)


# =============================================================================
# Base Class
# =============================================================================


class ReplyGenerator(ABC):
    """Abstract base for interviewer reply providers."""

    provider_name: str = "unknown"

    @abstractmethod
    async def generate(self, prompt: str, history: List[Dict[str, str]]) -> str:
        """
        Produce the next interviewer reply.

        Args:
            prompt: System prompt assembled for this turn
            history: Ordered {"role", "content"} messages, oldest first

        Returns:
            Reply text (non-empty)

        Raises:
            GeneratorTimeoutError: The call exceeded its deadline
            GeneratorUnavailableError: Transport error or unusable response
        """
        pass


def _chat_messages(history: List[Dict[str, str]]) -> List[Dict[str, str]]:
    """History in chat format, guaranteed to start with a user turn."""
    messages = [
        {"role": m["role"], "content": m["content"]}
        for m in history
        if m.get("content")
    ]
    # Chat APIs reject a conversation that opens with an assistant turn
    if messages and messages[0]["role"] == "assistant":
        messages.insert(0, {"role": "user", "content": "Hello"})
    return messages


class HttpReplyGenerator(ReplyGenerator):
    """Shared request/response handling for hosted providers."""

    def __init__(
        self,
        model: str,
        base_url: str,
        api_key: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        log.info(
            "reply_generator_initialized",
            provider=self.provider_name,
            model=self.model,
            timeout=self.timeout,
        )

    @abstractmethod
    def _request(self, prompt: str, history: List[Dict[str, str]]) -> tuple:
        """Return (url, headers, payload) for one call."""

    @abstractmethod
    def _parse(self, data: Dict[str, Any]) -> tuple:
        """Return (content, usage) from a decoded response body."""

    async def generate(self, prompt: str, history: List[Dict[str, str]]) -> str:
        url, headers, payload = self._request(prompt, history)
        start = time.perf_counter()

        log.debug(
            "generator_call_start",
            provider=self.provider_name,
            model=self.model,
            prompt_length=len(prompt),
            history_length=len(history),
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=headers, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            log.warning(
                "generator_timeout",
                provider=self.provider_name,
                timeout_seconds=self.timeout,
            )
            raise GeneratorTimeoutError(
                f"{self.provider_name} call timed out (timeout={self.timeout}s)"
            ) from e
        except httpx.HTTPStatusError as e:
            log.error(
                "generator_http_error",
                provider=self.provider_name,
                status_code=e.response.status_code,
            )
            raise GeneratorUnavailableError(
                f"{self.provider_name} returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            log.error(
                "generator_transport_error",
                provider=self.provider_name,
                error=str(e),
            )
            raise GeneratorUnavailableError(
                f"{self.provider_name} request failed: {e}"
            ) from e

        try:
            content, usage = self._parse(data)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            log.error(
                "generator_malformed_response",
                provider=self.provider_name,
                error=str(e),
            )
            raise GeneratorUnavailableError(
                f"{self.provider_name} returned a malformed response"
            ) from e
        if not isinstance(content, str) or not content.strip():
            raise GeneratorUnavailableError(f"{self.provider_name} returned an empty reply")

        latency_ms = (time.perf_counter() - start) * 1000
        log.info(
            "generator_call_complete",
            provider=self.provider_name,
            model=data.get("model") or self.model,
            latency_ms=round(latency_ms, 2),
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
        )
        return content.strip()


# =============================================================================
# OpenAI Generator
# =============================================================================


class OpenAIReplyGenerator(HttpReplyGenerator):
    """Chat Completions client (works with OpenAI-compatible endpoints)."""

    provider_name = "openai"

    def _request(self, prompt, history):
        messages = [{"role": "system", "content": prompt}]
        messages.extend(_chat_messages(history))
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        return f"{self.base_url}/chat/completions", headers, payload

    def _parse(self, data):
        content = ""
        if data.get("choices"):
            content = (data["choices"][0].get("message") or {}).get("content") or ""
        # Some compatible endpoints send "usage": null
        raw_usage = data.get("usage") or {}
        usage = {
            "input_tokens": raw_usage.get("prompt_tokens", 0),
            "output_tokens": raw_usage.get("completion_tokens", 0),
        }
        return content, usage


# =============================================================================
# Anthropic Generator
# =============================================================================


class AnthropicReplyGenerator(HttpReplyGenerator):
    """Anthropic Messages API client."""

    provider_name = "anthropic"

    def _request(self, prompt, history):
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": prompt,
            "messages": _chat_messages(history),
            "temperature": self.temperature,
        }
        headers = {
            "x-api-key": self.api_key,
            "content-type": "application/json",
            "anthropic-version": "2023-06-01",
        }
        return f"{self.base_url}/messages", headers, payload

    def _parse(self, data):
        content = ""
        if data.get("content"):
            content = data["content"][0].get("text") or ""
        raw_usage = data.get("usage") or {}
        usage = {
            "input_tokens": raw_usage.get("input_tokens", 0),
            "output_tokens": raw_usage.get("output_tokens", 0),
        }
        return content, usage


# =============================================================================
# Offline Generator
# =============================================================================


class OfflineReplyGenerator(ReplyGenerator):
    """Generator that is always unavailable, so the fallback pool answers."""

    provider_name = "offline"

    async def generate(self, prompt: str, history: List[Dict[str, str]]) -> str:
        raise GeneratorUnavailableError("Reply generation is disabled (offline provider)")


# =============================================================================
# Factory
# =============================================================================


def get_reply_generator(provider: Optional[str] = None) -> ReplyGenerator:
    """
    Build the configured Reply Generator.

    Args:
        provider: Override for settings.generator_provider

    Returns:
        ReplyGenerator instance

    Raises:
        ConfigurationError: If the provider is unknown or its API key is missing
    """
    provider = provider or settings.generator_provider

    if provider == "offline":
        return OfflineReplyGenerator()

    common = dict(
        temperature=settings.generator_temperature,
        max_tokens=settings.generator_max_tokens,
        timeout=settings.generator_timeout,
    )

    if provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY not configured. Set it in .env.")
        return OpenAIReplyGenerator(
            model=settings.generator_model or OPENAI_DEFAULTS["model"],
            base_url=settings.generator_base_url or OPENAI_DEFAULTS["base_url"],
            api_key=settings.openai_api_key,
            **common,
        )
    elif provider == "anthropic":
        if not settings.anthropic_api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY not configured. Set it in .env.")
        return AnthropicReplyGenerator(
            model=settings.generator_model or ANTHROPIC_DEFAULTS["model"],
            base_url=settings.generator_base_url or ANTHROPIC_DEFAULTS["base_url"],
            api_key=settings.anthropic_api_key,
            **common,
        )
    else:
        raise ConfigurationError(
            f"Unknown generator provider '{provider}'. "
            "Supported providers: openai, anthropic, offline"
        )
