"""
Text generation for the chat assistant.

Two interchangeable providers, Claude (anthropic SDK) and Gemini (google-genai
SDK), both exposing the TextGenerator capability:

    generator = select_generator(user_settings)
    async for chunk in generator.stream_generate(system_prompt, user_text):
        ...
    text = await generator.generate(system_prompt, user_text)

SDK clients are cached per (provider, api key); reset_clients() drops them
after a settings change.
"""
from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Protocol

import anthropic
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from vocab_assistant.config import settings
from vocab_assistant.models.settings import AIProvider, UserSettings

logger = logging.getLogger(__name__)

_clients: dict[tuple[AIProvider, str], Any] = {}


class LLMError(Exception):
    """Base class for text-generation failures."""


class LLMUnavailableError(LLMError):
    """Raised when the selected provider has no API key configured."""


class GenerationError(LLMError):
    """Raised when the provider call itself fails (bad key, quota, network)."""


class TextGenerator(Protocol):
    def stream_generate(self, system_prompt: str, user_text: str) -> AsyncIterator[str]: ...

    async def generate(self, system_prompt: str, user_text: str) -> str: ...


def _cached_client(provider: AIProvider, api_key: str, factory) -> Any:
    key = (provider, api_key)
    if key not in _clients:
        _clients[key] = factory()
    return _clients[key]


def reset_clients() -> None:
    _clients.clear()


class ClaudeGenerator:
    def __init__(self, api_key: str, model: str | None = None, max_tokens: int | None = None):
        if not api_key:
            raise LLMUnavailableError("Claude API key not configured")
        self.model = model or settings.claude_model
        self.max_tokens = max_tokens or settings.max_tokens
        self._client: anthropic.AsyncAnthropic = _cached_client(
            AIProvider.CLAUDE, api_key, lambda: anthropic.AsyncAnthropic(api_key=api_key)
        )

    async def stream_generate(self, system_prompt: str, user_text: str) -> AsyncIterator[str]:
        try:
            async with self._client.messages.stream(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_text}],
            ) as stream:
                async for text in stream.text_stream:
                    yield text
        except anthropic.APIError as e:
            raise GenerationError(f"Claude request failed: {e}") from e

    async def generate(self, system_prompt: str, user_text: str) -> str:
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_text}],
            )
        except anthropic.APIError as e:
            raise GenerationError(f"Claude request failed: {e}") from e
        for block in response.content:
            if block.type == "text":
                return block.text
        return ""


class GeminiGenerator:
    def __init__(self, api_key: str, model: str | None = None, max_tokens: int | None = None):
        if not api_key:
            raise LLMUnavailableError("Gemini API key not configured")
        self.model = model or settings.gemini_model
        self.max_tokens = max_tokens or settings.max_tokens
        self._client: genai.Client = _cached_client(
            AIProvider.GEMINI, api_key, lambda: genai.Client(api_key=api_key)
        )

    def _config(self, system_prompt: str) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig(
            system_instruction=system_prompt,
            max_output_tokens=self.max_tokens,
        )

    async def stream_generate(self, system_prompt: str, user_text: str) -> AsyncIterator[str]:
        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=self.model,
                contents=user_text,
                config=self._config(system_prompt),
            )
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except genai_errors.APIError as e:
            raise GenerationError(f"Gemini request failed: {e}") from e

    async def generate(self, system_prompt: str, user_text: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=user_text,
                config=self._config(system_prompt),
            )
        except genai_errors.APIError as e:
            raise GenerationError(f"Gemini request failed: {e}") from e
        return response.text or ""


def select_generator(user_settings: UserSettings) -> TextGenerator:
    """Pick the provider named in the settings. Raises LLMUnavailableError if its key is missing."""
    if user_settings.ai_provider == AIProvider.CLAUDE:
        return ClaudeGenerator(user_settings.claude_api_key)
    return GeminiGenerator(user_settings.gemini_api_key)


class UnavailableGenerator:
    """Stand-in used when no provider can be built; every call raises the original error."""

    def __init__(self, error: LLMUnavailableError):
        self.error = error

    async def stream_generate(self, system_prompt: str, user_text: str) -> AsyncIterator[str]:
        raise self.error
        yield  # pragma: no cover

    async def generate(self, system_prompt: str, user_text: str) -> str:
        raise self.error
