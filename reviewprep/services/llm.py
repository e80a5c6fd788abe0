"""Streaming text generation backed by OpenAI or Anthropic."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Optional, Protocol

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from reviewprep.config.settings import settings

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Submit one prompt, receive a finite, non-restartable stream of text deltas."""

    def stream(self, prompt: str, *, temperature: float) -> AsyncIterator[str]:
        ...


class OpenAITextGenerator:
    """Chat completions with `stream=True`; an OpenAI-compatible proxy works via base_url."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        key = api_key or settings.OPENAI_API_KEY
        if client is None and not key:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER is 'openai'")
        self._client = client or AsyncOpenAI(api_key=key, base_url=base_url or settings.OPENAI_BASE_URL)
        self._model = model or settings.OPENAI_MODEL
        self._max_tokens = max_tokens or settings.LLM_MAX_TOKENS

    async def stream(self, prompt: str, *, temperature: float) -> AsyncIterator[str]:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            stream=True,
            temperature=temperature,
            max_tokens=self._max_tokens,
        )
        async for chunk in response:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta


class AnthropicTextGenerator:
    """Messages API streaming via `messages.stream`."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        client: Optional[AsyncAnthropic] = None,
    ) -> None:
        key = api_key or settings.ANTHROPIC_API_KEY
        if client is None and not key:
            raise ValueError("ANTHROPIC_API_KEY is required when LLM_PROVIDER is 'anthropic'")
        self._client = client or AsyncAnthropic(api_key=key)
        self._model = model or settings.ANTHROPIC_MODEL
        self._max_tokens = max_tokens or settings.LLM_MAX_TOKENS

    async def stream(self, prompt: str, *, temperature: float) -> AsyncIterator[str]:
        async with self._client.messages.stream(
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        ) as response:
            async for text in response.text_stream:
                if text:
                    yield text


def create_text_generator(provider: Optional[str] = None) -> TextGenerator:
    """Build the generator configured by `LLM_PROVIDER`."""
    selected = (provider or settings.LLM_PROVIDER).lower()
    if selected == "openai":
        return OpenAITextGenerator()
    if selected == "anthropic":
        return AnthropicTextGenerator()
    raise ValueError(f"Unsupported LLM provider: {selected}")
