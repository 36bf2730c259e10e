"""LLM provider abstraction — supports Claude and OpenAI-compatible APIs."""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from config import config
from errors import ValidationError

logger = logging.getLogger("bugle.llm")

MISSING_KEY_MESSAGE = "API key not configured. Set one with /apikey <key>."

# One client per (provider, key): each chat may bring its own key
_provider_instances: dict[tuple[str, str], "LLMProvider"] = {}


class LLMProvider(ABC):
    @abstractmethod
    async def complete(self, prompt: str, max_tokens: int, temperature: float = 0.4) -> str:
        ...


class ClaudeProvider(LLMProvider):
    def __init__(self, api_key: str, model: Optional[str] = None):
        import anthropic
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model or config.llm_model

    async def complete(self, prompt: str, max_tokens: int, temperature: float = 0.4) -> str:
        import anthropic
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.RateLimitError:
            logger.warning("Claude rate limit hit")
            raise
        except anthropic.APIError as e:
            logger.error(f"Claude API error: {e}")
            raise
        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        return text.strip()


class OpenAIProvider(LLMProvider):
    def __init__(self, api_key: str, model: Optional[str] = None):
        import openai
        kwargs = {"api_key": api_key}
        base_url = os.environ.get("OPENAI_BASE_URL")
        if base_url:
            kwargs["base_url"] = base_url
        self._client = openai.AsyncOpenAI(**kwargs)
        self.model = model or config.llm_model

    async def complete(self, prompt: str, max_tokens: int, temperature: float = 0.4) -> str:
        response = await self._client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()


def get_provider(api_key: Optional[str] = None) -> LLMProvider:
    """Cached factory — returns the configured provider bound to api_key.

    Falls back to LLM_API_KEY; raises ValidationError when neither is set.
    """
    key = (api_key or config.llm_api_key or "").strip()
    if not key:
        raise ValidationError(MISSING_KEY_MESSAGE)

    cache_key = (config.llm_provider, key)
    provider = _provider_instances.get(cache_key)
    if provider is None:
        if config.llm_provider == "openai":
            provider = OpenAIProvider(key)
        else:
            provider = ClaudeProvider(key)
        _provider_instances[cache_key] = provider
        logger.info(f"LLM provider: {config.llm_provider} ({config.llm_model})")
    return provider
