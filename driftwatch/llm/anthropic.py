"""
Anthropic Provider — Claude via the anthropic SDK.

Preferred provider for assessment and the prosecutor seat in debates.
Client is created lazily on first call.
"""

from __future__ import annotations

import logging
from typing import Optional

from anthropic import AsyncAnthropic, APIError

from driftwatch.config import settings
from driftwatch.errors import ProviderError
from driftwatch.llm import LLMProvider

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API provider."""

    name = "anthropic"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self._api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self._model = model or settings.ANTHROPIC_MODEL
        self._client: Optional[AsyncAnthropic] = None

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            if not self._api_key:
                raise ProviderError(self.name, "ANTHROPIC_API_KEY not set")
            self._client = AsyncAnthropic(api_key=self._api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        client = self._get_client()
        kwargs = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_instruction:
            kwargs["system"] = system_instruction

        try:
            response = await client.messages.create(**kwargs)
        except APIError as e:
            logger.warning(
                "Anthropic call failed: %s", e,
                extra={"provider": self.name, "model": self._model, "error_type": type(e).__name__},
            )
            raise ProviderError(self.name, str(e)) from e

        # Join text blocks; tool_use and other block types carry no text
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        ).strip()
