"""
LLM Provider factory and selection.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from driftwatch.config import settings
from driftwatch.llm import LLMProvider

logger = logging.getLogger(__name__)

PREFERRED_PROVIDER = "anthropic"


def get_provider(provider_name: str = "gemini") -> LLMProvider:
    """Factory — returns the named LLM provider."""
    if provider_name == "gemini":
        from driftwatch.llm.gemini import GeminiProvider
        return GeminiProvider()
    elif provider_name == "anthropic":
        from driftwatch.llm.anthropic import AnthropicProvider
        return AnthropicProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")


def get_available_providers(names: Optional[Iterable[str]] = None) -> list[LLMProvider]:
    """Configured providers that have credentials, in the order given.

    Unknown names are logged and skipped; a misconfigured provider list
    leaves the keyword floor working.
    """
    providers = []
    for name in names if names is not None else settings.PROVIDERS:
        try:
            provider = get_provider(name)
        except ValueError as e:
            logger.warning("Skipping provider: %s", e, extra={"provider": name, "error_type": "ValueError"})
            continue
        if provider.is_available():
            providers.append(provider)
        else:
            logger.info("Provider not configured, skipping", extra={"provider": name})
    return providers


def select_provider(
    providers: Sequence[LLMProvider],
    preferred: str = PREFERRED_PROVIDER,
) -> Optional[LLMProvider]:
    """The preferred provider if present, else the first one."""
    for provider in providers:
        if provider.name == preferred:
            return provider
    return providers[0] if providers else None
