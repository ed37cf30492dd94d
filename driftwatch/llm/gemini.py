"""
Gemini Provider — Google Gemini API implementation.

Uses the google.genai SDK. Client is lazily initialized, so the engine
loads without an API key and only fails on an actual call.

Features:
- Model fallback chain: primary model → gemini-2.5-flash on failure
- Circuit breaker: after consecutive failures, fail fast for 60s
- Exponential backoff retry on transient errors

Every failure leaves this module as a ProviderError.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from google import genai
from google.genai import types

from driftwatch.config import settings
from driftwatch.errors import ProviderError
from driftwatch.llm import LLMProvider

logger = logging.getLogger(__name__)

FALLBACK_MODEL = "gemini-2.5-flash"

# Circuit breaker settings
_CB_FAILURE_THRESHOLD = 3   # Open after this many consecutive failures
_CB_RECOVERY_TIMEOUT = 60   # Seconds before trying again (half-open)

_TRANSIENT_MARKERS = (
    "429", "503", "500", "rate", "quota", "timeout",
    "connection", "unavailable", "overloaded",
)


def is_transient(error: Exception) -> bool:
    text = str(error).lower()
    return any(k in text for k in _TRANSIENT_MARKERS)


class CircuitBreaker:
    """Simple circuit breaker: closed → open → half-open → closed.

    When open, calls fail immediately so the assessor can fall back to the
    keyword result instead of waiting for the provider to time out.
    """

    def __init__(
        self,
        failure_threshold: int = _CB_FAILURE_THRESHOLD,
        recovery_timeout: float = _CB_RECOVERY_TIMEOUT,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._failures = 0
        self._last_failure_time: float = 0
        self._state = "closed"  # closed | open | half-open

    @property
    def state(self) -> str:
        if self._state == "open":
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = "half-open"
        return self._state

    def record_success(self) -> None:
        self._failures = 0
        self._state = "closed"

    def record_failure(self) -> None:
        self._failures += 1
        self._last_failure_time = time.monotonic()
        if self._failures >= self.failure_threshold:
            self._state = "open"
            logger.warning(
                "Circuit breaker OPEN after %d consecutive failures, failing fast for %ds",
                self._failures, self.recovery_timeout,
                extra={"provider": "gemini"},
            )

    @property
    def is_open(self) -> bool:
        return self.state == "open"


class GeminiProvider(LLMProvider):
    """Google Gemini provider with fallback and circuit breaker."""

    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self._api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self._model = model or settings.GEMINI_MODEL
        self._client: Optional[genai.Client] = None
        self.circuit_breaker = CircuitBreaker()

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise ProviderError(self.name, "GEMINI_API_KEY not set")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def _call_model(
        self,
        model: str,
        prompt: str,
        config: types.GenerateContentConfig,
        max_retries: int = 3,
    ) -> str:
        """Call a specific model with retry on transient errors."""
        client = self._get_client()
        for attempt in range(max_retries):
            try:
                response = await client.aio.models.generate_content(
                    model=model,
                    contents=prompt,
                    config=config,
                )
                return response.text or ""
            except Exception as e:
                if is_transient(e) and attempt < max_retries - 1:
                    await asyncio.sleep(2 ** attempt)
                    continue
                raise
        raise ProviderError(self.name, f"{model} exhausted {max_retries} attempts")

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        if self.circuit_breaker.is_open:
            raise ProviderError(self.name, "circuit breaker open")

        config = types.GenerateContentConfig(
            temperature=temperature,
            system_instruction=system_instruction,
            max_output_tokens=max_tokens,
        )
        if json_mode:
            config.response_mime_type = "application/json"

        try:
            result = await self._call_model(self._model, prompt, config, max_retries=2)
            self.circuit_breaker.record_success()
            return result
        except ProviderError:
            self.circuit_breaker.record_failure()
            raise
        except Exception as primary_err:
            if self._model == FALLBACK_MODEL:
                self.circuit_breaker.record_failure()
                raise ProviderError(self.name, str(primary_err)) from primary_err

            logger.warning(
                "Primary model %s failed (%s), falling back to %s",
                self._model, primary_err, FALLBACK_MODEL,
                extra={"provider": self.name, "model": self._model},
            )
            try:
                result = await self._call_model(FALLBACK_MODEL, prompt, config, max_retries=1)
            except Exception as fallback_err:
                logger.error(
                    "Fallback model %s also failed: %s",
                    FALLBACK_MODEL, fallback_err,
                    extra={"provider": self.name, "model": FALLBACK_MODEL},
                )
                self.circuit_breaker.record_failure()
                raise ProviderError(self.name, str(fallback_err)) from primary_err
            self.circuit_breaker.record_success()
            return result
