"""
LLM Provider — Abstract Interface

Every AI call goes through this interface. The engines never import an SDK
directly; they receive a list of providers and treat each one as a
``name`` plus an async ``generate``.

Also home to the JSON extraction helpers. Model output is untrusted text:
it may be wrapped in code fences, prefixed with prose, or cut off. The
helpers return a tagged JsonResult instead of raising, so callers decide
what a parse failure means for them.
"""

from __future__ import annotations

import asyncio
import json
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from driftwatch.errors import ParseError, ProviderError


class LLMProvider(ABC):
    """Abstract base for LLM providers."""

    name: str = "unknown"

    @property
    def model(self) -> str:
        return getattr(self, "_model", "")

    def is_available(self) -> bool:
        """True when the provider is configured well enough to be called."""
        return True

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        """Generate a text response. Raises ProviderError on failure."""
        ...

    async def invoke(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Single-shot completion with default sampling."""
        return await self.generate(prompt=prompt, system_instruction=system_prompt)

    async def generate_json(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1024,
    ) -> dict:
        """Generate and parse a JSON object. Raises ParseError on bad output."""
        text = await self.generate(
            prompt=prompt,
            system_instruction=system_instruction,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )
        return extract_json(text).unwrap()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}:{self.model}>"


@dataclass(frozen=True)
class Completion:
    provider: str
    model: str
    text: str
    latency_ms: int


async def complete(
    provider: LLMProvider,
    prompt: str,
    system_instruction: Optional[str] = None,
    temperature: float = 0.7,
    max_tokens: int = 1024,
    timeout_s: Optional[float] = None,
) -> Completion:
    """
    One provider call under a deadline.

    Timeouts and unexpected SDK exceptions are normalized to ProviderError
    so callers handle a single failure type.
    """
    started = time.monotonic()
    try:
        text = await asyncio.wait_for(
            provider.generate(
                prompt=prompt,
                system_instruction=system_instruction,
                temperature=temperature,
                max_tokens=max_tokens,
                json_mode=True,
            ),
            timeout=timeout_s,
        )
    except ProviderError:
        raise
    except asyncio.TimeoutError as e:
        raise ProviderError(provider.name, f"timed out after {timeout_s}s") from e
    except Exception as e:
        raise ProviderError(provider.name, f"{type(e).__name__}: {e}") from e
    return Completion(
        provider=provider.name,
        model=provider.model,
        text=text or "",
        latency_ms=int((time.monotonic() - started) * 1000),
    )


# ============================================================
# JSON EXTRACTION
# ============================================================

@dataclass(frozen=True)
class JsonResult:
    """Outcome of pulling JSON out of model text."""
    ok: bool
    value: Any = None
    error: str = ""
    raw: str = ""

    def unwrap(self) -> Any:
        if not self.ok:
            raise ParseError(self.error, raw=self.raw)
        return self.value

    @classmethod
    def success(cls, value: Any, raw: str = "") -> "JsonResult":
        return cls(ok=True, value=value, raw=raw)

    @classmethod
    def failure(cls, error: str, raw: str = "") -> "JsonResult":
        return cls(ok=False, error=error, raw=raw)


_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)


def _strip_fences(text: str) -> str:
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _balanced_objects(text: str) -> Iterator[str]:
    """
    Balanced {...} blocks in ``text``, in order of their opening brace.

    Braces inside JSON strings (and escaped quotes inside those strings)
    are skipped so prose like "use {x}" inside a value does not end the
    block early.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    yield text[start: i + 1]
                    break
        start = text.find("{", start + 1)


def extract_json(text: Optional[str]) -> JsonResult:
    """
    Pull the first JSON object out of model output. Never raises.

    Balanced blocks that are not valid JSON (prose like "{see above}") are
    skipped; the error of the first rejected block is reported if none parse.
    """
    if not text or not text.strip():
        return JsonResult.failure("Empty response", raw=text or "")

    first_error = ""
    for candidate in _balanced_objects(_strip_fences(text)):
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError as e:
            first_error = first_error or f"Invalid JSON: {e}"
            continue
        if isinstance(value, dict):
            return JsonResult.success(value, raw=text)

    return JsonResult.failure(first_error or "No JSON object found in response", raw=text)


def parse_model(text: Optional[str], model: Type[BaseModel]) -> JsonResult:
    """Extract JSON and validate it against a pydantic model."""
    result = extract_json(text)
    if not result.ok:
        return result
    try:
        return JsonResult.success(model.model_validate(result.value), raw=result.raw)
    except PydanticValidationError as e:
        return JsonResult.failure(
            f"Response does not match {model.__name__}: {e.error_count()} error(s)",
            raw=result.raw,
        )
