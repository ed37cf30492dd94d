"""
Debate Arbitration Engine

A structured, adversarial review for categories already flagged as Drift
or Capture. Two independent providers argue, a third seat judges:

    OPENING_PROSECUTION → OPENING_DEFENSE → REBUTTAL_PROSECUTION
        → REBUTTAL_DEFENSE → ARBITRATION → DONE

Stages are strictly sequential: every prompt is built from the previous
turn. The transcript is an immutable value; each stage returns a new one.

Failure handling differs by kind:
  - a turn that does not parse   → neutral placeholder, debate continues,
                                   result flagged degraded
  - a provider that fails or     → debate aborted, outcome
    times out                      "insufficient_providers"
  - an unreadable verdict        → neutral verdict (5, mixed), degraded

A debate never has fewer than two distinct providers. One model arguing
both sides is not a debate.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence, Union

from driftwatch import prompts
from driftwatch.cache import AssessmentCache, CacheKeys
from driftwatch.config import settings
from driftwatch.errors import InsufficientDataError, ProviderError
from driftwatch.llm import LLMProvider, complete, parse_model
from driftwatch.llm.factory import PREFERRED_PROVIDER, select_provider
from driftwatch.models import (
    DebateMessage,
    DebateResult,
    DebateVerdict,
    Status,
)
from driftwatch.schemas import DebateTurnResponse, DebateVerdictResponse

logger = logging.getLogger(__name__)

ELIGIBLE_STATUSES = (Status.DRIFT, Status.CAPTURE)

PLACEHOLDER_ARGUMENT = (
    "[No usable argument was produced for this turn. "
    "The debate continues without it.]"
)

NEUTRAL_VERDICT = DebateVerdict(
    agreement_level=5,
    verdict="mixed",
    summary="The arbitrator's verdict could not be read; treating the debate as inconclusive.",
    key_points=(
        "Arbitration output was unreadable",
        "Neither side's case is weighted over the other",
    ),
)

MIN_KEY_POINTS = 2
MAX_KEY_POINTS = 4

# Debates are cached per six-hour window
DEBATE_WINDOW_S = 6 * 60 * 60


class DebateStage(str, Enum):
    OPENING_PROSECUTION = "opening_prosecution"
    OPENING_DEFENSE = "opening_defense"
    REBUTTAL_PROSECUTION = "rebuttal_prosecution"
    REBUTTAL_DEFENSE = "rebuttal_defense"
    ARBITRATION = "arbitration"
    DONE = "done"

    def next(self) -> "DebateStage":
        order = list(DebateStage)
        return order[min(order.index(self) + 1, len(order) - 1)]


# ============================================================
# TRANSCRIPT
# ============================================================

@dataclass(frozen=True)
class Transcript:
    """Messages so far. Appending returns a new transcript."""
    messages: tuple[DebateMessage, ...] = ()

    def append(self, message: DebateMessage) -> "Transcript":
        return Transcript(self.messages + (message,))

    def last(self, role: str) -> Optional[DebateMessage]:
        for message in reversed(self.messages):
            if message.role == role:
                return message
        return None

    @property
    def degraded(self) -> bool:
        return any(m.degraded for m in self.messages)

    @property
    def total_latency_ms(self) -> int:
        return sum(m.latency_ms for m in self.messages)

    def __len__(self) -> int:
        return len(self.messages)


@dataclass(frozen=True)
class _Seats:
    prosecutor: LLMProvider
    defense: LLMProvider

    @property
    def arbitrator(self) -> LLMProvider:
        return self.prosecutor


def _normalize_key_points(points: Sequence[str], summary: str) -> tuple[str, ...]:
    """At most four points; pad from the summary's sentences if under two."""
    cleaned = [p.strip() for p in points if p and p.strip()][:MAX_KEY_POINTS]
    if len(cleaned) < MIN_KEY_POINTS:
        for sentence in re.split(r"(?<=[.!?])\s+", summary or ""):
            sentence = sentence.strip()
            if sentence and sentence not in cleaned:
                cleaned.append(sentence)
            if len(cleaned) >= MIN_KEY_POINTS:
                break
    for filler in NEUTRAL_VERDICT.key_points:
        if len(cleaned) >= MIN_KEY_POINTS:
            break
        if filler not in cleaned:
            cleaned.append(filler)
    return tuple(cleaned)


# ============================================================
# THE ENGINE
# ============================================================

class DebateEngine:
    """
    Runs one debate per (category, status) call.

    Providers are injected; the engine never builds its own. Pass a cache to
    reuse a completed debate within the same six-hour window.
    """

    def __init__(
        self,
        providers: Sequence[LLMProvider],
        timeout_s: Optional[float] = None,
        preferred: str = PREFERRED_PROVIDER,
        cache: Optional[AssessmentCache] = None,
    ):
        self.providers = list(providers)
        self.timeout_s = timeout_s if timeout_s is not None else settings.AI_TIMEOUT_S
        self.preferred = preferred
        self.cache = cache

    @staticmethod
    def is_eligible(status: Status) -> bool:
        return status in ELIGIBLE_STATUSES

    def assign_seats(self) -> _Seats:
        """Prosecutor is the preferred provider; defense is a different one."""
        available = [p for p in self.providers if p.is_available()]
        prosecutor = select_provider(available, self.preferred)
        defense = next(
            (p for p in available if prosecutor is not None and p.name != prosecutor.name),
            None,
        )
        if prosecutor is None or defense is None:
            raise InsufficientDataError(
                f"Debate needs two distinct providers, have {len({p.name for p in available})}"
            )
        return _Seats(prosecutor=prosecutor, defense=defense)

    async def run(
        self,
        category: str,
        status: Union[Status, str],
        evidence: Sequence[str],
    ) -> DebateResult:
        status = Status(status)
        started_at = datetime.now(timezone.utc).isoformat()

        if not self.is_eligible(status):
            return DebateResult(
                category=category,
                status=status,
                outcome="skipped",
                reason=f"Debates run only for Drift or Capture, status is {status.value}",
                started_at=started_at,
                completed_at=started_at,
            )

        try:
            seats = self.assign_seats()
        except InsufficientDataError as e:
            logger.info(
                "Debate skipped: %s", e,
                extra={"category": category, "outcome": "insufficient_providers"},
            )
            return DebateResult(
                category=category,
                status=status,
                outcome="insufficient_providers",
                reason=str(e),
                started_at=started_at,
                completed_at=started_at,
            )

        cache_key = CacheKeys.debate(
            category, status.value, evidence, int(time.time()) // DEBATE_WINDOW_S,
        )
        if self.cache is not None:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return cached

        transcript = Transcript()
        verdict: Optional[DebateVerdict] = None
        verdict_degraded = False
        stage = DebateStage.OPENING_PROSECUTION

        try:
            while stage != DebateStage.DONE:
                if stage == DebateStage.ARBITRATION:
                    transcript, verdict, verdict_degraded = await self._arbitrate(
                        seats, category, status, transcript,
                    )
                else:
                    transcript = await self._debate_turn(
                        stage, seats, category, status, evidence, transcript,
                    )
                stage = stage.next()
        except ProviderError as e:
            logger.warning(
                "Debate aborted at %s: %s", stage.value, e,
                extra={
                    "category": category,
                    "stage": stage.value,
                    "provider": e.provider,
                    "outcome": "insufficient_providers",
                },
            )
            return DebateResult(
                category=category,
                status=status,
                outcome="insufficient_providers",
                messages=transcript.messages,
                degraded=True,
                reason=f"{e.provider} failed during {stage.value}: {e.message}",
                started_at=started_at,
                completed_at=datetime.now(timezone.utc).isoformat(),
                total_latency_ms=transcript.total_latency_ms,
            )

        result = DebateResult(
            category=category,
            status=status,
            outcome="completed",
            messages=transcript.messages,
            verdict=verdict,
            degraded=transcript.degraded or verdict_degraded,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
            total_latency_ms=transcript.total_latency_ms,
        )
        logger.info(
            "Debate completed",
            extra={
                "category": category,
                "status": status.value,
                "outcome": result.outcome,
                "duration_ms": result.total_latency_ms,
            },
        )
        if self.cache is not None:
            await self.cache.set(cache_key, result)
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _debate_turn(
        self,
        stage: DebateStage,
        seats: _Seats,
        category: str,
        status: Status,
        evidence: Sequence[str],
        transcript: Transcript,
    ) -> Transcript:
        if stage == DebateStage.OPENING_PROSECUTION:
            role, provider, system = "prosecutor", seats.prosecutor, prompts.PROSECUTOR_SYSTEM_PROMPT
            prompt = prompts.build_prosecutor_opening_prompt(category, status.value, evidence)
            max_tokens = 500
        elif stage == DebateStage.OPENING_DEFENSE:
            role, provider, system = "defense", seats.defense, prompts.DEFENSE_SYSTEM_PROMPT
            prompt = prompts.build_defense_opening_prompt(
                category, status.value, evidence, transcript.last("prosecutor").content,
            )
            max_tokens = 500
        elif stage == DebateStage.REBUTTAL_PROSECUTION:
            role, provider, system = "prosecutor", seats.prosecutor, prompts.PROSECUTOR_SYSTEM_PROMPT
            prompt = prompts.build_prosecutor_rebuttal_prompt(transcript.last("defense").content)
            max_tokens = 400
        elif stage == DebateStage.REBUTTAL_DEFENSE:
            role, provider, system = "defense", seats.defense, prompts.DEFENSE_SYSTEM_PROMPT
            prompt = prompts.build_defense_rebuttal_prompt(transcript.last("prosecutor").content)
            max_tokens = 400
        else:
            raise ValueError(f"Not a debater stage: {stage}")

        completion = await complete(
            provider, prompt,
            system_instruction=system,
            temperature=0.7,
            max_tokens=max_tokens,
            timeout_s=self.timeout_s,
        )

        parsed = parse_model(completion.text, DebateTurnResponse)
        if parsed.ok:
            content, degraded = parsed.value.argument.strip(), False
        else:
            logger.warning(
                "Unparseable %s turn, substituting placeholder: %s", role, parsed.error,
                extra={"category": category, "stage": stage.value, "provider": provider.name},
            )
            content, degraded = PLACEHOLDER_ARGUMENT, True

        return transcript.append(DebateMessage(
            role=role,
            content=content,
            provider=completion.provider,
            model=completion.model,
            round=len(transcript) + 1,
            latency_ms=completion.latency_ms,
            degraded=degraded,
        ))

    async def _arbitrate(
        self,
        seats: _Seats,
        category: str,
        status: Status,
        transcript: Transcript,
    ) -> tuple[Transcript, DebateVerdict, bool]:
        provider = seats.arbitrator
        completion = await complete(
            provider,
            prompts.build_arbitrator_prompt(category, status.value, transcript.messages),
            system_instruction=prompts.ARBITRATOR_SYSTEM_PROMPT,
            temperature=0.3,
            max_tokens=500,
            timeout_s=self.timeout_s,
        )

        parsed = parse_model(completion.text, DebateVerdictResponse)
        if parsed.ok:
            v = parsed.value
            verdict = DebateVerdict(
                agreement_level=v.agreement_level,
                verdict=v.verdict,
                summary=v.summary.strip(),
                key_points=_normalize_key_points(v.key_points, v.summary),
            )
            degraded = False
        else:
            logger.warning(
                "Unparseable verdict, using neutral verdict: %s", parsed.error,
                extra={"category": category, "stage": DebateStage.ARBITRATION.value, "provider": provider.name},
            )
            verdict, degraded = NEUTRAL_VERDICT, True

        message = DebateMessage(
            role="arbitrator",
            content=completion.text,
            provider=completion.provider,
            model=completion.model,
            round=len(transcript) + 1,
            latency_ms=completion.latency_ms,
            degraded=degraded,
        )
        return transcript.append(message), verdict, degraded
