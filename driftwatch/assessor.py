"""
Assessment Merge Coordinator — Top-Level Entry Point

    assessor = Assessor()
    result = await assessor.assess("courts", items)

Pipeline:
  1. Keyword tier classification over every item (the deterministic floor)
  2. AI fan-out to every available provider, concurrently, each call with
     its own deadline. Failures are collected, never raised.
  3. Evidence framing: keyword indicator split merged with AI evidence,
     "how we could be wrong" counterpoints (AI, else keyword-derived)
  4. Data coverage from evidence volume, plus the factor breakdown
  5. Debate, when the status is Drift or Capture
  6. Trend anomalies computed upstream are attached as given

The final status is always the keyword status. AI never weakens it and
never escalates it; disagreement is reported in ``consensus_note``. With
every provider down the result is still a complete, well-formed
assessment, just without AI-derived evidence.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from driftwatch import prompts
from driftwatch.cache import AssessmentCache, CacheKeys
from driftwatch.config import Settings, settings as default_settings
from driftwatch.debate import DebateEngine
from driftwatch.documents import classify_document
from driftwatch.errors import ProviderError, ValidationError
from driftwatch.evidence import (
    MAX_NOTES,
    categorize_evidence,
    coverage_factors,
    data_coverage,
    keyword_counterpoints,
)
from driftwatch.keywords import category_title
from driftwatch.llm import LLMProvider, complete, parse_model
from driftwatch.llm.factory import get_available_providers, select_provider
from driftwatch.models import (
    AIAssessment,
    Anomaly,
    EnhancedAssessment,
    EvidenceItem,
    EvidenceNote,
    Status,
)
from driftwatch.schemas import AIAssessmentResponse, CounterEvidenceResponse, EnhancedAssessmentPayload
from driftwatch.tiers import TierClassifier, tier_classifier

logger = logging.getLogger(__name__)

MAX_PROMPT_ITEMS = 20
MAX_COUNTERPOINTS = 5


@dataclass(frozen=True)
class ProviderOutcome:
    """One provider's assessment attempt: a value or an error, never both."""
    provider: str
    value: Optional[AIAssessment] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class _AIOutput:
    """The cacheable part of an assessment: everything that cost a provider call."""
    outcomes: tuple[ProviderOutcome, ...]
    counterpoints: tuple[str, ...]


def _debate_evidence(items: Sequence[EvidenceItem], limit: int = MAX_PROMPT_ITEMS) -> list[str]:
    lines = []
    for item in items[:limit]:
        line = item.title
        if item.agency:
            line += f" ({item.agency})"
        if item.text:
            line += f": {item.text[:200]}"
        lines.append(line)
    return lines


def _merge_notes(base: list[EvidenceNote], extra: Iterable[str], direction: str) -> tuple[EvidenceNote, ...]:
    merged = list(base)
    seen = {n.text for n in merged}
    for text in extra:
        if text and text not in seen:
            merged.append(EvidenceNote(text=text, direction=direction))
            seen.add(text)
    return tuple(merged[:MAX_NOTES])


class Assessor:
    """
    Produces EnhancedAssessment records.

    Providers, debate engine and cache are injected. Left out, providers
    come from configuration and there is no cache.
    """

    def __init__(
        self,
        providers: Optional[Sequence[LLMProvider]] = None,
        debate_engine: Optional[DebateEngine] = None,
        cache: Optional[AssessmentCache] = None,
        settings: Optional[Settings] = None,
        classifier: Optional[TierClassifier] = None,
    ):
        self.settings = settings or default_settings
        self._providers = list(providers) if providers is not None else None
        self._debate_engine = debate_engine
        self.cache = cache
        self.classifier = classifier or tier_classifier

    @property
    def providers(self) -> list[LLMProvider]:
        if self._providers is None:
            self._providers = get_available_providers(self.settings.PROVIDERS)
        return self._providers

    @property
    def debate_engine(self) -> DebateEngine:
        if self._debate_engine is None:
            self._debate_engine = DebateEngine(
                self.providers,
                timeout_s=self.settings.AI_TIMEOUT_S,
                preferred=self.settings.PREFERRED_PROVIDER,
            )
        return self._debate_engine

    async def assess(
        self,
        category: str,
        items: Iterable[Union[EvidenceItem, dict[str, Any]]],
        *,
        use_ai: bool = True,
        run_debate: bool = True,
        trend_anomalies: Optional[Sequence[Anomaly]] = None,
        now: Optional[datetime] = None,
    ) -> EnhancedAssessment:
        if not category or not str(category).strip():
            raise ValidationError("category is required")
        items = [i if isinstance(i, EvidenceItem) else EvidenceItem.from_dict(i) for i in items]
        assessed_at = (now or datetime.now(timezone.utc)).isoformat()
        started = time.monotonic()

        # 1. Deterministic floor
        keyword_result = self.classifier.classify_items(items, category)
        status = keyword_result.status

        # 2. AI enrichment
        ai = _AIOutput(outcomes=(), counterpoints=())
        if use_ai and self.providers:
            ai = await self._ai_output(category, items, keyword_result)
        successes = [o.value for o in ai.outcomes if o.ok]

        # 3. Evidence framing
        if successes:
            kw_for, kw_against = categorize_evidence(items, status)
            evidence_for = _merge_notes(kw_for, (e for a in successes for e in a.evidence_for), "concerning")
            evidence_against = _merge_notes(kw_against, (e for a in successes for e in a.evidence_against), "reassuring")
        else:
            evidence_for, evidence_against = (), ()
        how_wrong = ai.counterpoints or tuple(keyword_counterpoints(status))

        # 4. Coverage
        coverage = data_coverage(len(items), self.settings.COVERAGE_FULL_AT)
        factors = coverage_factors(
            items, keyword_result, [a.status for a in successes], self.settings.COVERAGE_FULL_AT,
        )

        # 5. Debate
        debate = None
        if use_ai and run_debate:
            debate = await self.debate_engine.run(category, status, _debate_evidence(items))

        lead = successes[0] if successes else None
        result = EnhancedAssessment(
            category=category,
            status=status,
            reason=lead.reasoning if lead and lead.reasoning else keyword_result.reason,
            matches=keyword_result.matches,
            data_coverage=coverage,
            evidence_for=evidence_for,
            evidence_against=evidence_against,
            how_we_could_be_wrong=tuple(how_wrong[:MAX_COUNTERPOINTS]),
            keyword_result=keyword_result,
            assessed_at=assessed_at,
            debate=debate,
            trend_anomalies=tuple(trend_anomalies) if trend_anomalies is not None else None,
            data_coverage_factors=factors,
            ai_results=tuple(successes),
            consensus_note=self._consensus_note(status, successes),
            reviewed_documents=tuple(
                {
                    "id": item.id,
                    "title": item.title,
                    "agency": item.agency,
                    "url": item.url,
                    "documentClass": (item.document_class or classify_document(item)).value,
                }
                for item in items[:MAX_PROMPT_ITEMS]
            ),
        )

        logger.info(
            "Assessment complete",
            extra={
                "category": category,
                "status": status.value,
                "item_count": len(items),
                "duration_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return result

    # ------------------------------------------------------------------
    # AI fan-out
    # ------------------------------------------------------------------

    async def _ai_output(self, category, items, keyword_result) -> _AIOutput:
        key = CacheKeys.assessment(category, keyword_result.status.value, items)
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        prompt = prompts.build_assessment_prompt(
            category,
            category_title(category),
            items[:MAX_PROMPT_ITEMS],
            keyword_result.status.value,
            keyword_result.reason,
        )
        outcomes = await self._fan_out(prompt, category)
        counterpoints = await self._counterpoints(category, keyword_result, outcomes)

        output = _AIOutput(outcomes=outcomes, counterpoints=counterpoints)
        if any(o.ok for o in outcomes):
            await self._cache_set(key, output)
        return output

    def _ordered_providers(self) -> list[LLMProvider]:
        preferred = select_provider(self.providers, self.settings.PREFERRED_PROVIDER)
        rest = [p for p in self.providers if p is not preferred]
        return ([preferred] if preferred else []) + rest

    async def _fan_out(self, prompt: str, category: str) -> tuple[ProviderOutcome, ...]:
        """Ask every provider at once. Results keep preferred-first order."""
        providers = self._ordered_providers()
        outcomes = await asyncio.gather(*(
            self._assess_one(p, prompt, category) for p in providers
        ))
        failed = [o for o in outcomes if not o.ok]
        if failed:
            logger.warning(
                "%d of %d providers failed", len(failed), len(outcomes),
                extra={"category": category, "error": "; ".join(f"{o.provider}: {o.error}" for o in failed)},
            )
        return tuple(outcomes)

    async def _assess_one(self, provider: LLMProvider, prompt: str, category: str) -> ProviderOutcome:
        try:
            completion = await complete(
                provider, prompt,
                system_instruction=prompts.ASSESSMENT_SYSTEM_PROMPT,
                temperature=0.3,
                max_tokens=1024,
                timeout_s=self.settings.AI_TIMEOUT_S,
            )
        except ProviderError as e:
            return ProviderOutcome(provider=provider.name, error=e.message)

        parsed = parse_model(completion.text, AIAssessmentResponse)
        if not parsed.ok:
            logger.warning(
                "Discarding unparseable assessment: %s", parsed.error,
                extra={"category": category, "provider": provider.name},
            )
            return ProviderOutcome(provider=provider.name, error=parsed.error)

        r = parsed.value
        return ProviderOutcome(
            provider=provider.name,
            value=AIAssessment(
                provider=completion.provider,
                model=completion.model,
                status=Status(r.status),
                reasoning=r.reasoning,
                confidence=r.confidence,
                evidence_for=tuple(r.evidence_for),
                evidence_against=tuple(r.evidence_against),
                how_we_could_be_wrong=tuple(r.how_we_could_be_wrong),
                latency_ms=completion.latency_ms,
            ),
        )

    async def _counterpoints(self, category, keyword_result, outcomes) -> tuple[str, ...]:
        """
        Counterpoints from the lead assessment, topped up by a dedicated
        red-team call for Drift/Capture when fewer than two came back.
        """
        successes = [o.value for o in outcomes if o.ok]
        points = tuple(successes[0].how_we_could_be_wrong) if successes else ()
        if len(points) >= 2 or keyword_result.status not in (Status.DRIFT, Status.CAPTURE):
            return points

        succeeded = {a.provider for a in successes}
        candidates = [p for p in self.providers if p.name in succeeded] or self.providers
        provider = select_provider(candidates, self.settings.PREFERRED_PROVIDER)
        if provider is None:
            return points

        try:
            completion = await complete(
                provider,
                prompts.build_counter_evidence_prompt(
                    category_title(category),
                    keyword_result.status.value,
                    keyword_result.reason,
                    list(keyword_result.matches),
                ),
                system_instruction=prompts.COUNTER_EVIDENCE_SYSTEM_PROMPT,
                temperature=0.5,
                max_tokens=512,
                timeout_s=self.settings.AI_TIMEOUT_S,
            )
        except ProviderError as e:
            logger.warning(
                "Counter-evidence request failed: %s", e.message,
                extra={"category": category, "provider": e.provider},
            )
            return points

        parsed = parse_model(completion.text, CounterEvidenceResponse)
        if not parsed.ok or not parsed.value.counter_points:
            return points
        return tuple(parsed.value.counter_points)

    @staticmethod
    def _consensus_note(status: Status, successes: Sequence[AIAssessment]) -> Optional[str]:
        if not successes:
            return None
        agree = [a.provider for a in successes if a.status == status]
        disagree = [a for a in successes if a.status != status]
        if not disagree:
            names = ", ".join(agree)
            return f"Both keyword analysis and AI ({names}) agree: {status.value}"
        views = "; ".join(f"AI ({a.provider}) says {a.status.value}" for a in disagree)
        return f"Keyword analysis says {status.value}, {views}. Using keyword result as baseline."

    # ------------------------------------------------------------------
    # Cache (optional; failures never affect the result)
    # ------------------------------------------------------------------

    async def _cache_get(self, key: str) -> Optional[_AIOutput]:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.warning("Cache read failed: %s", e, extra={"cache_key": key, "error_type": type(e).__name__})
            return None

    async def _cache_set(self, key: str, value: _AIOutput) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(key, value)
        except Exception as e:
            logger.warning("Cache write failed: %s", e, extra={"cache_key": key, "error_type": type(e).__name__})


# ============================================================
# OUTPUT SCHEMA
# ============================================================

def to_payload(assessment: EnhancedAssessment) -> dict[str, Any]:
    """Serialize to the camelCase output shape, validated."""
    kw = assessment.keyword_result
    debate = assessment.debate
    data: dict[str, Any] = {
        "category": assessment.category,
        "status": assessment.status.value,
        "reason": assessment.reason,
        "matches": list(assessment.matches),
        "dataCoverage": assessment.data_coverage,
        "dataCoverageFactors": dict(assessment.data_coverage_factors),
        "evidenceFor": [_note(n) for n in assessment.evidence_for],
        "evidenceAgainst": [_note(n) for n in assessment.evidence_against],
        "howWeCouldBeWrong": list(assessment.how_we_could_be_wrong),
        "keywordResult": {
            "status": kw.status.value,
            "reason": kw.reason,
            "matches": list(kw.matches),
            "tierMatches": {t.value: list(k) for t, k in kw.tier_matches.items()},
        },
        "assessedAt": assessment.assessed_at,
        "aiResults": [
            {
                "provider": a.provider,
                "model": a.model,
                "status": a.status.value,
                "reasoning": a.reasoning,
                "confidence": a.confidence,
                "latencyMs": a.latency_ms,
            }
            for a in assessment.ai_results
        ],
        "reviewedDocuments": [dict(d) for d in assessment.reviewed_documents],
    }
    if assessment.consensus_note is not None:
        data["consensusNote"] = assessment.consensus_note
    if debate is not None:
        data["debate"] = {
            "category": debate.category,
            "status": debate.status.value,
            "outcome": debate.outcome,
            "messages": [
                {
                    "role": m.role,
                    "content": m.content,
                    "provider": m.provider,
                    "model": m.model,
                    "round": m.round,
                    "latencyMs": m.latency_ms,
                    "degraded": m.degraded,
                }
                for m in debate.messages
            ],
            "verdict": None if debate.verdict is None else {
                "agreementLevel": debate.verdict.agreement_level,
                "verdict": debate.verdict.verdict,
                "summary": debate.verdict.summary,
                "keyPoints": list(debate.verdict.key_points),
            },
            "degraded": debate.degraded,
            "reason": debate.reason,
            "startedAt": debate.started_at,
            "completedAt": debate.completed_at,
            "totalLatencyMs": debate.total_latency_ms,
        }
    if assessment.trend_anomalies is not None:
        data["trendAnomalies"] = [
            {
                "keyword": a.keyword,
                "category": a.category,
                "ratio": a.ratio,
                "severity": a.severity,
                "message": a.message,
                "detectedAt": a.detected_at,
            }
            for a in assessment.trend_anomalies
        ]
    validate_payload(data)
    return data


def _note(note: EvidenceNote) -> dict[str, Any]:
    out = {"text": note.text, "direction": note.direction}
    if note.source:
        out["source"] = note.source
    return out


def validate_payload(data: dict[str, Any]) -> EnhancedAssessmentPayload:
    """Check a payload against the output schema. Unknown keys pass through."""
    try:
        return EnhancedAssessmentPayload.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid assessment payload: {e.error_count()} error(s)") from e
