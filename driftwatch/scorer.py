"""
Severity & Cumulative Scoring Engine

Three layers, each a pure function of the one below it:

  Document:   severity = capture_w * log2(captures + 1)
                       + drifts * drift_w
                       + warnings * warning_w
              final    = severity * class_multiplier[document_class]

  Week:       aggregate = Σ final over the category's documents in that
              Monday-aligned week, summed in document-id order

  Cumulative: Σ aggregate(w) * 0.5 ** ((now_week - w) / half_life)
              summed chronologically, recomputed on demand

The capture term grows logarithmically: 1 capture → 4.0, 2 → 6.34,
3 → 8.0, 4 → 9.29 with default weights. Drift and warning terms are linear.

Weights and multipliers are configuration (see config.Settings), not
hard-coded truths.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Union

from driftwatch.documents import classify_document
from driftwatch.errors import ValidationError
from driftwatch.keywords import (
    NEGATION_PATTERNS,
    NEGATION_WINDOW_AFTER,
    NEGATION_WINDOW_BEFORE,
    suppression_rules_for,
)
from driftwatch.models import (
    CumulativeScore,
    DocumentClass,
    DocumentScore,
    EvidenceItem,
    KeywordMatch,
    SuppressedMatch,
    Tier,
    WeeklyAggregate,
)
from driftwatch.tiers import TierClassifier, tier_classifier


# ============================================================
# WEIGHTS
# ============================================================

DEFAULT_CLASS_MULTIPLIERS: dict[DocumentClass, float] = {
    DocumentClass.EXECUTIVE_ORDER: 1.5,
    DocumentClass.PRESIDENTIAL_MEMORANDUM: 1.4,
    DocumentClass.FINAL_RULE: 1.3,
    DocumentClass.PROPOSED_RULE: 1.0,
    DocumentClass.NOTICE: 0.5,
    DocumentClass.COURT_OPINION: 1.3,
    DocumentClass.REPORT: 1.2,
    DocumentClass.PRESS_RELEASE: 0.7,
    DocumentClass.UNKNOWN: 1.0,
}

DEFAULT_HALF_LIFE_WEEKS = 8.0


@dataclass(frozen=True)
class ScoringWeights:
    """Tunable scoring parameters."""
    capture_weight: float = 4.0
    drift_weight: float = 2.0
    warning_weight: float = 1.0
    half_life_weeks: float = DEFAULT_HALF_LIFE_WEEKS
    class_multipliers: dict[DocumentClass, float] = field(
        default_factory=lambda: dict(DEFAULT_CLASS_MULTIPLIERS)
    )

    def tier_weight(self, tier: Tier) -> float:
        return {
            Tier.CAPTURE: self.capture_weight,
            Tier.DRIFT: self.drift_weight,
            Tier.WARNING: self.warning_weight,
        }[tier]

    def multiplier(self, document_class: DocumentClass) -> float:
        return self.class_multipliers.get(
            document_class, self.class_multipliers.get(DocumentClass.UNKNOWN, 1.0),
        )


DEFAULT_WEIGHTS = ScoringWeights()


def compute_severity_score(
    capture_count: int,
    drift_count: int,
    warning_count: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Severity from tier counts, with diminishing returns on captures."""
    capture_score = weights.capture_weight * math.log2(capture_count + 1)
    drift_score = drift_count * weights.drift_weight
    warning_score = warning_count * weights.warning_weight
    return capture_score + drift_score + warning_score


# ============================================================
# WEEKS
# ============================================================

DateLike = Union[date, datetime, str]


def parse_date(value: Optional[DateLike]) -> Optional[date]:
    """ISO string, date or datetime → date. Unparseable → None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def week_start(value: DateLike) -> date:
    """Monday of the week containing ``value``."""
    d = parse_date(value)
    if d is None:
        raise ValidationError(f"Not a date: {value!r}")
    return d - timedelta(days=d.weekday())


def weeks_between(earlier: date, later: date) -> float:
    """Whole weeks from ``earlier``'s week to ``later``'s week."""
    return (week_start(later) - week_start(earlier)).days / 7


def week_ranges(start: DateLike, end: DateLike) -> list[tuple[date, date]]:
    """
    Split [start, end] into Monday-aligned spans, inclusive at both ends.

    Spans run Monday through Sunday. A start that is not a Monday yields a
    short first span ending on Sunday; the final span stops at ``end``.
    """
    first = parse_date(start)
    last = parse_date(end)
    if first is None or last is None:
        raise ValidationError(f"Invalid date range: {start!r} .. {end!r}")

    ranges: list[tuple[date, date]] = []
    current = first
    while current <= last:
        span_end = week_start(current) + timedelta(days=6)
        ranges.append((current, min(span_end, last)))
        current = span_end + timedelta(days=1)
    return ranges


# ============================================================
# DOCUMENT SCORING
# ============================================================

def _extract_context(text: str, keyword: str, radius: int = 50) -> str:
    lower = text.lower()
    idx = lower.find(keyword.lower())
    if idx == -1:
        return text[: radius * 2]
    start = max(0, idx - radius)
    end = min(len(text), idx + len(keyword) + radius)
    context = text[start:end]
    if start > 0:
        context = "..." + context
    if end < len(text):
        context = context + "..."
    return context


def _check_negation(text: str, keyword: str) -> Optional[str]:
    """Return the negation phrase found near ``keyword``, if any."""
    lower = text.lower()
    idx = lower.find(keyword.lower())
    if idx == -1:
        return None
    window = lower[max(0, idx - NEGATION_WINDOW_BEFORE): idx + len(keyword) + NEGATION_WINDOW_AFTER]
    for phrase in NEGATION_PATTERNS:
        if phrase in window:
            return phrase
    return None


def _check_suppression(text: str, keyword: str, category: str) -> tuple[str, str, str]:
    """
    Returns (action, rule, reason) where action is
    "suppress", "downweight" or "" (no rule applies).
    """
    lower = text.lower()
    for rule in suppression_rules_for(category, keyword):
        for term in rule.suppress_if_any:
            if term in lower:
                return (
                    "suppress",
                    f"suppress_if_any: {rule.keyword}",
                    f'Co-occurring term "{term}" indicates non-concerning context',
                )
        for term in rule.downweight_if_any:
            if term in lower:
                return (
                    "downweight",
                    f"downweight_if_any: {rule.keyword}",
                    f'Co-occurring term "{term}" suggests reduced severity',
                )
    return "", "", ""


def score_document(
    item: EvidenceItem,
    category: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    classifier: Optional[TierClassifier] = None,
    scored_on: Optional[date] = None,
) -> DocumentScore:
    """
    Score one evidence item for one category.

    Every fired keyword counts (not just the winning tier). Matches inside a
    negation window or cancelled by a suppression rule are recorded as
    suppressed and do not count; downweighted matches drop one tier.
    """
    classifier = classifier or tier_classifier
    text = item.content
    doc_class = item.document_class or classify_document(item)
    multiplier = weights.multiplier(doc_class)

    matches: list[KeywordMatch] = []
    suppressed: list[SuppressedMatch] = []

    for tier, keywords in classifier.fired_keywords(text, category).items():
        for keyword in keywords:
            negation = _check_negation(text, keyword)
            if negation:
                suppressed.append(SuppressedMatch(
                    keyword=keyword,
                    tier=tier,
                    rule=f"negation: {negation}",
                    reason=f'Negation pattern "{negation}" found near keyword',
                ))
                continue

            action, rule, reason = _check_suppression(text, keyword, category)
            if action == "suppress":
                suppressed.append(SuppressedMatch(keyword, tier, rule, reason))
                continue

            effective = tier.downgraded() if action == "downweight" else tier
            matches.append(KeywordMatch(
                keyword=keyword,
                tier=effective,
                context=_extract_context(text, keyword),
            ))

    capture = sum(1 for m in matches if m.tier == Tier.CAPTURE)
    drift = sum(1 for m in matches if m.tier == Tier.DRIFT)
    warning = sum(1 for m in matches if m.tier == Tier.WARNING)

    severity = compute_severity_score(capture, drift, warning, weights)
    published = parse_date(item.published_at) or scored_on or datetime.now(timezone.utc).date()

    return DocumentScore(
        document_id=item.id,
        category=category,
        severity_score=severity,
        final_score=severity * multiplier,
        document_class=doc_class,
        class_multiplier=multiplier,
        week_of=week_start(published),
        capture_count=capture,
        drift_count=drift,
        warning_count=warning,
        matches=tuple(matches),
        suppressed=tuple(suppressed),
    )


def score_documents(
    items: Iterable[EvidenceItem],
    category: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    classifier: Optional[TierClassifier] = None,
) -> list[DocumentScore]:
    return [score_document(item, category, weights, classifier) for item in items]


# ============================================================
# WEEKLY AGGREGATION
# ============================================================

def compute_proportions(
    capture: int, drift: int, warning: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> dict[str, float]:
    total = capture + drift + warning
    if total == 0:
        return {
            "capture_proportion": 0.0,
            "drift_proportion": 0.0,
            "warning_proportion": 0.0,
            "severity_mix": 0.0,
        }
    cp, dp, wp = capture / total, drift / total, warning / total
    return {
        "capture_proportion": cp,
        "drift_proportion": dp,
        "warning_proportion": wp,
        "severity_mix": (
            cp * weights.capture_weight
            + dp * weights.drift_weight
            + wp * weights.warning_weight
        ),
    }


def aggregate_week(
    scores: Iterable[DocumentScore],
    category: str,
    week_of: DateLike,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    top_n: int = 10,
) -> WeeklyAggregate:
    """
    Aggregate the category's document scores for one week.

    Scores from other categories or weeks are ignored. Summation runs in
    document-id order so a recompute over the same scores is bit-identical
    apart from computed_at, which equality ignores.
    """
    week = week_start(week_of)
    in_week = sorted(
        (s for s in scores if s.category == category and s.week_of == week),
        key=lambda s: s.document_id,
    )

    total = 0.0
    for s in in_week:
        total += s.final_score

    capture = sum(s.capture_count for s in in_week)
    drift = sum(s.drift_count for s in in_week)
    warning = sum(s.warning_count for s in in_week)
    suppressed = sum(s.suppressed_count for s in in_week)

    keyword_counts = Counter(m.keyword for s in in_week for m in s.matches)
    top = sorted(keyword_counts.items(), key=lambda kv: (-kv[1], kv[0]))[:top_n]

    return WeeklyAggregate(
        category=category,
        week_of=week,
        aggregate_score=total,
        item_count=len(in_week),
        capture_match_count=capture,
        drift_match_count=drift,
        warning_match_count=warning,
        suppressed_match_count=suppressed,
        top_keywords=tuple(k for k, _ in top),
        computed_at=datetime.now(timezone.utc).isoformat(),
        **compute_proportions(capture, drift, warning, weights),
    )


def aggregate_by_week(
    scores: Iterable[DocumentScore],
    category: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[WeeklyAggregate]:
    """One aggregate per week that has documents, chronological."""
    scores = [s for s in scores if s.category == category]
    weeks = sorted({s.week_of for s in scores})
    return [aggregate_week(scores, category, w, weights) for w in weeks]


# ============================================================
# CUMULATIVE SCORE
# ============================================================

def cumulative_score(
    aggregates: Iterable[WeeklyAggregate],
    now_week: Optional[DateLike] = None,
    half_life_weeks: float = DEFAULT_HALF_LIFE_WEEKS,
    category: Optional[str] = None,
) -> CumulativeScore:
    """
    Time-decayed total of weekly aggregates as of ``now_week``.

    Weeks after ``now_week`` are ignored. ``now_week`` defaults to the
    latest aggregate's week. Aggregates must belong to one category and be
    unique per week.
    """
    if half_life_weeks <= 0:
        raise ValidationError("half_life_weeks must be positive")

    weeks = sorted(aggregates, key=lambda a: a.week_of)
    categories = {a.category for a in weeks}
    if len(categories) > 1:
        raise ValidationError(f"Aggregates span several categories: {sorted(categories)}")
    seen: set[date] = set()
    for a in weeks:
        if a.week_of in seen:
            raise ValidationError(f"Duplicate weekly aggregate for {a.category} {a.week_of}")
        seen.add(a.week_of)

    category = category or (weeks[0].category if weeks else "")
    now = week_start(now_week) if now_week is not None else (weeks[-1].week_of if weeks else None)
    if now is not None:
        weeks = [a for a in weeks if a.week_of <= now]

    if not weeks:
        return CumulativeScore(
            category=category,
            as_of=now,
            decay_weighted_score=0.0,
            half_life_weeks=half_life_weeks,
        )

    running_sum = 0.0
    decayed = 0.0
    high_water = weeks[0].aggregate_score
    high_week = weeks[0].week_of
    for a in weeks:
        running_sum += a.aggregate_score
        if a.aggregate_score > high_water:
            high_water = a.aggregate_score
            high_week = a.week_of
        age = weeks_between(a.week_of, now)
        decayed += a.aggregate_score * 0.5 ** (age / half_life_weeks)

    current = weeks[-1].aggregate_score if weeks[-1].week_of == now else 0.0

    return CumulativeScore(
        category=category,
        as_of=now,
        decay_weighted_score=decayed,
        half_life_weeks=half_life_weeks,
        running_sum=running_sum,
        running_average=running_sum / len(weeks),
        week_count=len(weeks),
        high_water_mark=high_water,
        high_water_week=high_week,
        current_week_score=current,
    )
