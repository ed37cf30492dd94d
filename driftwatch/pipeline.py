"""
Weekly Pipeline

Glue between the engines and the store, for a scheduled job:

    aggregates, cumulative, anomalies = run_weekly("courts", items, store)

Scores every item, upserts the weekly aggregates it touches, records one
trend point per category keyword for the current week (zeros included, so
baselines see quiet weeks), and detects anomalies against the stored
26-week history.

assess_week() pulls items from an EvidenceSource and runs the whole chain
through to an EnhancedAssessment.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Protocol, Sequence

from driftwatch.assessor import Assessor
from driftwatch.keywords import all_keywords
from driftwatch.models import (
    Anomaly,
    CumulativeScore,
    EnhancedAssessment,
    EvidenceItem,
    WeeklyAggregate,
)
from driftwatch.scorer import (
    ScoringWeights,
    cumulative_score,
    parse_date,
    score_documents,
    week_start,
)
from driftwatch.config import settings
from driftwatch.store import ScoreStore
from driftwatch.trends import build_trend_points, count_keywords, detect

logger = logging.getLogger(__name__)


class EvidenceSource(Protocol):
    """Anything that can list a category's evidence for a date range."""

    def list(self, category: str, start: date, end: date) -> list[EvidenceItem]:
        ...


class StaticEvidenceSource:
    """EvidenceSource over a fixed list of items, filtered by publication date."""

    def __init__(self, items: Iterable[EvidenceItem]):
        self._items = list(items)

    def list(self, category: str, start: date, end: date) -> list[EvidenceItem]:
        out = []
        for item in self._items:
            published = parse_date(item.published_at)
            if published is None or start <= published <= end:
                out.append(item)
        return out


def run_weekly(
    category: str,
    items: Sequence[EvidenceItem],
    store: ScoreStore,
    now: Optional[date] = None,
    weights: Optional[ScoringWeights] = None,
) -> tuple[list[WeeklyAggregate], CumulativeScore, list[Anomaly]]:
    weights = weights or settings.scoring_weights()
    current_week = week_start(now or datetime.now(timezone.utc).date())

    scores = score_documents(items, category, weights)
    for score in scores:
        store.save_document_score(score)

    touched = sorted({s.week_of for s in scores})
    aggregates = [store.recompute_week(category, week, weights) for week in touched]

    # Trend points for this week only
    current_items = [item for item, s in zip(items, scores) if s.week_of == current_week]
    counts = count_keywords(current_items, category)
    keywords = all_keywords(category)
    baseline = store.baseline_counts(category, keywords, current_week)
    full_counts = {kw: counts.get(kw, 0) for kw in keywords}
    for point in build_trend_points(full_counts, baseline, category):
        store.save_trend_point(point, current_week)
    anomalies = detect(counts, baseline, category)

    cumulative = cumulative_score(
        store.weekly_aggregates(category, until=current_week),
        now_week=current_week,
        half_life_weeks=weights.half_life_weeks,
        category=category,
    )

    logger.info(
        "Weekly run complete",
        extra={
            "category": category,
            "week_of": current_week.isoformat(),
            "item_count": len(scores),
        },
    )
    return aggregates, cumulative, anomalies


async def assess_week(
    category: str,
    source: EvidenceSource,
    store: ScoreStore,
    assessor: Assessor,
    start: date,
    end: date,
    use_ai: bool = True,
) -> tuple[EnhancedAssessment, CumulativeScore]:
    """Fetch, score, detect and assess one category for [start, end]."""
    items = source.list(category, start, end)
    _, cumulative, anomalies = run_weekly(category, items, store, now=end)
    assessment = await assessor.assess(
        category, items, use_ai=use_ai, trend_anomalies=anomalies,
    )
    return assessment, cumulative
