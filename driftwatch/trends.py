"""
Trend Anomaly Detector

Compares this period's keyword frequencies against a rolling baseline of
weekly counts and flags keywords that spiked:

    ratio = current / max(baseline_mean, EPSILON)

    ratio >= 5  → high
    ratio >= 3  → medium
    ratio >= 2  → low
    otherwise   → not anomalous, dropped

Keywords are judged independently. There is no cross-keyword correlation.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Mapping, Optional, Sequence

from driftwatch.keywords import all_keywords
from driftwatch.models import Anomaly, EvidenceItem, TrendPoint
from driftwatch.tiers import MatcherCache, matcher_cache

logger = logging.getLogger(__name__)


BASELINE_WINDOW_WEEKS = 26

# Floor for the baseline mean so a keyword with no history gets a large
# but finite ratio.
EPSILON = 0.1

SEVERITY_THRESHOLDS: list[tuple[float, str]] = [
    (5.0, "high"),
    (3.0, "medium"),
    (2.0, "low"),
]


# ============================================================
# STATISTICS
# ============================================================

def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def stddev(values: Sequence[float]) -> float:
    """Sample standard deviation (N-1). Zero for fewer than two values."""
    n = len(values)
    if n < 2:
        return 0.0
    m = mean(values)
    return math.sqrt(sum((v - m) ** 2 for v in values) / (n - 1))


def baseline_window(
    history: Iterable[tuple[date, int]],
    as_of: date,
    weeks: int = BASELINE_WINDOW_WEEKS,
) -> list[int]:
    """
    Weekly counts inside the rolling window ending before ``as_of``.

    The week of ``as_of`` itself is the current period and is excluded.
    """
    start = as_of - timedelta(weeks=weeks)
    return [count for week, count in sorted(history) if start <= week < as_of]


def severity_for(ratio: float) -> Optional[str]:
    for threshold, severity in SEVERITY_THRESHOLDS:
        if ratio >= threshold:
            return severity
    return None


# ============================================================
# TREND POINTS & DETECTION
# ============================================================

def build_trend_points(
    current_counts: Mapping[str, int],
    baseline_counts: Mapping[str, Sequence[int]],
    category: str,
) -> list[TrendPoint]:
    points = []
    for keyword, current in current_counts.items():
        baseline = list(baseline_counts.get(keyword, ()))
        m = mean(baseline)
        points.append(TrendPoint(
            keyword=keyword,
            category=category,
            current_count=current,
            baseline_mean=m,
            baseline_stddev=stddev(baseline),
            ratio=current / max(m, EPSILON),
        ))
    return points


def _message(point: TrendPoint) -> str:
    return (
        f'"{point.keyword}" appeared {point.current_count} times '
        f"({point.ratio:.1f}x above baseline of {point.baseline_mean:.1f}) "
        f"in {point.category}"
    )


def detect(
    current_counts: Mapping[str, int],
    baseline_counts: Mapping[str, Sequence[int]],
    category: str = "",
    detected_at: Optional[str] = None,
) -> list[Anomaly]:
    """
    Flag keywords whose current count is at least twice their baseline mean.

    Output is sorted by ratio (highest first), then keyword.
    """
    stamp = detected_at or datetime.now(timezone.utc).isoformat()
    anomalies = []
    for point in build_trend_points(current_counts, baseline_counts, category):
        severity = severity_for(point.ratio)
        if severity is None:
            continue
        anomalies.append(Anomaly(
            keyword=point.keyword,
            category=category,
            ratio=point.ratio,
            severity=severity,
            message=_message(point),
            detected_at=stamp,
        ))

    anomalies.sort(key=lambda a: (-a.ratio, a.keyword))
    if anomalies:
        logger.info(
            "Trend anomalies detected",
            extra={"category": category, "item_count": len(anomalies)},
        )
    return anomalies


def count_keywords(
    items: Iterable[EvidenceItem],
    category: str,
    cache: Optional[MatcherCache] = None,
) -> dict[str, int]:
    """Number of items mentioning each category keyword (whole-word)."""
    cache = cache or matcher_cache
    items = list(items)
    counts: dict[str, int] = {}
    for keyword in all_keywords(category):
        n = sum(1 for item in items if cache.matches(item.content, keyword))
        if n:
            counts[keyword] = n
    return counts
