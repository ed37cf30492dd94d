"""
Keyword Tier Classifier — Deterministic Floor

Turns text into a tier verdict for one category:

    classify(text, category) -> TierMatchResult

Matching is whole-word and case-insensitive. Keywords are escaped before
compilation so punctuation inside a keyword ("oversight.gov") is literal,
and word-boundary anchoring keeps "mass" from matching "Massachusetts".

Tiers are scanned capture → drift → warning. The first tier with at least
one match decides the status, and every fired keyword of that tier is
reported. No match means Stable.

This classifier is a total function. Empty text, unknown categories and
odd punctuation all produce a result, never an exception.
"""

from __future__ import annotations

import re
import threading
from typing import Iterable, Optional

from driftwatch.keywords import KEYWORD_RULES, iter_tier_keywords
from driftwatch.models import (
    EvidenceItem,
    Status,
    Tier,
    TierMatchResult,
    TIER_SCAN_ORDER,
)


# ============================================================
# MATCHER CACHE
# ============================================================

class MatcherCache:
    """
    Compiled keyword matchers, keyed by keyword.

    Each pattern is compiled once and never replaced, so concurrent
    readers need no lock. The lock only serializes first insertion.
    """

    def __init__(self):
        self._patterns: dict[str, re.Pattern] = {}
        self._lock = threading.Lock()

    @staticmethod
    def compile(keyword: str) -> re.Pattern:
        return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)

    def get(self, keyword: str) -> re.Pattern:
        pattern = self._patterns.get(keyword)
        if pattern is not None:
            return pattern
        with self._lock:
            pattern = self._patterns.get(keyword)
            if pattern is None:
                pattern = self.compile(keyword)
                self._patterns[keyword] = pattern
        return pattern

    def matches(self, text: str, keyword: str) -> bool:
        if not text or not keyword:
            return False
        return self.get(keyword).search(text) is not None

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, keyword: str) -> bool:
        return keyword in self._patterns


# Process-wide cache, shared by the default classifier and scorer
matcher_cache = MatcherCache()


def match_keyword(text: str, keyword: str, cache: Optional[MatcherCache] = None) -> bool:
    """True if ``keyword`` appears in ``text`` as a whole word (case-insensitive)."""
    return (cache or matcher_cache).matches(text, keyword)


# ============================================================
# THE CLASSIFIER
# ============================================================

_REASON_TEMPLATES = {
    Tier.CAPTURE: "Critical warning signs detected: {terms}",
    Tier.DRIFT: "Concerning patterns found: {terms}",
    Tier.WARNING: "Minor issues found: {terms}",
}


class TierClassifier:
    """
    Keyword tier classifier over a fixed vocabulary.

    Holds a reference to a MatcherCache. The default instance shares the
    process-wide cache; tests can pass their own vocabulary and cache.
    """

    def __init__(
        self,
        vocabulary: Optional[dict[str, dict[Tier, list[str]]]] = None,
        cache: Optional[MatcherCache] = None,
    ):
        self._vocabulary = vocabulary if vocabulary is not None else KEYWORD_RULES
        self.cache = cache if cache is not None else matcher_cache

    @property
    def categories(self) -> list[str]:
        return list(self._vocabulary)

    def fired_keywords(self, text: str, category: str) -> dict[Tier, tuple[str, ...]]:
        """Every keyword that fires in ``text``, grouped by tier."""
        fired: dict[Tier, tuple[str, ...]] = {}
        if not text:
            return fired
        for tier, keywords in iter_tier_keywords(category, self._vocabulary):
            hits = tuple(k for k in keywords if self.cache.matches(text, k))
            if hits:
                fired[tier] = hits
        return fired

    def classify(self, text: str, category: str) -> TierMatchResult:
        """Classify one text for one category."""
        if category not in self._vocabulary:
            return TierMatchResult(
                status=Status.STABLE,
                reason=f"No keyword rules configured for '{category}'",
            )
        if not text or not text.strip():
            return TierMatchResult(
                status=Status.STABLE,
                reason="No text to assess",
            )
        return self._decide(self.fired_keywords(text, category))

    def classify_items(
        self, items: Iterable[EvidenceItem], category: str,
    ) -> TierMatchResult:
        """
        Classify a set of evidence items as one body of evidence.

        Each item is matched on its own so that keywords never straddle two
        documents; the fired keywords are then merged, keeping first-seen order.
        """
        items = list(items)
        if category not in self._vocabulary:
            return TierMatchResult(
                status=Status.STABLE,
                reason=f"No keyword rules configured for '{category}'",
            )
        if not items:
            return TierMatchResult(
                status=Status.STABLE,
                reason="No documents to assess",
            )

        merged: dict[Tier, list[str]] = {}
        for item in items:
            for tier, hits in self.fired_keywords(item.content, category).items():
                bucket = merged.setdefault(tier, [])
                for kw in hits:
                    if kw not in bucket:
                        bucket.append(kw)

        return self._decide({t: tuple(kws) for t, kws in merged.items()})

    @staticmethod
    def _decide(fired: dict[Tier, tuple[str, ...]]) -> TierMatchResult:
        for tier in TIER_SCAN_ORDER:
            hits = fired.get(tier)
            if hits:
                return TierMatchResult(
                    status=tier.status,
                    reason=_REASON_TEMPLATES[tier].format(terms=", ".join(hits[:3])),
                    matches=hits,
                    tier_matches=fired,
                )
        return TierMatchResult(
            status=Status.STABLE,
            reason="No warning signs detected",
        )


# ============================================================
# SINGLETON: vocabulary is static for the process lifetime
# ============================================================

tier_classifier = TierClassifier()


def classify(text: str, category: str) -> TierMatchResult:
    """Classify text with the default classifier."""
    return tier_classifier.classify(text, category)
