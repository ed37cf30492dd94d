"""
Evidence Balance & Coverage Tests
"""

from __future__ import annotations

import pytest

from driftwatch.evidence import (
    KEYWORD_COUNTERPOINTS,
    ai_agreement,
    categorize_evidence,
    coverage_factors,
    data_coverage,
    keyword_counterpoints,
)
from driftwatch.models import EvidenceItem, Status, TierMatchResult

CONCERNING = EvidenceItem(id="c", title="Agency defied court order and fired the inspector", agency="GAO")
REASSURING = EvidenceItem(id="r", title="Court upheld independent oversight", agency="Supreme Court")
NEUTRAL = EvidenceItem(id="n", title="Agency publishes annual financial statement")


class TestCategorizeEvidence:

    def test_split(self):
        evidence_for, evidence_against = categorize_evidence([CONCERNING, REASSURING, NEUTRAL], Status.DRIFT)
        assert [n.text for n in evidence_for] == [CONCERNING.title]
        assert [n.text for n in evidence_against] == [REASSURING.title]
        assert evidence_for[0].source == "GAO"

    def test_stable_flips_perspective(self):
        evidence_for, evidence_against = categorize_evidence([CONCERNING, REASSURING], Status.STABLE)
        assert [n.text for n in evidence_for] == [REASSURING.title]
        assert [n.text for n in evidence_against] == [CONCERNING.title]

    def test_capped_at_five(self):
        items = [EvidenceItem(id=str(i), title=f"Official fired in purge {i}") for i in range(8)]
        evidence_for, _ = categorize_evidence(items, Status.CAPTURE)
        assert len(evidence_for) == 5

    def test_stem_matching(self):
        item = EvidenceItem(id="x", title="Agencies cooperated with the review")
        _, evidence_against = categorize_evidence([item], Status.WARNING)
        assert len(evidence_against) == 1


class TestCoverage:

    @pytest.mark.parametrize("n,expected", [(0, 0.0), (1, 0.1), (5, 0.5), (10, 1.0), (40, 1.0)])
    def test_data_coverage(self, n, expected):
        assert data_coverage(n) == pytest.approx(expected)

    def test_monotonic(self):
        values = [data_coverage(n) for n in range(20)]
        assert values == sorted(values)

    def test_ai_agreement(self):
        assert ai_agreement(Status.DRIFT, Status.DRIFT) == 1.0
        assert ai_agreement(Status.DRIFT, Status.CAPTURE) == 0.7
        assert ai_agreement(Status.STABLE, Status.CAPTURE) == 0.2
        assert ai_agreement(Status.DRIFT, None) == 0.5

    def test_factors_bounded(self):
        result = TierMatchResult(status=Status.DRIFT, reason="r", matches=("a", "b", "c", "d"))
        factors = coverage_factors([CONCERNING, REASSURING, NEUTRAL] * 5, result, [Status.DRIFT])
        assert all(0.0 <= v <= 1.0 for v in factors.values())
        assert factors["aiAgreement"] == 1.0
        assert factors["evidenceCoverage"] == 1.0

    def test_factors_empty(self):
        result = TierMatchResult(status=Status.STABLE, reason="none")
        factors = coverage_factors([], result)
        assert factors["keywordDensity"] == 0.0
        assert factors["evidenceCoverage"] == 0.0


class TestKeywordCounterpoints:

    @pytest.mark.parametrize("status", list(Status))
    def test_every_status_has_at_least_two(self, status):
        assert len(keyword_counterpoints(status)) >= 2

    def test_returns_copy(self):
        points = keyword_counterpoints(Status.DRIFT)
        points.append("mutated")
        assert "mutated" not in KEYWORD_COUNTERPOINTS[Status.DRIFT]
