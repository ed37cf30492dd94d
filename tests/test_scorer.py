"""
Scoring Engine Tests

Tests:
  1. Severity formula (log capture term, linear drift/warning)
  2. Document scoring: class multiplier, negation, suppression, downweight
  3. Week boundaries
  4. Weekly aggregation: idempotence, order independence, filtering
  5. Cumulative score: decay monotonicity, validation, derived views
"""

from __future__ import annotations

import math
import random
from dataclasses import replace
from datetime import date, timedelta

import pytest

from driftwatch.errors import ValidationError
from driftwatch.models import DocumentClass, DocumentScore, EvidenceItem, Tier, WeeklyAggregate
from driftwatch.scorer import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    aggregate_by_week,
    aggregate_week,
    compute_severity_score,
    cumulative_score,
    score_document,
    week_ranges,
    week_start,
)

MONDAY = date(2025, 3, 3)


def _score(doc_id: str, final: float, week: date = MONDAY, category: str = "courts") -> DocumentScore:
    return DocumentScore(
        document_id=doc_id,
        category=category,
        severity_score=final,
        final_score=final,
        document_class=DocumentClass.UNKNOWN,
        class_multiplier=1.0,
        week_of=week,
    )


def _agg(week: date, score: float, category: str = "courts") -> WeeklyAggregate:
    return WeeklyAggregate(category=category, week_of=week, aggregate_score=score, item_count=1)


# ============================================================
# SEVERITY FORMULA
# ============================================================

class TestSeverityScore:

    def test_zero(self):
        assert compute_severity_score(0, 0, 0) == 0.0

    def test_single_capture(self):
        assert compute_severity_score(1, 0, 0) == pytest.approx(4.0)

    def test_capture_diminishing_returns(self):
        assert compute_severity_score(2, 0, 0) == pytest.approx(4 * math.log2(3))
        assert compute_severity_score(3, 0, 0) == pytest.approx(8.0)
        one = compute_severity_score(1, 0, 0)
        two = compute_severity_score(2, 0, 0)
        assert two < 2 * one

    def test_linear_terms(self):
        assert compute_severity_score(0, 3, 0) == pytest.approx(6.0)
        assert compute_severity_score(0, 0, 5) == pytest.approx(5.0)

    def test_combined(self):
        assert compute_severity_score(1, 2, 3) == pytest.approx(4 + 4 + 3)

    def test_custom_weights(self):
        w = ScoringWeights(capture_weight=10, drift_weight=1, warning_weight=0)
        assert compute_severity_score(1, 1, 1, w) == pytest.approx(11.0)


# ============================================================
# DOCUMENT SCORING
# ============================================================

class TestScoreDocument:

    def test_counts_every_fired_keyword(self):
        item = EvidenceItem(
            id="d1",
            title="Contempt of court after preliminary injunction",
            published_at="2025-03-05",
        )
        s = score_document(item, "courts")
        assert s.capture_count == 1
        assert s.warning_count == 1
        assert s.severity_score == pytest.approx(4.0 + 1.0)

    def test_class_multiplier_applied(self):
        item = EvidenceItem(
            id="d2",
            title="Order on delayed compliance",
            document_type="Presidential Document",
            published_at="2025-03-05",
        )
        s = score_document(item, "courts")
        assert s.document_class == DocumentClass.EXECUTIVE_ORDER
        assert s.class_multiplier == 1.5
        assert s.final_score == pytest.approx(s.severity_score * 1.5)

    def test_notice_discounted(self):
        item = EvidenceItem(id="d3", title="Funding freeze", document_type="Notice", published_at="2025-03-05")
        s = score_document(item, "fiscal")
        assert s.final_score == pytest.approx(s.severity_score * 0.5)

    def test_week_of_is_monday(self):
        item = EvidenceItem(id="d4", title="Funding freeze", published_at="2025-03-08T17:00:00Z")
        assert score_document(item, "fiscal").week_of == MONDAY

    def test_negation_suppresses(self):
        item = EvidenceItem(
            id="d5",
            title="Review found no evidence of illegal impoundment at the agency",
            published_at="2025-03-05",
        )
        s = score_document(item, "fiscal")
        suppressed = {m.keyword for m in s.suppressed}
        assert "illegal impoundment" in suppressed
        assert all(m.keyword != "illegal impoundment" for m in s.matches)
        assert s.suppressed[0].rule.startswith("negation")

    def test_suppression_rule(self):
        item = EvidenceItem(
            id="d6",
            title="Troops deployed domestically for hurricane response",
            published_at="2025-03-05",
        )
        s = score_document(item, "military")
        assert s.capture_count == 0
        assert any(m.rule.startswith("suppress_if_any") for m in s.suppressed)

    def test_downweight_drops_one_tier(self):
        item = EvidenceItem(
            id="d7",
            title="Agency held in contempt of court on procedural grounds",
            published_at="2025-03-05",
        )
        s = score_document(item, "courts")
        assert s.capture_count == 0
        assert [m.tier for m in s.matches if m.keyword == "contempt of court"] == [Tier.DRIFT]

    def test_no_matches_scores_zero(self):
        item = EvidenceItem(id="d8", title="Office supply contract", published_at="2025-03-05")
        s = score_document(item, "fiscal")
        assert s.final_score == 0.0
        assert s.matches == ()


# ============================================================
# WEEKS
# ============================================================

class TestWeeks:

    @pytest.mark.parametrize("day", range(7))
    def test_week_start_is_monday(self, day):
        assert week_start(MONDAY + timedelta(days=day)) == MONDAY

    def test_week_start_accepts_iso_string(self):
        assert week_start("2025-03-09") == MONDAY

    def test_week_start_rejects_garbage(self):
        with pytest.raises(ValidationError):
            week_start("not a date")

    def test_ranges_inclusive_with_short_tail(self):
        ranges = week_ranges(MONDAY, MONDAY + timedelta(days=16))
        assert ranges == [
            (MONDAY, MONDAY + timedelta(days=6)),
            (MONDAY + timedelta(days=7), MONDAY + timedelta(days=13)),
            (MONDAY + timedelta(days=14), MONDAY + timedelta(days=16)),
        ]

    def test_ranges_single_day(self):
        assert week_ranges(MONDAY, MONDAY) == [(MONDAY, MONDAY)]

    def test_ranges_non_monday_start(self):
        wednesday = MONDAY + timedelta(days=2)
        ranges = week_ranges(wednesday, MONDAY + timedelta(days=13))
        assert ranges[0] == (wednesday, MONDAY + timedelta(days=6))
        assert ranges[1][0].weekday() == 0

    def test_ranges_empty_when_reversed(self):
        assert week_ranges(MONDAY + timedelta(days=3), MONDAY) == []


# ============================================================
# WEEKLY AGGREGATION
# ============================================================

class TestAggregateWeek:

    def test_sums_final_scores(self):
        scores = [_score("a", 1.5), _score("b", 2.25), _score("c", 4.0)]
        agg = aggregate_week(scores, "courts", MONDAY)
        assert agg.aggregate_score == pytest.approx(7.75)
        assert agg.item_count == 3

    def test_idempotent(self):
        scores = [_score(f"d{i}", 0.1 * i + 1 / 3) for i in range(50)]
        first = aggregate_week(scores, "courts", MONDAY)
        second = aggregate_week(scores, "courts", MONDAY)
        assert first.aggregate_score == second.aggregate_score
        assert first == second

    def test_stamped_with_computed_at(self):
        agg = aggregate_week([_score("a", 1.0)], "courts", MONDAY)
        assert agg.computed_at
        assert agg == replace(agg, computed_at="")

    def test_input_order_does_not_matter(self):
        scores = [_score(f"d{i:03d}", 0.1 * i + 1 / 7) for i in range(100)]
        shuffled = list(scores)
        random.Random(42).shuffle(shuffled)
        assert (
            aggregate_week(scores, "courts", MONDAY).aggregate_score
            == aggregate_week(shuffled, "courts", MONDAY).aggregate_score
        )

    def test_filters_other_weeks_and_categories(self):
        scores = [
            _score("a", 2.0),
            _score("b", 5.0, week=MONDAY + timedelta(days=7)),
            _score("c", 7.0, category="fiscal"),
        ]
        agg = aggregate_week(scores, "courts", MONDAY + timedelta(days=3))
        assert agg.aggregate_score == 2.0
        assert agg.week_of == MONDAY

    def test_empty_week(self):
        agg = aggregate_week([], "courts", MONDAY)
        assert agg.aggregate_score == 0.0
        assert agg.item_count == 0
        assert agg.severity_mix == 0.0

    def test_proportions_and_top_keywords(self):
        items = [
            EvidenceItem(id="1", title="Contempt of court; judicial review", published_at="2025-03-04"),
            EvidenceItem(id="2", title="Judicial review pending", published_at="2025-03-05"),
        ]
        scores = [score_document(i, "courts") for i in items]
        agg = aggregate_week(scores, "courts", MONDAY)
        assert agg.capture_match_count == 1
        assert agg.warning_match_count == 2
        assert agg.capture_proportion == pytest.approx(1 / 3)
        assert agg.top_keywords[0] == "judicial review"

    def test_by_week_chronological(self):
        scores = [
            _score("a", 1.0, week=MONDAY + timedelta(days=14)),
            _score("b", 1.0, week=MONDAY),
            _score("c", 1.0, week=MONDAY + timedelta(days=7)),
        ]
        weeks = [a.week_of for a in aggregate_by_week(scores, "courts")]
        assert weeks == sorted(weeks)
        assert len(weeks) == 3


# ============================================================
# CUMULATIVE SCORE
# ============================================================

class TestCumulativeScore:

    def test_current_week_counts_fully(self):
        result = cumulative_score([_agg(MONDAY, 10.0)], now_week=MONDAY)
        assert result.decay_weighted_score == pytest.approx(10.0)

    def test_half_life(self):
        old = MONDAY - timedelta(weeks=8)
        result = cumulative_score([_agg(old, 10.0)], now_week=MONDAY, half_life_weeks=8)
        assert result.decay_weighted_score == pytest.approx(5.0)

    @pytest.mark.parametrize("half_life", [0.5, 1, 8, 52])
    def test_decay_monotonic(self, half_life):
        """An older week contributes strictly less than a newer one of equal size."""
        w1 = MONDAY - timedelta(weeks=5)
        w2 = MONDAY - timedelta(weeks=2)
        c1 = cumulative_score([_agg(w1, 10.0)], now_week=MONDAY, half_life_weeks=half_life)
        c2 = cumulative_score([_agg(w2, 10.0)], now_week=MONDAY, half_life_weeks=half_life)
        assert c1.decay_weighted_score < c2.decay_weighted_score

    def test_future_weeks_ignored(self):
        aggs = [_agg(MONDAY, 4.0), _agg(MONDAY + timedelta(weeks=1), 100.0)]
        result = cumulative_score(aggs, now_week=MONDAY)
        assert result.decay_weighted_score == pytest.approx(4.0)
        assert result.week_count == 1

    def test_derived_views(self):
        aggs = [
            _agg(MONDAY - timedelta(weeks=2), 3.0),
            _agg(MONDAY - timedelta(weeks=1), 9.0),
            _agg(MONDAY, 6.0),
        ]
        result = cumulative_score(aggs, now_week=MONDAY)
        assert result.running_sum == pytest.approx(18.0)
        assert result.running_average == pytest.approx(6.0)
        assert result.high_water_mark == 9.0
        assert result.high_water_week == MONDAY - timedelta(weeks=1)
        assert result.current_week_score == 6.0

    def test_defaults_to_latest_week(self):
        aggs = [_agg(MONDAY - timedelta(weeks=1), 2.0), _agg(MONDAY, 2.0)]
        assert cumulative_score(aggs).as_of == MONDAY

    def test_empty(self):
        result = cumulative_score([], now_week=MONDAY, category="courts")
        assert result.decay_weighted_score == 0.0
        assert result.category == "courts"

    @pytest.mark.parametrize("half_life", [0, -1])
    def test_rejects_non_positive_half_life(self, half_life):
        with pytest.raises(ValidationError):
            cumulative_score([_agg(MONDAY, 1.0)], now_week=MONDAY, half_life_weeks=half_life)

    def test_rejects_duplicate_weeks(self):
        with pytest.raises(ValidationError):
            cumulative_score([_agg(MONDAY, 1.0), _agg(MONDAY, 2.0)], now_week=MONDAY)

    def test_rejects_mixed_categories(self):
        with pytest.raises(ValidationError):
            cumulative_score([_agg(MONDAY, 1.0), _agg(MONDAY, 1.0, category="fiscal")])

    def test_default_weights(self):
        assert DEFAULT_WEIGHTS.half_life_weeks == 8
        assert DEFAULT_WEIGHTS.multiplier(DocumentClass.EXECUTIVE_ORDER) == 1.5
