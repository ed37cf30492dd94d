"""
Weekly Pipeline Tests

End-to-end runs against an in-memory store: scoring, aggregation,
trend points, anomaly detection and the cumulative view.
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from driftwatch.assessor import Assessor
from driftwatch.models import EvidenceItem, Status
from driftwatch.pipeline import StaticEvidenceSource, assess_week, run_weekly
from driftwatch.store import ScoreStore

WEEK = date(2025, 6, 2)  # Monday


def _freeze(doc_id: str, day: date) -> EvidenceItem:
    return EvidenceItem(
        id=doc_id,
        title="Funding freeze extended for a second quarter",
        agency="Office of Management and Budget",
        published_at=day.isoformat(),
    )


def _quiet(doc_id: str, day: date) -> EvidenceItem:
    return EvidenceItem(id=doc_id, title="Agency publishes annual financial statement", published_at=day.isoformat())


@pytest.fixture
def store():
    return ScoreStore(db_path=":memory:")


class TestRunWeekly:

    def test_scores_and_aggregates(self, store):
        items = [_freeze("a", WEEK + timedelta(days=1)), _freeze("b", WEEK + timedelta(days=2))]
        aggregates, cumulative, _ = run_weekly("fiscal", items, store, now=WEEK + timedelta(days=4))

        assert len(aggregates) == 1
        agg = aggregates[0]
        assert agg.week_of == WEEK
        assert agg.item_count == 2
        assert agg.drift_match_count == 2
        assert agg.top_keywords[0] == "funding freeze"
        stored = store.document_scores("fiscal", WEEK)
        assert agg.aggregate_score == pytest.approx(sum(s.final_score for s in stored))
        assert cumulative.current_week_score == pytest.approx(agg.aggregate_score)

    def test_rerun_is_idempotent(self, store):
        items = [_freeze("a", WEEK)]
        first, _, _ = run_weekly("fiscal", items, store, now=WEEK)
        second, _, _ = run_weekly("fiscal", items, store, now=WEEK)
        assert first == second
        assert len(store.weekly_aggregates("fiscal")) == 1

    def test_late_item_updates_earlier_week(self, store):
        run_weekly("fiscal", [_freeze("a", WEEK)], store, now=WEEK)
        aggregates, _, _ = run_weekly(
            "fiscal", [_freeze("late", WEEK - timedelta(days=3))], store, now=WEEK,
        )
        assert [a.week_of for a in aggregates] == [WEEK - timedelta(weeks=1)]
        assert len(store.weekly_aggregates("fiscal")) == 2

    def test_zero_counts_recorded(self, store):
        run_weekly("fiscal", [_quiet("q", WEEK)], store, now=WEEK)
        assert store.keyword_history("fiscal", "rescission") == [(WEEK, 0)]
        assert store.keyword_history("fiscal", "funding freeze") == [(WEEK, 0)]

    def test_cumulative_decays_older_weeks(self, store):
        prior = WEEK - timedelta(weeks=1)
        run_weekly("fiscal", [_freeze("old", prior)], store, now=prior)
        _, cumulative, _ = run_weekly("fiscal", [_freeze("new", WEEK)], store, now=WEEK)

        score = cumulative.current_week_score
        assert cumulative.week_count == 2
        assert cumulative.running_sum == pytest.approx(2 * score)
        assert score < cumulative.decay_weighted_score < 2 * score
        assert cumulative.decay_weighted_score == pytest.approx(score * (1 + 0.5 ** (1 / 8)))


class TestAnomalies:

    def test_first_week_spike_against_empty_history(self, store):
        _, _, anomalies = run_weekly("fiscal", [_freeze("a", WEEK)], store, now=WEEK)
        assert [a.keyword for a in anomalies] == ["funding freeze"]
        assert anomalies[0].severity == "high"

    def test_spike_against_recorded_baseline(self, store):
        for back in (3, 2, 1):
            week = WEEK - timedelta(weeks=back)
            run_weekly("fiscal", [_freeze(f"w{back}", week)], store, now=week)

        spike = [_freeze(f"now-{i}", WEEK) for i in range(4)]
        _, _, anomalies = run_weekly("fiscal", spike, store, now=WEEK)

        assert len(anomalies) == 1
        assert anomalies[0].ratio == pytest.approx(4.0)
        assert anomalies[0].severity == "medium"

    def test_steady_volume_is_quiet(self, store):
        for back in (2, 1, 0):
            week = WEEK - timedelta(weeks=back)
            _, _, anomalies = run_weekly("fiscal", [_freeze(f"w{back}", week)], store, now=week)
        assert anomalies == []

    def test_only_current_week_counted(self, store):
        """Backfilled items score their own week but do not feed this week's trend."""
        _, _, anomalies = run_weekly(
            "fiscal", [_freeze("old", WEEK - timedelta(weeks=3))], store, now=WEEK,
        )
        assert anomalies == []


class TestSources:

    def test_static_source_filters_by_date(self):
        source = StaticEvidenceSource([
            _freeze("in", WEEK + timedelta(days=1)),
            _freeze("out", WEEK + timedelta(days=9)),
            EvidenceItem(id="undated", title="Funding freeze"),
        ])
        found = source.list("fiscal", WEEK, WEEK + timedelta(days=6))
        assert [i.id for i in found] == ["in", "undated"]

    @pytest.mark.asyncio
    async def test_assess_week_keyword_only(self, store):
        source = StaticEvidenceSource([_freeze("a", WEEK + timedelta(days=1))])
        assessment, cumulative = await assess_week(
            "fiscal", source, store, Assessor(providers=[]),
            WEEK, WEEK + timedelta(days=6), use_ai=False,
        )
        assert assessment.status == Status.DRIFT
        assert assessment.debate is None
        assert [a.keyword for a in assessment.trend_anomalies] == ["funding freeze"]
        assert cumulative.week_count == 1
