"""
Score Store — SQLite Persistence

Document scores, weekly aggregates and trend points, keyed only by
(category, week_of) and (category, keyword). Aggregates are upserted so a
recomputed week replaces the old row instead of adding a second one.

Cumulative scores are never stored; they are derived on read from the
weekly aggregates (see scorer.cumulative_score).

Any sqlite failure surfaces as StoreError. Persistence is the one
dependency whose failure the engines do not paper over.
"""

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from driftwatch.config import settings
from driftwatch.errors import StoreError
from driftwatch.models import (
    DocumentClass,
    DocumentScore,
    KeywordMatch,
    SuppressedMatch,
    Tier,
    TrendPoint,
    WeeklyAggregate,
)
from driftwatch.scorer import DEFAULT_WEIGHTS, ScoringWeights, aggregate_week, week_start
from driftwatch.trends import BASELINE_WINDOW_WEEKS, baseline_window


class ScoreStore:
    """SQLite-backed store for scores, aggregates and trend points."""

    def __init__(self, db_path: str = settings.STORE_PATH):
        self.db_path = db_path
        self._lock = threading.Lock()
        # An in-memory database lives only as long as its connection
        self._memory_conn = (
            sqlite3.connect(":memory:", check_same_thread=False) if db_path == ":memory:" else None
        )
        self._init_db()

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._memory_conn or sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open score store ({self.db_path}): {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Score store error ({self.db_path}): {e}") from e
        finally:
            if conn is not self._memory_conn:
                conn.close()

    def _init_db(self):
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS document_scores (
                    document_id TEXT NOT NULL,
                    category TEXT NOT NULL,
                    week_of TEXT NOT NULL,
                    severity_score REAL NOT NULL,
                    final_score REAL NOT NULL,
                    document_class TEXT NOT NULL,
                    class_multiplier REAL NOT NULL,
                    capture_count INTEGER NOT NULL,
                    drift_count INTEGER NOT NULL,
                    warning_count INTEGER NOT NULL,
                    matches TEXT NOT NULL,
                    suppressed TEXT NOT NULL,
                    PRIMARY KEY (document_id, category)
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_scores_week
                ON document_scores(category, week_of)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS weekly_aggregates (
                    category TEXT NOT NULL,
                    week_of TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (category, week_of)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS trend_points (
                    category TEXT NOT NULL,
                    keyword TEXT NOT NULL,
                    week_of TEXT NOT NULL,
                    current_count INTEGER NOT NULL,
                    baseline_mean REAL NOT NULL,
                    baseline_stddev REAL NOT NULL,
                    ratio REAL NOT NULL,
                    PRIMARY KEY (category, keyword, week_of)
                )
            """)

    # ============================================================
    # DOCUMENT SCORES
    # ============================================================

    def save_document_score(self, score: DocumentScore) -> None:
        matches = [{"keyword": m.keyword, "tier": m.tier.value, "context": m.context} for m in score.matches]
        suppressed = [
            {"keyword": s.keyword, "tier": s.tier.value, "rule": s.rule, "reason": s.reason}
            for s in score.suppressed
        ]
        with self._lock:
            with self._get_conn() as conn:
                conn.execute(
                    """INSERT OR REPLACE INTO document_scores
                       (document_id, category, week_of, severity_score, final_score,
                        document_class, class_multiplier, capture_count, drift_count,
                        warning_count, matches, suppressed)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        score.document_id, score.category, score.week_of.isoformat(),
                        score.severity_score, score.final_score,
                        score.document_class.value, score.class_multiplier,
                        score.capture_count, score.drift_count, score.warning_count,
                        json.dumps(matches), json.dumps(suppressed),
                    ),
                )

    def document_scores(self, category: str, week_of: Optional[date] = None) -> list[DocumentScore]:
        """Scores for a category, optionally one week, ordered by document id."""
        query = """SELECT document_id, category, week_of, severity_score, final_score,
                          document_class, class_multiplier, capture_count, drift_count,
                          warning_count, matches, suppressed
                   FROM document_scores WHERE category = ?"""
        params: list = [category]
        if week_of is not None:
            query += " AND week_of = ?"
            params.append(week_start(week_of).isoformat())
        query += " ORDER BY document_id"

        with self._get_conn() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            DocumentScore(
                document_id=r[0],
                category=r[1],
                week_of=date.fromisoformat(r[2]),
                severity_score=r[3],
                final_score=r[4],
                document_class=DocumentClass(r[5]),
                class_multiplier=r[6],
                capture_count=r[7],
                drift_count=r[8],
                warning_count=r[9],
                matches=tuple(
                    KeywordMatch(m["keyword"], Tier(m["tier"]), m.get("context", ""))
                    for m in json.loads(r[10])
                ),
                suppressed=tuple(
                    SuppressedMatch(s["keyword"], Tier(s["tier"]), s["rule"], s["reason"])
                    for s in json.loads(r[11])
                ),
            )
            for r in rows
        ]

    # ============================================================
    # WEEKLY AGGREGATES
    # ============================================================

    def save_weekly_aggregate(self, aggregate: WeeklyAggregate) -> None:
        """Insert or replace the aggregate for (category, week_of)."""
        data = {
            "aggregate_score": aggregate.aggregate_score,
            "item_count": aggregate.item_count,
            "capture_match_count": aggregate.capture_match_count,
            "drift_match_count": aggregate.drift_match_count,
            "warning_match_count": aggregate.warning_match_count,
            "suppressed_match_count": aggregate.suppressed_match_count,
            "capture_proportion": aggregate.capture_proportion,
            "drift_proportion": aggregate.drift_proportion,
            "warning_proportion": aggregate.warning_proportion,
            "severity_mix": aggregate.severity_mix,
            "top_keywords": list(aggregate.top_keywords),
            "computed_at": aggregate.computed_at,
        }
        with self._lock:
            with self._get_conn() as conn:
                conn.execute(
                    """INSERT INTO weekly_aggregates (category, week_of, data)
                       VALUES (?, ?, ?)
                       ON CONFLICT(category, week_of) DO UPDATE SET data = excluded.data""",
                    (aggregate.category, aggregate.week_of.isoformat(), json.dumps(data)),
                )

    def weekly_aggregates(
        self,
        category: str,
        since: Optional[date] = None,
        until: Optional[date] = None,
    ) -> list[WeeklyAggregate]:
        """Aggregates for a category in chronological order."""
        query = "SELECT category, week_of, data FROM weekly_aggregates WHERE category = ?"
        params: list = [category]
        if since is not None:
            query += " AND week_of >= ?"
            params.append(week_start(since).isoformat())
        if until is not None:
            query += " AND week_of <= ?"
            params.append(week_start(until).isoformat())
        query += " ORDER BY week_of ASC"

        with self._get_conn() as conn:
            rows = conn.execute(query, params).fetchall()

        aggregates = []
        for cat, week, data_str in rows:
            data = json.loads(data_str)
            data["top_keywords"] = tuple(data.get("top_keywords", ()))
            aggregates.append(WeeklyAggregate(category=cat, week_of=date.fromisoformat(week), **data))
        return aggregates

    def recompute_week(
        self,
        category: str,
        week_of: date,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ) -> WeeklyAggregate:
        """Rebuild one week's aggregate from its stored document scores."""
        aggregate = aggregate_week(self.document_scores(category, week_of), category, week_of, weights)
        self.save_weekly_aggregate(aggregate)
        return aggregate

    # ============================================================
    # TREND POINTS
    # ============================================================

    def save_trend_point(self, point: TrendPoint, week_of: date) -> None:
        with self._lock:
            with self._get_conn() as conn:
                conn.execute(
                    """INSERT OR REPLACE INTO trend_points
                       (category, keyword, week_of, current_count,
                        baseline_mean, baseline_stddev, ratio)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (
                        point.category, point.keyword, week_start(week_of).isoformat(),
                        point.current_count, point.baseline_mean,
                        point.baseline_stddev, point.ratio,
                    ),
                )

    def keyword_history(
        self,
        category: str,
        keyword: str,
        since: Optional[date] = None,
    ) -> list[tuple[date, int]]:
        """Weekly counts recorded for (category, keyword), oldest first."""
        query = """SELECT week_of, current_count FROM trend_points
                   WHERE category = ? AND keyword = ?"""
        params: list = [category, keyword]
        if since is not None:
            query += " AND week_of >= ?"
            params.append(week_start(since).isoformat())
        query += " ORDER BY week_of ASC"

        with self._get_conn() as conn:
            rows = conn.execute(query, params).fetchall()
        return [(date.fromisoformat(w), c) for w, c in rows]

    def baseline_counts(
        self,
        category: str,
        keywords: list[str],
        as_of: date,
        weeks: int = BASELINE_WINDOW_WEEKS,
    ) -> dict[str, list[int]]:
        """Rolling-window weekly counts per keyword, for trend detection."""
        current = week_start(as_of)
        return {
            kw: baseline_window(self.keyword_history(category, kw), current, weeks)
            for kw in keywords
        }
