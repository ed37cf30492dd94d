"""
Data Model

Plain records passed between the engines. Everything that is scored or
assessed is frozen: a newer result supersedes an older one, nothing is
mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional

from driftwatch.errors import ValidationError


# ============================================================
# ORDERED ENUMS
# ============================================================

class Status(str, Enum):
    """Ordinal severity bucket. Stable < Warning < Drift < Capture."""
    STABLE = "Stable"
    WARNING = "Warning"
    DRIFT = "Drift"
    CAPTURE = "Capture"

    @property
    def rank(self) -> int:
        return STATUS_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, Status):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Status):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Status):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Status):
            return NotImplemented
        return self.rank >= other.rank


STATUS_ORDER = [Status.STABLE, Status.WARNING, Status.DRIFT, Status.CAPTURE]


class Tier(str, Enum):
    """Keyword severity tier. warning < drift < capture."""
    WARNING = "warning"
    DRIFT = "drift"
    CAPTURE = "capture"

    @property
    def rank(self) -> int:
        return TIER_ORDER.index(self)

    @property
    def status(self) -> Status:
        return _TIER_STATUS[self]

    def downgraded(self) -> "Tier":
        """One level less severe. Warning stays warning."""
        return TIER_ORDER[max(0, self.rank - 1)]


TIER_ORDER = [Tier.WARNING, Tier.DRIFT, Tier.CAPTURE]

# Scan order: most severe first
TIER_SCAN_ORDER = [Tier.CAPTURE, Tier.DRIFT, Tier.WARNING]

_TIER_STATUS = {
    Tier.WARNING: Status.WARNING,
    Tier.DRIFT: Status.DRIFT,
    Tier.CAPTURE: Status.CAPTURE,
}


class DocumentClass(str, Enum):
    EXECUTIVE_ORDER = "executive_order"
    PRESIDENTIAL_MEMORANDUM = "presidential_memorandum"
    FINAL_RULE = "final_rule"
    PROPOSED_RULE = "proposed_rule"
    NOTICE = "notice"
    COURT_OPINION = "court_opinion"
    REPORT = "report"
    PRESS_RELEASE = "press_release"
    UNKNOWN = "unknown"


# ============================================================
# INPUTS
# ============================================================

@dataclass(frozen=True)
class EvidenceItem:
    """One document or statement considered during assessment."""
    id: str
    title: str
    text: str = ""
    agency: Optional[str] = None
    url: Optional[str] = None
    published_at: Optional[str] = None   # ISO-8601 date or datetime
    document_type: Optional[str] = None  # source-declared type, e.g. "Rule"
    document_class: Optional[DocumentClass] = None

    @property
    def content(self) -> str:
        """Title and body joined, the text every matcher runs over."""
        return f"{self.title or ''} {self.text or ''}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EvidenceItem":
        """Build an item from a feed record. Accepts feed-style aliases."""
        title = data.get("title") or "(untitled)"
        url = data.get("url") or data.get("link")
        doc_class = data.get("document_class")
        if doc_class:
            try:
                doc_class = DocumentClass(doc_class)
            except ValueError:
                raise ValidationError(f"Unknown document class: {doc_class!r}") from None
        return cls(
            id=str(data.get("id") or url or title),
            title=title,
            text=data.get("text") or data.get("summary") or "",
            agency=data.get("agency"),
            url=url,
            published_at=data.get("published_at") or data.get("pubDate") or data.get("date"),
            document_type=data.get("document_type") or data.get("type"),
            document_class=doc_class or None,
        )


@dataclass(frozen=True)
class KeywordEntry:
    keyword: str
    category: str
    tier: Tier


# ============================================================
# CLASSIFICATION & SCORING
# ============================================================

@dataclass(frozen=True)
class TierMatchResult:
    """Result of keyword tier classification.

    ``matches`` holds the fired keywords of the winning tier only;
    ``tier_matches`` keeps every fired keyword per tier for scoring.
    """
    status: Status
    reason: str
    matches: tuple[str, ...] = ()
    tier_matches: dict[Tier, tuple[str, ...]] = field(default_factory=dict)

    @property
    def capture_count(self) -> int:
        return len(self.tier_matches.get(Tier.CAPTURE, ()))

    @property
    def drift_count(self) -> int:
        return len(self.tier_matches.get(Tier.DRIFT, ()))

    @property
    def warning_count(self) -> int:
        return len(self.tier_matches.get(Tier.WARNING, ()))


@dataclass(frozen=True)
class KeywordMatch:
    keyword: str
    tier: Tier
    context: str = ""


@dataclass(frozen=True)
class SuppressedMatch:
    keyword: str
    tier: Tier
    rule: str
    reason: str


@dataclass(frozen=True)
class DocumentScore:
    document_id: str
    category: str
    severity_score: float
    final_score: float
    document_class: DocumentClass
    class_multiplier: float
    week_of: date
    capture_count: int = 0
    drift_count: int = 0
    warning_count: int = 0
    matches: tuple[KeywordMatch, ...] = ()
    suppressed: tuple[SuppressedMatch, ...] = ()

    @property
    def suppressed_count(self) -> int:
        return len(self.suppressed)


@dataclass(frozen=True)
class WeeklyAggregate:
    category: str
    week_of: date
    aggregate_score: float
    item_count: int
    capture_match_count: int = 0
    drift_match_count: int = 0
    warning_match_count: int = 0
    suppressed_match_count: int = 0
    capture_proportion: float = 0.0
    drift_proportion: float = 0.0
    warning_proportion: float = 0.0
    severity_mix: float = 0.0
    top_keywords: tuple[str, ...] = ()
    computed_at: str = field(default="", compare=False)  # ISO-8601 UTC


@dataclass(frozen=True)
class CumulativeScore:
    """Derived view over weekly aggregates. Never stored."""
    category: str
    as_of: Optional[date]
    decay_weighted_score: float
    half_life_weeks: float
    running_sum: float = 0.0
    running_average: float = 0.0
    week_count: int = 0
    high_water_mark: float = 0.0
    high_water_week: Optional[date] = None
    current_week_score: float = 0.0


# ============================================================
# TRENDS
# ============================================================

@dataclass(frozen=True)
class TrendPoint:
    keyword: str
    category: str
    current_count: int
    baseline_mean: float
    baseline_stddev: float
    ratio: float


@dataclass(frozen=True)
class Anomaly:
    keyword: str
    category: str
    ratio: float
    severity: str  # "low" | "medium" | "high"
    message: str
    detected_at: str = ""


# ============================================================
# DEBATE
# ============================================================

@dataclass(frozen=True)
class DebateMessage:
    role: str  # "prosecutor" | "defense" | "arbitrator"
    content: str
    provider: str = ""
    model: str = ""
    round: int = 0
    latency_ms: int = 0
    degraded: bool = False


@dataclass(frozen=True)
class DebateVerdict:
    agreement_level: int  # 1 = entirely reassuring, 10 = extremely concerning
    verdict: str          # "concerning" | "mixed" | "reassuring"
    summary: str
    key_points: tuple[str, ...] = ()


@dataclass(frozen=True)
class DebateResult:
    category: str
    status: Status
    outcome: str  # "completed" | "skipped" | "insufficient_providers"
    messages: tuple[DebateMessage, ...] = ()
    verdict: Optional[DebateVerdict] = None
    degraded: bool = False
    reason: str = ""
    started_at: str = ""
    completed_at: str = ""
    total_latency_ms: int = 0

    @property
    def completed(self) -> bool:
        return self.outcome == "completed"


# ============================================================
# ASSESSMENT
# ============================================================

@dataclass(frozen=True)
class EvidenceNote:
    """One line of evidence framing, pointing toward or away from concern."""
    text: str
    direction: str  # "concerning" | "reassuring"
    source: Optional[str] = None


@dataclass(frozen=True)
class AIAssessment:
    """What a single provider concluded about a category."""
    provider: str
    model: str
    status: Status
    reasoning: str
    confidence: float
    evidence_for: tuple[str, ...] = ()
    evidence_against: tuple[str, ...] = ()
    how_we_could_be_wrong: tuple[str, ...] = ()
    latency_ms: int = 0


@dataclass(frozen=True)
class EnhancedAssessment:
    category: str
    status: Status
    reason: str
    matches: tuple[str, ...]
    data_coverage: float
    evidence_for: tuple[EvidenceNote, ...]
    evidence_against: tuple[EvidenceNote, ...]
    how_we_could_be_wrong: tuple[str, ...]
    keyword_result: TierMatchResult
    assessed_at: str
    debate: Optional[DebateResult] = None
    trend_anomalies: Optional[tuple[Anomaly, ...]] = None
    data_coverage_factors: dict[str, float] = field(default_factory=dict)
    ai_results: tuple[AIAssessment, ...] = ()
    consensus_note: Optional[str] = None
    reviewed_documents: tuple[dict, ...] = ()
