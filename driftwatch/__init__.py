"""
DriftWatch — Assessment & Consensus Engine

Tracks institutional drift across fixed policy categories from government
documents. A deterministic keyword floor decides the status; AI providers
enrich the evidence framing and argue it out in a structured debate, but
never override the floor.

Public API:
  - classify:          Keyword tier classification (total, deterministic)
  - classify_document: Evidentiary class of a document
  - score_document:    Severity score for one document
  - aggregate_week:    Weekly aggregate of document scores
  - cumulative_score:  Time-decayed cumulative view over weekly aggregates
  - detect:            Trend anomalies against a rolling baseline
  - DebateEngine:      Prosecutor / defense / arbitrator debate
  - Assessor:          Top-level merge coordinator → EnhancedAssessment
  - ScoreStore:        SQLite persistence for scores and trend points
  - LLMProvider:       Abstract AI provider interface

Usage:
    from driftwatch import Assessor, classify
    result = await Assessor().assess("courts", items)
"""

__version__ = "1.0.0"

from driftwatch.models import (
    Anomaly,
    CumulativeScore,
    DebateResult,
    DocumentClass,
    DocumentScore,
    EnhancedAssessment,
    EvidenceItem,
    Status,
    Tier,
    TierMatchResult,
    WeeklyAggregate,
)
from driftwatch.tiers import classify, TierClassifier, MatcherCache
from driftwatch.documents import classify_document
from driftwatch.scorer import (
    ScoringWeights,
    aggregate_by_week,
    aggregate_week,
    compute_severity_score,
    cumulative_score,
    score_document,
    score_documents,
    week_ranges,
    week_start,
)
from driftwatch.trends import detect, mean, stddev
from driftwatch.debate import DebateEngine
from driftwatch.assessor import Assessor, to_payload, validate_payload
from driftwatch.store import ScoreStore
from driftwatch.cache import AssessmentCache, CacheKeys
from driftwatch.errors import (
    DriftWatchError,
    InsufficientDataError,
    ParseError,
    ProviderError,
    StoreError,
    ValidationError,
)
from driftwatch.llm import LLMProvider, extract_json
from driftwatch.llm.factory import get_provider, get_available_providers

__all__ = [
    "Anomaly",
    "CumulativeScore",
    "DebateResult",
    "DocumentClass",
    "DocumentScore",
    "EnhancedAssessment",
    "EvidenceItem",
    "Status",
    "Tier",
    "TierMatchResult",
    "WeeklyAggregate",
    "classify",
    "TierClassifier",
    "MatcherCache",
    "classify_document",
    "ScoringWeights",
    "aggregate_by_week",
    "aggregate_week",
    "compute_severity_score",
    "cumulative_score",
    "score_document",
    "score_documents",
    "week_ranges",
    "week_start",
    "detect",
    "mean",
    "stddev",
    "DebateEngine",
    "Assessor",
    "to_payload",
    "validate_payload",
    "ScoreStore",
    "AssessmentCache",
    "CacheKeys",
    "DriftWatchError",
    "InsufficientDataError",
    "ParseError",
    "ProviderError",
    "StoreError",
    "ValidationError",
    "LLMProvider",
    "extract_json",
    "get_provider",
    "get_available_providers",
]
