"""
Schemas — AI Responses and the Assessment Payload

Pydantic models for two boundaries:
  - what we ask the AI providers to return (validated, never trusted)
  - the EnhancedAssessment payload handed to callers (camelCase keys)
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

StatusName = Literal["Stable", "Warning", "Drift", "Capture"]


# ============================================================
# AI RESPONSES
# ============================================================

class AIAssessmentResponse(BaseModel):
    """Assessment prompt response."""
    model_config = ConfigDict(populate_by_name=True)

    status: StatusName
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str
    evidence_for: list[str] = Field(default_factory=list, alias="evidenceFor")
    evidence_against: list[str] = Field(default_factory=list, alias="evidenceAgainst")
    how_we_could_be_wrong: list[str] = Field(default_factory=list, alias="howWeCouldBeWrong")


class CounterEvidenceResponse(BaseModel):
    """Counter-evidence ("red team") prompt response."""
    model_config = ConfigDict(populate_by_name=True)

    counter_points: list[str] = Field(..., alias="counterPoints")


class DebateTurnResponse(BaseModel):
    """One prosecutor or defense turn."""
    argument: str = Field(..., min_length=1)


class DebateVerdictResponse(BaseModel):
    """Arbitrator verdict. Out-of-range values are repaired, not rejected."""
    model_config = ConfigDict(populate_by_name=True)

    agreement_level: int = Field(5, alias="agreementLevel")
    verdict: Literal["concerning", "mixed", "reassuring"]
    summary: str = ""
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")

    @field_validator("agreement_level", mode="before")
    @classmethod
    def clamp_agreement(cls, v):
        try:
            level = int(round(float(v)))
        except (TypeError, ValueError):
            return 5
        return max(1, min(10, level))

    @field_validator("verdict", mode="before")
    @classmethod
    def normalize_verdict(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


# ============================================================
# ASSESSMENT PAYLOAD
# ============================================================

class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class EvidenceNotePayload(_Payload):
    text: str
    direction: Literal["concerning", "reassuring"]
    source: Optional[str] = None


class KeywordResultPayload(_Payload):
    status: StatusName
    reason: str
    matches: list[str] = Field(default_factory=list)


class DebateMessagePayload(_Payload):
    role: Literal["prosecutor", "defense", "arbitrator"]
    content: str
    provider: str = ""
    model: str = ""
    round: int = 0
    latency_ms: int = Field(0, alias="latencyMs")
    degraded: bool = False


class DebateVerdictPayload(_Payload):
    agreement_level: int = Field(..., ge=1, le=10, alias="agreementLevel")
    verdict: Literal["concerning", "mixed", "reassuring"]
    summary: str
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")


class DebatePayload(_Payload):
    category: str
    status: StatusName
    outcome: Literal["completed", "skipped", "insufficient_providers"]
    messages: list[DebateMessagePayload] = Field(default_factory=list)
    verdict: Optional[DebateVerdictPayload] = None
    degraded: bool = False
    reason: str = ""
    started_at: str = Field("", alias="startedAt")
    completed_at: str = Field("", alias="completedAt")
    total_latency_ms: int = Field(0, alias="totalLatencyMs")


class AnomalyPayload(_Payload):
    keyword: str
    category: str
    ratio: float
    severity: Literal["low", "medium", "high"]
    message: str
    detected_at: str = Field("", alias="detectedAt")


class AIResultPayload(_Payload):
    provider: str
    model: str
    status: StatusName
    reasoning: str
    confidence: float
    latency_ms: int = Field(0, alias="latencyMs")


class EnhancedAssessmentPayload(_Payload):
    """The output unit. Unknown keys are tolerated for forward compatibility."""
    category: str = Field(..., min_length=1)
    status: StatusName
    reason: str
    matches: list[str]
    data_coverage: float = Field(..., ge=0.0, le=1.0, alias="dataCoverage")
    evidence_for: list[EvidenceNotePayload] = Field(..., alias="evidenceFor")
    evidence_against: list[EvidenceNotePayload] = Field(..., alias="evidenceAgainst")
    how_we_could_be_wrong: list[str] = Field(..., alias="howWeCouldBeWrong")
    keyword_result: KeywordResultPayload = Field(..., alias="keywordResult")
    debate: Optional[DebatePayload] = None
    trend_anomalies: Optional[list[AnomalyPayload]] = Field(None, alias="trendAnomalies")
    assessed_at: str = Field(..., alias="assessedAt")
    data_coverage_factors: dict[str, float] = Field(default_factory=dict, alias="dataCoverageFactors")
    ai_results: list[AIResultPayload] = Field(default_factory=list, alias="aiResults")
    consensus_note: Optional[str] = Field(None, alias="consensusNote")
