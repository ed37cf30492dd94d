from driftwatch.schemas.assessment import (
    AIAssessmentResponse,
    CounterEvidenceResponse,
    DebateTurnResponse,
    DebateVerdictResponse,
    EnhancedAssessmentPayload,
)

__all__ = [
    "AIAssessmentResponse",
    "CounterEvidenceResponse",
    "DebateTurnResponse",
    "DebateVerdictResponse",
    "EnhancedAssessmentPayload",
]
