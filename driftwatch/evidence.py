"""
Evidence Balance & Data Coverage

Keyword-only framing that works without any AI provider:

  - categorize_evidence: sorts items into concerning / reassuring by
    counting indicator words, so every assessment shows both sides
  - data_coverage:       how much evidence backs the verdict, min(n/10, 1)
  - coverage_factors:    the breakdown readers see next to the number
  - keyword_counterpoints: stock "how we could be wrong" lines per status

Indicator matching is substring-based on purpose: "cooperat" should hit
both "cooperation" and "cooperated".
"""

from __future__ import annotations

from typing import Optional, Sequence

from driftwatch.models import EvidenceItem, EvidenceNote, Status, TierMatchResult

MAX_NOTES = 5

CONCERNING_INDICATORS = [
    "violated", "illegal", "unlawful", "defied", "refused", "contempt",
    "fired", "removed", "terminated", "blocked", "obstructed", "suppressed",
    "override", "bypass", "circumvent", "undermine", "erode", "weaken",
    "unprecedented", "systematic", "pattern of", "mass",
]

REASSURING_INDICATORS = [
    "upheld", "protected", "restored", "compliance", "cooperat",
    "bipartisan", "transparency", "accountability", "oversight",
    "independent", "safeguard", "reform", "strengthen",
    "court ordered", "injunction granted", "investigation opened",
]

HIGH_AUTHORITY_SOURCES = ["gao", "court", "inspector general", "supreme court", "judicial"]


def categorize_evidence(
    items: Sequence[EvidenceItem], status: Status,
) -> tuple[list[EvidenceNote], list[EvidenceNote]]:
    """
    Split items into (evidence_for, evidence_against) the given status.

    For Stable the perspective flips: reassuring items support the verdict.
    """
    concerning: list[EvidenceNote] = []
    reassuring: list[EvidenceNote] = []

    for item in items:
        text = item.content.lower()
        c = sum(1 for w in CONCERNING_INDICATORS if w in text)
        r = sum(1 for w in REASSURING_INDICATORS if w in text)
        if c > r and c > 0:
            concerning.append(EvidenceNote(item.title, "concerning", item.agency))
        elif r > 0:
            reassuring.append(EvidenceNote(item.title, "reassuring", item.agency))

    if status == Status.STABLE:
        return reassuring[:MAX_NOTES], concerning[:MAX_NOTES]
    return concerning[:MAX_NOTES], reassuring[:MAX_NOTES]


# ============================================================
# COVERAGE
# ============================================================

def data_coverage(item_count: int, full_at: int = 10) -> float:
    """Monotonic in item count, capped at 1.0."""
    if item_count <= 0 or full_at <= 0:
        return 0.0
    return min(item_count / full_at, 1.0)


def ai_agreement(keyword_status: Status, ai_status: Optional[Status]) -> float:
    """1.0 when AI agrees, falling with distance. 0.5 with no AI."""
    if ai_status is None:
        return 0.5
    distance = abs(keyword_status.rank - ai_status.rank)
    return {0: 1.0, 1: 0.7, 2: 0.4}.get(distance, 0.2)


def coverage_factors(
    items: Sequence[EvidenceItem],
    keyword_result: TierMatchResult,
    ai_statuses: Sequence[Status] = (),
    full_at: int = 10,
) -> dict[str, float]:
    agencies = {i.agency for i in items if i.agency}
    source_types = {i.document_type or "unknown" for i in items}
    authoritative = sum(
        1 for i in items
        if any(s in f"{i.title} {i.agency or ''}".lower() for s in HIGH_AUTHORITY_SOURCES)
    )
    n = len(items)
    matches = len(keyword_result.matches)

    if ai_statuses:
        agreement = sum(ai_agreement(keyword_result.status, s) for s in ai_statuses) / len(ai_statuses)
    else:
        agreement = ai_agreement(keyword_result.status, None)

    return {
        "sourceDiversity": min(1.0, (len(agencies) + len(source_types)) / 6),
        "authorityWeight": min(1.0, authoritative / 3),
        "evidenceCoverage": data_coverage(n, full_at),
        "keywordDensity": min(1.0, matches / max(3, n * 0.3)) if n else 0.0,
        "aiAgreement": agreement,
    }


# ============================================================
# KEYWORD-ONLY COUNTERPOINTS
# ============================================================

KEYWORD_COUNTERPOINTS: dict[Status, list[str]] = {
    Status.CAPTURE: [
        "Keyword matching may trigger on document titles that discuss violations without indicating current violations",
        "Court-related keywords may reflect ongoing litigation rather than actual defiance",
        "High-authority source matches may be from historical or analytical reports rather than new findings",
    ],
    Status.DRIFT: [
        "Multiple keyword matches may reflect increased reporting rather than increased violations",
        "Regulatory activity patterns may be within normal variation for this time period",
    ],
    Status.WARNING: [
        "Warning-level keywords often appear in routine government documents",
        "A single drift keyword match may be coincidental rather than indicative of a pattern",
    ],
    Status.STABLE: [
        "Absence of keyword matches does not guarantee absence of concerning activity",
        "Some forms of power consolidation may not generate detectable keywords",
    ],
}


def keyword_counterpoints(status: Status) -> list[str]:
    return list(KEYWORD_COUNTERPOINTS[status])
