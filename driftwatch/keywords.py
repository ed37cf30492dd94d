"""
Keyword Vocabulary — Fixed Per-Category Tiers

Each category owns a fixed keyword set split into three tiers:
  - capture: explicit legal violations, defiance, mass actions
  - drift:   structural changes that weaken a check or safeguard
  - warning: routine activity that is worth watching

The vocabulary is static for the process lifetime. It is shared by the
tier classifier, the document scorer and the trend counter.

Suppression rules and negation patterns live here too: they decide when a
fired keyword should not count toward a document's severity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from driftwatch.models import KeywordEntry, Tier, TIER_SCAN_ORDER


# ============================================================
# CATEGORY KEYWORD RULES
# ============================================================

KEYWORD_RULES: dict[str, dict[Tier, list[str]]] = {
    "civilService": {
        Tier.CAPTURE: [
            "schedule f", "excepted schedule f", "mass termination", "mass removal",
            "political appointee conversion", "title 5 exemption", "merit system violation",
            "violated civil service protections", "unlawful termination", "systematic purge",
            "political loyalty test", "removed for political reasons",
        ],
        Tier.DRIFT: [
            "reclassification", "excepted service", "policy-influencing position",
            "career staff removed", "reduced career positions", "political control over hiring",
            "at-will employment", "bypassing merit system", "categorical exclusion",
        ],
        Tier.WARNING: [
            "workforce reduction", "reorganization", "senior executive service",
            "position eliminated", "restructuring",
        ],
    },
    "fiscal": {
        Tier.CAPTURE: [
            "violated impoundment control act", "illegal impoundment", "unlawful withholding",
            "anti-deficiency act violation", "gao decision", "violated appropriations law",
            "illegal rescission", "unconstitutional refusal", "contempt for withholding",
        ],
        Tier.DRIFT: [
            "deferral", "apportionment withheld", "rescission", "budget authority withheld",
            "refused to obligate", "selective implementation", "funding freeze",
            "impoundment", "delayed obligation",
        ],
        Tier.WARNING: [
            "funding delay", "obligation rate", "apportionment", "spend plan",
        ],
    },
    "igs": {
        Tier.CAPTURE: [
            "inspector general removed", "ig fired", "ig terminated without cause",
            "mass ig removal", "defunded inspector general", "eliminated ig office",
            "systematic obstruction of oversight", "ig independence violated",
        ],
        Tier.DRIFT: [
            "acting inspector general", "ig vacancy", "funding cut to oversight",
            "obstruction of investigation", "denied access", "ig report suppressed",
            "oversight.gov", "lack of apportionment", "delayed ig appointment",
            "restricted ig authority",
        ],
        Tier.WARNING: [
            "independence concern", "access delayed", "report delayed",
            "investigation pending",
        ],
    },
    "hatch": {
        Tier.CAPTURE: [
            "hatch act violation found", "systematic hatch act violations",
            "osc enforcement suspended", "defunded office of special counsel",
            "violated hatch act", "osc found violation", "unlawful partisan activity",
        ],
        Tier.DRIFT: [
            "multiple hatch act violations", "repeated partisan messaging",
            "official channels for campaign", "political activity in office",
            "pattern of violations", "weakened enforcement",
        ],
        Tier.WARNING: [
            "hatch act complaint", "osc investigation", "alleged violation",
            "partisan communication",
        ],
    },
    "courts": {
        Tier.CAPTURE: [
            "contempt of court", "defied court order", "refused to comply",
            "violated injunction", "ignored court ruling", "non-compliance with order",
            "contempt citation", "willful violation of court order",
        ],
        Tier.DRIFT: [
            "delayed compliance", "partial compliance", "slow-walking court order",
            "emergency stay sought", "appealing for delay", "minimal compliance",
            "procedural objections to compliance",
        ],
        Tier.WARNING: [
            "injunction issued", "preliminary injunction", "temporary restraining order",
            "court ordered", "judicial review",
        ],
    },
    "military": {
        Tier.CAPTURE: [
            "insurrection act invoked", "martial law declared", "military occupation",
            "troops deployed domestically", "military law enforcement", "suspended habeas corpus",
        ],
        Tier.DRIFT: [
            "domestic military deployment", "law enforcement role for military",
            "posse comitatus", "preparing to invoke insurrection act",
            "military on standby", "federalized national guard",
        ],
        Tier.WARNING: [
            "national guard activated", "border deployment", "title 32 activation",
            "state request for troops",
        ],
    },
    "rulemaking": {
        Tier.CAPTURE: [
            "independent agency overridden", "executive order supremacy over statute",
            "violated apa", "unlawful regulatory action", "exceeded statutory authority",
            "unconstitutional rule",
        ],
        Tier.DRIFT: [
            "white house review required", "oira clearance expanded",
            "regulatory freeze", "independent agency subject to review",
            "centralized regulatory control", "political clearance required",
        ],
        Tier.WARNING: [
            "significant increase in rules", "review backlog", "regulatory agenda",
            "notice and comment",
        ],
    },
    "indices": {
        Tier.CAPTURE: [
            "democracy downgrade", "authoritarian shift", "democratic decline",
            "rule of law erosion", "institutional collapse",
        ],
        Tier.DRIFT: [
            "declining democratic score", "erosion of norms", "weakening checks",
            "executive aggrandizement", "institutional degradation",
        ],
        Tier.WARNING: [
            "concern raised", "watchlist", "monitoring situation",
            "potential risk",
        ],
    },
}

CATEGORIES: tuple[str, ...] = tuple(KEYWORD_RULES)

# Reader-facing names, used in prompts
CATEGORY_TITLES: dict[str, str] = {
    "civilService": "Government Worker Protections",
    "fiscal": "Spending Money Congress Approved",
    "igs": "Government Watchdogs (Inspectors General)",
    "hatch": "Keeping Politics Out of Government",
    "courts": "Following Court Orders",
    "military": "Using Military Inside the U.S.",
    "rulemaking": "Independent Agency Rules",
    "indices": "Overall Democracy Health",
}


def category_title(category: str) -> str:
    return CATEGORY_TITLES.get(category, category)


def keyword_entries(
    category: str,
    vocabulary: Optional[dict[str, dict[Tier, list[str]]]] = None,
) -> list[KeywordEntry]:
    """
    Deduplicated keyword entries for a category.

    Entries are unique by (keyword, category), case-insensitively. When a
    keyword is listed under more than one tier, the most severe tier wins.
    Order follows the scan order (capture, drift, warning), then listing order.
    """
    rules = (vocabulary if vocabulary is not None else KEYWORD_RULES).get(category)
    if not rules:
        return []

    entries: list[KeywordEntry] = []
    seen: set[str] = set()
    for tier in TIER_SCAN_ORDER:
        for keyword in rules.get(tier, []):
            key = keyword.strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
            entries.append(KeywordEntry(keyword=keyword, category=category, tier=tier))
    return entries


def all_keywords(category: str) -> list[str]:
    """Every keyword in a category's vocabulary, most severe tier first."""
    return [e.keyword for e in keyword_entries(category)]


def iter_tier_keywords(
    category: str,
    vocabulary: Optional[dict[str, dict[Tier, list[str]]]] = None,
) -> Iterator[tuple[Tier, list[str]]]:
    """Yield (tier, keywords) in scan order for a category."""
    grouped: dict[Tier, list[str]] = {tier: [] for tier in TIER_SCAN_ORDER}
    for entry in keyword_entries(category, vocabulary):
        grouped[entry.tier].append(entry.keyword)
    for tier in TIER_SCAN_ORDER:
        yield tier, grouped[tier]


# ============================================================
# SUPPRESSION RULES
# ============================================================

@dataclass(frozen=True)
class SuppressionRule:
    """Co-occurring terms that cancel or soften one keyword's match."""
    keyword: str
    suppress_if_any: tuple[str, ...]
    downweight_if_any: tuple[str, ...] = ()


SUPPRESSION_RULES: dict[str, list[SuppressionRule]] = {
    "courts": [
        SuppressionRule(
            "contempt of court",
            suppress_if_any=("dismissed", "overturned", "acquitted", "cleared"),
            downweight_if_any=("civil contempt", "procedural"),
        ),
    ],
    "igs": [
        SuppressionRule(
            "acting inspector general",
            suppress_if_any=("appointed", "confirmed", "sworn in", "senate confirmed"),
        ),
        SuppressionRule(
            "ig vacancy",
            suppress_if_any=(
                "filled", "nomination confirmed", "new ig confirmed",
                "senate confirmed", "sworn in",
            ),
        ),
        SuppressionRule(
            "ig fired",
            suppress_if_any=("rumor denied", "not confirmed", "retracted"),
        ),
    ],
    "fiscal": [
        SuppressionRule(
            "impoundment",
            suppress_if_any=(
                "bipartisan", "passed", "signed into law",
                "continuing resolution", "impoundment control act history",
            ),
            downweight_if_any=("proposed", "under review"),
        ),
        SuppressionRule(
            "rescission",
            suppress_if_any=("approved by congress", "bipartisan agreement", "signed into law"),
        ),
        SuppressionRule(
            "funding freeze",
            suppress_if_any=("lifted", "reversed", "court ordered release"),
        ),
    ],
    "military": [
        SuppressionRule(
            "troops deployed domestically",
            suppress_if_any=("exercise", "drill", "training", "disaster relief", "hurricane response"),
        ),
        SuppressionRule(
            "domestic military deployment",
            suppress_if_any=("exercise", "drill", "training", "disaster relief", "hurricane response"),
        ),
        SuppressionRule(
            "national guard activated",
            suppress_if_any=("wildfire", "hurricane", "flood", "disaster relief", "snowstorm"),
            downweight_if_any=("state request", "governor requested"),
        ),
        SuppressionRule(
            "federalized national guard",
            suppress_if_any=("training exercise", "annual training", "routine deployment"),
        ),
    ],
}

# Phrases reporting the ABSENCE of the concerning behavior
NEGATION_PATTERNS: tuple[str, ...] = (
    "no evidence of",
    "no indication of",
    "rejected",
    "blocked",
    "struck down",
    "overturned",
    "ruled against",
    "denied request for",
    "failed to",
    "did not",
    "was not",
    "were not",
    "has not",
    "have not",
    "without evidence",
    "unfounded",
    "debunked",
    "false claim",
)

# Characters inspected around a keyword for negation
NEGATION_WINDOW_BEFORE = 60
NEGATION_WINDOW_AFTER = 30


def suppression_rules_for(category: str, keyword: str) -> list[SuppressionRule]:
    kw = keyword.lower()
    return [r for r in SUPPRESSION_RULES.get(category, []) if r.keyword.lower() == kw]
