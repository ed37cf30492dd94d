"""
Prompts — Assessment, Counter-Evidence and Debate

Every prompt asks for a single JSON object so responses can be validated
against the schemas in driftwatch.schemas. Evidence is always numbered so
debaters can cite items by index.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from driftwatch.models import DebateMessage, EvidenceItem


def format_items(items: Sequence[EvidenceItem], limit: int = 20, summary_chars: int = 200) -> str:
    """Numbered one-line summaries of evidence items."""
    lines = []
    for i, item in enumerate(items[:limit], start=1):
        parts = [f'{i}. "{item.title}"']
        if item.agency:
            parts.append(f"({item.agency})")
        if item.published_at:
            parts.append(f"[{item.published_at}]")
        if item.text:
            parts.append(f"- {item.text[:summary_chars]}")
        lines.append(" ".join(parts))
    return "\n".join(lines)


def _numbered(lines: Iterable[str]) -> str:
    return "\n".join(f"{i}. {line}" for i, line in enumerate(lines, start=1))


# ============================================================
# ASSESSMENT
# ============================================================

ASSESSMENT_SYSTEM_PROMPT = (
    "You are a nonpartisan analyst specializing in democratic institutions, rule of law, "
    "and executive power. You analyze government documents objectively, noting both "
    "concerning and reassuring patterns. You are careful not to overreact to routine "
    "government activity, but you take genuine threats to checks and balances seriously. "
    "Always provide balanced analysis with evidence on both sides. "
    "Respond only with valid JSON."
)


def build_assessment_prompt(
    category: str,
    category_title: str,
    items: Sequence[EvidenceItem],
    keyword_status: str,
    keyword_reason: str,
) -> str:
    return f"""You are an expert analyst of U.S. democratic institutions and executive power. Assess the current state of "{category_title}" based on these recent government documents.

CATEGORY: {category}
KEYWORD-BASED ASSESSMENT: {keyword_status}: {keyword_reason}

RECENT DOCUMENTS:
{format_items(items)}

Analyze these documents and provide:
1. STATUS: One of [Stable, Warning, Drift, Capture]
   - Stable: Normal operations, checks and balances functioning
   - Warning: Some concerning patterns, but institutions pushing back
   - Drift: Multiple warning signs of power centralization
   - Capture: Serious violations of law, defiance of courts/oversight

2. CONFIDENCE: 0.0 to 1.0 (how confident you are in this assessment)

3. REASONING: 2-3 sentences explaining your assessment

4. EVIDENCE_FOR: Up to 3 specific items that support the concerning assessment (or that show things are working)

5. EVIDENCE_AGAINST: Up to 3 items that suggest things may not be as bad (or as good) as they appear

6. HOW_WE_COULD_BE_WRONG: 2-3 ways this assessment might be incorrect

Respond in JSON format matching this structure exactly:
{{
  "status": "Stable|Warning|Drift|Capture",
  "confidence": 0.0-1.0,
  "reasoning": "...",
  "evidenceFor": ["item 1", "item 2"],
  "evidenceAgainst": ["item 1", "item 2"],
  "howWeCouldBeWrong": ["reason 1", "reason 2"]
}}"""


# ============================================================
# COUNTER-EVIDENCE
# ============================================================

COUNTER_EVIDENCE_SYSTEM_PROMPT = (
    "You are a critical analyst who challenges assessments of democratic health. Your role "
    "is to find legitimate reasons why a concerning assessment might be wrong, not to dismiss "
    "concerns but to ensure intellectual rigor. Focus on institutional resilience, historical "
    "precedents, and analytical blind spots. Respond only with valid JSON."
)


def build_counter_evidence_prompt(
    category_title: str,
    status: str,
    reasoning: str,
    evidence: Sequence[str],
) -> str:
    return f"""You are a critical analyst performing a "red team" review of a democratic institutions assessment.

CATEGORY: {category_title}
CURRENT ASSESSMENT: {status}
REASONING: {reasoning}

KEY EVIDENCE USED:
{_numbered(evidence[:10])}

Your job is to challenge this assessment. Think about:
- What alternative explanations exist for this evidence?
- What historical precedents suggest this is normal?
- What institutional safeguards are being overlooked?
- What selection bias might be present in the evidence?
- What would need to be true for this assessment to be wrong?

Provide 3-5 specific, substantive reasons why this assessment might be incorrect or overstated. Be concrete and reference specific institutional mechanisms, historical precedents, or analytical gaps.

Respond in JSON format:
{{
  "counterPoints": [
    "specific reason 1",
    "specific reason 2",
    "specific reason 3"
  ]
}}"""


# ============================================================
# DEBATE
# ============================================================

_TURN_FORMAT = 'Respond in JSON format: {"argument": "<your argument>"}'

PROSECUTOR_SYSTEM_PROMPT = """You are an analytical prosecutor in a structured debate about executive power and institutional health. Your role is to:

1. Identify concerning patterns in the evidence
2. Argue that the evidence suggests erosion of democratic norms or institutional capture
3. Be rigorous but fair: only make claims supported by the evidence
4. Cite specific items from the evidence when making arguments
5. Acknowledge counterpoints but explain why your concerns remain valid

You are NOT trying to be alarmist. You ARE trying to ensure concerning patterns are not overlooked."""

DEFENSE_SYSTEM_PROMPT = """You are an analytical defense counsel in a structured debate about executive power and institutional health. Your role is to:

1. Provide alternative explanations for concerning evidence
2. Identify context that might make patterns less alarming
3. Note when evidence is circumstantial, outdated, or from biased sources
4. Argue for institutional resilience and self-correcting mechanisms
5. Be honest: if evidence is genuinely concerning, acknowledge it but provide perspective

You are NOT trying to dismiss real threats. You ARE trying to ensure fair assessment and prevent false alarms."""

ARBITRATOR_SYSTEM_PROMPT = """You are an impartial arbitrator in a structured debate about executive power and institutional health. Your role is to:

1. Weigh arguments from both prosecutor and defense fairly
2. Identify which arguments are better supported by evidence
3. Note where both sides agree (convergent evidence is strongest)
4. Render a clear verdict with a numerical agreement level
5. Be honest about uncertainty

Your verdict must be evidence-based and balanced."""


def build_prosecutor_opening_prompt(category: str, status: str, evidence: Sequence[str]) -> str:
    return f"""CATEGORY: {category}
CURRENT STATUS: {status}

EVIDENCE ITEMS:
{_numbered(evidence)}

Present your opening argument. Identify the most concerning patterns in this evidence. Explain why this category deserves its current status or a more serious one. Be specific and cite evidence items by number. Keep your response under 300 words.

{_TURN_FORMAT}"""


def build_prosecutor_rebuttal_prompt(defense_argument: str) -> str:
    return f"""The defense has argued:

"{defense_argument}"

Provide your rebuttal. Address their specific counterpoints while reinforcing your key concerns. Keep your response under 250 words.

{_TURN_FORMAT}"""


def build_defense_opening_prompt(
    category: str, status: str, evidence: Sequence[str], prosecutor_argument: str,
) -> str:
    return f"""CATEGORY: {category}
CURRENT STATUS: {status}

EVIDENCE ITEMS:
{_numbered(evidence)}

PROSECUTOR'S ARGUMENT:
"{prosecutor_argument}"

Present your opening defense. Provide alternative explanations for the evidence. Identify reasons the situation may be less concerning than the prosecution suggests. Be specific. Keep your response under 300 words.

{_TURN_FORMAT}"""


def build_defense_rebuttal_prompt(prosecutor_rebuttal: str) -> str:
    return f"""The prosecutor has responded:

"{prosecutor_rebuttal}"

Provide your rebuttal. Address their reinforced concerns and offer your strongest counterpoints. Keep your response under 250 words.

{_TURN_FORMAT}"""


def build_arbitrator_prompt(category: str, status: str, messages: Sequence[DebateMessage]) -> str:
    transcript = "\n\n---\n\n".join(f"[{m.role.upper()}]: {m.content}" for m in messages)
    return f"""CATEGORY: {category}
CURRENT STATUS: {status}

DEBATE TRANSCRIPT:
{transcript}

---

Now render your verdict. You must respond in exactly this JSON format:
{{
  "agreementLevel": <1-10, where 1 = entirely reassuring, 10 = extremely concerning>,
  "verdict": "<concerning | mixed | reassuring>",
  "summary": "<2-3 sentence summary of your verdict>",
  "keyPoints": ["<key point 1>", "<key point 2>", "<key point 3>"]
}}

Base your verdict strictly on the strength of arguments presented and the evidence cited."""
