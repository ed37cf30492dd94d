"""
Document Classifier

Assigns each evidence item a document class reflecting its evidentiary
authority. Precedence, first match wins:

  1. Source-declared document type (Federal Register "type" field)
  2. Title mentions an executive order or presidential memorandum
  3. Agency or URL matches an ordered source pattern
  4. unknown

Pattern order matters: specific patterns ("supreme court") come before
broad ones.
"""

from __future__ import annotations

from driftwatch.models import DocumentClass, EvidenceItem


DOCUMENT_TYPE_MAP: dict[str, DocumentClass] = {
    "Presidential Document": DocumentClass.EXECUTIVE_ORDER,
    "Rule": DocumentClass.FINAL_RULE,
    "Proposed Rule": DocumentClass.PROPOSED_RULE,
    "Notice": DocumentClass.NOTICE,
}

TITLE_PATTERNS: list[tuple[str, DocumentClass]] = [
    ("executive order", DocumentClass.EXECUTIVE_ORDER),
    ("presidential memorandum", DocumentClass.PRESIDENTIAL_MEMORANDUM),
]

# Matched against agency or URL, top to bottom
SOURCE_CLASS_PATTERNS: list[tuple[str, DocumentClass]] = [
    ("supreme court", DocumentClass.COURT_OPINION),
    ("scotus", DocumentClass.COURT_OPINION),
    ("gao", DocumentClass.REPORT),
    ("government accountability", DocumentClass.REPORT),
    ("inspector general", DocumentClass.REPORT),
    ("cbo", DocumentClass.REPORT),
    ("congressional research", DocumentClass.REPORT),
    ("department of defense", DocumentClass.PRESS_RELEASE),
    ("dod", DocumentClass.PRESS_RELEASE),
    ("white house", DocumentClass.PRESS_RELEASE),
]


def classify_document(item: EvidenceItem) -> DocumentClass:
    """Classify an evidence item. Never raises."""
    if item.document_type and item.document_type in DOCUMENT_TYPE_MAP:
        return DOCUMENT_TYPE_MAP[item.document_type]

    title = (item.title or "").lower()
    for phrase, cls in TITLE_PATTERNS:
        if phrase in title:
            return cls

    agency = (item.agency or "").lower()
    url = (item.url or "").lower()
    for pattern, cls in SOURCE_CLASS_PATTERNS:
        if pattern in agency or pattern in url:
            return cls

    return DocumentClass.UNKNOWN
