"""
Document Classifier Tests

Precedence: declared type > title phrase > agency/URL pattern > unknown.
"""

from __future__ import annotations

import pytest

from driftwatch.documents import classify_document
from driftwatch.errors import ValidationError
from driftwatch.models import DocumentClass, EvidenceItem


def _item(**kw) -> EvidenceItem:
    kw.setdefault("id", "doc-1")
    kw.setdefault("title", "Untitled")
    return EvidenceItem(**kw)


class TestDeclaredType:

    @pytest.mark.parametrize("declared,expected", [
        ("Presidential Document", DocumentClass.EXECUTIVE_ORDER),
        ("Rule", DocumentClass.FINAL_RULE),
        ("Proposed Rule", DocumentClass.PROPOSED_RULE),
        ("Notice", DocumentClass.NOTICE),
    ])
    def test_type_map(self, declared, expected):
        assert classify_document(_item(document_type=declared)) == expected

    def test_declared_type_beats_agency(self):
        """A presidential document from a 'supreme court' agency is still an EO."""
        item = _item(document_type="Presidential Document", agency="Supreme Court of the United States")
        assert classify_document(item) == DocumentClass.EXECUTIVE_ORDER

    def test_unrecognized_type_falls_through(self):
        item = _item(document_type="Correction", agency="GAO")
        assert classify_document(item) == DocumentClass.REPORT


class TestTitleAndSource:

    def test_title_executive_order(self):
        item = _item(title="Executive Order 14999: Restructuring the Workforce", agency="White House")
        assert classify_document(item) == DocumentClass.EXECUTIVE_ORDER

    def test_title_presidential_memorandum(self):
        item = _item(title="Presidential Memorandum on Hiring")
        assert classify_document(item) == DocumentClass.PRESIDENTIAL_MEMORANDUM

    def test_agency_court(self):
        assert classify_document(_item(agency="Supreme Court")) == DocumentClass.COURT_OPINION

    def test_url_pattern(self):
        item = _item(url="https://www.gao.gov/products/b-123456")
        assert classify_document(item) == DocumentClass.REPORT

    def test_inspector_general(self):
        item = _item(agency="Office of Inspector General, Department of Labor")
        assert classify_document(item) == DocumentClass.REPORT

    def test_specific_pattern_before_broad(self):
        """'supreme court' is listed before the press-release sources."""
        item = _item(agency="Supreme Court", url="https://www.whitehouse.gov/x")
        assert classify_document(item) == DocumentClass.COURT_OPINION

    def test_press_release(self):
        assert classify_document(_item(agency="Department of Defense")) == DocumentClass.PRESS_RELEASE


class TestFallback:

    def test_unknown(self):
        assert classify_document(_item(agency="Bureau of Land Management")) == DocumentClass.UNKNOWN

    def test_empty_item(self):
        assert classify_document(EvidenceItem(id="x", title="")) == DocumentClass.UNKNOWN


class TestFromDict:

    def test_feed_aliases(self):
        item = EvidenceItem.from_dict({
            "link": "https://example.gov/eo", "title": "EO", "summary": "body", "type": "Rule",
            "document_class": "executive_order",
        })
        assert item.id == "https://example.gov/eo"
        assert item.text == "body"
        assert item.document_type == "Rule"
        assert item.document_class == DocumentClass.EXECUTIVE_ORDER

    def test_unknown_document_class_rejected(self):
        with pytest.raises(ValidationError) as exc:
            EvidenceItem.from_dict({"id": "1", "title": "t", "document_class": "memo-ish"})
        assert "memo-ish" in str(exc.value)
