"""
Keyword Tier Classifier Tests

Tests:
  1. Whole-word, case-insensitive matching (the matcher cache)
  2. Tier precedence: capture > drift > warning > stable
  3. Total-function behavior on empty / unknown input
  4. Vocabulary deduplication
  5. Multi-item classification
"""

from __future__ import annotations

import pytest

from driftwatch.keywords import KEYWORD_RULES, keyword_entries
from driftwatch.models import EvidenceItem, Status, Tier
from driftwatch.tiers import MatcherCache, TierClassifier, classify, match_keyword


# ============================================================
# WHOLE-WORD MATCHING
# ============================================================

class TestWholeWordMatching:
    """A keyword matches only as a whole word, in any case."""

    def test_substring_inside_word_does_not_match(self):
        assert match_keyword("Massachusetts passed a budget", "mass") is False

    def test_standalone_word_matches(self):
        assert match_keyword("A mass removal of staff", "mass") is True

    def test_case_insensitive(self):
        assert match_keyword("Impoundment of funds", "impoundment") is True
        assert match_keyword("IMPOUNDMENT OF FUNDS", "impoundment") is True

    def test_plural_is_a_different_word(self):
        assert match_keyword("several impoundments were reported", "impoundment") is False

    def test_punctuation_in_keyword_is_literal(self):
        """The dot in 'oversight.gov' must not act as a regex wildcard."""
        assert match_keyword("See oversight.gov for reports", "oversight.gov") is True
        assert match_keyword("See oversightxgov for reports", "oversight.gov") is False

    def test_keyword_next_to_punctuation(self):
        assert match_keyword("They were held in contempt of court.", "contempt of court") is True
        assert match_keyword("(impoundment)", "impoundment") is True

    def test_empty_inputs(self):
        assert match_keyword("", "mass") is False
        assert match_keyword("mass", "") is False


class TestMatcherCache:
    """Patterns are compiled once per keyword."""

    def test_compiles_once(self):
        cache = MatcherCache()
        first = cache.get("schedule f")
        second = cache.get("schedule f")
        assert first is second
        assert len(cache) == 1
        assert "schedule f" in cache

    def test_isolated_instances(self):
        a, b = MatcherCache(), MatcherCache()
        a.get("rescission")
        assert "rescission" in a
        assert "rescission" not in b

    def test_classifier_uses_injected_cache(self):
        cache = MatcherCache()
        classifier = TierClassifier(cache=cache)
        classifier.classify("routine notice", "fiscal")
        assert len(cache) > 0


# ============================================================
# TIER PRECEDENCE
# ============================================================

class TestTierPrecedence:
    """First tier with any match decides the status."""

    def test_capture_beats_warning(self):
        text = "GAO decision found an illegal impoundment; the spend plan was late."
        result = classify(text, "fiscal")
        assert result.status == Status.CAPTURE
        assert "illegal impoundment" in result.matches
        assert "gao decision" in result.matches
        # Only winning-tier keywords are reported in matches
        assert "spend plan" not in result.matches

    def test_drift_beats_warning(self):
        result = classify("A funding freeze and a funding delay", "fiscal")
        assert result.status == Status.DRIFT
        assert result.matches == ("funding freeze",)

    def test_warning_only(self):
        result = classify("The agency published its spend plan", "fiscal")
        assert result.status == Status.WARNING
        assert result.matches == ("spend plan",)
        assert result.reason.startswith("Minor issues found")

    def test_no_match_is_stable(self):
        result = classify("Routine procurement notice for office supplies", "fiscal")
        assert result.status == Status.STABLE
        assert result.matches == ()
        assert result.reason == "No warning signs detected"

    def test_reason_names_at_most_three_terms(self):
        text = (
            "illegal impoundment, unlawful withholding, gao decision, "
            "illegal rescission all reported"
        )
        result = classify(text, "fiscal")
        assert result.status == Status.CAPTURE
        assert len(result.matches) == 4
        listed = result.reason.split(": ", 1)[1].split(", ")
        assert len(listed) == 3

    def test_tier_matches_keep_lower_tiers(self):
        result = classify("Contempt of court after a preliminary injunction", "courts")
        assert result.status == Status.CAPTURE
        assert result.capture_count == 1
        assert result.warning_count == 1
        assert result.tier_matches[Tier.WARNING] == ("preliminary injunction",)

    def test_deterministic(self):
        text = "Insurrection act invoked; national guard activated"
        assert classify(text, "military") == classify(text, "military")


# ============================================================
# TOTAL FUNCTION
# ============================================================

class TestTotalFunction:
    """Classification never raises."""

    def test_empty_text(self):
        result = classify("", "courts")
        assert result.status == Status.STABLE
        assert result.reason == "No text to assess"

    def test_whitespace_text(self):
        assert classify("   \n\t ", "courts").status == Status.STABLE

    def test_unknown_category(self):
        result = classify("contempt of court", "not-a-category")
        assert result.status == Status.STABLE
        assert "not-a-category" in result.reason

    @pytest.mark.parametrize("text", ["((((", "\\b[", "$^.*+?", "\x00\x01", "é à ü"])
    def test_odd_punctuation(self, text):
        assert classify(text, "igs").status == Status.STABLE


# ============================================================
# VOCABULARY
# ============================================================

class TestVocabulary:

    def test_every_category_has_all_tiers(self):
        for category, tiers in KEYWORD_RULES.items():
            for tier in Tier:
                assert tiers.get(tier), f"{category} has no {tier.value} keywords"

    def test_duplicate_keyword_keeps_most_severe_tier(self):
        vocab = {"test": {
            Tier.CAPTURE: ["Alpha"],
            Tier.DRIFT: ["alpha", "beta"],
            Tier.WARNING: ["BETA", "gamma"],
        }}
        entries = {e.keyword.lower(): e.tier for e in keyword_entries("test", vocab)}
        assert entries == {"alpha": Tier.CAPTURE, "beta": Tier.DRIFT, "gamma": Tier.WARNING}

    def test_custom_vocabulary(self):
        vocab = {"widgets": {Tier.CAPTURE: ["recall"], Tier.DRIFT: [], Tier.WARNING: ["delay"]}}
        classifier = TierClassifier(vocabulary=vocab, cache=MatcherCache())
        assert classifier.classify("Product recall issued", "widgets").status == Status.CAPTURE
        assert classifier.categories == ["widgets"]


# ============================================================
# MULTI-ITEM
# ============================================================

class TestClassifyItems:

    def test_merges_across_items(self):
        items = [
            EvidenceItem(id="1", title="Spend plan released"),
            EvidenceItem(id="2", title="Funding freeze announced"),
        ]
        result = TierClassifier().classify_items(items, "fiscal")
        assert result.status == Status.DRIFT
        assert result.tier_matches[Tier.WARNING] == ("spend plan",)

    def test_keyword_never_spans_two_items(self):
        items = [
            EvidenceItem(id="1", title="Report on contempt"),
            EvidenceItem(id="2", title="of court proceedings"),
        ]
        result = TierClassifier().classify_items(items, "courts")
        assert "contempt of court" not in result.matches

    def test_no_items(self):
        result = TierClassifier().classify_items([], "courts")
        assert result.status == Status.STABLE
        assert result.reason == "No documents to assess"
