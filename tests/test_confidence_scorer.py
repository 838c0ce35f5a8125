"""Tests for confidence scoring and text helpers."""

import pytest

from config import EngineSettings
from models import AnswerCategory
from services.confidence_scorer import ConfidenceScorer, clamp
from services.text_utils import (
    contains_any,
    detect_answer_category,
    detect_topic,
    normalize,
    parse_category,
    split_list,
)


@pytest.fixture
def scorer():
    return ConfidenceScorer(EngineSettings())


class TestLibraryScore:
    def test_full_keyword_match_with_trusted_entry(self, scorer):
        assert scorer.library_score(1, 1, 80) == pytest.approx(94)

    def test_partial_match(self, scorer):
        assert scorer.library_score(1, 4, 50) == pytest.approx(17.5 + 15)

    def test_question_without_keywords_scores_on_entry_confidence_only(self, scorer):
        assert scorer.library_score(0, 0, 60) == pytest.approx(18)

    def test_capped_at_100(self, scorer):
        assert scorer.library_score(2, 2, 100) == 100

    def test_weights_come_from_settings(self):
        custom = ConfidenceScorer(EngineSettings(library_keyword_weight=50, library_entry_confidence_weight=0.5))
        assert custom.library_score(1, 1, 80) == pytest.approx(90)


class TestEvidenceScore:
    def test_fresh_evidence_gets_full_recency_boost(self, scorer):
        assert scorer.evidence_score(2, 2, 0) == pytest.approx(80)

    def test_recency_boost_decays_by_day(self, scorer):
        assert scorer.evidence_score(1, 2, 5) == pytest.approx(30 + 15)

    def test_old_evidence_gets_no_boost(self, scorer):
        assert scorer.evidence_score(1, 2, 400) == pytest.approx(30)

    def test_no_controls_on_question(self, scorer):
        assert scorer.evidence_score(0, 0, 100) == 0


class TestGenerativeScore:
    @pytest.mark.parametrize("text", [
        "Describe your access control process.",
        "Is data encrypted at rest?",
        "How long do you retain security logs?",
        "How often are backups tested?",
    ])
    def test_known_topics(self, scorer, text):
        assert scorer.generative_score(text) == 60

    def test_other_topics(self, scorer):
        assert scorer.generative_score("Describe your hiring process.") == 45


def test_clamp():
    assert clamp(-5) == 0
    assert clamp(150) == 100
    assert clamp(42.5) == 42.5


class TestTextUtils:
    def test_normalize_strips_punctuation(self):
        assert normalize("  Do you have an MFA-policy?? ") == "do you have an mfa policy"

    def test_contains_any_matches_whole_words_only(self):
        assert contains_any("Do you know who has access?", ["no"]) is False
        assert contains_any("There is no shared account.", ["no"]) is True

    def test_contains_any_matches_multi_word_phrases(self):
        assert contains_any("Describe your Access Control policy", ["access control"])

    def test_detect_topic(self):
        assert detect_topic("Are backups encrypted?") == "encryption"
        assert detect_topic("What is your vacation policy?") is None

    @pytest.mark.parametrize("text,expected", [
        ("Do you enforce multi-factor authentication?", AnswerCategory.ACCESS_CONTROL),
        ("Describe your firewall rules.", AnswerCategory.NETWORK_SECURITY),
        ("How do you vet a new supplier?", AnswerCategory.VENDOR_MANAGEMENT),
        ("Do you have a clean desk rule?", AnswerCategory.GENERAL_SECURITY),
    ])
    def test_detect_answer_category(self, text, expected):
        assert detect_answer_category(text) == expected

    def test_parse_category_is_lenient(self):
        assert parse_category("access control") == AnswerCategory.ACCESS_CONTROL
        assert parse_category("Data-Protection") == AnswerCategory.DATA_PROTECTION
        assert parse_category("PHYSICAL_SECURITY") == AnswerCategory.PHYSICAL_SECURITY
        assert parse_category("nonsense") is None
        assert parse_category(None) is None

    def test_split_list(self):
        assert split_list(" mfa ; sso;;") == ["mfa", "sso"]
        assert split_list("") == []
