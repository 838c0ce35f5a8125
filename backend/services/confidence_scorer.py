"""Confidence scoring for suggestion candidates."""

from datetime import datetime
from typing import Optional

from config import EngineSettings
from services.text_utils import detect_topic

SECONDS_PER_DAY = 60 * 60 * 24


def clamp(score: float) -> float:
    """Clamp a score into the 0-100 range."""
    return max(0.0, min(100.0, float(score)))


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from earlier to later."""
    return (later - earlier).total_seconds() / SECONDS_PER_DAY


class ConfidenceScorer:
    """Calculates source-specific confidence scores from explicit settings."""

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()

    def library_score(self, matched_keywords: int, total_keywords: int, entry_confidence: float) -> float:
        """
        Score a library entry match.

        Keyword overlap with the question carries most of the weight, the
        entry's own earned confidence adds a boost.
        """
        keyword_match_ratio = matched_keywords / total_keywords if total_keywords > 0 else 0
        base_score = keyword_match_ratio * self.settings.library_keyword_weight
        library_boost = entry_confidence * self.settings.library_entry_confidence_weight
        return clamp(base_score + library_boost)

    def evidence_score(self, matched_controls: int, total_controls: int, days_since_update: float) -> float:
        """Score an evidence match from control coverage and recency."""
        control_match_ratio = matched_controls / total_controls if total_controls > 0 else 0
        base_score = control_match_ratio * self.settings.evidence_control_weight
        recency_boost = max(0.0, self.settings.evidence_recency_max_boost - days_since_update)
        return clamp(base_score + recency_boost)

    def generative_score(self, question_text: str) -> float:
        """Static lookup: well-known security topics score higher."""
        if detect_topic(question_text):
            return clamp(self.settings.generative_topic_confidence)
        return clamp(self.settings.generative_default_confidence)
