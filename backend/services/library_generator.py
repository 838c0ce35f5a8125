"""Suggestions drawn from the organization's answer library."""

import logging
from typing import List, Optional

from config import EngineSettings
from models import Question, SourceType, Suggestion
from repositories import AnswerLibraryRepository
from services.confidence_scorer import ConfidenceScorer

logger = logging.getLogger(__name__)


class LibraryGenerator:
    """Matches question keywords against library entry key phrases."""

    source_type = SourceType.LIBRARY

    def __init__(
        self,
        library_repository: AnswerLibraryRepository,
        settings: Optional[EngineSettings] = None,
        scorer: Optional[ConfidenceScorer] = None
    ):
        self.library_repository = library_repository
        self.settings = settings or EngineSettings()
        self.scorer = scorer or ConfidenceScorer(self.settings)

    async def generate(self, question: Question, organization_id: str) -> List[Suggestion]:
        question_keywords = question.extracted_keywords
        if not question_keywords:
            return []

        entries = await self.library_repository.find_active_by_key_phrases(
            organization_id,
            sorted(question_keywords),
            limit=self.settings.library_max_candidates
        )

        suggestions = []
        for entry in entries:
            matched = [phrase for phrase in entry.key_phrases if phrase in question_keywords]
            score = self.scorer.library_score(len(matched), len(question_keywords), entry.confidence_score)

            if score <= self.settings.library_min_confidence:
                logger.debug(f"Library entry {entry.id} below threshold ({score:.1f})")
                continue

            suggestions.append(Suggestion(
                suggested_answer=entry.standard_answer,
                confidence_score=score,
                source_type=SourceType.LIBRARY,
                source_id=entry.id,
                evidence_ids=entry.evidence_references,
                reasoning=f"Matched {len(matched)} keywords: {', '.join(matched)}",
                metadata={
                    "library_category": entry.category.value,
                    "usage_count": entry.usage_count,
                    "last_used_at": entry.last_used_at.isoformat() if entry.last_used_at else None,
                    "matched_keywords": matched,
                }
            ))

        return suggestions
