"""Contextual fallback suggestion from a generative text backend."""

import logging
from typing import List, Optional

from config import EngineSettings
from errors import CapabilityUnavailableError
from models import Question, SourceType, Suggestion
from services.confidence_scorer import ConfidenceScorer
from services.llm_generator import GenerativeTextCapability, PromptContext
from services.text_utils import detect_topic

logger = logging.getLogger(__name__)


class GenerativeGenerator:
    """Asks the text backend for an answer and scores it by detected topic."""

    source_type = SourceType.GENERATIVE

    def __init__(
        self,
        capability: Optional[GenerativeTextCapability],
        settings: Optional[EngineSettings] = None,
        scorer: Optional[ConfidenceScorer] = None
    ):
        self.capability = capability
        self.settings = settings or EngineSettings()
        self.scorer = scorer or ConfidenceScorer(self.settings)

    async def generate(self, question: Question, organization_id: str) -> List[Suggestion]:
        if self.capability is None or not self.capability.is_available():
            return []

        context = PromptContext.from_question(question)
        try:
            answer = await self.capability.complete(context)
        except CapabilityUnavailableError as e:
            logger.info(f"Generative backend unavailable, skipping: {e}")
            return []

        if not answer or not answer.strip():
            logger.warning(f"Generative backend returned empty text for question {question.id}")
            return []

        score = self.scorer.generative_score(question.text)
        if score < self.settings.generative_min_confidence:
            return []

        return [Suggestion(
            suggested_answer=answer.strip(),
            confidence_score=score,
            source_type=SourceType.GENERATIVE,
            reasoning="Generated contextual response",
            metadata={
                "generated": True,
                "backend": type(self.capability).__name__,
                "topic": detect_topic(question.text),
                "question_analysis": {
                    "keywords": context.keywords,
                    "risk_level": question.risk_level.value if question.risk_level else None,
                    "question_type": question.type.value,
                },
            }
        )]
