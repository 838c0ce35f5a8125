"""Fan-out over the suggestion generators, then merge and rank."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Sequence

from config import EngineSettings
from errors import GeneratorFailure, NotFoundError
from models import SOURCE_PRIORITY, Question, SourceType, Suggestion
from repositories import AnswerLibraryRepository, EvidenceRepository, QuestionRepository
from services.confidence_scorer import ConfidenceScorer
from services.evidence_generator import EvidenceGenerator
from services.generative_generator import GenerativeGenerator
from services.library_generator import LibraryGenerator
from services.llm_generator import GenerativeTextCapability
from services.pattern_generator import PatternGenerator

logger = logging.getLogger(__name__)


class SuggestionGenerator(Protocol):
    source_type: SourceType

    async def generate(self, question: Question, organization_id: str) -> List[Suggestion]:
        ...


class SuggestionEngine:
    """Runs every generator concurrently and returns the top ranked suggestions.

    A generator that raises or exceeds its timeout contributes nothing; the
    rest of the request carries on. Ranking is by confidence, ties broken by
    source priority (library, evidence, pattern, generative), so the output
    never depends on which generator finished first.
    """

    def __init__(
        self,
        question_repository: QuestionRepository,
        generators: Sequence[SuggestionGenerator],
        settings: Optional[EngineSettings] = None
    ):
        self.question_repository = question_repository
        self.generators = list(generators)
        self.settings = settings or EngineSettings()

    @classmethod
    def create(
        cls,
        question_repository: QuestionRepository,
        evidence_repository: EvidenceRepository,
        library_repository: AnswerLibraryRepository,
        capability: Optional[GenerativeTextCapability] = None,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Callable[[], datetime]] = None
    ) -> "SuggestionEngine":
        """Wire the four standard generators around shared settings."""
        settings = settings or EngineSettings()
        scorer = ConfidenceScorer(settings)
        clock = clock or (lambda: datetime.now(timezone.utc))

        generators = [
            LibraryGenerator(library_repository, settings, scorer),
            EvidenceGenerator(evidence_repository, settings, scorer, clock=clock),
            PatternGenerator(evidence_repository, settings),
            GenerativeGenerator(capability, settings, scorer),
        ]
        return cls(question_repository, generators, settings)

    async def generate_suggestions(self, question_id: str, organization_id: str) -> List[Suggestion]:
        """
        Generate ranked answer suggestions for a question.

        Raises:
            NotFoundError: if the question does not exist
        """
        question = await self.question_repository.get_by_id(question_id)
        if question is None:
            raise NotFoundError("Question", question_id)

        batches = await asyncio.gather(*(
            self._run_isolated(generator, question, organization_id)
            for generator in self.generators
        ))

        merged = [s for batch in batches for s in batch if self._meets_threshold(s)]
        ranked = sorted(merged, key=lambda s: (-s.confidence_score, SOURCE_PRIORITY[s.source_type]))
        top = ranked[:self.settings.max_suggestions]

        logger.info(f"Question {question_id}: {len(merged)} candidates, returning {len(top)}")
        return top

    async def _run_isolated(
        self,
        generator: SuggestionGenerator,
        question: Question,
        organization_id: str
    ) -> List[Suggestion]:
        try:
            return await asyncio.wait_for(
                generator.generate(question, organization_id),
                timeout=self.settings.generator_timeout_seconds
            )
        except Exception as e:
            failure = GeneratorFailure(generator.source_type.value, e)
            logger.warning(str(failure), exc_info=not isinstance(e, TimeoutError))
            return []

    def _meets_threshold(self, suggestion: Suggestion) -> bool:
        score = suggestion.confidence_score
        if suggestion.source_type == SourceType.LIBRARY:
            return score > self.settings.library_min_confidence
        if suggestion.source_type == SourceType.EVIDENCE:
            return score > self.settings.evidence_min_confidence
        if suggestion.source_type == SourceType.PATTERN:
            return score >= self.settings.pattern_min_confidence
        return score >= self.settings.generative_min_confidence
