"""Rule-based suggestions keyed on question phrasing."""

import logging
from typing import List, Optional, Sequence

from config import EngineSettings
from models import EvidenceStatus, EvidenceType, Question, QuestionType, SourceType, Suggestion
from repositories import EvidenceRepository
from services.text_utils import matched_phrases
import config

logger = logging.getLogger(__name__)

POLICY_ANSWER = ("Yes, we have established and maintain comprehensive security policies. "
                 "Our policies are regularly reviewed and updated to ensure they remain current and effective.")
TRAINING_ANSWER = ("Yes, we provide regular security training and awareness programs to all employees. "
                   "Training completion is tracked and documented.")
INCIDENT_ANSWER = ("Yes, we have established incident response procedures and maintain an incident response team. "
                   "Our procedures are tested regularly through drills and exercises.")


class PatternGenerator:
    """Yes/no polarity heuristics plus evidence-backed policy, training and incident rules."""

    source_type = SourceType.PATTERN

    def __init__(
        self,
        evidence_repository: EvidenceRepository,
        settings: Optional[EngineSettings] = None
    ):
        self.evidence_repository = evidence_repository
        self.settings = settings or EngineSettings()

    async def generate(self, question: Question, organization_id: str) -> List[Suggestion]:
        suggestions = []

        if question.type == QuestionType.YES_NO:
            suggestions.append(self.yes_no_suggestion(question))

        rules = [
            ("policy", config.POLICY_TERMS, [EvidenceType.POLICY, EvidenceType.PROCEDURE],
             POLICY_ANSWER, self.settings.policy_evidence_confidence),
            ("training", config.TRAINING_TERMS, [EvidenceType.TRAINING],
             TRAINING_ANSWER, self.settings.training_evidence_confidence),
            ("incident_response", config.INCIDENT_TERMS, [EvidenceType.INCIDENT_RESPONSE],
             INCIDENT_ANSWER, self.settings.incident_evidence_confidence),
        ]
        for rule, terms, evidence_types, answer, confidence in rules:
            cues = matched_phrases(question.text, terms)
            if not cues:
                continue
            suggestion = await self._evidence_backed(
                rule, cues, evidence_types, answer, confidence, organization_id
            )
            if suggestion:
                suggestions.append(suggestion)

        return [s for s in suggestions if s.confidence_score >= self.settings.pattern_min_confidence]

    def yes_no_suggestion(self, question: Question) -> Suggestion:
        """Infer a likely yes/no answer from affirmation and negation cues."""
        negations = matched_phrases(question.text, config.NEGATION_TERMS)
        affirmations = matched_phrases(question.text, config.AFFIRMATIVE_TERMS)

        if negations:
            answer = "No"
            confidence = self.settings.yes_no_negative_confidence
            reasoning = f"Question contains negative phrasing: {', '.join(negations)}"
        elif affirmations:
            answer = "Yes"
            confidence = self.settings.yes_no_affirmative_confidence
            reasoning = f"Question asks about implementation or establishment: {', '.join(affirmations)}"
        else:
            answer = self.settings.yes_no_default_answer
            confidence = self.settings.yes_no_default_confidence
            reasoning = "Default conservative answer"

        return Suggestion(
            suggested_answer=answer,
            confidence_score=confidence,
            source_type=SourceType.PATTERN,
            reasoning=reasoning,
            metadata={
                "question_type": QuestionType.YES_NO.value,
                "pattern": "yes_no_polarity",
                "cues": negations or affirmations,
            }
        )

    async def _evidence_backed(
        self,
        rule: str,
        cues: Sequence[str],
        evidence_types: Sequence[EvidenceType],
        answer: str,
        confidence: float,
        organization_id: str
    ) -> Optional[Suggestion]:
        evidence_items = await self.evidence_repository.find_by_types(
            organization_id, evidence_types, status=EvidenceStatus.APPROVED
        )
        if not evidence_items:
            logger.debug(f"No approved {rule} evidence for organization {organization_id}")
            return None

        return Suggestion(
            suggested_answer=answer,
            confidence_score=confidence,
            source_type=SourceType.PATTERN,
            evidence_ids=[e.id for e in evidence_items],
            reasoning=f"Organization has {len(evidence_items)} approved {rule.replace('_', ' ')} evidence item(s)",
            metadata={
                "pattern": rule,
                "cues": list(cues),
                "evidence_count": len(evidence_items),
            }
        )
