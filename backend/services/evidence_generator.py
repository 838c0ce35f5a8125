"""Suggestions backed by approved evidence linked to the question's controls."""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from config import EngineSettings
from models import Evidence, EvidenceStatus, Question, SourceType, Suggestion
from repositories import EvidenceRepository
from services.confidence_scorer import ConfidenceScorer, days_between
from services.text_utils import contains_any
import config

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def answer_from_evidence(evidence: Evidence, question_text: str) -> str:
    """Build answer text from an evidence item, keyed on question phrasing."""
    if contains_any(question_text, config.POLICY_TERMS):
        return (f"We have implemented {evidence.title} which addresses this requirement. "
                f"The policy is documented and regularly reviewed.")

    if contains_any(question_text, config.TRAINING_TERMS):
        return (f"Our organization provides regular security training and awareness programs. "
                f"Evidence of training completion is maintained in {evidence.title}.")

    if contains_any(question_text, config.INCIDENT_TERMS):
        return (f"We have established incident response procedures, documented in {evidence.title}, "
                f"and maintain incident logs. Our response team is trained to handle security incidents.")

    return (f"We have implemented appropriate controls and maintain evidence of compliance. "
            f"Our {evidence.title} addresses this requirement.")


class EvidenceGenerator:
    """Scores approved evidence by control coverage and recency."""

    source_type = SourceType.EVIDENCE

    def __init__(
        self,
        evidence_repository: EvidenceRepository,
        settings: Optional[EngineSettings] = None,
        scorer: Optional[ConfidenceScorer] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.evidence_repository = evidence_repository
        self.settings = settings or EngineSettings()
        self.scorer = scorer or ConfidenceScorer(self.settings)
        self.clock = clock

    async def generate(self, question: Question, organization_id: str) -> List[Suggestion]:
        control_mapping = question.control_mapping
        if not control_mapping:
            return []

        evidence_items = await self.evidence_repository.find_by_control_ids(
            organization_id,
            control_mapping,
            status=EvidenceStatus.APPROVED,
            limit=self.settings.evidence_max_candidates
        )

        now = self.clock()
        suggestions = []
        for evidence in evidence_items:
            matched_controls = [c.name for c in evidence.controls if c.id in control_mapping]
            age_days = days_between(evidence.updated_at, now)
            score = self.scorer.evidence_score(len(matched_controls), len(control_mapping), age_days)

            if score <= self.settings.evidence_min_confidence:
                logger.debug(f"Evidence {evidence.id} below threshold ({score:.1f})")
                continue

            suggestions.append(Suggestion(
                suggested_answer=answer_from_evidence(evidence, question.text),
                confidence_score=score,
                source_type=SourceType.EVIDENCE,
                source_id=evidence.id,
                evidence_ids=[evidence.id],
                reasoning=(f"Evidence supports {len(matched_controls)} relevant controls: "
                           f"{', '.join(matched_controls)}"),
                metadata={
                    "evidence_title": evidence.title,
                    "evidence_type": evidence.type.value,
                    "last_updated": evidence.updated_at.isoformat(),
                    "days_since_update": round(age_days, 2),
                    "matched_controls": matched_controls,
                }
            ))

        return suggestions
