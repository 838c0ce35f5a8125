"""Shared test fixtures for the answer suggestion backend."""

from datetime import datetime, timedelta, timezone

import pytest

from config import EngineSettings
from models import (
    AnswerCategory,
    AnswerLibraryEntry,
    ControlRef,
    Evidence,
    EvidenceStatus,
    EvidenceType,
    Question,
    QuestionType,
)
from repositories import (
    InMemoryAnswerLibraryRepository,
    InMemoryEvidenceRepository,
    InMemoryQuestionRepository,
)
from services.answer_library import AnswerLibraryService
from services.llm_generator import TemplateTextCapability
from services.suggestion_engine import SuggestionEngine

ORG = "org-1"
OTHER_ORG = "org-2"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_entry(entry_id="LIB-1", **overrides) -> AnswerLibraryEntry:
    fields = {
        "id": entry_id,
        "organization_id": ORG,
        "category": AnswerCategory.DATA_PROTECTION,
        "key_phrases": ["encryption", "data protection", "aes"],
        "standard_answer": "All customer data is encrypted at rest with AES-256 and in transit with TLS 1.2 or higher.",
        "evidence_references": ["ev-enc"],
        "usage_count": 3,
        "confidence_score": 80,
        "last_updated": NOW - timedelta(days=10),
        "created_at": NOW - timedelta(days=30),
        "created_by": "user-1",
    }
    fields.update(overrides)
    return AnswerLibraryEntry(**fields)


def make_evidence(evidence_id="ev-1", **overrides) -> Evidence:
    fields = {
        "id": evidence_id,
        "organization_id": ORG,
        "title": "Information Security Policy",
        "type": EvidenceType.POLICY,
        "status": EvidenceStatus.APPROVED,
        "controls": [ControlRef(id="ctl-1", name="AC-1 Access Control Policy")],
        "updated_at": NOW - timedelta(days=5),
    }
    fields.update(overrides)
    return Evidence(**fields)


def make_question(question_id="q-1", **overrides) -> Question:
    fields = {
        "id": question_id,
        "text": "Describe how customer data is protected.",
        "type": QuestionType.FREE_TEXT,
        "extracted_keywords": {"encryption"},
        "control_mapping": [],
    }
    fields.update(overrides)
    return Question(**fields)


@pytest.fixture
def settings():
    return EngineSettings(generator_timeout_seconds=0.5)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def question_repo():
    return InMemoryQuestionRepository()


@pytest.fixture
def evidence_repo():
    return InMemoryEvidenceRepository()


@pytest.fixture
def library_repo():
    return InMemoryAnswerLibraryRepository()


@pytest.fixture
def library_service(library_repo, settings, clock):
    return AnswerLibraryService(library_repo, settings, clock=clock)


@pytest.fixture
def engine(question_repo, evidence_repo, library_repo, settings, clock):
    return SuggestionEngine.create(
        question_repo, evidence_repo, library_repo,
        capability=TemplateTextCapability(), settings=settings, clock=clock
    )
