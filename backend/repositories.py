"""Repository interfaces and in-memory implementations.

The engine only talks to the ``Protocol`` classes below. The in-memory
implementations back the HTTP service and the test suite; any store that
honours the same contracts can replace them.
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from models import AnswerLibraryEntry, Evidence, EvidenceStatus, EvidenceType, Question

logger = logging.getLogger(__name__)


class QuestionRepository(Protocol):
    async def get_by_id(self, question_id: str) -> Optional[Question]:
        ...


class EvidenceRepository(Protocol):
    async def find_by_control_ids(
        self,
        organization_id: str,
        control_ids: Iterable[str],
        status: EvidenceStatus = EvidenceStatus.APPROVED,
        limit: Optional[int] = None
    ) -> List[Evidence]:
        ...

    async def find_by_types(
        self,
        organization_id: str,
        types: Iterable[EvidenceType],
        status: EvidenceStatus = EvidenceStatus.APPROVED,
        limit: Optional[int] = None
    ) -> List[Evidence]:
        ...


class AnswerLibraryRepository(Protocol):
    async def add(self, entry: AnswerLibraryEntry) -> AnswerLibraryEntry:
        ...

    async def get(self, entry_id: str) -> Optional[AnswerLibraryEntry]:
        ...

    async def save(self, entry: AnswerLibraryEntry) -> AnswerLibraryEntry:
        ...

    async def delete(self, entry_id: str) -> bool:
        ...

    async def list_for_organization(self, organization_id: str) -> List[AnswerLibraryEntry]:
        ...

    async def find_active_by_key_phrases(
        self,
        organization_id: str,
        phrases: Iterable[str],
        limit: int
    ) -> List[AnswerLibraryEntry]:
        ...

    async def increment_usage(
        self,
        entry_id: str,
        confidence_increment: float,
        used_at: datetime
    ) -> Optional[AnswerLibraryEntry]:
        ...


class InMemoryQuestionRepository:
    """Questions keyed by id."""

    def __init__(self, questions: Iterable[Question] = ()):
        self._questions: Dict[str, Question] = {q.id: q for q in questions}

    def add(self, question: Question) -> None:
        self._questions[question.id] = question

    async def get_by_id(self, question_id: str) -> Optional[Question]:
        return self._questions.get(question_id)


def _recent_first(items: List[Evidence]) -> List[Evidence]:
    return sorted(items, key=lambda e: (-e.updated_at.timestamp(), e.id))


class InMemoryEvidenceRepository:
    """Evidence items, newest first in every query result."""

    def __init__(self, evidence: Iterable[Evidence] = ()):
        self._evidence: Dict[str, Evidence] = {e.id: e for e in evidence}

    def add(self, evidence: Evidence) -> None:
        self._evidence[evidence.id] = evidence

    async def find_by_control_ids(
        self,
        organization_id: str,
        control_ids: Iterable[str],
        status: EvidenceStatus = EvidenceStatus.APPROVED,
        limit: Optional[int] = None
    ) -> List[Evidence]:
        wanted = set(control_ids)
        if not wanted:
            return []

        matches = [
            e for e in self._evidence.values()
            if e.organization_id == organization_id
            and e.status == status
            and any(c.id in wanted for c in e.controls)
        ]
        return _recent_first(matches)[:limit]

    async def find_by_types(
        self,
        organization_id: str,
        types: Iterable[EvidenceType],
        status: EvidenceStatus = EvidenceStatus.APPROVED,
        limit: Optional[int] = None
    ) -> List[Evidence]:
        wanted = set(types)
        matches = [
            e for e in self._evidence.values()
            if e.organization_id == organization_id
            and e.status == status
            and e.type in wanted
        ]
        return _recent_first(matches)[:limit]


class InMemoryAnswerLibraryRepository:
    """Library entries with a (organization, key phrase) index.

    Entries are copied on the way in and out so callers never hold a
    reference to stored state.
    """

    def __init__(self):
        self._entries: Dict[str, AnswerLibraryEntry] = {}
        self._phrase_index: Dict[Tuple[str, str], Set[str]] = {}
        self._lock = asyncio.Lock()

    def _index(self, entry: AnswerLibraryEntry) -> None:
        for phrase in entry.key_phrases:
            self._phrase_index.setdefault((entry.organization_id, phrase), set()).add(entry.id)

    def load(self, entries: Iterable[AnswerLibraryEntry]) -> int:
        """Bulk load stored entries, keeping their ids and counters."""
        count = 0
        for entry in entries:
            self._entries[entry.id] = entry.model_copy(deep=True)
            self._index(entry)
            count += 1
        return count

    def _unindex(self, entry: AnswerLibraryEntry) -> None:
        for phrase in entry.key_phrases:
            ids = self._phrase_index.get((entry.organization_id, phrase))
            if ids:
                ids.discard(entry.id)
                if not ids:
                    del self._phrase_index[(entry.organization_id, phrase)]

    async def add(self, entry: AnswerLibraryEntry) -> AnswerLibraryEntry:
        if entry.id in self._entries:
            raise ValueError(f"Duplicate library entry id: {entry.id}")
        self._entries[entry.id] = entry.model_copy(deep=True)
        self._index(entry)
        return entry.model_copy(deep=True)

    async def get(self, entry_id: str) -> Optional[AnswerLibraryEntry]:
        entry = self._entries.get(entry_id)
        return entry.model_copy(deep=True) if entry else None

    async def save(self, entry: AnswerLibraryEntry) -> AnswerLibraryEntry:
        previous = self._entries.get(entry.id)
        if previous is not None:
            self._unindex(previous)
        self._entries[entry.id] = entry.model_copy(deep=True)
        self._index(entry)
        return entry.model_copy(deep=True)

    async def delete(self, entry_id: str) -> bool:
        entry = self._entries.pop(entry_id, None)
        if entry is None:
            return False
        self._unindex(entry)
        return True

    async def list_for_organization(self, organization_id: str) -> List[AnswerLibraryEntry]:
        return [
            e.model_copy(deep=True)
            for e in self._entries.values()
            if e.organization_id == organization_id
        ]

    async def find_active_by_key_phrases(
        self,
        organization_id: str,
        phrases: Iterable[str],
        limit: int
    ) -> List[AnswerLibraryEntry]:
        candidate_ids: Set[str] = set()
        for phrase in phrases:
            candidate_ids |= self._phrase_index.get((organization_id, phrase.lower()), set())

        matches = [self._entries[i] for i in candidate_ids if self._entries[i].is_active]
        matches.sort(key=lambda e: (-e.confidence_score, e.id))
        return [e.model_copy(deep=True) for e in matches[:limit]]

    async def increment_usage(
        self,
        entry_id: str,
        confidence_increment: float,
        used_at: datetime
    ) -> Optional[AnswerLibraryEntry]:
        async with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return None
            updated = entry.model_copy(update={
                "usage_count": entry.usage_count + 1,
                "confidence_score": min(100.0, entry.confidence_score + confidence_increment),
                "last_used_at": used_at,
            })
            self._entries[entry_id] = updated
            return updated.model_copy(deep=True)


def load_seed_data(
    path: Path,
    questions: InMemoryQuestionRepository,
    evidence: InMemoryEvidenceRepository,
    library: InMemoryAnswerLibraryRepository
) -> Tuple[int, int, int]:
    """Load questions, evidence and library entries from a JSON document.

    Returns:
        Tuple of (questions loaded, evidence loaded, library entries loaded)
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)

    for raw in data.get("questions", []):
        questions.add(Question.model_validate(raw))

    for raw in data.get("evidence", []):
        evidence.add(Evidence.model_validate(raw))

    loaded = library.load(AnswerLibraryEntry.model_validate(raw) for raw in data.get("library", []))

    counts = (len(data.get("questions", [])), len(data.get("evidence", [])), loaded)
    logger.info(f"Loaded seed data from {path}: {counts[0]} questions, "
                f"{counts[1]} evidence items, {counts[2]} library entries")
    return counts
