"""Answer library management: CRUD, search, usage feedback, stats, import/export and diagnostics."""

import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from config import EngineSettings
from errors import NotFoundError, ValidationError
from models import (
    PRIORITY_RANK,
    AnswerCategory,
    AnswerLibraryEntry,
    AnswerLibraryEntryUpdate,
    CategoryBreakdown,
    ImportResult,
    ImprovementPriority,
    ImprovementSuggestion,
    LibraryStats,
    Question,
)
from repositories import AnswerLibraryRepository
from services.confidence_scorer import days_between
from services.csv_processor import CSVProcessor, parse_flag
from services.key_phrase_extractor import KeyPhraseExtractor
from services.text_utils import detect_answer_category, parse_category, split_list

logger = logging.getLogger(__name__)

STATS_LIST_SIZE = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _entry_id() -> str:
    """Generate a library entry ID: LIB- followed by 12 hex characters."""
    return "LIB-" + secrets.token_hex(6)


def _by_usage(entry: AnswerLibraryEntry):
    return (-entry.usage_count, -entry.confidence_score, -entry.last_updated.timestamp(), entry.id)


def _by_confidence(entry: AnswerLibraryEntry):
    return (-entry.confidence_score, -entry.usage_count, entry.id)


def _matches_text(entry: AnswerLibraryEntry, query: str) -> bool:
    """Answer or subcategory contains the query, or a key phrase equals it."""
    query = query.strip().lower()
    return (
        query in entry.standard_answer.lower()
        or query in entry.key_phrases
        or (entry.subcategory is not None and query in entry.subcategory.lower())
    )


class AnswerLibraryService:
    """Owns the lifecycle of answer library entries for every organization."""

    def __init__(
        self,
        repository: AnswerLibraryRepository,
        settings: Optional[EngineSettings] = None,
        csv_processor: Optional[CSVProcessor] = None,
        key_phrase_extractor: Optional[KeyPhraseExtractor] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.repository = repository
        self.settings = settings or EngineSettings()
        self.csv_processor = csv_processor or CSVProcessor()
        self.key_phrase_extractor = key_phrase_extractor or KeyPhraseExtractor(self.settings)
        self.clock = clock

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_entry(
        self,
        organization_id: str,
        category: Union[str, AnswerCategory],
        subcategory: Optional[str],
        key_phrases: List[str],
        standard_answer: str,
        evidence_references: List[str],
        created_by: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Create a new library entry with zero usage and the initial confidence.

        Raises:
            ValidationError: if the category is not a known value or the answer is empty
        """
        entry = await self._create(
            organization_id, category, subcategory, key_phrases, standard_answer,
            evidence_references, created_by, metadata
        )
        return entry.id

    async def _create(
        self,
        organization_id: str,
        category: Union[str, AnswerCategory],
        subcategory: Optional[str],
        key_phrases: List[str],
        standard_answer: str,
        evidence_references: List[str],
        created_by: str,
        metadata: Optional[Dict[str, Any]] = None,
        is_active: bool = True,
        usage_count: int = 0
    ) -> AnswerLibraryEntry:
        parsed_category = self._validate_category(category)
        answer = self._validate_answer(standard_answer)
        if not organization_id:
            raise ValidationError("organization_id", "Organization is required")
        if not created_by:
            raise ValidationError("created_by", "Creator is required")

        now = self.clock()
        entry = AnswerLibraryEntry(
            id=_entry_id(),
            organization_id=organization_id,
            category=parsed_category,
            subcategory=(subcategory or "").strip() or None,
            key_phrases=key_phrases or [],
            standard_answer=answer,
            evidence_references=evidence_references or [],
            usage_count=usage_count,
            confidence_score=self.settings.library_initial_confidence,
            last_used_at=now if usage_count else None,
            last_updated=now,
            created_at=now,
            is_active=is_active,
            created_by=created_by,
            metadata=dict(metadata or {}),
        )
        await self.repository.add(entry)
        logger.info(f"Created library entry {entry.id} ({entry.category.value}) for {organization_id}")
        return entry

    async def get_entries(
        self,
        organization_id: str,
        category: Optional[Union[str, AnswerCategory]] = None,
        search_text: Optional[str] = None,
        limit: Optional[int] = 50,
        offset: int = 0
    ) -> List[AnswerLibraryEntry]:
        """List entries, most used first. A limit of None returns everything."""
        if offset < 0 or (limit is not None and limit < 0):
            raise ValidationError("limit", "limit and offset must be non-negative")

        wanted = self._validate_category(category) if category else None
        entries = await self.repository.list_for_organization(organization_id)

        if wanted is not None:
            entries = [e for e in entries if e.category == wanted]
        if search_text and search_text.strip():
            entries = [e for e in entries if _matches_text(e, search_text)]

        entries.sort(key=_by_usage)
        end = None if limit is None else offset + limit
        return entries[offset:end]

    async def get_entry_by_id(self, entry_id: str) -> Optional[AnswerLibraryEntry]:
        return await self.repository.get(entry_id)

    async def update_entry(
        self,
        entry_id: str,
        updates: Union[AnswerLibraryEntryUpdate, Dict[str, Any]],
        organization_id: Optional[str] = None
    ) -> AnswerLibraryEntry:
        """
        Apply a partial update. Usage count and confidence are never reset.

        Raises:
            NotFoundError: if the entry does not exist
            ValidationError: if a new category or answer is invalid
        """
        entry = await self._require(entry_id, organization_id)
        if isinstance(updates, dict):
            updates = AnswerLibraryEntryUpdate.model_validate(updates)

        changes = updates.model_dump(exclude_unset=True)
        # Only subcategory may be cleared with an explicit null
        changes = {k: v for k, v in changes.items() if v is not None or k == "subcategory"}

        if "category" in changes:
            changes["category"] = self._validate_category(changes["category"])
        if "standard_answer" in changes:
            changes["standard_answer"] = self._validate_answer(changes["standard_answer"])

        updated = AnswerLibraryEntry.model_validate({
            **entry.model_dump(),
            **changes,
            "last_updated": self.clock(),
        })
        await self.repository.save(updated)
        logger.info(f"Updated library entry {entry_id}: {sorted(changes)}")
        return updated

    async def delete_entry(self, entry_id: str, organization_id: Optional[str] = None) -> None:
        """Hard delete. Use update_entry(is_active=False) to retire an entry instead."""
        await self._require(entry_id, organization_id)
        await self.repository.delete(entry_id)
        logger.info(f"Deleted library entry {entry_id}")

    async def increment_usage(self, entry_id: str, organization_id: Optional[str] = None) -> AnswerLibraryEntry:
        """Record one use of an entry: count up, confidence up (capped at 100)."""
        await self._require(entry_id, organization_id)
        entry = await self.repository.increment_usage(
            entry_id, self.settings.library_usage_increment, self.clock()
        )
        if entry is None:
            raise NotFoundError("Answer library entry", entry_id)
        logger.debug(f"Library entry {entry_id} used {entry.usage_count} times, confidence {entry.confidence_score}")
        return entry

    async def search_entries(
        self,
        organization_id: str,
        query: str,
        category: Optional[Union[str, AnswerCategory]] = None,
        limit: int = 10
    ) -> List[AnswerLibraryEntry]:
        """Search active entries, most trusted first."""
        if not query or not query.strip():
            raise ValidationError("query", "Search query is required")

        wanted = self._validate_category(category) if category else None
        entries = [
            e for e in await self.repository.list_for_organization(organization_id)
            if e.is_active
            and (wanted is None or e.category == wanted)
            and _matches_text(e, query)
        ]
        entries.sort(key=_by_confidence)
        return entries[:limit]

    # ------------------------------------------------------------------
    # Feedback loop
    # ------------------------------------------------------------------

    async def record_accepted_answer(
        self,
        question: Question,
        answer_text: str,
        organization_id: str,
        created_by: str,
        source_library_id: Optional[str] = None,
        evidence_ids: Optional[List[str]] = None
    ) -> str:
        """
        Feed an accepted answer back into the library.

        Reuse of a library suggestion reinforces that entry; any other answer
        is promoted into a new entry categorized from the question text. The
        promoted entry references the question's mapped controls unless
        evidence ids are given.

        Returns:
            The reinforced or newly created entry id
        """
        if source_library_id:
            entry = await self.increment_usage(source_library_id, organization_id)
            return entry.id

        entry = await self._create(
            organization_id,
            detect_answer_category(question.text),
            None,
            sorted(question.extracted_keywords),
            answer_text,
            list(question.control_mapping) if evidence_ids is None else evidence_ids,
            created_by,
            metadata={"promoted_from_question": question.id},
            usage_count=1,
        )
        return entry.id

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def get_stats(self, organization_id: str) -> LibraryStats:
        entries = await self.repository.list_for_organization(organization_id)

        total_entries = len(entries)
        total_usage = sum(e.usage_count for e in entries)
        average_confidence = (
            sum(e.confidence_score for e in entries) / total_entries if total_entries else 0.0
        )

        # Category breakdown
        category_counts: Dict[AnswerCategory, List[int]] = {}
        for entry in entries:
            counts = category_counts.setdefault(entry.category, [0, 0])
            counts[0] += 1
            counts[1] += entry.usage_count

        breakdown = [
            CategoryBreakdown(category=category, count=count, usage=usage)
            for category, (count, usage) in category_counts.items()
        ]
        breakdown.sort(key=lambda b: (-b.count, b.category.value))

        top_used = sorted(entries, key=lambda e: (-e.usage_count, e.id))[:STATS_LIST_SIZE]
        recent = sorted(entries, key=lambda e: (-e.last_updated.timestamp(), e.id))[:STATS_LIST_SIZE]

        return LibraryStats(
            total_entries=total_entries,
            active_entries=sum(1 for e in entries if e.is_active),
            total_usage=total_usage,
            average_confidence=round(average_confidence, 2),
            category_breakdown=breakdown,
            top_used_entries=top_used,
            recently_updated=recent,
        )

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    async def import_from_delimited_text(
        self,
        organization_id: str,
        raw_text: str,
        created_by: str
    ) -> ImportResult:
        """
        Import entries row by row. Bad rows are reported and skipped; the
        rest of the file still imports.
        """
        rows, errors = self.csv_processor.parse_library_rows(raw_text)
        imported = 0
        import_date = self.clock().isoformat()

        for row in rows:
            if row.error:
                errors.append(f"Row {row.row_number}: {row.error}")
                continue

            data = row.data
            category = data.get("category", "").strip()
            answer = data.get("standardanswer", "").strip()

            missing = [name for name, value in (("category", category), ("standard answer", answer)) if not value]
            if missing:
                errors.append(f"Row {row.row_number}: Missing required fields: {', '.join(missing)}")
                continue

            try:
                await self._create(
                    organization_id,
                    category,
                    data.get("subcategory"),
                    split_list(data.get("keyphrases", "")),
                    answer,
                    split_list(data.get("evidencereferences", "")),
                    created_by,
                    metadata={
                        "imported": True,
                        "import_date": import_date,
                        "original_row": row.row_number,
                    },
                    is_active=parse_flag(data.get("isactive", "")),
                )
            except ValidationError as e:
                errors.append(f"Row {row.row_number}: {e.message}")
                continue

            imported += 1

        logger.info(f"Imported {imported} library entries for {organization_id} with {len(errors)} errors")
        return ImportResult(imported_count=imported, errors=errors)

    async def export_to_delimited_text(self, organization_id: str) -> str:
        entries = await self.get_entries(organization_id, limit=None)
        return self.csv_processor.generate_library_export(entries)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def suggest_improvements(self, organization_id: str) -> List[ImprovementSuggestion]:
        """Flag entries that are unused, untrusted, thin or stale, most urgent first."""
        entries = await self.get_entries(organization_id, limit=None)
        now = self.clock()
        settings = self.settings

        findings = []
        needs_phrases = []
        for entry in entries:
            messages = []
            priority = None

            def flag(message: str, level: ImprovementPriority):
                nonlocal priority
                messages.append(message)
                if priority is None or PRIORITY_RANK[level] > PRIORITY_RANK[priority]:
                    priority = level

            if entry.usage_count == 0:
                flag("This entry has never been used. Consider reviewing or updating it.",
                     ImprovementPriority.MEDIUM)

            if entry.confidence_score < settings.low_confidence_threshold:
                flag("Low confidence score. Consider improving the answer quality.",
                     ImprovementPriority.HIGH)

            if len(entry.key_phrases) < settings.min_key_phrases:
                flag("Consider adding more key phrases to improve matching.",
                     ImprovementPriority.MEDIUM)
                needs_phrases.append(entry.id)

            if len(entry.standard_answer) < settings.min_answer_length:
                flag("Answer is quite short. Consider providing more detailed information.",
                     ImprovementPriority.LOW)

            if days_between(entry.last_updated, now) > settings.stale_after_days:
                flag(f"Entry hasn't been updated in over {settings.stale_after_days} days. "
                     f"Consider reviewing for accuracy.",
                     ImprovementPriority.MEDIUM)

            if messages:
                findings.append(ImprovementSuggestion(
                    entry_id=entry.id,
                    suggestions=messages,
                    priority=priority,
                ))

        proposals = self.key_phrase_extractor.propose(entries, needs_phrases)
        for finding in findings:
            finding.proposed_key_phrases = proposals.get(finding.entry_id, [])

        findings.sort(key=lambda f: -PRIORITY_RANK[f.priority])
        return findings

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require(self, entry_id: str, organization_id: Optional[str] = None) -> AnswerLibraryEntry:
        """Fetch an entry, treating another organization's entry as missing."""
        entry = await self.repository.get(entry_id)
        if entry is None or (organization_id is not None and entry.organization_id != organization_id):
            raise NotFoundError("Answer library entry", entry_id)
        return entry

    @staticmethod
    def _validate_category(category) -> AnswerCategory:
        parsed = parse_category(category)
        if parsed is None:
            raise ValidationError(
                "category",
                f"Invalid category '{category}'. Must be one of: {', '.join(c.value for c in AnswerCategory)}"
            )
        return parsed

    @staticmethod
    def _validate_answer(answer: Optional[str]) -> str:
        answer = (answer or "").strip()
        if not answer:
            raise ValidationError("standard_answer", "Standard answer is required")
        return answer
