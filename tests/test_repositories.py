"""Tests for the in-memory repositories and seed loading."""

from datetime import timedelta
from pathlib import Path

import pytest

from conftest import NOW, ORG, OTHER_ORG, make_entry, make_evidence
from models import EvidenceStatus, EvidenceType
from repositories import (
    InMemoryAnswerLibraryRepository,
    InMemoryEvidenceRepository,
    InMemoryQuestionRepository,
    load_seed_data,
)

SEED_FILE = Path(__file__).parent.parent / "data" / "seed.json"


class TestEvidenceRepository:
    @pytest.mark.asyncio
    async def test_control_lookup_is_approved_only_and_newest_first(self, evidence_repo):
        evidence_repo.add(make_evidence("ev-old", updated_at=NOW - timedelta(days=30)))
        evidence_repo.add(make_evidence("ev-new", updated_at=NOW))
        evidence_repo.add(make_evidence("ev-draft", status=EvidenceStatus.DRAFT))
        evidence_repo.add(make_evidence("ev-foreign", organization_id=OTHER_ORG))

        found = await evidence_repo.find_by_control_ids(ORG, ["ctl-1"])

        assert [e.id for e in found] == ["ev-new", "ev-old"]

    @pytest.mark.asyncio
    async def test_control_lookup_without_controls(self, evidence_repo):
        evidence_repo.add(make_evidence())

        assert await evidence_repo.find_by_control_ids(ORG, []) == []

    @pytest.mark.asyncio
    async def test_type_lookup_with_limit(self, evidence_repo):
        evidence_repo.add(make_evidence("ev-1", type=EvidenceType.TRAINING, updated_at=NOW))
        evidence_repo.add(make_evidence("ev-2", type=EvidenceType.TRAINING, updated_at=NOW - timedelta(days=1)))
        evidence_repo.add(make_evidence("ev-3"))

        found = await evidence_repo.find_by_types(ORG, [EvidenceType.TRAINING], limit=1)

        assert [e.id for e in found] == ["ev-1"]


class TestLibraryRepository:
    @pytest.mark.asyncio
    async def test_phrase_lookup_skips_inactive_and_other_orgs(self, library_repo):
        library_repo.load([
            make_entry("LIB-a", confidence_score=60),
            make_entry("LIB-b", confidence_score=90, key_phrases=["aes"]),
            make_entry("LIB-off", is_active=False),
            make_entry("LIB-x", organization_id=OTHER_ORG),
        ])

        found = await library_repo.find_active_by_key_phrases(ORG, ["AES", "encryption"], limit=5)

        assert [e.id for e in found] == ["LIB-b", "LIB-a"]

    @pytest.mark.asyncio
    async def test_save_reindexes_phrases(self, library_repo):
        entry = make_entry()
        await library_repo.add(entry)

        await library_repo.save(entry.model_copy(update={"key_phrases": ["tls"]}))

        assert await library_repo.find_active_by_key_phrases(ORG, ["encryption"], limit=5) == []
        assert len(await library_repo.find_active_by_key_phrases(ORG, ["tls"], limit=5)) == 1

    @pytest.mark.asyncio
    async def test_returned_entries_are_copies(self, library_repo):
        await library_repo.add(make_entry())

        fetched = await library_repo.get("LIB-1")
        fetched.key_phrases.append("mutated")

        assert "mutated" not in (await library_repo.get("LIB-1")).key_phrases

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_rejected(self, library_repo):
        await library_repo.add(make_entry())

        with pytest.raises(ValueError):
            await library_repo.add(make_entry())

    @pytest.mark.asyncio
    async def test_delete_unknown_entry(self, library_repo):
        assert await library_repo.delete("LIB-missing") is False


@pytest.mark.asyncio
async def test_load_seed_data():
    questions = InMemoryQuestionRepository()
    evidence = InMemoryEvidenceRepository()
    library = InMemoryAnswerLibraryRepository()

    counts = load_seed_data(SEED_FILE, questions, evidence, library)

    assert counts == (3, 2, 2)
    question = await questions.get_by_id("q-encryption-at-rest")
    assert question.extracted_keywords == {"encryption", "data protection"}
    assert len(await library.list_for_organization("demo-org")) == 2
