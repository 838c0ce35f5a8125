"""HTTP API tests using the FastAPI test client."""

import pytest
from fastapi.testclient import TestClient

import main
from conftest import ORG, OTHER_ORG, make_entry, make_evidence, make_question
from models import QuestionType
from services.llm_generator import TemplateTextCapability

LIBRARY = "/api/v1/answer-library"


@pytest.fixture
def client(question_repo, evidence_repo, library_repo, settings, clock):
    question_repo.add(make_question(
        "q-enc",
        text="Is customer data protected with encryption at rest?",
        type=QuestionType.YES_NO,
        control_mapping=["ctl-1"],
    ))
    evidence_repo.add(make_evidence())
    library_repo.load([make_entry()])

    main.configure(question_repo, evidence_repo, library_repo, TemplateTextCapability(), settings, clock)
    with TestClient(main.app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["generators"] == ["LIBRARY", "EVIDENCE", "PATTERN", "GENERATIVE"]


class TestSuggestions:
    def test_ranked_suggestions(self, client):
        response = client.get("/api/v1/questions/q-enc/suggestions", params={"organization_id": ORG})

        assert response.status_code == 200
        suggestions = response.json()["suggestions"]
        assert 0 < len(suggestions) <= 5
        assert suggestions[0]["source_type"] == "LIBRARY"
        assert suggestions[0]["source_id"] == "LIB-1"
        scores = [s["confidence_score"] for s in suggestions]
        assert scores == sorted(scores, reverse=True)

    def test_unknown_question(self, client):
        response = client.get("/api/v1/questions/nope/suggestions", params={"organization_id": ORG})

        assert response.status_code == 404

    def test_organization_is_required(self, client):
        response = client.get("/api/v1/questions/q-enc/suggestions")

        assert response.status_code == 422

    def test_accepting_library_answer_reinforces_it(self, client):
        response = client.post("/api/v1/questions/q-enc/accept", json={
            "organization_id": ORG,
            "answer_text": "Yes",
            "created_by": "reviewer",
            "source_library_id": "LIB-1",
        })

        assert response.status_code == 200
        assert response.json() == {"entry_id": "LIB-1"}
        entry = client.get(f"{LIBRARY}/LIB-1", params={"organization_id": ORG}).json()
        assert entry["usage_count"] == 4

    def test_accepting_new_answer_adds_entry(self, client):
        response = client.post("/api/v1/questions/q-enc/accept", json={
            "organization_id": ORG,
            "answer_text": "Yes, with AES-256 managed by our cloud KMS.",
            "created_by": "reviewer",
        })

        entry_id = response.json()["entry_id"]
        entry = client.get(f"{LIBRARY}/{entry_id}", params={"organization_id": ORG}).json()
        assert entry["category"] == "DATA_PROTECTION"
        assert entry["evidence_references"] == ["ctl-1"]
        assert entry["usage_count"] == 1


class TestLibrary:
    def test_create_and_fetch(self, client):
        response = client.post(LIBRARY, params={"organization_id": ORG}, json={
            "category": "ACCESS_CONTROL",
            "key_phrases": ["mfa"],
            "standard_answer": "MFA is enforced for every workforce account.",
            "created_by": "user-1",
        })

        assert response.status_code == 201
        entry_id = response.json()["entry_id"]
        entry = client.get(f"{LIBRARY}/{entry_id}", params={"organization_id": ORG}).json()
        assert entry["category"] == "ACCESS_CONTROL"
        assert entry["confidence_score"] == 50

    def test_create_rejects_unknown_category(self, client):
        response = client.post(LIBRARY, params={"organization_id": ORG}, json={
            "category": "MARKETING",
            "standard_answer": "Newsletters go out monthly.",
            "created_by": "user-1",
        })

        assert response.status_code == 422
        assert response.json()["field"] == "category"

    def test_other_organization_sees_nothing(self, client):
        assert client.get(f"{LIBRARY}/LIB-1", params={"organization_id": OTHER_ORG}).status_code == 404
        assert client.get(LIBRARY, params={"organization_id": OTHER_ORG}).json() == {"entries": []}

    def test_list_and_search(self, client):
        listed = client.get(LIBRARY, params={"organization_id": ORG}).json()["entries"]
        found = client.get(f"{LIBRARY}/search", params={"organization_id": ORG, "query": "aes"}).json()["entries"]

        assert [e["id"] for e in listed] == ["LIB-1"]
        assert [e["id"] for e in found] == ["LIB-1"]

    def test_patch_use_and_delete(self, client):
        patched = client.patch(f"{LIBRARY}/LIB-1", params={"organization_id": ORG}, json={"subcategory": "At Rest"})
        assert patched.status_code == 200
        assert patched.json()["subcategory"] == "At Rest"
        assert patched.json()["usage_count"] == 3

        used = client.post(f"{LIBRARY}/LIB-1/use", params={"organization_id": ORG})
        assert used.json()["usage_count"] == 4

        deleted = client.delete(f"{LIBRARY}/LIB-1", params={"organization_id": ORG})
        assert deleted.status_code == 204
        assert client.get(f"{LIBRARY}/LIB-1", params={"organization_id": ORG}).status_code == 404

    def test_stats_and_improvements(self, client):
        stats = client.get(f"{LIBRARY}/stats", params={"organization_id": ORG}).json()
        improvements = client.get(f"{LIBRARY}/improvements", params={"organization_id": ORG}).json()

        assert stats["total_entries"] == 1
        assert stats["total_usage"] == 3
        assert improvements == {"improvements": []}

    def test_export_and_import(self, client):
        exported = client.get(f"{LIBRARY}/export", params={"organization_id": ORG})
        assert exported.status_code == 200
        assert exported.headers["content-type"].startswith("text/csv")

        imported = client.post(f"{LIBRARY}/import", params={"organization_id": OTHER_ORG}, json={
            "csv_data": exported.text,
            "created_by": "importer",
        })
        assert imported.status_code == 200
        assert imported.json()["imported_count"] == 1
        assert imported.json()["errors"] == []

    def test_import_file(self, client):
        content = b"Category,Standard Answer\nCUSTOM,Custom answer text.\n,Missing category.\n"

        response = client.post(
            f"{LIBRARY}/import-file",
            params={"organization_id": ORG, "created_by": "importer"},
            files={"file": ("library.csv", content, "text/csv")},
        )

        assert response.status_code == 200
        assert response.json() == {
            "imported_count": 1,
            "errors": ["Row 3: Missing required fields: category"],
        }

    def test_import_file_rejects_other_formats(self, client):
        response = client.post(
            f"{LIBRARY}/import-file",
            params={"organization_id": ORG, "created_by": "importer"},
            files={"file": ("library.xlsx", b"binary", "application/octet-stream")},
        )

        assert response.status_code == 400

    def test_import_with_too_wide_row_reports_it(self, client):
        response = client.post(f"{LIBRARY}/import", params={"organization_id": ORG}, json={
            "csv_data": "Category,Standard Answer\nCUSTOM,a,b,c\nCUSTOM,Valid answer text.\n",
            "created_by": "importer",
        })

        assert response.status_code == 200
        assert response.json()["imported_count"] == 1
        assert response.json()["errors"] == ["Row 2: Too many fields (4, expected 2)"]
