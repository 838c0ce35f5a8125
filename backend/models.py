"""Pydantic models for the answer suggestion backend."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive timestamps are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _unique(values) -> List[str]:
    """Drop blanks and duplicates while keeping first-seen order."""
    seen = []
    for value in values or []:
        value = str(value).strip()
        if value and value not in seen:
            seen.append(value)
    return seen


class QuestionType(str, Enum):
    FREE_TEXT = "FREE_TEXT"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    YES_NO = "YES_NO"
    RATING = "RATING"
    DATE = "DATE"
    FILE_UPLOAD = "FILE_UPLOAD"
    CHECKBOX_LIST = "CHECKBOX_LIST"
    DROPDOWN = "DROPDOWN"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class SourceType(str, Enum):
    """Origin of a suggestion. Declaration order is the tie-break priority."""
    LIBRARY = "LIBRARY"
    EVIDENCE = "EVIDENCE"
    PATTERN = "PATTERN"
    GENERATIVE = "GENERATIVE"


SOURCE_PRIORITY = {source: rank for rank, source in enumerate(SourceType)}


class EvidenceType(str, Enum):
    POLICY = "POLICY"
    PROCEDURE = "PROCEDURE"
    TRAINING = "TRAINING"
    INCIDENT_RESPONSE = "INCIDENT_RESPONSE"
    DOCUMENT = "DOCUMENT"
    REPORT = "REPORT"
    CERTIFICATE = "CERTIFICATE"
    CONFIGURATION = "CONFIGURATION"
    SCREENSHOT = "SCREENSHOT"
    OTHER = "OTHER"


class EvidenceStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class AnswerCategory(str, Enum):
    ACCESS_CONTROL = "ACCESS_CONTROL"
    DATA_PROTECTION = "DATA_PROTECTION"
    INCIDENT_RESPONSE = "INCIDENT_RESPONSE"
    NETWORK_SECURITY = "NETWORK_SECURITY"
    PHYSICAL_SECURITY = "PHYSICAL_SECURITY"
    BUSINESS_CONTINUITY = "BUSINESS_CONTINUITY"
    VENDOR_MANAGEMENT = "VENDOR_MANAGEMENT"
    COMPLIANCE_FRAMEWORK = "COMPLIANCE_FRAMEWORK"
    GENERAL_SECURITY = "GENERAL_SECURITY"
    CUSTOM = "CUSTOM"


class ImprovementPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_RANK = {
    ImprovementPriority.LOW: 1,
    ImprovementPriority.MEDIUM: 2,
    ImprovementPriority.HIGH: 3,
}


class Question(BaseModel):
    """A questionnaire question as produced by document ingestion."""
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    type: QuestionType = QuestionType.FREE_TEXT
    extracted_keywords: Set[str] = Field(default_factory=set)
    control_mapping: List[str] = Field(default_factory=list)
    risk_level: Optional[RiskLevel] = None

    @field_validator("extracted_keywords", mode="before")
    @classmethod
    def _lower_keywords(cls, value):
        return {str(k).strip().lower() for k in value or [] if str(k).strip()}

    @field_validator("control_mapping", mode="before")
    @classmethod
    def _unique_controls(cls, value):
        return _unique(value)


class ControlRef(BaseModel):
    """A compliance control linked to an evidence item."""
    id: str
    name: str


class Evidence(BaseModel):
    """An evidence item from the evidence repository."""
    id: str
    organization_id: str
    title: str
    type: EvidenceType = EvidenceType.DOCUMENT
    status: EvidenceStatus = EvidenceStatus.APPROVED
    controls: List[ControlRef] = Field(default_factory=list)
    updated_at: datetime

    @field_validator("updated_at")
    @classmethod
    def _updated_at_utc(cls, value):
        return _as_utc(value)


class Suggestion(BaseModel):
    """A scored candidate answer for a single question."""
    suggested_answer: str
    confidence_score: float = Field(..., ge=0, le=100)
    source_type: SourceType
    source_id: Optional[str] = None
    evidence_ids: List[str] = Field(default_factory=list)
    reasoning: str = Field(..., min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        return max(0.0, min(100.0, float(value)))

    @field_validator("evidence_ids", mode="before")
    @classmethod
    def _unique_evidence(cls, value):
        return _unique(value)


class AnswerLibraryEntry(BaseModel):
    """A reusable standard answer owned by one organization."""
    id: str
    organization_id: str
    category: AnswerCategory
    subcategory: Optional[str] = None
    key_phrases: List[str] = Field(default_factory=list)
    standard_answer: str
    evidence_references: List[str] = Field(default_factory=list)
    usage_count: int = Field(0, ge=0)
    confidence_score: float = Field(50, ge=0, le=100)
    last_used_at: Optional[datetime] = None
    last_updated: datetime
    created_at: datetime
    is_active: bool = True
    created_by: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("key_phrases", mode="before")
    @classmethod
    def _lower_phrases(cls, value):
        return _unique(str(v).lower() for v in value or [])

    @field_validator("evidence_references", mode="before")
    @classmethod
    def _unique_references(cls, value):
        return _unique(value)

    @field_validator("last_used_at", "last_updated", "created_at")
    @classmethod
    def _timestamps_utc(cls, value):
        return _as_utc(value)


class AnswerLibraryEntryCreate(BaseModel):
    """Request body for creating a library entry."""
    category: str
    subcategory: Optional[str] = None
    key_phrases: List[str] = Field(default_factory=list)
    standard_answer: str
    evidence_references: List[str] = Field(default_factory=list)
    created_by: str
    metadata: Optional[Dict[str, Any]] = None


class AnswerLibraryEntryUpdate(BaseModel):
    """Partial update for a library entry. Unset fields are left untouched."""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    key_phrases: Optional[List[str]] = None
    standard_answer: Optional[str] = None
    evidence_references: Optional[List[str]] = None
    is_active: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None


class AcceptedAnswer(BaseModel):
    """Request body recording that a reviewer accepted an answer."""
    organization_id: str
    answer_text: str
    created_by: str
    source_library_id: Optional[str] = None


class LibraryImportRequest(BaseModel):
    """Request body for importing delimited text."""
    csv_data: str
    created_by: str


class CategoryBreakdown(BaseModel):
    category: AnswerCategory
    count: int
    usage: int


class LibraryStats(BaseModel):
    """Aggregate statistics for an organization's answer library."""
    total_entries: int
    active_entries: int
    total_usage: int
    average_confidence: float
    category_breakdown: List[CategoryBreakdown]
    top_used_entries: List[AnswerLibraryEntry]
    recently_updated: List[AnswerLibraryEntry]


class LibraryImportRow(BaseModel):
    """A row from an answer library import, keyed by normalized header."""
    row_number: int
    data: Dict[str, str]
    error: Optional[str] = None


class ImportResult(BaseModel):
    """Outcome of a delimited text import."""
    imported_count: int = 0
    errors: List[str] = Field(default_factory=list)


class ImprovementSuggestion(BaseModel):
    """Diagnostic findings for one library entry."""
    entry_id: str
    suggestions: List[str]
    priority: ImprovementPriority
    proposed_key_phrases: List[str] = Field(default_factory=list)
