"""
Pydantic validation schemas
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from casechron.db.models import PartyRole, SharePermission


class CamelModel(BaseModel):
    """Wire format is camelCase; Python attributes stay snake_case."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# Case Schemas
# ============================================================================

class CaseCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    context: Optional[str] = None
    key_parties: Optional[str] = None
    instructions: Optional[str] = None


class CaseUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    context: Optional[str] = None
    key_parties: Optional[str] = None
    instructions: Optional[str] = None


class CaseResponse(CamelModel):
    id: UUID
    user_id: UUID
    name: str
    description: Optional[str] = None
    context: Optional[str] = None
    key_parties: Optional[str] = None
    instructions: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CaseShareCreate(CamelModel):
    user_id: UUID
    permission: SharePermission = SharePermission.read


class CaseShareResponse(CamelModel):
    id: UUID
    case_id: UUID
    user_id: UUID
    permission: str
    created_at: datetime


# ============================================================================
# Party Schemas
# ============================================================================

class PartyCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    role: PartyRole
    description: Optional[str] = None


class PartyUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[PartyRole] = None
    description: Optional[str] = None


class PartyResponse(CamelModel):
    id: UUID
    case_id: UUID
    name: str
    role: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Chronology Schemas
# ============================================================================

class ChronologyCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[str] = None


class ChronologyUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[str] = None


class ChronologyResponse(CamelModel):
    id: UUID
    case_id: UUID
    name: str
    description: Optional[str] = None
    type: Optional[str] = None
    is_default: bool
    entries_count: int = 0
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Document Schemas
# ============================================================================

class DocumentSummary(CamelModel):
    id: UUID
    filename: str
    file_type: str
    file_size: int


class DocumentResponse(DocumentSummary):
    case_id: UUID
    entry_id: Optional[UUID] = None
    content: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="doc_metadata")
    created_at: datetime


class UploadedFileResult(CamelModel):
    name: str
    file_size: int
    file_type: str
    content: Optional[str] = None
    document_id: Optional[UUID] = None
    error: Optional[str] = None


class DocumentUploadResponse(CamelModel):
    success: bool
    files: List[UploadedFileResult]


# ============================================================================
# Entry Schemas
# ============================================================================

class EntryFields(CamelModel):
    """
    Loosely-typed entry payload. Validation happens in the entry normalizer so
    that field-level reasons can be reported per entry.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    date: Optional[Any] = None
    time: Optional[str] = None
    parties: Optional[Any] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    source: Optional[str] = None
    category: Optional[str] = None
    legal_significance: Optional[str] = None
    related_entries: Optional[str] = None
    questions: Optional[List[str]] = None


class EntryCreate(EntryFields):
    chronology_id: Optional[UUID] = None
    document_ids: Optional[List[UUID]] = None


class EntryBulkCreate(CamelModel):
    chronology_id: Optional[UUID] = None
    entries: List[Dict[str, Any]] = Field(..., min_length=1)


class EntryResponse(CamelModel):
    id: UUID
    case_id: UUID
    chronology_id: Optional[UUID] = None
    date: date
    time: str
    parties: str
    title: str
    summary: str
    source: str
    category: Optional[str] = None
    category_conforming: bool = True
    legal_significance: str
    related_entries: str
    documents: List[DocumentSummary] = []
    created_at: datetime
    updated_at: datetime


class EntryCreateResponse(EntryResponse):
    questions: List[str] = []
    needs_clarification: bool = False


class RejectedEntryResponse(CamelModel):
    index: int
    errors: Dict[str, str]
    entry: Dict[str, Any] = Field(default_factory=dict)


class EntryBulkResponse(CamelModel):
    created: List[EntryCreateResponse]
    rejected: List[RejectedEntryResponse]


# ============================================================================
# Analysis Schemas
# ============================================================================

class ExistingEntryContext(BaseModel):
    date: str
    time: Optional[str] = None
    title: str
    summary: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def stringify_date(cls, v):
        if isinstance(v, (date, datetime)):
            return v.isoformat()
        return v


class AnalyzeRequest(BaseModel):
    """Body posted by the chronology UI (camelCase on the wire)."""
    content: Optional[str] = None
    filename: Optional[str] = None
    caseContext: Optional[str] = None
    keyParties: Optional[str] = None
    instructions: Optional[str] = None
    userContext: Optional[str] = None
    existingEntries: List[ExistingEntryContext] = []


class CaseAnalyzeRequest(CamelModel):
    content: Optional[str] = None
    filename: Optional[str] = None
    user_context: Optional[str] = None
    document_ids: List[UUID] = []
    chronology_id: Optional[UUID] = None


class AnalyzeResponse(BaseModel):
    entries: List[Dict[str, Any]]
    rawResponse: Optional[str] = None
    error: Optional[str] = None
    rejected: List[RejectedEntryResponse] = []
    needsClarification: bool = False
