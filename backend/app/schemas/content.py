"""Pydantic schemas for content resolution and the admin console."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from app.domain.content import ContentKind, IdentityStatus, PointerChannel, ResolutionSource, RevisionStatus

LEVEL_IDS = ["level1", "level2", "level3", "level4"]


# ==================== RESOLUTION ====================


class ResolutionRef(BaseModel):
    """Pin carried by downstream consumers (e.g. a stored submission).

    Identifies exactly which revision produced a shown document, or that the
    bundled file fallback did.
    """

    source: ResolutionSource
    identity_id: UUID | None = None
    revision_id: UUID | None = None
    channel: PointerChannel | None = None
    content_hash: str | None = None
    resolved_at: datetime


class QuestionSetResolveRequest(BaseModel):
    assessment_type: str = Field(default="gut-check", min_length=1)
    assessment_version: str = Field(default="2", min_length=1)
    locale: str | None = None
    preview: bool = False
    pin: ResolutionRef | None = None


class ResultsPackResolveRequest(BaseModel):
    assessment_type: str = Field(default="gut-check", min_length=1)
    results_version: str = Field(default="2", min_length=1)
    level_id: str = Field(..., min_length=1, description="level1..level4 or a configured alias")
    preview: bool = False
    pin: ResolutionRef | None = None


class ResolveResponse(BaseModel):
    document: dict[str, Any]
    source: ResolutionSource
    tier: str  # pin, preview, published, file
    content_hash: str | None = None
    resolved_at: datetime
    revision_number: int | None = None
    pin: ResolutionRef
    new_pin: bool = Field(..., description="False when the supplied pin was honoured unchanged")


# ==================== ADMIN: IDENTITIES ====================


class QuestionSetIdentityCreate(BaseModel):
    assessment_type: str = Field(..., min_length=1)
    assessment_version: str = Field(..., min_length=1)
    locale: str | None = None


class ResultsPackIdentityCreate(BaseModel):
    assessment_type: str = Field(..., min_length=1)
    results_version: str = Field(..., min_length=1)
    level_id: str = Field(..., min_length=1)


class ScaffoldResultsRequest(BaseModel):
    assessment_type: str = Field(..., min_length=1)
    results_version: str = Field(..., min_length=1)
    levels: list[str] = Field(default_factory=lambda: list(LEVEL_IDS))


class IdentitySummary(BaseModel):
    id: UUID
    slug: str
    kind: ContentKind
    assessment_type: str
    content_version: str
    variant: str | None
    status: IdentityStatus
    published_revision_number: int | None = None
    preview_revision_number: int | None = None
    latest_revision_number: int | None = None
    created_at: datetime
    updated_at: datetime


class ScaffoldResultsResponse(BaseModel):
    identities: list[IdentitySummary]
    created: list[str]  # slugs created by this call


class DeleteIdentityResponse(BaseModel):
    identity_id: UUID
    revisions_deleted: int


# ==================== ADMIN: REVISIONS & POINTERS ====================


class RevisionSummary(BaseModel):
    id: UUID
    identity_id: UUID
    revision_number: int
    status: RevisionStatus
    schema_version: str
    content_hash: str
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime
    is_published: bool = False
    is_preview: bool = False


class RevisionDetail(RevisionSummary):
    document: dict[str, Any]


class RevisionCreateRequest(BaseModel):
    document: dict[str, Any]
    notes: str | None = None


class IssueResponse(BaseModel):
    location: str
    message: str


class RevisionCreateResponse(BaseModel):
    revision: RevisionSummary
    warnings: list[IssueResponse] = Field(default_factory=list)
    same_content_as: int | None = None


class PointerUpdateRequest(BaseModel):
    revision_id: UUID


class PointerResponse(BaseModel):
    identity_id: UUID
    published_revision_id: UUID | None = None
    preview_revision_id: UUID | None = None
    updated_at: datetime


class AuditEntryResponse(BaseModel):
    actor_id: str | None
    action: str
    entity_type: str
    entity_id: str
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class IdentityHistoryResponse(BaseModel):
    identity: IdentitySummary
    pointer: PointerResponse | None = None
    revisions: list[RevisionSummary]
    audit: list[AuditEntryResponse] = Field(default_factory=list)


# ==================== ADMIN: TABULAR IMPORT ====================


class QuestionSetImportRequest(BaseModel):
    meta_csv: str
    sections_csv: str
    questions_csv: str
    options_csv: str
    dry_run: bool = False


class QuestionSetImportResponse(BaseModel):
    document: dict[str, Any]
    content_hash: str
    identity: IdentitySummary | None = None
    revision: RevisionSummary | None = None
    warnings: list[IssueResponse] = Field(default_factory=list)
