"""Admin console endpoints for versioned content.

Authoring, preview and archive need a privileged role (editor or admin).
Publishing and hard deletion need a publish role (admin).
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.deps import get_admin_service, get_import_service, require_editor, require_publisher
from app.core.auth import Actor
from app.domain.content import ContentKind, QuestionSetKey, ResultsPackKey
from app.schemas.content import (
    AuditEntryResponse,
    DeleteIdentityResponse,
    IdentityHistoryResponse,
    IdentitySummary,
    IssueResponse,
    PointerResponse,
    PointerUpdateRequest,
    QuestionSetIdentityCreate,
    QuestionSetImportRequest,
    QuestionSetImportResponse,
    ResultsPackIdentityCreate,
    RevisionCreateRequest,
    RevisionCreateResponse,
    RevisionDetail,
    RevisionSummary,
    ScaffoldResultsRequest,
    ScaffoldResultsResponse,
)
from app.services.content_admin_service import ContentAdminService, IdentityOverview
from app.services.import_service import QuestionSetImportService
from app.store.repository import IdentityRecord, PointerRecord, RevisionRecord

router = APIRouter(prefix="/admin/content")


def _summary(overview: IdentityOverview) -> IdentitySummary:
    identity = overview.identity
    return IdentitySummary(
        id=identity.id,
        slug=identity.slug,
        kind=identity.kind,
        assessment_type=identity.assessment_type,
        content_version=identity.content_version,
        variant=identity.variant,
        status=identity.status,
        published_revision_number=overview.published_revision_number,
        preview_revision_number=overview.preview_revision_number,
        latest_revision_number=overview.latest_revision_number,
        created_at=identity.created_at,
        updated_at=identity.updated_at,
    )


def _bare_summary(identity: IdentityRecord) -> IdentitySummary:
    return _summary(IdentityOverview(identity=identity))


def _revision_fields(revision: RevisionRecord, pointer: PointerRecord | None) -> dict:
    return {
        "id": revision.id,
        "identity_id": revision.identity_id,
        "revision_number": revision.revision_number,
        "status": revision.status,
        "schema_version": revision.schema_version,
        "content_hash": revision.content_hash,
        "notes": revision.notes,
        "created_by": revision.created_by,
        "created_at": revision.created_at,
        "is_published": pointer is not None and pointer.published_revision_id == revision.id,
        "is_preview": pointer is not None and pointer.preview_revision_id == revision.id,
    }


def _pointer(pointer: PointerRecord) -> PointerResponse:
    return PointerResponse(
        identity_id=pointer.identity_id,
        published_revision_id=pointer.published_revision_id,
        preview_revision_id=pointer.preview_revision_id,
        updated_at=pointer.updated_at,
    )


def _issues(issues) -> list[IssueResponse]:
    return [IssueResponse(location=issue.location, message=issue.message) for issue in issues]


# ==================== IDENTITIES ====================


@router.get("/{kind}/identities", response_model=list[IdentitySummary])
async def list_identities(
    kind: ContentKind,
    include_archived: bool = False,
    actor: Actor = Depends(require_editor),
    admin: ContentAdminService = Depends(get_admin_service),
):
    """List identities of one kind with their published/preview revision numbers."""
    overviews = await admin.list_identities(kind, include_archived=include_archived)
    return [_summary(o) for o in overviews]


@router.post("/question_set/identities", response_model=IdentitySummary)
async def ensure_question_set(
    request: QuestionSetIdentityCreate,
    actor: Actor = Depends(require_editor),
    admin: ContentAdminService = Depends(get_admin_service),
):
    identity, _ = await admin.ensure_identity(
        QuestionSetKey(request.assessment_type, request.assessment_version, request.locale),
        actor_id=actor.actor_id,
    )
    return _bare_summary(identity)


@router.post("/results_pack/identities", response_model=IdentitySummary)
async def ensure_results_pack(
    request: ResultsPackIdentityCreate,
    actor: Actor = Depends(require_editor),
    admin: ContentAdminService = Depends(get_admin_service),
):
    identities = await admin.scaffold_results(
        request.assessment_type, request.results_version, [request.level_id], actor_id=actor.actor_id
    )
    identity, _ = identities[0]
    return _bare_summary(identity)


@router.post("/results_pack/scaffold", response_model=ScaffoldResultsResponse)
async def scaffold_results_packs(
    request: ScaffoldResultsRequest,
    actor: Actor = Depends(require_editor),
    admin: ContentAdminService = Depends(get_admin_service),
):
    """Create the level1..level4 identities of a results version in one call."""
    results = await admin.scaffold_results(
        request.assessment_type, request.results_version, request.levels, actor_id=actor.actor_id
    )
    return ScaffoldResultsResponse(
        identities=[_bare_summary(identity) for identity, _ in results],
        created=[identity.slug for identity, created in results if created],
    )


@router.get("/identities/{identity_id}", response_model=IdentityHistoryResponse)
async def get_identity_history(
    identity_id: UUID,
    actor: Actor = Depends(require_editor),
    admin: ContentAdminService = Depends(get_admin_service),
):
    """Identity, pointer, full revision history and audit trail."""
    history = await admin.get_history(identity_id)
    return IdentityHistoryResponse(
        identity=_summary(history.overview),
        pointer=_pointer(history.pointer) if history.pointer else None,
        revisions=[RevisionSummary(**_revision_fields(r, history.pointer)) for r in history.revisions],
        audit=[
            AuditEntryResponse(
                actor_id=entry.actor_id,
                action=entry.action,
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
                details=entry.details,
                created_at=entry.created_at,
            )
            for entry in history.audit
        ],
    )


@router.post("/identities/{identity_id}/archive", response_model=IdentitySummary)
async def archive_identity(
    identity_id: UUID,
    actor: Actor = Depends(require_editor),
    admin: ContentAdminService = Depends(get_admin_service),
):
    """Hide the identity and clear both pointers. Reversible."""
    identity = await admin.archive(identity_id, actor_id=actor.actor_id)
    return _bare_summary(identity)


@router.post("/identities/{identity_id}/unarchive", response_model=IdentitySummary)
async def unarchive_identity(
    identity_id: UUID,
    actor: Actor = Depends(require_editor),
    admin: ContentAdminService = Depends(get_admin_service),
):
    identity = await admin.unarchive(identity_id, actor_id=actor.actor_id)
    return _bare_summary(identity)


@router.delete("/identities/{identity_id}", response_model=DeleteIdentityResponse)
async def delete_identity(
    identity_id: UUID,
    actor: Actor = Depends(require_publisher),
    admin: ContentAdminService = Depends(get_admin_service),
):
    """Irreversibly remove the identity with its revisions and pointer."""
    removed = await admin.delete(identity_id, actor_id=actor.actor_id)
    return DeleteIdentityResponse(identity_id=identity_id, revisions_deleted=removed)


# ==================== REVISIONS & POINTERS ====================


@router.post("/identities/{identity_id}/revisions", response_model=RevisionCreateResponse, status_code=201)
async def create_revision(
    identity_id: UUID,
    request: RevisionCreateRequest,
    actor: Actor = Depends(require_editor),
    admin: ContentAdminService = Depends(get_admin_service),
):
    """Validate the document and store it as a new draft revision."""
    created = await admin.create_revision(identity_id, request.document, notes=request.notes, actor_id=actor.actor_id)
    return RevisionCreateResponse(
        revision=RevisionSummary(**_revision_fields(created.revision, None)),
        warnings=_issues(created.warnings),
        same_content_as=created.same_content_as,
    )


@router.get("/revisions/{revision_id}", response_model=RevisionDetail)
async def get_revision(
    revision_id: UUID,
    actor: Actor = Depends(require_editor),
    admin: ContentAdminService = Depends(get_admin_service),
):
    revision = await admin.get_revision(revision_id)
    pointer = await admin.pointers.get_pointer(revision.identity_id)
    return RevisionDetail(**_revision_fields(revision, pointer), document=revision.document)


@router.put("/identities/{identity_id}/preview", response_model=PointerResponse)
async def set_preview(
    identity_id: UUID,
    request: PointerUpdateRequest,
    actor: Actor = Depends(require_editor),
    admin: ContentAdminService = Depends(get_admin_service),
):
    pointer = await admin.set_preview(identity_id, request.revision_id, actor_id=actor.actor_id)
    return _pointer(pointer)


@router.put("/identities/{identity_id}/published", response_model=PointerResponse)
async def set_published(
    identity_id: UUID,
    request: PointerUpdateRequest,
    actor: Actor = Depends(require_publisher),
    admin: ContentAdminService = Depends(get_admin_service),
):
    """Publish a revision. The revision's document is re-validated first."""
    pointer = await admin.publish(identity_id, request.revision_id, actor_id=actor.actor_id)
    return _pointer(pointer)


# ==================== TABULAR IMPORT ====================


@router.post("/question_set/import", response_model=QuestionSetImportResponse, status_code=201)
async def import_question_set(
    request: QuestionSetImportRequest,
    actor: Actor = Depends(require_editor),
    importer: QuestionSetImportService = Depends(get_import_service),
):
    """Import four CSV tables as a draft question set revision (or validate only with dry_run)."""
    outcome = await importer.import_tables(
        request.meta_csv,
        request.sections_csv,
        request.questions_csv,
        request.options_csv,
        actor_id=actor.actor_id,
        dry_run=request.dry_run,
    )
    return QuestionSetImportResponse(
        document=outcome.document,
        content_hash=outcome.content_hash,
        identity=_bare_summary(outcome.identity) if outcome.identity else None,
        revision=RevisionSummary(**_revision_fields(outcome.created.revision, None)) if outcome.created else None,
        warnings=_issues(outcome.warnings),
    )
