"""ContentAdminService: admin console operations over both content kinds.

Wraps the revision and pointer stores with identity lifecycle management
(ensure, archive, unarchive, delete, scaffold) and writes one audit entry
per mutation.
"""

from dataclasses import dataclass, field
from uuid import UUID

import structlog

from app.core.exceptions import ContentNotFoundError, ContentValidationError
from app.domain.config import ContentConfig
from app.domain.content import (
    ContentKind,
    IdentityDescriptor,
    IdentityStatus,
    ResultsPackKey,
    normalize_level_id,
)
from app.domain.validation import ValidationIssue
from app.services.audit_service import AuditAction, AuditService
from app.services.pointer_store import PointerStore
from app.services.revision_store import CreatedRevision, RevisionStore
from app.store.repository import AuditRecord, ContentRepository, IdentityRecord, PointerRecord, RevisionRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IdentityOverview:
    identity: IdentityRecord
    published_revision_number: int | None = None
    preview_revision_number: int | None = None
    latest_revision_number: int | None = None


@dataclass(frozen=True)
class IdentityHistory:
    overview: IdentityOverview
    pointer: PointerRecord | None
    revisions: list[RevisionRecord]
    audit: list[AuditRecord] = field(default_factory=list)


class ContentAdminService:
    def __init__(self, repository: ContentRepository, config: ContentConfig | None = None):
        self.repository = repository
        self.config = config or ContentConfig()
        self.revisions = RevisionStore(repository, self.config)
        self.pointers = PointerStore(repository, self.config)
        self.audit = AuditService(repository)

    async def _require_identity(self, identity_id: UUID) -> IdentityRecord:
        identity = await self.repository.get_identity(identity_id)
        if identity is None:
            raise ContentNotFoundError("identity", identity_id)
        return identity

    # Identities

    async def ensure_identity(self, descriptor: IdentityDescriptor, actor_id: str | None = None) -> tuple[IdentityRecord, bool]:
        """Upsert-by-key. Returns (identity, created)."""
        identity, created = await self.repository.ensure_identity(descriptor)
        if created:
            logger.info("identity_created", identity_id=str(identity.id), slug=identity.slug)
            await self.audit.record(actor_id, AuditAction.ENSURE_IDENTITY, identity.kind, identity.id, {"slug": identity.slug})
        return identity, created

    async def _overview(self, identity: IdentityRecord) -> tuple[IdentityOverview, PointerRecord | None, list[RevisionRecord]]:
        pointer = await self.repository.get_pointer(identity.id)
        revisions = await self.repository.list_revisions(identity.id)
        numbers = {r.id: r.revision_number for r in revisions}
        overview = IdentityOverview(
            identity=identity,
            published_revision_number=numbers.get(pointer.published_revision_id) if pointer else None,
            preview_revision_number=numbers.get(pointer.preview_revision_id) if pointer else None,
            latest_revision_number=revisions[0].revision_number if revisions else None,
        )
        return overview, pointer, revisions

    async def list_identities(self, kind: ContentKind, include_archived: bool = False) -> list[IdentityOverview]:
        """Identities of one kind with their current published/preview revision numbers."""
        identities = await self.repository.list_identities(kind, include_archived=include_archived)
        overviews = []
        for identity in identities:
            overview, _, _ = await self._overview(identity)
            overviews.append(overview)
        return overviews

    async def get_history(self, identity_id: UUID) -> IdentityHistory:
        identity = await self._require_identity(identity_id)
        overview, pointer, revisions = await self._overview(identity)
        audit = await self.audit.history(identity_id)
        return IdentityHistory(overview=overview, pointer=pointer, revisions=revisions, audit=audit)

    async def archive(self, identity_id: UUID, actor_id: str | None = None) -> IdentityRecord:
        """Soft-delete: hide from listing and resolution, clear both pointers."""
        await self._require_identity(identity_id)
        identity = await self.repository.set_identity_status(identity_id, IdentityStatus.ARCHIVED)
        await self.pointers.clear(identity_id)
        await self.audit.record(actor_id, AuditAction.ARCHIVE, identity.kind, identity_id, {"slug": identity.slug})
        return identity

    async def unarchive(self, identity_id: UUID, actor_id: str | None = None) -> IdentityRecord:
        await self._require_identity(identity_id)
        identity = await self.repository.set_identity_status(identity_id, IdentityStatus.ACTIVE)
        await self.audit.record(actor_id, AuditAction.UNARCHIVE, identity.kind, identity_id, {"slug": identity.slug})
        return identity

    async def delete(self, identity_id: UUID, actor_id: str | None = None) -> int:
        """Hard delete identity, revisions and pointer. Returns the number of revisions removed."""
        identity = await self._require_identity(identity_id)
        removed = await self.repository.delete_identity(identity_id)
        if removed is None:
            raise ContentNotFoundError("identity", identity_id)
        logger.info("identity_deleted", identity_id=str(identity_id), slug=identity.slug, revisions_deleted=removed)
        await self.audit.record(
            actor_id,
            AuditAction.DELETE,
            identity.kind,
            identity_id,
            {"slug": identity.slug, "revisions_deleted": removed},
        )
        return removed

    async def scaffold_results(
        self,
        assessment_type: str,
        results_version: str,
        levels: list[str],
        actor_id: str | None = None,
    ) -> list[tuple[IdentityRecord, bool]]:
        """Ensure one results pack identity per level. Existing identities are left as they are."""
        normalized: list[str] = []
        issues: list[ValidationIssue] = []
        for index, level in enumerate(levels):
            level_id = normalize_level_id(level, dict(self.config.level_aliases))
            if level_id is None:
                issues.append(ValidationIssue(f"levels[{index}]", f"unknown level '{level}'"))
            elif level_id not in normalized:
                normalized.append(level_id)
        if not normalized and not issues:
            issues.append(ValidationIssue("levels", "must list at least one level"))
        if issues:
            raise ContentValidationError(issues)

        results = []
        for level_id in normalized:
            identity, created = await self.repository.ensure_identity(
                ResultsPackKey(assessment_type, results_version, level_id)
            )
            if created:
                await self.audit.record(actor_id, AuditAction.SCAFFOLD, identity.kind, identity.id, {"slug": identity.slug})
            results.append((identity, created))
        return results

    # Revisions and pointers

    async def get_revision(self, revision_id: UUID) -> RevisionRecord:
        revision = await self.revisions.get_revision(revision_id)
        if revision is None:
            raise ContentNotFoundError("revision", revision_id)
        return revision

    async def create_revision(
        self,
        identity_id: UUID,
        document: dict,
        notes: str | None = None,
        actor_id: str | None = None,
        action: str = AuditAction.CREATE_REVISION,
    ) -> CreatedRevision:
        created = await self.revisions.create_revision(identity_id, document, notes=notes, created_by=actor_id)
        identity = await self._require_identity(identity_id)
        await self.audit.record(
            actor_id,
            action,
            identity.kind,
            identity_id,
            {
                "revision_id": str(created.revision.id),
                "revision_number": created.revision.revision_number,
                "content_hash": created.revision.content_hash,
            },
        )
        return created

    async def set_preview(self, identity_id: UUID, revision_id: UUID, actor_id: str | None = None) -> PointerRecord:
        pointer = await self.pointers.set_preview(identity_id, revision_id)
        await self._record_pointer(AuditAction.SET_PREVIEW, identity_id, revision_id, actor_id)
        return pointer

    async def publish(self, identity_id: UUID, revision_id: UUID, actor_id: str | None = None) -> PointerRecord:
        pointer = await self.pointers.set_published(identity_id, revision_id)
        await self._record_pointer(AuditAction.SET_PUBLISHED, identity_id, revision_id, actor_id)
        return pointer

    async def _record_pointer(self, action: str, identity_id: UUID, revision_id: UUID, actor_id: str | None) -> None:
        identity = await self._require_identity(identity_id)
        await self.audit.record(actor_id, action, identity.kind, identity_id, {"revision_id": str(revision_id)})
