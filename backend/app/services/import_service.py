"""QuestionSetImportService: four CSV tables to a draft revision."""

from dataclasses import dataclass, field

import structlog

from app.core.exceptions import ContentValidationError
from app.domain.content import QuestionSetKey
from app.domain.hashing import content_hash
from app.domain.ingestion import ingest_tables
from app.services.audit_service import AuditAction
from app.services.content_admin_service import ContentAdminService
from app.services.revision_store import CreatedRevision
from app.store.repository import IdentityRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ImportOutcome:
    document: dict
    content_hash: str
    identity: IdentityRecord | None = None
    created: CreatedRevision | None = None
    warnings: list = field(default_factory=list)


class QuestionSetImportService:
    def __init__(self, admin: ContentAdminService):
        self.admin = admin

    async def import_tables(
        self,
        meta_csv: str,
        sections_csv: str,
        questions_csv: str,
        options_csv: str,
        actor_id: str | None = None,
        dry_run: bool = False,
    ) -> ImportOutcome:
        """Run the ingestion pipeline and store the result as a new draft.

        The identity is upserted from the meta keys (assessmentType,
        assessmentVersion, locale) and the meta ``notes`` become the revision
        notes. With ``dry_run`` nothing is written.

        Raises:
            ContentValidationError: with every TabularIssue / ValidationIssue found
        """
        result = ingest_tables(meta_csv, sections_csv, questions_csv, options_csv, self.admin.config)
        if not result.ok:
            logger.info("question_set_import_rejected", error_count=len(result.errors), actor_id=actor_id)
            raise ContentValidationError(result.errors, message="Question set import failed")

        digest = content_hash(result.document)
        if dry_run:
            return ImportOutcome(document=result.document, content_hash=digest, warnings=result.warnings)

        meta = result.metadata
        descriptor = QuestionSetKey(meta["assessment_type"], meta["assessment_version"], meta.get("locale"))
        identity, _ = await self.admin.ensure_identity(descriptor, actor_id=actor_id)
        created = await self.admin.create_revision(
            identity.id,
            result.document,
            notes=meta.get("notes"),
            actor_id=actor_id,
            action=AuditAction.IMPORT_REVISION,
        )
        logger.info(
            "question_set_imported",
            identity_id=str(identity.id),
            revision_number=created.revision.revision_number,
            actor_id=actor_id,
        )
        return ImportOutcome(
            document=created.revision.document,
            content_hash=created.revision.content_hash,
            identity=identity,
            created=created,
            warnings=result.warnings + created.warnings,
        )
