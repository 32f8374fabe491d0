"""RevisionStore: validated, hashed, append-only revisions per identity."""

from dataclasses import dataclass, field
from uuid import UUID

import structlog

from app.core.exceptions import (
    ContentNotFoundError,
    ContentValidationError,
    RevisionConflictError,
    RevisionNumberTaken,
)
from app.domain.config import ContentConfig
from app.domain.hashing import content_hash
from app.domain.validation import ValidationIssue, validate
from app.store.repository import ContentRepository, RevisionRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CreatedRevision:
    """Outcome of a successful create_revision call."""

    revision: RevisionRecord
    warnings: list[ValidationIssue] = field(default_factory=list)
    # Revision number of the latest revision when it already had the same hash
    same_content_as: int | None = None


class RevisionStore:
    """Creates and reads revisions.

    Revision numbers are allocated as max + 1. A concurrent writer that loses
    the race hits the (identity, revision_number) unique constraint; the
    allocation is re-read and retried up to ``config.revision_insert_attempts``
    total attempts, then the write fails with RevisionConflictError.
    """

    def __init__(self, repository: ContentRepository, config: ContentConfig | None = None):
        self.repository = repository
        self.config = config or ContentConfig()

    async def create_revision(
        self,
        identity_id: UUID,
        document: dict,
        notes: str | None = None,
        created_by: str | None = None,
    ) -> CreatedRevision:
        """Validate, normalize, hash and append a new draft revision.

        Raises:
            ContentNotFoundError: identity does not exist
            ContentValidationError: document fails validation (nothing is written)
            RevisionConflictError: revision number allocation collided on every attempt
        """
        identity = await self.repository.get_identity(identity_id)
        if identity is None:
            raise ContentNotFoundError("identity", identity_id)

        result = validate(identity.kind, document, self.config)
        if not result.ok:
            raise ContentValidationError(result.errors)

        normalized = result.normalized
        declared_type = normalized.get("assessmentType")
        if declared_type is not None and declared_type != identity.assessment_type:
            raise ContentValidationError([
                ValidationIssue(
                    "assessmentType",
                    f"document is for '{declared_type}' but the identity is '{identity.assessment_type}'",
                )
            ])

        digest = content_hash(normalized)
        schema_version = self.config.schema_tag(identity.kind)

        same_content_as = None
        latest = await self.repository.list_revisions(identity_id)
        if latest and latest[0].content_hash == digest:
            same_content_as = latest[0].revision_number
            logger.info(
                "revision_content_unchanged",
                identity_id=str(identity_id),
                revision_number=same_content_as,
                content_hash=digest,
            )

        attempts = self.config.revision_insert_attempts
        for attempt in range(1, attempts + 1):
            next_number = await self.repository.max_revision_number(identity_id) + 1
            try:
                revision = await self.repository.insert_revision(
                    identity_id=identity_id,
                    revision_number=next_number,
                    schema_version=schema_version,
                    document=normalized,
                    content_hash=digest,
                    notes=notes,
                    created_by=created_by,
                )
            except RevisionNumberTaken:
                if attempt == attempts:
                    logger.error(
                        "revision_insert_exhausted",
                        identity_id=str(identity_id),
                        revision_number=next_number,
                        attempts=attempts,
                    )
                    raise RevisionConflictError(identity_id, attempts) from None
                logger.warning(
                    "revision_number_collision",
                    identity_id=str(identity_id),
                    revision_number=next_number,
                    attempt=attempt,
                )
                continue

            logger.info(
                "revision_created",
                identity_id=str(identity_id),
                revision_id=str(revision.id),
                revision_number=revision.revision_number,
                content_hash=digest,
                kind=identity.kind.value,
            )
            return CreatedRevision(revision=revision, warnings=list(result.warnings), same_content_as=same_content_as)

        # attempts >= 1 is enforced by ContentConfig
        raise RevisionConflictError(identity_id, attempts)

    async def list_revisions(self, identity_id: UUID) -> list[RevisionRecord]:
        """Revisions newest first. Empty list when the identity has none."""
        return await self.repository.list_revisions(identity_id)

    async def get_revision(self, revision_id: UUID) -> RevisionRecord | None:
        return await self.repository.get_revision(revision_id)
