"""PointerStore: the published/preview references of an identity.

Pointer writes are last-writer-wins; there is no optimistic locking. The
history of pointer moves lives in the audit log written by the admin service.
"""

from uuid import UUID

import structlog

from app.core.exceptions import (
    ContentNotFoundError,
    ContentValidationError,
    IdentityArchivedError,
    PointerOwnershipError,
)
from app.domain.config import ContentConfig
from app.domain.content import PointerChannel
from app.domain.validation import ValidationIssue, validate
from app.store.repository import ContentRepository, PointerRecord, RevisionRecord

logger = structlog.get_logger(__name__)


class PointerStore:
    def __init__(self, repository: ContentRepository, config: ContentConfig | None = None):
        self.repository = repository
        self.config = config or ContentConfig()

    async def get_pointer(self, identity_id: UUID) -> PointerRecord | None:
        """Current pointer row, or None when no pointer was ever written."""
        return await self.repository.get_pointer(identity_id)

    async def set_preview(self, identity_id: UUID, revision_id: UUID) -> PointerRecord:
        return await self._set(identity_id, revision_id, PointerChannel.PREVIEW)

    async def set_published(self, identity_id: UUID, revision_id: UUID) -> PointerRecord:
        """Point the published channel at ``revision_id`` after re-validating its document."""
        return await self._set(identity_id, revision_id, PointerChannel.PUBLISHED)

    async def _owned_revision(self, identity_id: UUID, revision_id: UUID) -> RevisionRecord:
        revision = await self.repository.get_revision(revision_id)
        if revision is None:
            raise PointerOwnershipError([ValidationIssue("revision_id", f"revision '{revision_id}' does not exist")])
        if revision.identity_id != identity_id:
            raise PointerOwnershipError([
                ValidationIssue("revision_id", f"revision '{revision_id}' does not belong to identity '{identity_id}'")
            ])
        return revision

    async def _set(self, identity_id: UUID, revision_id: UUID, channel: PointerChannel) -> PointerRecord:
        identity = await self.repository.get_identity(identity_id)
        if identity is None:
            raise ContentNotFoundError("identity", identity_id)
        if identity.is_archived:
            raise IdentityArchivedError(identity_id)

        revision = await self._owned_revision(identity_id, revision_id)

        if channel == PointerChannel.PUBLISHED:
            # Publish re-validates the stored document
            result = validate(identity.kind, revision.document, self.config)
            if not result.ok:
                raise ContentValidationError(result.errors, message="Revision no longer passes validation")

        pointer = await self.repository.update_pointer(identity_id, channel, revision_id)
        logger.info(
            "pointer_updated",
            identity_id=str(identity_id),
            channel=channel.value,
            revision_id=str(revision_id),
            revision_number=revision.revision_number,
        )
        return pointer

    async def clear(self, identity_id: UUID) -> None:
        await self.repository.clear_pointers(identity_id)
        logger.info("pointers_cleared", identity_id=str(identity_id))
