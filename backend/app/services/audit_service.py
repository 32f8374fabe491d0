"""AuditService: records who changed which piece of content."""

from typing import Any
from uuid import UUID

import structlog

from app.core.exceptions import ContentStoreError
from app.domain.content import ContentKind
from app.store.repository import AuditRecord, ContentRepository

logger = structlog.get_logger(__name__)


class AuditAction:
    ENSURE_IDENTITY = "ensure_identity"
    CREATE_REVISION = "create_revision"
    IMPORT_REVISION = "import_revision"
    SET_PREVIEW = "set_preview"
    SET_PUBLISHED = "set_published"
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"
    DELETE = "delete"
    SCAFFOLD = "scaffold"


class AuditService:
    def __init__(self, repository: ContentRepository):
        self.repository = repository

    async def record(
        self,
        actor_id: str | None,
        action: str,
        kind: ContentKind,
        entity_id: UUID | str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Write one audit row. A failed audit write is logged and does not undo the mutation."""
        try:
            await self.repository.add_audit_entry(actor_id, action, ContentKind(kind).value, str(entity_id), details)
        except ContentStoreError as exc:
            logger.error(
                "audit_write_failed",
                action=action,
                entity_id=str(entity_id),
                actor_id=actor_id,
                error=str(exc),
            )

    async def history(self, entity_id: UUID | str) -> list[AuditRecord]:
        return await self.repository.list_audit_entries(str(entity_id))
