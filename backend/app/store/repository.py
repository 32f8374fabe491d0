"""Persistence boundary for the versioned content store.

Services depend on the ``ContentRepository`` protocol, never on SQLAlchemy
directly. ``SqlContentRepository`` (app.store.sql) is the production
implementation; ``InMemoryContentRepository`` (app.store.memory) backs tests
and database-less local runs.

Every implementation reports backend failures as ``ContentStoreError``
subclasses: ``StoreUnavailableError`` for connection/driver errors and
``RevisionNumberTaken`` for a (identity, revision_number) collision.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from app.domain.content import (
    ContentKind,
    IdentityDescriptor,
    IdentityStatus,
    PointerChannel,
    RevisionStatus,
    descriptor_from_columns,
)


@dataclass(frozen=True)
class IdentityRecord:
    id: UUID
    slug: str
    kind: ContentKind
    assessment_type: str
    content_version: str
    variant: str | None
    status: IdentityStatus
    created_at: datetime
    updated_at: datetime

    @property
    def descriptor(self) -> IdentityDescriptor:
        return descriptor_from_columns(self.kind, self.assessment_type, self.content_version, self.variant)

    @property
    def is_archived(self) -> bool:
        return self.status == IdentityStatus.ARCHIVED


@dataclass(frozen=True)
class RevisionRecord:
    id: UUID
    identity_id: UUID
    revision_number: int
    status: RevisionStatus
    schema_version: str
    document: dict
    content_hash: str
    notes: str | None
    created_by: str | None
    created_at: datetime


@dataclass(frozen=True)
class PointerRecord:
    identity_id: UUID
    published_revision_id: UUID | None
    preview_revision_id: UUID | None
    updated_at: datetime

    def revision_for(self, channel: PointerChannel) -> UUID | None:
        if channel == PointerChannel.PUBLISHED:
            return self.published_revision_id
        return self.preview_revision_id


@dataclass(frozen=True)
class AuditRecord:
    id: int
    actor_id: str | None
    action: str
    entity_type: str
    entity_id: str
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@runtime_checkable
class ContentRepository(Protocol):
    """Storage operations used by the revision store, pointer store, admin and resolver."""

    # Identities

    async def find_identity(self, slug: str) -> IdentityRecord | None: ...

    async def get_identity(self, identity_id: UUID) -> IdentityRecord | None: ...

    async def ensure_identity(self, descriptor: IdentityDescriptor) -> tuple[IdentityRecord, bool]:
        """Return the identity for ``descriptor``, creating it if absent. Second item is True when created."""
        ...

    async def list_identities(self, kind: ContentKind, include_archived: bool = False) -> list[IdentityRecord]: ...

    async def set_identity_status(self, identity_id: UUID, status: IdentityStatus) -> IdentityRecord | None: ...

    async def delete_identity(self, identity_id: UUID) -> int | None:
        """Remove the identity, its revisions and its pointer. Returns revisions removed, or None if absent."""
        ...

    # Revisions

    async def max_revision_number(self, identity_id: UUID) -> int:
        """Highest revision number for the identity, 0 when it has none."""
        ...

    async def insert_revision(
        self,
        identity_id: UUID,
        revision_number: int,
        schema_version: str,
        document: dict,
        content_hash: str,
        notes: str | None = None,
        created_by: str | None = None,
        status: RevisionStatus = RevisionStatus.DRAFT,
    ) -> RevisionRecord:
        """Insert one revision. Raises RevisionNumberTaken on a number collision."""
        ...

    async def get_revision(self, revision_id: UUID) -> RevisionRecord | None: ...

    async def list_revisions(self, identity_id: UUID) -> list[RevisionRecord]:
        """Revisions ordered by revision_number descending."""
        ...

    # Pointers

    async def get_pointer(self, identity_id: UUID) -> PointerRecord | None: ...

    async def update_pointer(self, identity_id: UUID, channel: PointerChannel, revision_id: UUID | None) -> PointerRecord:
        """Upsert the pointer row, touching only ``channel`` and the timestamp.

        Publishing also marks the target revision ``published``. The mark is
        never removed, so it records that the revision has been released.
        """
        ...

    async def clear_pointers(self, identity_id: UUID) -> None: ...

    # Audit

    async def add_audit_entry(
        self,
        actor_id: str | None,
        action: str,
        entity_type: str,
        entity_id: str,
        details: dict[str, Any] | None = None,
    ) -> None: ...

    async def list_audit_entries(self, entity_id: str) -> list[AuditRecord]: ...
