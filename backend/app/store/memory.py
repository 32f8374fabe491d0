"""In-memory ContentRepository.

Used by the test suite and by ``CONTENT_STORE_BACKEND=memory`` for local runs
without PostgreSQL. Enforces the same (identity, revision_number) uniqueness
as the database so the revision store's retry path behaves identically.
Every call yields to the event loop once, so concurrent writers interleave
the way they would against a real backend.
"""

import asyncio
import copy
import itertools
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from app.core.exceptions import ContentNotFoundError, RevisionNumberTaken, StoreUnavailableError
from app.domain.content import ContentKind, IdentityDescriptor, IdentityStatus, PointerChannel, RevisionStatus
from app.store.repository import AuditRecord, IdentityRecord, PointerRecord, RevisionRecord


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _detached(record: RevisionRecord) -> RevisionRecord:
    return replace(record, document=copy.deepcopy(record.document))


class InMemoryContentRepository:
    def __init__(self) -> None:
        self.identities: dict[UUID, IdentityRecord] = {}
        self.revisions: dict[UUID, RevisionRecord] = {}
        self.pointers: dict[UUID, PointerRecord] = {}
        self.audit_entries: list[AuditRecord] = []
        self._audit_ids = itertools.count(1)
        # Flip to simulate the backend being unreachable
        self.unavailable = False

    async def _enter(self, operation: str) -> None:
        await asyncio.sleep(0)
        if self.unavailable:
            raise StoreUnavailableError(operation, ConnectionError("in-memory store marked unavailable"))

    # Identities

    async def find_identity(self, slug: str) -> IdentityRecord | None:
        await self._enter("find_identity")
        return next((i for i in self.identities.values() if i.slug == slug), None)

    async def get_identity(self, identity_id: UUID) -> IdentityRecord | None:
        await self._enter("get_identity")
        return self.identities.get(identity_id)

    async def ensure_identity(self, descriptor: IdentityDescriptor) -> tuple[IdentityRecord, bool]:
        await self._enter("ensure_identity")
        existing = next((i for i in self.identities.values() if i.slug == descriptor.slug), None)
        if existing is not None:
            return existing, False
        now = _now()
        record = IdentityRecord(
            id=uuid.uuid4(),
            slug=descriptor.slug,
            kind=descriptor.kind,
            assessment_type=descriptor.assessment_type,
            content_version=descriptor.content_version,
            variant=descriptor.variant,
            status=IdentityStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        self.identities[record.id] = record
        return record, True

    async def list_identities(self, kind: ContentKind, include_archived: bool = False) -> list[IdentityRecord]:
        await self._enter("list_identities")
        rows = [
            i
            for i in self.identities.values()
            if i.kind == ContentKind(kind) and (include_archived or not i.is_archived)
        ]
        return sorted(rows, key=lambda i: (i.assessment_type, i.content_version, i.variant or ""))

    async def set_identity_status(self, identity_id: UUID, status: IdentityStatus) -> IdentityRecord | None:
        await self._enter("set_identity_status")
        current = self.identities.get(identity_id)
        if current is None:
            return None
        updated = replace(current, status=IdentityStatus(status), updated_at=_now())
        self.identities[identity_id] = updated
        return updated

    async def delete_identity(self, identity_id: UUID) -> int | None:
        await self._enter("delete_identity")
        if identity_id not in self.identities:
            return None
        doomed = [r.id for r in self.revisions.values() if r.identity_id == identity_id]
        for revision_id in doomed:
            del self.revisions[revision_id]
        self.pointers.pop(identity_id, None)
        del self.identities[identity_id]
        return len(doomed)

    # Revisions

    async def max_revision_number(self, identity_id: UUID) -> int:
        await self._enter("max_revision_number")
        return max((r.revision_number for r in self.revisions.values() if r.identity_id == identity_id), default=0)

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
        await self._enter("insert_revision")
        if identity_id not in self.identities:
            raise ContentNotFoundError("identity", identity_id)
        if any(r.identity_id == identity_id and r.revision_number == revision_number for r in self.revisions.values()):
            raise RevisionNumberTaken(identity_id, revision_number)
        record = RevisionRecord(
            id=uuid.uuid4(),
            identity_id=identity_id,
            revision_number=revision_number,
            status=RevisionStatus(status),
            schema_version=schema_version,
            document=copy.deepcopy(document),
            content_hash=content_hash,
            notes=notes,
            created_by=created_by,
            created_at=_now(),
        )
        self.revisions[record.id] = record
        return _detached(record)

    async def get_revision(self, revision_id: UUID) -> RevisionRecord | None:
        await self._enter("get_revision")
        record = self.revisions.get(revision_id)
        return _detached(record) if record is not None else None

    async def list_revisions(self, identity_id: UUID) -> list[RevisionRecord]:
        await self._enter("list_revisions")
        rows = [_detached(r) for r in self.revisions.values() if r.identity_id == identity_id]
        return sorted(rows, key=lambda r: r.revision_number, reverse=True)

    # Pointers

    async def get_pointer(self, identity_id: UUID) -> PointerRecord | None:
        await self._enter("get_pointer")
        return self.pointers.get(identity_id)

    async def update_pointer(self, identity_id: UUID, channel: PointerChannel, revision_id: UUID | None) -> PointerRecord:
        await self._enter("update_pointer")
        current = self.pointers.get(identity_id) or PointerRecord(identity_id, None, None, _now())
        if PointerChannel(channel) == PointerChannel.PUBLISHED:
            updated = replace(current, published_revision_id=revision_id, updated_at=_now())
        else:
            updated = replace(current, preview_revision_id=revision_id, updated_at=_now())
        self.pointers[identity_id] = updated
        if PointerChannel(channel) == PointerChannel.PUBLISHED and revision_id in self.revisions:
            self.revisions[revision_id] = replace(self.revisions[revision_id], status=RevisionStatus.PUBLISHED)
        return updated

    async def clear_pointers(self, identity_id: UUID) -> None:
        await self._enter("clear_pointers")
        current = self.pointers.get(identity_id)
        if current is not None:
            self.pointers[identity_id] = replace(
                current, published_revision_id=None, preview_revision_id=None, updated_at=_now()
            )

    # Audit

    async def add_audit_entry(
        self,
        actor_id: str | None,
        action: str,
        entity_type: str,
        entity_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        await self._enter("add_audit_entry")
        self.audit_entries.append(
            AuditRecord(
                id=next(self._audit_ids),
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id),
                details=dict(details or {}),
                created_at=_now(),
            )
        )

    async def list_audit_entries(self, entity_id: str) -> list[AuditRecord]:
        await self._enter("list_audit_entries")
        return [e for e in reversed(self.audit_entries) if e.entity_id == str(entity_id)]
