"""PostgreSQL implementation of ContentRepository (async SQLAlchemy)."""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ContentNotFoundError, ContentStoreError, RevisionNumberTaken, StoreUnavailableError
from app.db.models.content_audit_log import ContentAuditLog
from app.db.models.content_identity import ContentIdentity
from app.db.models.content_pointer import ContentPointer
from app.db.models.content_revision import ContentRevision
from app.domain.content import ContentKind, IdentityDescriptor, IdentityStatus, PointerChannel, RevisionStatus
from app.store.repository import AuditRecord, IdentityRecord, PointerRecord, RevisionRecord

logger = structlog.get_logger(__name__)

REVISION_NUMBER_CONSTRAINT = "uq_content_revision_number"

_POINTER_COLUMNS = {
    PointerChannel.PUBLISHED: "published_revision_id",
    PointerChannel.PREVIEW: "preview_revision_id",
}


def _identity_record(row: ContentIdentity) -> IdentityRecord:
    return IdentityRecord(
        id=row.id,
        slug=row.slug,
        kind=ContentKind(row.kind),
        assessment_type=row.assessment_type,
        content_version=row.content_version,
        variant=row.variant,
        status=IdentityStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _revision_record(row: ContentRevision) -> RevisionRecord:
    return RevisionRecord(
        id=row.id,
        identity_id=row.identity_id,
        revision_number=row.revision_number,
        status=RevisionStatus(row.status),
        schema_version=row.schema_version,
        document=row.document,
        content_hash=row.content_hash,
        notes=row.notes,
        created_by=row.created_by,
        created_at=row.created_at,
    )


def _pointer_record(row: Any) -> PointerRecord:
    return PointerRecord(
        identity_id=row.identity_id,
        published_revision_id=row.published_revision_id,
        preview_revision_id=row.preview_revision_id,
        updated_at=row.updated_at,
    )


class SqlContentRepository:
    """ContentRepository backed by PostgreSQL.

    Each call opens its own session from the shared factory and commits
    before returning. Driver and connection errors surface as
    StoreUnavailableError so callers never see raw SQLAlchemy exceptions.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session:
                yield session
        except ContentStoreError:
            raise
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("content_store_error", operation=operation, error_type=type(exc).__name__, error=str(exc))
            raise StoreUnavailableError(operation, exc) from exc

    # Identities

    async def find_identity(self, slug: str) -> IdentityRecord | None:
        async with self._session("find_identity") as session:
            result = await session.execute(select(ContentIdentity).where(ContentIdentity.slug == slug))
            row = result.scalar_one_or_none()
            return _identity_record(row) if row is not None else None

    async def get_identity(self, identity_id: UUID) -> IdentityRecord | None:
        async with self._session("get_identity") as session:
            row = await session.get(ContentIdentity, identity_id)
            return _identity_record(row) if row is not None else None

    async def ensure_identity(self, descriptor: IdentityDescriptor) -> tuple[IdentityRecord, bool]:
        now = datetime.now(timezone.utc)
        async with self._session("ensure_identity") as session:
            # Race-safe idempotent insert keyed on the slug
            stmt = (
                insert(ContentIdentity)
                .values(
                    id=uuid.uuid4(),
                    slug=descriptor.slug,
                    kind=descriptor.kind.value,
                    assessment_type=descriptor.assessment_type,
                    content_version=descriptor.content_version,
                    variant=descriptor.variant,
                    status=IdentityStatus.ACTIVE.value,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_nothing(index_elements=["slug"])
                .returning(ContentIdentity.id)
            )
            inserted = (await session.execute(stmt)).scalar_one_or_none()
            await session.commit()

            result = await session.execute(select(ContentIdentity).where(ContentIdentity.slug == descriptor.slug))
            return _identity_record(result.scalar_one()), inserted is not None

    async def list_identities(self, kind: ContentKind, include_archived: bool = False) -> list[IdentityRecord]:
        async with self._session("list_identities") as session:
            stmt = select(ContentIdentity).where(ContentIdentity.kind == ContentKind(kind).value)
            if not include_archived:
                stmt = stmt.where(ContentIdentity.status == IdentityStatus.ACTIVE.value)
            stmt = stmt.order_by(
                ContentIdentity.assessment_type,
                ContentIdentity.content_version,
                ContentIdentity.variant,
            )
            result = await session.execute(stmt)
            return [_identity_record(row) for row in result.scalars().all()]

    async def set_identity_status(self, identity_id: UUID, status: IdentityStatus) -> IdentityRecord | None:
        async with self._session("set_identity_status") as session:
            row = await session.get(ContentIdentity, identity_id)
            if row is None:
                return None
            row.status = IdentityStatus(status).value
            row.updated_at = datetime.now(timezone.utc)
            await session.commit()
            return _identity_record(row)

    async def delete_identity(self, identity_id: UUID) -> int | None:
        async with self._session("delete_identity") as session:
            row = await session.get(ContentIdentity, identity_id)
            if row is None:
                return None
            count_result = await session.execute(
                select(func.count()).select_from(ContentRevision).where(ContentRevision.identity_id == identity_id)
            )
            removed = count_result.scalar_one()
            # Pointer first: it references revisions
            await session.execute(delete(ContentPointer).where(ContentPointer.identity_id == identity_id))
            await session.execute(delete(ContentRevision).where(ContentRevision.identity_id == identity_id))
            await session.execute(delete(ContentIdentity).where(ContentIdentity.id == identity_id))
            await session.commit()
            return removed

    # Revisions

    async def max_revision_number(self, identity_id: UUID) -> int:
        async with self._session("max_revision_number") as session:
            result = await session.execute(
                select(func.max(ContentRevision.revision_number)).where(ContentRevision.identity_id == identity_id)
            )
            return result.scalar_one_or_none() or 0

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
        revision = ContentRevision(
            id=uuid.uuid4(),
            identity_id=identity_id,
            revision_number=revision_number,
            status=RevisionStatus(status).value,
            schema_version=schema_version,
            document=document,
            content_hash=content_hash,
            notes=notes,
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session("insert_revision") as session:
            session.add(revision)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if REVISION_NUMBER_CONSTRAINT in str(exc.orig):
                    raise RevisionNumberTaken(identity_id, revision_number) from exc
                # Only other constraint on insert: the identity FK
                raise ContentNotFoundError("identity", identity_id) from exc
            return _revision_record(revision)

    async def get_revision(self, revision_id: UUID) -> RevisionRecord | None:
        async with self._session("get_revision") as session:
            row = await session.get(ContentRevision, revision_id)
            return _revision_record(row) if row is not None else None

    async def list_revisions(self, identity_id: UUID) -> list[RevisionRecord]:
        async with self._session("list_revisions") as session:
            result = await session.execute(
                select(ContentRevision)
                .where(ContentRevision.identity_id == identity_id)
                .order_by(ContentRevision.revision_number.desc())
            )
            return [_revision_record(row) for row in result.scalars().all()]

    # Pointers

    async def get_pointer(self, identity_id: UUID) -> PointerRecord | None:
        async with self._session("get_pointer") as session:
            row = await session.get(ContentPointer, identity_id)
            return _pointer_record(row) if row is not None else None

    async def update_pointer(self, identity_id: UUID, channel: PointerChannel, revision_id: UUID | None) -> PointerRecord:
        column = _POINTER_COLUMNS[PointerChannel(channel)]
        now = datetime.now(timezone.utc)
        async with self._session("update_pointer") as session:
            stmt = (
                insert(ContentPointer)
                .values(identity_id=identity_id, updated_at=now, **{column: revision_id})
                .on_conflict_do_update(
                    index_elements=[ContentPointer.identity_id],
                    set_={column: revision_id, "updated_at": now},
                )
                .returning(
                    ContentPointer.identity_id,
                    ContentPointer.published_revision_id,
                    ContentPointer.preview_revision_id,
                    ContentPointer.updated_at,
                )
            )
            row = (await session.execute(stmt)).one()
            if PointerChannel(channel) == PointerChannel.PUBLISHED and revision_id is not None:
                await session.execute(
                    update(ContentRevision)
                    .where(ContentRevision.id == revision_id)
                    .values(status=RevisionStatus.PUBLISHED.value)
                )
            await session.commit()
            return _pointer_record(row)

    async def clear_pointers(self, identity_id: UUID) -> None:
        async with self._session("clear_pointers") as session:
            await session.execute(
                update(ContentPointer)
                .where(ContentPointer.identity_id == identity_id)
                .values(published_revision_id=None, preview_revision_id=None, updated_at=datetime.now(timezone.utc))
            )
            await session.commit()

    # Audit

    async def add_audit_entry(
        self,
        actor_id: str | None,
        action: str,
        entity_type: str,
        entity_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        async with self._session("add_audit_entry") as session:
            session.add(
                ContentAuditLog(
                    actor_id=actor_id,
                    action=action,
                    entity_type=entity_type,
                    entity_id=str(entity_id),
                    details=details or {},
                    created_at=datetime.now(timezone.utc),
                )
            )
            await session.commit()

    async def list_audit_entries(self, entity_id: str) -> list[AuditRecord]:
        async with self._session("list_audit_entries") as session:
            result = await session.execute(
                select(ContentAuditLog)
                .where(ContentAuditLog.entity_id == str(entity_id))
                .order_by(ContentAuditLog.created_at.desc(), ContentAuditLog.id.desc())
            )
            return [
                AuditRecord(
                    id=row.id,
                    actor_id=row.actor_id,
                    action=row.action,
                    entity_type=row.entity_type,
                    entity_id=row.entity_id,
                    details=row.details or {},
                    created_at=row.created_at,
                )
                for row in result.scalars().all()
            ]
