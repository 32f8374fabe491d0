"""ContentRevision model: immutable, numbered snapshots of a document."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID

from app.db.base import Base


class ContentRevision(Base):
    """Append-only revision row. Only ``status`` changes after insert.

    ``status`` becomes ``published`` the first time the revision is published
    and stays so; the pointer row decides what is live.
    """

    __tablename__ = "content_revisions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    identity_id = Column(
        UUID(as_uuid=True),
        ForeignKey("content_identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    revision_number = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default="draft")  # draft, published, archived
    schema_version = Column(String(50), nullable=False)  # e.g. v2_question_schema_1
    document = Column(JSONB, nullable=False)  # normalized document
    content_hash = Column(String(64), nullable=False, index=True)  # sha256 hex

    notes = Column(Text, nullable=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Concurrent writers racing for the same number collide here and retry
    __table_args__ = (UniqueConstraint("identity_id", "revision_number", name="uq_content_revision_number"),)
