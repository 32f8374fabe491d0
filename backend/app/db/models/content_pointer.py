"""ContentPointer model: mutable published/preview references per identity."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class ContentPointer(Base):
    __tablename__ = "content_pointers"

    # One row per identity, created lazily on the first pointer write
    identity_id = Column(
        UUID(as_uuid=True),
        ForeignKey("content_identities.id", ondelete="CASCADE"),
        primary_key=True,
    )
    published_revision_id = Column(
        UUID(as_uuid=True),
        ForeignKey("content_revisions.id", ondelete="SET NULL"),
        nullable=True,
    )
    preview_revision_id = Column(
        UUID(as_uuid=True),
        ForeignKey("content_revisions.id", ondelete="SET NULL"),
        nullable=True,
    )

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
