"""ContentIdentity model: stable parent row for one versionable document."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class ContentIdentity(Base):
    """One logical piece of content, looked up by its discriminating keys.

    ``slug`` is derived from (kind, assessment_type, content_version, variant)
    with a NULL variant rendered as ``default``, so upsert-by-key works even
    without a locale.
    """

    __tablename__ = "content_identities"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug = Column(String(255), nullable=False, unique=True)

    kind = Column(String(50), nullable=False)  # ContentKind enum value
    assessment_type = Column(String(100), nullable=False)
    content_version = Column(String(50), nullable=False)  # assessment_version or results_version
    variant = Column(String(100), nullable=True)  # locale for question sets, level_id for results packs

    status = Column(String(20), nullable=False, default="active")  # active, archived

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (Index("ix_content_identities_kind_status", "kind", "status"),)
