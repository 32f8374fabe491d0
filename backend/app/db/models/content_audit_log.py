"""ContentAuditLog model: one row per administrative mutation."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB

from app.db.base import Base


class ContentAuditLog(Base):
    __tablename__ = "content_audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(String(255), nullable=True, index=True)
    action = Column(String(50), nullable=False)  # create_revision, set_published, archive, ...
    entity_type = Column(String(50), nullable=False)  # question_set, results_pack
    # No FK: entries must outlive hard-deleted identities
    entity_id = Column(String(255), nullable=False, index=True)
    details = Column("metadata", JSONB, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
