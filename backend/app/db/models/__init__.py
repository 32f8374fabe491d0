"""Re-export all models so Base.metadata sees them."""

from app.db.models.content_audit_log import ContentAuditLog
from app.db.models.content_identity import ContentIdentity
from app.db.models.content_pointer import ContentPointer
from app.db.models.content_revision import ContentRevision

__all__ = [
    "ContentAuditLog",
    "ContentIdentity",
    "ContentPointer",
    "ContentRevision",
]
