"""Content store persistence backends."""

from app.store.memory import InMemoryContentRepository
from app.store.repository import (
    AuditRecord,
    ContentRepository,
    IdentityRecord,
    PointerRecord,
    RevisionRecord,
)
from app.store.sql import SqlContentRepository

__all__ = [
    "AuditRecord",
    "ContentRepository",
    "IdentityRecord",
    "InMemoryContentRepository",
    "PointerRecord",
    "RevisionRecord",
    "SqlContentRepository",
]
