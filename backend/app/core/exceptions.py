"""Exception hierarchy for the versioned content store.

Validation and ingestion failures carry the full aggregated issue list so
callers can show every problem at once instead of the first one.
"""

from collections.abc import Sequence
from typing import Any


class ContentError(Exception):
    """Base exception for the content store."""

    pass


class ContentValidationError(ContentError):
    """Raised when a document, table import or pointer target fails validation."""

    def __init__(self, errors: Sequence[Any], message: str = "Validation failed"):
        self.errors = list(errors)
        super().__init__(f"{message} ({len(self.errors)} error(s))")


class PointerOwnershipError(ContentValidationError):
    """Raised when a pointer would reference a revision of another identity."""

    pass


class ContentNotFoundError(ContentError):
    """Raised when an identity or revision required by a write does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class IdentityArchivedError(ContentError):
    """Raised when a pointer write targets an archived identity."""

    def __init__(self, identity_id: Any):
        self.identity_id = identity_id
        super().__init__(f"Identity '{identity_id}' is archived")


class ContentStoreError(ContentError):
    """Base for failures reported by the backing store."""

    pass


class StoreUnavailableError(ContentStoreError):
    """Raised when the backing store cannot be reached or errors out."""

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        detail = f": {type(cause).__name__}" if cause is not None else ""
        super().__init__(f"Content store unavailable during {operation}{detail}")


class RevisionNumberTaken(ContentStoreError):
    """Raised when (identity, revision_number) already exists."""

    def __init__(self, identity_id: Any, revision_number: int):
        self.identity_id = identity_id
        self.revision_number = revision_number
        super().__init__(f"Revision number {revision_number} already taken for identity '{identity_id}'")


class RevisionConflictError(ContentError):
    """Raised when revision number allocation keeps colliding after the retry."""

    def __init__(self, identity_id: Any, attempts: int):
        self.identity_id = identity_id
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a revision number for identity '{identity_id}' after {attempts} attempts"
        )


class ContentNotConfiguredError(ContentError):
    """Raised by the resolver when no tier, including the file fallback, yields content."""

    def __init__(self, slug: str, reason: str):
        self.slug = slug
        self.reason = reason
        super().__init__(f"No content configured for {slug}: {reason}")
