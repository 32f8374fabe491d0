"""ContentResolver: picks the one document a caller should see.

Tiers, in order, stopping at the first that yields a document:

1. pin        exact revision from a store-sourced pin for the same identity;
              unprivileged callers only get revisions that have been published
2. preview    preview pointer; only when requested by a privileged role
3. published  published pointer
4. file       bundled fallback for the same discriminating keys

Not-found and store errors at tiers 1-3 fall through to the next tier. Only
a failing file tier is fatal (ContentNotConfiguredError). Every tier
transition is logged with the descriptor slug, tier and reason.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import structlog

from app.core.exceptions import ContentNotConfiguredError, ContentStoreError
from app.domain.config import ContentConfig
from app.domain.content import IdentityDescriptor, PointerChannel, ResolutionSource, RevisionStatus, Role
from app.domain.validation import sanity_check
from app.schemas.content import ResolutionRef
from app.services.fallback import FileFallbackLoader
from app.store.repository import ContentRepository, IdentityRecord, PointerRecord, RevisionRecord

logger = structlog.get_logger(__name__)

TIER_PIN = "pin"
TIER_PREVIEW = "preview"
TIER_PUBLISHED = "published"
TIER_FILE = "file"


@dataclass(frozen=True)
class ResolvedContent:
    document: dict[str, Any]
    source: ResolutionSource
    tier: str
    content_hash: str | None
    resolved_at: datetime
    pin: ResolutionRef
    new_pin: bool
    revision_number: int | None = None


class _StoreView:
    """Per-call cache of the identity and pointer lookups shared by tiers 2 and 3."""

    def __init__(self) -> None:
        self.loaded = False
        self.identity: IdentityRecord | None = None
        self.pointer: PointerRecord | None = None
        self.failure: str | None = None


class ContentResolver:
    def __init__(
        self,
        repository: ContentRepository,
        fallback: FileFallbackLoader | None = None,
        config: ContentConfig | None = None,
    ):
        self.repository = repository
        self.config = config or ContentConfig()
        self.fallback = fallback or FileFallbackLoader(self.config)

    async def resolve(
        self,
        descriptor: IdentityDescriptor,
        pin: ResolutionRef | None = None,
        preview: bool = False,
        role: Role | str | None = None,
    ) -> ResolvedContent:
        """Resolve ``descriptor`` to a document with provenance.

        Raises:
            ContentNotConfiguredError: every tier, including the bundled file, failed
        """
        log = logger.bind(kind=descriptor.kind.value, slug=descriptor.slug)
        now = datetime.now(timezone.utc)

        resolved = await self._from_pin(descriptor, pin, role, log, now)
        if resolved is not None:
            return resolved

        view = _StoreView()
        last_reason = "no_pin"

        if not preview:
            log.debug("resolve_tier_skipped", tier=TIER_PREVIEW, reason="preview_not_requested")
        elif not self.config.is_privileged(role):
            log.info("resolve_tier_skipped", tier=TIER_PREVIEW, reason="role_not_privileged", role=str(role))
        else:
            resolved, last_reason = await self._from_pointer(descriptor, PointerChannel.PREVIEW, view, log, now)
            if resolved is not None:
                return resolved

        resolved, last_reason = await self._from_pointer(descriptor, PointerChannel.PUBLISHED, view, log, now)
        if resolved is not None:
            return resolved

        return self._from_file(descriptor, view, last_reason, log, now)

    async def _from_pin(
        self,
        descriptor: IdentityDescriptor,
        pin: ResolutionRef | None,
        role: Role | str | None,
        log,
        now: datetime,
    ) -> ResolvedContent | None:
        if pin is None:
            log.debug("resolve_tier_skipped", tier=TIER_PIN, reason="no_pin")
            return None
        if pin.source != ResolutionSource.STORE or pin.revision_id is None:
            log.info("resolve_tier_skipped", tier=TIER_PIN, reason="pin_not_from_store", pin_source=pin.source.value)
            return None
        privileged = self.config.is_privileged(role)
        if pin.channel == PointerChannel.PREVIEW and not privileged:
            log.info("resolve_tier_skipped", tier=TIER_PIN, reason="preview_pin_not_privileged", role=str(role))
            return None

        try:
            identity = await self.repository.find_identity(descriptor.slug)
            revision = await self.repository.get_revision(pin.revision_id) if identity is not None else None
        except ContentStoreError as exc:
            log.warning(
                "resolve_tier_error",
                tier=TIER_PIN,
                revision_id=str(pin.revision_id),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None

        reason = None
        if identity is None:
            reason = "identity_not_found"
        elif revision is None:
            reason = "revision_not_found"
        elif revision.identity_id != identity.id or (pin.identity_id is not None and pin.identity_id != identity.id):
            reason = "pin_identity_mismatch"
        elif not privileged and revision.status != RevisionStatus.PUBLISHED:
            reason = "revision_never_published"
        elif not sanity_check(descriptor.kind, revision.document):
            reason = "failed_sanity_check"
        if reason is not None:
            log.info("resolve_tier_miss", tier=TIER_PIN, reason=reason, revision_id=str(pin.revision_id))
            return None

        log.info("resolve_tier_hit", tier=TIER_PIN, revision_id=str(revision.id), revision_number=revision.revision_number)
        return ResolvedContent(
            document=revision.document,
            source=ResolutionSource.STORE,
            tier=TIER_PIN,
            content_hash=revision.content_hash,
            resolved_at=now,
            pin=pin,
            new_pin=False,
            revision_number=revision.revision_number,
        )

    async def _load_view(self, descriptor: IdentityDescriptor, view: _StoreView, log) -> None:
        if view.loaded:
            return
        view.loaded = True
        try:
            view.identity = await self.repository.find_identity(descriptor.slug)
            if view.identity is not None and not view.identity.is_archived:
                view.pointer = await self.repository.get_pointer(view.identity.id)
        except ContentStoreError as exc:
            view.failure = "store_error"
            log.warning("resolve_store_lookup_failed", error_type=type(exc).__name__, error=str(exc))

    async def _from_pointer(
        self,
        descriptor: IdentityDescriptor,
        channel: PointerChannel,
        view: _StoreView,
        log,
        now: datetime,
    ) -> tuple[ResolvedContent | None, str]:
        tier = TIER_PREVIEW if channel == PointerChannel.PREVIEW else TIER_PUBLISHED
        await self._load_view(descriptor, view, log)

        if view.failure:
            log.warning("resolve_tier_error", tier=tier, reason=view.failure)
            return None, view.failure
        if view.identity is None:
            log.info("resolve_tier_miss", tier=tier, reason="identity_not_found")
            return None, "identity_not_found"
        if view.identity.is_archived:
            log.info("resolve_tier_miss", tier=tier, reason="identity_archived", identity_id=str(view.identity.id))
            return None, "identity_archived"

        revision_id = view.pointer.revision_for(channel) if view.pointer is not None else None
        if revision_id is None:
            log.info("resolve_tier_miss", tier=tier, reason="pointer_unset", identity_id=str(view.identity.id))
            return None, "pointer_unset"

        try:
            revision = await self.repository.get_revision(revision_id)
        except ContentStoreError as exc:
            log.warning(
                "resolve_tier_error",
                tier=tier,
                identity_id=str(view.identity.id),
                revision_id=str(revision_id),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None, "store_error"

        if revision is None or revision.identity_id != view.identity.id:
            log.warning("resolve_tier_miss", tier=tier, reason="revision_not_found", revision_id=str(revision_id))
            return None, "revision_not_found"

        log.info("resolve_tier_hit", tier=tier, identity_id=str(view.identity.id), revision_number=revision.revision_number)
        return self._store_result(view.identity.id, revision, channel, tier, now), ""

    def _store_result(
        self,
        identity_id: UUID,
        revision: RevisionRecord,
        channel: PointerChannel,
        tier: str,
        now: datetime,
    ) -> ResolvedContent:
        return ResolvedContent(
            document=revision.document,
            source=ResolutionSource.STORE,
            tier=tier,
            content_hash=revision.content_hash,
            resolved_at=now,
            pin=ResolutionRef(
                source=ResolutionSource.STORE,
                identity_id=identity_id,
                revision_id=revision.id,
                channel=channel,
                content_hash=revision.content_hash,
                resolved_at=now,
            ),
            new_pin=True,
            revision_number=revision.revision_number,
        )

    def _from_file(self, descriptor: IdentityDescriptor, view: _StoreView, reason: str, log, now: datetime) -> ResolvedContent:
        try:
            fallback = self.fallback.load(descriptor)
        except ContentNotConfiguredError as exc:
            if view.identity is not None and not view.identity.is_archived:
                detail = f"identity exists but has no usable revision ({reason}); {exc.reason}"
            else:
                detail = f"{reason}; {exc.reason}"
            log.error("resolve_failed", tier=TIER_FILE, reason=reason, fallback_reason=exc.reason)
            raise ContentNotConfiguredError(descriptor.slug, detail) from exc

        log.info("resolve_fallback_used", tier=TIER_FILE, reason=reason, path=fallback.path)
        return ResolvedContent(
            document=fallback.document,
            source=ResolutionSource.FILE,
            tier=TIER_FILE,
            content_hash=fallback.content_hash,
            resolved_at=now,
            pin=ResolutionRef(
                source=ResolutionSource.FILE,
                content_hash=fallback.content_hash,
                resolved_at=now,
            ),
            new_pin=True,
        )
