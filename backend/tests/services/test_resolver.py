"""Tests for ContentResolver tier selection.

Verifies:
- pin > preview (privileged only) > published > file
- Store errors at any store tier fall through to the file tier
- Pinned resolutions keep returning the pinned revision after the pointer moves
- Only a missing file fallback is fatal
"""

import uuid
from datetime import datetime, timezone

import pytest

from app.core.exceptions import ContentNotConfiguredError
from app.domain.content import PointerChannel, QuestionSetKey, ResolutionSource, ResultsPackKey, Role
from app.schemas.content import ResolutionRef
from app.services.content_admin_service import ContentAdminService
from app.services.resolver import TIER_FILE, TIER_PIN, TIER_PREVIEW, TIER_PUBLISHED, ContentResolver

pytestmark = pytest.mark.unit

KEY = QuestionSetKey("gut-check", "2")


@pytest.fixture
def resolver(repo, config):
    return ContentResolver(repo, config=config)


def _with_text(doc, text):
    doc["questions"][0]["text"] = text
    return doc


async def _two_revisions(admin: ContentAdminService, question_set_doc):
    identity, _ = await admin.ensure_identity(KEY)
    first = await admin.create_revision(identity.id, _with_text(question_set_doc, "Published copy"))
    second = await admin.create_revision(identity.id, _with_text(question_set_doc, "Draft copy"))
    return identity, first.revision, second.revision


async def test_no_identity_uses_file_fallback(resolver):
    resolved = await resolver.resolve(KEY)

    assert resolved.source == ResolutionSource.FILE
    assert resolved.tier == TIER_FILE
    assert resolved.document["assessmentType"] == "gut-check"
    assert len(resolved.document["questions"]) == 12
    assert resolved.pin.source == ResolutionSource.FILE
    assert resolved.pin.revision_id is None
    assert resolved.new_pin is True


async def test_identity_without_revisions_uses_file_fallback(resolver, admin):
    identity, _ = await admin.ensure_identity(KEY)

    assert await admin.revisions.list_revisions(identity.id) == []
    assert await admin.pointers.get_pointer(identity.id) is None
    resolved = await resolver.resolve(KEY)
    assert resolved.tier == TIER_FILE


async def test_draft_only_is_not_served(resolver, admin, question_set_doc):
    identity, _ = await admin.ensure_identity(KEY)
    await admin.create_revision(identity.id, question_set_doc)

    resolved = await resolver.resolve(KEY)

    assert resolved.tier == TIER_FILE


async def test_published_pointer_is_served(resolver, admin, question_set_doc):
    identity, first, _ = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)

    resolved = await resolver.resolve(KEY)

    assert resolved.tier == TIER_PUBLISHED
    assert resolved.source == ResolutionSource.STORE
    assert resolved.revision_number == 1
    assert resolved.document["questions"][0]["text"] == "Published copy"
    assert resolved.content_hash == first.content_hash
    assert resolved.pin.identity_id == identity.id
    assert resolved.pin.revision_id == first.id
    assert resolved.new_pin is True


async def test_preview_served_to_privileged_role_only(resolver, admin, question_set_doc):
    identity, first, second = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)
    await admin.set_preview(identity.id, second.id)

    for role in (Role.USER, None, "superuser"):
        resolved = await resolver.resolve(KEY, preview=True, role=role)
        assert resolved.tier == TIER_PUBLISHED
        assert resolved.pin.revision_id == first.id

    editor = await resolver.resolve(KEY, preview=True, role=Role.EDITOR)
    assert editor.tier == TIER_PREVIEW
    assert editor.pin.revision_id == second.id

    # Privileged caller that did not ask for preview
    admin_default = await resolver.resolve(KEY, role=Role.ADMIN)
    assert admin_default.tier == TIER_PUBLISHED


async def test_preview_only_is_never_leaked(resolver, admin, question_set_doc):
    """Only a preview pointer set: unprivileged callers go straight to the file tier."""
    identity, _, second = await _two_revisions(admin, question_set_doc)
    await admin.set_preview(identity.id, second.id)

    anonymous = await resolver.resolve(KEY)
    user_asking = await resolver.resolve(KEY, preview=True, role=Role.USER)

    assert anonymous.tier == TIER_FILE
    assert user_asking.tier == TIER_FILE
    assert user_asking.document["questions"][0]["text"] != "Draft copy"


async def test_preview_unset_falls_back_to_published(resolver, admin, question_set_doc):
    identity, first, _ = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)

    resolved = await resolver.resolve(KEY, preview=True, role=Role.ADMIN)

    assert resolved.tier == TIER_PUBLISHED


async def test_pin_survives_pointer_move(resolver, admin, question_set_doc):
    identity, first, second = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)
    initial = await resolver.resolve(KEY)

    await admin.publish(identity.id, second.id)
    pinned = await resolver.resolve(KEY, pin=initial.pin)
    unpinned = await resolver.resolve(KEY)

    assert pinned.tier == TIER_PIN
    assert pinned.new_pin is False
    assert pinned.pin == initial.pin
    assert pinned.document == initial.document
    assert pinned.content_hash == initial.content_hash
    assert unpinned.pin.revision_id == second.id


async def test_pin_to_missing_revision_falls_through(resolver, admin, question_set_doc):
    identity, first, _ = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)
    pin = ResolutionRef(
        source=ResolutionSource.STORE,
        identity_id=identity.id,
        revision_id=uuid.uuid4(),
        resolved_at=datetime.now(timezone.utc),
    )

    resolved = await resolver.resolve(KEY, pin=pin)

    assert resolved.tier == TIER_PUBLISHED
    assert resolved.new_pin is True


async def test_pin_for_another_identity_is_ignored(resolver, admin, question_set_doc):
    identity, first, second = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)
    pin = ResolutionRef(
        source=ResolutionSource.STORE,
        identity_id=uuid.uuid4(),
        revision_id=second.id,
        resolved_at=datetime.now(timezone.utc),
    )

    resolved = await resolver.resolve(KEY, pin=pin)

    assert resolved.tier == TIER_PUBLISHED
    assert resolved.pin.revision_id == first.id


async def test_preview_pin_replayed_by_user_is_not_served(resolver, admin, question_set_doc):
    identity, first, second = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)
    await admin.set_preview(identity.id, second.id)
    editor_view = await resolver.resolve(KEY, preview=True, role=Role.EDITOR)
    assert editor_view.pin.channel == PointerChannel.PREVIEW

    replayed = await resolver.resolve(KEY, pin=editor_view.pin, role=Role.USER)
    editor_again = await resolver.resolve(KEY, pin=editor_view.pin, role=Role.EDITOR)

    assert replayed.tier == TIER_PUBLISHED
    assert replayed.document["questions"][0]["text"] == "Published copy"
    assert editor_again.tier == TIER_PIN
    assert editor_again.document["questions"][0]["text"] == "Draft copy"


async def test_pin_to_unpublished_revision_is_not_served(resolver, admin, question_set_doc):
    identity, first, second = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)
    for channel in (PointerChannel.PUBLISHED, None):
        pin = ResolutionRef(
            source=ResolutionSource.STORE,
            identity_id=identity.id,
            revision_id=second.id,
            channel=channel,
            resolved_at=datetime.now(timezone.utc),
        )

        resolved = await resolver.resolve(KEY, pin=pin)

        assert resolved.tier == TIER_PUBLISHED
        assert resolved.pin.revision_id == first.id


async def test_pin_to_previously_published_revision_is_served(resolver, admin, question_set_doc):
    identity, first, second = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)
    earlier = await resolver.resolve(KEY)
    await admin.publish(identity.id, second.id)

    stale = earlier.pin.model_copy(update={"channel": None})
    resolved = await resolver.resolve(KEY, pin=stale)

    assert resolved.tier == TIER_PIN
    assert resolved.pin.revision_id == first.id


async def test_pin_from_another_level_is_not_served(resolver, admin, results_pack_doc):
    level1 = ResultsPackKey("gut-check", "2", "level1")
    level2 = ResultsPackKey("gut-check", "2", "level2")
    identity, _ = await admin.ensure_identity(level1)
    created = await admin.create_revision(identity.id, dict(results_pack_doc, label="Level one only"))
    await admin.publish(identity.id, created.revision.id)
    level1_view = await resolver.resolve(level1)

    resolved = await resolver.resolve(level2, pin=level1_view.pin, role=Role.ADMIN)

    assert resolved.tier == TIER_FILE
    assert resolved.document["label"] != "Level one only"


async def test_file_pin_does_not_short_circuit(resolver, admin, question_set_doc):
    file_resolution = await resolver.resolve(KEY)
    identity, first, _ = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)

    resolved = await resolver.resolve(KEY, pin=file_resolution.pin)

    assert resolved.tier == TIER_PUBLISHED


async def test_store_unavailable_falls_back_to_file(resolver, repo, admin, question_set_doc):
    identity, first, _ = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)
    initial = await resolver.resolve(KEY)
    repo.unavailable = True

    resolved = await resolver.resolve(KEY, pin=initial.pin, preview=True, role=Role.ADMIN)

    assert resolved.tier == TIER_FILE
    assert resolved.source == ResolutionSource.FILE


async def test_archived_identity_resolves_from_file(resolver, admin, question_set_doc):
    identity, first, _ = await _two_revisions(admin, question_set_doc)
    await admin.publish(identity.id, first.id)

    await admin.archive(identity.id)

    assert (await resolver.resolve(KEY)).tier == TIER_FILE


async def test_missing_fallback_is_fatal(resolver):
    with pytest.raises(ContentNotConfiguredError) as exc_info:
        await resolver.resolve(QuestionSetKey("unknown-assessment", "2"))

    assert exc_info.value.slug == "question_set:unknown-assessment:2:default"


async def test_identity_without_usable_revision_and_no_fallback(resolver, admin):
    key = QuestionSetKey("deep-dive", "1")
    await admin.ensure_identity(key)

    with pytest.raises(ContentNotConfiguredError) as exc_info:
        await resolver.resolve(key)

    assert "identity exists but has no usable revision" in exc_info.value.reason


async def test_results_pack_published_and_fallback(resolver, admin, results_pack_doc):
    key = ResultsPackKey("gut-check", "2", "level1")
    fallback = await resolver.resolve(key)
    assert fallback.tier == TIER_FILE
    assert fallback.document["label"] == "Steady Base"

    identity, _ = await admin.ensure_identity(key)
    created = await admin.create_revision(identity.id, dict(results_pack_doc, label="Edited Base"))
    await admin.publish(identity.id, created.revision.id)

    published = await resolver.resolve(key)
    assert published.tier == TIER_PUBLISHED
    assert published.document["label"] == "Edited Base"
