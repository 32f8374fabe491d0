"""Tests for ContentAdminService identity lifecycle and audit trail."""

import uuid
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import (
    ContentNotFoundError,
    ContentValidationError,
    IdentityArchivedError,
    StoreUnavailableError,
)
from app.domain.config import ContentConfig
from app.domain.content import ContentKind, IdentityStatus, QuestionSetKey
from app.services.audit_service import AuditAction
from app.services.content_admin_service import ContentAdminService

pytestmark = pytest.mark.unit

KEY = QuestionSetKey("gut-check", "2")


async def test_ensure_identity_is_idempotent(admin, repo):
    first, created = await admin.ensure_identity(KEY, actor_id="editor-1")
    again, created_again = await admin.ensure_identity(QuestionSetKey("gut-check", "v2"), actor_id="editor-1")

    assert created is True
    assert created_again is False
    assert again.id == first.id
    assert [e.action for e in repo.audit_entries] == [AuditAction.ENSURE_IDENTITY]


async def test_list_identities_reports_pointer_revision_numbers(admin, question_set_doc):
    identity, _ = await admin.ensure_identity(KEY)
    first = await admin.create_revision(identity.id, question_set_doc)
    second = await admin.create_revision(identity.id, question_set_doc)
    await admin.publish(identity.id, first.revision.id)
    await admin.set_preview(identity.id, second.revision.id)

    [overview] = await admin.list_identities(ContentKind.QUESTION_SET)

    assert overview.published_revision_number == 1
    assert overview.preview_revision_number == 2
    assert overview.latest_revision_number == 2
    assert await admin.list_identities(ContentKind.RESULTS_PACK) == []


async def test_history_collects_revisions_and_audit(admin, question_set_doc):
    identity, _ = await admin.ensure_identity(KEY, actor_id="editor-1")
    created = await admin.create_revision(identity.id, question_set_doc, notes="first", actor_id="editor-1")
    await admin.publish(identity.id, created.revision.id, actor_id="admin-1")

    history = await admin.get_history(identity.id)

    assert [r.revision_number for r in history.revisions] == [1]
    assert history.pointer.published_revision_id == created.revision.id
    # Newest first
    assert [e.action for e in history.audit] == [
        AuditAction.SET_PUBLISHED,
        AuditAction.CREATE_REVISION,
        AuditAction.ENSURE_IDENTITY,
    ]
    assert history.audit[0].actor_id == "admin-1"
    assert history.audit[1].details["revision_number"] == 1


async def test_history_of_unknown_identity(admin):
    with pytest.raises(ContentNotFoundError):
        await admin.get_history(uuid.uuid4())


async def test_archive_clears_pointers_and_hides_identity(admin, question_set_doc):
    identity, _ = await admin.ensure_identity(KEY)
    created = await admin.create_revision(identity.id, question_set_doc)
    await admin.publish(identity.id, created.revision.id)

    archived = await admin.archive(identity.id)

    assert archived.status == IdentityStatus.ARCHIVED
    pointer = await admin.pointers.get_pointer(identity.id)
    assert pointer.published_revision_id is None
    assert await admin.list_identities(ContentKind.QUESTION_SET) == []
    assert len(await admin.list_identities(ContentKind.QUESTION_SET, include_archived=True)) == 1
    with pytest.raises(IdentityArchivedError):
        await admin.publish(identity.id, created.revision.id)


async def test_archived_identity_still_accepts_revisions(admin, question_set_doc):
    identity, _ = await admin.ensure_identity(KEY)
    await admin.archive(identity.id)

    created = await admin.create_revision(identity.id, question_set_doc)

    assert created.revision.revision_number == 1


async def test_unarchive_restores_listing_but_not_pointers(admin, question_set_doc):
    identity, _ = await admin.ensure_identity(KEY)
    created = await admin.create_revision(identity.id, question_set_doc)
    await admin.publish(identity.id, created.revision.id)
    await admin.archive(identity.id)

    restored = await admin.unarchive(identity.id)

    assert restored.status == IdentityStatus.ACTIVE
    assert (await admin.pointers.get_pointer(identity.id)).published_revision_id is None
    [overview] = await admin.list_identities(ContentKind.QUESTION_SET)
    assert overview.latest_revision_number == 1


async def test_delete_removes_revisions(admin, repo, question_set_doc):
    identity, _ = await admin.ensure_identity(KEY)
    await admin.create_revision(identity.id, question_set_doc)
    await admin.create_revision(identity.id, question_set_doc)

    removed = await admin.delete(identity.id, actor_id="admin-1")

    assert removed == 2
    assert repo.identities == {}
    assert repo.revisions == {}
    assert repo.audit_entries[-1].action == AuditAction.DELETE
    with pytest.raises(ContentNotFoundError):
        await admin.delete(identity.id)


async def test_scaffold_results_creates_each_level_once(admin):
    results = await admin.scaffold_results("gut-check", "v2", ["level1", "level2", "level1"])

    assert [(i.slug, created) for i, created in results] == [
        ("results_pack:gut-check:2:level1", True),
        ("results_pack:gut-check:2:level2", True),
    ]
    again = await admin.scaffold_results("gut-check", "2", ["level1", "level2", "level3", "level4"])
    assert [created for _, created in again] == [False, False, True, True]


async def test_scaffold_results_uses_level_aliases(repo):
    admin = ContentAdminService(repo, ContentConfig(level_aliases={"owl": "level3"}))
    [(identity, created)] = await admin.scaffold_results("gut-check", "2", ["owl"])
    assert identity.variant == "level3"


async def test_scaffold_results_rejects_unknown_levels(admin, repo):
    with pytest.raises(ContentValidationError) as exc_info:
        await admin.scaffold_results("gut-check", "2", ["level1", "level7"])
    assert exc_info.value.errors[0].location == "levels[1]"
    assert repo.identities == {}


async def test_get_revision_not_found(admin):
    with pytest.raises(ContentNotFoundError):
        await admin.get_revision(uuid.uuid4())


async def test_failed_audit_write_does_not_fail_mutation(admin, repo):
    repo.add_audit_entry = AsyncMock(side_effect=StoreUnavailableError("add_audit_entry"))

    identity, created = await admin.ensure_identity(KEY, actor_id="editor-1")

    assert created is True
    assert identity.id in repo.identities
    repo.add_audit_entry.assert_awaited_once()
