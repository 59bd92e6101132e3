"""Integration tests for RollbackOperation."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio

from attachvault.core.exceptions import NotFoundError, StorageError
from attachvault.services.policy_registry import PolicyRegistry


@pytest_asyncio.fixture
async def three_versions(attachment_service, project):
    attachment = await attachment_service.create_attachment(
        "plan.txt", b"one", project_id=project.id
    )
    await attachment_service.upload_version(attachment.id, "plan.txt", b"two")
    await attachment_service.upload_version(attachment.id, "plan.txt", b"three")
    return attachment


@pytest.mark.integration
class TestRollback:
    """Tests for rollback_to()."""

    @pytest.mark.asyncio
    async def test_rollback_appends_copy(self, attachment_service, version_store, three_versions):
        attachment = three_versions
        v1 = await version_store.get_version(attachment.id, 1)

        version = await attachment_service.rollback_to(attachment.id, 1)

        assert version.version_number == 4
        assert version.storage_key != v1.storage_key
        assert version.size_bytes == v1.size_bytes
        latest, content = await attachment_service.get_latest_content(attachment.id)
        assert latest.version_number == 4
        assert content == b"one"

        versions = await version_store.list_versions(attachment.id)
        assert [v.version_number for v in versions] == [1, 2, 3, 4]
        refreshed = await version_store.get_attachment(attachment.id)
        assert refreshed.latest_version_number == 4
        assert refreshed.filename == "plan.txt"

    @pytest.mark.asyncio
    async def test_rollback_to_latest_still_appends(self, attachment_service, three_versions):
        version = await attachment_service.rollback_to(three_versions.id, 3)
        assert version.version_number == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [0, -1])
    async def test_non_positive_target_is_not_found(
        self, attachment_service, three_versions, target
    ):
        with pytest.raises(NotFoundError) as exc_info:
            await attachment_service.rollback_to(three_versions.id, target)
        assert exc_info.value.entity == "FileVersion"

    @pytest.mark.asyncio
    async def test_unknown_attachment_checked_before_target(self, attachment_service):
        with pytest.raises(NotFoundError) as exc_info:
            await attachment_service.rollback_to(uuid4(), 0)
        assert exc_info.value.entity == "Attachment"

    @pytest.mark.asyncio
    async def test_missing_version(self, attachment_service, three_versions):
        with pytest.raises(NotFoundError):
            await attachment_service.rollback_to(three_versions.id, 9)

    @pytest.mark.asyncio
    async def test_missing_attachment(self, attachment_service):
        with pytest.raises(NotFoundError):
            await attachment_service.rollback_to(uuid4(), 1)

    @pytest.mark.asyncio
    async def test_purged_version(self, attachment_service, db_session, project):
        await PolicyRegistry(db_session).create("project", project_id=project.id, max_versions=1)
        await db_session.commit()
        attachment = await attachment_service.create_attachment(
            "a.txt", b"one", project_id=project.id
        )
        await attachment_service.upload_version(attachment.id, "a.txt", b"two")

        with pytest.raises(NotFoundError):
            await attachment_service.rollback_to(attachment.id, 1)

    @pytest.mark.asyncio
    async def test_rollback_is_subject_to_retention(
        self, attachment_service, version_store, db_session, project, three_versions
    ):
        await PolicyRegistry(db_session).create("project", project_id=project.id, max_versions=2)
        await db_session.commit()

        await attachment_service.rollback_to(three_versions.id, 2)

        versions = await version_store.list_versions(three_versions.id)
        assert [v.version_number for v in versions] == [3, 4]
        _, content = await attachment_service.get_latest_content(three_versions.id)
        assert content == b"two"


@pytest.mark.integration
class TestRollbackFailures:
    """Storage and metadata failures leave history untouched."""

    @pytest.mark.asyncio
    async def test_read_failure(self, attachment_service, version_store, content_backend, three_versions):
        content_backend.fail_get = True

        with pytest.raises(StorageError):
            await attachment_service.rollback_to(three_versions.id, 1)

        assert len(await version_store.list_versions(three_versions.id)) == 3

    @pytest.mark.asyncio
    async def test_write_failure(self, attachment_service, version_store, content_backend, three_versions):
        content_backend.fail_put = True

        with pytest.raises(StorageError):
            await attachment_service.rollback_to(three_versions.id, 1)

        assert len(await version_store.list_versions(three_versions.id)) == 3

    @pytest.mark.asyncio
    async def test_append_failure_discards_copy(
        self, attachment_service, version_store, content_backend, three_versions, monkeypatch
    ):
        keys_before = set(content_backend.objects)
        monkeypatch.setattr(
            version_store, "append_version_locked", AsyncMock(side_effect=RuntimeError("db down"))
        )

        with pytest.raises(RuntimeError):
            await attachment_service.rollback_to(three_versions.id, 1)

        assert set(content_backend.objects) == keys_before
        assert len(content_backend.deleted) == 1
