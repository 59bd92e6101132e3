"""
Attachment Service

Upload, preview, rollback and removal of versioned attachments. Bytes go
to the content backend first; metadata is only written once they are
stored, and bytes left behind by a failed metadata write are removed on a
best-effort basis.
"""

import logging
from collections.abc import Iterable
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attachvault.config import get_settings
from attachvault.core.database import get_session_factory
from attachvault.core.exceptions import InvalidArgumentError, NotFoundError, StorageError
from attachvault.core.locks import AttachmentLocks, get_attachment_locks
from attachvault.models.contracts.attachment import ContentDescriptor
from attachvault.models.contracts.common import validate_contract
from attachvault.models.orm.attachment import Attachment
from attachvault.models.orm.file_version import FileVersion
from attachvault.repositories.attachment import AttachmentRepository
from attachvault.repositories.container import ContainerRepository
from attachvault.repositories.file_version import FileVersionRepository
from attachvault.services.content_storage import (
    ContentBackend,
    generate_storage_key,
    get_content_backend,
    guess_content_type,
)
from attachvault.services.retention_enforcer import RetentionEnforcer
from attachvault.services.rollback import RollbackOperation
from attachvault.services.version_store import VersionStore

logger = logging.getLogger(__name__)


class AttachmentService:
    """Facade over content storage, the version store and rollback."""

    def __init__(
        self,
        store: VersionStore,
        content_backend: ContentBackend,
        max_upload_bytes: int | None = None,
        allowed_content_types: Iterable[str] | None = None,
    ):
        settings = get_settings()
        self.store = store
        self.content_backend = content_backend
        self.rollback = RollbackOperation(store, content_backend)
        self.max_upload_bytes = max_upload_bytes or settings.max_upload_bytes
        if allowed_content_types is None:
            allowed_content_types = settings.allowed_content_types
        self.allowed_content_types = frozenset(t.lower() for t in allowed_content_types)

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self.store.session_factory

    @property
    def locks(self) -> AttachmentLocks:
        return self.store.locks

    def _check_size(self, content: bytes) -> None:
        if len(content) > self.max_upload_bytes:
            raise InvalidArgumentError(
                f"File exceeds the {self.max_upload_bytes} byte upload limit",
                field="content",
            )

    def _describe(
        self, attachment_id: UUID, filename: str, content: bytes, content_type: str | None
    ) -> ContentDescriptor:
        if not filename:
            raise InvalidArgumentError("Filename is required", field="filename")
        content_type = content_type or guess_content_type(filename)
        # parameters such as "; charset=utf-8" do not change the type
        if content_type.split(";", 1)[0].strip().lower() not in self.allowed_content_types:
            raise InvalidArgumentError(
                f"Content type {content_type!r} is not allowed", field="content_type"
            )
        return validate_contract(
            ContentDescriptor,
            storage_key=generate_storage_key(attachment_id, filename),
            content_type=content_type,
            size_bytes=len(content),
            filename=filename,
        )

    async def _discard(self, key: str) -> None:
        try:
            await self.content_backend.delete(key)
        except StorageError as e:
            logger.warning(
                f"Failed to remove unreferenced content {key}: {e}",
                extra={"storage_key": key},
            )

    async def create_attachment(
        self,
        filename: str,
        content: bytes,
        content_type: str | None = None,
        *,
        task_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> Attachment:
        """
        Create an attachment on a task or project with its first version.

        Args:
            filename: Display filename
            content: File bytes
            content_type: MIME type (guessed from filename if omitted)
            task_id: Owning task (exclusive with project_id)
            project_id: Owning project (exclusive with task_id)

        Returns:
            The new attachment, at version 1

        Raises:
            InvalidArgumentError: Bad container choice, filename, size or content type
            NotFoundError: If the container does not exist
            StorageError: If the bytes could not be stored
        """
        if (task_id is None) == (project_id is None):
            raise InvalidArgumentError(
                "Exactly one of task_id or project_id is required", field="task_id"
            )
        self._check_size(content)

        attachment_id = uuid4()
        descriptor = self._describe(attachment_id, filename, content, content_type)

        async with self.session_factory() as session:
            containers = ContainerRepository(session)
            if task_id is not None and await containers.get_task(task_id) is None:
                raise NotFoundError("Task", task_id)
            if project_id is not None and await containers.get_project(project_id) is None:
                raise NotFoundError("Project", project_id)

        await self.content_backend.put(descriptor.storage_key, content, descriptor.content_type)

        try:
            async with self.locks.hold(attachment_id):
                async with self.session_factory() as session, session.begin():
                    attachment = await AttachmentRepository(session).create(
                        Attachment(
                            id=attachment_id,
                            task_id=task_id,
                            project_id=project_id,
                            filename=filename,
                            content_type=descriptor.content_type,
                            size_bytes=descriptor.size_bytes,
                        )
                    )
                    await self.store.add_version(session, attachment, descriptor)
        except Exception:
            await self._discard(descriptor.storage_key)
            raise

        logger.info(
            f"Created attachment {attachment.id}",
            extra={
                "attachment_id": str(attachment.id),
                "task_id": str(task_id) if task_id else None,
                "project_id": str(project_id) if project_id else None,
                "size_bytes": attachment.size_bytes,
            },
        )
        return attachment

    async def upload_version(
        self,
        attachment_id: UUID,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> FileVersion:
        """
        Upload new content as the next version of an attachment.

        Args:
            attachment_id: Attachment UUID
            filename: Display filename for the new content
            content: File bytes
            content_type: MIME type (guessed from filename if omitted)

        Returns:
            The created FileVersion

        Raises:
            InvalidArgumentError: Bad filename, size or content type
            NotFoundError: If the attachment does not exist
            StorageError: If the bytes could not be stored
        """
        self._check_size(content)
        descriptor = self._describe(attachment_id, filename, content, content_type)
        await self.store.get_attachment(attachment_id)

        await self.content_backend.put(descriptor.storage_key, content, descriptor.content_type)
        try:
            return await self.store.append_version(attachment_id, descriptor)
        except Exception:
            await self._discard(descriptor.storage_key)
            raise

    async def list_versions(self, attachment_id: UUID) -> list[FileVersion]:
        return await self.store.list_versions(attachment_id)

    async def get_latest_content(self, attachment_id: UUID) -> tuple[FileVersion, bytes]:
        """
        Read the latest version's bytes (preview path).

        Raises:
            NotFoundError: If the attachment does not exist or has no versions
            StorageError: If the bytes could not be read
        """
        version = await self.store.get_latest_version(attachment_id)
        return version, await self.content_backend.get(version.storage_key)

    async def get_version_content(
        self, attachment_id: UUID, version_number: int
    ) -> tuple[FileVersion, bytes]:
        """Read a specific retained version's bytes."""
        version = await self.store.get_version(attachment_id, version_number)
        return version, await self.content_backend.get(version.storage_key)

    async def rollback_to(self, attachment_id: UUID, target_version_number: int) -> FileVersion:
        return await self.rollback.rollback_to(attachment_id, target_version_number)

    async def delete_attachment(self, attachment_id: UUID) -> None:
        """
        Delete an attachment and every version of it.

        Rows go in one transaction; stored bytes are removed afterwards,
        best effort.

        Raises:
            NotFoundError: If the attachment does not exist
        """
        async with self.locks.hold(attachment_id):
            async with self.session_factory() as session, session.begin():
                repo = AttachmentRepository(session)
                attachment = await repo.get_for_update(attachment_id)
                if attachment is None:
                    raise NotFoundError("Attachment", attachment_id)
                versions = await FileVersionRepository(session).list_for_attachment(attachment_id)
                storage_keys = [v.storage_key for v in versions]
                await repo.delete(attachment)

        # Delete from the database first, then content (best effort)
        for key in storage_keys:
            await self._discard(key)

        logger.info(
            f"Deleted attachment {attachment_id}",
            extra={"attachment_id": str(attachment_id), "version_count": len(storage_keys)},
        )


def build_attachment_service(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    content_backend: ContentBackend | None = None,
    locks: AttachmentLocks | None = None,
) -> AttachmentService:
    """
    Wire an AttachmentService with one shared backend, lock registry and enforcer.

    Args:
        session_factory: Session factory (defaults to the application's)
        content_backend: Content backend (defaults to the configured one)
        locks: Lock registry (defaults to the process-wide one)
    """
    session_factory = session_factory or get_session_factory()
    content_backend = content_backend or get_content_backend()
    locks = locks if locks is not None else get_attachment_locks()

    enforcer = RetentionEnforcer(session_factory, content_backend=content_backend, locks=locks)
    store = VersionStore(session_factory, enforcer=enforcer, locks=locks)
    return AttachmentService(store, content_backend)
