"""
Version Store

Owns each attachment's chain of immutable FileVersion records and the
monotonic version counter.

Appends run under the per-attachment lock and a row lock on the
attachment, so the next number is always one past the highest number ever
assigned. Retention runs right after each append, still under the lock;
its failures are logged and never reach the writer.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attachvault.core.database import get_session_factory
from attachvault.core.exceptions import ConflictError, NotFoundError
from attachvault.core.locks import AttachmentLocks, get_attachment_locks
from attachvault.models.contracts.attachment import ContentDescriptor
from attachvault.models.contracts.common import validate_contract
from attachvault.models.orm.attachment import Attachment
from attachvault.models.orm.file_version import FileVersion
from attachvault.repositories.attachment import AttachmentRepository
from attachvault.repositories.file_version import FileVersionRepository
from attachvault.services.retention_enforcer import RetentionEnforcer

logger = logging.getLogger(__name__)

# Attempts before a unique-constraint race is reported as a conflict
MAX_APPEND_ATTEMPTS = 3


class VersionStore:
    """Append-only store of attachment versions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        enforcer: RetentionEnforcer | None = None,
        locks: AttachmentLocks | None = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.locks = locks if locks is not None else get_attachment_locks()
        self.enforcer = enforcer or RetentionEnforcer(self.session_factory, locks=self.locks)

    async def append_version(
        self, attachment_id: UUID, descriptor: ContentDescriptor | dict[str, Any]
    ) -> FileVersion:
        """
        Record new content as the next version of an attachment.

        The bytes must already be stored under descriptor.storage_key.

        Args:
            attachment_id: Attachment UUID
            descriptor: Storage key, content type, size and optional new filename

        Returns:
            The created FileVersion

        Raises:
            InvalidArgumentError: If the descriptor is malformed
            NotFoundError: If the attachment does not exist
            ConflictError: If the version number could not be claimed
        """
        async with self.locks.hold(attachment_id):
            return await self.append_version_locked(attachment_id, descriptor)

    async def append_version_locked(
        self, attachment_id: UUID, descriptor: ContentDescriptor | dict[str, Any]
    ) -> FileVersion:
        """Same as append_version(); the caller must already hold the attachment lock."""
        if not self.locks.is_held(attachment_id):
            raise RuntimeError(f"Version appended to {attachment_id} without its lock")
        if not isinstance(descriptor, ContentDescriptor):
            descriptor = validate_contract(ContentDescriptor, **descriptor)

        attempt = 0
        while True:
            attempt += 1
            try:
                async with self.session_factory() as session, session.begin():
                    attachment = await AttachmentRepository(session).get_for_update(
                        attachment_id
                    )
                    if attachment is None:
                        raise NotFoundError("Attachment", attachment_id)
                    version = await self.add_version(session, attachment, descriptor)
                break
            except IntegrityError as e:
                if attempt >= MAX_APPEND_ATTEMPTS:
                    raise ConflictError(
                        f"Could not assign a version number to attachment {attachment_id}"
                    ) from e
                logger.warning(
                    f"Version insert collided for attachment {attachment_id}, retrying",
                    extra={"attachment_id": str(attachment_id), "attempt": attempt},
                )

        logger.info(
            f"Appended version {version.version_number} to attachment {attachment_id}",
            extra={
                "attachment_id": str(attachment_id),
                "version_number": version.version_number,
                "storage_key": version.storage_key,
                "size_bytes": version.size_bytes,
            },
        )

        try:
            await self.enforcer.enforce_locked(attachment_id)
        except Exception as e:
            logger.error(
                f"Retention after append failed for attachment {attachment_id}: {e}",
                exc_info=True,
                extra={"attachment_id": str(attachment_id)},
            )

        return version

    async def add_version(
        self,
        session: AsyncSession,
        attachment: Attachment,
        descriptor: ContentDescriptor,
    ) -> FileVersion:
        """
        Insert the next version and update the attachment summary.

        Runs inside the caller's transaction. The caller must hold the
        attachment lock and, for an existing attachment, its row lock.
        """
        repo = FileVersionRepository(session)
        highest = await repo.max_version_number(attachment.id)
        next_number = max(attachment.latest_version_number, highest) + 1

        version = await repo.create(
            FileVersion(
                attachment_id=attachment.id,
                version_number=next_number,
                storage_key=descriptor.storage_key,
                content_type=descriptor.content_type,
                size_bytes=descriptor.size_bytes,
            )
        )

        attachment.latest_version_number = next_number
        attachment.version_count += 1
        attachment.content_type = descriptor.content_type
        attachment.size_bytes = descriptor.size_bytes
        if descriptor.filename is not None:
            attachment.filename = descriptor.filename
        await session.flush()
        return version

    async def get_attachment(self, attachment_id: UUID) -> Attachment:
        """
        Get an attachment by ID.

        Raises:
            NotFoundError: If the attachment does not exist
        """
        async with self.session_factory() as session:
            attachment = await AttachmentRepository(session).get_by_id(attachment_id)
        if attachment is None:
            raise NotFoundError("Attachment", attachment_id)
        return attachment

    async def list_versions(self, attachment_id: UUID) -> list[FileVersion]:
        """
        List every retained version, ascending by version number.

        Raises:
            NotFoundError: If the attachment does not exist
        """
        async with self.session_factory() as session:
            if await AttachmentRepository(session).get_by_id(attachment_id) is None:
                raise NotFoundError("Attachment", attachment_id)
            return await FileVersionRepository(session).list_for_attachment(attachment_id)

    async def get_version(self, attachment_id: UUID, version_number: int) -> FileVersion:
        """
        Get one version by number.

        Raises:
            NotFoundError: If the attachment or the version does not exist
        """
        async with self.session_factory() as session:
            if await AttachmentRepository(session).get_by_id(attachment_id) is None:
                raise NotFoundError("Attachment", attachment_id)
            version = await FileVersionRepository(session).get_by_number(
                attachment_id, version_number
            )
        if version is None:
            raise NotFoundError(
                "FileVersion",
                version_number,
                f"Version {version_number} of attachment {attachment_id} not found",
            )
        return version

    async def get_latest_version(self, attachment_id: UUID) -> FileVersion:
        """
        Get the highest-numbered version.

        Raises:
            NotFoundError: If the attachment does not exist or has no versions
        """
        async with self.session_factory() as session:
            version = await FileVersionRepository(session).get_latest(attachment_id)
        if version is None:
            raise NotFoundError(
                "FileVersion", attachment_id, f"Attachment {attachment_id} has no versions"
            )
        return version

    async def verify_summary(self, attachment_id: UUID) -> bool:
        """
        Check the attachment's cached counters against its version rows.

        Returns:
            True if version_count and latest_version_number are consistent

        Raises:
            NotFoundError: If the attachment does not exist
        """
        async with self.session_factory() as session:
            attachment = await AttachmentRepository(session).get_by_id(attachment_id)
            if attachment is None:
                raise NotFoundError("Attachment", attachment_id)
            repo = FileVersionRepository(session)
            count = await repo.count_for_attachment(attachment_id)
            highest = await repo.max_version_number(attachment_id)

        consistent = (
            attachment.version_count == count and attachment.latest_version_number >= highest
        )
        if not consistent:
            logger.warning(
                f"Attachment {attachment_id} summary drifted from its versions",
                extra={
                    "attachment_id": str(attachment_id),
                    "version_count": attachment.version_count,
                    "actual_count": count,
                    "latest_version_number": attachment.latest_version_number,
                    "actual_latest": highest,
                },
            )
        return consistent

    async def repair_summary(self, attachment_id: UUID) -> Attachment:
        """
        Recompute the attachment's cached counters from its version rows.

        latest_version_number is only ever raised, since numbers are never reused.

        Raises:
            NotFoundError: If the attachment does not exist
        """
        async with self.locks.hold(attachment_id):
            async with self.session_factory() as session, session.begin():
                attachment = await AttachmentRepository(session).get_for_update(attachment_id)
                if attachment is None:
                    raise NotFoundError("Attachment", attachment_id)
                repo = FileVersionRepository(session)
                attachment.version_count = await repo.count_for_attachment(attachment_id)
                attachment.latest_version_number = max(
                    attachment.latest_version_number,
                    await repo.max_version_number(attachment_id),
                )
                await session.flush()

        logger.info(
            f"Repaired summary of attachment {attachment_id}",
            extra={
                "attachment_id": str(attachment_id),
                "version_count": attachment.version_count,
                "latest_version_number": attachment.latest_version_number,
            },
        )
        return attachment
