"""
Rollback

Restores an older version by re-uploading its bytes as a brand new
version. History is never rewritten: rolling back from v3 to v1 produces
v4 with v1's content, and v4 is subject to retention like any upload.
"""

import logging
from uuid import UUID

from attachvault.core.exceptions import StorageError
from attachvault.models.contracts.attachment import ContentDescriptor
from attachvault.models.orm.file_version import FileVersion
from attachvault.services.content_storage import (
    ContentBackend,
    generate_storage_key,
    get_content_backend,
)
from attachvault.services.version_store import VersionStore

logger = logging.getLogger(__name__)


class RollbackOperation:
    """Creates a new latest version from an older version's content."""

    def __init__(self, store: VersionStore, content_backend: ContentBackend | None = None):
        self.store = store
        self.content_backend = content_backend or get_content_backend()

    async def rollback_to(self, attachment_id: UUID, target_version_number: int) -> FileVersion:
        """
        Make an older version's content the latest again.

        Args:
            attachment_id: Attachment UUID
            target_version_number: Version whose content to restore

        Returns:
            The newly appended FileVersion

        Raises:
            NotFoundError: If the attachment does not exist, or no retained
                version carries target_version_number (including numbers below 1)
            StorageError: If the content could not be copied
        """
        # held across read and append so retention can't purge the target mid-copy
        async with self.store.locks.hold(attachment_id):
            attachment = await self.store.get_attachment(attachment_id)
            target = await self.store.get_version(attachment_id, target_version_number)

            content = await self.content_backend.get(target.storage_key)
            new_key = generate_storage_key(attachment_id, attachment.filename)
            await self.content_backend.put(new_key, content, target.content_type)

            try:
                version = await self.store.append_version_locked(
                    attachment_id,
                    ContentDescriptor(
                        storage_key=new_key,
                        content_type=target.content_type,
                        size_bytes=target.size_bytes,
                    ),
                )
            except Exception:
                await self._discard(new_key)
                raise

        logger.info(
            f"Rolled back attachment {attachment_id} to version {target_version_number} "
            f"as version {version.version_number}",
            extra={
                "attachment_id": str(attachment_id),
                "target_version_number": target_version_number,
                "version_number": version.version_number,
            },
        )
        return version

    async def _discard(self, key: str) -> None:
        try:
            await self.content_backend.delete(key)
        except StorageError as e:
            logger.warning(
                f"Failed to remove rollback copy {key}: {e}",
                extra={"storage_key": key},
            )
