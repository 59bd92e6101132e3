"""
FileVersion Repository

Provides database operations over an attachment's version chain.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attachvault.models.orm.file_version import FileVersion
from attachvault.repositories.base import BaseRepository


class FileVersionRepository(BaseRepository[FileVersion]):
    """Repository for FileVersion model operations."""

    model = FileVersion

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def list_for_attachment(self, attachment_id: UUID) -> list[FileVersion]:
        """
        Get every retained version of an attachment.

        Args:
            attachment_id: Attachment UUID

        Returns:
            Versions ordered by ascending version number
        """
        result = await self.session.execute(
            select(FileVersion)
            .where(FileVersion.attachment_id == attachment_id)
            .order_by(FileVersion.version_number.asc())
        )
        return list(result.scalars().all())

    async def get_by_number(
        self, attachment_id: UUID, version_number: int
    ) -> FileVersion | None:
        """
        Get one version by its number within an attachment.

        Args:
            attachment_id: Attachment UUID
            version_number: Version number

        Returns:
            FileVersion or None if not found (never existed or purged)
        """
        result = await self.session.execute(
            select(FileVersion).where(
                FileVersion.attachment_id == attachment_id,
                FileVersion.version_number == version_number,
            )
        )
        return result.scalar_one_or_none()

    async def get_latest(self, attachment_id: UUID) -> FileVersion | None:
        """
        Get the highest-numbered version of an attachment.

        Args:
            attachment_id: Attachment UUID

        Returns:
            FileVersion or None if the attachment has no versions
        """
        result = await self.session.execute(
            select(FileVersion)
            .where(FileVersion.attachment_id == attachment_id)
            .order_by(FileVersion.version_number.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def max_version_number(self, attachment_id: UUID) -> int:
        """
        Get the highest version number currently stored.

        Args:
            attachment_id: Attachment UUID

        Returns:
            Highest version number, or 0 if there are no versions
        """
        result = await self.session.execute(
            select(func.max(FileVersion.version_number)).where(
                FileVersion.attachment_id == attachment_id
            )
        )
        return result.scalar() or 0

    async def count_for_attachment(self, attachment_id: UUID) -> int:
        """
        Count retained versions of an attachment.

        Args:
            attachment_id: Attachment UUID

        Returns:
            Number of versions
        """
        result = await self.session.execute(
            select(func.count(FileVersion.id)).where(
                FileVersion.attachment_id == attachment_id
            )
        )
        return result.scalar() or 0

    async def delete_many(self, ids: Sequence[UUID]) -> int:
        """
        Delete version rows by ID.

        Args:
            ids: FileVersion UUIDs

        Returns:
            Number of deleted rows
        """
        if not ids:
            return 0
        result = await self.session.execute(
            delete(FileVersion).where(FileVersion.id.in_(list(ids)))
        )
        return result.rowcount
