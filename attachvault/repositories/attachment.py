"""
Attachment Repository

Provides database operations for Attachment model, including the
row lock that serializes version number assignment.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attachvault.models.orm.attachment import Attachment
from attachvault.models.orm.file_version import FileVersion
from attachvault.repositories.base import BaseRepository


class AttachmentRepository(BaseRepository[Attachment]):
    """Repository for Attachment model operations."""

    model = Attachment

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def get_for_update(self, id: UUID) -> Attachment | None:
        """
        Get attachment by ID and lock its row until the transaction ends.

        Uses SELECT ... FOR UPDATE on databases that support it; SQLite
        ignores the clause and relies on its database-level write lock.

        Args:
            id: Attachment UUID

        Returns:
            Attachment or None if not found
        """
        result = await self.session.execute(
            select(Attachment)
            .where(Attachment.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_ids(self, touched_since: datetime | None = None) -> list[UUID]:
        """
        List attachment IDs for batch retention.

        Args:
            touched_since: Only attachments with a version created at or
                after this instant

        Returns:
            Attachment UUIDs in a stable order
        """
        if touched_since is None:
            query = select(Attachment.id).order_by(Attachment.created_at, Attachment.id)
        else:
            query = (
                select(FileVersion.attachment_id)
                .where(FileVersion.created_at >= touched_since)
                .group_by(FileVersion.attachment_id)
                .order_by(func.min(FileVersion.created_at))
            )

        result = await self.session.execute(query)
        return list(result.scalars().all())
