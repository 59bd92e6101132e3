"""
Base Repository

Shared row access for the attachvault aggregates. Repositories flush but
never commit; whoever opened the session owns the transaction.
"""

from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attachvault.models.orm.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Primary-key lookup plus add/flush/delete for one mapped class."""

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelT | None:
        """
        Load a row by primary key.

        Returns:
            The row, or None when it does not exist (callers decide
            whether that is a NotFoundError)
        """
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    async def create(self, entity: ModelT) -> ModelT:
        """
        Insert a row and load server-generated columns.

        Unique-index violations surface here as IntegrityError, which the
        services translate into ConflictError or a retry.
        """
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, entity: ModelT) -> ModelT:
        """Flush pending attribute changes and reload the row."""
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def delete(self, entity: ModelT) -> None:
        """Delete a row; database-level CASCADE/SET NULL rules apply."""
        await self.session.delete(entity)
        await self.session.flush()
