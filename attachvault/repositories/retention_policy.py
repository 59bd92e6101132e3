"""
Retention Policy Repository

Provides database operations for RetentionPolicy model.
"""

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from attachvault.models.enums import RetentionScope
from attachvault.models.orm.retention_policy import RetentionPolicy
from attachvault.repositories.base import BaseRepository


class RetentionPolicyRepository(BaseRepository[RetentionPolicy]):
    """Repository for RetentionPolicy model operations."""

    model = RetentionPolicy

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def list_ordered(self) -> list[RetentionPolicy]:
        """
        Get all policies in creation order.

        Returns:
            Policies ordered by created_at, then id
        """
        result = await self.session.execute(
            select(RetentionPolicy).order_by(
                RetentionPolicy.created_at.asc(), RetentionPolicy.id.asc()
            )
        )
        return list(result.scalars().all())

    async def get_for_target(
        self,
        scope: RetentionScope,
        target_id: UUID | None = None,
    ) -> RetentionPolicy | None:
        """
        Get the policy for a (scope, target) pair.

        Args:
            scope: Policy scope
            target_id: Team UUID for team scope, project UUID for project
                scope, ignored for global

        Returns:
            RetentionPolicy or None if no policy exists for the pair
        """
        query = select(RetentionPolicy).where(RetentionPolicy.scope == scope.value)
        if scope == RetentionScope.TEAM:
            query = query.where(RetentionPolicy.team_id == target_id)
        elif scope == RetentionScope.PROJECT:
            query = query.where(RetentionPolicy.project_id == target_id)

        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def get_candidates(
        self,
        project_id: UUID | None,
        team_id: UUID | None,
    ) -> list[RetentionPolicy]:
        """
        Get every policy that could apply to an attachment's ancestry.

        One query for the project, team and global candidates; picking
        the winner is left to the caller.

        Args:
            project_id: Owning project UUID
            team_id: The project's team UUID

        Returns:
            Up to three policies, unordered
        """
        conditions = [RetentionPolicy.scope == RetentionScope.GLOBAL.value]
        if project_id is not None:
            conditions.append(
                (RetentionPolicy.scope == RetentionScope.PROJECT.value)
                & (RetentionPolicy.project_id == project_id)
            )
        if team_id is not None:
            conditions.append(
                (RetentionPolicy.scope == RetentionScope.TEAM.value)
                & (RetentionPolicy.team_id == team_id)
            )

        result = await self.session.execute(select(RetentionPolicy).where(or_(*conditions)))
        return list(result.scalars().all())
