"""
Container Repository

Read-only lookups over teams, projects and tasks, used to validate
attachment containers and policy targets and to walk an attachment's
ancestry.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attachvault.models.orm.attachment import Attachment
from attachvault.models.orm.project import Project
from attachvault.models.orm.task import Task
from attachvault.models.orm.team import Team


class ContainerRepository:
    """Repository for the records attachments and policies point at."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_team(self, team_id: UUID) -> Team | None:
        return await self.session.get(Team, team_id)

    async def get_project(self, project_id: UUID) -> Project | None:
        return await self.session.get(Project, project_id)

    async def get_task(self, task_id: UUID) -> Task | None:
        return await self.session.get(Task, task_id)

    async def get_ancestry(
        self, attachment_id: UUID
    ) -> tuple[UUID | None, UUID | None] | None:
        """
        Resolve an attachment's owning project and that project's team.

        Direct project attachments use their own project; task attachments
        use the task's project. Both paths come back in a single query.

        Args:
            attachment_id: Attachment UUID

        Returns:
            (project_id, team_id), either of which may be None, or None if
            the attachment does not exist
        """
        query = (
            select(Attachment.id, Project.id, Project.team_id)
            .select_from(Attachment)
            .outerjoin(Task, Task.id == Attachment.task_id)
            .outerjoin(
                Project,
                Project.id == func.coalesce(Attachment.project_id, Task.project_id),
            )
            .where(Attachment.id == attachment_id)
        )
        row = (await self.session.execute(query)).one_or_none()
        if row is None:
            return None
        _, project_id, team_id = row
        return project_id, team_id
