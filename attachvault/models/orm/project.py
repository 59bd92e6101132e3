"""
Project ORM model.

A project optionally belongs to a team. Deleting the team detaches the
project (SET NULL); deleting the project cascades to its tasks and
attachments.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attachvault.models.orm.base import Base

if TYPE_CHECKING:
    from attachvault.models.orm.team import Team


class Project(Base):
    """Project database table."""

    __tablename__ = "projects"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    team_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )

    # Relationships
    team: Mapped["Team | None"] = relationship()

    __table_args__ = (Index("ix_projects_team_id", "team_id"),)
