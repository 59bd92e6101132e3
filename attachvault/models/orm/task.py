"""
Task ORM model.

Tasks always live inside a project; attachments on a task inherit the
project's retention policy.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attachvault.models.orm.base import Base

if TYPE_CHECKING:
    from attachvault.models.orm.project import Project


class Task(Base):
    """Task database table."""

    __tablename__ = "tasks"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )

    # Relationships
    project: Mapped["Project"] = relationship()

    __table_args__ = (Index("ix_tasks_project_id", "project_id"),)
