"""
RetentionPolicy ORM model.

At most one policy per (scope, target). The registry checks this before
inserting; the partial unique indexes below are the backstop for racing
creators. Team/project references are targeting only: deleting the target
nulls the column and leaves a dormant policy behind.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attachvault.models.enums import RetentionScope
from attachvault.models.orm.base import Base

if TYPE_CHECKING:
    from attachvault.models.orm.project import Project
    from attachvault.models.orm.team import Team


class RetentionPolicy(Base):
    """Retention policy database table."""

    __tablename__ = "retention_policies"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    scope: Mapped[RetentionScope] = mapped_column(String(16), nullable=False)
    team_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
    )
    max_versions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    keep_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )

    # Relationships
    team: Mapped["Team | None"] = relationship()
    project: Mapped["Project | None"] = relationship()

    __table_args__ = (
        CheckConstraint(
            "scope IN ('global', 'team', 'project')", name="ck_retention_policies_scope"
        ),
        CheckConstraint(
            "scope <> 'global' OR (team_id IS NULL AND project_id IS NULL)",
            name="ck_retention_policies_global_target",
        ),
        CheckConstraint(
            "scope <> 'team' OR project_id IS NULL",
            name="ck_retention_policies_team_target",
        ),
        CheckConstraint(
            "scope <> 'project' OR team_id IS NULL",
            name="ck_retention_policies_project_target",
        ),
        CheckConstraint(
            "max_versions IS NULL OR max_versions > 0",
            name="ck_retention_policies_max_versions",
        ),
        CheckConstraint(
            "keep_days IS NULL OR keep_days > 0",
            name="ck_retention_policies_keep_days",
        ),
        Index(
            "uq_retention_policies_global",
            "scope",
            unique=True,
            postgresql_where=text("scope = 'global'"),
            sqlite_where=text("scope = 'global'"),
        ),
        Index(
            "uq_retention_policies_team",
            "team_id",
            unique=True,
            postgresql_where=text("scope = 'team' AND team_id IS NOT NULL"),
            sqlite_where=text("scope = 'team' AND team_id IS NOT NULL"),
        ),
        Index(
            "uq_retention_policies_project",
            "project_id",
            unique=True,
            postgresql_where=text("scope = 'project' AND project_id IS NOT NULL"),
            sqlite_where=text("scope = 'project' AND project_id IS NOT NULL"),
        ),
    )

    @property
    def target_id(self) -> UUID | None:
        """The team or project this policy targets (None for global)."""
        if self.scope == RetentionScope.TEAM:
            return self.team_id
        if self.scope == RetentionScope.PROJECT:
            return self.project_id
        return None

    @property
    def is_dormant(self) -> bool:
        """A scoped policy whose target was deleted; it matches nothing."""
        return self.scope != RetentionScope.GLOBAL and self.target_id is None
