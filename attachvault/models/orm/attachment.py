"""
Attachment ORM model.

A logical file slot on exactly one task or one project. The content lives
in FileVersion rows; the summary columns here mirror the newest version
and the size of the retained chain.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attachvault.models.enums import ContainerType
from attachvault.models.orm.base import Base

if TYPE_CHECKING:
    from attachvault.models.orm.file_version import FileVersion


class Attachment(Base):
    """Attachment database table."""

    __tablename__ = "attachments"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    task_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=True,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # Denormalized from the version chain, maintained in the same transaction
    latest_version_number: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    version_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )

    # Relationships
    versions: Mapped[list["FileVersion"]] = relationship(
        back_populates="attachment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FileVersion.version_number",
    )

    __table_args__ = (
        CheckConstraint(
            "(task_id IS NULL) <> (project_id IS NULL)",
            name="ck_attachments_single_container",
        ),
        Index("ix_attachments_task_id", "task_id"),
        Index("ix_attachments_project_id", "project_id"),
    )

    @property
    def container_type(self) -> ContainerType:
        """Which kind of record owns this attachment."""
        return ContainerType.TASK if self.task_id is not None else ContainerType.PROJECT
