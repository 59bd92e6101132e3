"""
FileVersion ORM model.

One immutable revision of an attachment's bytes. Rows are only ever
inserted (append) or deleted (retention purge, attachment removal).
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
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attachvault.models.orm.base import Base

if TYPE_CHECKING:
    from attachvault.models.orm.attachment import Attachment


class FileVersion(Base):
    """File version database table."""

    __tablename__ = "file_versions"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    attachment_id: Mapped[UUID] = mapped_column(
        ForeignKey("attachments.id", ondelete="CASCADE"),
        nullable=False,
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_key: Mapped[str] = mapped_column(String(1024), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )

    # Relationships
    attachment: Mapped["Attachment"] = relationship(back_populates="versions")

    __table_args__ = (
        UniqueConstraint(
            "attachment_id", "version_number", name="uq_file_versions_attachment_version"
        ),
        UniqueConstraint("storage_key", name="uq_file_versions_storage_key"),
        CheckConstraint("version_number > 0", name="ck_file_versions_positive_number"),
        CheckConstraint("size_bytes >= 0", name="ck_file_versions_size"),
        Index("ix_file_versions_created_at", "created_at"),
    )
