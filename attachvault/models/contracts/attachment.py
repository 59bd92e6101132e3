"""
Attachment and file version contracts.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from attachvault.models.enums import ContainerType


class ContentDescriptor(BaseModel):
    """Where a version's bytes live and what they are."""

    model_config = ConfigDict(frozen=True)

    storage_key: str = Field(..., min_length=1, max_length=1024, description="Content backend key")
    content_type: str = Field(..., min_length=1, max_length=255, description="MIME type")
    size_bytes: int = Field(..., ge=0, description="Content size in bytes")
    filename: str | None = Field(
        None, min_length=1, max_length=255, description="Display filename (unchanged if omitted)"
    )


class AttachmentPublic(BaseModel):
    """Attachment summary as exposed to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    task_id: UUID | None
    project_id: UUID | None
    container_type: ContainerType
    filename: str
    content_type: str
    size_bytes: int
    latest_version_number: int
    version_count: int
    created_at: datetime


class FileVersionPublic(BaseModel):
    """One retained version of an attachment."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    attachment_id: UUID
    version_number: int
    content_type: str
    size_bytes: int
    created_at: datetime
