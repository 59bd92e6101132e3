"""Data access repositories."""

from attachvault.repositories.attachment import AttachmentRepository
from attachvault.repositories.container import ContainerRepository
from attachvault.repositories.file_version import FileVersionRepository
from attachvault.repositories.retention_policy import RetentionPolicyRepository

__all__ = [
    "AttachmentRepository",
    "ContainerRepository",
    "FileVersionRepository",
    "RetentionPolicyRepository",
]
