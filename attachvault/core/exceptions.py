"""
Domain exceptions for attachment versioning and retention.

Callers map these onto their own transport (HTTP status codes etc.):
NotFoundError -> 404, ConflictError -> 409, InvalidArgumentError -> 422,
StorageError -> 502/503.
"""

from typing import Any


class AttachmentVaultError(Exception):
    """Base class for all attachvault errors."""


class NotFoundError(AttachmentVaultError):
    """Raised when an attachment, version, policy or container does not exist."""

    def __init__(self, entity: str, identifier: Any, message: str | None = None):
        self.entity = entity
        self.identifier = identifier
        super().__init__(message or f"{entity} not found: {identifier}")


class ConflictError(AttachmentVaultError):
    """Raised when a retention policy already exists for a scope/target pair."""


class InvalidArgumentError(AttachmentVaultError, ValueError):
    """Raised when input fails validation."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class StorageError(AttachmentVaultError):
    """Raised when the content backend is unreachable or an operation failed."""

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)
