"""Pydantic contracts for attachvault."""

from attachvault.models.contracts.attachment import (
    AttachmentPublic,
    ContentDescriptor,
    FileVersionPublic,
)
from attachvault.models.contracts.common import validate_contract
from attachvault.models.contracts.retention import (
    RetentionBatchResult,
    RetentionOutcome,
    RetentionPolicyCreate,
    RetentionPolicyPublic,
    RetentionPolicyUpdate,
    RetentionStatus,
)

__all__ = [
    "validate_contract",
    # Attachments
    "AttachmentPublic",
    "ContentDescriptor",
    "FileVersionPublic",
    # Retention
    "RetentionBatchResult",
    "RetentionOutcome",
    "RetentionPolicyCreate",
    "RetentionPolicyPublic",
    "RetentionPolicyUpdate",
    "RetentionStatus",
]
