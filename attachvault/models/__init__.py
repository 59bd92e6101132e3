"""attachvault models.

ORM models (database tables):
    from attachvault.models.orm import Attachment, FileVersion

Pydantic contracts:
    from attachvault.models.contracts import ContentDescriptor, RetentionPolicyCreate

Enums:
    from attachvault.models.enums import RetentionScope
"""
