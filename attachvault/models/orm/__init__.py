"""SQLAlchemy ORM Models for attachvault.

Pure database models using SQLAlchemy 2.0 declarative style.
These models define the database schema and relationships.
"""

from attachvault.models.orm.attachment import Attachment
from attachvault.models.orm.base import Base
from attachvault.models.orm.file_version import FileVersion
from attachvault.models.orm.project import Project
from attachvault.models.orm.retention_policy import RetentionPolicy
from attachvault.models.orm.task import Task
from attachvault.models.orm.team import Team

__all__ = [
    # Base
    "Base",
    # Containers
    "Team",
    "Project",
    "Task",
    # Attachments
    "Attachment",
    "FileVersion",
    # Retention
    "RetentionPolicy",
]
