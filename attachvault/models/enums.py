"""
Enums for attachvault models.
"""

from enum import Enum


class RetentionScope(str, Enum):
    """Breadth at which a retention policy applies."""

    GLOBAL = "global"
    TEAM = "team"
    PROJECT = "project"

    @property
    def precedence(self) -> int:
        """Lower wins: project beats team beats global."""
        return {
            RetentionScope.PROJECT: 0,
            RetentionScope.TEAM: 1,
            RetentionScope.GLOBAL: 2,
        }[self]


class ContainerType(str, Enum):
    """Kinds of records an attachment can hang off."""

    TASK = "task"
    PROJECT = "project"
