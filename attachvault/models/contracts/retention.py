"""
Retention policy contracts.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from attachvault.models.enums import RetentionScope


class RetentionPolicyCreate(BaseModel):
    """Retention policy creation request model."""

    scope: RetentionScope
    team_id: UUID | None = Field(None, description="Required iff scope is team")
    project_id: UUID | None = Field(None, description="Required iff scope is project")
    max_versions: int | None = Field(None, gt=0, description="Keep at most N versions")
    keep_days: int | None = Field(None, gt=0, description="Purge versions older than N days")

    @model_validator(mode="after")
    def check_target(self) -> "RetentionPolicyCreate":
        if self.scope == RetentionScope.GLOBAL:
            if self.team_id is not None or self.project_id is not None:
                raise ValueError("global policies take no team_id or project_id")
        elif self.scope == RetentionScope.TEAM:
            if self.team_id is None:
                raise ValueError("team_id is required for team scope")
            if self.project_id is not None:
                raise ValueError("project_id is not allowed for team scope")
        elif self.scope == RetentionScope.PROJECT:
            if self.project_id is None:
                raise ValueError("project_id is required for project scope")
            if self.team_id is not None:
                raise ValueError("team_id is not allowed for project scope")
        return self

    @property
    def is_noop(self) -> bool:
        return self.max_versions is None and self.keep_days is None


class RetentionPolicyUpdate(BaseModel):
    """
    Retention policy update request model.

    Only fields explicitly provided are applied; passing None clears a limit.
    """

    max_versions: int | None = Field(None, gt=0)
    keep_days: int | None = Field(None, gt=0)


class RetentionPolicyPublic(BaseModel):
    """Retention policy as shown in admin listings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    scope: RetentionScope
    team_id: UUID | None
    project_id: UUID | None
    max_versions: int | None
    keep_days: int | None
    created_at: datetime


class RetentionOutcome(BaseModel):
    """Result of enforcing retention on one attachment."""

    attachment_id: UUID
    policy_id: UUID | None = None
    deleted_versions: list[int] = Field(default_factory=list)
    remaining_count: int = 0
    content_delete_failures: int = 0

    @property
    def deleted_count(self) -> int:
        return len(self.deleted_versions)


class RetentionBatchResult(BaseModel):
    """Aggregate result of enforcing retention across many attachments."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    deleted_versions: int = 0
    last_error: str | None = None


class RetentionStatus(BaseModel):
    """Run status of scheduled/manual retention batches."""

    last_run_at: datetime | None = None
    last_processed: int = 0
    last_error: str | None = None
    total_runs: int = 0
    interval_minutes: int
    scheduler_enabled: bool
