"""
Retention Policy Registry

Create/update/delete/list for retention policies with one-policy-per-target
enforcement. Works inside the caller's session; the caller commits.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from attachvault.core.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from attachvault.models.contracts.common import validate_contract
from attachvault.models.contracts.retention import RetentionPolicyCreate, RetentionPolicyUpdate
from attachvault.models.enums import RetentionScope
from attachvault.models.orm.retention_policy import RetentionPolicy
from attachvault.repositories.container import ContainerRepository
from attachvault.repositories.retention_policy import RetentionPolicyRepository

logger = logging.getLogger(__name__)


class PolicyRegistry:
    """Service for managing retention policies."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = RetentionPolicyRepository(db)

    async def create(
        self,
        scope: RetentionScope | str,
        *,
        team_id: UUID | None = None,
        project_id: UUID | None = None,
        max_versions: int | None = None,
        keep_days: int | None = None,
    ) -> RetentionPolicy:
        """
        Create a retention policy for a scope/target pair.

        Args:
            scope: global, team or project
            team_id: Target team (team scope only)
            project_id: Target project (project scope only)
            max_versions: Keep at most this many versions (positive)
            keep_days: Purge non-latest versions older than this (positive)

        Returns:
            The created policy

        Raises:
            InvalidArgumentError: Bad scope, target mismatch, non-positive limits
            NotFoundError: Target team/project does not exist
            ConflictError: A policy already exists for this target
        """
        data = validate_contract(
            RetentionPolicyCreate,
            scope=scope,
            team_id=team_id,
            project_id=project_id,
            max_versions=max_versions,
            keep_days=keep_days,
        )

        containers = ContainerRepository(self.db)
        if data.scope == RetentionScope.TEAM and await containers.get_team(data.team_id) is None:
            raise NotFoundError("Team", data.team_id)
        if (
            data.scope == RetentionScope.PROJECT
            and await containers.get_project(data.project_id) is None
        ):
            raise NotFoundError("Project", data.project_id)

        target_id = data.team_id if data.scope == RetentionScope.TEAM else data.project_id
        if await self.repo.get_for_target(data.scope, target_id) is not None:
            raise ConflictError(
                f"A {data.scope.value} retention policy already exists for this target"
            )

        if data.is_noop:
            logger.warning(
                f"Creating {data.scope.value} retention policy with no limits; it will never purge",
                extra={"scope": data.scope.value, "target_id": str(target_id) if target_id else None},
            )

        policy = RetentionPolicy(
            scope=data.scope.value,
            team_id=data.team_id,
            project_id=data.project_id,
            max_versions=data.max_versions,
            keep_days=data.keep_days,
        )
        try:
            policy = await self.repo.create(policy)
        except IntegrityError as e:
            # a concurrent create won the unique index
            raise ConflictError(
                f"A {data.scope.value} retention policy already exists for this target"
            ) from e

        logger.info(
            f"Created {policy.scope} retention policy {policy.id}",
            extra={
                "policy_id": str(policy.id),
                "scope": policy.scope,
                "target_id": str(target_id) if target_id else None,
                "max_versions": policy.max_versions,
                "keep_days": policy.keep_days,
            },
        )
        return policy

    async def get(self, policy_id: UUID) -> RetentionPolicy:
        """
        Get a policy by ID.

        Raises:
            NotFoundError: If the policy does not exist
        """
        policy = await self.repo.get_by_id(policy_id)
        if policy is None:
            raise NotFoundError("RetentionPolicy", policy_id)
        return policy

    async def update(self, policy_id: UUID, **changes: Any) -> RetentionPolicy:
        """
        Change a policy's limits.

        Only max_versions and keep_days may change; scope and target are
        fixed at creation. Omitted fields are left alone and an explicit
        None clears that limit.

        Args:
            policy_id: Policy UUID
            **changes: max_versions and/or keep_days

        Returns:
            The updated policy

        Raises:
            InvalidArgumentError: Unknown field or non-positive limit
            NotFoundError: If the policy does not exist
        """
        unknown = set(changes) - set(RetentionPolicyUpdate.model_fields)
        if unknown:
            field = sorted(unknown)[0]
            raise InvalidArgumentError(f"{field} cannot be changed on a retention policy", field=field)

        data = validate_contract(RetentionPolicyUpdate, **changes)
        policy = await self.get(policy_id)

        for field in data.model_fields_set:
            setattr(policy, field, getattr(data, field))
        policy = await self.repo.update(policy)

        logger.info(
            f"Updated retention policy {policy.id}",
            extra={
                "policy_id": str(policy.id),
                "max_versions": policy.max_versions,
                "keep_days": policy.keep_days,
            },
        )
        return policy

    async def delete(self, policy_id: UUID) -> None:
        """
        Delete a policy.

        Raises:
            NotFoundError: If the policy does not exist
        """
        policy = await self.get(policy_id)
        await self.repo.delete(policy)
        logger.info(f"Deleted retention policy {policy_id}", extra={"policy_id": str(policy_id)})

    async def list(self) -> list[RetentionPolicy]:
        """List all policies in creation order."""
        return await self.repo.list_ordered()
