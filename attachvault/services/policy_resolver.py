"""
Retention policy resolution.

Picks the single effective policy for an attachment, most specific first:
project policy, then the project's team policy, then the global policy.
No policy is ever synthesized; None means unconstrained retention.
"""

import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from attachvault.core.exceptions import NotFoundError
from attachvault.models.enums import RetentionScope
from attachvault.models.orm.retention_policy import RetentionPolicy
from attachvault.repositories.container import ContainerRepository
from attachvault.repositories.retention_policy import RetentionPolicyRepository

logger = logging.getLogger(__name__)


def select_effective_policy(
    project_id: UUID | None,
    team_id: UUID | None,
    policies: Iterable[RetentionPolicy],
) -> RetentionPolicy | None:
    """
    Pick the winning policy for an ancestry from a set of policies.

    Pure function of its arguments. Policies that don't target this
    ancestry (other projects/teams, dormant policies) are ignored.

    Args:
        project_id: The attachment's owning project
        team_id: That project's team
        policies: Any collection of policies

    Returns:
        The project, team or global policy, in that order of preference
    """
    by_scope: dict[RetentionScope, RetentionPolicy] = {}
    for policy in policies:
        if policy.is_dormant:
            continue
        scope = RetentionScope(policy.scope)
        if scope == RetentionScope.PROJECT:
            matches = project_id is not None and policy.project_id == project_id
        elif scope == RetentionScope.TEAM:
            matches = team_id is not None and policy.team_id == team_id
        else:
            matches = True
        if matches:
            by_scope.setdefault(scope, policy)

    if not by_scope:
        return None
    return by_scope[min(by_scope, key=lambda scope: scope.precedence)]


class PolicyResolver:
    """Resolves the effective retention policy for attachments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, attachment_id: UUID) -> RetentionPolicy | None:
        """
        Find the policy that governs an attachment.

        Args:
            attachment_id: Attachment UUID

        Returns:
            The effective RetentionPolicy, or None if nothing applies

        Raises:
            NotFoundError: If the attachment does not exist
        """
        ancestry = await ContainerRepository(self.db).get_ancestry(attachment_id)
        if ancestry is None:
            raise NotFoundError("Attachment", attachment_id)

        project_id, team_id = ancestry
        candidates = await RetentionPolicyRepository(self.db).get_candidates(project_id, team_id)
        policy = select_effective_policy(project_id, team_id, candidates)

        logger.debug(
            f"Resolved retention policy for attachment {attachment_id}: "
            f"{policy.scope if policy else 'none'}",
            extra={
                "attachment_id": str(attachment_id),
                "project_id": str(project_id) if project_id else None,
                "team_id": str(team_id) if team_id else None,
                "policy_id": str(policy.id) if policy else None,
            },
        )
        return policy
