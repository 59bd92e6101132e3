"""
Retention Enforcer

Trims an attachment's version chain according to its effective retention
policy. Two criteria, applied as a union:
- age: non-latest versions created before now - keep_days
- count: of what survives the age pass, the oldest beyond max_versions

The latest version is never a candidate under any policy.

Metadata deletes and the version_count update commit together; stored
bytes are removed afterwards on a best-effort basis, so a storage outage
can leak bytes but never leaves rows pointing at deleted content.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Protocol, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attachvault.core.database import get_session_factory
from attachvault.core.exceptions import NotFoundError, StorageError
from attachvault.core.locks import AttachmentLocks, get_attachment_locks
from attachvault.models.contracts.retention import RetentionBatchResult, RetentionOutcome
from attachvault.repositories.attachment import AttachmentRepository
from attachvault.repositories.file_version import FileVersionRepository
from attachvault.services.content_storage import ContentBackend, get_content_backend
from attachvault.services.policy_resolver import PolicyResolver
from attachvault.services.retention_metrics import RetentionMetrics, get_retention_metrics

logger = logging.getLogger(__name__)


class VersionLike(Protocol):
    version_number: int
    created_at: datetime


VersionT = TypeVar("VersionT", bound=VersionLike)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (SQLite drops tzinfo) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def compute_purge_set(
    versions: Sequence[VersionT],
    max_versions: int | None,
    keep_days: int | None,
    now: datetime,
) -> list[VersionT]:
    """
    Decide which versions a policy removes.

    Args:
        versions: The attachment's versions, any order
        max_versions: Count limit, or None for no count limit
        keep_days: Age limit in days, or None for no age limit
        now: Reference instant for the age cutoff

    Returns:
        Versions to delete, ascending by version number. Never contains
        the highest-numbered version.
    """
    if len(versions) <= 1:
        return []

    ordered = sorted(versions, key=lambda v: v.version_number)
    latest = ordered[-1]
    candidates = ordered[:-1]

    doomed: dict[int, VersionT] = {}

    if keep_days is not None:
        cutoff = as_utc(now) - timedelta(days=keep_days)
        for version in candidates:
            if as_utc(version.created_at) < cutoff:
                doomed[version.version_number] = version

    if max_versions is not None:
        remaining = [v for v in ordered if v.version_number not in doomed]
        surplus = len(remaining) - max_versions
        if surplus > 0:
            for version in remaining[:surplus]:
                if version is latest:
                    continue
                doomed[version.version_number] = version

    return [doomed[number] for number in sorted(doomed)]


class RetentionEnforcer:
    """Applies retention policies to attachment version chains."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        content_backend: ContentBackend | None = None,
        locks: AttachmentLocks | None = None,
        metrics: RetentionMetrics | None = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.content_backend = content_backend or get_content_backend()
        self.locks = locks if locks is not None else get_attachment_locks()
        self.metrics = metrics or get_retention_metrics()

    async def enforce(self, attachment_id: UUID, now: datetime | None = None) -> RetentionOutcome:
        """
        Apply the effective retention policy to one attachment.

        Idempotent: a second call with no intervening writes deletes nothing.

        Args:
            attachment_id: Attachment UUID
            now: Reference instant for age checks (defaults to current time)

        Returns:
            What was deleted and how many versions remain

        Raises:
            NotFoundError: If the attachment does not exist
        """
        async with self.locks.hold(attachment_id):
            return await self.enforce_locked(attachment_id, now=now)

    async def enforce_locked(
        self, attachment_id: UUID, now: datetime | None = None
    ) -> RetentionOutcome:
        """Same as enforce(); the caller must already hold the attachment lock."""
        if not self.locks.is_held(attachment_id):
            raise RuntimeError(f"Retention for {attachment_id} enforced without its lock")
        now = now or datetime.now(UTC)

        async with self.session_factory() as session, session.begin():
            attachment = await AttachmentRepository(session).get_for_update(attachment_id)
            if attachment is None:
                raise NotFoundError("Attachment", attachment_id)

            policy = await PolicyResolver(session).resolve(attachment_id)
            if policy is None:
                return RetentionOutcome(
                    attachment_id=attachment_id, remaining_count=attachment.version_count
                )

            version_repo = FileVersionRepository(session)
            versions = await version_repo.list_for_attachment(attachment_id)
            outcome = RetentionOutcome(
                attachment_id=attachment_id,
                policy_id=policy.id,
                remaining_count=len(versions),
            )
            if len(versions) <= 1:
                return outcome

            purge = compute_purge_set(versions, policy.max_versions, policy.keep_days, now)
            if not purge:
                return outcome

            await version_repo.delete_many([v.id for v in purge])
            attachment.version_count = len(versions) - len(purge)
            await session.flush()

            outcome.deleted_versions = [v.version_number for v in purge]
            outcome.remaining_count = attachment.version_count
            storage_keys = [v.storage_key for v in purge]

        for key in storage_keys:
            try:
                await self.content_backend.delete(key)
            except StorageError as e:
                outcome.content_delete_failures += 1
                logger.warning(
                    f"Purged version content could not be deleted, leaving orphaned bytes: {key}",
                    extra={"attachment_id": str(attachment_id), "storage_key": key, "error": str(e)},
                )

        logger.info(
            f"Retention purged {outcome.deleted_count} version(s) of attachment {attachment_id}",
            extra={
                "attachment_id": str(attachment_id),
                "policy_id": str(policy.id),
                "deleted_versions": outcome.deleted_versions,
                "remaining_count": outcome.remaining_count,
                "content_delete_failures": outcome.content_delete_failures,
            },
        )
        return outcome

    async def enforce_all(
        self,
        attachment_ids: Sequence[UUID] | None = None,
        *,
        touched_since: datetime | None = None,
        now: datetime | None = None,
    ) -> RetentionBatchResult:
        """
        Apply retention to many attachments, isolating failures.

        One attachment failing never stops the batch; failures are counted
        and the last error is kept for reporting.

        Args:
            attachment_ids: Explicit attachments (defaults to all of them)
            touched_since: When listing, only attachments with a version
                created at or after this instant
            now: Reference instant for age checks

        Returns:
            Aggregate counts for the batch
        """
        now = now or datetime.now(UTC)

        if attachment_ids is None:
            try:
                async with self.session_factory() as session:
                    attachment_ids = await AttachmentRepository(session).list_ids(touched_since)
            except Exception as e:
                self.metrics.record_failure(str(e))
                raise

        result = RetentionBatchResult()
        for attachment_id in attachment_ids:
            result.processed += 1
            try:
                outcome = await self.enforce(attachment_id, now=now)
            except NotFoundError:
                # removed since the batch was listed
                logger.debug(f"Attachment {attachment_id} vanished before retention ran")
                result.succeeded += 1
                continue
            except Exception as e:
                result.failed += 1
                result.last_error = f"{attachment_id}: {e}"
                logger.error(
                    f"Retention failed for attachment {attachment_id}: {e}",
                    exc_info=True,
                    extra={"attachment_id": str(attachment_id)},
                )
                continue

            result.succeeded += 1
            result.deleted_versions += outcome.deleted_count

        if result.failed:
            self.metrics.record_failure(result.last_error or "", processed=result.processed)
        else:
            self.metrics.record_success(result.processed)

        logger.info(
            f"Retention batch complete: {result.succeeded}/{result.processed} succeeded, "
            f"{result.deleted_versions} version(s) purged",
            extra=result.model_dump(),
        )
        return result
