"""
Per-attachment exclusion.

Version number assignment and retention purges are read-compute-write
sequences on one attachment's chain, so they run one at a time per
attachment. Different attachments never contend.

This lock only covers a single process. Across processes the row lock
taken by VersionStore (SELECT ... FOR UPDATE) and the unique
(attachment_id, version_number) constraint provide the guarantee.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import UUID


class AttachmentLocks:
    """Registry of asyncio locks keyed by attachment id."""

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._users: dict[UUID, int] = {}

    def is_held(self, attachment_id: UUID) -> bool:
        """Check whether some task currently holds the attachment's lock."""
        lock = self._locks.get(attachment_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, attachment_id: UUID) -> AsyncGenerator[None, None]:
        """
        Hold the exclusive lock for one attachment.

        Not reentrant: code running under hold() must call the *_locked
        variants of store and enforcer operations.
        """
        lock = self._locks.setdefault(attachment_id, asyncio.Lock())
        self._users[attachment_id] = self._users.get(attachment_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[attachment_id] -= 1
            if self._users[attachment_id] == 0:
                # nobody holds or waits; drop it so the registry stays bounded
                del self._users[attachment_id]
                del self._locks[attachment_id]

    def __len__(self) -> int:
        return len(self._locks)


_attachment_locks: AttachmentLocks | None = None


def get_attachment_locks() -> AttachmentLocks:
    """Get the process-wide lock registry."""
    global _attachment_locks
    if _attachment_locks is None:
        _attachment_locks = AttachmentLocks()
    return _attachment_locks


def reset_attachment_locks() -> None:
    """Reset the lock registry (for testing)."""
    global _attachment_locks
    _attachment_locks = None
