"""
Pytest fixtures for attachvault testing infrastructure.

This module provides:
1. Database fixtures (SQLite file database per test via aiosqlite)
2. An in-memory content backend with failure injection
3. Service wiring and common container fixtures
"""

import os
import sys
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Set environment variables BEFORE any imports that might load settings
os.environ.setdefault("ATTACHVAULT_ENVIRONMENT", "testing")
os.environ.setdefault("ATTACHVAULT_STORAGE_BACKEND", "local")
os.environ.setdefault("ATTACHVAULT_LOCAL_STORAGE_PATH", "/tmp/attachvault/test-uploads")

from attachvault.config import clear_settings_cache  # noqa: E402
from attachvault.core.database import (  # noqa: E402
    build_engine,
    build_session_factory,
    create_all,
    reset_db_state,
)
from attachvault.core.exceptions import StorageError  # noqa: E402
from attachvault.core.locks import AttachmentLocks, reset_attachment_locks  # noqa: E402
from attachvault.models.orm import FileVersion, Project, Task, Team  # noqa: E402
from attachvault.services.attachment_service import AttachmentService  # noqa: E402
from attachvault.services.content_storage import (  # noqa: E402
    ContentBackend,
    reset_content_backend,
)
from attachvault.services.retention_enforcer import RetentionEnforcer  # noqa: E402
from attachvault.services.retention_metrics import (  # noqa: E402
    RetentionMetrics,
    reset_retention_metrics,
)
from attachvault.services.version_store import VersionStore  # noqa: E402


class InMemoryContentBackend(ContentBackend):
    """Content backend keeping bytes in a dict, with switchable failures."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.fail_put = False
        self.fail_get = False
        self.fail_delete = False
        self.deleted: list[str] = []

    async def put(self, key: str, content: bytes, content_type: str) -> None:
        if self.fail_put:
            raise StorageError("storage unavailable", key=key)
        self.objects[key] = content

    async def get(self, key: str) -> bytes:
        if self.fail_get:
            raise StorageError("storage unavailable", key=key)
        if key not in self.objects:
            raise StorageError("no such key", key=key)
        return self.objects[key]

    async def delete(self, key: str) -> None:
        if self.fail_delete:
            raise StorageError("storage unavailable", key=key)
        self.objects.pop(key, None)
        self.deleted.append(key)


# ==================== SESSION FIXTURES ====================


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset settings and process-wide singletons around each test."""
    clear_settings_cache()
    reset_db_state()
    reset_content_backend()
    reset_attachment_locks()
    reset_retention_metrics()
    yield
    clear_settings_cache()
    reset_db_state()
    reset_content_backend()
    reset_attachment_locks()
    reset_retention_metrics()


# ==================== DATABASE FIXTURES ====================


@pytest_asyncio.fixture
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh SQLite database with the full schema.

    Uses NullPool so each session gets its own connection, like separate
    workers sharing one database.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'attachvault.db'}"
    engine = build_engine(url, poolclass=NullPool)
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(async_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for setup and assertions."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ==================== SERVICE FIXTURES ====================


@pytest.fixture
def content_backend() -> InMemoryContentBackend:
    return InMemoryContentBackend()


@pytest.fixture
def locks() -> AttachmentLocks:
    return AttachmentLocks()


@pytest.fixture
def metrics() -> RetentionMetrics:
    return RetentionMetrics()


@pytest.fixture
def enforcer(session_factory, content_backend, locks, metrics) -> RetentionEnforcer:
    return RetentionEnforcer(
        session_factory, content_backend=content_backend, locks=locks, metrics=metrics
    )


@pytest.fixture
def version_store(session_factory, enforcer, locks) -> VersionStore:
    return VersionStore(session_factory, enforcer=enforcer, locks=locks)


@pytest.fixture
def attachment_service(version_store, content_backend) -> AttachmentService:
    return AttachmentService(version_store, content_backend, max_upload_bytes=1024)


# ==================== TEST DATA FIXTURES ====================


@pytest_asyncio.fixture
async def team(db_session) -> Team:
    team = Team(name="Platform")
    db_session.add(team)
    await db_session.commit()
    return team


@pytest_asyncio.fixture
async def project(db_session, team) -> Project:
    project = Project(name="Launch", team_id=team.id)
    db_session.add(project)
    await db_session.commit()
    return project


@pytest_asyncio.fixture
async def task(db_session, project) -> Task:
    task = Task(title="Write release notes", project_id=project.id)
    db_session.add(task)
    await db_session.commit()
    return task


@pytest.fixture
def backdate(session_factory):
    """Move a version's created_at back by a number of days."""

    async def _backdate(
        attachment_id: UUID, version_number: int, days: float, now: datetime | None = None
    ) -> None:
        now = now or datetime.now(UTC)
        async with session_factory() as session, session.begin():
            await session.execute(
                update(FileVersion)
                .where(
                    FileVersion.attachment_id == attachment_id,
                    FileVersion.version_number == version_number,
                )
                .values(created_at=now - timedelta(days=days))
            )

    return _backdate


# ==================== MARKERS ====================


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, mocked dependencies)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (SQLite database, in-memory storage)"
    )
