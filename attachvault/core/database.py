"""
Engine and session management.

Services open their own sessions from the shared factory and own the
transaction. PostgreSQL (asyncpg) is the production store; SQLite
(aiosqlite) backs the test suite.
"""

import ssl
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from attachvault.config import Settings, get_settings
from attachvault.models.orm import Base


def _ssl_connect_args(sslmode: str) -> dict:
    if sslmode not in ("require", "verify-ca", "verify-full"):
        return {"ssl": "prefer"} if sslmode == "prefer" else {}

    context = ssl.create_default_context()
    if sslmode != "verify-full":
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE if sslmode == "require" else ssl.CERT_REQUIRED
    return {"ssl": context}


def _prepare_asyncpg_url(url: str) -> tuple[str, dict]:
    """
    Move a libpq-style ``sslmode`` query parameter into asyncpg connect args.

    asyncpg rejects ``sslmode`` in the URL, but hosted PostgreSQL DSNs
    usually carry one.

    Returns:
        Tuple of (URL without sslmode, connect_args)
    """
    parsed = urlparse(url)
    params = parse_qs(parsed.query)
    sslmode = params.pop("sslmode", [None])[0]
    connect_args = _ssl_connect_args(sslmode) if sslmode else {}
    return urlunparse(parsed._replace(query=urlencode(params, doseq=True))), connect_args


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE / SET NULL unless this is on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, *, echo: bool = False, **engine_kwargs: Any) -> AsyncEngine:
    """
    Create an async engine for a PostgreSQL or SQLite URL.

    Args:
        url: Async database URL
        echo: Log emitted SQL
        **engine_kwargs: Extra create_async_engine arguments (pool settings etc.)
    """
    if is_sqlite_url(url):
        engine = create_async_engine(url, echo=echo, **engine_kwargs)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    db_url, connect_args = _prepare_asyncpg_url(url)
    return create_async_engine(
        db_url,
        echo=echo,
        pool_pre_ping=True,
        connect_args=connect_args,
        **engine_kwargs,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by every service; objects stay usable after commit."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Process-wide engine and factory, created lazily from settings
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine

    if _engine is None:
        settings = settings or get_settings()
        pool_kwargs: dict[str, Any] = {}
        if not is_sqlite_url(settings.database_url):
            pool_kwargs = {
                "pool_size": settings.database_pool_size,
                "max_overflow": settings.database_max_overflow,
            }
        _engine = build_engine(settings.database_url, echo=settings.debug, **pool_kwargs)

    return _engine


def get_session_factory(settings: Settings | None = None) -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory bound to get_engine()."""
    global _async_session_factory

    if _async_session_factory is None:
        _async_session_factory = build_session_factory(get_engine(settings))

    return _async_session_factory


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for scripts and one-off jobs: commits on clean exit, rolls
    back and re-raises on error.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Open a connection once so the worker fails fast on a bad DSN."""
    async with get_engine().begin() as conn:
        await conn.run_sync(lambda _: None)


async def create_all(engine: AsyncEngine | None = None) -> None:
    """
    Create all tables from the ORM metadata.

    Deployed schemas come from Alembic; this is for tests and throwaway
    SQLite databases.
    """
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine on worker shutdown."""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_factory = None


def reset_db_state() -> None:
    """Drop the cached engine and factory so they are rebuilt from fresh settings."""
    global _engine, _async_session_factory
    _engine = None
    _async_session_factory = None
