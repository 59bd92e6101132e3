"""Unit tests for engine/session helpers."""

import ssl

import pytest
from sqlalchemy import select

from attachvault.config import clear_settings_cache
from attachvault.core.database import (
    _prepare_asyncpg_url,
    close_db,
    create_all,
    get_db_context,
    get_engine,
    init_db,
)
from attachvault.models.orm import Team


@pytest.fixture
def sqlite_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("ATTACHVAULT_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/db.sqlite")
    clear_settings_cache()


@pytest.mark.unit
class TestPrepareAsyncpgUrl:
    """Tests for sslmode handling."""

    def test_no_sslmode(self):
        url, connect_args = _prepare_asyncpg_url("postgresql+asyncpg://u:p@db/app")
        assert url == "postgresql+asyncpg://u:p@db/app"
        assert connect_args == {}

    def test_require_strips_param(self):
        url, connect_args = _prepare_asyncpg_url(
            "postgresql+asyncpg://u:p@db/app?sslmode=require&application_name=av"
        )
        assert "sslmode" not in url
        assert "application_name=av" in url
        context = connect_args["ssl"]
        assert isinstance(context, ssl.SSLContext)
        assert context.verify_mode == ssl.CERT_NONE
        assert not context.check_hostname

    def test_verify_full(self):
        _, connect_args = _prepare_asyncpg_url("postgresql+asyncpg://db/app?sslmode=verify-full")
        assert connect_args["ssl"].check_hostname

    def test_prefer(self):
        _, connect_args = _prepare_asyncpg_url("postgresql+asyncpg://db/app?sslmode=prefer")
        assert connect_args == {"ssl": "prefer"}

    def test_disable(self):
        _, connect_args = _prepare_asyncpg_url("postgresql+asyncpg://db/app?sslmode=disable")
        assert connect_args == {}


@pytest.mark.unit
class TestDbContext:
    """Tests for get_db_context() against a throwaway SQLite file."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, sqlite_settings):
        await init_db()
        await create_all()
        try:
            async with get_db_context() as db:
                db.add(Team(name="Ops"))

            async with get_db_context() as db:
                names = (await db.execute(select(Team.name))).scalars().all()
            assert names == ["Ops"]
        finally:
            await close_db()

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, sqlite_settings):
        await create_all()
        try:
            with pytest.raises(RuntimeError):
                async with get_db_context() as db:
                    db.add(Team(name="Ops"))
                    await db.flush()
                    raise RuntimeError("abort")

            async with get_db_context() as db:
                assert (await db.execute(select(Team))).first() is None
        finally:
            await close_db()

    @pytest.mark.asyncio
    async def test_close_resets_engine(self, sqlite_settings):
        engine = get_engine()
        await close_db()
        assert get_engine() is not engine
        await close_db()
