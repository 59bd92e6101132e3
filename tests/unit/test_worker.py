"""Unit tests for the scheduled retention task."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from attachvault.models.contracts.retention import RetentionBatchResult
from attachvault.worker import WorkerSettings, _retention_cron_jobs, enforce_retention_task


@pytest.fixture
def mock_enforcer():
    enforcer = MagicMock()
    enforcer.enforce_all = AsyncMock(
        return_value=RetentionBatchResult(processed=2, succeeded=2, deleted_versions=3)
    )
    return enforcer


@pytest.mark.unit
class TestEnforceRetentionTask:
    """Tests for enforce_retention_task()."""

    @pytest.mark.asyncio
    async def test_first_run_is_full_sweep(self, mock_enforcer):
        ctx = {"retention_enforcer": mock_enforcer}

        result = await enforce_retention_task(ctx)

        assert mock_enforcer.enforce_all.call_args.kwargs["touched_since"] is None
        assert result["processed"] == 2
        assert result["deleted_versions"] == 3
        assert ctx["retention_runs"] == 1
        assert ctx["retention_last_started"] is not None

    @pytest.mark.asyncio
    async def test_later_runs_are_incremental(self, mock_enforcer):
        ctx = {"retention_enforcer": mock_enforcer}

        await enforce_retention_task(ctx)
        first_started = ctx["retention_last_started"]
        await enforce_retention_task(ctx)

        assert mock_enforcer.enforce_all.call_args.kwargs["touched_since"] == first_started
        assert ctx["retention_runs"] == 2

    @pytest.mark.asyncio
    async def test_periodic_full_sweep(self, mock_enforcer, monkeypatch):
        from attachvault.config import clear_settings_cache

        monkeypatch.setenv("ATTACHVAULT_RETENTION_FULL_SWEEP_EVERY", "2")
        clear_settings_cache()
        ctx = {"retention_enforcer": mock_enforcer}

        await enforce_retention_task(ctx)  # run 0: full
        await enforce_retention_task(ctx)  # run 1: incremental
        assert mock_enforcer.enforce_all.call_args.kwargs["touched_since"] is not None
        await enforce_retention_task(ctx)  # run 2: full
        assert mock_enforcer.enforce_all.call_args.kwargs["touched_since"] is None

    @pytest.mark.asyncio
    async def test_batch_errors_propagate(self, mock_enforcer):
        mock_enforcer.enforce_all = AsyncMock(side_effect=RuntimeError("db down"))
        ctx = {"retention_enforcer": mock_enforcer}

        with pytest.raises(RuntimeError):
            await enforce_retention_task(ctx)
        assert "retention_last_started" not in ctx


@pytest.mark.unit
class TestWorkerSettings:
    def test_task_registered(self):
        assert enforce_retention_task in WorkerSettings.functions

    def test_no_schedule_under_testing(self):
        assert WorkerSettings.cron_jobs == []
        assert _retention_cron_jobs() == []

    def test_schedule_outside_testing(self, monkeypatch):
        from attachvault.config import clear_settings_cache

        monkeypatch.setenv("ATTACHVAULT_ENVIRONMENT", "production")
        monkeypatch.setenv("ATTACHVAULT_RETENTION_INTERVAL_MINUTES", "15")
        clear_settings_cache()

        jobs = _retention_cron_jobs()

        assert len(jobs) == 1
        assert jobs[0].minute == {0, 15, 30, 45}
