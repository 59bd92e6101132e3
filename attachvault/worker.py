"""
arq Worker Configuration.

Runs retention enforcement on a schedule. Each run only visits
attachments that gained a version since the previous run; every
retention_full_sweep_every runs it sweeps all attachments so that policy
changes and age limits reach untouched attachments too.

Run the worker with:
    arq attachvault.worker.WorkerSettings
"""

import logging
from datetime import UTC, datetime
from typing import Any

from arq import cron
from arq.connections import RedisSettings

from attachvault.config import get_settings

logger = logging.getLogger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    """Build the shared enforcer for this worker process."""
    from attachvault.core.database import init_db
    from attachvault.services.retention_enforcer import RetentionEnforcer

    await init_db()
    ctx["retention_enforcer"] = RetentionEnforcer()
    ctx["retention_runs"] = 0
    ctx["retention_last_started"] = None
    logger.info("Retention worker started")


async def shutdown(ctx: dict[str, Any]) -> None:
    from attachvault.core.database import close_db

    await close_db()
    logger.info("Retention worker stopped")


async def enforce_retention_task(ctx: dict[str, Any]) -> dict[str, Any]:
    """
    Apply retention policies to recently changed attachments.

    Args:
        ctx: arq context (holds the enforcer and run bookkeeping from startup)

    Returns:
        Batch counts, stored by arq as the job result
    """
    from attachvault.services.retention_enforcer import RetentionEnforcer

    settings = get_settings()
    enforcer = ctx.get("retention_enforcer") or RetentionEnforcer()
    runs: int = ctx.get("retention_runs", 0)
    last_started: datetime | None = ctx.get("retention_last_started")

    started = datetime.now(UTC)
    full_sweep = last_started is None or runs % settings.retention_full_sweep_every == 0
    touched_since = None if full_sweep else last_started

    logger.info(
        f"Starting retention run ({'full sweep' if full_sweep else 'incremental'})",
        extra={
            "run": runs,
            "touched_since": touched_since.isoformat() if touched_since else None,
        },
    )

    result = await enforcer.enforce_all(touched_since=touched_since, now=started)

    ctx["retention_runs"] = runs + 1
    ctx["retention_last_started"] = started

    logger.info(
        f"Retention run complete: processed {result.processed}, failed {result.failed}, "
        f"purged {result.deleted_versions} version(s)",
        extra=result.model_dump(),
    )
    return result.model_dump()


def _retention_cron_jobs() -> list[Any]:
    settings = get_settings()
    if not settings.retention_scheduler_enabled:
        return []
    minutes = set(range(0, 60, settings.retention_interval_minutes))
    return [cron(enforce_retention_task, minute=minutes, run_at_startup=False)]


class WorkerSettings:
    """
    arq worker settings.

    Configures the worker's connection to Redis, task functions,
    the retention schedule, and retry behavior.
    """

    functions = [enforce_retention_task]

    # Cron jobs for scheduled tasks (none in the testing environment)
    cron_jobs = _retention_cron_jobs()

    on_startup = startup
    on_shutdown = shutdown

    # Redis connection settings (loaded from environment)
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)

    # One batch at a time; batches already isolate per-attachment failures
    max_jobs = 1

    # Full sweeps over large tables can take a while
    job_timeout = 1800

    # A failed batch is picked up by the next scheduled run
    retry_jobs = False
