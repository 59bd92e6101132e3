"""
Retention batch run status.

Process-local bookkeeping of the last scheduled/manual retention batch,
for admin status display.
"""

from datetime import UTC, datetime

from attachvault.config import get_settings
from attachvault.models.contracts.retention import RetentionStatus


class RetentionMetrics:
    """Tracks outcomes of retention batches run in this process."""

    def __init__(self) -> None:
        self.last_run_at: datetime | None = None
        self.last_processed = 0
        self.last_error: str | None = None
        self.total_runs = 0

    def record_success(self, processed: int, when: datetime | None = None) -> None:
        self.last_run_at = when or datetime.now(UTC)
        self.last_processed = processed
        self.last_error = None
        self.total_runs += 1

    def record_failure(
        self, error: str, processed: int = 0, when: datetime | None = None
    ) -> None:
        self.last_run_at = when or datetime.now(UTC)
        self.last_processed = processed
        self.last_error = error
        self.total_runs += 1

    def status(self) -> RetentionStatus:
        settings = get_settings()
        return RetentionStatus(
            last_run_at=self.last_run_at,
            last_processed=self.last_processed,
            last_error=self.last_error,
            total_runs=self.total_runs,
            interval_minutes=settings.retention_interval_minutes,
            scheduler_enabled=settings.retention_scheduler_enabled,
        )


_retention_metrics: RetentionMetrics | None = None


def get_retention_metrics() -> RetentionMetrics:
    """Get the process-wide retention metrics."""
    global _retention_metrics
    if _retention_metrics is None:
        _retention_metrics = RetentionMetrics()
    return _retention_metrics


def reset_retention_metrics() -> None:
    """Reset retention metrics (for testing)."""
    global _retention_metrics
    _retention_metrics = None
