"""
Background worker for destructive delete jobs.

Usage:
    python -m erasure.worker

Polls delete_jobs for queued work and processes one job at a time.
For production, run this as a separate process (e.g., systemd service, Docker container).
"""

import asyncio
import logging
from datetime import timedelta

from erasure.core.config import settings
from erasure.core.gcp_monitoring import configure_logging, report_exception, setup_gcp_monitoring
from erasure.core.structured_logging import build_log_context
from erasure.db.session import SessionLocal
from erasure.scheduler import DeleteJobScheduler
from erasure.services.audit_outbox import AuditOutbox

logger = logging.getLogger(__name__)


def build_scheduler(error_reporter=None) -> DeleteJobScheduler:
    """Scheduler wired to the configured database and settings."""
    stale_after = (
        timedelta(minutes=settings.DELETE_JOB_STALE_AFTER_MINUTES)
        if settings.stale_sweep_enabled
        else None
    )
    return DeleteJobScheduler(
        SessionLocal,
        poll_interval=settings.DELETE_JOB_POLL_INTERVAL_SECONDS,
        outbox=AuditOutbox(max_size=settings.AUDIT_OUTBOX_MAX_SIZE),
        stale_after=stale_after,
        error_reporter=error_reporter,
    )


async def worker_loop(scheduler: DeleteJobScheduler) -> None:
    """Run the scheduler until cancelled, flushing audit events on the way out."""
    scheduler.start()
    try:
        while scheduler.running:
            await asyncio.sleep(1)
    finally:
        await scheduler.stop()


def main() -> None:
    """Entry point for the worker."""
    monitoring = setup_gcp_monitoring(f"{settings.GCP_SERVICE_NAME}-worker")
    configure_logging(monitoring)
    scheduler = build_scheduler(error_reporter=monitoring.error_reporter)
    try:
        asyncio.run(worker_loop(scheduler))
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        report_exception(monitoring.error_reporter)
        logger.exception("Worker crashed", extra=build_log_context(route="worker"))
        raise


if __name__ == "__main__":
    main()
