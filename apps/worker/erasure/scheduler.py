"""Delete job scheduler.

Polls the delete_jobs table, claims the oldest queued job and runs it to
completion before looking again. One job in flight per scheduler; steps run
sequentially. tick() is synchronous so tests can drive it directly; the
polling loop runs each tick in a worker thread.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from erasure.core.gcp_monitoring import report_exception
from erasure.core.structured_logging import build_log_context
from erasure.db.models import DeleteJob
from erasure.jobs.executor import execute_delete_job
from erasure.jobs.steps import DeletionSummary
from erasure.services import delete_job_service
from erasure.services.audit_outbox import AuditOutbox

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]
Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[Any]]


class DeleteJobScheduler:
    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        poll_interval: float = 10,
        clock: Clock = delete_job_service.utcnow,
        outbox: AuditOutbox | None = None,
        stale_after: timedelta | None = None,
        sleep: Sleep = asyncio.sleep,
        error_reporter: Any | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.poll_interval = poll_interval
        self._clock = clock
        self.outbox = outbox if outbox is not None else AuditOutbox()
        self._stale_after = stale_after
        self._sleep = sleep
        self._error_reporter = error_reporter
        self._task: asyncio.Task | None = None
        self._in_flight: asyncio.Future | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # -------------------------------------------------------------------------
    # One tick
    # -------------------------------------------------------------------------

    def tick(self) -> UUID | None:
        """
        Claim and process at most one queued job.

        Returns the id of the job that was processed, or None. Never raises.
        """
        with self._session_factory() as db:
            try:
                self._fail_stale_jobs(db)
                job = self._claim_next(db)
            except Exception:
                db.rollback()
                logger.exception("Delete job scheduler could not claim a job")
                return None

            if job is None:
                return None
            job_id = job.id
            self._process(db, job)
            return job_id

    def _fail_stale_jobs(self, db: Session) -> None:
        if not self._stale_after:
            return
        now = self._clock()
        for job in delete_job_service.fail_stale_jobs(db, now - self._stale_after, now):
            self.outbox.emit(delete_job_service.build_audit_event(job))

    def _claim_next(self, db: Session) -> DeleteJob | None:
        job = delete_job_service.get_oldest_queued_job(db)
        if job is None:
            return None
        if not delete_job_service.claim_job(db, job.id, now=self._clock()):
            logger.info("Delete job %s was claimed elsewhere; skipping", job.id)
            return None
        db.refresh(job)
        return job

    def _process(self, db: Session, job: DeleteJob) -> None:
        job_id = job.id
        log_context = build_log_context(
            job_id=str(job_id),
            tenant_id=str(job.tenant_id) if job.tenant_id else None,
            target_type=job.target_type,
            mode=job.mode,
        )
        logger.info(
            "Processing delete job %s (%s: %s)",
            job_id,
            job.target_type,
            job.target_id,
            extra=log_context,
        )

        summary = DeletionSummary()
        try:
            execute_delete_job(db, job, self._clock, summary)
        except Exception as exc:
            db.rollback()
            logger.exception("Delete job %s aborted", job_id, extra=log_context)
            report_exception(self._error_reporter, job_id=str(job_id))
            # Keep counts of the steps that committed before the abort
            summary.record_error(str(exc))

        try:
            finalized = delete_job_service.finalize_job(db, job_id, summary, now=self._clock())
        except Exception:
            db.rollback()
            logger.exception(
                "Could not persist result of delete job %s; it stays running", job_id,
                extra=log_context,
            )
            return

        if not finalized:
            logger.warning("Delete job %s was no longer running at finalize", job_id)
            return

        db.refresh(job)
        logger.info(
            "Delete job %s %s: %d rows deleted, %d errors",
            job_id,
            job.status,
            summary.total_deleted,
            len(summary.errors),
            extra={**log_context, "status": job.status},
        )
        self.outbox.emit(delete_job_service.build_audit_event(job))

    def drain_audit(self) -> int:
        return self.outbox.drain(self._session_factory)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def _in_thread(self, func: Callable[[], Any]) -> Any:
        # Cancelling the loop must not abandon a tick mid-job: the thread keeps
        # running, so stop() awaits the same future.
        self._in_flight = asyncio.ensure_future(asyncio.to_thread(func))
        return await asyncio.shield(self._in_flight)

    async def run_forever(self) -> None:
        """Poll until cancelled."""
        logger.info("Delete job scheduler starting (poll interval: %ss)", self.poll_interval)
        while True:
            try:
                await self._in_thread(self.tick)
                await self._in_thread(self.drain_audit)
            except Exception:
                logger.exception("Error in delete job scheduler loop")
            await self._sleep(self.poll_interval)

    def start(self) -> None:
        if self.running:
            logger.info("Delete job scheduler already running")
            return
        self._task = asyncio.create_task(self.run_forever(), name="delete-job-scheduler")

    async def stop(self) -> None:
        """Stop polling, let the current tick finish, then flush audit events."""
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        in_flight, self._in_flight = self._in_flight, None
        if in_flight is not None and not in_flight.done():
            logger.info("Waiting for the current delete job tick to finish")
            with contextlib.suppress(Exception):
                await in_flight
        logger.info("Delete job scheduler stopped")

        await asyncio.to_thread(self.drain_audit)
