"""Delete job service - enqueueing, status reads and state transitions."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from erasure.db.enums import AuditAction, DeleteJobStatus, DeleteMode, TargetType
from erasure.db.models import DeleteJob
from erasure.jobs.steps import DeletionSummary
from erasure.services.audit_outbox import AuditEvent

logger = logging.getLogger(__name__)

STARTING_STEP = "Starting..."
DONE_STEP = "Done"
DONE_WITH_ERRORS_STEP = "Completed with errors"
STALE_JOB_ERROR = "Delete job stalled: no progress since {heartbeat}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Enqueue (calling layer)
# =============================================================================


def enqueue_delete_job(
    db: Session,
    target_type: TargetType,
    target_id: UUID,
    requested_by: UUID,
    reason: str,
    tenant_id: UUID | None = None,
    mode: DeleteMode | None = None,
    queued_at: datetime | None = None,
) -> DeleteJob:
    """
    Queue a destructive job.

    The caller has already confirmed and authorized the request. Tenant jobs
    are scoped to themselves; user jobs must name the tenant and a mode.
    """
    if target_type == TargetType.TENANT:
        tenant_id = tenant_id or target_id
        mode = None
    elif tenant_id is None:
        raise ValueError("tenant_id is required for user delete jobs")
    elif mode is None:
        raise ValueError("mode is required for user delete jobs")

    job = DeleteJob(
        target_type=target_type.value,
        target_id=target_id,
        tenant_id=tenant_id,
        mode=mode.value if mode else None,
        status=DeleteJobStatus.QUEUED.value,
        progress=0,
        requested_by=requested_by,
        reason=reason,
        queued_at=queued_at or utcnow(),
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def enqueue_tenant_wipes(
    db: Session,
    tenant_ids: Iterable[UUID],
    requested_by: UUID,
    reason: str,
    queued_at: datetime | None = None,
) -> list[DeleteJob]:
    """Queue one wipe per tenant; input order is preserved in queued_at."""
    base = queued_at or utcnow()
    jobs = []
    for offset, tenant_id in enumerate(tenant_ids):
        jobs.append(
            enqueue_delete_job(
                db,
                target_type=TargetType.TENANT,
                target_id=tenant_id,
                requested_by=requested_by,
                reason=reason,
                queued_at=base + timedelta(microseconds=offset),
            )
        )
    return jobs


def cancel_job(db: Session, job_id: UUID, now: datetime | None = None) -> bool:
    """Cancel a job that has not started. Returns False in any other state."""
    updated = (
        db.query(DeleteJob)
        .filter(DeleteJob.id == job_id, DeleteJob.status == DeleteJobStatus.QUEUED.value)
        .update(
            {
                DeleteJob.status: DeleteJobStatus.CANCELLED.value,
                DeleteJob.completed_at: now or utcnow(),
                DeleteJob.summary: DeletionSummary().to_dict(),
                DeleteJob.error_message: None,
                DeleteJob.current_step: None,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return updated == 1


# =============================================================================
# Status reads
# =============================================================================


def get_delete_job(db: Session, job_id: UUID) -> DeleteJob | None:
    return db.query(DeleteJob).filter(DeleteJob.id == job_id).first()


def list_delete_jobs(
    db: Session,
    status: DeleteJobStatus | None = None,
    tenant_id: UUID | None = None,
    limit: int = 50,
) -> list[DeleteJob]:
    """List jobs, newest first, with optional filters."""
    query = db.query(DeleteJob)
    if status:
        query = query.filter(DeleteJob.status == status.value)
    if tenant_id:
        query = query.filter(DeleteJob.tenant_id == tenant_id)
    return query.order_by(DeleteJob.queued_at.desc()).limit(limit).all()


def get_oldest_queued_job(db: Session) -> DeleteJob | None:
    """Oldest queued job by queued_at (FIFO)."""
    return (
        db.query(DeleteJob)
        .filter(DeleteJob.status == DeleteJobStatus.QUEUED.value)
        .order_by(DeleteJob.queued_at, DeleteJob.id)
        .first()
    )


# =============================================================================
# Transitions (scheduler)
# =============================================================================


def claim_job(db: Session, job_id: UUID, now: datetime) -> bool:
    """
    Atomically move a job from queued to running.

    Single conditional UPDATE guarded on status, so of two concurrent claims
    exactly one sees a row updated.
    """
    updated = (
        db.query(DeleteJob)
        .filter(DeleteJob.id == job_id, DeleteJob.status == DeleteJobStatus.QUEUED.value)
        .update(
            {
                DeleteJob.status: DeleteJobStatus.RUNNING.value,
                DeleteJob.started_at: now,
                DeleteJob.heartbeat_at: now,
                DeleteJob.current_step: STARTING_STEP,
                DeleteJob.progress: 0,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return updated == 1


def update_progress(
    db: Session, job: DeleteJob, label: str, progress: int, now: datetime
) -> DeleteJob:
    """Persist the current step label and progress (never lowers progress)."""
    job.current_step = label
    job.progress = max(job.progress or 0, progress)
    job.heartbeat_at = now
    db.commit()
    return job


def finalize_job(db: Session, job_id: UUID, summary: DeletionSummary, now: datetime) -> bool:
    """
    Write the terminal status and summary.

    Guarded on status=running, so a terminal job is never rewritten.
    """
    status = DeleteJobStatus.FAILED if summary.failed else DeleteJobStatus.COMPLETED
    updated = (
        db.query(DeleteJob)
        .filter(DeleteJob.id == job_id, DeleteJob.status == DeleteJobStatus.RUNNING.value)
        .update(
            {
                DeleteJob.status: status.value,
                DeleteJob.completed_at: now,
                DeleteJob.heartbeat_at: now,
                DeleteJob.progress: 100,
                DeleteJob.current_step: DONE_WITH_ERRORS_STEP if summary.failed else DONE_STEP,
                DeleteJob.summary: summary.to_dict(),
                DeleteJob.error_message: summary.error_message,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return updated == 1


def fail_stale_jobs(db: Session, stale_before: datetime, now: datetime) -> list[DeleteJob]:
    """
    Fail running jobs whose last heartbeat is older than stale_before.

    A worker that died mid-job leaves its job running forever otherwise. The
    job goes to failed (never back to queued): its partial work is already
    done and re-running is an explicit operator decision.
    """
    candidates = (
        db.query(DeleteJob)
        .filter(
            DeleteJob.status == DeleteJobStatus.RUNNING.value,
            or_(
                DeleteJob.heartbeat_at < stale_before,
                DeleteJob.heartbeat_at.is_(None) & (DeleteJob.started_at < stale_before),
            ),
        )
        .all()
    )

    failed: list[DeleteJob] = []
    for job in candidates:
        heartbeat = job.heartbeat_at or job.started_at
        summary = DeletionSummary.from_error(STALE_JOB_ERROR.format(heartbeat=heartbeat))
        if finalize_job(db, job.id, summary, now):
            db.refresh(job)
            failed.append(job)
            logger.warning("Marked stale delete job %s as failed", job.id)
    return failed


# =============================================================================
# Audit
# =============================================================================


def build_audit_event(job: DeleteJob) -> AuditEvent:
    """Audit event for a job in a terminal state."""
    action = AuditAction.DELETE if job.status == DeleteJobStatus.COMPLETED.value else AuditAction.UPDATE
    return AuditEvent(
        tenant_id=job.tenant_id,
        user_id=job.requested_by,
        action=action.value,
        resource="delete_job",
        resource_id=str(job.id),
        metadata={
            "targetType": job.target_type,
            "targetId": str(job.target_id),
            "mode": job.mode,
            "status": job.status,
            "summary": job.summary,
        },
    )
