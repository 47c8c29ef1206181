"""Run the deletion plan for one claimed job."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from erasure.core.structured_logging import build_log_context
from erasure.db.models import DeleteJob
from erasure.jobs.registry import PlanResolutionError, resolve_plan
from erasure.jobs.steps import DeletionSummary, StepContext, run_plan
from erasure.services import delete_job_service

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def execute_delete_job(
    db: Session,
    job: DeleteJob,
    clock: Clock,
    summary: DeletionSummary | None = None,
) -> DeletionSummary:
    """
    Resolve the job's plan and run it, persisting progress before each step.

    Step errors come back inside the summary. PlanResolutionError is raised
    before any step runs. When the caller passes its own summary, counts of
    steps committed before an unexpected exception remain readable on it.
    """
    plan = resolve_plan(job.target_type, job.mode)
    if plan.requires_tenant and job.tenant_id is None:
        raise PlanResolutionError("No tenant ID specified for user delete")

    logger.info(
        "Running %s plan (%d steps) for delete job %s",
        plan.name,
        plan.total_steps,
        job.id,
        extra=build_log_context(
            job_id=str(job.id),
            tenant_id=str(job.tenant_id) if job.tenant_id else None,
            target_type=job.target_type,
            mode=job.mode,
        ),
    )

    def report_progress(label: str, progress: int) -> None:
        delete_job_service.update_progress(db, job, label, progress, now=clock())

    if summary is None:
        summary = DeletionSummary()
    ctx = StepContext(db=db, job=job, summary=summary, now=clock())
    return run_plan(ctx, plan, report_progress)
