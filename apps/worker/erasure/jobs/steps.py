"""Deletion step pipeline.

A plan is an ordered tuple of steps. The runner folds over it, reporting
progress before each step and accumulating counts and errors into a
DeletionSummary. Step failures never propagate: they become summary entries
and the next step runs.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from erasure.core.structured_logging import build_log_context

logger = logging.getLogger(__name__)


@dataclass
class DeletionSummary:
    """Write-once result of a delete job (persisted as DeleteJob.summary)."""

    deleted_tables: dict[str, int] = field(default_factory=dict)
    total_deleted: int = 0
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_error(cls, message: str) -> "DeletionSummary":
        return cls(errors=[message])

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    @property
    def error_message(self) -> str | None:
        return "; ".join(self.errors) if self.errors else None

    def record(self, resource: str, count: int) -> None:
        self.deleted_tables[resource] = self.deleted_tables.get(resource, 0) + count
        self.total_deleted += count

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "deletedTables": dict(self.deleted_tables),
            "totalDeleted": self.total_deleted,
            "errors": list(self.errors),
        }


@dataclass
class StepContext:
    """What a step can see while it runs."""

    db: Session
    job: Any  # DeleteJob
    summary: DeletionSummary
    now: datetime
    # Users whose membership in the wiped tenant was removed (orphan candidates)
    released_user_ids: list[UUID] = field(default_factory=list)


StepResult = int | Mapping[str, int]


@dataclass(frozen=True)
class DeletionStep:
    """One resource-scoped operation. run() returns a row count, or counts per resource."""

    resource: str
    label: str
    run: Callable[[StepContext], StepResult]


@dataclass(frozen=True)
class DeletionPlan:
    name: str
    steps: tuple[DeletionStep, ...]
    requires_tenant: bool = False

    @property
    def total_steps(self) -> int:
        return len(self.steps)


ProgressReporter = Callable[[str, int], None]


def step_progress(index: int, total: int) -> int:
    """Percentage for the index-th step (1-based), rounded half up."""
    if total <= 0:
        return 100
    return min(100, math.floor(index * 100 / total + 0.5))


def failure_message(resource: str, exc: BaseException) -> str:
    return f"Failed to delete from {resource}: {exc}"


def run_plan(
    ctx: StepContext,
    plan: DeletionPlan,
    report_progress: ProgressReporter,
) -> DeletionSummary:
    """Run every step of the plan in order and return the accumulated summary."""
    total = plan.total_steps
    for index, step in enumerate(plan.steps, start=1):
        report_progress(step.label, step_progress(index, total))

        try:
            result = step.run(ctx)
            ctx.db.commit()
        except Exception as exc:
            ctx.db.rollback()
            message = failure_message(step.resource, exc)
            ctx.summary.record_error(message)
            logger.error(
                "Delete step failed: %s",
                message,
                extra=build_log_context(job_id=str(ctx.job.id), target_type=ctx.job.target_type),
            )
            continue

        if isinstance(result, Mapping):
            for resource, count in result.items():
                ctx.summary.record(resource, count)
        else:
            ctx.summary.record(step.resource, result)

    return ctx.summary
