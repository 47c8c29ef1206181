"""Deletion plan registry."""

from __future__ import annotations

from typing import Mapping

from erasure.db.enums import DeleteMode, TargetType
from erasure.jobs.plans.tenant_wipe import TENANT_WIPE_PLAN
from erasure.jobs.plans.user_delete import ANONYMIZE_PLAN, HARD_DELETE_PLAN, SOFT_DELETE_PLAN
from erasure.jobs.steps import DeletionPlan


class PlanResolutionError(ValueError):
    """The job cannot be mapped to a plan; fatal for the job, no step runs."""


TENANT_PLAN: DeletionPlan = TENANT_WIPE_PLAN

USER_PLANS: Mapping[DeleteMode, DeletionPlan] = {
    DeleteMode.SOFT_DELETE: SOFT_DELETE_PLAN,
    DeleteMode.HARD_DELETE: HARD_DELETE_PLAN,
    DeleteMode.ANONYMIZE: ANONYMIZE_PLAN,
}

_missing_modes = set(DeleteMode) - set(USER_PLANS)
if _missing_modes:
    raise RuntimeError(f"No user plan registered for: {sorted(m.value for m in _missing_modes)}")


def resolve_plan(target_type: str, mode: str | None = None) -> DeletionPlan:
    """Return the plan for a (target type, mode) pair.

    Tenant jobs ignore mode (always a full wipe).
    """
    try:
        target = TargetType(target_type)
    except ValueError:
        raise PlanResolutionError(f"Unknown target type: {target_type}") from None

    if target is TargetType.TENANT:
        return TENANT_PLAN

    try:
        delete_mode = DeleteMode(mode)
    except ValueError:
        raise PlanResolutionError(f"Unknown delete mode for user job: {mode}") from None
    return USER_PLANS[delete_mode]
