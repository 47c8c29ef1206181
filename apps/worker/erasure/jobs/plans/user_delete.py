"""User delete plans: soft delete, hard delete and anonymize within one tenant."""

from __future__ import annotations

from erasure.jobs.steps import DeletionPlan, DeletionStep, StepContext, failure_message
from erasure.services import resource_store


def _deactivate_membership(ctx: StepContext) -> None:
    """Deactivate the membership link; a missing link is an error, not a rollback."""
    job = ctx.job
    try:
        resource_store.deactivate_membership(ctx.db, job.target_id, job.tenant_id)
    except LookupError as exc:
        ctx.summary.record_error(failure_message("user_tenants", exc))


def _soft_delete(ctx: StepContext) -> int:
    resource_store.mark_user_deleted(ctx.db, ctx.job.target_id, ctx.now)
    _deactivate_membership(ctx)
    return 1


def _anonymize(ctx: StepContext) -> int:
    resource_store.anonymize_user(ctx.db, ctx.job.target_id, ctx.now)
    _deactivate_membership(ctx)
    return 1


def _delete_owned(resource: str):
    def run(ctx: StepContext) -> int:
        job = ctx.job
        return resource_store.delete_user_rows(ctx.db, resource, job.tenant_id, job.target_id)

    return run


def _delete_refresh_tokens(ctx: StepContext) -> int:
    return resource_store.delete_user_refresh_tokens(ctx.db, ctx.job.target_id, ctx.job.tenant_id)


def _delete_membership(ctx: StepContext) -> int:
    return resource_store.delete_membership(ctx.db, ctx.job.target_id, ctx.job.tenant_id)


SOFT_DELETE_PLAN = DeletionPlan(
    name="user_soft_delete",
    steps=(DeletionStep("user_deactivated", "Deactivating user...", _soft_delete),),
    requires_tenant=True,
)

# The global user record is kept: the user may still belong to other tenants.
HARD_DELETE_PLAN = DeletionPlan(
    name="user_hard_delete",
    steps=(
        *(
            DeletionStep(resource, f"Deleting {resource}...", _delete_owned(resource))
            for resource in resource_store.USER_OWNED_RESOURCES
        ),
        DeletionStep("refresh_tokens", "Revoking refresh tokens...", _delete_refresh_tokens),
        DeletionStep("user_tenants", "Removing tenant membership...", _delete_membership),
    ),
    requires_tenant=True,
)

ANONYMIZE_PLAN = DeletionPlan(
    name="user_anonymize",
    steps=(DeletionStep("user_anonymized", "Anonymizing user...", _anonymize),),
    requires_tenant=True,
)
