"""Tenant wipe plan: every tenant-scoped table, then orphans and the tenant."""

from __future__ import annotations

from erasure.jobs.orphans import remove_orphans_and_tenant
from erasure.jobs.steps import DeletionPlan, DeletionStep, StepContext
from erasure.services import resource_store


def _delete_resource(resource: str):
    def run(ctx: StepContext) -> int:
        return resource_store.delete_tenant_rows(ctx.db, resource, ctx.job.target_id)

    return run


def _delete_memberships(ctx: StepContext) -> int:
    user_ids = resource_store.delete_tenant_memberships(ctx.db, ctx.job.target_id)
    ctx.released_user_ids.extend(user_ids)
    return len(user_ids)


def _label(resource: str) -> str:
    name = "audit log entries" if resource == "audit_logs" else resource.replace("_", " ")
    return f"Deleting {name}..."


TENANT_WIPE_PLAN = DeletionPlan(
    name="tenant_wipe",
    steps=(
        *(
            DeletionStep(resource, _label(resource), _delete_resource(resource))
            for resource in resource_store.TENANT_WIPE_RESOURCES
        ),
        DeletionStep("user_tenants", "Deleting tenant memberships...", _delete_memberships),
        DeletionStep("tenant", "Removing tenant...", remove_orphans_and_tenant),
    ),
)
