"""Closing pass of a tenant wipe: orphaned users, then the tenant itself."""

from __future__ import annotations

import logging

from erasure.jobs.steps import StepContext, failure_message
from erasure.services import resource_store

logger = logging.getLogger(__name__)


def remove_orphans_and_tenant(ctx: StepContext) -> dict[str, int]:
    """
    Delete users left without any tenant membership, then remove the tenant.

    The tenant is hard deleted when possible. If that fails (a row the plan
    does not cover still references it) the failure is recorded and the tenant
    is soft deleted instead. A failing soft delete is recorded as a second error.
    """
    db = ctx.db
    tenant_id = ctx.job.target_id
    counts: dict[str, int] = {}

    try:
        counts["users"] = resource_store.delete_orphan_users(db, ctx.released_user_ids)
        db.commit()
    except Exception as exc:
        db.rollback()
        ctx.summary.record_error(failure_message("users", exc))

    try:
        counts["tenant"] = resource_store.hard_delete_tenant(db, tenant_id)
        db.commit()
        return counts
    except Exception as exc:
        db.rollback()
        ctx.summary.record_error(failure_message("tenant", exc))
        logger.warning("Hard delete of tenant %s failed; falling back to soft delete", tenant_id)

    try:
        resource_store.soft_delete_tenant(db, tenant_id, ctx.now)
        db.commit()
    except Exception as exc:
        db.rollback()
        ctx.summary.record_error(f"Failed to soft-delete tenant {tenant_id}: {exc}")
        logger.error("Soft delete fallback failed for tenant %s", tenant_id)

    return counts
