"""Resource store - scoped row removal for delete jobs.

Each function runs one statement against the caller's session and returns the
number of rows affected. Nothing here commits: the step runner commits after
each step so every step is its own transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from erasure.db.base import Base
from erasure.db.enums import DeleteMode, TargetType, TenantStatus
from erasure.db.models import (
    AuditLog,
    Booking,
    Customer,
    Invoice,
    Payment,
    Project,
    RefreshToken,
    Service,
    Staff,
    Tenant,
    Timesheet,
    User,
    UserTenant,
)

ANONYMIZED_EMAIL_DOMAIN = "deleted.local"
ANONYMIZED_FIRST_NAME = "Deleted"
ANONYMIZED_LAST_NAME = "User"

# Wipe order for a tenant. Later tables may be referenced by earlier ones
# (bookings -> customers/services/staff, invoices -> customers), never the reverse.
TENANT_WIPE_RESOURCES: tuple[str, ...] = (
    "bookings",
    "invoices",
    "payments",
    "services",
    "customers",
    "staff",
    "projects",
    "timesheets",
    "audit_logs",
    "refresh_tokens",
)

# Tables a user authors inside a tenant (removed by a user hard delete)
USER_OWNED_RESOURCES: tuple[str, ...] = (
    "bookings",
    "invoices",
    "services",
    "customers",
    "projects",
    "staff",
)

TENANT_SCOPED_MODELS: Mapping[str, type[Base]] = {
    "bookings": Booking,
    "invoices": Invoice,
    "payments": Payment,
    "services": Service,
    "customers": Customer,
    "staff": Staff,
    "projects": Project,
    "timesheets": Timesheet,
    "audit_logs": AuditLog,
    "refresh_tokens": RefreshToken,
    "user_tenants": UserTenant,
}

USER_OWNED_MODELS: Mapping[str, type[Base]] = {
    resource: TENANT_SCOPED_MODELS[resource] for resource in USER_OWNED_RESOURCES
}


def _model_for(resource: str, models: Mapping[str, type[Base]]) -> type[Base]:
    model = models.get(resource)
    if model is None:
        raise KeyError(f"Unknown resource: {resource}")
    return model


def _tenant_rows(db: Session, resource: str, tenant_id: UUID):
    model = _model_for(resource, TENANT_SCOPED_MODELS)
    return db.query(model).filter(model.tenant_id == tenant_id)


def _user_rows(db: Session, resource: str, tenant_id: UUID, user_id: UUID):
    model = _model_for(resource, USER_OWNED_MODELS)
    return db.query(model).filter(
        model.tenant_id == tenant_id,
        model.created_by_user_id == user_id,
    )


# =============================================================================
# Tenant scope
# =============================================================================


def delete_tenant_rows(db: Session, resource: str, tenant_id: UUID) -> int:
    """Delete every row of a tenant-scoped resource."""
    return _tenant_rows(db, resource, tenant_id).delete(synchronize_session=False)


def delete_tenant_memberships(db: Session, tenant_id: UUID) -> list[UUID]:
    """Delete all membership links of a tenant; return the affected user ids."""
    user_ids = list(
        db.scalars(select(UserTenant.user_id).where(UserTenant.tenant_id == tenant_id))
    )
    if user_ids:
        db.query(UserTenant).filter(UserTenant.tenant_id == tenant_id).delete(
            synchronize_session=False
        )
    return user_ids


def delete_orphan_users(db: Session, user_ids: list[UUID]) -> int:
    """Delete the given users that no longer belong to any tenant."""
    if not user_ids:
        return 0
    still_member = select(UserTenant.user_id).where(UserTenant.user_id.in_(user_ids))
    return (
        db.query(User)
        .filter(User.id.in_(user_ids), User.id.not_in(still_member))
        .delete(synchronize_session=False)
    )


def hard_delete_tenant(db: Session, tenant_id: UUID) -> int:
    """Physically remove the tenant row. Raises if anything still references it."""
    return db.query(Tenant).filter(Tenant.id == tenant_id).delete(synchronize_session=False)


def soft_delete_tenant(db: Session, tenant_id: UUID, now: datetime) -> int:
    """Mark the tenant deleted in place (fallback when the hard delete fails)."""
    updated = (
        db.query(Tenant)
        .filter(Tenant.id == tenant_id)
        .update(
            {
                Tenant.deleted_at: now,
                Tenant.status: TenantStatus.DELETED.value,
                Tenant.is_active: False,
            },
            synchronize_session=False,
        )
    )
    if not updated:
        raise LookupError(f"Tenant {tenant_id} not found")
    return updated


# =============================================================================
# User scope (within one tenant)
# =============================================================================


def delete_user_rows(db: Session, resource: str, tenant_id: UUID, user_id: UUID) -> int:
    """Delete the rows of a resource that the user created in the tenant."""
    return _user_rows(db, resource, tenant_id, user_id).delete(synchronize_session=False)


def delete_user_refresh_tokens(db: Session, user_id: UUID, tenant_id: UUID) -> int:
    return (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id, RefreshToken.tenant_id == tenant_id)
        .delete(synchronize_session=False)
    )


def delete_membership(db: Session, user_id: UUID, tenant_id: UUID) -> int:
    return (
        db.query(UserTenant)
        .filter(UserTenant.user_id == user_id, UserTenant.tenant_id == tenant_id)
        .delete(synchronize_session=False)
    )


def deactivate_membership(db: Session, user_id: UUID, tenant_id: UUID) -> int:
    """Deactivate the membership link. Raises LookupError if there is none."""
    updated = (
        db.query(UserTenant)
        .filter(UserTenant.user_id == user_id, UserTenant.tenant_id == tenant_id)
        .update({UserTenant.is_active: False}, synchronize_session=False)
    )
    if not updated:
        raise LookupError(f"No membership for user {user_id} in tenant {tenant_id}")
    return updated


def mark_user_deleted(db: Session, user_id: UUID, now: datetime) -> int:
    updated = (
        db.query(User)
        .filter(User.id == user_id)
        .update({User.deleted_at: now}, synchronize_session=False)
    )
    if not updated:
        raise LookupError(f"User {user_id} not found")
    return updated


def anonymized_email(user_id: UUID) -> str:
    return f"anonymized_{str(user_id)[:8]}@{ANONYMIZED_EMAIL_DOMAIN}"


def anonymize_user(db: Session, user_id: UUID, now: datetime) -> int:
    """Overwrite the user's PII with placeholders and flag the account deleted."""
    updated = (
        db.query(User)
        .filter(User.id == user_id)
        .update(
            {
                User.email: anonymized_email(user_id),
                User.first_name: ANONYMIZED_FIRST_NAME,
                User.last_name: ANONYMIZED_LAST_NAME,
                User.deleted_at: now,
            },
            synchronize_session=False,
        )
    )
    if not updated:
        raise LookupError(f"User {user_id} not found")
    return updated


# =============================================================================
# Preview
# =============================================================================


def preview_deletion(
    db: Session,
    target_type: TargetType,
    target_id: UUID,
    tenant_id: UUID | None = None,
    mode: DeleteMode | None = None,
) -> dict[str, int]:
    """
    Count the rows a delete job would touch, without deleting anything.

    Shown to the operator before confirming a destructive job.
    """
    if target_type == TargetType.TENANT:
        counts = {
            resource: _tenant_rows(db, resource, target_id).count()
            for resource in TENANT_WIPE_RESOURCES
        }
        counts["user_tenants"] = _tenant_rows(db, "user_tenants", target_id).count()
        return counts

    if tenant_id is None:
        raise ValueError("tenant_id is required for a user preview")

    membership = (
        db.query(UserTenant)
        .filter(UserTenant.user_id == target_id, UserTenant.tenant_id == tenant_id)
        .count()
    )
    if mode != DeleteMode.HARD_DELETE:
        return {"user_tenants": membership}

    counts = {
        resource: _user_rows(db, resource, tenant_id, target_id).count()
        for resource in USER_OWNED_RESOURCES
    }
    counts["refresh_tokens"] = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == target_id, RefreshToken.tenant_id == tenant_id)
        .count()
    )
    counts["user_tenants"] = membership
    return counts
