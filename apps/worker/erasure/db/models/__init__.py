"""SQLAlchemy ORM models."""

from erasure.db.models.audit import AuditLog
from erasure.db.models.business import (
    Booking,
    Customer,
    Invoice,
    Payment,
    Project,
    Service,
    Staff,
    Timesheet,
)
from erasure.db.models.delete_jobs import DeleteJob
from erasure.db.models.tenants import RefreshToken, Tenant, User, UserTenant

__all__ = [
    "AuditLog",
    "Booking",
    "Customer",
    "DeleteJob",
    "Invoice",
    "Payment",
    "Project",
    "RefreshToken",
    "Service",
    "Staff",
    "Tenant",
    "Timesheet",
    "User",
    "UserTenant",
]
