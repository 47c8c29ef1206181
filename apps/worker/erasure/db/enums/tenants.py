"""Tenant and audit enums."""

from enum import Enum


class TenantStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class AuditAction(str, Enum):
    """Actions recorded in audit_logs."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
