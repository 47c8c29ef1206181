"""Enum definitions for application constants."""

from erasure.db.enums.delete_jobs import DeleteJobStatus, DeleteMode, TargetType
from erasure.db.enums.tenants import AuditAction, TenantStatus

DEFAULT_DELETE_JOB_STATUS = DeleteJobStatus.QUEUED
DEFAULT_TENANT_STATUS = TenantStatus.ACTIVE

__all__ = [
    "AuditAction",
    "DEFAULT_DELETE_JOB_STATUS",
    "DEFAULT_TENANT_STATUS",
    "DeleteJobStatus",
    "DeleteMode",
    "TargetType",
    "TenantStatus",
]
