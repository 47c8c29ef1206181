"""Audit logging service - records outcomes of destructive operations.

Security guidelines:
- NEVER log secrets (tokens, hashes)
- Use IDs instead of raw PII in details
"""

import json
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from erasure.db.models import AuditLog


def canonical_json(obj: dict | None) -> str:
    """
    Serialize object to canonical JSON.

    Uses sorted keys, compact separators, and str() for non-JSON types.
    """
    return json.dumps(obj or {}, sort_keys=True, separators=(",", ":"), default=str)


def log_event(
    db: Session,
    tenant_id: UUID | None,
    user_id: UUID | None,
    action: str,
    resource: str,
    resource_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Append an audit entry.

    Args:
        db: Database session (caller commits)
        tenant_id: Tenant scope (may reference a tenant that no longer exists)
        user_id: Actor who requested the operation
        action: create / update / delete
        resource: Type of entity affected (e.g. 'delete_job')
        resource_id: ID of the affected entity
        metadata: Additional context (must not contain raw PII)
    """
    entry = AuditLog(
        tenant_id=tenant_id,
        user_id=user_id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        # Round-trip through JSON so UUIDs/datetimes are stored as strings
        details=json.loads(canonical_json(metadata)) if metadata is not None else None,
    )
    db.add(entry)
    db.flush()
    return entry
