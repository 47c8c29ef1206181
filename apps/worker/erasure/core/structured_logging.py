"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    job_id: str | None = None,
    tenant_id: str | None = None,
    target_type: str | None = None,
    mode: str | None = None,
    status: str | None = None,
    route: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict.

    Only identifiers and enum values belong here; never e-mails or names.
    """
    context: dict[str, Any] = {}
    if job_id:
        context["job_id"] = job_id
    if tenant_id:
        context["tenant_id"] = tenant_id
    if target_type:
        context["target_type"] = target_type
    if mode:
        context["mode"] = mode
    if status:
        context["status"] = status
    if route:
        context["route"] = route
    return context
