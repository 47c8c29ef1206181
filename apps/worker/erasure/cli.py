"""CLI tools for destructive delete jobs.

This is a calling layer: it confirms intent (typed phrase + reason) before
anything is queued. The worker trusts every queued job.
"""

import json
from uuid import UUID

import click
from pydantic import ValidationError

from erasure.core.config import settings
from erasure.db.enums import DeleteJobStatus, DeleteMode, TargetType
from erasure.db.models import Tenant
from erasure.db.session import SessionLocal
from erasure.schemas.delete_job import DeleteJobCreate, DeleteJobListItem, DeleteJobRead
from erasure.services import delete_job_service, resource_store

USER_CONFIRM_PHRASE = "DELETE USER"


def _validate_reason(ctx, param, value: str) -> str:
    value = (value or "").strip()
    if len(value) < settings.DELETE_JOB_MIN_REASON_LENGTH:
        raise click.BadParameter(
            f"must be at least {settings.DELETE_JOB_MIN_REASON_LENGTH} characters"
        )
    return value


def _confirm_phrase(expected: str, skip: bool) -> bool:
    if skip:
        return True
    typed = click.prompt(f"Type '{expected}' to confirm", default="", show_default=False)
    return typed.strip() == expected.strip()


def _echo_counts(counts: dict[str, int]) -> None:
    for resource, count in counts.items():
        click.echo(f"  {resource}: {count}")
    click.echo(f"  total: {sum(counts.values())}")


@click.group()
def cli():
    """Delete job CLI tools."""
    pass


@cli.command()
@click.option("--tenant-id", required=True, type=click.UUID, help="Tenant to wipe")
@click.option("--requested-by", required=True, type=click.UUID, help="Acting admin user id")
@click.option("--reason", required=True, callback=_validate_reason, help="Why this tenant is wiped")
@click.option("--yes", is_flag=True, help="Skip the typed confirmation")
def enqueue_tenant_wipe(tenant_id: UUID, requested_by: UUID, reason: str, yes: bool):
    """
    Queue a full wipe of one tenant.

    Example:
        python -m erasure.cli enqueue-tenant-wipe --tenant-id <uuid> --requested-by <uuid> \\
            --reason "Contract terminated, data removal requested"
    """
    db = SessionLocal()
    try:
        tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
        if not tenant:
            click.echo(f"❌ Tenant {tenant_id} not found")
            raise SystemExit(1)

        click.echo(f"Tenant '{tenant.name}' - rows that will be deleted:")
        _echo_counts(resource_store.preview_deletion(db, TargetType.TENANT, tenant_id))

        if not _confirm_phrase(f"DELETE {tenant.name}", yes):
            click.echo("❌ Confirmation did not match; nothing queued")
            raise SystemExit(1)

        job = delete_job_service.enqueue_delete_job(
            db,
            target_type=TargetType.TENANT,
            target_id=tenant_id,
            requested_by=requested_by,
            reason=reason,
        )
        click.echo(f"✅ Queued tenant wipe job {job.id}")
    finally:
        db.close()


@cli.command()
@click.option("--tenant-id", "tenant_ids", required=True, multiple=True, type=click.UUID)
@click.option("--requested-by", required=True, type=click.UUID)
@click.option("--reason", required=True, callback=_validate_reason)
@click.option("--yes", is_flag=True, help="Skip the typed confirmation")
def enqueue_bulk_wipe(tenant_ids: tuple[UUID, ...], requested_by: UUID, reason: str, yes: bool):
    """Queue wipes for several tenants (processed in the given order)."""
    unique_ids = list(dict.fromkeys(tenant_ids))
    if not _confirm_phrase(f"WIPE {len(unique_ids)} TENANTS", yes):
        click.echo("❌ Confirmation did not match; nothing queued")
        raise SystemExit(1)

    db = SessionLocal()
    try:
        jobs = delete_job_service.enqueue_tenant_wipes(db, unique_ids, requested_by, reason)
        for job in jobs:
            click.echo(f"✅ Queued tenant wipe job {job.id} for tenant {job.target_id}")
    finally:
        db.close()


@cli.command()
@click.option("--tenant-id", required=True, type=click.UUID)
@click.option("--user-id", required=True, type=click.UUID)
@click.option(
    "--mode",
    required=True,
    type=click.Choice([m.value for m in DeleteMode]),
    help="soft_delete keeps data, hard_delete removes the user's records, anonymize scrubs PII",
)
@click.option("--requested-by", required=True, type=click.UUID)
@click.option("--reason", required=True, callback=_validate_reason)
@click.option("--yes", is_flag=True, help="Skip the typed confirmation")
def enqueue_user_delete(
    tenant_id: UUID, user_id: UUID, mode: str, requested_by: UUID, reason: str, yes: bool
):
    """Queue removal of a user from one tenant."""
    try:
        request = DeleteJobCreate(
            target_type=TargetType.USER,
            target_id=user_id,
            tenant_id=tenant_id,
            mode=DeleteMode(mode),
            requested_by=requested_by,
            reason=reason,
        )
    except ValidationError as e:
        click.echo(f"❌ {e}")
        raise SystemExit(1)

    db = SessionLocal()
    try:
        counts = resource_store.preview_deletion(
            db, request.target_type, request.target_id, request.tenant_id, request.mode
        )
        if not counts.get("user_tenants"):
            click.echo(f"❌ User {user_id} is not a member of tenant {tenant_id}")
            raise SystemExit(1)
        click.echo(f"Mode {mode} - rows affected:")
        _echo_counts(counts)

        if not _confirm_phrase(USER_CONFIRM_PHRASE, yes):
            click.echo("❌ Confirmation did not match; nothing queued")
            raise SystemExit(1)

        job = delete_job_service.enqueue_delete_job(
            db,
            target_type=request.target_type,
            target_id=request.target_id,
            requested_by=request.requested_by,
            reason=request.reason,
            tenant_id=request.tenant_id,
            mode=request.mode,
        )
        click.echo(f"✅ Queued user delete job {job.id}")
    finally:
        db.close()


@cli.command()
@click.option("--tenant-id", required=True, type=click.UUID)
@click.option("--user-id", type=click.UUID, default=None, help="Preview a user delete instead")
@click.option("--mode", type=click.Choice([m.value for m in DeleteMode]), default=None)
def preview(tenant_id: UUID, user_id: UUID | None, mode: str | None):
    """Show what a delete job would remove, without queueing anything."""
    db = SessionLocal()
    try:
        if user_id:
            counts = resource_store.preview_deletion(
                db, TargetType.USER, user_id, tenant_id, DeleteMode(mode) if mode else None
            )
        else:
            counts = resource_store.preview_deletion(db, TargetType.TENANT, tenant_id)
        _echo_counts(counts)
    finally:
        db.close()


@cli.command()
@click.argument("job_id", type=click.UUID)
def status(job_id: UUID):
    """Print a delete job's status as JSON."""
    db = SessionLocal()
    try:
        job = delete_job_service.get_delete_job(db, job_id)
        if not job:
            click.echo(f"❌ Delete job {job_id} not found")
            raise SystemExit(1)
        click.echo(DeleteJobRead.model_validate(job).model_dump_json(indent=2, by_alias=True))
    finally:
        db.close()


@cli.command()
@click.option("--status", "status_filter", type=click.Choice([s.value for s in DeleteJobStatus]))
@click.option("--tenant-id", type=click.UUID, default=None)
@click.option("--limit", type=int, default=50, show_default=True)
def list_jobs(status_filter: str | None, tenant_id: UUID | None, limit: int):
    """List delete jobs, newest first."""
    db = SessionLocal()
    try:
        jobs = delete_job_service.list_delete_jobs(
            db,
            status=DeleteJobStatus(status_filter) if status_filter else None,
            tenant_id=tenant_id,
            limit=limit,
        )
        for job in jobs:
            click.echo(json.dumps(DeleteJobListItem.model_validate(job).model_dump(mode="json")))
    finally:
        db.close()


@cli.command()
@click.argument("job_id", type=click.UUID)
def cancel(job_id: UUID):
    """Cancel a job that has not started yet."""
    db = SessionLocal()
    try:
        if delete_job_service.cancel_job(db, job_id):
            click.echo(f"✅ Cancelled delete job {job_id}")
        else:
            click.echo(f"❌ Delete job {job_id} is not queued; only queued jobs can be cancelled")
            raise SystemExit(1)
    finally:
        db.close()


@cli.command()
def run_once():
    """Process at most one queued job, then flush audit events."""
    from erasure.worker import build_scheduler

    scheduler = build_scheduler()
    job_id = scheduler.tick()
    scheduler.drain_audit()
    if job_id:
        click.echo(f"Processed delete job {job_id}")
    else:
        click.echo("No queued delete jobs")


@cli.command()
def run_worker():
    """Run the polling worker until interrupted."""
    from erasure.worker import main

    main()


if __name__ == "__main__":
    cli()
