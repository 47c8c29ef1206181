"""Tests for delete job enqueueing and state transitions."""

import uuid
from datetime import timedelta

import pytest
from pydantic import ValidationError

from erasure.db.enums import DeleteJobStatus, DeleteMode, TargetType
from erasure.jobs.steps import DeletionSummary
from erasure.schemas.delete_job import DeleteJobCreate, DeleteJobRead
from erasure.services import delete_job_service


REASON = "Customer requested account closure"


def _enqueue_tenant(db, tenant_id, admin_id, queued_at=None):
    return delete_job_service.enqueue_delete_job(
        db,
        target_type=TargetType.TENANT,
        target_id=tenant_id,
        requested_by=admin_id,
        reason=REASON,
        queued_at=queued_at,
    )


# =============================================================================
# Enqueue
# =============================================================================


def test_enqueue_tenant_wipe_scopes_job_to_tenant(db, test_tenant, admin_id):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)

    assert job.status == DeleteJobStatus.QUEUED.value
    assert job.progress == 0
    assert job.tenant_id == test_tenant.id
    assert job.mode is None
    assert job.current_step is None
    assert job.summary is None


def test_enqueue_tenant_wipe_ignores_mode(db, test_tenant, admin_id):
    job = delete_job_service.enqueue_delete_job(
        db,
        target_type=TargetType.TENANT,
        target_id=test_tenant.id,
        requested_by=admin_id,
        reason=REASON,
        mode=DeleteMode.SOFT_DELETE,
    )
    assert job.mode is None


def test_enqueue_user_delete_requires_tenant(db, test_user, admin_id):
    with pytest.raises(ValueError, match="tenant_id is required"):
        delete_job_service.enqueue_delete_job(
            db,
            target_type=TargetType.USER,
            target_id=test_user.id,
            requested_by=admin_id,
            reason=REASON,
            mode=DeleteMode.HARD_DELETE,
        )


def test_enqueue_user_delete_requires_mode(db, test_user, test_tenant, admin_id):
    with pytest.raises(ValueError, match="mode is required"):
        delete_job_service.enqueue_delete_job(
            db,
            target_type=TargetType.USER,
            target_id=test_user.id,
            requested_by=admin_id,
            reason=REASON,
            tenant_id=test_tenant.id,
        )


def test_bulk_wipe_preserves_input_order(db, tenant_factory, admin_id, clock):
    tenants = [tenant_factory(f"Tenant {i}") for i in range(3)]

    jobs = delete_job_service.enqueue_tenant_wipes(
        db, [t.id for t in reversed(tenants)], admin_id, REASON, queued_at=clock()
    )

    assert [job.target_id for job in jobs] == [t.id for t in reversed(tenants)]
    oldest = delete_job_service.get_oldest_queued_job(db)
    assert oldest.id == jobs[0].id


def test_create_schema_rejects_user_job_without_tenant(admin_id):
    with pytest.raises(ValidationError):
        DeleteJobCreate(
            target_type=TargetType.USER,
            target_id=uuid.uuid4(),
            mode=DeleteMode.ANONYMIZE,
            requested_by=admin_id,
            reason=REASON,
        )


def test_create_schema_rejects_mode_on_tenant_job(admin_id):
    with pytest.raises(ValidationError):
        DeleteJobCreate(
            target_type=TargetType.TENANT,
            target_id=uuid.uuid4(),
            mode=DeleteMode.HARD_DELETE,
            requested_by=admin_id,
            reason=REASON,
        )


# =============================================================================
# Reads
# =============================================================================


def test_oldest_queued_job_is_fifo_by_queued_at(db, tenant_factory, admin_id, clock):
    first, second = tenant_factory("First"), tenant_factory("Second")
    # Inserted newest-first
    later = _enqueue_tenant(db, second.id, admin_id, queued_at=clock() + timedelta(minutes=5))
    earlier = _enqueue_tenant(db, first.id, admin_id, queued_at=clock())

    assert delete_job_service.get_oldest_queued_job(db).id == earlier.id
    assert later.id != earlier.id


def test_list_delete_jobs_filters(db, tenant_factory, admin_id, clock):
    acme, other = tenant_factory("Acme"), tenant_factory("Other")
    acme_job = _enqueue_tenant(db, acme.id, admin_id, queued_at=clock())
    other_job = _enqueue_tenant(db, other.id, admin_id, queued_at=clock() + timedelta(seconds=1))
    delete_job_service.cancel_job(db, other_job.id, now=clock())

    assert [j.id for j in delete_job_service.list_delete_jobs(db)] == [other_job.id, acme_job.id]
    assert [j.id for j in delete_job_service.list_delete_jobs(db, tenant_id=acme.id)] == [
        acme_job.id
    ]
    cancelled = delete_job_service.list_delete_jobs(db, status=DeleteJobStatus.CANCELLED)
    assert [j.id for j in cancelled] == [other_job.id]


def test_get_delete_job_unknown_id(db):
    assert delete_job_service.get_delete_job(db, uuid.uuid4()) is None


def test_read_schema_in_progress(db, test_tenant, admin_id):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)
    read = DeleteJobRead.model_validate(job)
    assert read.in_progress
    assert read.summary is None


# =============================================================================
# Claim / cancel
# =============================================================================


def test_only_one_claim_wins(db, session_factory, test_tenant, admin_id, clock):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)

    with session_factory() as first, session_factory() as second:
        assert delete_job_service.claim_job(first, job.id, now=clock()) is True
        assert delete_job_service.claim_job(second, job.id, now=clock()) is False

    db.expire_all()
    assert job.status == DeleteJobStatus.RUNNING.value
    assert job.current_step == delete_job_service.STARTING_STEP
    assert job.started_at is not None
    assert job.heartbeat_at is not None


def test_cancel_queued_job(db, test_tenant, admin_id, clock):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)

    assert delete_job_service.cancel_job(db, job.id, now=clock()) is True

    db.expire_all()
    assert job.status == DeleteJobStatus.CANCELLED.value
    assert job.completed_at is not None
    assert job.summary == {"deletedTables": {}, "totalDeleted": 0, "errors": []}
    # A cancelled job can never be claimed
    assert delete_job_service.claim_job(db, job.id, now=clock()) is False
    assert delete_job_service.get_oldest_queued_job(db) is None


def test_cannot_cancel_running_job(db, test_tenant, admin_id, clock):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)
    delete_job_service.claim_job(db, job.id, now=clock())

    assert delete_job_service.cancel_job(db, job.id, now=clock()) is False
    db.expire_all()
    assert job.status == DeleteJobStatus.RUNNING.value


# =============================================================================
# Progress / finalize
# =============================================================================


def test_update_progress_never_lowers_progress(db, test_tenant, admin_id, clock):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)
    delete_job_service.claim_job(db, job.id, now=clock())
    db.refresh(job)

    delete_job_service.update_progress(db, job, "Deleting staff...", 50, now=clock())
    delete_job_service.update_progress(db, job, "Deleting projects...", 30, now=clock())

    db.expire_all()
    assert job.progress == 50
    assert job.current_step == "Deleting projects..."


def test_finalize_is_write_once(db, test_tenant, admin_id, clock):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)
    delete_job_service.claim_job(db, job.id, now=clock())

    first = DeletionSummary()
    first.record("bookings", 5)
    assert delete_job_service.finalize_job(db, job.id, first, now=clock()) is True

    second = DeletionSummary.from_error("late writer")
    assert delete_job_service.finalize_job(db, job.id, second, now=clock()) is False

    db.expire_all()
    assert job.status == DeleteJobStatus.COMPLETED.value
    assert job.progress == 100
    assert job.current_step == delete_job_service.DONE_STEP
    assert job.summary == {"deletedTables": {"bookings": 5}, "totalDeleted": 5, "errors": []}
    assert job.error_message is None


def test_finalize_with_errors_marks_failed(db, test_tenant, admin_id, clock):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)
    delete_job_service.claim_job(db, job.id, now=clock())

    summary = DeletionSummary()
    summary.record("bookings", 2)
    summary.record_error("Failed to delete from invoices: timeout")
    delete_job_service.finalize_job(db, job.id, summary, now=clock())

    db.expire_all()
    assert job.status == DeleteJobStatus.FAILED.value
    assert job.progress == 100
    assert job.current_step == delete_job_service.DONE_WITH_ERRORS_STEP
    assert job.error_message == "Failed to delete from invoices: timeout"
    assert job.summary["deletedTables"] == {"bookings": 2}


def test_finalize_requires_running_job(db, test_tenant, admin_id, clock):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)
    assert delete_job_service.finalize_job(db, job.id, DeletionSummary(), now=clock()) is False


# =============================================================================
# Stale sweep
# =============================================================================


def test_fail_stale_jobs_only_touches_silent_running_jobs(
    db, tenant_factory, admin_id, clock
):
    stalled_tenant, busy_tenant, waiting_tenant = (
        tenant_factory("Stalled"),
        tenant_factory("Busy"),
        tenant_factory("Waiting"),
    )
    stalled = _enqueue_tenant(db, stalled_tenant.id, admin_id, queued_at=clock())
    delete_job_service.claim_job(db, stalled.id, now=clock())

    now = clock.advance(hours=2)
    busy = _enqueue_tenant(db, busy_tenant.id, admin_id, queued_at=now)
    delete_job_service.claim_job(db, busy.id, now=now)
    waiting = _enqueue_tenant(db, waiting_tenant.id, admin_id, queued_at=clock() - timedelta(hours=3))

    failed = delete_job_service.fail_stale_jobs(db, now - timedelta(minutes=60), now)

    assert [job.id for job in failed] == [stalled.id]
    db.expire_all()
    assert stalled.status == DeleteJobStatus.FAILED.value
    assert stalled.error_message.startswith("Delete job stalled")
    assert stalled.summary["errors"] == [stalled.error_message]
    assert busy.status == DeleteJobStatus.RUNNING.value
    assert waiting.status == DeleteJobStatus.QUEUED.value


# =============================================================================
# Audit event
# =============================================================================


def test_audit_event_for_completed_job(db, test_tenant, admin_id, clock):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)
    delete_job_service.claim_job(db, job.id, now=clock())
    delete_job_service.finalize_job(db, job.id, DeletionSummary(), now=clock())
    db.refresh(job)

    event = delete_job_service.build_audit_event(job)

    assert event.action == "delete"
    assert event.resource == "delete_job"
    assert event.resource_id == str(job.id)
    assert event.tenant_id == test_tenant.id
    assert event.user_id == admin_id
    assert event.metadata["targetType"] == "tenant"
    assert event.metadata["status"] == "completed"


def test_audit_event_for_failed_job_is_update(db, test_tenant, admin_id, clock):
    job = _enqueue_tenant(db, test_tenant.id, admin_id)
    delete_job_service.claim_job(db, job.id, now=clock())
    delete_job_service.finalize_job(db, job.id, DeletionSummary.from_error("boom"), now=clock())
    db.refresh(job)

    assert delete_job_service.build_audit_event(job).action == "update"
