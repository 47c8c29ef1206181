"""Tests for the delete job CLI (the confirming calling layer)."""

import json
import uuid

import pytest
from click.testing import CliRunner

from erasure import cli as cli_module
from erasure import worker
from erasure.cli import cli
from erasure.db.models import Booking, DeleteJob


REASON = "Contract terminated, data removal requested"


@pytest.fixture
def runner(session_factory, monkeypatch):
    monkeypatch.setattr(cli_module, "SessionLocal", session_factory)
    monkeypatch.setattr(worker, "SessionLocal", session_factory)
    return CliRunner()


def _jobs(db):
    db.expire_all()
    return db.query(DeleteJob).all()


def test_short_reason_is_rejected(runner, db, test_tenant, admin_id):
    result = runner.invoke(
        cli,
        [
            "enqueue-tenant-wipe",
            "--tenant-id", str(test_tenant.id),
            "--requested-by", str(admin_id),
            "--reason", "cleanup",
            "--yes",
        ],
    )

    assert result.exit_code == 2
    assert "at least 10 characters" in result.output
    assert _jobs(db) == []


def test_tenant_wipe_requires_typed_tenant_name(runner, db, test_tenant, admin_id):
    args = [
        "enqueue-tenant-wipe",
        "--tenant-id", str(test_tenant.id),
        "--requested-by", str(admin_id),
        "--reason", REASON,
    ]

    wrong = runner.invoke(cli, args, input="DELETE something else\n")
    assert wrong.exit_code == 1
    assert "nothing queued" in wrong.output
    assert _jobs(db) == []

    right = runner.invoke(cli, args, input=f"DELETE {test_tenant.name}\n")
    assert right.exit_code == 0, right.output
    jobs = _jobs(db)
    assert len(jobs) == 1
    assert jobs[0].target_type == "tenant"
    assert jobs[0].reason == REASON


def test_tenant_wipe_unknown_tenant(runner, admin_id):
    result = runner.invoke(
        cli,
        [
            "enqueue-tenant-wipe",
            "--tenant-id", str(uuid.uuid4()),
            "--requested-by", str(admin_id),
            "--reason", REASON,
            "--yes",
        ],
    )
    assert result.exit_code == 1
    assert "not found" in result.output


def test_bulk_wipe_confirms_tenant_count(runner, db, tenant_factory, admin_id):
    tenants = [tenant_factory(f"Tenant {i}") for i in range(2)]
    args = ["enqueue-bulk-wipe", "--requested-by", str(admin_id), "--reason", REASON]
    for tenant in tenants:
        args += ["--tenant-id", str(tenant.id)]

    result = runner.invoke(cli, args, input="WIPE 2 TENANTS\n")

    assert result.exit_code == 0, result.output
    assert {job.target_id for job in _jobs(db)} == {t.id for t in tenants}


def test_user_delete_requires_membership(runner, db, tenant_factory, user_factory, admin_id):
    tenant = tenant_factory("Acme")
    stranger = user_factory(tenant_factory("Other"))

    result = runner.invoke(
        cli,
        [
            "enqueue-user-delete",
            "--tenant-id", str(tenant.id),
            "--user-id", str(stranger.id),
            "--mode", "hard_delete",
            "--requested-by", str(admin_id),
            "--reason", REASON,
            "--yes",
        ],
    )

    assert result.exit_code == 1
    assert "not a member" in result.output
    assert _jobs(db) == []


def test_user_delete_queues_job(runner, db, test_tenant, test_user, admin_id):
    result = runner.invoke(
        cli,
        [
            "enqueue-user-delete",
            "--tenant-id", str(test_tenant.id),
            "--user-id", str(test_user.id),
            "--mode", "anonymize",
            "--requested-by", str(admin_id),
            "--reason", REASON,
        ],
        input="DELETE USER\n",
    )

    assert result.exit_code == 0, result.output
    job = _jobs(db)[0]
    assert job.mode == "anonymize"
    assert job.tenant_id == test_tenant.id


def test_preview_prints_counts(runner, db, test_tenant):
    db.add_all([Booking(tenant_id=test_tenant.id) for _ in range(3)])
    db.commit()

    result = runner.invoke(cli, ["preview", "--tenant-id", str(test_tenant.id)])

    assert result.exit_code == 0
    assert "bookings: 3" in result.output
    assert "total: 3" in result.output


def test_run_once_then_status(runner, db, test_tenant, admin_id):
    runner.invoke(
        cli,
        [
            "enqueue-tenant-wipe",
            "--tenant-id", str(test_tenant.id),
            "--requested-by", str(admin_id),
            "--reason", REASON,
            "--yes",
        ],
    )
    job = _jobs(db)[0]

    processed = runner.invoke(cli, ["run-once"])
    assert processed.exit_code == 0, processed.output
    assert f"Processed delete job {job.id}" in processed.output

    status = runner.invoke(cli, ["status", str(job.id)])
    assert status.exit_code == 0
    body = json.loads(status.output)
    assert body["status"] == "completed"
    assert body["progress"] == 100
    assert body["summary"]["deletedTables"]["tenant"] == 1
    assert body["summary"]["errors"] == []

    idle = runner.invoke(cli, ["run-once"])
    assert "No queued delete jobs" in idle.output


def test_cancel_only_queued_jobs(runner, db, test_tenant, admin_id):
    runner.invoke(
        cli,
        [
            "enqueue-tenant-wipe",
            "--tenant-id", str(test_tenant.id),
            "--requested-by", str(admin_id),
            "--reason", REASON,
            "--yes",
        ],
    )
    job = _jobs(db)[0]

    first = runner.invoke(cli, ["cancel", str(job.id)])
    second = runner.invoke(cli, ["cancel", str(job.id)])

    assert first.exit_code == 0
    assert second.exit_code == 1

    listed = runner.invoke(cli, ["list-jobs", "--status", "cancelled"])
    rows = [json.loads(line) for line in listed.output.splitlines()]
    assert [row["id"] for row in rows] == [str(job.id)]


def test_status_unknown_job(runner):
    result = runner.invoke(cli, ["status", str(uuid.uuid4())])
    assert result.exit_code == 1
