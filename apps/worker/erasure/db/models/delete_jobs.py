"""Delete job model."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Index, Integer, String, Text, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from erasure.db.base import Base
from erasure.db.enums import DEFAULT_DELETE_JOB_STATUS, DeleteJobStatus
from erasure.db.types import JSONType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeleteJob(Base):
    """
    Destructive delete request for a tenant or a user within a tenant.

    Inserted as queued by the calling layer, then claimed and mutated only by
    the scheduler. Rows are never deleted (kept for audit history), and there
    is deliberately no foreign key to tenants so a job outlives the tenant it
    wiped.
    """

    __tablename__ = "delete_jobs"
    __table_args__ = (
        Index(
            "idx_delete_jobs_queued",
            "status",
            "queued_at",
            postgresql_where=text("status = 'queued'"),
        ),
        Index("idx_delete_jobs_tenant", "tenant_id", "queued_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    # Required for user jobs; equals target_id for tenant jobs
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    mode: Mapped[str | None] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_DELETE_JOB_STATUS.value,
        server_default=text(f"'{DEFAULT_DELETE_JOB_STATUS.value}'"),
        nullable=False,
    )
    progress: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    current_step: Mapped[str | None] = mapped_column(String(255), nullable=True)
    summary: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    requested_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    queued_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    # Stamped with every progress write; used by the stale-job sweep
    heartbeat_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def is_terminal(self) -> bool:
        return DeleteJobStatus(self.status).is_terminal

    def __repr__(self) -> str:
        return (
            f"<DeleteJob id={self.id} target={self.target_type}:{self.target_id} "
            f"status={self.status} progress={self.progress}>"
        )
