"""Pydantic schemas for delete jobs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from erasure.db.enums import DeleteJobStatus, DeleteMode, TargetType

# Recommended client poll interval while a job is queued or running
STATUS_POLL_INTERVAL_SECONDS = 2


class DeleteJobCreate(BaseModel):
    """Enqueue request, validated by the calling layer before insertion."""
    target_type: TargetType
    target_id: UUID
    tenant_id: UUID | None = None
    mode: DeleteMode | None = None
    requested_by: UUID
    reason: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_scope(self) -> "DeleteJobCreate":
        if self.target_type == TargetType.USER:
            if self.tenant_id is None:
                raise ValueError("tenant_id is required for user delete jobs")
            if self.mode is None:
                raise ValueError("mode is required for user delete jobs")
        elif self.mode is not None:
            raise ValueError("mode only applies to user delete jobs")
        return self


class DeletionSummaryRead(BaseModel):
    """Persisted summary, in its stored camelCase shape."""
    model_config = ConfigDict(populate_by_name=True)

    deleted_tables: dict[str, int] = Field(default_factory=dict, alias="deletedTables")
    total_deleted: int = Field(default=0, alias="totalDeleted")
    errors: list[str] = Field(default_factory=list)


class DeleteJobRead(BaseModel):
    """Delete job status (safe to poll)."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    target_type: str
    target_id: UUID
    tenant_id: UUID | None
    mode: str | None
    status: str
    progress: int
    current_step: str | None
    summary: DeletionSummaryRead | None
    error_message: str | None
    requested_by: UUID
    reason: str
    queued_at: datetime
    started_at: datetime | None
    completed_at: datetime | None

    @property
    def in_progress(self) -> bool:
        return self.status in (DeleteJobStatus.QUEUED.value, DeleteJobStatus.RUNNING.value)


class DeleteJobListItem(BaseModel):
    """Delete job list item (minimal)."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    target_type: str
    target_id: UUID
    mode: str | None
    status: str
    progress: int
    queued_at: datetime
    completed_at: datetime | None
