"""Delete job enums."""

from enum import Enum


class TargetType(str, Enum):
    """What a delete job acts on."""

    TENANT = "tenant"
    USER = "user"


class DeleteMode(str, Enum):
    """Deletion semantics for user jobs (tenant jobs are always a full wipe)."""

    SOFT_DELETE = "soft_delete"  # Deactivate membership, flag user deleted
    HARD_DELETE = "hard_delete"  # Remove the user's records in the tenant
    ANONYMIZE = "anonymize"  # Overwrite PII, keep rows


class DeleteJobStatus(str, Enum):
    """
    Delete job lifecycle.

    queued -> running -> completed | failed
    queued -> cancelled
    """

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def terminal(cls) -> frozenset["DeleteJobStatus"]:
        return frozenset({cls.COMPLETED, cls.FAILED, cls.CANCELLED})

    @property
    def is_terminal(self) -> bool:
        return self in self.terminal()
