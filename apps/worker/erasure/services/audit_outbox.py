"""Best-effort audit outbox.

emit() only appends to an in-memory buffer and returns; it never waits on the
audit sink and never raises. drain() delivers buffered events later, each in
its own session. Delivery is not retried: an event that fails to write is
logged and dropped, and when the buffer is full the oldest event is dropped.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from erasure.services import audit_service

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


@dataclass(frozen=True)
class AuditEvent:
    tenant_id: UUID | None
    user_id: UUID | None
    action: str
    resource: str
    resource_id: str | None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditOutbox:
    """Bounded fire-and-forget buffer between job processing and the audit sink."""

    def __init__(self, max_size: int = 1000) -> None:
        self._pending: deque[AuditEvent] = deque()
        self._max_size = max_size
        self._lock = threading.Lock()
        self.dropped = 0

    def __len__(self) -> int:
        return len(self._pending)

    def emit(self, event: AuditEvent) -> None:
        with self._lock:
            if len(self._pending) >= self._max_size:
                discarded = self._pending.popleft()
                self.dropped += 1
                logger.warning(
                    "Audit outbox full; dropped event for %s %s",
                    discarded.resource,
                    discarded.resource_id,
                )
            self._pending.append(event)

    def _pop(self) -> AuditEvent | None:
        with self._lock:
            return self._pending.popleft() if self._pending else None

    def drain(self, session_factory: SessionFactory) -> int:
        """Deliver everything currently buffered. Returns how many were written."""
        delivered = 0
        while (event := self._pop()) is not None:
            try:
                with session_factory() as db:
                    audit_service.log_event(
                        db,
                        tenant_id=event.tenant_id,
                        user_id=event.user_id,
                        action=event.action,
                        resource=event.resource,
                        resource_id=event.resource_id,
                        metadata=event.metadata,
                    )
                    db.commit()
                delivered += 1
            except Exception as exc:
                self.dropped += 1
                logger.warning(
                    "Audit delivery failed for %s %s: %s",
                    event.resource,
                    event.resource_id,
                    type(exc).__name__,
                )
        return delivered
