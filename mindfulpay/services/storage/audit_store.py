"""
Audit storage on top of the finance repository.

The audit trail is one more JSON list in the key-value store,
appended under the repository's per-key lock.
"""

from typing import Optional
from uuid import UUID

import structlog

from mindfulpay.models.audit import AuditEvent
from mindfulpay.services.storage.interface import (
    AuditStorageInterface,
    RecordKey,
    StorageError,
)
from mindfulpay.services.storage.repository import FinanceRepository


logger = structlog.get_logger(__name__)


class KeyValueAuditStorage(AuditStorageInterface):
    """Append-only audit log kept under the `audit_log` record."""

    def __init__(self, repository: FinanceRepository, max_events: Optional[int] = 5000):
        self._repository = repository
        self._max_events = max_events

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            async with self._repository.editing_models(RecordKey.AUDIT_LOG, AuditEvent) as events:
                events.append(event)
                if self._max_events is not None and len(events) > self._max_events:
                    # Oldest events roll off once the cap is reached
                    del events[: len(events) - self._max_events]
            return True
        except StorageError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_event_not_persisted", error=str(e), event_id=str(event.event_id))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = await self._repository.load_models(RecordKey.AUDIT_LOG, AuditEvent)
        related = [e for e in events if e.correlation_id == correlation_id]
        related.sort(key=lambda e: e.timestamp)
        return related

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = await self._repository.load_models(RecordKey.AUDIT_LOG, AuditEvent)
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
