"""
Audit Logger

DESIGN DECISION: Every decision of the payment gate is logged.
This provides:
1. Complete traceability of blocks and overrides
2. Debugging capability when a payment fails half way
3. The user can review their own override history

The audit logger:
- Is async to match the storage layer
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace the events of one payment attempt
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from mindfulpay.models.audit import AuditEvent, AuditEventBuilder
from mindfulpay.services.storage import AuditStorageInterface


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for local JSON logging."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("mindfulpay.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_payment_submitted(
        self,
        attempt_id: UUID,
        payee_id: str,
        amount: str,
        category: Optional[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.payment_submitted(
            attempt_id=attempt_id,
            payee_id=payee_id,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(issues, correlation_id))

    async def log_payment_code_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.payment_code_rejected(reason, correlation_id))

    async def log_vendor_blocked(
        self,
        attempt_id: UUID,
        payee_id: str,
        lookup_error: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log a payment stopped by the blocklist."""
        event = AuditEventBuilder.vendor_blocked(
            attempt_id=attempt_id,
            payee_id=payee_id,
            lookup_error=lookup_error,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_limit_exceeded(
        self,
        attempt_id: UUID,
        scope: str,
        limit: str,
        spent: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        """Log a payment stopped by a spending limit."""
        event = AuditEventBuilder.limit_exceeded(
            attempt_id=attempt_id,
            scope=scope,
            limit=limit,
            spent=spent,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_payment_allowed(
        self,
        attempt_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.payment_allowed(attempt_id, correlation_id))

    async def log_payment_cancelled(
        self,
        attempt_id: UUID,
        from_state: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.payment_cancelled(
            attempt_id=attempt_id,
            from_state=from_state,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_override_requested(
        self,
        attempt_id: UUID,
        blocked_state: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.override_requested(
            attempt_id=attempt_id,
            blocked_state=blocked_state,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_override_approved(
        self,
        attempt_id: UUID,
        transaction_id: str,
        blocked_state: str,
        correlation_id: UUID,
    ) -> None:
        """Log a confirmed emergency override."""
        event = AuditEventBuilder.override_approved(
            attempt_id=attempt_id,
            transaction_id=transaction_id,
            blocked_state=blocked_state,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_recorded(
        self,
        transaction_id: str,
        amount: str,
        category: str,
        tags: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_recorded(
            transaction_id=transaction_id,
            amount=amount,
            category=category,
            tags=tags,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(transaction_id, correlation_id))

    async def log_payment_dispatched(
        self,
        attempt_id: UUID,
        uri: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.payment_dispatched(
            attempt_id=attempt_id,
            uri=uri,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_dispatch_failed(
        self,
        attempt_id: UUID,
        error_message: str,
        transaction_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log a failed hand-off. The recorded transaction is not rolled back."""
        event = AuditEventBuilder.dispatch_failed(
            attempt_id=attempt_id,
            error_message=error_message,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_merchant_blocklist_changed(
        self,
        merchant: str,
        blocked: bool,
    ) -> None:
        await self.log(AuditEventBuilder.merchant_blocklist_changed(merchant, blocked))

    async def log_storage_error(
        self,
        operation: str,
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.storage_error(
            operation=operation,
            key=key,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a payment).
    Pass it through all subsequent operations.
    """
    return uuid4()
