"""
Audit Models for MindfulPay

Every decision the payment gate makes is logged for audit purposes.
This provides:
1. A record of every emergency override the user approved
2. Debugging information when a payment fails half way
3. The ability to reconstruct why a payment was blocked

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the payment gate has its own event type.
    """
    # Payment gate
    PAYMENT_SUBMITTED = "payment_submitted"
    PAYMENT_VALIDATION_FAILED = "payment_validation_failed"
    PAYMENT_CODE_REJECTED = "payment_code_rejected"
    VENDOR_BLOCKED = "vendor_blocked"
    LIMIT_EXCEEDED = "limit_exceeded"
    PAYMENT_ALLOWED = "payment_allowed"
    PAYMENT_CANCELLED = "payment_cancelled"

    # Emergency override
    OVERRIDE_REQUESTED = "override_requested"
    OVERRIDE_APPROVED = "override_approved"

    # Ledger
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_DELETED = "transaction_deleted"

    # Hand-off to the UPI app
    PAYMENT_DISPATCHED = "payment_dispatched"
    DISPATCH_FAILED = "dispatch_failed"

    # Blocklist maintenance
    MERCHANT_BLOCKED = "merchant_blocked"
    MERCHANT_UNBLOCKED = "merchant_unblocked"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'payment', 'transaction', 'merchant')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one payment attempt)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.vendor_blocked(attempt_id, payee_id, correlation_id)
        event = AuditEventBuilder.override_approved(attempt_id, ..., correlation_id)
    """

    @staticmethod
    def payment_submitted(
        attempt_id: UUID,
        payee_id: str,
        amount: str,
        category: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_SUBMITTED,
            entity_type="payment",
            entity_id=str(attempt_id),
            correlation_id=correlation_id,
            description=f"Payment submitted: ₹{amount} to {payee_id}",
            details={
                "payee_id": payee_id,
                "amount": amount,
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        field_issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="payment",
            correlation_id=correlation_id,
            description=f"Payment input rejected with {len(field_issues)} issues",
            details={"issues": field_issues},
            is_user_action=True,
        )

    @staticmethod
    def payment_code_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_CODE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="payment_code",
            correlation_id=correlation_id,
            description="Scanned payment code is invalid",
            error_message=reason,
        )

    @staticmethod
    def vendor_blocked(
        attempt_id: UUID,
        payee_id: str,
        lookup_error: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VENDOR_BLOCKED,
            severity=AuditSeverity.WARNING,
            entity_type="payment",
            entity_id=str(attempt_id),
            correlation_id=correlation_id,
            description=f"Payment to blocked vendor {payee_id} stopped",
            details={
                "payee_id": payee_id,
                "lookup_error": lookup_error,
            },
        )

    @staticmethod
    def limit_exceeded(
        attempt_id: UUID,
        scope: str,
        limit: str,
        spent: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LIMIT_EXCEEDED,
            severity=AuditSeverity.WARNING,
            entity_type="payment",
            entity_id=str(attempt_id),
            correlation_id=correlation_id,
            description=f"{scope.capitalize()} limit of ₹{limit} would be exceeded",
            details={
                "scope": scope,
                "limit": limit,
                "spent": spent,
                "amount": amount,
            },
        )

    @staticmethod
    def payment_allowed(
        attempt_id: UUID,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_ALLOWED,
            entity_type="payment",
            entity_id=str(attempt_id),
            correlation_id=correlation_id,
            description="Payment passed blocklist and limit checks",
        )

    @staticmethod
    def payment_cancelled(
        attempt_id: UUID,
        from_state: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_CANCELLED,
            entity_type="payment",
            entity_id=str(attempt_id),
            correlation_id=correlation_id,
            description="User cancelled the blocked payment",
            details={"from_state": from_state},
            is_user_action=True,
        )

    @staticmethod
    def override_requested(
        attempt_id: UUID,
        blocked_state: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OVERRIDE_REQUESTED,
            severity=AuditSeverity.WARNING,
            entity_type="payment",
            entity_id=str(attempt_id),
            correlation_id=correlation_id,
            description="User asked for an emergency override",
            details={"blocked_state": blocked_state},
            is_user_action=True,
        )

    @staticmethod
    def override_approved(
        attempt_id: UUID,
        transaction_id: str,
        blocked_state: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OVERRIDE_APPROVED,
            severity=AuditSeverity.WARNING,
            entity_type="payment",
            entity_id=str(attempt_id),
            correlation_id=correlation_id,
            description="Emergency override confirmed, checks bypassed",
            details={
                "transaction_id": transaction_id,
                "blocked_state": blocked_state,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_recorded(
        transaction_id: str,
        amount: str,
        category: str,
        tags: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction recorded: ₹{amount} ({category})",
            details={
                "amount": amount,
                "category": category,
                "tags": tags,
            },
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def payment_dispatched(
        attempt_id: UUID,
        uri: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_DISPATCHED,
            entity_type="payment",
            entity_id=str(attempt_id),
            correlation_id=correlation_id,
            description="Payment handed to the UPI app",
            details={"uri": uri},
        )

    @staticmethod
    def dispatch_failed(
        attempt_id: UUID,
        error_message: str,
        transaction_id: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DISPATCH_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="payment",
            entity_id=str(attempt_id),
            correlation_id=correlation_id,
            description="Could not hand the payment to a UPI app",
            error_message=error_message,
            details={"transaction_id": transaction_id},
        )

    @staticmethod
    def merchant_blocklist_changed(
        merchant: str,
        blocked: bool
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.MERCHANT_BLOCKED
                if blocked
                else AuditEventType.MERCHANT_UNBLOCKED
            ),
            entity_type="merchant",
            entity_id=merchant,
            description=f"Merchant {'blocked' if blocked else 'unblocked'}: {merchant}",
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage {operation} failed for {key}",
            error_message=error_message,
            details={
                "operation": operation,
                "key": key,
            },
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
