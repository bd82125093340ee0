"""
Payment Models for MindfulPay

Everything that flows through the payment gate: the validated
request, the outcome of each check, and the attempt that records
which state the gate reached.

CRITICAL: Policy blocks are NOT exceptions. A blocked vendor or an
exceeded limit is a normal decision carrying its reason, so the
caller can offer the emergency override.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from mindfulpay.models.finance import LimitPeriod, PositiveAmount, Transaction


# A UPI ID is name@handle without whitespace. Its length is bounded by
# Transaction.merchant, where the payee ends up.
PAYEE_ID_PATTERN = r"^[^@\s]+@[^@\s]+$"
MAX_PAYEE_ID_LENGTH = 200
MAX_PAYEE_NAME_LENGTH = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_payee_id(value: str) -> bool:
    """Whether `value` is a well-formed UPI ID that fits a ledger entry."""
    return (
        len(value) <= MAX_PAYEE_ID_LENGTH
        and re.fullmatch(PAYEE_ID_PATTERN, value) is not None
    )


# =============================================================================
# INPUT VALIDATION
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of validating raw payment input."""

    validated_at: datetime = Field(
        default_factory=_utcnow
    )
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]


class PaymentRequest(BaseModel):
    """
    A payment the user wants to make.

    Only built after validation succeeded, so every field is trusted.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    payee_id: str = Field(
        ...,
        min_length=3,
        max_length=MAX_PAYEE_ID_LENGTH,
        pattern=PAYEE_ID_PATTERN,
        description="UPI ID of the recipient (name@handle)"
    )
    amount: PositiveAmount
    category: Optional[str] = Field(
        default=None,
        description="Expense category the payment will be filed under"
    )
    note: str = Field(
        default="",
        max_length=200,
    )
    payee_name: Optional[str] = Field(
        default=None,
        max_length=MAX_PAYEE_NAME_LENGTH,
    )


class PaymentCode(BaseModel):
    """Payment details read from a scanned `upi://pay?...` code."""
    model_config = ConfigDict(frozen=True)

    payee_id: str
    payee_name: Optional[str] = None
    amount: Optional[Decimal] = None
    note: Optional[str] = None
    currency: Optional[str] = None


# =============================================================================
# CHECK OUTCOMES
# =============================================================================

class LimitScope(str, Enum):
    """Which limit denied a payment."""
    DAILY = "daily"
    MONTHLY = "monthly"
    CATEGORY = "category"


class LimitDecision(BaseModel):
    """
    Result of evaluating a prospective payment against the limits.

    When denied, `spent` is what was already spent in the window and
    `limit` is the cap that would be exceeded.
    """
    model_config = ConfigDict(frozen=True)

    allowed: bool
    scope: Optional[LimitScope] = None
    limit: Optional[Decimal] = None
    spent: Optional[Decimal] = None
    attempted: Optional[Decimal] = None
    category: Optional[str] = None
    period: Optional[LimitPeriod] = None

    @classmethod
    def allow(cls) -> "LimitDecision":
        return cls(allowed=True)

    @classmethod
    def deny(
        cls,
        scope: LimitScope,
        limit: Decimal,
        spent: Decimal,
        attempted: Decimal,
        category: Optional[str] = None,
        period: Optional[LimitPeriod] = None,
    ) -> "LimitDecision":
        return cls(
            allowed=False,
            scope=scope,
            limit=limit,
            spent=spent,
            attempted=attempted,
            category=category,
            period=period,
        )

    @property
    def remaining(self) -> Optional[Decimal]:
        if self.limit is None or self.spent is None:
            return None
        return max(self.limit - self.spent, Decimal("0"))

    def describe(self) -> str:
        """Message shown to the user on a denial."""
        if self.allowed:
            return "Payment is within your limits"
        if self.scope == LimitScope.CATEGORY:
            return (
                f"This payment would exceed your {self.period.value} limit of "
                f"₹{self.limit:,.2f} for {self.category}"
            )
        return (
            f"This payment would exceed your {self.scope.value} spending limit "
            f"of ₹{self.limit:,.2f}"
        )


class BlocklistCheck(BaseModel):
    """
    Outcome of a blocklist lookup.

    A lookup that could not read the blocklist carries `error` and
    must be resolved with an explicit failure policy.
    """
    model_config = ConfigDict(frozen=True)

    identifier: str
    blocked: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def resolve(self, policy: Literal["fail_open", "fail_closed"]) -> bool:
        """Whether to treat the payee as blocked."""
        if self.ok:
            return self.blocked
        return policy == "fail_closed"


class DispatchResult(BaseModel):
    """Result of handing a payment to the UPI app."""
    model_config = ConfigDict(frozen=True)

    success: bool
    uri: str
    error_message: Optional[str] = None


# =============================================================================
# PAYMENT GATE
# =============================================================================

class GateState(str, Enum):
    """
    States of one payment attempt.

    idle -> checking -> allowed | blocked_by_vendor | blocked_by_limit
    blocked_* -> cancelled | emergency_prompt
    emergency_prompt -> cancelled | override_approved
    Any side-effecting step may end in failed.
    """
    IDLE = "idle"
    CHECKING = "checking"
    ALLOWED = "allowed"
    BLOCKED_BY_VENDOR = "blocked_by_vendor"
    BLOCKED_BY_LIMIT = "blocked_by_limit"
    EMERGENCY_PROMPT = "emergency_prompt"
    CANCELLED = "cancelled"
    OVERRIDE_APPROVED = "override_approved"
    FAILED = "failed"


BLOCKED_STATES = frozenset({GateState.BLOCKED_BY_VENDOR, GateState.BLOCKED_BY_LIMIT})
TERMINAL_STATES = frozenset({
    GateState.ALLOWED,
    GateState.CANCELLED,
    GateState.OVERRIDE_APPROVED,
    GateState.FAILED,
})


class PaymentAttempt(BaseModel):
    """
    One trip through the payment gate.

    The gate mutates `state` as the attempt advances; everything the
    UI needs to render the outcome is on this object.
    """

    attempt_id: UUID = Field(default_factory=uuid4)
    correlation_id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=_utcnow)

    request: PaymentRequest
    state: GateState = GateState.IDLE
    state_history: list[GateState] = Field(default_factory=list)

    blocklist_check: Optional[BlocklistCheck] = None
    limit_decision: Optional[LimitDecision] = None
    blocked_state: Optional[GateState] = Field(
        default=None,
        description="The block that led to the emergency prompt"
    )

    transaction: Optional[Transaction] = None
    dispatch_result: Optional[DispatchResult] = None
    failure_reason: Optional[str] = None

    def move_to(self, state: GateState) -> None:
        self.state_history.append(self.state)
        self.state = state

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def succeeded(self) -> bool:
        return self.state in (GateState.ALLOWED, GateState.OVERRIDE_APPROVED)

    @property
    def block_message(self) -> Optional[str]:
        """Message for the blocked-payment prompt."""
        reason = self.blocked_state or self.state
        if reason == GateState.BLOCKED_BY_VENDOR:
            return f"Payments to {self.request.payee_id} are blocked due to security concerns."
        if reason == GateState.BLOCKED_BY_LIMIT and self.limit_decision:
            return f"{self.limit_decision.describe()}. Emergency override available."
        return None
