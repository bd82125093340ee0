"""
Data Models Package

This package contains all Pydantic models used in MindfulPay.
All records persisted or passed through the payment gate must
conform to these schemas.
"""

from mindfulpay.models.finance import (
    EXPENSE_CATEGORIES,
    GOAL_CATEGORIES,
    INCOME_CATEGORIES,
    DailySpendingCounter,
    ExpenseCategory,
    Goal,
    GoalCategory,
    IncomeCategory,
    LedgerTotals,
    LimitPeriod,
    SpendingLimit,
    Transaction,
    TransactionType,
    new_record_id,
)
from mindfulpay.models.payment import (
    BlocklistCheck,
    DispatchResult,
    GateState,
    LimitDecision,
    LimitScope,
    PaymentAttempt,
    PaymentCode,
    PaymentRequest,
    ValidationIssue,
    ValidationResult,
)
from mindfulpay.models.dashboard import (
    FinancialSummary,
    GoalProgress,
    LimitUsage,
    TrendPoint,
)
from mindfulpay.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance records
    "EXPENSE_CATEGORIES",
    "GOAL_CATEGORIES",
    "INCOME_CATEGORIES",
    "DailySpendingCounter",
    "ExpenseCategory",
    "Goal",
    "GoalCategory",
    "IncomeCategory",
    "LedgerTotals",
    "LimitPeriod",
    "SpendingLimit",
    "Transaction",
    "TransactionType",
    "new_record_id",
    # Payment gate models
    "BlocklistCheck",
    "DispatchResult",
    "GateState",
    "LimitDecision",
    "LimitScope",
    "PaymentAttempt",
    "PaymentCode",
    "PaymentRequest",
    "ValidationIssue",
    "ValidationResult",
    # Dashboard read models
    "FinancialSummary",
    "GoalProgress",
    "LimitUsage",
    "TrendPoint",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
