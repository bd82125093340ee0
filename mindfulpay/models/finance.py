"""
Core Data Models for MindfulPay

These models define the strict schemas for every record the
engine persists. They are designed to:
1. Reject invalid records at construction (no NaN balances later)
2. Keep money in Decimal so sums never drift
3. Be serializable as JSON for the key-value store

DESIGN DECISION: Records are immutable once created. A goal
contribution or a limit change produces a new model instance
which replaces the stored one.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# Positive amount in rupees, at most two decimal places (paise)
PositiveAmount = Annotated[Decimal, Field(gt=0, decimal_places=2)]
NonNegativeAmount = Annotated[Decimal, Field(ge=0, decimal_places=2)]

ZERO = Decimal("0")
CENT = Decimal("0.01")


def new_record_id() -> str:
    """Opaque unique identifier for a stored record."""
    return uuid4().hex


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money for a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class ExpenseCategory(str, Enum):
    """
    Categories an expense can be filed under.

    DESIGN DECISION: Using explicit categories rather than free text
    keeps the category totals and category limits comparable.
    """
    FOOD_AND_DINING = "Food & Dining"
    SHOPPING = "Shopping"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    BILLS_AND_UTILITIES = "Bills & Utilities"
    HEALTH_AND_MEDICAL = "Health & Medical"
    EDUCATION = "Education"
    TRAVEL = "Travel"
    PERSONAL_CARE = "Personal Care"
    GIFTS_AND_DONATIONS = "Gifts & Donations"
    HOUSING = "Housing"
    INVESTMENTS = "Investments"
    OTHER = "Other"


class IncomeCategory(str, Enum):
    """Categories an income can be filed under."""
    SALARY = "Salary"
    FREELANCE = "Freelance"
    BUSINESS = "Business"
    INVESTMENTS = "Investments"
    GIFTS = "Gifts"
    REFUNDS = "Refunds"
    OTHER = "Other"


class GoalCategory(str, Enum):
    """Categories a savings goal can be filed under."""
    SAVINGS = "Savings"
    EMERGENCY_FUND = "Emergency Fund"
    VACATION = "Vacation"
    EDUCATION = "Education"
    ELECTRONICS = "Electronics"
    VEHICLE = "Vehicle"
    HOME = "Home"
    DEBT_REPAYMENT = "Debt Repayment"
    RETIREMENT = "Retirement"
    OTHER = "Other"


class LimitPeriod(str, Enum):
    """Window a spending limit applies to."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


EXPENSE_CATEGORIES = frozenset(c.value for c in ExpenseCategory)
INCOME_CATEGORIES = frozenset(c.value for c in IncomeCategory)
GOAL_CATEGORIES = frozenset(c.value for c in GoalCategory)


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense entry.

    Owned by the spending ledger. Only deletion is allowed after
    creation, so the model is frozen.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        default_factory=new_record_id,
        min_length=1,
        description="Opaque unique identifier"
    )
    amount: PositiveAmount
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        description="Category from the expense or income set"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    date: date
    merchant: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Payee identifier, usually a UPI ID"
    )
    tags: list[str] = Field(
        default_factory=list,
        description="Free-form markers such as 'emergency'"
    )

    @model_validator(mode='after')
    def validate_category_for_type(self) -> 'Transaction':
        """Expenses and incomes draw from different category sets."""
        allowed = (
            EXPENSE_CATEGORIES
            if self.type == TransactionType.EXPENSE
            else INCOME_CATEGORIES
        )
        if self.category not in allowed:
            raise ValueError(
                f"Unknown {self.type.value} category: {self.category!r}"
            )
        return self

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


class Goal(BaseModel):
    """
    A savings goal.

    current_amount only ever grows, through contributions.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(default_factory=new_record_id, min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    target_amount: PositiveAmount
    current_amount: NonNegativeAmount = ZERO
    category: str = Field(
        default=GoalCategory.SAVINGS.value,
        min_length=1,
    )
    deadline: Optional[date] = None

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: str) -> str:
        if v not in GOAL_CATEGORIES:
            raise ValueError(f"Unknown goal category: {v!r}")
        return v

    @property
    def remaining_amount(self) -> Decimal:
        return max(self.target_amount - self.current_amount, ZERO)

    @property
    def progress_percent(self) -> Decimal:
        """Progress towards the target, capped at 100."""
        percent = (self.current_amount / self.target_amount * 100).quantize(CENT)
        return min(percent, Decimal("100.00"))

    @property
    def is_complete(self) -> bool:
        return self.current_amount >= self.target_amount


class SpendingLimit(BaseModel):
    """
    A user-defined cap on spending in one category.

    The category is not checked against the category enums: a limit
    for a category that no transaction uses is harmless.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(default_factory=new_record_id, min_length=1)
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    amount: PositiveAmount
    period: LimitPeriod = LimitPeriod.MONTHLY

    @property
    def key(self) -> tuple[str, LimitPeriod]:
        return self.category, self.period


class DailySpendingCounter(BaseModel):
    """Running total of today's payments, reset when the date changes."""
    model_config = ConfigDict(frozen=True)

    date: date
    amount: NonNegativeAmount = ZERO

    def for_day(self, day: date) -> Decimal:
        """Amount spent on `day`; a counter from another day counts as zero."""
        return self.amount if self.date == day else ZERO


# =============================================================================
# DERIVED AGGREGATES
# =============================================================================

class LedgerTotals(BaseModel):
    """
    Totals derived from the full transaction list.

    Recomputed on demand, never stored.
    """

    income: Decimal = ZERO
    expense: Decimal = ZERO
    by_category: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Expense totals per category"
    )

    @property
    def net_balance(self) -> Decimal:
        return self.income - self.expense
