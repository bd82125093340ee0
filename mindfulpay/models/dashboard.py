"""
Dashboard Read Models

Shapes returned by the dashboard queries. Everything here is derived
from the ledger, goals and limits on each call; none of it is stored.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from mindfulpay.models.finance import LimitPeriod


class FinancialSummary(BaseModel):
    """Income, expense and per-category spending across the whole ledger."""
    model_config = ConfigDict(frozen=True)

    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    category_totals: dict[str, Decimal] = Field(default_factory=dict)
    transaction_count: int = 0


class TrendPoint(BaseModel):
    """Total expenses on one day."""
    model_config = ConfigDict(frozen=True)

    day: date
    amount: Decimal


class GoalProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    goal_id: str
    name: str
    current_amount: Decimal
    target_amount: Decimal
    progress_percent: Decimal
    is_complete: bool


class LimitUsage(BaseModel):
    """How much of a category limit has been used in its current period."""
    model_config = ConfigDict(frozen=True)

    limit_id: str
    category: str
    period: LimitPeriod
    limit: Decimal
    spent: Decimal
    period_start: date
    period_end: date

    @property
    def remaining(self) -> Decimal:
        return max(self.limit - self.spent, Decimal("0"))

    @property
    def is_exceeded(self) -> bool:
        return self.spent > self.limit
