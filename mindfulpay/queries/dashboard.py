"""
Dashboard Queries

DESIGN DECISION: Every query is DETERMINISTIC and computed from
the stored records at call time. Nothing is cached, so the numbers
on the home screen always match the ledger.

GUARANTEES:
- Only returns real data from storage
- Empty storage gives zeros and empty lists, never an error
"""

from datetime import date, timedelta
from typing import Callable

from mindfulpay.engine.goals import GoalBook
from mindfulpay.engine.ledger import SpendingLedger, sum_expenses
from mindfulpay.engine.limits import LimitPolicy, period_bounds
from mindfulpay.models.dashboard import (
    FinancialSummary,
    GoalProgress,
    LimitUsage,
    TrendPoint,
)
from mindfulpay.models.finance import Transaction


class DashboardQueries:
    """Read-only views over the ledger, goals and limits."""

    def __init__(
        self,
        ledger: SpendingLedger,
        goals: GoalBook,
        limits: LimitPolicy,
        today: Callable[[], date] = date.today,
    ):
        self._ledger = ledger
        self._goals = goals
        self._limits = limits
        self._today = today

    async def summary(self) -> FinancialSummary:
        totals = await self._ledger.totals()
        transactions = await self._ledger.all()
        return FinancialSummary(
            total_income=totals.income,
            total_expense=totals.expense,
            net_balance=totals.net_balance,
            category_totals=totals.by_category,
            transaction_count=len(transactions),
        )

    async def spending_trend(self, days: int = 7) -> list[TrendPoint]:
        """
        Daily expense totals for the last `days` days, oldest first.

        Days without expenses are included with a zero amount.
        """
        if days <= 0:
            return []

        today = self._today()
        transactions = await self._ledger.all()
        points = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            points.append(TrendPoint(day=day, amount=sum_expenses(transactions, day, day)))
        return points

    async def recent_expenses(self, limit: int = 5) -> list[Transaction]:
        """Most recent expenses, newest first."""
        expenses = [t for t in await self._ledger.all() if t.is_expense]
        # stable sort keeps insertion order for same-day expenses
        expenses.sort(key=lambda t: t.date, reverse=True)
        return expenses[:limit]

    async def top_goals(self, limit: int = 3) -> list[GoalProgress]:
        """The first goals in creation order with their progress."""
        goals = (await self._goals.list_goals())[:limit]
        return [
            GoalProgress(
                goal_id=goal.id,
                name=goal.name,
                current_amount=goal.current_amount,
                target_amount=goal.target_amount,
                progress_percent=goal.progress_percent,
                is_complete=goal.is_complete,
            )
            for goal in goals
        ]

    async def limit_usage(self) -> list[LimitUsage]:
        """Spending against every stored category limit in its current period."""
        today = self._today()
        transactions = await self._ledger.all()
        usage = []
        for spending_limit in await self._limits.list_limits():
            start, end = period_bounds(spending_limit.period, today)
            usage.append(
                LimitUsage(
                    limit_id=spending_limit.id,
                    category=spending_limit.category,
                    period=spending_limit.period,
                    limit=spending_limit.amount,
                    spent=sum_expenses(
                        transactions, start, end, category=spending_limit.category
                    ),
                    period_start=start,
                    period_end=end,
                )
            )
        return usage
