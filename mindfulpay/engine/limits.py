"""
Limit Policy

Holds the configured spending limits and decides whether a
prospective payment fits under them.

Evaluation order is fixed: daily, then monthly, then the category
limit. The first limit that would be strictly exceeded denies the
payment; landing exactly on a limit is allowed.

Global daily/monthly limits come from LimitSettings. Category
limits are SpendingLimit records in the repository.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Optional, Union

import structlog

from mindfulpay.config import get_settings
from mindfulpay.config.settings import DuplicateLimitPolicy
from mindfulpay.engine.ledger import SpendingLedger, month_bounds, sum_expenses, week_bounds
from mindfulpay.models.finance import LimitPeriod, SpendingLimit, Transaction
from mindfulpay.models.payment import LimitDecision, LimitScope
from mindfulpay.services.storage import (
    DuplicateError,
    FinanceRepository,
    NotFoundError,
    RecordKey,
    StorageError,
)


logger = structlog.get_logger(__name__)

_UNSET = object()


def period_bounds(period: LimitPeriod, day: date) -> tuple[date, date]:
    """Date window a limit of `period` covers on `day`."""
    if period == LimitPeriod.DAILY:
        return day, day
    if period == LimitPeriod.WEEKLY:
        return week_bounds(day)
    return month_bounds(day)


def resolve_duplicates(
    limits: list[SpendingLimit],
    policy: DuplicateLimitPolicy,
) -> Optional[SpendingLimit]:
    """
    Pick the limit that applies among several for the same (category, period).

    `limits` is in stored order, oldest first. The reject policy keeps
    duplicates out at write time; if some slipped in anyway (older data,
    manual edits) it behaves like first_match.
    """
    if not limits:
        return None
    if policy == "most_recent":
        return limits[-1]
    if policy == "most_restrictive":
        return min(limits, key=lambda limit: limit.amount)
    return limits[0]


class LimitPolicy:
    """Spending limits plus the evaluation of a payment against them."""

    def __init__(
        self,
        repository: FinanceRepository,
        ledger: SpendingLedger,
        daily_limit: Union[Optional[Decimal], object] = _UNSET,
        monthly_limit: Union[Optional[Decimal], object] = _UNSET,
        duplicate_policy: Optional[DuplicateLimitPolicy] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            daily_limit: Overrides the configured daily limit; None disables it
            monthly_limit: Overrides the configured monthly limit; None disables it
            duplicate_policy: Overrides the configured duplicate_limit_policy
            today: Clock used when evaluate() gets no explicit date
        """
        settings = get_settings().limits
        self._repository = repository
        self._ledger = ledger
        self._daily_limit = settings.daily_limit if daily_limit is _UNSET else daily_limit
        self._monthly_limit = settings.monthly_limit if monthly_limit is _UNSET else monthly_limit
        self._duplicate_policy = duplicate_policy or settings.duplicate_limit_policy
        self._today = today

    @property
    def daily_limit(self) -> Optional[Decimal]:
        return self._daily_limit

    @property
    def monthly_limit(self) -> Optional[Decimal]:
        return self._monthly_limit

    # -------------------------------------------------------------------------
    # Category limit records
    # -------------------------------------------------------------------------

    async def list_limits(self) -> list[SpendingLimit]:
        return await self._repository.load_models(RecordKey.SPENDING_LIMITS, SpendingLimit)

    async def add_limit(
        self,
        category: str,
        amount: Decimal,
        period: LimitPeriod = LimitPeriod.MONTHLY,
    ) -> SpendingLimit:
        """
        Create a category limit.

        Raises:
            DuplicateError: If a limit for (category, period) exists and
                the duplicate policy is reject
            StorageError: If the limits could not be written
        """
        limit = SpendingLimit(category=category, amount=amount, period=period)
        try:
            async with self._repository.editing_models(
                RecordKey.SPENDING_LIMITS, SpendingLimit
            ) as limits:
                if self._duplicate_policy == "reject" and any(
                    existing.key == limit.key for existing in limits
                ):
                    raise DuplicateError(
                        f"A {period.value} limit for {limit.category} already exists"
                    )
                limits.append(limit)
        except DuplicateError:
            raise
        except StorageError as e:
            logger.error("limit_add_failed", category=limit.category, error=str(e))
            raise

        logger.info("limit_added", limit_id=limit.id, category=limit.category, period=period.value)
        return limit

    async def update_limit(self, limit_id: str, amount: Decimal) -> SpendingLimit:
        """
        Change the amount of an existing limit.

        Raises:
            NotFoundError: If no limit has that id
            StorageError: If the limits could not be written
        """
        try:
            async with self._repository.editing_models(
                RecordKey.SPENDING_LIMITS, SpendingLimit
            ) as limits:
                for idx, existing in enumerate(limits):
                    if existing.id == limit_id:
                        updated = SpendingLimit(
                            id=existing.id,
                            category=existing.category,
                            amount=amount,
                            period=existing.period,
                        )
                        limits[idx] = updated
                        break
                else:
                    raise NotFoundError(f"Spending limit not found: {limit_id}")
        except NotFoundError:
            raise
        except StorageError as e:
            logger.error("limit_update_failed", limit_id=limit_id, error=str(e))
            raise
        return updated

    async def delete_limit(self, limit_id: str) -> bool:
        """Remove a limit. Returns False if no limit had that id."""
        try:
            async with self._repository.editing_models(
                RecordKey.SPENDING_LIMITS, SpendingLimit
            ) as limits:
                before = len(limits)
                limits[:] = [limit for limit in limits if limit.id != limit_id]
                removed = len(limits) < before
        except StorageError as e:
            logger.error("limit_delete_failed", limit_id=limit_id, error=str(e))
            raise
        return removed

    async def limits_for(self, category: str) -> list[SpendingLimit]:
        """
        The effective limit per period for a category.

        Duplicates for the same period are resolved with the duplicate policy.
        """
        stored = [limit for limit in await self.list_limits() if limit.category == category]
        effective = []
        for period in LimitPeriod:
            chosen = resolve_duplicates(
                [limit for limit in stored if limit.period == period],
                self._duplicate_policy,
            )
            if chosen is not None:
                effective.append(chosen)
        return effective

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    async def evaluate(
        self,
        amount: Decimal,
        category: Optional[str] = None,
        today: Optional[date] = None,
    ) -> LimitDecision:
        """
        Decide whether paying `amount` now stays within every limit.

        Reads the ledger once; all windows are computed from that snapshot.
        """
        today = today or self._today()
        transactions: list[Transaction] = await self._ledger.all()

        spent_today = sum_expenses(transactions, today, today)
        spent_this_month = sum_expenses(transactions, *month_bounds(today))

        if self._daily_limit is not None and spent_today + amount > self._daily_limit:
            return LimitDecision.deny(
                scope=LimitScope.DAILY,
                limit=self._daily_limit,
                spent=spent_today,
                attempted=amount,
            )

        if self._monthly_limit is not None and spent_this_month + amount > self._monthly_limit:
            return LimitDecision.deny(
                scope=LimitScope.MONTHLY,
                limit=self._monthly_limit,
                spent=spent_this_month,
                attempted=amount,
            )

        if category:
            for limit in await self.limits_for(category):
                spent = sum_expenses(
                    transactions,
                    *period_bounds(limit.period, today),
                    category=category,
                )
                if spent + amount > limit.amount:
                    return LimitDecision.deny(
                        scope=LimitScope.CATEGORY,
                        limit=limit.amount,
                        spent=spent,
                        attempted=amount,
                        category=category,
                        period=limit.period,
                    )

        return LimitDecision.allow()
