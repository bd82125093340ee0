"""
Spending Ledger

Owns the recorded transactions and derives every aggregate the
limit policy and the dashboard need.

DESIGN DECISION: Aggregates are derived, never cached. Each call
re-reads the transaction list and sums it in Decimal. At the size
of a personal finance log this is cheap, and there is no cached
total that can fall out of step with the records.
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

import structlog

from mindfulpay.audit import AuditLogger
from mindfulpay.models.finance import (
    ZERO,
    LedgerTotals,
    Transaction,
    new_record_id,
)
from mindfulpay.services.storage import FinanceRepository, RecordKey, StorageError


logger = structlog.get_logger(__name__)


def month_bounds(day: date) -> tuple[date, date]:
    """First and last day of the calendar month containing `day`."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing `day`."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def sum_expenses(
    transactions: Iterable[Transaction],
    start: date,
    end: date,
    category: Optional[str] = None,
) -> Decimal:
    """Total of expenses dated within [start, end], optionally for one category."""
    return sum(
        (
            t.amount
            for t in transactions
            if t.is_expense
            and start <= t.date <= end
            and (category is None or t.category == category)
        ),
        ZERO,
    )


class SpendingLedger:
    """
    Append-only list of transactions (plus deletion).

    Mutations that cannot be persisted are logged and re-raised;
    the stored list is left exactly as it was.
    """

    def __init__(
        self,
        repository: FinanceRepository,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._audit_logger = audit_logger

    async def all(self) -> list[Transaction]:
        """All transactions in insertion order. Callers sort as needed."""
        return await self._repository.load_models(RecordKey.TRANSACTIONS, Transaction)

    async def get(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in await self.all():
            if transaction.id == transaction_id:
                return transaction
        return None

    async def append(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record a transaction under a freshly generated id.

        Returns the stored transaction.

        Raises:
            StorageError: If the ledger could not be written
        """
        stored = transaction.model_copy(update={"id": new_record_id()})
        try:
            async with self._repository.editing_models(
                RecordKey.TRANSACTIONS, Transaction
            ) as transactions:
                transactions.append(stored)
        except StorageError as e:
            logger.error(
                "ledger_append_failed",
                amount=str(stored.amount),
                category=stored.category,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="append",
                    key=self._repository.key(RecordKey.TRANSACTIONS),
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        logger.info("transaction_recorded", transaction_id=stored.id, type=stored.type.value)
        if self._audit_logger:
            await self._audit_logger.log_transaction_recorded(
                transaction_id=stored.id,
                amount=str(stored.amount),
                category=stored.category,
                tags=list(stored.tags),
                correlation_id=correlation_id,
            )
        return stored

    async def remove(self, transaction_id: str) -> bool:
        """
        Delete a transaction.

        Returns False if no transaction had that id.

        Raises:
            StorageError: If the ledger could not be written
        """
        try:
            async with self._repository.editing_models(
                RecordKey.TRANSACTIONS, Transaction
            ) as transactions:
                before = len(transactions)
                transactions[:] = [t for t in transactions if t.id != transaction_id]
                removed = len(transactions) < before
        except StorageError as e:
            logger.error("ledger_remove_failed", transaction_id=transaction_id, error=str(e))
            raise

        if removed and self._audit_logger:
            await self._audit_logger.log_transaction_deleted(transaction_id)
        return removed

    async def clear(self) -> None:
        await self._repository.save_models(RecordKey.TRANSACTIONS, [])

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    async def totals(self) -> LedgerTotals:
        """Income, expense and per-category expense totals over all records."""
        income = ZERO
        expense = ZERO
        by_category: dict[str, Decimal] = {}

        for transaction in await self.all():
            if transaction.is_expense:
                expense += transaction.amount
                by_category[transaction.category] = (
                    by_category.get(transaction.category, ZERO) + transaction.amount
                )
            else:
                income += transaction.amount

        return LedgerTotals(income=income, expense=expense, by_category=by_category)

    async def spent_between(
        self,
        start: date,
        end: date,
        category: Optional[str] = None,
    ) -> Decimal:
        return sum_expenses(await self.all(), start, end, category)

    async def spent_on(self, day: date, category: Optional[str] = None) -> Decimal:
        """Expenses dated exactly `day`."""
        return await self.spent_between(day, day, category)

    async def spent_in_week(self, day: date, category: Optional[str] = None) -> Decimal:
        """Expenses in the Monday-start week containing `day`."""
        return await self.spent_between(*week_bounds(day), category)

    async def spent_in_month(
        self,
        year: int,
        month: int,
        category: Optional[str] = None,
    ) -> Decimal:
        """Expenses in a calendar month."""
        return await self.spent_between(*month_bounds(date(year, month, 1)), category)

    async def spent_in_category(self, category: str, start: date, end: date) -> Decimal:
        return await self.spent_between(start, end, category)
