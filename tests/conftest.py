"""Shared fixtures: in-memory storage, a fixed clock and a fake UPI opener."""

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from mindfulpay.audit import AuditLogger
from mindfulpay.engine import (
    DailySpendingTracker,
    GoalBook,
    LimitPolicy,
    SpendingLedger,
    VendorBlocklist,
)
from mindfulpay.models import Transaction, TransactionType
from mindfulpay.orchestrator import PaymentGate
from mindfulpay.services.storage import (
    FinanceRepository,
    InMemoryKeyValueStore,
    KeyValueAuditStorage,
    StorageError,
)
from mindfulpay.services.upi import UpiPaymentDispatcher, UriOpener


# A Wednesday, so the Monday-start week began on 2024-03-18
TODAY = date(2024, 3, 20)


class FlakyKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose reads or writes can be switched to fail."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        super().__init__(initial)
        self.fail_reads = False
        self.fail_writes = False

    async def read(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise StorageError(f"read failed: {key}")
        return await super().read(key)

    async def write(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageError(f"write failed: {key}")
        await super().write(key, value)


class FakeOpener(UriOpener):
    """Records opened URIs instead of launching anything."""

    def __init__(self, available: bool = True, error: Optional[Exception] = None):
        self.available = available
        self.error = error
        self.opened: list[str] = []

    async def can_open(self, uri: str) -> bool:
        return self.available

    async def open(self, uri: str) -> None:
        if self.error is not None:
            raise self.error
        self.opened.append(uri)


def make_expense(
    amount: str,
    day: date = TODAY,
    category: str = "Other",
    merchant: Optional[str] = None,
) -> Transaction:
    return Transaction(
        amount=Decimal(amount),
        type=TransactionType.EXPENSE,
        category=category,
        description="test expense",
        date=day,
        merchant=merchant,
    )


def make_income(amount: str, day: date = TODAY, category: str = "Salary") -> Transaction:
    return Transaction(
        amount=Decimal(amount),
        type=TransactionType.INCOME,
        category=category,
        description="test income",
        date=day,
    )


@pytest.fixture
def store():
    return FlakyKeyValueStore()


@pytest.fixture
def repository(store):
    return FinanceRepository(store, key_prefix="mindfulpay_")


@pytest.fixture
def audit_storage(repository):
    return KeyValueAuditStorage(repository)


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def ledger(repository, audit_logger):
    return SpendingLedger(repository, audit_logger=audit_logger)


@pytest.fixture
def blocklist(repository, audit_logger):
    return VendorBlocklist(repository, failure_policy="fail_open", audit_logger=audit_logger)


@pytest.fixture
def limit_policy(repository, ledger):
    return LimitPolicy(
        repository,
        ledger,
        daily_limit=Decimal("5000"),
        monthly_limit=Decimal("50000"),
        duplicate_policy="reject",
        today=lambda: TODAY,
    )


@pytest.fixture
def goal_book(repository):
    return GoalBook(repository)


@pytest.fixture
def daily_tracker(repository):
    return DailySpendingTracker(repository, today=lambda: TODAY)


@pytest.fixture
def opener():
    return FakeOpener()


@pytest.fixture
def dispatcher(opener):
    return UpiPaymentDispatcher(opener, scheme="upi", currency="INR")


@pytest.fixture
def gate(blocklist, limit_policy, ledger, dispatcher, daily_tracker, audit_logger):
    return PaymentGate(
        blocklist=blocklist,
        limit_policy=limit_policy,
        ledger=ledger,
        dispatcher=dispatcher,
        daily_tracker=daily_tracker,
        audit_logger=audit_logger,
        override_rechecks_blocklist=False,
        today=lambda: TODAY,
    )
