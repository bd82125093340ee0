"""
Demo data for development and manual testing.

Loads a month of transactions, a handful of goals, monthly category
limits and the usual blocked merchants into a repository.
"""

from datetime import date
from decimal import Decimal

import structlog

from mindfulpay.models.finance import (
    Goal,
    SpendingLimit,
    Transaction,
    TransactionType,
)
from mindfulpay.services.storage import FinanceRepository, RecordKey


logger = structlog.get_logger(__name__)


def _income(id_: str, amount: int, category: str, description: str, day: str) -> Transaction:
    return Transaction(
        id=id_,
        amount=Decimal(amount),
        type=TransactionType.INCOME,
        category=category,
        description=description,
        date=date.fromisoformat(day),
    )


def _expense(
    id_: str,
    amount: int,
    category: str,
    description: str,
    day: str,
    merchant: str,
) -> Transaction:
    return Transaction(
        id=id_,
        amount=Decimal(amount),
        type=TransactionType.EXPENSE,
        category=category,
        description=description,
        date=date.fromisoformat(day),
        merchant=merchant,
    )


def demo_transactions() -> list[Transaction]:
    return [
        _income("txn-1", 50000, "Salary", "Monthly salary", "2024-03-01"),
        _income("txn-2", 15000, "Business", "Freelance project", "2024-03-10"),
        _income("txn-3", 5000, "Investments", "Dividend payment", "2024-03-15"),
        _income("txn-4", 3000, "Other", "Gift from family", "2024-03-20"),
        _expense("txn-5", 8000, "Food & Dining", "Grocery shopping", "2024-03-02", "supermarket@upi"),
        _expense("txn-6", 2500, "Food & Dining", "Restaurant dinner", "2024-03-08", "restaurant@upi"),
        _expense("txn-7", 4000, "Transportation", "Fuel", "2024-03-03", "petrol@upi"),
        _expense("txn-8", 1500, "Transportation", "Cab fare", "2024-03-12", "rideshare@upi"),
        _expense("txn-9", 3000, "Bills & Utilities", "Electricity bill", "2024-03-04", "utility@upi"),
        _expense("txn-10", 1200, "Bills & Utilities", "Internet bill", "2024-03-18", "internet@upi"),
        _expense("txn-11", 5500, "Shopping", "New clothes", "2024-03-14", "clothing@upi"),
        _expense("txn-12", 2000, "Entertainment", "Movie tickets", "2024-03-16", "cinema@upi"),
        _expense("txn-13", 1800, "Entertainment", "Concert tickets", "2024-03-22", "ticketing@upi"),
        _expense("txn-14", 3500, "Other", "Gift for friend", "2024-03-25", "giftshop@upi"),
    ]


def demo_goals() -> list[Goal]:
    rows = [
        ("goal-1", "Emergency Fund", 100000, 25000, "Emergency Fund", "2024-12-31"),
        ("goal-2", "Home Down Payment", 500000, 100000, "Home", "2025-12-31"),
        ("goal-3", "Credit Card Payoff", 50000, 20000, "Debt Repayment", "2024-06-30"),
        ("goal-4", "Vacation Fund", 75000, 15000, "Savings", "2024-10-31"),
        ("goal-5", "New Laptop", 80000, 30000, "Other", "2024-08-31"),
    ]
    return [
        Goal(
            id=goal_id,
            name=name,
            target_amount=Decimal(target),
            current_amount=Decimal(current),
            category=category,
            deadline=date.fromisoformat(deadline),
        )
        for goal_id, name, target, current, category, deadline in rows
    ]


def demo_spending_limits() -> list[SpendingLimit]:
    rows = [
        ("limit-1", "Food & Dining", 10000),
        ("limit-2", "Transportation", 5000),
        ("limit-3", "Entertainment", 3000),
        ("limit-4", "Shopping", 7000),
        ("limit-5", "Bills & Utilities", 5000),
    ]
    return [
        SpendingLimit(id=limit_id, category=category, amount=Decimal(amount))
        for limit_id, category, amount in rows
    ]


def demo_blocked_merchants() -> list[str]:
    return [
        "gambling@upi",
        "casino@upi",
        "lottery@upi",
        "betting@upi",
        "liquor@upi",
    ]


async def load_demo_data(repository: FinanceRepository) -> None:
    """
    Replace transactions, goals, limits and blocked merchants with the demo set.

    Raises:
        StorageError: If any record could not be written
    """
    await repository.save_models(RecordKey.TRANSACTIONS, demo_transactions())
    await repository.save_models(RecordKey.GOALS, demo_goals())
    await repository.save_models(RecordKey.SPENDING_LIMITS, demo_spending_limits())
    await repository.save_json(RecordKey.BLOCKED_MERCHANTS, demo_blocked_merchants())
    logger.info("demo_data_loaded")
