"""Spending-control engine: blocklist, ledger, limits, goals."""

from mindfulpay.engine.blocklist import VendorBlocklist, normalize_identifier
from mindfulpay.engine.daily_counter import DailySpendingTracker
from mindfulpay.engine.goals import GoalBook
from mindfulpay.engine.ledger import SpendingLedger, month_bounds, week_bounds
from mindfulpay.engine.limits import LimitPolicy, period_bounds, resolve_duplicates

__all__ = [
    "DailySpendingTracker",
    "GoalBook",
    "LimitPolicy",
    "SpendingLedger",
    "VendorBlocklist",
    "month_bounds",
    "normalize_identifier",
    "period_bounds",
    "resolve_duplicates",
    "week_bounds",
]
