"""
MindfulPay - Source Package

A spending-control engine for UPI payments: record transactions,
set goals and spending limits, block vendors, and stop payments
that break the user's own rules before they reach the UPI app.

DESIGN PRINCIPLES:
1. Check first, pay second (blocklist -> limits -> ledger -> dispatch)
2. Fail early, fail visibly
3. Overrides are allowed but always recorded
4. Every decision must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "MindfulPay Team"
