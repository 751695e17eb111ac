"""
Cash reconciliation core.

Balance derivation, the daily entry engine, the back safe ledger and the
month-close workflow. Everything here works against one account's
CashRecordStore.
"""

from cashsafe.core.balances import BalanceDeriver, fold_back_safe, latest_counted
from cashsafe.core.closing import MonthCloser
from cashsafe.core.ledger import BackSafeLedger, LedgerIssue, build_transfer
from cashsafe.core.periods import current_month, month_bounds, month_of, validate_month
from cashsafe.core.reconciliation import ReconciliationEngine

__all__ = [
    "BackSafeLedger",
    "BalanceDeriver",
    "LedgerIssue",
    "MonthCloser",
    "ReconciliationEngine",
    "build_transfer",
    "current_month",
    "fold_back_safe",
    "latest_counted",
    "month_bounds",
    "month_of",
    "validate_month",
]
