"""
Data Models Package

This package contains all Pydantic models used in the Cash Safe Reconciler.
All data flowing through the system must conform to these schemas.
"""

from cashsafe.models.cash import (
    BALANCE_TOLERANCE,
    ZERO,
    BackSafeTransaction,
    BackSafeWithdrawal,
    DailyEntry,
    EntryStatus,
    EntryUpdate,
    MonthlyArchive,
    MonthSummary,
    SafeBalances,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    quantize_money,
)
from cashsafe.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Cash models
    "BALANCE_TOLERANCE",
    "ZERO",
    "BackSafeTransaction",
    "BackSafeWithdrawal",
    "DailyEntry",
    "EntryStatus",
    "EntryUpdate",
    "MonthlyArchive",
    "MonthSummary",
    "SafeBalances",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "quantize_money",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
