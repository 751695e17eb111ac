"""
Typed exceptions raised by the cash reconciliation core.

Callers (UI, scripts) catch these by type and present them; the core never
turns a failed operation into a silent no-op. Every check that can raise
one of these runs before the record store is written to.

Storage failures live next to the storage interface
(cashsafe.services.storage.interface) and are re-exported by the
package root for convenience.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from cashsafe.models.cash import ValidationIssue


class CashOfficeError(Exception):
    """Base exception for rejected cash operations."""

    code = "cash_office_error"


class ValidationError(CashOfficeError):
    """Input is missing or malformed (blank reason/note, bad amount, bad month)."""

    code = "validation_error"

    def __init__(self, issues: list[ValidationIssue], message: Optional[str] = None):
        self.issues = issues
        if message is None:
            message = "; ".join(issue.message for issue in issues) or "Invalid input"
        super().__init__(message)

    @classmethod
    def single(
        cls,
        field: str,
        issue_type: str,
        message: str,
        suggested_fix: Optional[str] = None,
    ) -> "ValidationError":
        return cls([
            ValidationIssue(
                field=field,
                issue_type=issue_type,
                message=message,
                severity="error",
                suggested_fix=suggested_fix,
            )
        ])


class DuplicateDateError(CashOfficeError):
    """A daily entry already exists for this date."""

    code = "duplicate_date"

    def __init__(self, entry_date: date):
        self.entry_date = entry_date
        super().__init__(
            f"An entry for {entry_date.isoformat()} already exists; edit it instead"
        )


class InsufficientFundsError(CashOfficeError):
    """The back safe does not hold enough cash for this withdrawal."""

    code = "insufficient_funds"

    def __init__(self, requested: Decimal, available: Decimal):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot withdraw {requested:.2f}: back safe holds {available:.2f}"
        )


class EmptyPeriodError(CashOfficeError):
    """A month without daily entries cannot be closed."""

    code = "empty_period"

    def __init__(self, month: str):
        self.month = month
        super().__init__(f"No daily entries recorded for {month}")
