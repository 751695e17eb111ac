"""
Input Validation for Cash Operations

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - FORMAT VALIDATION (blocking):
- Amounts must be numeric, finite, non-negative, at most two decimals
- Reasons and approval notes must not be blank
- Notes stay within 1000 characters, reasons within 500
- Months must be YYYY-MM
- Any failure raises ValidationError before the store is touched

STAGE 2 - SANITY CHECKS (non-blocking):
- Entry dated too far in the future
- Absurdly large amounts
- These become warnings that the caller writes to the audit log

IMPORTANT: Validation NEVER silently fixes issues.
An amount like 10.005 is rejected, not rounded.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from cashsafe.config import get_settings
from cashsafe.config.settings import AppSettings
from cashsafe.exceptions import ValidationError
from cashsafe.models.cash import CENT, ValidationIssue, ValidationResult


ENTRY_FIGURES = ("cash_in", "deposited", "to_back_safe", "actual_left_in_front")
NOTE_MAX_LENGTH = 1000
REASON_MAX_LENGTH = 500


def _issue(field: str, issue_type: str, message: str, suggested_fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=suggested_fix,
    )


def _length_issue(text: str, field: str, max_length: int) -> Optional[ValidationIssue]:
    if len(text) <= max_length:
        return None
    return _issue(
        field, "too_long",
        f"{field} can be at most {max_length} characters, got {len(text)}",
    )


class CashValidator:
    """
    Validates figures entered by staff.

    Stage 1 raises; stage 2 only reports.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    # -------------------------------------------------------------------------
    # Stage 1 - format
    # -------------------------------------------------------------------------

    def _amount_issue(self, value, field: str) -> tuple[Optional[Decimal], Optional[ValidationIssue]]:
        if value is None or isinstance(value, bool):
            return None, _issue(field, "missing", f"{field} is required")

        if isinstance(value, float):
            # Go through repr so 0.1 stays 0.1 instead of its binary expansion
            value = repr(value)
        try:
            amount = Decimal(str(value).strip()) if not isinstance(value, Decimal) else value
        except (InvalidOperation, ValueError):
            return None, _issue(
                field, "invalid_format",
                f"{field} must be a number, got {value!r}",
                suggested_fix="Enter an amount like 125.50",
            )

        if not amount.is_finite():
            return None, _issue(field, "invalid_format", f"{field} must be a finite number")
        if amount < 0:
            return None, _issue(
                field, "negative",
                f"{field} cannot be negative",
                suggested_fix="Enter the amount without a minus sign",
            )
        try:
            quantized = amount.quantize(CENT)
        except InvalidOperation:
            return None, _issue(
                field, "too_large",
                f"{field} is too large to record",
            )
        if amount != quantized:
            return None, _issue(
                field, "too_precise",
                f"{field} can have at most two decimal places",
            )
        return quantized, None

    def parse_amount(self, value, field: str = "amount") -> Decimal:
        """
        Parse a monetary amount.

        Raises:
            ValidationError: If the amount is missing, malformed, negative
                or has more than two decimal places
        """
        amount, issue = self._amount_issue(value, field)
        if issue:
            raise ValidationError([issue])
        return amount

    def require_text(self, value: Optional[str], field: str, max_length: int = NOTE_MAX_LENGTH) -> str:
        """Return the stripped text, or raise ValidationError if blank or too long."""
        text = (value or "").strip()
        if not text:
            raise ValidationError.single(
                field=field,
                issue_type="missing",
                message=f"{field} is required",
            )
        issue = _length_issue(text, field, max_length)
        if issue:
            raise ValidationError([issue])
        return text

    def clean_notes(self, value: Optional[str]) -> Optional[str]:
        """Optional free text: stripped, None when blank."""
        text = (value or "").strip()
        issue = _length_issue(text, "notes", NOTE_MAX_LENGTH)
        if issue:
            raise ValidationError([issue])
        return text or None

    def parse_date(self, value, field: str = "date") -> date:
        """Accept a date or an ISO "YYYY-MM-DD" string."""
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                pass
        raise ValidationError.single(
            field=field,
            issue_type="invalid_format",
            message=f"{field} must be a date (YYYY-MM-DD), got {value!r}",
        )

    # -------------------------------------------------------------------------
    # Stage 2 - sanity
    # -------------------------------------------------------------------------

    def _date_warnings(self, day: date, label: str, today: date) -> list[str]:
        tolerance = timedelta(days=self._settings.future_date_tolerance_days)
        if day > today + tolerance:
            return [f"{label} {day.isoformat()} is in the future"]
        return []

    def _amount_warnings(self, figures: dict[str, Decimal]) -> list[str]:
        limit = self._settings.max_daily_amount
        return [
            f"{field} of {amount:.2f} is unusually large (over {limit:.2f})"
            for field, amount in figures.items()
            if amount > limit
        ]

    # -------------------------------------------------------------------------
    # Full checks
    # -------------------------------------------------------------------------

    def check_entry(
        self,
        entry_date: Optional[date],
        figures: dict[str, object],
        today: Optional[date] = None,
    ) -> tuple[dict[str, Decimal], ValidationResult]:
        """
        Validate the figures of a daily entry (all four, or a subset on edit).

        Every figure is checked so the caller gets all problems at once.

        Returns:
            (parsed_figures, result) where result.warnings holds the
            non-blocking findings

        Raises:
            ValidationError: If any figure fails stage 1
        """
        parsed: dict[str, Decimal] = {}
        issues: list[ValidationIssue] = []

        for field, value in figures.items():
            amount, issue = self._amount_issue(value, field)
            if issue:
                issues.append(issue)
            else:
                parsed[field] = amount

        if issues:
            raise ValidationError(issues)

        warnings = self._amount_warnings(parsed)
        if entry_date is not None:
            warnings += self._date_warnings(entry_date, "Entry date", today or date.today())

        return parsed, ValidationResult(is_valid=True, warnings=warnings)

    def check_withdrawal(
        self,
        amount,
        reason: Optional[str],
        withdrawal_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> tuple[Decimal, str, ValidationResult]:
        """
        Validate a withdrawal.

        Returns:
            (amount, reason, result)

        Raises:
            ValidationError: If the amount is malformed or the reason is blank
        """
        issues: list[ValidationIssue] = []

        parsed, issue = self._amount_issue(amount, "amount")
        if issue:
            issues.append(issue)

        text = (reason or "").strip()
        if not text:
            issues.append(_issue(
                "reason", "missing",
                "A reason is required for every withdrawal",
                suggested_fix="Say where the cash went, e.g. 'bank drop'",
            ))
        else:
            issue = _length_issue(text, "reason", REASON_MAX_LENGTH)
            if issue:
                issues.append(issue)

        if issues:
            raise ValidationError(issues)

        warnings = self._amount_warnings({"amount": parsed})
        if withdrawal_date is not None:
            warnings += self._date_warnings(withdrawal_date, "Withdrawal date", today or date.today())

        return parsed, text, ValidationResult(is_valid=True, warnings=warnings)
