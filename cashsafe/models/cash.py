"""
Core Data Models for Cash Safe Reconciler

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep every monetary value in fixed-point decimal (two places)
3. Be serializable for storage and logging
4. Support the audit trail

DESIGN DECISION: Balances are NOT modelled as stored fields.
The front safe is "whatever was last counted" and the back safe is the
signed sum of its ledger. See cashsafe.core.balances.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Absorbs rounding noise only; it is not a business allowance.
BALANCE_TOLERANCE = Decimal("0.01")

Money = Annotated[Decimal, Field(decimal_places=2)]
NonNegativeMoney = Annotated[Decimal, Field(ge=0, decimal_places=2)]


def quantize_money(value: Decimal) -> Decimal:
    """Round a decimal to whole cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a back safe ledger row."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class EntryStatus(str, Enum):
    """
    Reconciliation status of a daily entry.

    OFF means an unresolved discrepancy: the count did not match and
    nobody has approved it yet.
    """
    BALANCED = "balanced"
    APPROVED = "approved"
    OFF = "off"


# =============================================================================
# DAILY ENTRY
# =============================================================================

class DailyEntry(BaseModel):
    """
    One day of front safe activity.

    expected_front_safe and difference are computed by the reconciliation
    engine; callers never set them directly.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique entry ID"
    )
    entry_date: date = Field(
        ...,
        description="Calendar day this entry covers (one entry per day)"
    )

    # Figures entered by staff
    cash_in: NonNegativeMoney = Field(
        ...,
        description="Cash received that day"
    )
    deposited: NonNegativeMoney = Field(
        ...,
        description="Cash removed for the bank deposit"
    )
    to_back_safe: NonNegativeMoney = Field(
        ...,
        description="Cash moved into the back safe"
    )
    actual_left_in_front: NonNegativeMoney = Field(
        ...,
        description="Cash physically counted in the front safe"
    )

    # Computed by the engine
    expected_front_safe: Money = Field(
        ...,
        description="previous balance + cash_in - deposited - to_back_safe"
    )
    difference: Money = Field(
        ...,
        description="actual_left_in_front - expected_front_safe"
    )

    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Explanation of a discrepancy"
    )

    # Manual approval (an override, never alters difference)
    manually_approved: bool = False
    approval_note: Optional[str] = Field(
        default=None,
        max_length=1000
    )
    approved_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    @model_validator(mode='after')
    def validate_difference(self) -> 'DailyEntry':
        """difference is always derived from the two front safe figures."""
        if self.difference != self.actual_left_in_front - self.expected_front_safe:
            raise ValueError(
                "Difference must equal actual_left_in_front - expected_front_safe"
            )
        return self

    @property
    def is_balanced(self) -> bool:
        return abs(self.difference) < BALANCE_TOLERANCE

    @property
    def status(self) -> EntryStatus:
        if self.is_balanced:
            return EntryStatus.BALANCED
        if self.manually_approved:
            return EntryStatus.APPROVED
        return EntryStatus.OFF

    @property
    def is_ok(self) -> bool:
        """Balanced, or discrepant but accepted."""
        return self.status != EntryStatus.OFF

    @property
    def month(self) -> str:
        return self.entry_date.strftime("%Y-%m")


class EntryUpdate(BaseModel):
    """
    Fields a caller may change on an existing entry.

    Only fields that were explicitly set are applied, so passing
    notes=None clears the notes while omitting notes leaves them alone.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    entry_date: Optional[date] = None
    cash_in: Optional[Decimal] = None
    deposited: Optional[Decimal] = None
    to_back_safe: Optional[Decimal] = None
    actual_left_in_front: Optional[Decimal] = None
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )

    def changes(self) -> dict:
        """Explicitly set fields, as a dict."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# =============================================================================
# BACK SAFE
# =============================================================================

class BackSafeWithdrawal(BaseModel):
    """A manual removal of cash from the back safe."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique withdrawal ID"
    )
    withdrawal_date: date = Field(
        ...,
        description="Day the cash left the back safe"
    )
    amount: NonNegativeMoney = Field(
        ...,
        description="Amount withdrawn"
    )
    reason: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Why the cash was taken (required)"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    @property
    def month(self) -> str:
        return self.withdrawal_date.strftime("%Y-%m")


class BackSafeTransaction(BaseModel):
    """
    One row of the back safe ledger.

    CRITICAL: The ledger is the only source of truth for the back safe
    balance. Rows are created with their source (a daily entry transfer or
    a withdrawal) and are removed only together with that source.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4
    )
    transaction_date: date
    transaction_type: TransactionType
    amount: NonNegativeMoney
    reason: Optional[str] = Field(
        default=None,
        max_length=500
    )

    # Source links (at most one)
    entry_id: Optional[UUID] = Field(
        default=None,
        description="Daily entry whose transfer created this deposit"
    )
    withdrawal_id: Optional[UUID] = Field(
        default=None,
        description="Withdrawal this row debits"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    @model_validator(mode='after')
    def validate_links(self) -> 'BackSafeTransaction':
        """A row belongs to one source and the source matches its direction."""
        if self.entry_id and self.withdrawal_id:
            raise ValueError("Transaction cannot link to both an entry and a withdrawal")
        if self.entry_id and self.transaction_type != TransactionType.DEPOSIT:
            raise ValueError("Entry transfers must be deposits")
        if self.withdrawal_id and self.transaction_type != TransactionType.WITHDRAWAL:
            raise ValueError("Withdrawal rows must be withdrawals")
        return self

    @property
    def signed_amount(self) -> Decimal:
        if self.transaction_type == TransactionType.DEPOSIT:
            return self.amount
        return -self.amount

    @property
    def month(self) -> str:
        return self.transaction_date.strftime("%Y-%m")


# =============================================================================
# BALANCES AND ARCHIVES
# =============================================================================

class SafeBalances(BaseModel):
    """Derived balances of both safes at one point in time."""

    front_safe: Money = ZERO
    back_safe: Money = ZERO
    last_updated: datetime = Field(
        default_factory=datetime.utcnow
    )


class MonthlyArchive(BaseModel):
    """
    Snapshot of a closed calendar month.

    Starting balances chain off the previous closed month, so the
    archives form an unbroken chain of custody.
    """
    model_config = ConfigDict(frozen=True)

    month: str = Field(
        ...,
        pattern=r"^\d{4}-(0[1-9]|1[0-2])$",
        description="Calendar month, YYYY-MM"
    )
    starting_front_safe: Money = ZERO
    starting_back_safe: Money = ZERO
    ending_front_safe: Money = ZERO
    ending_back_safe: Money = ZERO
    is_closed: bool = False
    closed_at: Optional[datetime] = None

    # Attached for reporting only; not persisted with the archive
    entries: list[DailyEntry] = Field(default_factory=list)
    withdrawals: list[BackSafeWithdrawal] = Field(default_factory=list)

    @property
    def front_safe_change(self) -> Decimal:
        return self.ending_front_safe - self.starting_front_safe

    @property
    def back_safe_change(self) -> Decimal:
        return self.ending_back_safe - self.starting_back_safe


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one submission."""

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    is_valid: bool = Field(
        ...,
        description="True when no error-level issue was found"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    # Warnings don't block but should be shown
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


# =============================================================================
# REPORTING MODELS
# =============================================================================

class MonthSummary(BaseModel):
    """Totals and reconciliation counts for one calendar month."""

    month: str
    entry_count: int = Field(ge=0)
    balanced_count: int = Field(ge=0)
    approved_count: int = Field(ge=0)
    off_count: int = Field(ge=0)

    total_cash_in: Money = ZERO
    total_deposited: Money = ZERO
    total_to_back_safe: Money = ZERO
    total_withdrawn: Money = ZERO
    net_difference: Money = ZERO

    is_closed: bool = False

    @property
    def has_unresolved_discrepancies(self) -> bool:
        return self.off_count > 0
