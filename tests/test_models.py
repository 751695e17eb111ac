"""
Tests for Cash Safe Reconciler

Test strategy:
1. Unit tests for individual components (models, validators, balances)
2. Workflow tests through CashOffice against the in-memory store
3. No real API calls in tests (Google Sheets is replaced by fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from cashsafe.models.cash import (
    BackSafeTransaction,
    BackSafeWithdrawal,
    DailyEntry,
    EntryStatus,
    EntryUpdate,
    MonthlyArchive,
    MonthSummary,
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


def make_entry(**overrides) -> DailyEntry:
    fields = dict(
        entry_date=date(2024, 3, 1),
        cash_in=Decimal("500.00"),
        deposited=Decimal("400.00"),
        to_back_safe=Decimal("50.00"),
        actual_left_in_front=Decimal("150.00"),
        expected_front_safe=Decimal("150.00"),
        difference=Decimal("0.00"),
    )
    fields.update(overrides)
    return DailyEntry(**fields)


class TestDailyEntry:
    """Tests for the DailyEntry model."""

    def test_daily_entry_creation(self):
        """Test DailyEntry model creation."""
        entry = make_entry()
        assert entry.month == "2024-03"
        assert entry.is_balanced is True
        assert entry.status == EntryStatus.BALANCED
        assert entry.manually_approved is False

    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            make_entry(cash_in=Decimal("-1.00"))

    def test_rejects_more_than_two_decimals(self):
        with pytest.raises(PydanticValidationError):
            make_entry(cash_in=Decimal("1.005"))

    def test_difference_must_match_counts(self):
        """difference is always actual - expected."""
        with pytest.raises(ValueError, match="Difference must equal"):
            make_entry(difference=Decimal("5.00"))

    def test_discrepancy_is_off_until_approved(self):
        entry = make_entry(
            actual_left_in_front=Decimal("140.00"),
            difference=Decimal("-10.00"),
        )
        assert entry.is_balanced is False
        assert entry.status == EntryStatus.OFF
        assert entry.is_ok is False

        approved = entry.model_copy(update={"manually_approved": True})
        assert approved.status == EntryStatus.APPROVED
        assert approved.is_ok is True
        assert approved.is_balanced is False

    def test_one_cent_is_a_discrepancy(self):
        entry = make_entry(
            actual_left_in_front=Decimal("150.01"),
            difference=Decimal("0.01"),
        )
        assert entry.is_balanced is False

    def test_notes_strip_whitespace(self):
        entry = make_entry(notes="  counted twice  ")
        assert entry.notes == "counted twice"


class TestEntryUpdate:
    """Tests for partial entry updates."""

    def test_only_set_fields_are_changes(self):
        update = EntryUpdate(cash_in=Decimal("10.00"))
        assert update.changes() == {"cash_in": Decimal("10.00")}

    def test_explicit_none_is_a_change(self):
        update = EntryUpdate(notes=None)
        assert update.changes() == {"notes": None}

    def test_empty_update(self):
        assert EntryUpdate().changes() == {}


class TestBackSafeModels:
    """Tests for withdrawals and ledger rows."""

    def test_withdrawal_requires_reason(self):
        with pytest.raises(ValueError):
            BackSafeWithdrawal(
                withdrawal_date=date(2024, 3, 5),
                amount=Decimal("10.00"),
                reason="",
            )

    def test_signed_amount(self):
        deposit = BackSafeTransaction(
            transaction_date=date(2024, 3, 1),
            transaction_type=TransactionType.DEPOSIT,
            amount=Decimal("50.00"),
        )
        withdrawal = BackSafeTransaction(
            transaction_date=date(2024, 3, 1),
            transaction_type=TransactionType.WITHDRAWAL,
            amount=Decimal("20.00"),
        )
        assert deposit.signed_amount == Decimal("50.00")
        assert withdrawal.signed_amount == Decimal("-20.00")

    def test_transaction_links_to_one_source(self):
        with pytest.raises(ValueError, match="both"):
            BackSafeTransaction(
                transaction_date=date(2024, 3, 1),
                transaction_type=TransactionType.DEPOSIT,
                amount=Decimal("50.00"),
                entry_id=uuid4(),
                withdrawal_id=uuid4(),
            )

    def test_entry_link_must_be_deposit(self):
        with pytest.raises(ValueError, match="deposits"):
            BackSafeTransaction(
                transaction_date=date(2024, 3, 1),
                transaction_type=TransactionType.WITHDRAWAL,
                amount=Decimal("50.00"),
                entry_id=uuid4(),
            )

    def test_transaction_is_frozen(self):
        transaction = BackSafeTransaction(
            transaction_date=date(2024, 3, 1),
            transaction_type=TransactionType.DEPOSIT,
            amount=Decimal("50.00"),
        )
        with pytest.raises(PydanticValidationError):
            transaction.amount = Decimal("1.00")


class TestMonthlyArchive:
    """Tests for MonthlyArchive."""

    def test_month_format(self):
        with pytest.raises(ValueError):
            MonthlyArchive(month="2024-13")
        with pytest.raises(ValueError):
            MonthlyArchive(month="2024-3")

    def test_changes(self):
        archive = MonthlyArchive(
            month="2024-03",
            starting_front_safe=Decimal("100.00"),
            starting_back_safe=Decimal("200.00"),
            ending_front_safe=Decimal("150.00"),
            ending_back_safe=Decimal("120.00"),
        )
        assert archive.front_safe_change == Decimal("50.00")
        assert archive.back_safe_change == Decimal("-80.00")


class TestMoney:
    """Tests for money helpers."""

    def test_quantize_rounds_half_up(self):
        assert quantize_money(Decimal("1.005")) == Decimal("1.01")
        assert quantize_money(Decimal("2")) == Decimal("2.00")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ENTRY_SUBMITTED,
            description="Entry submitted",
        )
        assert event.event_type == AuditEventType.ENTRY_SUBMITTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.WITHDRAWAL_RECORDED,
            description="Withdrawal recorded",
            account_id="shop-1",
            details={"amount": "100.00", "reason": "bank drop"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "withdrawal_recorded"
        assert log_dict["account_id"] == "shop-1"
        assert log_dict["details"]["reason"] == "bank drop"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.ENTRY_APPROVED,
            description="Discrepancy approved",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 13  # Expected number of columns
        assert row[2] == "entry_approved"  # event_type
        assert row[12] == "True"  # is_user_action

    def test_audit_event_builder_entry_submitted(self):
        """Test AuditEventBuilder.entry_submitted."""
        correlation_id = uuid4()
        entry_id = uuid4()

        event = AuditEventBuilder.entry_submitted(
            entry_id=entry_id,
            entry_date=date(2024, 3, 1),
            expected=Decimal("150"),
            actual=Decimal("150"),
            difference=Decimal("0"),
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.ENTRY_SUBMITTED
        assert event.entity_id == str(entry_id)
        assert event.correlation_id == correlation_id
        assert event.details["difference"] == "0.00"
        assert event.is_user_action is True

    def test_audit_event_builder_month_reclosed(self):
        """A second close is a warning."""
        event = AuditEventBuilder.month_closed(
            month="2024-03",
            ending_front_safe=Decimal("150.00"),
            ending_back_safe=Decimal("50.00"),
            reclosed=True,
            correlation_id=uuid4(),
        )
        assert event.event_type == AuditEventType.MONTH_RECLOSED
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id == "2024-03"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="cash_in",
                    issue_type="negative",
                    message="cash_in cannot be negative",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="entry_date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0


class TestMonthSummary:
    """Tests for the reporting model."""

    def test_unresolved_flag(self):
        summary = MonthSummary(
            month="2024-03",
            entry_count=3,
            balanced_count=1,
            approved_count=1,
            off_count=1,
        )
        assert summary.has_unresolved_discrepancies is True


class TestEnums:
    """Tests for enum values stored in sheets."""

    def test_transaction_type_values(self):
        assert TransactionType.DEPOSIT.value == "deposit"
        assert TransactionType.WITHDRAWAL.value == "withdrawal"

    def test_entry_status_values(self):
        assert {s.value for s in EntryStatus} == {"balanced", "approved", "off"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
