"""Tests for the daily entry lifecycle."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from cashsafe.exceptions import DuplicateDateError, ValidationError
from cashsafe.models.cash import DailyEntry, EntryStatus, EntryUpdate, TransactionType
from cashsafe.services.storage import NotFoundError


class TestSubmitEntry:
    """submit_entry computes expected and difference."""

    def test_worked_example(self, office, submit, run):
        """Previous 100; in 500, deposited 400, to back 50, actual 150."""
        submit(date(2024, 2, 29), cash_in="100", actual="100")

        entry = submit(
            date(2024, 3, 1),
            cash_in="500", deposited="400", to_back="50", actual="150",
        )

        assert entry.expected_front_safe == Decimal("150.00")
        assert entry.difference == Decimal("0.00")
        assert entry.is_balanced is True

        deposits = [
            t for t in run(office.list_transactions())
            if t.entry_id == entry.id
        ]
        assert len(deposits) == 1
        assert deposits[0].transaction_type == TransactionType.DEPOSIT
        assert deposits[0].amount == Decimal("50.00")
        assert deposits[0].transaction_date == date(2024, 3, 1)
        assert deposits[0].reason == "Transfer from daily entry 2024-03-01"

    def test_sequence_chains_counts(self, office, submit, run):
        """expected(n) = actual(n-1) + in - deposited - to back."""
        days = [
            (date(2024, 3, 1), "300", "100", "50", "150"),
            (date(2024, 3, 2), "200", "150", "0", "195"),
            (date(2024, 3, 3), "400", "300", "100", "200"),
        ]
        previous_actual = Decimal("0.00")
        for day, cash_in, deposited, to_back, actual in days:
            entry = submit(day, cash_in, deposited, to_back, actual)
            expected = previous_actual + Decimal(cash_in) - Decimal(deposited) - Decimal(to_back)
            assert entry.expected_front_safe == expected
            assert entry.difference == Decimal(actual) - expected
            previous_actual = Decimal(actual)

        assert run(office.get_front_safe_balance()) == Decimal("200.00")
        assert run(office.get_back_safe_balance()) == Decimal("150.00")

    def test_first_entry_starts_from_zero(self, submit):
        entry = submit(date(2024, 3, 1), cash_in="80", actual="75")
        assert entry.expected_front_safe == Decimal("80.00")
        assert entry.difference == Decimal("-5.00")
        assert entry.status == EntryStatus.OFF

    def test_no_transfer_no_deposit(self, office, submit, run):
        submit(date(2024, 3, 1), cash_in="80", actual="80")
        assert run(office.list_transactions()) == []

    def test_backdated_entry_uses_predecessor(self, submit):
        submit(date(2024, 3, 1), cash_in="100", actual="100")
        submit(date(2024, 3, 10), cash_in="900", actual="1000")

        backdated = submit(date(2024, 3, 5), cash_in="20", actual="120")
        assert backdated.expected_front_safe == Decimal("120.00")
        assert backdated.is_balanced is True

    def test_backdated_entry_does_not_recompute_later(self, office, submit, run):
        submit(date(2024, 3, 1), cash_in="100", actual="100")
        later = submit(date(2024, 3, 10), cash_in="900", actual="1000")
        submit(date(2024, 3, 5), cash_in="20", actual="120")

        stored = run(office.get_entry(later.id))
        assert stored.expected_front_safe == later.expected_front_safe

    def test_duplicate_date_rejected(self, office, submit, run):
        submit(date(2024, 3, 1), cash_in="100", actual="100")
        with pytest.raises(DuplicateDateError):
            submit(date(2024, 3, 1), cash_in="5", actual="105")
        assert len(run(office.list_entries())) == 1

    def test_negative_amount_rejected_before_write(self, office, submit, run):
        with pytest.raises(ValidationError):
            submit(date(2024, 3, 1), cash_in="-1", actual="0")
        assert run(office.list_entries()) == []

    def test_notes_are_kept(self, submit):
        entry = submit(date(2024, 3, 1), cash_in="10", actual="5", notes=" short 5 ")
        assert entry.notes == "short 5"

    def test_oversized_amount_rejected(self, office, run, audit_storage):
        with pytest.raises(ValidationError) as exc_info:
            run(office.submit_entry(date(2024, 3, 1), "1e30", "0", "0", "0"))
        assert exc_info.value.issues[0].issue_type == "too_large"
        assert run(office.list_entries()) == []
        assert audit_storage.events[-1].error_code == "validation_error"

    def test_overlong_notes_rejected_before_write(self, office, run):
        with pytest.raises(ValidationError) as exc_info:
            run(office.submit_entry(date(2024, 3, 1), "10", "0", "0", "10", notes="x" * 1001))
        assert exc_info.value.issues[0].field == "notes"
        assert run(office.list_entries()) == []

    def test_accepts_iso_date_string(self, office, run):
        entry = run(office.submit_entry("2024-03-01", "10", "0", "0", "10"))
        assert entry.entry_date == date(2024, 3, 1)


class TestApproval:
    """Manual approval of discrepancies."""

    def test_approve_keeps_difference(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", actual="90")

        approved = run(office.approve(entry.id, "Till miscount, confirmed"))
        assert approved.difference == entry.difference
        assert approved.status == EntryStatus.APPROVED
        assert approved.approval_note == "Till miscount, confirmed"
        assert approved.approved_at is not None
        assert approved.is_balanced is False

    def test_remove_approval_returns_to_off(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", actual="90")
        run(office.approve(entry.id, "ok"))

        cleared = run(office.remove_approval(entry.id))
        assert cleared.status == EntryStatus.OFF
        assert cleared.approval_note is None
        assert cleared.approved_at is None
        assert run(office.get_entry(entry.id)).manually_approved is False

    def test_blank_note_rejected(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", actual="90")
        with pytest.raises(ValidationError):
            run(office.approve(entry.id, "   "))
        assert run(office.get_entry(entry.id)).manually_approved is False

    def test_overlong_note_rejected(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", actual="90")
        with pytest.raises(ValidationError) as exc_info:
            run(office.approve(entry.id, "n" * 1500))
        assert exc_info.value.issues[0].issue_type == "too_long"

        stored = run(office.get_entry(entry.id))
        assert stored.manually_approved is False
        assert stored.approval_note is None

    def test_approved_entry_stays_valid(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", actual="90")
        approved = run(office.approve(entry.id, "n" * 1000))
        assert DailyEntry.model_validate(approved.model_dump()) == approved

    def test_unknown_entry(self, office, run):
        with pytest.raises(NotFoundError):
            run(office.approve(uuid4(), "ok"))

    def test_unresolved_entries(self, office, submit, run):
        off = submit(date(2024, 3, 1), cash_in="100", actual="90")
        approved = submit(date(2024, 3, 2), cash_in="10", actual="95")
        submit(date(2024, 3, 3), cash_in="5", actual="100")
        run(office.approve(approved.id, "ok"))

        unresolved = run(office.unresolved_entries())
        assert [e.id for e in unresolved] == [off.id]


class TestEditEntry:
    """edit_entry recomputes and keeps the deposit in sync."""

    def test_recomputes_against_predecessor(self, office, submit, run):
        submit(date(2024, 3, 1), cash_in="100", actual="100")
        entry = submit(date(2024, 3, 2), cash_in="50", actual="150")

        edited = run(office.edit_entry(entry.id, EntryUpdate(actual_left_in_front=Decimal("140"))))
        assert edited.expected_front_safe == Decimal("150.00")
        assert edited.difference == Decimal("-10.00")
        assert edited.cash_in == Decimal("50.00")

    def test_keeps_approval(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", actual="90")
        run(office.approve(entry.id, "ok"))

        edited = run(office.edit_entry(entry.id, EntryUpdate(notes="recounted")))
        assert edited.manually_approved is True
        assert edited.approval_note == "ok"
        assert edited.notes == "recounted"

    def test_transfer_updated_in_place(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", to_back="40", actual="60")
        original = run(office.list_transactions())[0]

        run(office.edit_entry(entry.id, EntryUpdate(to_back_safe=Decimal("70"), actual_left_in_front=Decimal("30"))))

        ledger = run(office.list_transactions())
        assert len(ledger) == 1
        assert ledger[0].id == original.id
        assert ledger[0].amount == Decimal("70.00")
        assert run(office.get_back_safe_balance()) == Decimal("70.00")

    def test_transfer_removed_when_zeroed(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", to_back="40", actual="60")
        run(office.edit_entry(entry.id, EntryUpdate(to_back_safe=Decimal("0"), actual_left_in_front=Decimal("100"))))

        assert run(office.list_transactions()) == []
        assert run(office.get_back_safe_balance()) == Decimal("0.00")

    def test_transfer_created_when_added(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", actual="100")
        run(office.edit_entry(entry.id, EntryUpdate(to_back_safe=Decimal("25"), actual_left_in_front=Decimal("75"))))

        assert run(office.get_back_safe_balance()) == Decimal("25.00")
        assert run(office.verify_ledger()) == []

    def test_moving_date_moves_deposit(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", to_back="40", actual="60")
        run(office.edit_entry(entry.id, EntryUpdate(entry_date=date(2024, 3, 4))))

        assert run(office.list_transactions())[0].transaction_date == date(2024, 3, 4)

    def test_moving_onto_taken_date_rejected(self, office, submit, run):
        submit(date(2024, 3, 1), cash_in="100", actual="100")
        entry = submit(date(2024, 3, 2), cash_in="10", actual="110")

        with pytest.raises(DuplicateDateError):
            run(office.edit_entry(entry.id, EntryUpdate(entry_date=date(2024, 3, 1))))
        assert run(office.get_entry(entry.id)).entry_date == date(2024, 3, 2)

    def test_invalid_figure_rejected_before_write(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", actual="100")
        with pytest.raises(ValidationError):
            run(office.edit_entry(entry.id, EntryUpdate(cash_in=Decimal("-5"))))
        assert run(office.get_entry(entry.id)).cash_in == Decimal("100.00")

    def test_unknown_entry(self, office, run):
        with pytest.raises(NotFoundError):
            run(office.edit_entry(uuid4(), EntryUpdate(notes="x")))


class TestDeleteEntry:
    """delete_entry removes the deposit too."""

    def test_cascade(self, office, submit, run):
        entry = submit(date(2024, 3, 1), cash_in="100", to_back="40", actual="60")
        assert run(office.get_back_safe_balance()) == Decimal("40.00")

        run(office.delete_entry(entry.id))

        assert run(office.get_entry(entry.id)) is None
        assert run(office.list_transactions()) == []
        assert run(office.get_back_safe_balance()) == Decimal("0.00")

    def test_front_safe_falls_back_to_previous(self, office, submit, run):
        submit(date(2024, 3, 1), cash_in="100", actual="100")
        entry = submit(date(2024, 3, 2), cash_in="50", actual="150")

        run(office.delete_entry(entry.id))
        assert run(office.get_front_safe_balance()) == Decimal("100.00")

    def test_unknown_entry(self, office, run):
        with pytest.raises(NotFoundError):
            run(office.delete_entry(uuid4()))


class TestListEntries:
    """Listing and month filtering."""

    def test_newest_first_with_month_filter(self, office, submit, run):
        submit(date(2024, 2, 28), cash_in="1", actual="1")
        submit(date(2024, 3, 2), cash_in="1", actual="2")
        submit(date(2024, 3, 1), cash_in="1", actual="3")

        march = run(office.list_entries("2024-03"))
        assert [e.entry_date for e in march] == [date(2024, 3, 2), date(2024, 3, 1)]
        assert len(run(office.list_entries())) == 3

    def test_bad_month(self, office, run):
        with pytest.raises(ValidationError):
            run(office.list_entries("March"))
