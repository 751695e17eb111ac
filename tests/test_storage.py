"""
Tests for the record stores.

The Google Sheets store runs against in-process fake worksheets that
implement the handful of gspread calls the adapter makes.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from cashsafe.models.audit import AuditEventBuilder
from cashsafe.models.cash import (
    BackSafeTransaction,
    BackSafeWithdrawal,
    DailyEntry,
    MonthlyArchive,
    TransactionType,
)
from cashsafe.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsCashStore,
    InMemoryCashStore,
    NotFoundError,
    StoreUnavailableError,
)
from cashsafe.services.storage.google_sheets import (
    ARCHIVE_COLUMNS,
    AUDIT_COLUMNS,
    ENTRY_COLUMNS,
    TRANSACTION_COLUMNS,
    WITHDRAWAL_COLUMNS,
)


def make_entry(day: date, to_back: str = "0") -> DailyEntry:
    return DailyEntry(
        entry_date=day,
        cash_in=Decimal("100.00"),
        deposited=Decimal("0.00"),
        to_back_safe=Decimal(to_back),
        actual_left_in_front=Decimal("100.00") - Decimal(to_back),
        expected_front_safe=Decimal("100.00") - Decimal(to_back),
        difference=Decimal("0.00"),
        notes="first day",
    )


def deposit_for(entry: DailyEntry) -> BackSafeTransaction:
    return BackSafeTransaction(
        transaction_date=entry.entry_date,
        transaction_type=TransactionType.DEPOSIT,
        amount=entry.to_back_safe,
        reason="Transfer",
        entry_id=entry.id,
    )


def make_withdrawal(amount: str = "10") -> tuple[BackSafeWithdrawal, BackSafeTransaction]:
    withdrawal = BackSafeWithdrawal(
        withdrawal_date=date(2024, 3, 2),
        amount=Decimal(amount),
        reason="bank drop",
    )
    transaction = BackSafeTransaction(
        transaction_date=withdrawal.withdrawal_date,
        transaction_type=TransactionType.WITHDRAWAL,
        amount=withdrawal.amount,
        reason=withdrawal.reason,
        withdrawal_id=withdrawal.id,
    )
    return withdrawal, transaction


# =============================================================================
# In-memory store
# =============================================================================

class TestInMemoryStore:
    """Account scoping and cascades."""

    def test_accounts_are_isolated(self, backend, run):
        shop = InMemoryCashStore("shop-1", backend)
        other = InMemoryCashStore("shop-2", backend)

        entry = make_entry(date(2024, 3, 1), to_back="40")
        run(shop.create_entry(entry, deposit_for(entry)))

        assert run(other.list_entries()) == []
        assert run(other.list_transactions()) == []
        assert run(other.get_entry(entry.id)) is None
        # Same date is free in another account
        run(other.create_entry(make_entry(date(2024, 3, 1))))

    def test_account_required(self, backend):
        with pytest.raises(ValueError):
            InMemoryCashStore("", backend)

    def test_returns_copies(self, store, run):
        entry = make_entry(date(2024, 3, 1))
        run(store.create_entry(entry))

        fetched = run(store.get_entry(entry.id))
        fetched.notes = "changed"
        assert run(store.get_entry(entry.id)).notes == "first day"

    def test_duplicate_date(self, store, run):
        run(store.create_entry(make_entry(date(2024, 3, 1))))
        with pytest.raises(DuplicateError):
            run(store.create_entry(make_entry(date(2024, 3, 1))))

    def test_delete_cascades(self, store, run):
        entry = make_entry(date(2024, 3, 1), to_back="40")
        run(store.create_entry(entry, deposit_for(entry)))

        deleted = run(store.delete_entry(entry.id))
        assert deleted.id == entry.id
        assert run(store.list_transactions()) == []

    def test_update_with_none_removes_transfer(self, store, run):
        entry = make_entry(date(2024, 3, 1), to_back="40")
        run(store.create_entry(entry, deposit_for(entry)))

        run(store.update_entry_with_transfer(entry, None))
        assert run(store.get_linked_transaction(entry_id=entry.id)) is None

    def test_missing_ids(self, store, run):
        with pytest.raises(NotFoundError):
            run(store.delete_entry(uuid4()))
        with pytest.raises(NotFoundError):
            run(store.update_entry(make_entry(date(2024, 3, 1))))
        with pytest.raises(NotFoundError):
            run(store.delete_withdrawal(uuid4()))

    def test_linked_lookup_requires_an_id(self, store, run):
        with pytest.raises(ValueError):
            run(store.get_linked_transaction())

    def test_archive_upsert_drops_attachments(self, store, run):
        entry = make_entry(date(2024, 3, 1))
        run(store.save_archive(MonthlyArchive(month="2024-03", entries=[entry])))
        run(store.save_archive(MonthlyArchive(month="2024-03", is_closed=True)))

        archives = run(store.list_archives())
        assert len(archives) == 1
        assert archives[0].is_closed is True
        assert archives[0].entries == []

    def test_archives_are_copies(self, store, run):
        run(store.save_archive(MonthlyArchive(month="2024-03", is_closed=True)))

        fetched = run(store.get_archive("2024-03"))
        fetched.entries.append(make_entry(date(2024, 3, 1)))
        run(store.list_archives())[0].entries.append(make_entry(date(2024, 3, 2)))

        stored = run(store.get_archive("2024-03"))
        assert stored.entries == []


# =============================================================================
# Google Sheets store against fakes
# =============================================================================

class FakeWorksheet:
    """Minimal stand-in for gspread.Worksheet."""

    def __init__(self, columns: list[str]):
        self.rows: list[list] = [list(columns)]
        self.fail_appends = False
        self.fail_deletes = False

    def get_all_values(self) -> list[list[str]]:
        return [[str(cell) for cell in row] for row in self.rows]

    def append_row(self, row, value_input_option=None):
        if self.fail_appends:
            raise RuntimeError("quota exceeded")
        self.rows.append(list(row))

    def update(self, range_name=None, values=None, value_input_option=None):
        index = int(range_name[1:]) - 1
        self.rows[index] = list(values[0])

    def delete_rows(self, index):
        if self.fail_deletes:
            raise RuntimeError("quota exceeded")
        del self.rows[index - 1]


class FakeSheetsClient:
    """Stand-in for GoogleSheetsClient with one fake worksheet per collection."""

    def __init__(self):
        self.entries = FakeWorksheet(ENTRY_COLUMNS)
        self.withdrawals = FakeWorksheet(WITHDRAWAL_COLUMNS)
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)
        self.archives = FakeWorksheet(ARCHIVE_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_entries_sheet(self):
        return self.entries

    def get_withdrawals_sheet(self):
        return self.withdrawals

    def get_transactions_sheet(self):
        return self.transactions

    def get_archives_sheet(self):
        return self.archives

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture
def sheets():
    return FakeSheetsClient()


@pytest.fixture
def sheets_store(sheets):
    return GoogleSheetsCashStore("shop-1", sheets)


class TestGoogleSheetsCashStore:
    """Row mapping, account filtering and compensation."""

    def test_entry_round_trip(self, sheets, sheets_store, run):
        entry = make_entry(date(2024, 3, 1), to_back="40")
        run(sheets_store.create_entry(entry, deposit_for(entry)))

        assert len(sheets.entries.rows) == 2
        assert sheets.entries.rows[1][1] == "shop-1"

        fetched = run(sheets_store.get_entry(entry.id))
        assert fetched == entry
        assert run(sheets_store.get_entry_by_date(date(2024, 3, 1))).id == entry.id

        linked = run(sheets_store.get_linked_transaction(entry_id=entry.id))
        assert linked.amount == Decimal("40.00")
        assert linked.transaction_type == TransactionType.DEPOSIT

    def test_rows_of_other_accounts_are_invisible(self, sheets, sheets_store, run):
        other = GoogleSheetsCashStore("shop-2", sheets)
        run(other.create_entry(make_entry(date(2024, 3, 1))))

        assert run(sheets_store.list_entries()) == []
        # Same date is free for this account
        run(sheets_store.create_entry(make_entry(date(2024, 3, 1))))
        assert len(run(other.list_entries())) == 1

    def test_duplicate_date(self, sheets_store, run):
        run(sheets_store.create_entry(make_entry(date(2024, 3, 1))))
        with pytest.raises(DuplicateError):
            run(sheets_store.create_entry(make_entry(date(2024, 3, 1))))

    def test_failed_transfer_removes_entry(self, sheets, sheets_store, run):
        sheets.transactions.fail_appends = True
        entry = make_entry(date(2024, 3, 1), to_back="40")

        with pytest.raises(StoreUnavailableError):
            run(sheets_store.create_entry(entry, deposit_for(entry)))
        assert run(sheets_store.list_entries()) == []

    def test_update_with_transfer(self, sheets, sheets_store, run):
        entry = make_entry(date(2024, 3, 1), to_back="40")
        transfer = deposit_for(entry)
        run(sheets_store.create_entry(entry, transfer))

        changed = entry.model_copy(update={"notes": "recounted"})
        run(sheets_store.update_entry_with_transfer(
            changed,
            transfer.model_copy(update={"amount": Decimal("45.00")}),
        ))

        assert run(sheets_store.get_entry(entry.id)).notes == "recounted"
        ledger = run(sheets_store.list_transactions())
        assert [t.amount for t in ledger] == [Decimal("45.00")]

        run(sheets_store.update_entry_with_transfer(changed, None))
        assert run(sheets_store.list_transactions()) == []

    def test_delete_cascades(self, sheets, sheets_store, run):
        first = make_entry(date(2024, 3, 1), to_back="40")
        second = make_entry(date(2024, 3, 2), to_back="10")
        run(sheets_store.create_entry(first, deposit_for(first)))
        run(sheets_store.create_entry(second, deposit_for(second)))

        run(sheets_store.delete_entry(first.id))

        assert [e.id for e in run(sheets_store.list_entries())] == [second.id]
        assert [t.entry_id for t in run(sheets_store.list_transactions())] == [second.id]

    def test_failed_delete_restores_transfer(self, sheets, sheets_store, run):
        entry = make_entry(date(2024, 3, 1), to_back="40")
        run(sheets_store.create_entry(entry, deposit_for(entry)))
        sheets.entries.fail_deletes = True

        with pytest.raises(StoreUnavailableError):
            run(sheets_store.delete_entry(entry.id))
        assert run(sheets_store.get_linked_transaction(entry_id=entry.id)) is not None

    def test_missing_entry(self, sheets_store, run):
        with pytest.raises(NotFoundError):
            run(sheets_store.delete_entry(uuid4()))

    def test_withdrawal_lifecycle(self, sheets_store, run):
        withdrawal, transaction = make_withdrawal("10")
        run(sheets_store.create_withdrawal(withdrawal, transaction))
        assert run(sheets_store.get_withdrawal(withdrawal.id)) == withdrawal

        bigger = withdrawal.model_copy(update={"amount": Decimal("25.00")})
        run(sheets_store.update_withdrawal(
            bigger,
            transaction.model_copy(update={"amount": Decimal("25.00")}),
        ))
        assert run(sheets_store.get_linked_transaction(withdrawal_id=withdrawal.id)).amount == Decimal("25.00")

        run(sheets_store.delete_withdrawal(withdrawal.id))
        assert run(sheets_store.list_withdrawals()) == []
        assert run(sheets_store.list_transactions()) == []

    def test_archive_upsert(self, sheets, sheets_store, run):
        run(sheets_store.save_archive(MonthlyArchive(month="2024-03")))
        run(sheets_store.save_archive(MonthlyArchive(
            month="2024-03",
            ending_front_safe=Decimal("150.00"),
            is_closed=True,
            closed_at=datetime(2024, 4, 1, 9, 0),
        )))

        assert len(sheets.archives.rows) == 2
        archive = run(sheets_store.get_archive("2024-03"))
        assert archive.is_closed is True
        assert archive.ending_front_safe == Decimal("150.00")
        assert archive.closed_at == datetime(2024, 4, 1, 9, 0)

    def test_backend_failure_is_wrapped(self, sheets, sheets_store, run):
        def broken():
            raise RuntimeError("network down")

        sheets.get_entries_sheet = broken
        with pytest.raises(StoreUnavailableError, match="network down"):
            run(sheets_store.list_entries())


class TestGoogleSheetsAuditStorage:
    """Audit rows round-trip through the sheet."""

    def test_append_and_query(self, sheets, run):
        storage = GoogleSheetsAuditStorage(sheets)
        correlation_id = uuid4()
        entry_id = uuid4()
        event = AuditEventBuilder.entry_approved(
            entry_id=entry_id,
            note="miscount",
            difference=Decimal("-5.00"),
            correlation_id=correlation_id,
        ).model_copy(update={"account_id": "shop-1"})

        assert run(storage.append_event(event)) is True

        by_correlation = run(storage.get_events_by_correlation_id(correlation_id))
        assert len(by_correlation) == 1
        assert by_correlation[0].details["approval_note"] == "miscount"
        assert by_correlation[0].account_id == "shop-1"

        by_entity = run(storage.get_events_by_entity("entry", str(entry_id)))
        assert by_entity[0].event_id == event.event_id
        assert len(run(storage.get_recent_events(limit=10))) == 1
