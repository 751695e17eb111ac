"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the default storage backend because:
1. Shop owners can view their cash records directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (one row per day is fine)
- No transactions (we handle this with careful ordering and compensation)
- Limited query capabilities (we filter in Python)

Every worksheet carries an account_id column; a store instance only reads
and writes rows of its own account.

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing business logic.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, TypeVar
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cashsafe.config import get_settings
from cashsafe.config.settings import GoogleSheetsSettings
from cashsafe.models.cash import (
    BackSafeTransaction,
    BackSafeWithdrawal,
    DailyEntry,
    MonthlyArchive,
    TransactionType,
)
from cashsafe.models.audit import AuditEvent, AuditEventType, AuditSeverity
from cashsafe.services.storage.interface import (
    AuditStorageInterface,
    CashRecordStore,
    DuplicateError,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
)


# Column mappings for each worksheet
ENTRY_COLUMNS = [
    "id",
    "account_id",
    "entry_date",
    "cash_in",
    "deposited",
    "to_back_safe",
    "actual_left_in_front",
    "expected_front_safe",
    "difference",
    "notes",
    "manually_approved",
    "approval_note",
    "approved_at",
    "created_at",
    "updated_at",
]

WITHDRAWAL_COLUMNS = [
    "id",
    "account_id",
    "withdrawal_date",
    "amount",
    "reason",
    "created_at",
    "updated_at",
]

TRANSACTION_COLUMNS = [
    "id",
    "account_id",
    "transaction_date",
    "transaction_type",
    "amount",
    "reason",
    "entry_id",
    "withdrawal_id",
    "created_at",
]

ARCHIVE_COLUMNS = [
    "account_id",
    "month",
    "starting_front_safe",
    "starting_back_safe",
    "ending_front_safe",
    "ending_back_safe",
    "is_closed",
    "closed_at",
    "updated_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "account_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_code",
    "error_message",
    "is_user_action",
]

T = TypeVar("T")

# Transient API failures (quota, 5xx) are retried; anything else surfaces.
sheets_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StoreUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreUnavailableError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StoreUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_entries_sheet(self) -> gspread.Worksheet:
        """Get or create the daily entries worksheet."""
        return self._get_or_create_sheet(self._settings.entries_sheet_name, ENTRY_COLUMNS)

    def get_withdrawals_sheet(self) -> gspread.Worksheet:
        """Get or create the withdrawals worksheet."""
        return self._get_or_create_sheet(self._settings.withdrawals_sheet_name, WITHDRAWAL_COLUMNS)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the back safe ledger worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=2000,
        )

    def get_archives_sheet(self) -> gspread.Worksheet:
        """Get or create the monthly archives worksheet."""
        return self._get_or_create_sheet(self._settings.archives_sheet_name, ARCHIVE_COLUMNS, rows=200)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


# =============================================================================
# Cell conversion helpers
# =============================================================================

def _cell(row: list, index: int) -> str:
    try:
        return row[index] or ""
    except IndexError:
        return ""


def _opt_date(value: str) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _opt_datetime(value: str) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _opt_uuid(value: str) -> Optional[UUID]:
    return UUID(value) if value else None


def _iso(value) -> str:
    return value.isoformat() if value else ""


def _bool(value: str) -> bool:
    return value.strip().lower() == "true"


class GoogleSheetsCashStore(CashRecordStore):
    """
    Google Sheets implementation of the cash record store.

    One row per record; the first row of every worksheet is the header.
    """

    def __init__(self, account_id: str, client: Optional[GoogleSheetsClient] = None):
        if not account_id:
            raise ValueError("account_id is required")
        self._account_id = account_id
        self._client = client or GoogleSheetsClient()

    @property
    def account_id(self) -> str:
        return self._account_id

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    def _entry_to_row(self, entry: DailyEntry) -> list:
        """Convert a DailyEntry to a spreadsheet row."""
        return [
            str(entry.id),
            self._account_id,
            entry.entry_date.isoformat(),
            str(entry.cash_in),
            str(entry.deposited),
            str(entry.to_back_safe),
            str(entry.actual_left_in_front),
            str(entry.expected_front_safe),
            str(entry.difference),
            entry.notes or "",
            str(entry.manually_approved),
            entry.approval_note or "",
            _iso(entry.approved_at),
            entry.created_at.isoformat(),
            entry.updated_at.isoformat(),
        ]

    def _row_to_entry(self, row: list) -> DailyEntry:
        """Convert a spreadsheet row to a DailyEntry."""
        return DailyEntry(
            id=UUID(_cell(row, 0)),
            entry_date=date.fromisoformat(_cell(row, 2)),
            cash_in=Decimal(_cell(row, 3)),
            deposited=Decimal(_cell(row, 4)),
            to_back_safe=Decimal(_cell(row, 5)),
            actual_left_in_front=Decimal(_cell(row, 6)),
            expected_front_safe=Decimal(_cell(row, 7)),
            difference=Decimal(_cell(row, 8)),
            notes=_cell(row, 9) or None,
            manually_approved=_bool(_cell(row, 10)),
            approval_note=_cell(row, 11) or None,
            approved_at=_opt_datetime(_cell(row, 12)),
            created_at=datetime.fromisoformat(_cell(row, 13)),
            updated_at=datetime.fromisoformat(_cell(row, 14)),
        )

    def _withdrawal_to_row(self, withdrawal: BackSafeWithdrawal) -> list:
        return [
            str(withdrawal.id),
            self._account_id,
            withdrawal.withdrawal_date.isoformat(),
            str(withdrawal.amount),
            withdrawal.reason,
            withdrawal.created_at.isoformat(),
            withdrawal.updated_at.isoformat(),
        ]

    def _row_to_withdrawal(self, row: list) -> BackSafeWithdrawal:
        return BackSafeWithdrawal(
            id=UUID(_cell(row, 0)),
            withdrawal_date=date.fromisoformat(_cell(row, 2)),
            amount=Decimal(_cell(row, 3)),
            reason=_cell(row, 4),
            created_at=datetime.fromisoformat(_cell(row, 5)),
            updated_at=datetime.fromisoformat(_cell(row, 6)),
        )

    def _transaction_to_row(self, transaction: BackSafeTransaction) -> list:
        return [
            str(transaction.id),
            self._account_id,
            transaction.transaction_date.isoformat(),
            transaction.transaction_type.value,
            str(transaction.amount),
            transaction.reason or "",
            str(transaction.entry_id) if transaction.entry_id else "",
            str(transaction.withdrawal_id) if transaction.withdrawal_id else "",
            transaction.created_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> BackSafeTransaction:
        return BackSafeTransaction(
            id=UUID(_cell(row, 0)),
            transaction_date=date.fromisoformat(_cell(row, 2)),
            transaction_type=TransactionType(_cell(row, 3)),
            amount=Decimal(_cell(row, 4)),
            reason=_cell(row, 5) or None,
            entry_id=_opt_uuid(_cell(row, 6)),
            withdrawal_id=_opt_uuid(_cell(row, 7)),
            created_at=datetime.fromisoformat(_cell(row, 8)),
        )

    def _archive_to_row(self, archive: MonthlyArchive) -> list:
        return [
            self._account_id,
            archive.month,
            str(archive.starting_front_safe),
            str(archive.starting_back_safe),
            str(archive.ending_front_safe),
            str(archive.ending_back_safe),
            str(archive.is_closed),
            _iso(archive.closed_at),
            datetime.utcnow().isoformat(),
        ]

    def _row_to_archive(self, row: list) -> MonthlyArchive:
        return MonthlyArchive(
            month=_cell(row, 1),
            starting_front_safe=Decimal(_cell(row, 2) or "0.00"),
            starting_back_safe=Decimal(_cell(row, 3) or "0.00"),
            ending_front_safe=Decimal(_cell(row, 4) or "0.00"),
            ending_back_safe=Decimal(_cell(row, 5) or "0.00"),
            is_closed=_bool(_cell(row, 6)),
            closed_at=_opt_datetime(_cell(row, 7)),
        )

    # -------------------------------------------------------------------------
    # Low-level sheet access
    # -------------------------------------------------------------------------

    @sheets_retry
    def _account_rows(self, sheet: gspread.Worksheet, account_col: int = 1) -> list[tuple[int, list]]:
        """
        Rows of this account with their 1-based sheet index.

        Row 1 is the header, so data starts at index 2.
        """
        all_rows = sheet.get_all_values()
        return [
            (idx, row)
            for idx, row in enumerate(all_rows[1:], start=2)
            if row and _cell(row, account_col) == self._account_id
        ]

    def _find(
        self,
        sheet: gspread.Worksheet,
        key: str,
        key_col: int = 0,
        account_col: int = 1,
    ) -> Optional[tuple[int, list]]:
        for idx, row in self._account_rows(sheet, account_col):
            if _cell(row, key_col) == key:
                return idx, row
        return None

    def _linked_rows(
        self,
        sheet: gspread.Worksheet,
        entry_id: Optional[UUID] = None,
        withdrawal_id: Optional[UUID] = None,
    ) -> list[tuple[int, list]]:
        linked = []
        for idx, row in self._account_rows(sheet):
            if entry_id and _cell(row, 6) == str(entry_id):
                linked.append((idx, row))
            elif withdrawal_id and _cell(row, 7) == str(withdrawal_id):
                linked.append((idx, row))
        return linked

    @staticmethod
    def _write_row(sheet: gspread.Worksheet, idx: int, row: list) -> None:
        sheet.update(range_name=f"A{idx}", values=[row], value_input_option="RAW")

    @staticmethod
    def _delete_rows(sheet: gspread.Worksheet, indices: list[int]) -> None:
        # Bottom-up so earlier deletions don't shift later indices
        for idx in sorted(indices, reverse=True):
            sheet.delete_rows(idx)

    def _parse_rows(self, rows: list[tuple[int, list]], parse: Callable[[list], T]) -> list[T]:
        parsed = []
        for _, row in rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            parsed.append(parse(row))
        return parsed

    # -------------------------------------------------------------------------
    # Daily entries
    # -------------------------------------------------------------------------

    async def list_entries(self) -> list[DailyEntry]:
        try:
            sheet = self._client.get_entries_sheet()
            entries = self._parse_rows(self._account_rows(sheet), self._row_to_entry)
        except Exception as e:
            raise StoreUnavailableError(f"Failed to list entries: {e}") from e
        entries.sort(key=lambda e: e.entry_date, reverse=True)
        return entries

    async def get_entry(self, entry_id: UUID) -> Optional[DailyEntry]:
        try:
            found = self._find(self._client.get_entries_sheet(), str(entry_id))
            return self._row_to_entry(found[1]) if found else None
        except Exception as e:
            raise StoreUnavailableError(f"Failed to get entry: {e}") from e

    async def get_entry_by_date(self, entry_date: date) -> Optional[DailyEntry]:
        try:
            found = self._find(self._client.get_entries_sheet(), entry_date.isoformat(), key_col=2)
            return self._row_to_entry(found[1]) if found else None
        except Exception as e:
            raise StoreUnavailableError(f"Failed to get entry: {e}") from e

    def _check_date_free(self, sheet: gspread.Worksheet, entry: DailyEntry) -> None:
        found = self._find(sheet, entry.entry_date.isoformat(), key_col=2)
        if found and _cell(found[1], 0) != str(entry.id):
            raise DuplicateError(
                f"Entry already exists for {entry.entry_date.isoformat()}"
            )

    async def create_entry(
        self,
        entry: DailyEntry,
        transfer: Optional[BackSafeTransaction] = None,
    ) -> DailyEntry:
        try:
            entries_sheet = self._client.get_entries_sheet()
            self._check_date_free(entries_sheet, entry)
            entries_sheet.append_row(self._entry_to_row(entry), value_input_option="RAW")

            if transfer is not None:
                try:
                    self._client.get_transactions_sheet().append_row(
                        self._transaction_to_row(transfer),
                        value_input_option="RAW",
                    )
                except Exception:
                    # Undo the entry so it never exists without its deposit
                    found = self._find(entries_sheet, str(entry.id))
                    if found:
                        entries_sheet.delete_rows(found[0])
                    raise
            return entry
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to save entry: {e}") from e

    async def update_entry(self, entry: DailyEntry) -> DailyEntry:
        try:
            sheet = self._client.get_entries_sheet()
            found = self._find(sheet, str(entry.id))
            if found is None:
                raise NotFoundError(f"Entry not found: {entry.id}")
            self._check_date_free(sheet, entry)
            self._write_row(sheet, found[0], self._entry_to_row(entry))
            return entry
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to update entry: {e}") from e

    async def update_entry_with_transfer(
        self,
        entry: DailyEntry,
        transfer: Optional[BackSafeTransaction],
    ) -> DailyEntry:
        try:
            entries_sheet = self._client.get_entries_sheet()
            found = self._find(entries_sheet, str(entry.id))
            if found is None:
                raise NotFoundError(f"Entry not found: {entry.id}")
            self._check_date_free(entries_sheet, entry)
            entry_idx, old_entry_row = found

            self._write_row(entries_sheet, entry_idx, self._entry_to_row(entry))
            try:
                tx_sheet = self._client.get_transactions_sheet()
                linked = self._linked_rows(tx_sheet, entry_id=entry.id)
                if transfer is not None and linked:
                    self._write_row(tx_sheet, linked[0][0], self._transaction_to_row(transfer))
                    self._delete_rows(tx_sheet, [idx for idx, _ in linked[1:]])
                else:
                    self._delete_rows(tx_sheet, [idx for idx, _ in linked])
                    if transfer is not None:
                        tx_sheet.append_row(
                            self._transaction_to_row(transfer),
                            value_input_option="RAW",
                        )
            except Exception:
                # Put the entry back so it keeps matching its deposit
                self._write_row(entries_sheet, entry_idx, old_entry_row)
                raise
            return entry
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to update entry: {e}") from e

    async def delete_entry(self, entry_id: UUID) -> DailyEntry:
        try:
            entries_sheet = self._client.get_entries_sheet()
            found = self._find(entries_sheet, str(entry_id))
            if found is None:
                raise NotFoundError(f"Entry not found: {entry_id}")
            entry = self._row_to_entry(found[1])

            tx_sheet = self._client.get_transactions_sheet()
            linked = self._linked_rows(tx_sheet, entry_id=entry_id)
            self._delete_rows(tx_sheet, [idx for idx, _ in linked])
            try:
                # Indices in the entries sheet are unaffected by ledger deletes
                entries_sheet.delete_rows(found[0])
            except Exception:
                for _, row in linked:
                    tx_sheet.append_row(row, value_input_option="RAW")
                raise
            return entry
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to delete entry: {e}") from e

    # -------------------------------------------------------------------------
    # Withdrawals
    # -------------------------------------------------------------------------

    async def list_withdrawals(self) -> list[BackSafeWithdrawal]:
        try:
            sheet = self._client.get_withdrawals_sheet()
            withdrawals = self._parse_rows(self._account_rows(sheet), self._row_to_withdrawal)
        except Exception as e:
            raise StoreUnavailableError(f"Failed to list withdrawals: {e}") from e
        withdrawals.sort(key=lambda w: (w.withdrawal_date, w.created_at), reverse=True)
        return withdrawals

    async def get_withdrawal(self, withdrawal_id: UUID) -> Optional[BackSafeWithdrawal]:
        try:
            found = self._find(self._client.get_withdrawals_sheet(), str(withdrawal_id))
            return self._row_to_withdrawal(found[1]) if found else None
        except Exception as e:
            raise StoreUnavailableError(f"Failed to get withdrawal: {e}") from e

    async def create_withdrawal(
        self,
        withdrawal: BackSafeWithdrawal,
        transaction: BackSafeTransaction,
    ) -> BackSafeWithdrawal:
        try:
            sheet = self._client.get_withdrawals_sheet()
            sheet.append_row(self._withdrawal_to_row(withdrawal), value_input_option="RAW")
            try:
                self._client.get_transactions_sheet().append_row(
                    self._transaction_to_row(transaction),
                    value_input_option="RAW",
                )
            except Exception:
                found = self._find(sheet, str(withdrawal.id))
                if found:
                    sheet.delete_rows(found[0])
                raise
            return withdrawal
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to save withdrawal: {e}") from e

    async def update_withdrawal(
        self,
        withdrawal: BackSafeWithdrawal,
        transaction: BackSafeTransaction,
    ) -> BackSafeWithdrawal:
        try:
            sheet = self._client.get_withdrawals_sheet()
            found = self._find(sheet, str(withdrawal.id))
            if found is None:
                raise NotFoundError(f"Withdrawal not found: {withdrawal.id}")
            idx, old_row = found

            self._write_row(sheet, idx, self._withdrawal_to_row(withdrawal))
            try:
                tx_sheet = self._client.get_transactions_sheet()
                linked = self._linked_rows(tx_sheet, withdrawal_id=withdrawal.id)
                if linked:
                    self._write_row(tx_sheet, linked[0][0], self._transaction_to_row(transaction))
                    self._delete_rows(tx_sheet, [i for i, _ in linked[1:]])
                else:
                    tx_sheet.append_row(
                        self._transaction_to_row(transaction),
                        value_input_option="RAW",
                    )
            except Exception:
                self._write_row(sheet, idx, old_row)
                raise
            return withdrawal
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to update withdrawal: {e}") from e

    async def delete_withdrawal(self, withdrawal_id: UUID) -> BackSafeWithdrawal:
        try:
            sheet = self._client.get_withdrawals_sheet()
            found = self._find(sheet, str(withdrawal_id))
            if found is None:
                raise NotFoundError(f"Withdrawal not found: {withdrawal_id}")
            withdrawal = self._row_to_withdrawal(found[1])

            tx_sheet = self._client.get_transactions_sheet()
            linked = self._linked_rows(tx_sheet, withdrawal_id=withdrawal_id)
            self._delete_rows(tx_sheet, [idx for idx, _ in linked])
            try:
                sheet.delete_rows(found[0])
            except Exception:
                for _, row in linked:
                    tx_sheet.append_row(row, value_input_option="RAW")
                raise
            return withdrawal
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to delete withdrawal: {e}") from e

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    async def list_transactions(self) -> list[BackSafeTransaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            transactions = self._parse_rows(self._account_rows(sheet), self._row_to_transaction)
        except Exception as e:
            raise StoreUnavailableError(f"Failed to list transactions: {e}") from e
        transactions.sort(key=lambda t: (t.transaction_date, t.created_at), reverse=True)
        return transactions

    async def get_linked_transaction(
        self,
        entry_id: Optional[UUID] = None,
        withdrawal_id: Optional[UUID] = None,
    ) -> Optional[BackSafeTransaction]:
        if entry_id is None and withdrawal_id is None:
            raise ValueError("entry_id or withdrawal_id is required")
        try:
            linked = self._linked_rows(
                self._client.get_transactions_sheet(),
                entry_id=entry_id,
                withdrawal_id=withdrawal_id,
            )
            return self._row_to_transaction(linked[0][1]) if linked else None
        except Exception as e:
            raise StoreUnavailableError(f"Failed to get transaction: {e}") from e

    # -------------------------------------------------------------------------
    # Monthly archives
    # -------------------------------------------------------------------------

    async def list_archives(self) -> list[MonthlyArchive]:
        try:
            sheet = self._client.get_archives_sheet()
            archives = [
                self._row_to_archive(row)
                for _, row in self._account_rows(sheet, account_col=0)
                if _cell(row, 1)
            ]
        except Exception as e:
            raise StoreUnavailableError(f"Failed to list archives: {e}") from e
        archives.sort(key=lambda a: a.month, reverse=True)
        return archives

    async def get_archive(self, month: str) -> Optional[MonthlyArchive]:
        try:
            found = self._find(self._client.get_archives_sheet(), month, key_col=1, account_col=0)
            return self._row_to_archive(found[1]) if found else None
        except Exception as e:
            raise StoreUnavailableError(f"Failed to get archive: {e}") from e

    async def save_archive(self, archive: MonthlyArchive) -> MonthlyArchive:
        try:
            sheet = self._client.get_archives_sheet()
            found = self._find(sheet, archive.month, key_col=1, account_col=0)
            row = self._archive_to_row(archive)
            if found:
                self._write_row(sheet, found[0], row)
            else:
                sheet.append_row(row, value_input_option="RAW")
            return archive
        except Exception as e:
            raise StoreUnavailableError(f"Failed to save archive: {e}") from e


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            account_id=_cell(row, 4) or None,
            entity_type=_cell(row, 5) or None,
            entity_id=_cell(row, 6) or None,
            correlation_id=_opt_uuid(_cell(row, 7)),
            description=_cell(row, 8),
            details=json.loads(_cell(row, 9)) if _cell(row, 9) else {},
            error_code=_cell(row, 10) or None,
            error_message=_cell(row, 11) or None,
            is_user_action=_bool(_cell(row, 12)),
        )

    @sheets_retry
    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if row and row[0]:
                events.append(self._row_to_event(row))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow; the caller logs it
            raise StoreUnavailableError(f"Failed to write audit event: {e}") from e

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StoreUnavailableError(f"Failed to get audit events: {e}") from e
        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                e for e in self._all_events()
                if e.entity_type == entity_type and e.entity_id == str(entity_id)
            ]
        except Exception as e:
            raise StoreUnavailableError(f"Failed to get audit events: {e}") from e
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._all_events()
        except Exception as e:
            raise StoreUnavailableError(f"Failed to get audit events: {e}") from e
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
