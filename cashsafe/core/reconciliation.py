"""
Reconciliation Engine

Turns the figures staff enter each day into a DailyEntry:

    expected_front_safe = previous balance + cash_in - deposited - to_back_safe
    difference          = actual_left_in_front - expected_front_safe

The previous balance is the count of the chronological predecessor
(latest entry dated before this one). Entries dated after a backdated
insert or edit are NOT recomputed; their figures stay as submitted.

DESIGN DECISION: A discrepancy is recorded, never corrected. Approval is
an explicit override with a required note and leaves difference as is.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from cashsafe.audit import AuditLogger, create_correlation_id
from cashsafe.core.balances import BalanceDeriver
from cashsafe.core.base import AuditedComponent
from cashsafe.core.ledger import build_transfer
from cashsafe.core.periods import validate_month
from cashsafe.exceptions import DuplicateDateError
from cashsafe.models.cash import (
    ZERO,
    DailyEntry,
    EntryStatus,
    EntryUpdate,
)
from cashsafe.services.storage import CashRecordStore, DuplicateError, NotFoundError
from cashsafe.validation import ENTRY_FIGURES, CashValidator


class ReconciliationEngine(AuditedComponent):
    """Daily entry lifecycle for one account."""

    def __init__(
        self,
        store: CashRecordStore,
        validator: Optional[CashValidator] = None,
        deriver: Optional[BalanceDeriver] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self._store = store
        self._validator = validator or CashValidator()
        self._deriver = deriver or BalanceDeriver(store)

    async def _require_entry(self, entry_id: UUID) -> DailyEntry:
        entry = await self._store.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(f"Entry not found: {entry_id}")
        return entry

    async def _warn_if_back_safe_negative(self, correlation_id: UUID) -> None:
        # Removing a transfer can leave earlier withdrawals uncovered; allowed but flagged
        if not self._audit_logger:
            return
        balance = await self._deriver.get_back_safe_balance()
        if balance < ZERO:
            await self._audit_logger.log_validation_warnings(
                "back_safe",
                [f"Back safe balance is negative ({balance:.2f})"],
                correlation_id,
            )

    async def _log_saved(self, entry: DailyEntry, correlation_id: UUID) -> None:
        if not self._audit_logger:
            return
        if not entry.is_balanced:
            await self._audit_logger.log_discrepancy(
                entry_id=entry.id,
                entry_date=entry.entry_date,
                difference=entry.difference,
                correlation_id=correlation_id,
            )

    async def submit_entry(
        self,
        entry_date: date,
        cash_in,
        deposited,
        to_back_safe,
        actual_left_in_front,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> DailyEntry:
        """
        Record the day's figures and reconcile the front safe.

        A positive to_back_safe is deposited into the back safe ledger in
        the same store operation.

        Raises:
            ValidationError: A figure is malformed or the notes are too long
            DuplicateDateError: The day already has an entry
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._audited("submit_entry", correlation_id):
            entry_date = self._validator.parse_date(entry_date, "entry_date")
            figures, result = self._validator.check_entry(entry_date, {
                "cash_in": cash_in,
                "deposited": deposited,
                "to_back_safe": to_back_safe,
                "actual_left_in_front": actual_left_in_front,
            })
            notes = self._validator.clean_notes(notes)

            if await self._store.get_entry_by_date(entry_date) is not None:
                raise DuplicateDateError(entry_date)

            previous = await self._deriver.previous_front_safe_balance(entry_date)
            expected = (
                previous
                + figures["cash_in"]
                - figures["deposited"]
                - figures["to_back_safe"]
            )
            entry = DailyEntry(
                entry_date=entry_date,
                expected_front_safe=expected,
                difference=figures["actual_left_in_front"] - expected,
                notes=notes,
                **figures,
            )
            transfer = build_transfer(entry)

            try:
                await self._store.create_entry(entry, transfer)
            except DuplicateError:
                raise DuplicateDateError(entry_date)

        if self._audit_logger:
            await self._audit_logger.log_validation_warnings(
                "entry", result.warnings, correlation_id
            )
            await self._audit_logger.log_entry_submitted(
                entry_id=entry.id,
                entry_date=entry.entry_date,
                expected=entry.expected_front_safe,
                actual=entry.actual_left_in_front,
                difference=entry.difference,
                correlation_id=correlation_id,
            )
            if transfer is not None:
                await self._audit_logger.log_transfer_recorded(
                    transaction_id=transfer.id,
                    entry_id=entry.id,
                    amount=transfer.amount,
                    correlation_id=correlation_id,
                )
            await self._log_saved(entry, correlation_id)

        return entry

    async def edit_entry(
        self,
        entry_id: UUID,
        update: EntryUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> DailyEntry:
        """
        Change an entry and reconcile it again.

        expected_front_safe is recomputed against the predecessor of the
        (possibly new) date. Approval fields are left untouched. The linked
        deposit is replaced, created or removed to match to_back_safe.

        Raises:
            NotFoundError: Unknown entry
            ValidationError: A changed figure is invalid
            DuplicateDateError: The new date belongs to another entry
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._audited("edit_entry", correlation_id):
            existing = await self._require_entry(entry_id)
            changes = update.changes()

            new_date = existing.entry_date
            if "entry_date" in changes:
                new_date = self._validator.parse_date(changes["entry_date"], "entry_date")

            figures, result = self._validator.check_entry(
                new_date if "entry_date" in changes else None,
                {name: changes[name] for name in ENTRY_FIGURES if name in changes},
            )
            if "notes" in changes:
                notes = self._validator.clean_notes(changes["notes"])

            if new_date != existing.entry_date:
                other = await self._store.get_entry_by_date(new_date)
                if other is not None and other.id != entry_id:
                    raise DuplicateDateError(new_date)

            merged = {name: getattr(existing, name) for name in ENTRY_FIGURES}
            merged.update(figures)

            previous = await self._deriver.previous_front_safe_balance(
                new_date, exclude_id=entry_id
            )
            expected = (
                previous
                + merged["cash_in"]
                - merged["deposited"]
                - merged["to_back_safe"]
            )

            data = existing.model_dump()
            data.update(merged)
            data.update(
                entry_date=new_date,
                expected_front_safe=expected,
                difference=merged["actual_left_in_front"] - expected,
                updated_at=datetime.utcnow(),
            )
            if "notes" in changes:
                data["notes"] = notes
            updated = DailyEntry.model_validate(data)

            existing_transfer = await self._store.get_linked_transaction(entry_id=entry_id)
            transfer = build_transfer(updated, existing_transfer)
            try:
                await self._store.update_entry_with_transfer(updated, transfer)
            except DuplicateError:
                raise DuplicateDateError(new_date)

        if self._audit_logger:
            await self._audit_logger.log_validation_warnings(
                "entry", result.warnings, correlation_id
            )
            await self._audit_logger.log_entry_updated(
                entry_id=entry_id,
                changed_fields=sorted(changes),
                difference=updated.difference,
                correlation_id=correlation_id,
            )
            if transfer is not None and (
                existing_transfer is None or existing_transfer.amount != transfer.amount
            ):
                await self._audit_logger.log_transfer_recorded(
                    transaction_id=transfer.id,
                    entry_id=entry_id,
                    amount=transfer.amount,
                    correlation_id=correlation_id,
                )
            await self._log_saved(updated, correlation_id)
            if updated.to_back_safe < existing.to_back_safe:
                await self._warn_if_back_safe_negative(correlation_id)

        return updated

    async def approve(
        self,
        entry_id: UUID,
        note: str,
        correlation_id: Optional[UUID] = None,
    ) -> DailyEntry:
        """
        Accept an entry's discrepancy.

        Raises:
            ValidationError: Blank or overlong note
            NotFoundError: Unknown entry
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._audited("approve", correlation_id):
            note = self._validator.require_text(note, "approval_note")
            entry = await self._require_entry(entry_id)
            now = datetime.utcnow()
            approved = entry.model_copy(update={
                "manually_approved": True,
                "approval_note": note,
                "approved_at": now,
                "updated_at": now,
            })
            await self._store.update_entry(approved)

        if self._audit_logger:
            await self._audit_logger.log_entry_approved(
                entry_id=entry_id,
                note=note,
                difference=approved.difference,
                correlation_id=correlation_id,
            )
        return approved

    async def remove_approval(
        self,
        entry_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> DailyEntry:
        """Withdraw a manual approval; a discrepant entry is "off" again."""
        correlation_id = correlation_id or create_correlation_id()

        async with self._audited("remove_approval", correlation_id):
            entry = await self._require_entry(entry_id)
            cleared = entry.model_copy(update={
                "manually_approved": False,
                "approval_note": None,
                "approved_at": None,
                "updated_at": datetime.utcnow(),
            })
            await self._store.update_entry(cleared)

        if self._audit_logger:
            await self._audit_logger.log_approval_removed(
                entry_id=entry_id,
                correlation_id=correlation_id,
            )
        return cleared

    async def delete_entry(
        self,
        entry_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> DailyEntry:
        """
        Delete an entry together with its deposit.

        Raises:
            NotFoundError: Unknown entry
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._audited("delete_entry", correlation_id):
            deleted = await self._store.delete_entry(entry_id)

        if self._audit_logger:
            await self._audit_logger.log_entry_deleted(
                entry_id=entry_id,
                entry_date=deleted.entry_date,
                released_transfer=deleted.to_back_safe,
                correlation_id=correlation_id,
            )
            if deleted.to_back_safe > ZERO:
                await self._warn_if_back_safe_negative(correlation_id)
        return deleted

    async def get_entry(self, entry_id: UUID) -> Optional[DailyEntry]:
        return await self._store.get_entry(entry_id)

    async def list_entries(self, month: Optional[str] = None) -> list[DailyEntry]:
        """Entries newest first, optionally limited to one "YYYY-MM" month."""
        entries = await self._store.list_entries()
        if month is not None:
            month = validate_month(month)
            entries = [e for e in entries if e.month == month]
        return entries

    async def unresolved_entries(self, month: Optional[str] = None) -> list[DailyEntry]:
        """Entries whose discrepancy nobody has approved."""
        return [
            e for e in await self.list_entries(month)
            if e.status == EntryStatus.OFF
        ]
