"""
Month-Close Workflow

Closing a month snapshots both safe balances into a MonthlyArchive.
Starting balances come from the latest closed month before it, so the
archives chain: one month's ending balance is the next month's start.

By default the ending balances are the balances at the moment of
closing. With close_with_period_end_balances (or as_of_period_end=True)
the ledger is replayed up to the month's last day instead, which keeps
later activity out of the snapshot when a month is closed late.

Closing a month again overwrites its archive and is audited as a warning.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from cashsafe.audit import AuditLogger, create_correlation_id
from cashsafe.config import get_settings
from cashsafe.config.settings import AppSettings
from cashsafe.core.balances import BalanceDeriver
from cashsafe.core.base import AuditedComponent
from cashsafe.core.periods import month_bounds, validate_month
from cashsafe.exceptions import EmptyPeriodError
from cashsafe.models.cash import ZERO, MonthlyArchive, SafeBalances
from cashsafe.services.storage import CashRecordStore


class MonthCloser(AuditedComponent):
    """Monthly archives of one account."""

    def __init__(
        self,
        store: CashRecordStore,
        deriver: Optional[BalanceDeriver] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        super().__init__(audit_logger)
        self._store = store
        self._deriver = deriver or BalanceDeriver(store)
        self._settings = settings

    def _close_with_period_end(self) -> bool:
        settings = self._settings or get_settings().app
        return settings.close_with_period_end_balances

    async def _attach(self, archive: MonthlyArchive) -> MonthlyArchive:
        entries = [e for e in await self._store.list_entries() if e.month == archive.month]
        withdrawals = [
            w for w in await self._store.list_withdrawals() if w.month == archive.month
        ]
        return archive.model_copy(update={"entries": entries, "withdrawals": withdrawals})

    async def get_month_starting_balances(self, month: str) -> SafeBalances:
        """
        Ending balances of the latest closed month before this one.

        Zero for both safes when no earlier month has been closed.
        """
        month = validate_month(month)
        previous = [
            a for a in await self._store.list_archives()
            if a.is_closed and a.month < month
        ]
        if not previous:
            return SafeBalances(front_safe=ZERO, back_safe=ZERO)
        latest = max(previous, key=lambda a: a.month)
        return SafeBalances(
            front_safe=latest.ending_front_safe,
            back_safe=latest.ending_back_safe,
            last_updated=latest.closed_at or datetime.utcnow(),
        )

    async def close_month(
        self,
        month: str,
        as_of_period_end: Optional[bool] = None,
        correlation_id: Optional[UUID] = None,
    ) -> MonthlyArchive:
        """
        Close a month.

        Args:
            month: "YYYY-MM"
            as_of_period_end: Replay balances to the last day of the month.
                Defaults to the close_with_period_end_balances setting.

        Returns:
            The saved archive with the month's entries and withdrawals attached

        Raises:
            ValidationError: Malformed month
            EmptyPeriodError: The month has no daily entries
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._audited("close_month", correlation_id):
            month = validate_month(month)
            entries = [e for e in await self._store.list_entries() if e.month == month]
            if not entries:
                raise EmptyPeriodError(month)

            starting = await self.get_month_starting_balances(month)

            if as_of_period_end is None:
                as_of_period_end = self._close_with_period_end()
            if as_of_period_end:
                _, last_day = month_bounds(month)
                ending = await self._deriver.balances_as_of(last_day)
            else:
                ending = await self._deriver.get_balances()

            existing = await self._store.get_archive(month)
            archive = MonthlyArchive(
                month=month,
                starting_front_safe=starting.front_safe,
                starting_back_safe=starting.back_safe,
                ending_front_safe=ending.front_safe,
                ending_back_safe=ending.back_safe,
                is_closed=True,
                closed_at=datetime.utcnow(),
            )
            await self._store.save_archive(archive)

        if self._audit_logger:
            await self._audit_logger.log_month_closed(
                month=month,
                ending_front_safe=archive.ending_front_safe,
                ending_back_safe=archive.ending_back_safe,
                reclosed=existing is not None and existing.is_closed,
                correlation_id=correlation_id,
            )

        return await self._attach(archive)

    async def is_month_closed(self, month: str) -> bool:
        archive = await self._store.get_archive(validate_month(month))
        return archive is not None and archive.is_closed

    async def get_archive(self, month: str) -> Optional[MonthlyArchive]:
        """The month's archive with its entries and withdrawals, if it exists."""
        archive = await self._store.get_archive(validate_month(month))
        if archive is None:
            return None
        return await self._attach(archive)

    async def list_archives(self) -> list[MonthlyArchive]:
        """All archives, newest month first (without attachments)."""
        return await self._store.list_archives()
