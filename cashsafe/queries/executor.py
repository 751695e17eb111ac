"""
Report Execution

DESIGN DECISION: Reports are DETERMINISTIC reads over stored records.
Nothing here estimates or fills gaps: a month without entries reports
zero entries, not a guess.
"""

from datetime import date
from typing import Optional

from cashsafe.core.periods import current_month, validate_month
from cashsafe.models.cash import ZERO, DailyEntry, EntryStatus, MonthSummary
from cashsafe.services.storage import CashRecordStore


# Default window of the entry history view
RECENT_ENTRY_LIMIT = 7


class ReportExecutor:
    """
    Read-only reports over one account's records.

    GUARANTEES:
    - Only returns real data from storage
    - Never writes
    """

    def __init__(self, storage: CashRecordStore):
        self._storage = storage

    async def month_summary(self, month: str) -> MonthSummary:
        """Totals and reconciliation counts of one month."""
        month = validate_month(month)
        entries = [e for e in await self._storage.list_entries() if e.month == month]
        withdrawals = [w for w in await self._storage.list_withdrawals() if w.month == month]
        archive = await self._storage.get_archive(month)

        statuses = [e.status for e in entries]
        return MonthSummary(
            month=month,
            entry_count=len(entries),
            balanced_count=statuses.count(EntryStatus.BALANCED),
            approved_count=statuses.count(EntryStatus.APPROVED),
            off_count=statuses.count(EntryStatus.OFF),
            total_cash_in=sum((e.cash_in for e in entries), ZERO),
            total_deposited=sum((e.deposited for e in entries), ZERO),
            total_to_back_safe=sum((e.to_back_safe for e in entries), ZERO),
            total_withdrawn=sum((w.amount for w in withdrawals), ZERO),
            net_difference=sum((e.difference for e in entries), ZERO),
            is_closed=archive is not None and archive.is_closed,
        )

    async def available_months(self, today: Optional[date] = None) -> list[str]:
        """
        Months worth offering in a month picker, newest first.

        The current month is always included, even before its first entry.
        """
        months = {current_month(today)}
        months.update(e.month for e in await self._storage.list_entries())
        months.update(a.month for a in await self._storage.list_archives())
        return sorted(months, reverse=True)

    async def recent_entries(self, limit: int = RECENT_ENTRY_LIMIT) -> list[DailyEntry]:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        return (await self._storage.list_entries())[:limit]
