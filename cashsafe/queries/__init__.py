"""Report execution package."""

from cashsafe.queries.executor import RECENT_ENTRY_LIMIT, ReportExecutor

__all__ = ["RECENT_ENTRY_LIMIT", "ReportExecutor"]
