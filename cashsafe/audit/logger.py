"""
Audit Logger

DESIGN DECISION: Every significant action on the cash records is logged.
This provides:
1. Complete traceability of every cash movement
2. Debugging capability
3. Accountability for approvals and month closes

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
- Stamps every event with the account it belongs to
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID, uuid4

import structlog

from cashsafe.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from cashsafe.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """
    Set the stdlib level that structlog's filter_by_level honours.

    The JSON renderer already formats each line, so the handler prints
    the bare message.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage (Google Sheets) for persistence and review
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        account_id: Optional[str] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            account_id: Account stamped on events that don't carry one.
        """
        self._storage = storage
        self._account_id = account_id
        self._logger = structlog.get_logger("cashsafe.audit")

    @property
    def account_id(self) -> Optional[str]:
        return self._account_id

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        if event.account_id is None and self._account_id:
            event = event.model_copy(update={"account_id": self._account_id})

        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        # Persist to storage if available
        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # -------------------------------------------------------------------------
    # Daily entries
    # -------------------------------------------------------------------------

    async def log_entry_submitted(
        self,
        entry_id: UUID,
        entry_date: date,
        expected: Decimal,
        actual: Decimal,
        difference: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log a new daily entry."""
        await self.log(AuditEventBuilder.entry_submitted(
            entry_id=entry_id,
            entry_date=entry_date,
            expected=expected,
            actual=actual,
            difference=difference,
            correlation_id=correlation_id,
        ))

    async def log_entry_updated(
        self,
        entry_id: UUID,
        changed_fields: list[str],
        difference: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.entry_updated(
            entry_id=entry_id,
            changed_fields=changed_fields,
            difference=difference,
            correlation_id=correlation_id,
        ))

    async def log_entry_deleted(
        self,
        entry_id: UUID,
        entry_date: date,
        released_transfer: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.entry_deleted(
            entry_id=entry_id,
            entry_date=entry_date,
            released_transfer=released_transfer,
            correlation_id=correlation_id,
        ))

    async def log_discrepancy(
        self,
        entry_id: UUID,
        entry_date: date,
        difference: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log a front safe count that did not match."""
        await self.log(AuditEventBuilder.discrepancy_detected(
            entry_id=entry_id,
            entry_date=entry_date,
            difference=difference,
            correlation_id=correlation_id,
        ))

    async def log_entry_approved(
        self,
        entry_id: UUID,
        note: str,
        difference: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.entry_approved(
            entry_id=entry_id,
            note=note,
            difference=difference,
            correlation_id=correlation_id,
        ))

    async def log_approval_removed(
        self,
        entry_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.approval_removed(
            entry_id=entry_id,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Back safe
    # -------------------------------------------------------------------------

    async def log_transfer_recorded(
        self,
        transaction_id: UUID,
        entry_id: UUID,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transfer_recorded(
            transaction_id=transaction_id,
            entry_id=entry_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_withdrawal_recorded(
        self,
        withdrawal_id: UUID,
        amount: Decimal,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.withdrawal_recorded(
            withdrawal_id=withdrawal_id,
            amount=amount,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_withdrawal_updated(
        self,
        withdrawal_id: UUID,
        old_amount: Decimal,
        new_amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.withdrawal_updated(
            withdrawal_id=withdrawal_id,
            old_amount=old_amount,
            new_amount=new_amount,
            correlation_id=correlation_id,
        ))

    async def log_withdrawal_deleted(
        self,
        withdrawal_id: UUID,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.withdrawal_deleted(
            withdrawal_id=withdrawal_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Month close
    # -------------------------------------------------------------------------

    async def log_month_closed(
        self,
        month: str,
        ending_front_safe: Decimal,
        ending_back_safe: Decimal,
        reclosed: bool,
        correlation_id: UUID,
    ) -> None:
        """Log a month close (a re-close is logged as a warning)."""
        await self.log(AuditEventBuilder.month_closed(
            month=month,
            ending_front_safe=ending_front_safe,
            ending_back_safe=ending_back_safe,
            reclosed=reclosed,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Warnings and failures
    # -------------------------------------------------------------------------

    async def log_validation_warnings(
        self,
        entity_type: str,
        warnings: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log non-blocking validation warnings. Nothing is logged for an empty list."""
        if not warnings:
            return
        await self.log(AuditEventBuilder.validation_warning(
            entity_type=entity_type,
            warnings=warnings,
            correlation_id=correlation_id,
        ))

    async def log_operation_rejected(
        self,
        operation: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.operation_rejected(
            operation=operation,
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_store_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.store_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., submitting an entry).
    Pass it through all subsequent operations.
    """
    return uuid4()
