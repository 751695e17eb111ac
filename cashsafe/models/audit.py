"""
Audit Models for Cash Safe Reconciler

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of all cash movements
2. Debugging information when things go wrong
3. Accountability for approvals and month closes
4. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every operation on the cash records has its own event type.
    """
    # Daily entries
    ENTRY_SUBMITTED = "entry_submitted"
    ENTRY_UPDATED = "entry_updated"
    ENTRY_DELETED = "entry_deleted"
    DISCREPANCY_DETECTED = "discrepancy_detected"

    # Manual approval
    ENTRY_APPROVED = "entry_approved"
    APPROVAL_REMOVED = "approval_removed"

    # Back safe ledger
    TRANSFER_RECORDED = "transfer_recorded"
    WITHDRAWAL_RECORDED = "withdrawal_recorded"
    WITHDRAWAL_UPDATED = "withdrawal_updated"
    WITHDRAWAL_DELETED = "withdrawal_deleted"

    # Month close
    MONTH_CLOSED = "month_closed"
    MONTH_RECLOSED = "month_reclosed"

    # Validation and failures
    VALIDATION_WARNING = "validation_warning"
    OPERATION_REJECTED = "operation_rejected"
    STORE_ERROR = "store_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    account_id: Optional[str] = Field(
        default=None,
        description="Account the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'withdrawal', 'archive')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to (UUID or month)"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one submission)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    # User action tracking
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "account_id": self.account_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, account_id, entity_type,
         entity_id, correlation_id, description, details_json, error_code,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.account_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_code or "",
            self.error_message or "",
            str(self.is_user_action),
        ]


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_submitted(entry_id, entry_date, ...)
        event = AuditEventBuilder.withdrawal_recorded(withdrawal_id, amount, ...)
    """

    @staticmethod
    def entry_submitted(
        entry_id: UUID,
        entry_date: date,
        expected: Decimal,
        actual: Decimal,
        difference: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_SUBMITTED,
            entity_type="entry",
            entity_id=str(entry_id),
            correlation_id=correlation_id,
            description=f"Daily entry submitted for {entry_date.isoformat()}",
            details={
                "entry_date": entry_date.isoformat(),
                "expected_front_safe": _money(expected),
                "actual_left_in_front": _money(actual),
                "difference": _money(difference),
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_updated(
        entry_id: UUID,
        changed_fields: list[str],
        difference: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_UPDATED,
            entity_type="entry",
            entity_id=str(entry_id),
            correlation_id=correlation_id,
            description=f"Daily entry edited ({', '.join(changed_fields) or 'no changes'})",
            details={
                "changed_fields": changed_fields,
                "difference": _money(difference),
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_deleted(
        entry_id: UUID,
        entry_date: date,
        released_transfer: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            entity_type="entry",
            entity_id=str(entry_id),
            correlation_id=correlation_id,
            description=f"Daily entry for {entry_date.isoformat()} deleted",
            details={
                "entry_date": entry_date.isoformat(),
                "released_transfer": _money(released_transfer),
            },
            is_user_action=True,
        )

    @staticmethod
    def discrepancy_detected(
        entry_id: UUID,
        entry_date: date,
        difference: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DISCREPANCY_DETECTED,
            severity=AuditSeverity.WARNING,
            entity_type="entry",
            entity_id=str(entry_id),
            correlation_id=correlation_id,
            description=f"Front safe is off by {_money(difference)} on {entry_date.isoformat()}",
            details={
                "entry_date": entry_date.isoformat(),
                "difference": _money(difference),
            },
        )

    @staticmethod
    def entry_approved(
        entry_id: UUID,
        note: str,
        difference: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_APPROVED,
            entity_type="entry",
            entity_id=str(entry_id),
            correlation_id=correlation_id,
            description="Discrepancy manually approved",
            details={
                "approval_note": note,
                "difference": _money(difference),
            },
            is_user_action=True,
        )

    @staticmethod
    def approval_removed(
        entry_id: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.APPROVAL_REMOVED,
            entity_type="entry",
            entity_id=str(entry_id),
            correlation_id=correlation_id,
            description="Manual approval removed",
            is_user_action=True,
        )

    @staticmethod
    def transfer_recorded(
        transaction_id: UUID,
        entry_id: UUID,
        amount: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_RECORDED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description=f"Transfer of {_money(amount)} to the back safe",
            details={
                "entry_id": str(entry_id),
                "amount": _money(amount),
            },
        )

    @staticmethod
    def withdrawal_recorded(
        withdrawal_id: UUID,
        amount: Decimal,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WITHDRAWAL_RECORDED,
            entity_type="withdrawal",
            entity_id=str(withdrawal_id),
            correlation_id=correlation_id,
            description=f"Back safe withdrawal of {_money(amount)}",
            details={
                "amount": _money(amount),
                "reason": reason,
            },
            is_user_action=True,
        )

    @staticmethod
    def withdrawal_updated(
        withdrawal_id: UUID,
        old_amount: Decimal,
        new_amount: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WITHDRAWAL_UPDATED,
            entity_type="withdrawal",
            entity_id=str(withdrawal_id),
            correlation_id=correlation_id,
            description=f"Withdrawal changed from {_money(old_amount)} to {_money(new_amount)}",
            details={
                "old_amount": _money(old_amount),
                "new_amount": _money(new_amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def withdrawal_deleted(
        withdrawal_id: UUID,
        amount: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WITHDRAWAL_DELETED,
            entity_type="withdrawal",
            entity_id=str(withdrawal_id),
            correlation_id=correlation_id,
            description=f"Withdrawal of {_money(amount)} deleted, amount restored",
            details={
                "amount": _money(amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def month_closed(
        month: str,
        ending_front_safe: Decimal,
        ending_back_safe: Decimal,
        reclosed: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.MONTH_RECLOSED if reclosed else AuditEventType.MONTH_CLOSED
            ),
            severity=AuditSeverity.WARNING if reclosed else AuditSeverity.INFO,
            entity_type="archive",
            entity_id=month,
            correlation_id=correlation_id,
            description=(
                f"Month {month} closed again, ending balances overwritten"
                if reclosed
                else f"Month {month} closed"
            ),
            details={
                "ending_front_safe": _money(ending_front_safe),
                "ending_back_safe": _money(ending_back_safe),
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_warning(
        entity_type: str,
        warnings: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_WARNING,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{len(warnings)} value(s) flagged for review",
            details={
                "warnings": warnings,
            },
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Operation rejected: {operation}",
            error_code=error_code,
            error_message=error_message,
            details={
                "operation": operation,
            },
        )

    @staticmethod
    def store_error(
        operation: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Record store failed during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
