"""Shared plumbing for the core components."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import UUID

from cashsafe.audit import AuditLogger
from cashsafe.exceptions import CashOfficeError
from cashsafe.services.storage import (
    DuplicateError,
    NotFoundError,
    StorageError,
)


class AuditedComponent:
    """
    Base for components that report rejected and failed operations.

    Failures are logged and then re-raised unchanged.
    """

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit_logger = audit_logger

    @asynccontextmanager
    async def _audited(self, operation: str, correlation_id: UUID) -> AsyncIterator[None]:
        try:
            yield
        except CashOfficeError as e:
            if self._audit_logger:
                await self._audit_logger.log_operation_rejected(
                    operation=operation,
                    error_code=e.code,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except (NotFoundError, DuplicateError) as e:
            if self._audit_logger:
                await self._audit_logger.log_operation_rejected(
                    operation=operation,
                    error_code="not_found" if isinstance(e, NotFoundError) else "duplicate",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_store_error(
                    operation=operation,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
