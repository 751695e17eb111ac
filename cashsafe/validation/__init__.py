"""Validation package."""

from cashsafe.validation.validator import (
    ENTRY_FIGURES,
    NOTE_MAX_LENGTH,
    REASON_MAX_LENGTH,
    CashValidator,
)

__all__ = ["ENTRY_FIGURES", "NOTE_MAX_LENGTH", "REASON_MAX_LENGTH", "CashValidator"]
