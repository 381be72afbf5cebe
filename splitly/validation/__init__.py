"""Validation package."""

from splitly.validation.validator import (
    ExpenseValidator,
    LedgerValidationError,
    SettlementValidator,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "ExpenseValidator",
    "LedgerValidationError",
    "SettlementValidator",
    "ValidationIssue",
    "ValidationResult",
]
