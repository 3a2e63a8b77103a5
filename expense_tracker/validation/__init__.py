"""Validation package."""

from expense_tracker.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]
