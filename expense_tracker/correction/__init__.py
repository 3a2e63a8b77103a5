"""Batch repair of stored expense dates and amounts."""

from expense_tracker.correction.rules import (
    AmountReparseRule,
    CorrectionRule,
    SwappedYearRule,
    WindowRemapRule,
)
from expense_tracker.correction.runner import CorrectionRunner, month_distribution

__all__ = [
    "AmountReparseRule",
    "CorrectionRule",
    "CorrectionRunner",
    "SwappedYearRule",
    "WindowRemapRule",
    "month_distribution",
]
