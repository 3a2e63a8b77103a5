"""Configuration package."""

from expense_tracker.config.settings import (
    AppSettings,
    BudgetSettings,
    CorrectionSettings,
    ImportSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BudgetSettings",
    "CorrectionSettings",
    "ImportSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
