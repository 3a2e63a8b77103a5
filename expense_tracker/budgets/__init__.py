"""Budget dashboards: spending, monthly summaries, alerts."""

from expense_tracker.budgets.analytics import (
    budget_alerts,
    budget_overview,
    monthly_summary,
    spending_by_category,
)

__all__ = [
    "budget_alerts",
    "budget_overview",
    "monthly_summary",
    "spending_by_category",
]
