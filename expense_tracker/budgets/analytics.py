"""
Budget Analytics

Pure functions behind the dashboards: spending per category over a date
range, monthly summaries per partner and category, and budget alerts.

DESIGN DECISION: Money is summed as Decimal and only rounded to cents
in the returned models. Rejected expenses are kept in storage for the
audit trail but never count as spending.
"""

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

import structlog

from expense_tracker.config import BudgetSettings, get_settings
from expense_tracker.models.budget import (
    AlertLevel,
    BudgetAlert,
    BudgetOverview,
    CategorySpending,
    MonthlySummary,
    PartnerTotal,
)
from expense_tracker.models.dates import DateRange, month_key
from expense_tracker.models.expense import Category, Expense, Partner


logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _spending(
    expenses: Iterable[Expense],
    include_rejected: bool = False,
) -> list[Expense]:
    return [e for e in expenses if include_rejected or e.counts_as_spending]


def _in_month(expenses: Iterable[Expense], month: str) -> list[Expense]:
    return [e for e in expenses if month_key(e.date) == month]


def _totals_by(expenses: Iterable[Expense], key) -> tuple[dict, dict]:
    totals: dict = defaultdict(lambda: ZERO)
    counts: dict = defaultdict(int)
    for expense in expenses:
        totals[key(expense)] += expense.amount
        counts[key(expense)] += 1
    return totals, counts


# =============================================================================
# SPENDING
# =============================================================================

def spending_by_category(
    expenses: Iterable[Expense],
    categories: Iterable[Category],
    date_range: DateRange,
    include_rejected: bool = False,
) -> list[CategorySpending]:
    """
    Spending of every category inside a date range.

    The monthly budget of each category is prorated with the range's
    budget multiplier (a 60-day range gets twice the monthly budget).
    Percentages are not capped at 100.
    """
    in_range = [
        e for e in _spending(expenses, include_rejected)
        if date_range.contains(e.date)
    ]
    totals, counts = _totals_by(in_range, lambda e: e.category_id)
    multiplier = Decimal(str(date_range.budget_multiplier))

    results = []
    for category in categories:
        total = totals[category.id]
        budget = category.budget_amount
        prorated = budget * multiplier
        percentage = float(total / prorated * 100) if prorated > 0 else None

        results.append(CategorySpending(
            category_id=category.id,
            category_name=category.name,
            emoji=category.emoji,
            total=_cents(total),
            count=counts[category.id],
            budget=_cents(budget),
            prorated_budget=_cents(prorated),
            percentage=percentage,
        ))
    return results


def monthly_summary(
    expenses: Iterable[Expense],
    categories: Iterable[Category],
    partners: Iterable[Partner],
    month: str,
    include_rejected: bool = False,
) -> MonthlySummary:
    """
    Totals of one calendar month ("YYYY-MM").

    Every partner is listed, even without spending. Categories are only
    listed when they have spending, largest first.
    """
    monthly = _in_month(_spending(expenses, include_rejected), month)
    partner_totals, partner_counts = _totals_by(monthly, lambda e: e.partner_id)
    category_totals, category_counts = _totals_by(monthly, lambda e: e.category_id)

    by_partner = [
        PartnerTotal(
            partner_id=partner.id,
            partner_name=partner.name,
            total=_cents(partner_totals[partner.id]),
            count=partner_counts[partner.id],
        )
        for partner in partners
    ]

    by_category = [
        CategorySpending(
            category_id=category.id,
            category_name=category.name,
            emoji=category.emoji,
            total=_cents(category_totals[category.id]),
            count=category_counts[category.id],
            budget=_cents(category.budget_amount),
            prorated_budget=_cents(category.budget_amount),
        )
        for category in categories
        if category_totals[category.id] > 0
    ]
    by_category.sort(key=lambda c: c.total, reverse=True)

    return MonthlySummary(
        month=month,
        total=_cents(sum((e.amount for e in monthly), ZERO)),
        expense_count=len(monthly),
        by_partner=by_partner,
        by_category=by_category,
    )


# =============================================================================
# ALERTS
# =============================================================================

def _alert_level(percentage: float, settings: BudgetSettings) -> AlertLevel:
    if percentage >= settings.danger_threshold:
        return AlertLevel.DANGER
    if percentage >= settings.warning_threshold:
        return AlertLevel.WARNING
    if percentage >= settings.info_threshold:
        return AlertLevel.INFO
    return AlertLevel.SUCCESS


def _alert_message(level: AlertLevel, percentage: float, remaining: Decimal) -> str:
    if level == AlertLevel.DANGER:
        return f"Over budget by ${abs(remaining):.2f}"
    if level in (AlertLevel.WARNING, AlertLevel.INFO):
        return f"{100 - percentage:.1f}% budget remaining"
    return "Well within budget"


def budget_alerts(
    expenses: Iterable[Expense],
    categories: Iterable[Category],
    month: str,
    settings: Optional[BudgetSettings] = None,
    include_all: bool = False,
) -> list[BudgetAlert]:
    """
    Budget status of each category with a positive budget for one month.

    Only categories at or above the info threshold are returned unless
    include_all is set.
    """
    settings = settings or get_settings().budgets
    monthly = _in_month(_spending(expenses), month)
    totals, _ = _totals_by(monthly, lambda e: e.category_id)

    alerts = []
    for category in categories:
        budget = category.budget_amount
        if budget <= 0:
            continue

        spent = totals[category.id]
        percentage = float(spent / budget * 100)
        level = _alert_level(percentage, settings)

        if not include_all and percentage < settings.info_threshold:
            continue

        alerts.append(BudgetAlert(
            category_id=category.id,
            category_name=category.name,
            emoji=category.emoji,
            spent=_cents(spent),
            budget=_cents(budget),
            percentage=percentage,
            level=level,
            message=_alert_message(level, percentage, budget - spent),
        ))

    logger.debug("budget_alerts_computed", month=month, alerts=len(alerts))
    return alerts


def budget_overview(
    expenses: Iterable[Expense],
    categories: Iterable[Category],
    date_range: DateRange,
) -> BudgetOverview:
    """Total spent against the total budget prorated to the range."""
    expenses = list(expenses)
    in_range = [e for e in expenses if date_range.contains(e.date)]
    spending = _spending(in_range)

    total_budget = sum((c.budget_amount for c in categories), ZERO)
    multiplier = Decimal(str(date_range.budget_multiplier))

    return BudgetOverview(
        date_range=date_range,
        total_spent=_cents(sum((e.amount for e in spending), ZERO)),
        total_budget=_cents(total_budget),
        prorated_budget=_cents(total_budget * multiplier),
        expense_count=len(spending),
        pending_count=sum(1 for e in in_range if e.is_pending),
    )
