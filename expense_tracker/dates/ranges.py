"""
Dashboard Date Ranges

Resolves the range a dashboard shows (30/60/90 days, current month, a
custom span or the active budget period) into concrete start/end
instants, plus the multiplier used to prorate monthly budgets to the
range length.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional, Union

from expense_tracker.config import get_settings
from expense_tracker.dates.parser import to_utc_datetime
from expense_tracker.models.dates import DateRange, DateRangePreset
from expense_tracker.models.expense import BudgetPeriod

_TRAILING_DAYS = {
    DateRangePreset.LAST_30_DAYS: 30,
    DateRangePreset.LAST_60_DAYS: 60,
    DateRangePreset.LAST_90_DAYS: 90,
}


class InvalidDateRangeError(ValueError):
    """A custom range whose end precedes its start."""
    pass


def active_budget_period(periods: Iterable[BudgetPeriod]) -> Optional[BudgetPeriod]:
    """The active budget period; the newest one wins if several are flagged."""
    active = [p for p in periods if p.is_active]
    if not active:
        return None
    return max(active, key=lambda p: p.created_at)


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.max, tzinfo=moment.tzinfo)


def resolve_date_range(
    preset: Optional[Union[DateRangePreset, str]] = None,
    custom_start: Optional[Union[date, datetime]] = None,
    custom_end: Optional[Union[date, datetime]] = None,
    now: Optional[datetime] = None,
    days_per_budget_month: Optional[int] = None,
    budget_period: Optional[BudgetPeriod] = None,
) -> DateRange:
    """
    Resolve a preset into a concrete DateRange.

    The preset and the budget month length default to the budget
    settings. A CUSTOM preset without both bounds, or a BUDGET_PERIOD
    preset without a period, falls back to the last 30 days.

    Raises:
        InvalidDateRangeError: custom end before custom start
        ValueError: unknown preset string
    """
    if preset is None or days_per_budget_month is None:
        settings = get_settings().budgets
        preset = preset or settings.default_range
        days_per_budget_month = days_per_budget_month or settings.days_per_budget_month

    preset = DateRangePreset(preset)
    now = to_utc_datetime(now) if now else datetime.now(timezone.utc)

    if preset == DateRangePreset.CUSTOM and custom_start and custom_end:
        start, end = to_utc_datetime(custom_start), to_utc_datetime(custom_end)
        if end.date() < start.date():
            raise InvalidDateRangeError(
                f"Range end {end.date()} is before start {start.date()}"
            )
    elif preset == DateRangePreset.BUDGET_PERIOD and budget_period:
        start = to_utc_datetime(budget_period.start_date)
        end = to_utc_datetime(budget_period.end_date)
    elif preset == DateRangePreset.CURRENT_MONTH:
        start, end = now.replace(day=1), now
    else:
        days = _TRAILING_DAYS.get(preset, 30)
        start, end = now - timedelta(days=days), now

    start, end = start_of_day(start), end_of_day(end)
    # end_of_day is one microsecond short of the next midnight
    day_count = (end.date() - start.date()).days + 1

    return DateRange(
        preset=preset,
        start=start,
        end=end,
        day_count=day_count,
        budget_multiplier=day_count / days_per_budget_month,
    )
