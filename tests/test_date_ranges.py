"""Tests for dashboard date range resolution."""

import pytest
from datetime import date, datetime, time, timezone

from expense_tracker.config import get_settings
from expense_tracker.dates import (
    InvalidDateRangeError,
    active_budget_period,
    resolve_date_range,
)
from expense_tracker.models.dates import DateRangePreset
from expense_tracker.models.expense import BudgetPeriod


NOW = datetime(2025, 7, 20, 15, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_period(name: str, start: date, end: date, **overrides) -> BudgetPeriod:
    return BudgetPeriod(
        name=name,
        start_date=datetime(start.year, start.month, start.day),
        end_date=datetime(end.year, end.month, end.day),
        **overrides,
    )


class TestResolveDateRange:
    """Tests for resolve_date_range."""

    def test_thirty_days(self):
        """Test the trailing 30-day range covers 31 calendar days."""
        result = resolve_date_range("30-days", now=NOW)
        assert result.start == datetime(2025, 6, 20, tzinfo=timezone.utc)
        assert result.end.date() == date(2025, 7, 20)
        assert result.end.time() == time.max
        assert result.day_count == 31
        assert result.budget_multiplier == pytest.approx(31 / 30)

    def test_ninety_days(self):
        """Test the 90-day preset."""
        result = resolve_date_range(DateRangePreset.LAST_90_DAYS, now=NOW)
        assert result.start.date() == date(2025, 4, 21)
        assert result.day_count == 91

    def test_current_month(self):
        """Test current month runs from the 1st to today."""
        result = resolve_date_range("current-month", now=NOW)
        assert result.start == datetime(2025, 7, 1, tzinfo=timezone.utc)
        assert result.day_count == 20
        assert result.budget_multiplier == pytest.approx(20 / 30)

    def test_custom_range(self):
        """Test explicit custom bounds, inclusive on both ends."""
        result = resolve_date_range(
            "custom",
            custom_start=date(2025, 6, 1),
            custom_end=date(2025, 6, 30),
            now=NOW,
        )
        assert result.day_count == 30
        assert result.budget_multiplier == pytest.approx(1.0)
        assert result.contains(datetime(2025, 6, 30, 23, 59, tzinfo=timezone.utc))
        assert not result.contains(datetime(2025, 7, 1, tzinfo=timezone.utc))

    def test_single_day_custom_range(self):
        """Test start == end is one day."""
        result = resolve_date_range(
            "custom", custom_start=date(2025, 6, 1), custom_end=date(2025, 6, 1), now=NOW
        )
        assert result.day_count == 1

    def test_custom_without_bounds_falls_back(self):
        """Test a custom range missing a bound uses the last 30 days."""
        result = resolve_date_range("custom", custom_start=date(2025, 6, 1), now=NOW)
        assert result.day_count == 31
        assert result.end.date() == NOW.date()

    def test_custom_end_before_start(self):
        """Test an inverted custom range is rejected."""
        with pytest.raises(InvalidDateRangeError):
            resolve_date_range(
                "custom", custom_start=date(2025, 6, 30), custom_end=date(2025, 6, 1), now=NOW
            )

    def test_unknown_preset(self):
        """Test unknown preset strings are rejected."""
        with pytest.raises(ValueError):
            resolve_date_range("7-days", now=NOW)

    def test_label(self):
        """Test the human-readable label."""
        result = resolve_date_range("current-month", now=NOW)
        assert result.label == "2025-07-01 to 2025-07-20"

    def test_budget_month_length_from_settings(self, monkeypatch):
        """Test the configured budget month length changes the multiplier."""
        monkeypatch.setenv("BUDGET_DAYS_PER_BUDGET_MONTH", "31")
        result = resolve_date_range(
            "custom", custom_start=date(2025, 6, 1), custom_end=date(2025, 6, 30), now=NOW
        )
        assert result.budget_multiplier == pytest.approx(30 / 31)

    def test_explicit_month_length_wins(self, monkeypatch):
        """Test an explicit budget month length overrides the setting."""
        monkeypatch.setenv("BUDGET_DAYS_PER_BUDGET_MONTH", "31")
        result = resolve_date_range("current-month", now=NOW, days_per_budget_month=20)
        assert result.budget_multiplier == pytest.approx(1.0)

    def test_default_preset_from_settings(self, monkeypatch):
        """Test the configured default range is used when none is selected."""
        monkeypatch.setenv("BUDGET_DEFAULT_RANGE", "current-month")
        result = resolve_date_range(now=NOW)
        assert result.preset == DateRangePreset.CURRENT_MONTH
        assert result.day_count == 20

    def test_default_preset_is_thirty_days(self, monkeypatch):
        """Test the default range without configuration."""
        monkeypatch.delenv("BUDGET_DEFAULT_RANGE", raising=False)
        assert resolve_date_range(now=NOW).preset == DateRangePreset.LAST_30_DAYS


class TestBudgetPeriods:
    """Tests for budget periods as a range source."""

    def test_period_range(self):
        """Test a budget period resolves to its own inclusive bounds."""
        period = make_period("Summer", date(2025, 6, 1), date(2025, 8, 31))
        result = resolve_date_range("budget-period", budget_period=period, now=NOW)

        assert result.preset == DateRangePreset.BUDGET_PERIOD
        assert result.start == datetime(2025, 6, 1, tzinfo=timezone.utc)
        assert result.end.date() == date(2025, 8, 31)
        assert result.day_count == 92
        assert result.budget_multiplier == pytest.approx(92 / 30)

    def test_period_preset_without_period_falls_back(self):
        """Test the period preset without a period uses the last 30 days."""
        result = resolve_date_range("budget-period", now=NOW)
        assert result.day_count == 31
        assert result.end.date() == NOW.date()

    def test_active_period(self):
        """Test the flagged period is picked; the newest wins a tie."""
        older = make_period(
            "Spring", date(2025, 3, 1), date(2025, 5, 31),
            is_active=True, created_at=datetime(2025, 1, 1),
        )
        newer = make_period(
            "Summer", date(2025, 6, 1), date(2025, 8, 31),
            is_active=True, created_at=datetime(2025, 5, 1),
        )
        idle = make_period("Winter", date(2024, 12, 1), date(2025, 2, 28))

        assert active_budget_period([older, idle, newer]) is newer
        assert active_budget_period([idle]) is None
