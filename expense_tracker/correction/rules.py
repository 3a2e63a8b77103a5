"""
Correction Rules

Stored expense dates from older imports can be wrong in two known ways:
the day and month were swapped and rolled over into a future year, or
the dates landed outside the period the statement actually covers.
Amounts can be wrong when the separator of a European amount was
misread.

Each repair strategy is a rule: a pure function from one Expense to a
CorrectionDecision, or None to leave the record alone. Rules never
touch storage; the CorrectionRunner does that.

DESIGN DECISION: The heuristics (assumed year, target window, split
day) are settings, not constants, so a repair can be pointed at a
different statement period without editing code.
"""

import calendar
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from expense_tracker.config import CorrectionSettings, get_settings
from expense_tracker.dates.parser import rollover_date, to_utc_datetime
from expense_tracker.models.correction import CorrectionDecision
from expense_tracker.models.expense import Expense
from expense_tracker.statements.processor import parse_amount


AMOUNT_TOLERANCE = Decimal("0.01")

# December dates in the broken data came from the start of the window
WRAPPED_MONTH = 12


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


class CorrectionRule(ABC):
    """A single repair strategy for stored expenses."""

    name: str = "rule"

    @abstractmethod
    def decide(self, expense: Expense) -> Optional[CorrectionDecision]:
        """Return the proposed replacement values, or None to leave it alone."""
        pass


class SwappedYearRule(CorrectionRule):
    """
    Repairs dates pushed into the future by a day/month swap.

    A date in or after future_year_threshold was a D/M token read as
    M/D with rollover. The month and day are swapped back and the year
    is set to assumed_import_year, with the same rollover semantics the
    importer had (a day of 31 in a 30-day month carries into the next).
    """

    name = "swapped_year"

    def __init__(self, settings: Optional[CorrectionSettings] = None):
        settings = settings or get_settings().corrections
        self._threshold = settings.future_year_threshold
        self._year = settings.assumed_import_year

    def decide(self, expense: Expense) -> Optional[CorrectionDecision]:
        current = expense.date
        if current.year < self._threshold:
            return None

        try:
            repaired = rollover_date(self._year, current.day, current.month)
        except ValueError:
            return None

        return CorrectionDecision(
            date=to_utc_datetime(repaired),
            reason=(
                f"Swapped {current.day}/{current.month}/{current.year} to "
                f"{current.month}/{current.day}/{self._year}"
            ),
        )


class WindowRemapRule(CorrectionRule):
    """
    Moves dates that fall outside the known statement window into it.

    Applies to dates one or two years past window_year, and to dates in
    window_year outside the two window months. Days up to split_day go
    to the first window month, later days to the second. A stored month
    equal to one of the window months (in another year) keeps that
    month; any other December goes to the first month. Days are clamped
    to the length of the target month.

    Dates already inside the window are never touched, so running the
    rule twice changes nothing the second time.
    """

    name = "window_remap"

    def __init__(self, settings: Optional[CorrectionSettings] = None):
        settings = settings or get_settings().corrections
        self._year = settings.window_year
        self._first_month, self._second_month = settings.window_months
        self._split_day = settings.split_day

    def _applies(self, current: datetime) -> bool:
        if current.year in (self._year + 1, self._year + 2):
            return True
        if current.year == self._year:
            return current.month not in (self._first_month, self._second_month)
        return False

    def _target(self, month: int, day: int) -> datetime:
        day = min(day, _days_in_month(self._year, month))
        return datetime(self._year, month, day, tzinfo=timezone.utc)

    def decide(self, expense: Expense) -> Optional[CorrectionDecision]:
        current = expense.date
        if not self._applies(current):
            return None

        day, month, year = current.day, current.month, current.year

        if month in (self._first_month, self._second_month) and year != self._year:
            target = self._target(month, day)
            reason = f"Month {month} kept, day {target.day}, year {self._year}"
        elif month == WRAPPED_MONTH:
            target = self._target(self._first_month, day)
            reason = f"Month {month} mapped to month {self._first_month}, day {target.day}"
        elif day <= self._split_day:
            target = self._target(self._first_month, day)
            reason = f"Mapped day {day} to {target.date()}"
        else:
            target = self._target(self._second_month, day)
            reason = f"Mapped day {day} to {target.date()}"

        return CorrectionDecision(date=target, reason=reason)


class AmountReparseRule(CorrectionRule):
    """
    Re-reads the stored original amount string with the current parser.

    Corrects the amount when it differs from the re-parsed value by more
    than one cent. Expenses without an original amount, or whose original
    no longer reads as a number, are left alone. Refund signs are dropped
    like they are on import.
    """

    name = "amount_reparse"

    def decide(self, expense: Expense) -> Optional[CorrectionDecision]:
        if not expense.original_amount:
            return None

        reparsed = abs(parse_amount(expense.original_amount))
        if not reparsed:
            return None
        if abs(reparsed - expense.amount) <= AMOUNT_TOLERANCE:
            return None

        return CorrectionDecision(
            amount=reparsed,
            reason=f"Re-parsed {expense.original_amount!r} as {reparsed} (was {expense.amount})",
        )
