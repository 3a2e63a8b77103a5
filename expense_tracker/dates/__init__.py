"""Date parsing and date range utilities."""

from expense_tracker.dates.parser import (
    clean_token,
    infer_date_format,
    parse_date,
    parse_statement_date,
    rollover_date,
    to_iso_instant,
    to_utc_datetime,
)
from expense_tracker.dates.ranges import (
    InvalidDateRangeError,
    active_budget_period,
    end_of_day,
    resolve_date_range,
    start_of_day,
)

__all__ = [
    "InvalidDateRangeError",
    "active_budget_period",
    "clean_token",
    "end_of_day",
    "infer_date_format",
    "parse_date",
    "parse_statement_date",
    "resolve_date_range",
    "rollover_date",
    "start_of_day",
    "to_iso_instant",
    "to_utc_datetime",
]
