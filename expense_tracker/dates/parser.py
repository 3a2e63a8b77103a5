"""
Statement Date Parsing

Statement exports mix European (DD/MM/YYYY), US (MM/DD/YYYY) and ISO
(YYYY-MM-DD) dates, and the file never says which one it uses.

Two entry points:

parse_statement_date()
    The historical contract: always returns an ISO instant string.
    Unreadable input silently becomes "now". Kept only so stored data
    and regression tests can be compared against what the importer used
    to produce. New code should not call it.

parse_date()
    Returns a tagged result (ParsedDate / UnparseableDate). Never
    guesses a date for input it cannot read.

infer_date_format() looks at a whole statement column and decides the
field order once, with a confidence score, so single ambiguous rows
(05/07/2024) follow the evidence of the unambiguous ones (25/07/2024).
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Union

import structlog
from dateutil import parser as dateutil_parser

from expense_tracker.models.dates import (
    DateFormat,
    DateFormatHint,
    FormatInference,
    ParsedDate,
    UnparseableDate,
)


logger = structlog.get_logger(__name__)


# Searched, not anchored: the first match anywhere in the token wins.
SLASH_PATTERN = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
DASH_PATTERN = re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})")
ISO_PATTERN = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")

MAX_MONTH = 12


def clean_token(token: str) -> str:
    """Strip CSV quoting and surrounding whitespace."""
    return (token or "").replace('"', "").strip()


def rollover_date(year: int, month: int, day: int) -> date:
    """
    Build a date leniently: out-of-range months and days carry over.

    Month 15 of 2024 is March 2025, day 0 is the last day of the
    previous month. Raises ValueError when the result leaves the
    representable calendar.
    """
    carry, month_index = divmod(month - 1, MAX_MONTH)
    first_of_month = date(year + carry, month_index + 1, 1)
    try:
        return first_of_month + timedelta(days=day - 1)
    except OverflowError as e:
        raise ValueError(str(e)) from e


def to_utc_datetime(value: Union[date, datetime]) -> datetime:
    """Midnight UTC for a date; aware UTC for a datetime (naive means UTC)."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def to_iso_instant(value: Union[date, datetime]) -> str:
    """Format as an ISO-8601 UTC instant, e.g. 2024-03-15T00:00:00.000Z."""
    moment = to_utc_datetime(value)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_freeform(cleaned: str, dayfirst: bool = False) -> Optional[datetime]:
    if not cleaned:
        return None
    try:
        return dateutil_parser.parse(cleaned, dayfirst=dayfirst)
    except (ValueError, OverflowError):
        return None


# =============================================================================
# LEGACY CONTRACT
# =============================================================================

def _legacy_numeric(match: re.Match) -> date:
    first, second, year = (int(group) for group in match.groups())
    # The old importer had a "first group > 12 means US format" branch,
    # but it built the same (year, second, first) date as the default
    # branch. A month-first token such as 03/15/2024 is therefore read as
    # day 3 of month 15 and rolls over into the next year.
    return rollover_date(year, second, first)


def _legacy_iso(match: re.Match) -> date:
    year, month, day = (int(group) for group in match.groups())
    return rollover_date(year, month, day)


_LEGACY_FORMATS = (
    (SLASH_PATTERN, _legacy_numeric),
    (DASH_PATTERN, _legacy_numeric),
    (ISO_PATTERN, _legacy_iso),
)


def parse_statement_date(token: str, now: Optional[datetime] = None) -> str:
    """
    Parse a statement date the way the original importer did.

    Tries slash D/M/Y, dash D-M-Y, then ISO Y-M-D; then free-form
    parsing; then gives up and returns `now` (current instant by
    default). Never raises.

    Args:
        token: Raw date field, possibly quoted or padded
        now: Instant to return for unreadable input (for tests)

    Returns:
        ISO-8601 UTC instant string
    """
    cleaned = clean_token(token)

    for pattern, build in _LEGACY_FORMATS:
        match = pattern.search(cleaned)
        if not match:
            continue
        try:
            return to_iso_instant(build(match))
        except ValueError:
            continue

    freeform = _parse_freeform(cleaned)
    if freeform is not None:
        return to_iso_instant(freeform)

    moment = now or datetime.now(timezone.utc)
    logger.warning(
        "date_fallback_to_now",
        token=token,
        substituted=to_iso_instant(moment),
    )
    return to_iso_instant(moment)


# =============================================================================
# TAGGED PARSER
# =============================================================================

def _read_numeric(
    match: re.Match,
    original: str,
    hint: DateFormatHint,
) -> Union[ParsedDate, UnparseableDate]:
    first, second, year = (int(group) for group in match.groups())

    if hint == DateFormatHint.DAY_FIRST:
        day, month, fmt, ambiguous = first, second, DateFormat.DAY_FIRST, False
    elif hint == DateFormatHint.MONTH_FIRST:
        day, month, fmt, ambiguous = second, first, DateFormat.MONTH_FIRST, False
    elif first > MAX_MONTH and second <= MAX_MONTH:
        day, month, fmt, ambiguous = first, second, DateFormat.DAY_FIRST, False
    elif second > MAX_MONTH and first <= MAX_MONTH:
        day, month, fmt, ambiguous = second, first, DateFormat.MONTH_FIRST, False
    elif first <= MAX_MONTH and second <= MAX_MONTH:
        # European default when either order is possible
        day, month, fmt = first, second, DateFormat.DAY_FIRST
        ambiguous = first != second
    else:
        return UnparseableDate(
            original=original,
            reason=f"neither {first} nor {second} can be a month",
        )

    try:
        value = date(year, month, day)
    except ValueError:
        return UnparseableDate(
            original=original,
            reason=f"day {day} of month {month} in {year} is not a calendar date",
        )

    return ParsedDate(value=value, format=fmt, ambiguous=ambiguous, original=original)


def parse_date(
    token: str,
    hint: DateFormatHint = DateFormatHint.AUTO,
) -> Union[ParsedDate, UnparseableDate]:
    """
    Parse a statement date into a tagged result.

    Slash and dash dates follow `hint`; with AUTO a group above 12
    decides the order and otherwise day-first is assumed and the result
    is marked ambiguous. ISO dates are always accepted. Anything else
    goes through free-form parsing and is marked FREEFORM.

    Impossible dates (31/02/2024) are reported, not rolled over.
    """
    cleaned = clean_token(token)
    if not cleaned:
        return UnparseableDate(original=token or "", reason="empty date")

    for pattern in (SLASH_PATTERN, DASH_PATTERN):
        match = pattern.search(cleaned)
        if match:
            return _read_numeric(match, token, hint)

    match = ISO_PATTERN.search(cleaned)
    if match:
        year, month, day = (int(group) for group in match.groups())
        try:
            value = date(year, month, day)
        except ValueError:
            return UnparseableDate(
                original=token,
                reason=f"{cleaned} is not a calendar date",
            )
        return ParsedDate(value=value, format=DateFormat.ISO, original=token)

    freeform = _parse_freeform(cleaned, dayfirst=hint != DateFormatHint.MONTH_FIRST)
    if freeform is not None:
        return ParsedDate(
            value=freeform.date(),
            format=DateFormat.FREEFORM,
            ambiguous=True,
            original=token,
        )

    return UnparseableDate(original=token, reason="no known date format")


def infer_date_format(tokens: Iterable[str]) -> FormatInference:
    """
    Infer the field order of a statement's date column.

    Each slash/dash token votes day-first (first group > 12), month-first
    (second group > 12) or counts as ambiguous. Confidence is the share
    of numeric tokens that voted for the winning order.

    - Votes for both orders: AUTO with confidence 0 (mixed column)
    - Only ISO tokens: ISO with confidence 1
    - No decisive token: DAY_FIRST with confidence 0
    """
    day_votes = month_votes = iso_votes = ambiguous = unrecognized = 0

    for token in tokens:
        cleaned = clean_token(token)
        match = SLASH_PATTERN.search(cleaned) or DASH_PATTERN.search(cleaned)
        if match:
            first, second = int(match.group(1)), int(match.group(2))
            if first > MAX_MONTH and second <= MAX_MONTH:
                day_votes += 1
            elif second > MAX_MONTH and first <= MAX_MONTH:
                month_votes += 1
            elif first <= MAX_MONTH and second <= MAX_MONTH:
                ambiguous += 1
            else:
                unrecognized += 1
        elif ISO_PATTERN.search(cleaned):
            iso_votes += 1
        else:
            unrecognized += 1

    numeric = day_votes + month_votes + ambiguous

    if day_votes and month_votes:
        hint, confidence = DateFormatHint.AUTO, 0.0
    elif month_votes:
        hint, confidence = DateFormatHint.MONTH_FIRST, month_votes / numeric
    elif day_votes:
        hint, confidence = DateFormatHint.DAY_FIRST, day_votes / numeric
    elif numeric == 0 and iso_votes:
        hint, confidence = DateFormatHint.ISO, 1.0
    else:
        hint, confidence = DateFormatHint.DAY_FIRST, 0.0

    inference = FormatInference(
        hint=hint,
        confidence=confidence,
        day_first_votes=day_votes,
        month_first_votes=month_votes,
        iso_votes=iso_votes,
        ambiguous_count=ambiguous,
        unrecognized_count=unrecognized,
    )
    logger.debug("date_format_inferred", **inference.model_dump(mode="json"))
    return inference
