"""
Date Models

Results of date parsing and date range resolution.

DESIGN DECISION: Parsing returns a tagged result (ParsedDate or
UnparseableDate) instead of a value that silently defaults to "now".
The caller decides what an unparseable date means for its workflow.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class DateFormatHint(str, Enum):
    """Field order a caller expects for slash/dash dates."""
    AUTO = "auto"
    DAY_FIRST = "day_first"      # DD/MM/YYYY (European)
    MONTH_FIRST = "month_first"  # MM/DD/YYYY (US)
    ISO = "iso"                  # YYYY-MM-DD


class DateFormat(str, Enum):
    """Format a token was actually read as."""
    DAY_FIRST = "day_first"
    MONTH_FIRST = "month_first"
    ISO = "iso"
    FREEFORM = "freeform"  # Recognized only by the free-form fallback


class ParsedDate(BaseModel):
    """A date token that was read successfully."""

    kind: Literal["parsed"] = "parsed"
    value: date
    format: DateFormat
    ambiguous: bool = Field(
        default=False,
        description="True when day and month could both be either field"
    )
    original: str = Field(
        ...,
        description="Raw token as it appeared in the statement"
    )

    @property
    def is_parsed(self) -> bool:
        return True


class UnparseableDate(BaseModel):
    """A date token no known format could read."""

    kind: Literal["unparseable"] = "unparseable"
    original: str
    reason: str

    @property
    def is_parsed(self) -> bool:
        return False


DateParseResult = Annotated[
    Union[ParsedDate, UnparseableDate],
    Field(discriminator="kind"),
]


class FormatInference(BaseModel):
    """
    Result of inferring the date format of a whole statement column.

    Confidence is the share of considered tokens that decided the
    field order on their own (first or second group above 12, or ISO).
    """

    hint: DateFormatHint
    confidence: float = Field(ge=0.0, le=1.0)
    day_first_votes: int = Field(default=0, ge=0)
    month_first_votes: int = Field(default=0, ge=0)
    iso_votes: int = Field(default=0, ge=0)
    ambiguous_count: int = Field(default=0, ge=0)
    unrecognized_count: int = Field(default=0, ge=0)

    @property
    def considered(self) -> int:
        return (
            self.day_first_votes
            + self.month_first_votes
            + self.iso_votes
            + self.ambiguous_count
        )

    @property
    def is_conflicting(self) -> bool:
        """Both field orders were proven by different tokens."""
        return self.day_first_votes > 0 and self.month_first_votes > 0


class DateRangePreset(str, Enum):
    """Date ranges offered by the dashboards."""
    LAST_30_DAYS = "30-days"
    LAST_60_DAYS = "60-days"
    LAST_90_DAYS = "90-days"
    CURRENT_MONTH = "current-month"
    CUSTOM = "custom"
    BUDGET_PERIOD = "budget-period"


class DateRange(BaseModel):
    """
    A resolved, inclusive date range.

    start is at the start of its day and end at the end of its day.
    """

    preset: DateRangePreset
    start: datetime
    end: datetime
    day_count: int = Field(ge=1)
    budget_multiplier: float = Field(
        ...,
        gt=0,
        description="Share of a budget month covered by this range"
    )

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def label(self) -> str:
        return f"{self.start.date().isoformat()} to {self.end.date().isoformat()}"


def month_key(moment: Optional[date]) -> Optional[str]:
    """Return the YYYY-MM key a moment falls in."""
    if moment is None:
        return None
    return f"{moment.year:04d}-{moment.month:02d}"
