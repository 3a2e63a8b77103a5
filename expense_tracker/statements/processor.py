"""
Statement CSV Processing

Turns the text of a CSV statement export into ParsedTransactions.
File upload and storage are not handled here.

Expected layout for every supported source (amex, chase, bank, generic):
    Date,Description,Amount
with a header row first. Amounts may use European (1.234,56) or US
(1,234.56) separators; negative amounts (refunds, card payments) are
stored as absolute values like the rest of the statement.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional
from uuid import UUID

import structlog

from expense_tracker.dates.parser import infer_date_format, parse_date
from expense_tracker.models.dates import DateFormatHint
from expense_tracker.models.expense import Category
from expense_tracker.models.statement import (
    ParseOutcome,
    ParsedTransaction,
    SkippedRow,
)


logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")

EUROPEAN_AMOUNT = re.compile(r"^(\d{1,3}(?:\.\d{3})*),(\d{1,2})$")
SIMPLE_EUROPEAN_AMOUNT = re.compile(r"^(\d+),(\d{1,2})$")
CURRENCY_CHARS = re.compile(r'["$€£]')

DEFAULT_DESCRIPTION = "Unknown transaction"


class StatementFormatError(ValueError):
    """The statement content has no usable rows."""
    pass


def parse_csv_line(line: str) -> list[str]:
    """
    Split one CSV line on commas outside double quotes.

    Quote characters are dropped and every field is trimmed.
    """
    fields = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append("".join(current).strip())
    return fields


def parse_amount(text: Optional[str]) -> Decimal:
    """
    Parse a statement amount, signed, rounded to cents.

    "1.234,56" and "47,40" are European; "1,234.56" is US. Anything
    unreadable is 0, which the processor treats as "skip this row".
    """
    if not text:
        return Decimal("0")

    cleaned = CURRENCY_CHARS.sub("", text).strip()
    negative = cleaned.startswith("-")
    if negative:
        cleaned = cleaned[1:].strip()

    european = EUROPEAN_AMOUNT.match(cleaned)
    simple = SIMPLE_EUROPEAN_AMOUNT.match(cleaned)
    if european:
        integer_part, decimal_part = european.groups()
        cleaned = f"{integer_part.replace('.', '')}.{decimal_part}"
    elif simple:
        integer_part, decimal_part = simple.groups()
        cleaned = f"{integer_part}.{decimal_part}"
    else:
        cleaned = cleaned.replace(",", "")

    try:
        value = Decimal(cleaned)
        if not value.is_finite():
            return Decimal("0")
        # Amounts wider than the decimal context cannot be quantized
        value = value.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return Decimal("0")
    return -value if negative else value


# =============================================================================
# CATEGORIZATION
# =============================================================================

KEYWORD_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Groceries", (
        "lidl", "rewe", "edeka", "aldi", "grocery", "supermarket", "market",
        "food store", "walmart", "safeway", "whole foods", "netto", "penny",
    )),
    ("Eating out", (
        "restaurant", "cafe", "pizza", "delivery", "uber eats", "doordash",
        "lieferando", "mcdonalds", "burger", "kfc", "subway", "bistro",
    )),
    ("Entertainment", (
        "movie", "netflix", "spotify", "game", "entertainment", "cinema",
        "theater", "concert", "amazon prime", "disney",
    )),
    ("Subscription", (
        "subscription", "monthly", "adobe", "software", "saas", "service",
        "membership",
    )),
    ("Transport", (
        "bolt", "uber", "lyft", "taxi", "gas", "fuel", "parking", "transit",
        "transport", "bvg", "db bahn", "train", "bus",
    )),
    ("Gifts", ("gift", "present", "flower", "card", "geschenk")),
    ("Vacation", (
        "hotel", "flight", "travel", "vacation", "airbnb", "booking",
        "expedia", "urlaub",
    )),
    ("Supplement/medicine", (
        "pharmacy", "medicine", "drug", "vitamin", "health", "apotheke",
        "dm", "rossmann",
    )),
    # General shopping
    ("Entertainment", ("amazon", "ebay", "zalando", "otto")),
)

KEYWORD_CONFIDENCE = 0.7
DEFAULT_CONFIDENCE = 0.3
DEFAULT_CATEGORY_NAME = "Entertainment"


class KeywordCategorizer:
    """
    Suggests a category from keywords in the transaction description.

    Keywords are substring matches, checked in table order. The
    suggestion is only a proposal - the user confirms it on review.
    """

    def __init__(
        self,
        categories: Iterable[Category],
        keyword_table: tuple[tuple[str, tuple[str, ...]], ...] = KEYWORD_CATEGORIES,
    ):
        self._categories = list(categories)
        self._by_name = {c.name.lower(): c for c in self._categories}
        self._table = keyword_table

    def _default(self) -> Optional[Category]:
        return self._by_name.get(DEFAULT_CATEGORY_NAME.lower()) or (
            self._categories[0] if self._categories else None
        )

    def categorize(self, description: str) -> tuple[Optional[UUID], float]:
        """Return (category_id, confidence); category_id is None without categories."""
        text = description.lower()

        for category_name, keywords in self._table:
            category = self._by_name.get(category_name.lower())
            if category is None:
                continue
            if any(keyword in text for keyword in keywords):
                return category.id, KEYWORD_CONFIDENCE

        default = self._default()
        return (default.id if default else None), DEFAULT_CONFIDENCE


# =============================================================================
# PROCESSOR
# =============================================================================

class StatementProcessor:
    """
    Parses statement CSV content into transactions.

    The date column is inspected as a whole first so ambiguous rows
    follow the field order proven by the unambiguous ones.
    """

    def __init__(
        self,
        categories: Iterable[Category],
        date_format_hint: DateFormatHint = DateFormatHint.AUTO,
        min_inference_confidence: float = 0.0,
    ):
        self._categorizer = KeywordCategorizer(categories)
        self._date_format_hint = date_format_hint
        self._min_inference_confidence = min_inference_confidence

    def parse_csv(self, content: str, source: str) -> ParseOutcome:
        """
        Parse a CSV statement.

        Args:
            content: Full text of the CSV export, header row first
            source: Statement source label (amex, chase, bank, ...)

        Raises:
            StatementFormatError: If there is no data row after the header
        """
        lines = [
            (number, line.strip())
            for number, line in enumerate(content.splitlines(), start=1)
            if line.strip()
        ]
        if len(lines) < 2:
            raise StatementFormatError("Invalid CSV format: no data rows found")

        rows = [(number, line, parse_csv_line(line)) for number, line in lines[1:]]
        outcome = ParseOutcome()

        hint = self._date_format_hint
        if hint == DateFormatHint.AUTO:
            outcome.inference = infer_date_format(
                fields[0] for _, _, fields in rows if len(fields) >= 3
            )
            # Zero confidence means no token proved an order; stay AUTO so
            # ambiguous rows keep their ambiguous flag.
            confidence = outcome.inference.confidence
            if confidence > 0 and confidence >= self._min_inference_confidence:
                hint = outcome.inference.hint

        for number, line, fields in rows:
            transaction, reason = self._parse_row(number, fields, hint)
            if transaction is None:
                outcome.skipped.append(SkippedRow(row_number=number, line=line, reason=reason))
                continue
            outcome.transactions.append(transaction)

        logger.info(
            "statement_parsed",
            source=source,
            transactions=len(outcome.transactions),
            skipped=len(outcome.skipped),
            date_hint=hint.value,
        )
        return outcome

    def _parse_row(
        self,
        row_number: int,
        fields: list[str],
        hint: DateFormatHint,
    ) -> tuple[Optional[ParsedTransaction], str]:
        if len(fields) < 3:
            return None, f"expected 3 fields, found {len(fields)}"

        raw_date, description, original_amount = fields[0], fields[1], fields[2]
        description = description or DEFAULT_DESCRIPTION
        amount = abs(parse_amount(original_amount))

        if amount == 0:
            return None, f"amount {original_amount!r} is zero or unreadable"

        category_id, confidence = self._categorizer.categorize(description)

        return ParsedTransaction(
            row_number=row_number,
            raw_date=raw_date,
            date_result=parse_date(raw_date, hint),
            amount=amount,
            description=description,
            original_amount=original_amount or "0",
            suggested_category_id=category_id,
            confidence=confidence,
        ), ""
