"""Statement parsing and import."""

from expense_tracker.statements.importer import ImportSetupError, StatementImportFlow
from expense_tracker.statements.processor import (
    KeywordCategorizer,
    StatementFormatError,
    StatementProcessor,
    parse_amount,
    parse_csv_line,
)

__all__ = [
    "ImportSetupError",
    "KeywordCategorizer",
    "StatementFormatError",
    "StatementImportFlow",
    "StatementProcessor",
    "parse_amount",
    "parse_csv_line",
]
