"""
Statement Import Flow

Flow:
1. Create the Statement record (processing)
2. Parse the CSV content into transactions
3. Validate each transaction
4. Store each one as a PENDING expense
5. Finish the statement (completed / failed) and return an ImportReport

DESIGN DECISION: Nothing imported here is trusted. Every expense starts
PENDING and keeps the raw statement values (original_amount,
source_label) so review and later repairs can see what the file said.
Rows whose date cannot be read are never silently dated "now" unless
the import policy explicitly asks for it, and even then they are listed
in the report.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import ImportSettings, get_settings
from expense_tracker.dates.parser import to_utc_datetime
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.dates import ParsedDate
from expense_tracker.models.expense import Expense, Partner, utc_now
from expense_tracker.models.statement import (
    ImportReport,
    ParsedTransaction,
    SkippedRow,
    Statement,
    StatementStatus,
    UnparsedDatePolicy,
)
from expense_tracker.services.storage import (
    ExpenseStorageInterface,
    StatementStorageInterface,
    StorageError,
)
from expense_tracker.statements.processor import StatementFormatError, StatementProcessor
from expense_tracker.validation import TransactionValidator


logger = structlog.get_logger(__name__)

PROGRESS_EVERY = 10


class ImportSetupError(ValueError):
    """Reference data required by the import is missing."""
    pass


class StatementImportFlow:
    """
    Orchestrates the import of one CSV statement.

    Per-row failures are collected into the report; only a statement
    that cannot be read at all ends up FAILED.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        statement_storage: StatementStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[ImportSettings] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        self._expenses = expense_storage
        self._statements = statement_storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().imports
        self._validator = validator or TransactionValidator(self._settings)

    async def _audit(self, event) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    async def import_statement(
        self,
        content: str,
        file_name: str,
        source: str,
        default_partner_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> ImportReport:
        """
        Import a CSV statement as pending expenses.

        Args:
            content: Text of the CSV file
            file_name: Original file name, kept on the Statement
            source: Statement source label (amex, chase, bank, ...)
            default_partner_id: Partner for every imported expense.
                Defaults to the first known partner.
            correlation_id: Ties all audit events of this import together
            now: Import time (for tests)

        Returns:
            ImportReport. Its status is FAILED when the statement could
            not be processed; the Statement record mirrors it.

        Raises:
            Exception: Anything unexpected is re-raised after the
                statement is marked FAILED and a system error is audited.
        """
        correlation_id = correlation_id or create_correlation_id()
        statement = await self._statements.create_statement(Statement(
            file_name=file_name,
            source=source.lower(),
            status=StatementStatus.PROCESSING,
            total_transactions=0,
            processed_transactions=0,
        ))
        report = ImportReport(statement_id=statement.id, status=StatementStatus.PROCESSING)

        await self._audit(AuditEventBuilder.import_started(
            statement_id=statement.id,
            file_name=file_name,
            source=statement.source,
            correlation_id=correlation_id,
        ))

        try:
            await self._process(statement, content, default_partner_id, report, correlation_id, now)
        except (StatementFormatError, ImportSetupError) as e:
            await self._fail(statement, report, str(e), correlation_id)
            return report
        except Exception as e:
            await self._fail(statement, report, f"Unexpected error: {e}", correlation_id)
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"statement_id": str(statement.id)},
                    correlation_id=correlation_id,
                )
            raise

        error_message = f"{len(report.failures)} errors occurred" if report.failures else None
        await self._statements.update_statement(statement.id, {
            "status": StatementStatus.COMPLETED,
            "processed_transactions": report.imported,
            "processed_at": utc_now(),
            "error_message": error_message,
        })
        report.status = StatementStatus.COMPLETED

        logger.info(
            "statement_imported",
            statement_id=str(statement.id),
            imported=report.imported,
            total=report.total_transactions,
            skipped=len(report.skipped),
            unparsed_dates=len(report.unparsed_dates),
            failures=len(report.failures),
        )
        await self._audit(AuditEventBuilder.import_completed(
            statement_id=statement.id,
            imported=report.imported,
            skipped=len(report.skipped),
            unparsed_dates=len(report.unparsed_dates),
            failures=len(report.failures),
            correlation_id=correlation_id,
        ))
        return report

    async def _fail(
        self,
        statement: Statement,
        report: ImportReport,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Mark the statement FAILED so it never stays processing."""
        logger.error("statement_import_failed", statement_id=str(statement.id), error=error_message)
        await self._statements.update_statement(statement.id, {
            "status": StatementStatus.FAILED,
            "error_message": error_message,
            "processed_at": utc_now(),
        })
        report.status = StatementStatus.FAILED
        report.failures.append(error_message)
        await self._audit(AuditEventBuilder.import_failed(
            statement_id=statement.id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def _process(
        self,
        statement: Statement,
        content: str,
        default_partner_id: Optional[UUID],
        report: ImportReport,
        correlation_id: UUID,
        now: Optional[datetime],
    ) -> None:
        categories = await self._expenses.list_categories()
        if not categories:
            raise ImportSetupError("No categories found. Please add categories first.")
        partners = await self._expenses.list_partners()
        partner_id = self._pick_partner(default_partner_id, partners)

        processor = StatementProcessor(
            categories,
            date_format_hint=self._settings.date_format_hint,
            min_inference_confidence=self._settings.min_inference_confidence,
        )
        outcome = processor.parse_csv(content, statement.source)
        report.inference = outcome.inference
        report.total_transactions = len(outcome.transactions)
        report.skipped.extend(outcome.skipped)

        await self._statements.update_statement(statement.id, {
            "total_transactions": report.total_transactions,
        })

        for row in outcome.skipped:
            await self._audit(AuditEventBuilder.row_skipped(
                statement_id=statement.id,
                row_number=row.row_number,
                reason=row.reason,
                correlation_id=correlation_id,
            ))

        for tx in outcome.transactions:
            await self._import_transaction(statement, tx, partner_id, report, correlation_id, now)

            if report.imported and report.imported % PROGRESS_EVERY == 0:
                await self._statements.update_statement(statement.id, {
                    "processed_transactions": report.imported,
                })

    @staticmethod
    def _pick_partner(default_partner_id: Optional[UUID], partners: list[Partner]) -> Optional[UUID]:
        if default_partner_id:
            return default_partner_id
        return partners[0].id if partners else None

    async def _import_transaction(
        self,
        statement: Statement,
        tx: ParsedTransaction,
        partner_id: Optional[UUID],
        report: ImportReport,
        correlation_id: UUID,
        now: Optional[datetime],
    ) -> None:
        policy = self._settings.unparsed_date_policy

        if not isinstance(tx.date_result, ParsedDate):
            report.unparsed_dates.append(SkippedRow(
                row_number=tx.row_number,
                line=tx.raw_date,
                reason=tx.date_result.reason,
            ))
            await self._audit(AuditEventBuilder.date_unparseable(
                statement_id=statement.id,
                row_number=tx.row_number,
                raw_date=tx.raw_date,
                policy=policy.value,
                correlation_id=correlation_id,
            ))
            if policy == UnparsedDatePolicy.SKIP:
                report.skipped.append(SkippedRow(
                    row_number=tx.row_number,
                    line=tx.raw_date,
                    reason=f"unreadable date {tx.raw_date!r}",
                ))
                return

        if partner_id is None:
            report.failures.append(f"No partner available for transaction: {tx.description}")
            return

        result = self._validator.validate(tx)
        if result.issues:
            report.validation.append(result)

        if isinstance(tx.date_result, ParsedDate):
            expense_date = to_utc_datetime(tx.date_result.value)
        else:
            expense_date = now or utc_now()

        try:
            expense = await self._expenses.create_expense(Expense(
                amount=tx.amount,
                description=tx.description,
                category_id=tx.suggested_category_id,
                partner_id=partner_id,
                date=expense_date,
                statement_id=statement.id,
                original_amount=tx.original_amount,
                source_label=statement.source,
            ))
        except (StorageError, ValidationError) as e:
            logger.warning(
                "expense_create_failed",
                statement_id=str(statement.id),
                row_number=tx.row_number,
                error=str(e),
            )
            report.failures.append(f"Failed to process: {tx.description}")
            return

        report.imported += 1
        report.expense_ids.append(expense.id)

        if not tx.has_date:
            await self._audit(AuditEventBuilder.date_fallback_used(
                expense_id=expense.id,
                raw_date=tx.raw_date,
                correlation_id=correlation_id,
            ))
