"""
Correction Runner

Applies one CorrectionRule to every expense of a statement.

DESIGN DECISION: Records are updated one at a time through the storage
interface. There is no transactional batching: when an update fails
after all retries, or the rule itself raises, the failure is recorded in
the report and the run carries on; earlier updates stay written. The report (not the console)
is the result of a run.
"""

from collections import Counter
from typing import Optional
from uuid import UUID

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import CorrectionSettings, get_settings
from expense_tracker.correction.rules import CorrectionRule
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.correction import (
    AppliedCorrection,
    CorrectionDecision,
    CorrectionFailure,
    CorrectionReport,
)
from expense_tracker.models.dates import month_key
from expense_tracker.models.expense import Expense, utc_now
from expense_tracker.services.storage import (
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


def _is_transient(error: BaseException) -> bool:
    # A missing record won't appear on retry
    return isinstance(error, StorageError) and not isinstance(error, NotFoundError)


def month_distribution(expenses: list[Expense]) -> dict[str, int]:
    """Count expenses per YYYY-MM, sorted by month."""
    counts = Counter(month_key(e.date) for e in expenses)
    return dict(sorted(counts.items()))


def _snapshot(expense: Expense, decision: CorrectionDecision) -> dict:
    return {
        field: getattr(expense, field)
        for field in decision.as_update()
    }


class CorrectionRunner:
    """
    Runs correction rules against stored expenses.

    Usage:
        runner = CorrectionRunner(storage, audit_logger)
        report = await runner.run(statement_id, WindowRemapRule(), dry_run=True)
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[CorrectionSettings] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        """
        Args:
            storage: Expense storage holding the records to repair
            audit_logger: Receives one event per change and per failure
            settings: Retry attempts. Defaults to the global settings.
            retry_wait: Wait strategy between update attempts
        """
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().corrections
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)

    async def _audit(self, event) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    async def _update(self, expense_id: UUID, changes: dict) -> Expense:
        """Write one record, retrying transient storage failures."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.update_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                return await self._storage.update_expense(expense_id, changes)

    async def _record_failure(
        self,
        report: CorrectionReport,
        expense: Expense,
        rule: CorrectionRule,
        attempted: dict,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        """Collect a per-record failure; the run carries on."""
        logger.error(
            "correction_failed",
            expense_id=str(expense.id),
            rule=rule.name,
            error_type=type(error).__name__,
            error=str(error),
        )
        report.failures.append(CorrectionFailure(
            expense_id=expense.id,
            error=str(error) or type(error).__name__,
            attempted=attempted,
        ))
        await self._audit(AuditEventBuilder.correction_failed(
            expense_id=expense.id,
            rule=rule.name,
            error_message=str(error) or type(error).__name__,
            correlation_id=correlation_id,
        ))

    async def run(
        self,
        statement_id: UUID,
        rule: CorrectionRule,
        dry_run: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> CorrectionReport:
        """
        Apply a rule to every expense of a statement.

        Decisions equal to the stored values are counted as skipped.
        With dry_run, the report lists what would change and nothing is
        written.

        Raises:
            StorageError: If the statement's expenses cannot be listed
        """
        correlation_id = correlation_id or create_correlation_id()
        expenses = await self._storage.list_expenses(statement_id=statement_id)

        report = CorrectionReport(
            statement_id=statement_id,
            rule=rule.name,
            dry_run=dry_run,
            examined=len(expenses),
            month_distribution_before=month_distribution(expenses),
        )
        after: list[Expense] = []

        for expense in expenses:
            try:
                decision = rule.decide(expense)
            except Exception as e:
                await self._record_failure(report, expense, rule, {}, e, correlation_id)
                after.append(expense)
                continue

            changes = decision.as_update() if decision else {}
            before = _snapshot(expense, decision) if decision else {}

            if not changes or changes == before:
                report.skipped += 1
                after.append(expense)
                continue

            applied = AppliedCorrection(
                expense_id=expense.id,
                before=before,
                after=changes,
                reason=decision.reason,
            )

            if dry_run:
                report.corrected += 1
                report.applied.append(applied)
                after.append(expense.model_copy(update=changes))
                continue

            try:
                updated = await self._update(expense.id, changes)
            except StorageError as e:
                await self._record_failure(report, expense, rule, changes, e, correlation_id)
                after.append(expense)
                continue

            report.corrected += 1
            report.applied.append(applied)
            after.append(updated)
            logged = applied.model_dump(mode="json")
            await self._audit(AuditEventBuilder.correction_applied(
                expense_id=expense.id,
                rule=rule.name,
                before=logged["before"],
                after=logged["after"],
                reason=decision.reason,
                correlation_id=correlation_id,
            ))

        report.month_distribution_after = month_distribution(after)
        report.finished_at = utc_now()

        logger.info(
            "correction_run_completed",
            statement_id=str(statement_id),
            rule=rule.name,
            dry_run=dry_run,
            examined=report.examined,
            corrected=report.corrected,
            skipped=report.skipped,
            failed=report.failed,
        )
        await self._audit(AuditEventBuilder.correction_run_completed(
            statement_id=statement_id,
            rule=rule.name,
            summary=report.summary(),
            dry_run=dry_run,
            correlation_id=correlation_id,
        ))
        return report
