"""
Tests for batch expense corrections.

Rules are tested as pure functions; the runner against in-memory
storage.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from tenacity import wait_none

from expense_tracker.audit import AuditLogger
from expense_tracker.config import CorrectionSettings
from expense_tracker.correction import (
    AmountReparseRule,
    CorrectionRunner,
    SwappedYearRule,
    WindowRemapRule,
    month_distribution,
)
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.expense import Expense
from expense_tracker.services.storage import InMemoryExpenseStorage, StorageError


SETTINGS = CorrectionSettings()


def utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


class FlakyStorage(InMemoryExpenseStorage):
    """Fails the first `failures` updates of every expense."""

    def __init__(self, failures: int, **kwargs):
        super().__init__(**kwargs)
        self._failures = failures
        self.attempts: dict[UUID, int] = {}

    async def update_expense(self, expense_id: UUID, changes: dict[str, Any]) -> Expense:
        self.attempts[expense_id] = self.attempts.get(expense_id, 0) + 1
        if self.attempts[expense_id] <= self._failures:
            raise StorageError("connection reset")
        return await super().update_expense(expense_id, changes)


class TestSwappedYearRule:
    """Tests for the swapped day/month repair."""

    def test_future_year_swapped_back(self, make_expense):
        """Test 2027-03-05 has month and day swapped into 2024-05-03."""
        decision = SwappedYearRule(SETTINGS).decide(make_expense(date=utc(2027, 3, 5)))
        assert decision.date == utc(2024, 5, 3)

    def test_swap_uses_rollover(self, make_expense):
        """Test a stored day above 12 rolls over like the old importer did."""
        decision = SwappedYearRule(SETTINGS).decide(make_expense(date=utc(2027, 1, 31)))
        # month 31 of 2024
        assert decision.date == utc(2026, 7, 1)

    def test_recent_year_untouched(self, make_expense):
        """Test dates before the threshold are left alone."""
        assert SwappedYearRule(SETTINGS).decide(make_expense(date=utc(2026, 12, 1))) is None


class TestWindowRemapRule:
    """Tests for the statement window repair."""

    @pytest.mark.parametrize("stored, expected", [
        (utc(2026, 3, 10), utc(2025, 6, 10)),   # first half -> June
        (utc(2027, 3, 20), utc(2025, 7, 20)),   # second half -> July
        (utc(2025, 2, 15), utc(2025, 6, 15)),   # split day stays in June
        (utc(2025, 1, 31), utc(2025, 7, 31)),
        (utc(2026, 6, 30), utc(2025, 6, 30)),  # month 6 kept as June
        (utc(2026, 7, 3), utc(2025, 7, 3)),     # month 7 kept as July
        (utc(2025, 12, 31), utc(2025, 6, 30)),  # December -> June, clamped
    ])
    def test_remap(self, make_expense, stored, expected):
        """Test each mapping branch."""
        decision = WindowRemapRule(SETTINGS).decide(make_expense(date=stored))
        assert decision.date == expected

    @pytest.mark.parametrize("stored", [
        utc(2025, 6, 1),
        utc(2025, 7, 31),
        utc(2024, 3, 3),
        utc(2028, 3, 3),
    ])
    def test_outside_scope_untouched(self, make_expense, stored):
        """Test in-window dates and unrelated years are left alone."""
        assert WindowRemapRule(SETTINGS).decide(make_expense(date=stored)) is None

    def test_configurable_window(self, make_expense):
        """Test the window comes from settings."""
        settings = CorrectionSettings(window_year=2024, window_months=(1, 2), split_day=10)
        decision = WindowRemapRule(settings).decide(make_expense(date=utc(2024, 5, 30)))
        assert decision.date == utc(2024, 2, 29)

    def test_window_months_must_be_consecutive(self):
        """Test non-consecutive window months are rejected."""
        with pytest.raises(ValueError):
            CorrectionSettings(window_months=(6, 8))

    def test_window_cannot_wrap_the_year(self):
        """Test a December-January window is rejected."""
        with pytest.raises(ValueError, match="within one year"):
            CorrectionSettings(window_months=(12, 1))

    def test_december_window_keeps_december(self, make_expense):
        """Test December is not sent to the first month when it is a window month."""
        settings = CorrectionSettings(window_year=2024, window_months=(11, 12))
        decision = WindowRemapRule(settings).decide(make_expense(date=utc(2025, 12, 3)))
        assert decision.date == utc(2024, 12, 3)


class TestAmountReparseRule:
    """Tests for re-parsing stored amounts."""

    def test_misread_european_amount(self, make_expense):
        """Test 1.234,56 stored as 1.23 is corrected."""
        decision = AmountReparseRule().decide(
            make_expense(amount=Decimal("1.23"), original_amount="1.234,56")
        )
        assert decision.amount == Decimal("1234.56")

    def test_within_a_cent_untouched(self, make_expense):
        """Test tiny differences are not corrections."""
        expense = make_expense(amount=Decimal("47.40"), original_amount="47,40")
        assert AmountReparseRule().decide(expense) is None

    def test_refund_sign_dropped(self, make_expense):
        """Test a negative original amount matches its stored absolute value."""
        expense = make_expense(amount=Decimal("12.00"), original_amount="-12.00")
        assert AmountReparseRule().decide(expense) is None

    def test_no_original_amount(self, make_expense):
        """Test manual expenses are left alone."""
        assert AmountReparseRule().decide(make_expense()) is None

    def test_oversized_original_untouched(self, make_expense):
        """Test an original amount too wide to read is not turned into zero."""
        expense = make_expense(original_amount="9" * 30)
        assert AmountReparseRule().decide(expense) is None


class TestCorrectionRunner:
    """Tests for CorrectionRunner."""

    async def _seed(self, storage, make_expense, statement_id, dates):
        expenses = [make_expense(date=d, statement_id=statement_id) for d in dates]
        for expense in expenses:
            await storage.create_expense(expense)
        return expenses

    @pytest.mark.asyncio
    async def test_window_remap_run(self, storage, make_expense):
        """Test a run corrects out-of-window records and reports distributions."""
        statement_id = uuid4()
        await self._seed(storage, make_expense, statement_id, [
            utc(2026, 3, 10), utc(2027, 3, 20), utc(2025, 6, 5),
        ])
        await self._seed(storage, make_expense, uuid4(), [utc(2026, 3, 10)])

        report = await CorrectionRunner(storage, settings=SETTINGS).run(
            statement_id, WindowRemapRule(SETTINGS)
        )

        assert report.examined == 3
        assert report.corrected == 2
        assert report.skipped == 1
        assert report.failures == []
        assert report.month_distribution_before == {"2025-06": 1, "2026-03": 1, "2027-03": 1}
        assert report.month_distribution_after == {"2025-06": 2, "2025-07": 1}

        stored = await storage.list_expenses(statement_id=statement_id)
        assert {e.date for e in stored} == {utc(2025, 6, 5), utc(2025, 6, 10), utc(2025, 7, 20)}

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, storage, make_expense):
        """Test running the window remap twice corrects nothing the second time."""
        statement_id = uuid4()
        await self._seed(storage, make_expense, statement_id, [
            utc(2026, 3, 10), utc(2027, 12, 31), utc(2025, 1, 20),
        ])
        runner = CorrectionRunner(storage, settings=SETTINGS)
        rule = WindowRemapRule(SETTINGS)

        first = await runner.run(statement_id, rule)
        second = await runner.run(statement_id, rule)

        assert first.corrected == 3
        assert second.corrected == 0
        assert second.is_noop is True

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, storage, make_expense):
        """Test a dry run reports changes without writing them."""
        statement_id = uuid4()
        await self._seed(storage, make_expense, statement_id, [utc(2027, 3, 5)])

        report = await CorrectionRunner(storage, settings=SETTINGS).run(
            statement_id, SwappedYearRule(SETTINGS), dry_run=True
        )

        assert report.dry_run is True
        assert report.corrected == 1
        assert report.applied[0].after == {"date": utc(2024, 5, 3)}
        assert report.month_distribution_after == {"2024-05": 1}
        stored = await storage.list_expenses(statement_id=statement_id)
        assert stored[0].date == utc(2027, 3, 5)

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, categories, partners, make_expense):
        """Test a failing update is retried and succeeds."""
        storage = FlakyStorage(failures=2, categories=categories, partners=partners)
        statement_id = uuid4()
        [expense] = await self._seed(storage, make_expense, statement_id, [utc(2027, 3, 5)])

        report = await CorrectionRunner(storage, settings=SETTINGS, retry_wait=wait_none()).run(
            statement_id, SwappedYearRule(SETTINGS)
        )

        assert report.corrected == 1
        assert storage.attempts[expense.id] == 3

    @pytest.mark.asyncio
    async def test_persistent_failure_reported(
        self, categories, partners, make_expense, audit_storage
    ):
        """Test exhausted retries become a failure entry; other rows still update."""
        storage = FlakyStorage(failures=10, categories=categories, partners=partners)
        statement_id = uuid4()
        await self._seed(storage, make_expense, statement_id, [utc(2027, 3, 5), utc(2025, 6, 1)])

        report = await CorrectionRunner(
            storage,
            audit_logger=AuditLogger(audit_storage),
            settings=SETTINGS,
            retry_wait=wait_none(),
        ).run(statement_id, SwappedYearRule(SETTINGS))

        assert report.corrected == 0
        assert report.skipped == 1
        assert report.failed == 1
        assert report.failures[0].error == "connection reset"
        assert report.summary()["failures"][0]["error"] == "connection reset"

        event_types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.CORRECTION_FAILED in event_types
        assert event_types[-1] == AuditEventType.CORRECTION_RUN_COMPLETED

    @pytest.mark.asyncio
    async def test_amount_run_audits_changes(self, storage, make_expense, audit_storage):
        """Test each applied correction is audited with before/after values."""
        statement_id = uuid4()
        expense = make_expense(
            statement_id=statement_id,
            amount=Decimal("1.23"),
            original_amount="1.234,56",
        )
        await storage.create_expense(expense)

        await CorrectionRunner(storage, audit_logger=AuditLogger(audit_storage)).run(
            statement_id, AmountReparseRule()
        )

        applied = [
            e for e in audit_storage.events
            if e.event_type == AuditEventType.CORRECTION_APPLIED
        ]
        assert len(applied) == 1
        assert applied[0].details["before"] == {"amount": "1.23"}
        assert applied[0].details["after"] == {"amount": "1234.56"}

    @pytest.mark.asyncio
    async def test_rule_error_collected(self, storage, make_expense, audit_storage):
        """Test a rule that raises on one record fails that record only."""
        statement_id = uuid4()
        broken, fine = await self._seed(
            storage, make_expense, statement_id, [utc(2027, 3, 5), utc(2027, 4, 6)]
        )

        class BrokenRule(SwappedYearRule):
            def decide(self, expense):
                if expense.id == broken.id:
                    raise ArithmeticError("cannot read record")
                return super().decide(expense)

        report = await CorrectionRunner(
            storage, audit_logger=AuditLogger(audit_storage), settings=SETTINGS
        ).run(statement_id, BrokenRule(SETTINGS))

        assert report.corrected == 1
        assert report.failed == 1
        assert report.failures[0].expense_id == broken.id
        assert report.failures[0].error == "cannot read record"
        assert report.failures[0].attempted == {}
        assert report.finished_at is not None
        assert (await storage.get_expense(broken.id)).date == utc(2027, 3, 5)
        assert (await storage.get_expense(fine.id)).date == utc(2024, 6, 4)

        event_types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.CORRECTION_FAILED in event_types
        assert event_types[-1] == AuditEventType.CORRECTION_RUN_COMPLETED


class TestMonthDistribution:
    """Tests for month_distribution."""

    def test_sorted_counts(self, make_expense):
        """Test counts are keyed by YYYY-MM in order."""
        expenses = [
            make_expense(date=utc(2025, 7, 1)),
            make_expense(date=utc(2025, 6, 1)),
            make_expense(date=utc(2025, 7, 9)),
        ]
        assert list(month_distribution(expenses).items()) == [("2025-06", 1), ("2025-07", 2)]
