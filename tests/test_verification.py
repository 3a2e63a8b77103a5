"""Tests for expense review (verify / reject)."""

import pytest
from uuid import uuid4

from expense_tracker.audit import AuditLogger
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.expense import VerificationStatus
from expense_tracker.services.storage import NotFoundError
from expense_tracker.verification import (
    InvalidTransitionError,
    InvalidVerificationActionError,
    VerificationService,
    resolve_action,
)


class TestResolveAction:
    """Tests for resolve_action."""

    @pytest.mark.parametrize("action, expected", [
        ("verify", VerificationStatus.VERIFIED),
        ("Reject", VerificationStatus.REJECTED),
        ("verified", VerificationStatus.VERIFIED),
        (VerificationStatus.REJECTED, VerificationStatus.REJECTED),
    ])
    def test_known_actions(self, action, expected):
        """Test actions and status names map to target statuses."""
        assert resolve_action(action) == expected

    @pytest.mark.parametrize("action", ["approve", "pending", VerificationStatus.PENDING])
    def test_unknown_actions(self, action):
        """Test anything else is rejected, including going back to pending."""
        with pytest.raises(InvalidVerificationActionError):
            resolve_action(action)


class TestVerificationService:
    """Tests for VerificationService."""

    @pytest.mark.asyncio
    async def test_verify_pending(self, storage, make_expense, audit_storage):
        """Test a pending expense can be verified and the decision is audited."""
        expense = await storage.create_expense(make_expense())
        service = VerificationService(storage, AuditLogger(audit_storage))

        updated = await service.apply(expense.id, "verify")

        assert updated.verification_status == VerificationStatus.VERIFIED
        stored = await storage.get_expense(expense.id)
        assert stored.verification_status == VerificationStatus.VERIFIED
        [event] = audit_storage.events
        assert event.event_type == AuditEventType.EXPENSE_VERIFIED
        assert event.is_user_action is True

    @pytest.mark.asyncio
    async def test_reject_pending(self, storage, make_expense, audit_storage):
        """Test a pending expense can be rejected."""
        expense = await storage.create_expense(make_expense())
        service = VerificationService(storage, AuditLogger(audit_storage))

        updated = await service.apply(expense.id, "reject")

        assert updated.verification_status == VerificationStatus.REJECTED
        assert audit_storage.events[0].event_type == AuditEventType.EXPENSE_REJECTED

    @pytest.mark.asyncio
    async def test_decision_is_final(self, storage, make_expense):
        """Test a reviewed expense cannot be reviewed again."""
        expense = await storage.create_expense(make_expense())
        service = VerificationService(storage)
        await service.apply(expense.id, "verify")

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.apply(expense.id, "reject")

        assert exc_info.value.current == VerificationStatus.VERIFIED
        stored = await storage.get_expense(expense.id)
        assert stored.verification_status == VerificationStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_missing_expense(self, storage):
        """Test reviewing an unknown expense raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await VerificationService(storage).apply(uuid4(), "verify")

    @pytest.mark.asyncio
    async def test_invalid_action_checked_first(self, storage):
        """Test a bad action is rejected before the expense is looked up."""
        with pytest.raises(InvalidVerificationActionError):
            await VerificationService(storage).apply(uuid4(), "approve")

    @pytest.mark.asyncio
    async def test_pending_queue(self, storage, make_expense):
        """Test the review queue lists only pending expenses of one statement."""
        statement_id = uuid4()
        pending = await storage.create_expense(make_expense(statement_id=statement_id))
        reviewed = await storage.create_expense(make_expense(statement_id=statement_id))
        await storage.create_expense(make_expense(statement_id=uuid4()))
        service = VerificationService(storage)
        await service.apply(reviewed.id, "verify")

        queue = await service.pending_for_statement(statement_id)

        assert [e.id for e in queue] == [pending.id]
