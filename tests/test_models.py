"""
Tests for Splitly Ledger Sync

Test strategy:
1. Unit tests for individual components (models, ledger math, validators)
2. Integration tests for the store and channel (with in-memory fakes)
3. No real network calls in tests (use fakes and httpx.MockTransport)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from splitly.models.ledger import (
    Expense,
    ExpenseCategory,
    Group,
    Member,
    SimplifiedDebt,
    Split,
    SplitType,
)
from splitly.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from splitly.validation import ValidationIssue, ValidationResult


class TestLedgerModels:
    """Tests for ledger Pydantic models."""

    def test_member_strips_whitespace(self):
        """Test that whitespace is stripped from display names."""
        member = Member(id="u1", display_name="  Ann  ")
        assert member.display_name == "Ann"

    def test_member_is_frozen(self):
        """Fetched records cannot be edited in place."""
        member = Member(id="u1", display_name="Ann")
        with pytest.raises(ValidationError):
            member.display_name = "Bo"

    def test_member_requires_id(self):
        """Test that an empty id is rejected."""
        with pytest.raises(ValidationError):
            Member(id="")

    def test_expense_creation(self):
        """Test Expense model creation with splits."""
        expense = Expense(
            id="e1",
            group_id="g1",
            amount=Decimal("20.00"),
            paid_by="u1",
            splits=[
                Split(member_id="u1", amount=Decimal("10.00")),
                Split(member_id="u2", amount=Decimal("10.00")),
            ],
        )
        assert expense.split_type == SplitType.EQUAL
        assert expense.currency == "USD"
        assert len(expense.splits) == 2

    def test_split_rejects_three_decimal_places(self):
        """Split amounts are whole cents."""
        with pytest.raises(ValidationError):
            Split(member_id="u1", amount=Decimal("1.005"))

    def test_split_percentage_bounds(self):
        """Test that percentages above 100 are rejected."""
        with pytest.raises(ValidationError):
            Split(member_id="u1", amount=Decimal("1.00"), percentage=Decimal("101"))

    def test_group_member_ids(self):
        """Test member_ids follows member order."""
        group = Group(id="g1", members=[Member(id="b"), Member(id="a")])
        assert group.member_ids == ["b", "a"]

    def test_simplified_debt_must_be_positive(self):
        """A suggested transfer is never zero."""
        with pytest.raises(ValidationError):
            SimplifiedDebt(from_member="a", to_member="b", amount=Decimal("0"))


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.CHANNEL_CONNECTED,
            description="Channel connected",
        )
        assert event.event_type == AuditEventType.CHANNEL_CONNECTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.LEDGER_RELOADED,
            description="Ledger reloaded",
            details={"groups": 2},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "ledger_reloaded"
        assert log_dict["details"]["groups"] == 2

    def test_audit_event_builder_expense_submitted(self):
        """Test AuditEventBuilder.expense_submitted."""
        correlation_id = uuid4()

        event = AuditEventBuilder.expense_submitted(
            expense_id="e1",
            group_id="g1",
            amount="90.00",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.EXPENSE_SUBMITTED
        assert event.entity_id == "e1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_retry_exhausted(self):
        """Giving up on the channel is logged as an error."""
        event = AuditEventBuilder.channel_retry_exhausted(attempts=5)

        assert event.event_type == AuditEventType.CHANNEL_RETRY_EXHAUSTED
        assert event.severity == AuditSeverity.ERROR
        assert event.details["attempts"] == 5

    def test_audit_event_builder_record_deleted(self):
        """Deletes map to the entity-specific event type."""
        correlation_id = uuid4()
        expense_event = AuditEventBuilder.record_deleted("expense", "e1", correlation_id)
        settlement_event = AuditEventBuilder.record_deleted("settlement", "s1", correlation_id)

        assert expense_event.event_type == AuditEventType.EXPENSE_DELETED
        assert settlement_event.event_type == AuditEventType.SETTLEMENT_DELETED


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Please enter a valid amount",
                severity="error",
            ),
        ])
        assert result.has_errors is True
        assert result.is_valid is False
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="notes",
                issue_type="long_text",
                message="Notes are long",
                severity="warning",
            ),
        ])
        assert result.has_errors is False
        assert result.is_valid is True
        assert result.error_count == 0


class TestExpenseCategories:
    """Tests for expense category enum."""

    def test_all_categories_exist(self):
        """Test that expected categories exist."""
        expected = [
            "food", "transport", "accommodation", "entertainment",
            "shopping", "utilities", "other",
        ]
        for cat in expected:
            assert ExpenseCategory(cat) is not None

    def test_category_values(self):
        """Test category enum values."""
        assert ExpenseCategory.FOOD.value == "food"
        assert ExpenseCategory.OTHER.value == "other"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
