"""
Tests for AI Bookkeeping

Test strategy:
1. Unit tests for individual components (models, registry, parser)
2. Flow tests for the controller (with in-memory collaborators)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from src.models.ledger import (
    Account,
    AccountSummary,
    AccountType,
    Transaction,
)
from src.models.chat import (
    ActionKind,
    ActionSuggestion,
    TransactionCandidate,
    Turn,
    TurnResult,
    TurnRole,
    TurnStatus,
    confirm_transactions_action,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestLedgerModels:
    """Tests for ledger Pydantic models."""

    def test_account_creation(self):
        """Test Account model creation."""
        account = Account(
            name="  Business Checking  ",
            account_type=AccountType.CHECKING,
            balance=Decimal("15750.25"),
            account_number_last4="8943",
        )
        assert account.name == "Business Checking"
        assert account.currency == "USD"

    def test_account_rejects_bad_last4(self):
        """Test that account_number_last4 must be four digits."""
        with pytest.raises(ValidationError):
            Account(name="Card", account_number_last4="12ab")

    def test_transaction_defaults_to_needing_categorization(self):
        transaction = Transaction(
            account_id=1,
            amount=Decimal("-89.99"),
            description="Microsoft 365 Business Premium",
            transaction_date=date(2024, 6, 19),
        )
        assert transaction.needs_categorization is True
        assert transaction.user_approved is False

    def test_transaction_format_amount(self):
        income = Transaction(
            account_id=1,
            amount=Decimal("3500.00"),
            description="Payment from ABC Corp",
            transaction_date=date(2024, 6, 18),
        )
        expense = Transaction(
            account_id=1,
            amount=Decimal("-89.99"),
            description="Microsoft 365",
            transaction_date=date(2024, 6, 19),
        )
        assert income.format_amount() == "+$3,500.00"
        assert expense.format_amount() == "-$89.99"
        assert income.is_income is True

    def test_blank_suggested_category_is_none(self):
        transaction = Transaction(
            account_id=1,
            amount=Decimal("-5"),
            description="Parking",
            transaction_date=date(2024, 6, 1),
            ai_suggested_category="   ",
        )
        assert transaction.ai_suggested_category is None

    def test_empty_summary(self):
        summary = AccountSummary.empty()
        assert summary.total_accounts == 0
        assert summary.total_balance == Decimal("0.00")


class TestChatModels:
    """Tests for conversation models."""

    def test_turn_is_immutable(self):
        turn = Turn(role=TurnRole.USER, text="hi")
        with pytest.raises(ValidationError):
            turn.text = "changed"

    def test_known_kind(self):
        assert ActionSuggestion(kind="suggest_review").known_kind == ActionKind.SUGGEST_REVIEW
        assert ActionSuggestion(kind="open_dashboard").known_kind is None

    def test_action_kind_required(self):
        with pytest.raises(ValidationError):
            ActionSuggestion(kind="")

    def test_turn_result_defaults(self):
        result = TurnResult(reply_text="hello")
        assert result.suggested_actions == []
        assert result.status == TurnStatus.OK
        assert result.degraded is False

    def test_confirm_transactions_action_round_trips_candidates(self):
        transaction = Transaction(
            id=7,
            account_id=1,
            amount=Decimal("-23.67"),
            description="Coffee Meeting - Starbucks",
            transaction_date=date(2024, 6, 9),
            ai_suggested_category="Food & Dining",
        )

        action = confirm_transactions_action([transaction])
        candidate = TransactionCandidate.model_validate(action.data["transactions"][0])

        assert action.kind == "confirm_transactions"
        assert candidate.id == 7
        assert candidate.amount == Decimal("-23.67")
        assert candidate.format_line(1) == "1. Coffee Meeting - Starbucks - -$23.67 (Food & Dining)"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            description="Chat session started",
        )
        assert event.event_type == AuditEventType.SESSION_STARTED
        assert event.severity == AuditSeverity.INFO

    def test_timestamps_are_utc_aware(self):
        """Default timestamps carry the UTC offset."""
        event = AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            description="Chat session started",
        )
        account = Account(name="Business Checking")
        assert event.timestamp.utcoffset() == timedelta(0)
        assert account.created_at.utcoffset() == timedelta(0)

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.COMMAND_EXECUTED,
            description="Slash command executed: /status",
            details={"command": "status"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "command_executed"
        assert log_dict["details"]["command"] == "status"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_APPROVED,
            description="User approved categories",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "transactions_approved"  # event_type
        assert row[10] == "True"  # is_user_action

    def test_audit_event_builder_command_executed(self):
        correlation_id = uuid4()

        event = AuditEventBuilder.command_executed("status", correlation_id)

        assert event.event_type == AuditEventType.COMMAND_EXECUTED
        assert event.entity_id == "status"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_transactions_approved(self):
        event = AuditEventBuilder.transactions_approved({3: "Travel", 4: "Software"})

        assert event.details["approvals"] == {"3": "Travel", "4": "Software"}
        assert event.is_user_action is True

    def test_audit_event_builder_generator_failed(self):
        event = AuditEventBuilder.generator_failed("timeout", uuid4())

        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "timeout"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
