"""
Tests for Duo Ledger

Test strategy:
1. Unit tests for individual components (models, normalizer, engine)
2. Integration tests for flows (with the in-memory store)
3. No real API calls in tests (no spreadsheet)
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from duoledger.models import (
    AggregateStats,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    ExpenseRecord,
    IssueCode,
    NormalizationResult,
    ParticipantStats,
    SettlementRecord,
    SplitKind,
    SplitPolicy,
    ValidationIssue,
    history_order,
    parse_record,
    round_display,
)
from duoledger.models.records import AMOUNT_LIMIT

from helpers import ALICE, BOB, make_expense, make_settlement


class TestRecordModels:
    """Tests for expense and settlement Pydantic models."""

    def test_expense_creation(self):
        """Test ExpenseRecord model creation."""
        record = make_expense(1000, payer=ALICE, split_kind=SplitKind.HALF)
        assert record.type == "expense"
        assert record.my_ratio == 50
        assert record.split == SplitPolicy.half()
        assert record.day.isoformat() == "2024-05-10"

    def test_expense_strips_whitespace(self):
        """Test that whitespace is stripped from the title."""
        record = make_expense(1000, title="  Groceries  ")
        assert record.title == "Groceries"

    def test_expense_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        with pytest.raises(ValueError):
            make_expense(0)
        with pytest.raises(ValueError):
            make_expense(-100)

    def test_expense_rejects_amount_over_ceiling(self):
        """Test that amounts beyond the exact-arithmetic ceiling are rejected."""
        assert make_expense(AMOUNT_LIMIT).amount == AMOUNT_LIMIT
        with pytest.raises(ValueError):
            make_expense(AMOUNT_LIMIT + 1)

    def test_expense_ratio_bounds(self):
        """Test ratio must be between 0 and 100."""
        with pytest.raises(ValueError):
            make_expense(1000, split_kind=SplitKind.RATIO, my_ratio=101)

    def test_ratio_split_requires_ratio(self):
        """Test that a ratio split without a ratio is rejected."""
        with pytest.raises(ValueError):
            make_expense(1000, split_kind=SplitKind.RATIO, my_ratio=None)

    def test_fixed_split_ratio_must_match(self):
        """Test that a half split can't claim a 70% payer share."""
        with pytest.raises(ValueError, match="requires a payer share of 50%"):
            make_expense(1000, split_kind=SplitKind.HALF, my_ratio=70)

    def test_legacy_document_without_ratio(self):
        """Test older documents that only carry the split kind."""
        record = parse_record({
            "type": "expense",
            "title": "Rice",
            "category": "Food",
            "date": "2024-05-01T12:00:00",
            "amount": 2000,
            "split_kind": "full",
        })
        assert isinstance(record, ExpenseRecord)
        assert record.my_ratio == 100

    def test_participant_refs_are_normalized(self):
        """Test payer and receiver are lowercased."""
        record = make_settlement(500, payer="Bob@Example.com", receiver=" ALICE@example.com ")
        assert record.payer == BOB
        assert record.receiver == ALICE

    def test_parse_settlement(self):
        """Test the discriminated union picks the settlement model."""
        record = parse_record({
            "type": "settlement",
            "date": "2024-05-01T12:00:00",
            "amount": 500,
            "payer": BOB,
            "receiver": ALICE,
            "method": "PayPay",
        })
        assert isinstance(record, SettlementRecord)
        assert record.method == "PayPay"

    def test_parse_unknown_type(self):
        """Test that unknown record types are rejected."""
        with pytest.raises(ValidationError):
            parse_record({"type": "refund", "amount": 5})

    def test_history_order(self):
        """Test newest-first ordering by date then creation time."""
        created = datetime(2024, 5, 2, 9, tzinfo=timezone.utc)
        older = make_expense(100, id="old", date=datetime(2024, 5, 1, 12), created_at=created)
        newer = make_expense(100, id="new", date=datetime(2024, 5, 2, 12), created_at=created)
        same_day_later = make_settlement(
            100, id="later", date=datetime(2024, 5, 2, 12),
            created_at=created + timedelta(minutes=5),
        )

        assert [r.id for r in history_order([older, newer, same_day_later])] == [
            "later", "new", "old",
        ]


class TestSplitPolicy:
    """Tests for the split policy model."""

    def test_fixed_ratios(self):
        """Test FULL and HALF map to fixed payer shares."""
        assert SplitPolicy.full().payer_ratio == 100
        assert SplitPolicy.half().payer_ratio == 50

    def test_ratio(self):
        """Test any integer ratio is accepted."""
        assert SplitPolicy.of_ratio(37).payer_ratio == 37

    def test_ratio_required(self):
        """Test RATIO without a ratio is rejected."""
        with pytest.raises(ValueError):
            SplitPolicy(kind=SplitKind.RATIO)


class TestStatsModels:
    """Tests for derived stats models."""

    def test_participant_balance(self):
        """Test balance formula."""
        stats = ParticipantStats(
            participant_id=ALICE,
            total_paid=Decimal(1000),
            total_should_pay=Decimal(500),
            total_repaid=Decimal(0),
            total_received=Decimal(200),
        )
        assert stats.balance == Decimal(300)

    @pytest.mark.parametrize("value, expected", [
        (Decimal("0.5"), 1),
        (Decimal("-0.5"), -1),
        (Decimal("1.49"), 1),
        (Decimal("-2.5"), -3),
    ])
    def test_round_display(self, value, expected):
        """Test display rounding is half away from zero."""
        assert round_display(value) == expected

    def test_aggregate_lookup_is_case_insensitive(self):
        """Test participant lookup ignores case."""
        stats = AggregateStats(participants={
            ALICE: ParticipantStats(participant_id=ALICE, total_paid=Decimal(10)),
        })
        assert stats.for_participant("ALICE@example.com").total_paid == Decimal(10)
        assert stats.grand_total == Decimal(10)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_SAVED,
            description="Expense saved",
        )
        assert event.event_type == AuditEventType.RECORD_SAVED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_SAVED,
            description="Expense saved",
            details={"amount": 1000},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "record_saved"
        assert log_dict["details"]["amount"] == 1000

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            description="Record deleted",
            actor=ALICE,
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "record_deleted"  # event_type
        assert row[6] == ALICE  # actor
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_record_saved(self):
        """Test AuditEventBuilder.record_saved."""
        correlation_id = uuid4()

        event = AuditEventBuilder.record_saved(
            record_type="expense",
            record_id="abc123",
            actor=ALICE,
            amount=1000,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.RECORD_SAVED
        assert event.entity_id == "abc123"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_settlement_recorded(self):
        """Test AuditEventBuilder.settlement_recorded."""
        event = AuditEventBuilder.settlement_recorded(
            record_id="s1",
            payer=BOB,
            receiver=ALICE,
            amount=500,
            method="Cash",
        )

        assert event.event_type == AuditEventType.SETTLEMENT_RECORDED
        assert event.entity_type == "settlement"
        assert event.details["receiver"] == ALICE

    def test_audit_event_builder_participant_rejected(self):
        """Test rejected identities are warnings."""
        event = AuditEventBuilder.participant_rejected(
            identity="mallory@example.com",
            action="add_expense",
        )

        assert event.severity == AuditSeverity.WARNING
        assert event.actor == "mallory@example.com"


class TestNormalizationResult:
    """Tests for NormalizationResult model."""

    def test_has_errors(self):
        """Test has_errors property."""
        result = NormalizationResult(issues=[
            ValidationIssue(
                field="amount",
                code=IssueCode.INVALID_AMOUNT,
                message="Amount is required",
                severity="error",
            ),
        ])
        assert result.has_errors is True
        assert result.is_valid is False
        assert result.error_codes == [IssueCode.INVALID_AMOUNT]

    def test_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = NormalizationResult(
            record=make_expense(100),
            issues=[
                ValidationIssue(
                    field="date",
                    code=IssueCode.FUTURE_DATE,
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.is_valid is True
        assert result.warnings == ["Date in future"]

    def test_severity_is_checked(self):
        """Test unknown severities are rejected."""
        with pytest.raises(ValidationError):
            ValidationIssue(
                field="amount",
                code=IssueCode.INVALID_AMOUNT,
                message="x",
                severity="fatal",
            )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
