"""
Tests for the two-stage record normalizer.

Stage 1 errors block the record; stage 2 only adds warnings.
"""

from datetime import date, datetime

import pytest

from duoledger.models import (
    ExpenseRecord,
    ExpenseSubmission,
    IssueCode,
    SettlementSubmission,
    SplitKind,
)
from duoledger.models.records import AMOUNT_LIMIT
from duoledger.validation import normalize_date, parse_amount

from helpers import ALICE, BOB, MALLORY, TODAY, make_expense


class TestParseAmount:
    """User-typed amounts."""

    @pytest.mark.parametrize("raw, expected", [
        ("1000", 1000),
        (" 250 ", 250),
        (42, 42),
        ("12.0", 12),
    ])
    def test_valid_amounts(self, raw, expected):
        assert parse_amount(raw) == (expected, None)

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "0", "-5", "12.5", "NaN", "inf", True])
    def test_invalid_amounts(self, raw):
        amount, error = parse_amount(raw)
        assert amount is None
        assert error

    def test_ceiling(self):
        assert parse_amount(str(AMOUNT_LIMIT)) == (AMOUNT_LIMIT, None)

        amount, error = parse_amount(str(AMOUNT_LIMIT + 1))
        assert amount is None
        assert "exceed" in error


class TestNormalizeDate:
    """Dates are pinned to noon by default."""

    def test_time_of_day_is_discarded(self):
        assert normalize_date(datetime(2024, 5, 10, 23, 59)) == datetime(2024, 5, 10, 12)

    def test_plain_date(self):
        assert normalize_date(date(2024, 5, 10), hour=9) == datetime(2024, 5, 10, 9)

    def test_missing_date_uses_today(self):
        assert normalize_date(None, today=TODAY) == datetime(2024, 5, 15, 12)


class TestExpenseNormalization:
    """Expense submissions."""

    def test_valid_half_split(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Groceries", amount="1000", split_kind=SplitKind.HALF),
            submitted_by=ALICE,
        )

        assert result.is_valid
        record = result.record
        assert isinstance(record, ExpenseRecord)
        assert record.amount == 1000
        assert record.my_ratio == 50
        assert record.payer == ALICE
        assert record.recorded_by == ALICE
        assert record.category == "Food"  # first configured category
        assert record.date == datetime(2024, 5, 15, 12)

    def test_ratio_split_keeps_ratio(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(
                title="Rent", amount=90000, split_kind=SplitKind.RATIO, ratio=70,
                payer=BOB, category="Rent & utilities",
            ),
            submitted_by=ALICE,
        )

        assert result.is_valid
        assert result.record.my_ratio == 70
        assert result.record.payer == BOB
        assert result.record.recorded_by == ALICE

    def test_full_split_ignores_ratio_field(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Coffee", amount=400, split_kind=SplitKind.FULL, ratio=30),
            submitted_by=BOB,
        )

        assert result.record.my_ratio == 100

    @pytest.mark.parametrize("amount", ["0", "-100", "abc", "10.5", None])
    def test_invalid_amount_is_rejected(self, normalizer, amount):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Groceries", amount=amount),
            submitted_by=ALICE,
        )

        assert not result.is_valid
        assert result.record is None
        assert IssueCode.INVALID_AMOUNT in result.error_codes

    def test_empty_title_is_rejected(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="   ", amount="100"),
            submitted_by=ALICE,
        )

        assert result.error_codes == [IssueCode.EMPTY_TITLE]

    @pytest.mark.parametrize("ratio", [None, -1, 101])
    def test_invalid_ratio_is_rejected(self, normalizer, ratio):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Rent", amount="100", split_kind=SplitKind.RATIO, ratio=ratio),
            submitted_by=ALICE,
        )

        assert IssueCode.INVALID_RATIO in result.error_codes

    @pytest.mark.parametrize("ratio", [0, 100])
    def test_ratio_bounds_are_accepted(self, normalizer, ratio):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Rent", amount="100", split_kind=SplitKind.RATIO, ratio=ratio),
            submitted_by=ALICE,
        )

        assert result.is_valid

    def test_outsider_payer_is_rejected(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Groceries", amount="100", payer=MALLORY),
            submitted_by=ALICE,
        )

        assert IssueCode.UNKNOWN_PARTICIPANT in result.error_codes

    def test_all_errors_reported_together(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="", amount="abc"),
            submitted_by=ALICE,
        )

        assert set(result.error_codes) == {IssueCode.INVALID_AMOUNT, IssueCode.EMPTY_TITLE}

    def test_large_amount_warns_but_saves(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Car", amount="50000000"),
            submitted_by=ALICE,
        )

        assert result.is_valid
        assert any(i.code == IssueCode.SUSPICIOUS_AMOUNT for i in result.issues)
        assert result.warnings

    def test_future_date_warns(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Trip", amount="100", date=date(2024, 6, 30)),
            submitted_by=ALICE,
        )

        assert result.is_valid
        assert any(i.code == IssueCode.FUTURE_DATE for i in result.issues)

    def test_unknown_category_is_informational(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Vet", amount="100", category="Pets"),
            submitted_by=ALICE,
        )

        assert result.is_valid
        assert result.record.category == "Pets"
        issue = next(i for i in result.issues if i.code == IssueCode.UNKNOWN_CATEGORY)
        assert issue.severity == "info"
        assert not result.warnings

    def test_edit_keeps_identity(self, normalizer):
        existing = make_expense(1000, payer=ALICE, id="rec-1")

        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Groceries (corrected)", amount="1200"),
            submitted_by=BOB,
            existing=existing,
        )

        assert result.record.id == "rec-1"
        assert result.record.created_at == existing.created_at
        assert result.record.recorded_by == ALICE
        assert result.record.updated_at >= existing.updated_at
        assert result.record.amount == 1200

    def test_edit_without_payer_keeps_stored_payer(self, normalizer):
        existing = make_expense(1000, payer=ALICE, id="rec-1")

        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Groceries", amount="1000", split_kind=SplitKind.HALF),
            submitted_by=BOB,
            existing=existing,
        )

        assert result.record.payer == ALICE

    def test_edit_with_payer_overrides_stored_payer(self, normalizer):
        existing = make_expense(1000, payer=ALICE, id="rec-1")

        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Groceries", amount="1000", payer=BOB, split_kind=SplitKind.HALF),
            submitted_by=ALICE,
            existing=existing,
        )

        assert result.record.payer == BOB

    def test_outsider_submitter_without_payer_is_rejected(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Groceries", amount="100"),
            submitted_by=MALLORY,
        )

        assert result.record is None
        assert IssueCode.UNKNOWN_PARTICIPANT in result.error_codes

    def test_amount_over_ceiling_is_rejected(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Typo", amount=str(AMOUNT_LIMIT + 1)),
            submitted_by=ALICE,
        )

        assert result.record is None
        assert result.error_codes == [IssueCode.INVALID_AMOUNT]


class TestSettlementNormalization:
    """Settlement submissions."""

    def test_defaults_from_submitter(self, normalizer):
        result = normalizer.normalize_settlement(
            SettlementSubmission(amount="500"),
            submitted_by=BOB,
        )

        assert result.is_valid
        assert result.record.payer == BOB
        assert result.record.receiver == ALICE
        assert result.record.method == "Cash"

    def test_self_settlement_is_rejected(self, normalizer):
        result = normalizer.normalize_settlement(
            SettlementSubmission(amount="500", payer=BOB, receiver=BOB),
            submitted_by=BOB,
        )

        assert result.error_codes == [IssueCode.INVALID_SETTLEMENT]

    def test_outsider_receiver_is_rejected(self, normalizer):
        result = normalizer.normalize_settlement(
            SettlementSubmission(amount="500", receiver=MALLORY),
            submitted_by=BOB,
        )

        assert IssueCode.UNKNOWN_PARTICIPANT in result.error_codes

    def test_invalid_amount_is_rejected(self, normalizer):
        result = normalizer.normalize_settlement(
            SettlementSubmission(amount="0"),
            submitted_by=BOB,
        )

        assert IssueCode.INVALID_AMOUNT in result.error_codes


class TestUserFriendlySummary:
    """Text shown next to the form."""

    def test_valid_summary(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Groceries", amount="100"),
            submitted_by=ALICE,
        )

        assert normalizer.get_user_friendly_summary(result) == "✅ All checks passed."

    def test_error_summary_lists_fixes(self, normalizer):
        result = normalizer.normalize_expense(
            ExpenseSubmission(title="Groceries", amount="-1"),
            submitted_by=ALICE,
        )
        summary = normalizer.get_user_friendly_summary(result)

        assert "can't be saved" in summary
        assert "Enter a positive whole amount" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
