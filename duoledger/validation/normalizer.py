"""
Two-Stage Record Normalizer

Turns a raw submission from the UI into a canonical ledger record.

STAGE 1 - SCHEMA VALIDATION:
- Amount parses to a positive whole number
- Title is present
- Split ratio is within 0-100
- Payer / receiver are members of the pair

STAGE 2 - SEMANTIC VALIDATION:
- Unusually large amounts
- Dates far in the future
- Category names that are no longer in the catalog

Stage 2 only runs when stage 1 passes and only produces warnings.

IMPORTANT: The normalizer never raises for bad input. It returns a
NormalizationResult; when there are errors, `record` is None and the
caller must not persist anything.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from duoledger.config import LedgerSettings, get_settings
from duoledger.ledger.categories import CategoryCatalog
from duoledger.models.records import (
    AMOUNT_LIMIT,
    FIXED_RATIOS,
    ExpenseRecord,
    ExpenseSubmission,
    IssueCode,
    NormalizationResult,
    Participant,
    ParticipantPair,
    SettlementRecord,
    SettlementSubmission,
    SplitKind,
    ValidationIssue,
    normalize_identity,
    utc_now,
)


def parse_amount(raw: Any) -> tuple[Optional[int], Optional[str]]:
    """
    Parse user input into a positive whole amount.

    Returns (amount, None) on success, (None, reason) otherwise.
    """
    if raw is None or isinstance(raw, bool):
        return None, "Amount is required"
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None, "Amount is required"
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        return None, f"Amount '{raw}' is not a number"
    if not value.is_finite():
        return None, f"Amount '{raw}' is not a number"
    if value <= 0:
        return None, "Amount must be greater than zero"
    if value > AMOUNT_LIMIT:
        return None, f"Amount must not exceed {AMOUNT_LIMIT:,}"
    if value != value.to_integral_value():
        return None, "Amount must be a whole number of the smallest currency unit"
    return int(value), None


def normalize_date(
    value: Optional[Union[datetime, date]],
    hour: int = 12,
    today: Optional[date] = None,
) -> datetime:
    """
    Pin a calendar date to a fixed time of day.

    Any time of day on the input is discarded so that "which day" does
    not depend on the timezone the record is later read in.
    """
    if value is None:
        value = today or date.today()
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time(hour=hour))


class RecordNormalizer:
    """
    Validates and normalizes expense and settlement submissions.

    Stage 1: Schema validation (blocking errors)
    Stage 2: Semantic validation (non-blocking warnings)
    """

    def __init__(
        self,
        pair: ParticipantPair,
        catalog: Optional[CategoryCatalog] = None,
        settings: Optional[LedgerSettings] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Initialize normalizer.

        Args:
            pair: The two participants of this ledger
            catalog: Current categories. Built from settings if None.
            settings: Ledger settings. Loaded from the environment if None.
            today: Clock for default dates and future-date checks.
        """
        self._pair = pair
        self._settings = settings or get_settings().ledger
        self._catalog = catalog if catalog is not None else CategoryCatalog.from_settings(self._settings)
        self._today = today or date.today

    @property
    def catalog(self) -> CategoryCatalog:
        return self._catalog

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def normalize_expense(
        self,
        submission: ExpenseSubmission,
        submitted_by: Union[Participant, str],
        existing: Optional[ExpenseRecord] = None,
    ) -> NormalizationResult:
        """
        Normalize an expense submission.

        Args:
            submission: Raw form data
            submitted_by: The authorized participant submitting it
            existing: The record being replaced, for edits

        Returns:
            NormalizationResult with the canonical record, or issues only
        """
        submitter = self._submitter_id(submitted_by)
        # An edit keeps the stored payer unless the form names another one
        payer = (
            normalize_identity(submission.payer)
            or (existing.payer if existing is not None else None)
            or submitter
        )
        issues = self._validate_expense_schema(submission, payer)

        if any(issue.severity == "error" for issue in issues):
            return NormalizationResult(issues=issues)

        amount, _ = parse_amount(submission.amount)
        category = (submission.category or "").strip() or self._catalog.default_name()
        my_ratio = (
            submission.ratio
            if submission.split_kind == SplitKind.RATIO
            else FIXED_RATIOS[submission.split_kind]
        )

        fields = dict(
            title=submission.title,
            amount=amount,
            category=category,
            date=normalize_date(
                submission.date,
                self._settings.date_normalize_hour,
                self._today(),
            ),
            payer=payer,
            split_kind=submission.split_kind,
            my_ratio=my_ratio,
            note=submission.note or None,
            recorded_by=submitter,
        )
        fields.update(self._identity_fields(existing))

        try:
            record = ExpenseRecord(**fields)
        except ValidationError as e:
            return NormalizationResult(issues=issues + self._model_issues(e))

        issues.extend(self._validate_semantic(record))
        if category not in self._catalog:
            issues.append(ValidationIssue(
                field="category",
                code=IssueCode.UNKNOWN_CATEGORY,
                message=f"Category '{category}' is not in the current category list",
                severity="info",
            ))

        return NormalizationResult(record=record, issues=issues)

    def _validate_expense_schema(
        self,
        submission: ExpenseSubmission,
        payer: Optional[str],
    ) -> list[ValidationIssue]:
        issues = []

        _, amount_error = parse_amount(submission.amount)
        if amount_error:
            issues.append(ValidationIssue(
                field="amount",
                code=IssueCode.INVALID_AMOUNT,
                message=amount_error,
                severity="error",
                suggested_fix="Enter a positive whole amount",
            ))

        if not (submission.title or "").strip():
            issues.append(ValidationIssue(
                field="title",
                code=IssueCode.EMPTY_TITLE,
                message="Title is required",
                severity="error",
                suggested_fix="Describe what the money was spent on",
            ))

        if submission.split_kind == SplitKind.RATIO:
            if submission.ratio is None or not 0 <= submission.ratio <= 100:
                issues.append(ValidationIssue(
                    field="ratio",
                    code=IssueCode.INVALID_RATIO,
                    message="Payer share must be a whole percent between 0 and 100",
                    severity="error",
                ))

        if not self._pair.contains(payer):
            issues.append(ValidationIssue(
                field="payer",
                code=IssueCode.UNKNOWN_PARTICIPANT,
                message=f"'{payer}' is not a participant of this ledger",
                severity="error",
            ))

        return issues

    # -------------------------------------------------------------------------
    # Settlements
    # -------------------------------------------------------------------------

    def normalize_settlement(
        self,
        submission: SettlementSubmission,
        submitted_by: Union[Participant, str],
        existing: Optional[SettlementRecord] = None,
    ) -> NormalizationResult:
        """
        Normalize a settlement submission.

        The payer defaults to the submitter and the receiver to the
        payer's partner. Any positive amount is accepted; it does not
        have to match the outstanding balance.
        """
        submitter = self._submitter_id(submitted_by)
        issues = []

        _, amount_error = parse_amount(submission.amount)
        if amount_error:
            issues.append(ValidationIssue(
                field="amount",
                code=IssueCode.INVALID_AMOUNT,
                message=amount_error,
                severity="error",
                suggested_fix="Enter a positive whole amount",
            ))

        payer = normalize_identity(submission.payer) or submitter
        receiver = normalize_identity(submission.receiver)

        if not self._pair.contains(payer):
            issues.append(ValidationIssue(
                field="payer",
                code=IssueCode.UNKNOWN_PARTICIPANT,
                message=f"'{payer}' is not a participant of this ledger",
                severity="error",
            ))
        elif receiver is None:
            receiver = self._pair.other(payer).id

        if receiver is not None and not self._pair.contains(receiver):
            issues.append(ValidationIssue(
                field="receiver",
                code=IssueCode.UNKNOWN_PARTICIPANT,
                message=f"'{receiver}' is not a participant of this ledger",
                severity="error",
            ))
        elif receiver is not None and receiver == payer:
            issues.append(ValidationIssue(
                field="receiver",
                code=IssueCode.INVALID_SETTLEMENT,
                message="A settlement must go from one participant to the other",
                severity="error",
            ))

        if any(issue.severity == "error" for issue in issues):
            return NormalizationResult(issues=issues)

        amount, _ = parse_amount(submission.amount)
        methods = self._settings.settlement_methods
        fields = dict(
            amount=amount,
            payer=payer,
            receiver=receiver,
            method=(submission.method or "").strip() or (methods[0] if methods else ""),
            date=normalize_date(
                submission.date,
                self._settings.date_normalize_hour,
                self._today(),
            ),
            recorded_by=submitter,
        )
        fields.update(self._identity_fields(existing))

        try:
            record = SettlementRecord(**fields)
        except ValidationError as e:
            return NormalizationResult(issues=issues + self._model_issues(e))

        issues.extend(self._validate_semantic(record))
        return NormalizationResult(record=record, issues=issues)

    # -------------------------------------------------------------------------
    # Shared
    # -------------------------------------------------------------------------

    def _validate_semantic(self, record) -> list[ValidationIssue]:
        """Stage 2: warnings that never block saving."""
        issues = []

        if record.amount > self._settings.max_amount:
            issues.append(ValidationIssue(
                field="amount",
                code=IssueCode.SUSPICIOUS_AMOUNT,
                message=f"Amount ({record.amount:,}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        tolerance = timedelta(days=self._settings.future_date_tolerance_days)
        if record.day > self._today() + tolerance:
            issues.append(ValidationIssue(
                field="date",
                code=IssueCode.FUTURE_DATE,
                message=f"Date ({record.day}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        return issues

    def _submitter_id(self, submitted_by: Union[Participant, str]) -> str:
        if isinstance(submitted_by, Participant):
            return submitted_by.id
        return normalize_identity(submitted_by)

    @staticmethod
    def _identity_fields(existing) -> dict:
        """An edit replaces the whole record but keeps who/when it was created."""
        if existing is None:
            return {}
        fields = {
            "id": existing.id,
            "created_at": existing.created_at,
            "updated_at": utc_now(),
        }
        if existing.recorded_by:
            fields["recorded_by"] = existing.recorded_by
        return fields

    @staticmethod
    def _model_issues(error: ValidationError) -> list[ValidationIssue]:
        return [
            ValidationIssue(
                field=".".join(str(part) for part in err["loc"]) or "record",
                code=IssueCode.INVALID_FIELD,
                message=err["msg"],
                severity="error",
            )
            for err in error.errors()
        ]

    def get_user_friendly_summary(self, result: NormalizationResult) -> str:
        """Short text for the form: what is wrong and how to fix it."""
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []
        if result.has_errors:
            lines.append("❌ This entry can't be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
