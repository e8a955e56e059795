"""
Core Data Models for Duo Ledger

These models define the schemas for everything that flows between the
record store, the normalizer and the ledger engine.
They are designed to:
1. Enforce type safety at runtime
2. Keep the two-participant invariant explicit
3. Be serializable for storage and logging

DESIGN DECISION: Records are validated on the way IN (submissions go
through the normalizer) and on the way OUT of storage (documents are parsed
into these models). The engine only ever sees typed records.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)


def utc_now() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(timezone.utc)


def normalize_identity(value: Optional[str]) -> Optional[str]:
    """Emails are compared case-insensitively; blank means absent."""
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


# =============================================================================
# ENUMS
# =============================================================================

class RecordType(str, Enum):
    """Kinds of ledger records."""
    EXPENSE = "expense"
    SETTLEMENT = "settlement"


class SplitKind(str, Enum):
    """
    How an expense is divided between the pair.

    The ratio is always the PAYER's share; the other participant
    owes the remainder.
    """
    FULL = "full"    # payer covers 100%
    HALF = "half"    # 50 / 50
    RATIO = "ratio"  # payer covers `ratio` percent


FIXED_RATIOS = {
    SplitKind.FULL: 100,
    SplitKind.HALF: 50,
}

# Hard ceiling on a single amount. Shares and running totals of amounts
# up to this size fit the default 28-digit Decimal context exactly.
AMOUNT_LIMIT = 10 ** 15


# =============================================================================
# PARTICIPANTS
# =============================================================================

class Participant(BaseModel):
    """One of the two people sharing the ledger."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Stable identity (email address)"
    )
    display_name: str = Field(
        default="",
        max_length=100,
        description="Name shown in the UI"
    )
    avatar_url: Optional[str] = Field(
        default=None,
        description="Avatar image reference"
    )

    @field_validator('id')
    @classmethod
    def normalize_id(cls, v: str) -> str:
        return v.lower()

    @property
    def label(self) -> str:
        """Display name, or the identity when no name is set."""
        return self.display_name or self.id


class ParticipantPair(BaseModel):
    """
    Exactly two participants.

    CRITICAL: The balance symmetry (balance(A) == -balance(B)) only holds
    for a pair. This type is deliberately NOT a list of N participants.
    """
    model_config = ConfigDict(frozen=True)

    first: Participant
    second: Participant

    @model_validator(mode='after')
    def validate_distinct(self) -> 'ParticipantPair':
        if self.first.id == self.second.id:
            raise ValueError("A ledger needs two different participants")
        return self

    @property
    def ids(self) -> tuple[str, str]:
        return (self.first.id, self.second.id)

    def contains(self, participant_id: Optional[str]) -> bool:
        return normalize_identity(participant_id) in self.ids

    def get(self, participant_id: str) -> Participant:
        """Look up a member by identity. Raises KeyError for non-members."""
        key = normalize_identity(participant_id)
        if key == self.first.id:
            return self.first
        if key == self.second.id:
            return self.second
        raise KeyError(participant_id)

    def other(self, participant_id: str) -> Participant:
        """The counterpart of a member. Raises KeyError for non-members."""
        key = normalize_identity(participant_id)
        if key == self.first.id:
            return self.second
        if key == self.second.id:
            return self.first
        raise KeyError(participant_id)

    def __iter__(self):
        return iter((self.first, self.second))


# =============================================================================
# CATEGORIES & SPLITS
# =============================================================================

class Category(BaseModel):
    """A spending category (name + icon)."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Category name (records reference categories by name)"
    )
    icon: str = Field(
        default="✨",
        max_length=10,
        description="Emoji or short icon label"
    )


class SplitPolicy(BaseModel):
    """
    Split policy of an expense.

    FULL and HALF have fixed ratios; RATIO carries an explicit
    payer share in percent. Any integer 0-100 is accepted.
    """
    model_config = ConfigDict(frozen=True)

    kind: SplitKind = SplitKind.FULL
    ratio: Optional[int] = Field(
        default=None,
        ge=0,
        le=100,
        description="Payer share in percent (RATIO only)"
    )

    @model_validator(mode='after')
    def validate_ratio(self) -> 'SplitPolicy':
        if self.kind == SplitKind.RATIO and self.ratio is None:
            raise ValueError("A ratio split needs a ratio between 0 and 100")
        return self

    @property
    def payer_ratio(self) -> int:
        """Percent of the amount the payer is responsible for."""
        if self.kind == SplitKind.RATIO:
            return self.ratio
        return FIXED_RATIOS[self.kind]

    @classmethod
    def full(cls) -> 'SplitPolicy':
        return cls(kind=SplitKind.FULL)

    @classmethod
    def half(cls) -> 'SplitPolicy':
        return cls(kind=SplitKind.HALF)

    @classmethod
    def of_ratio(cls, ratio: int) -> 'SplitPolicy':
        return cls(kind=SplitKind.RATIO, ratio=ratio)


# =============================================================================
# RECORDS
# =============================================================================

class _RecordBase(BaseModel):
    """Fields shared by every ledger record."""
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity (assigned by the store)
    id: Optional[str] = Field(
        default=None,
        description="Opaque ID assigned by the record store"
    )

    date: datetime = Field(
        ...,
        description="Calendar day of the record, pinned to a fixed time of day"
    )
    amount: int = Field(
        ...,
        gt=0,
        le=AMOUNT_LIMIT,
        description="Amount in the smallest currency unit"
    )
    payer: Optional[str] = Field(
        default=None,
        description="Participant who paid (expense) or repaid (settlement)"
    )
    recorded_by: Optional[str] = Field(
        default=None,
        description="Participant who created the entry"
    )

    # Timestamps
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the record was created"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        description="Last full replace"
    )

    @field_validator('payer', 'recorded_by', mode='before')
    @classmethod
    def normalize_participant_ref(cls, v: Any) -> Any:
        if isinstance(v, str):
            return normalize_identity(v)
        return v

    @property
    def day(self):
        """Calendar day of the record."""
        return self.date.date()


class ExpenseRecord(_RecordBase):
    """
    A shared expense.

    `my_ratio` is the payer's share in percent; the other participant
    is responsible for `100 - my_ratio`.
    """
    type: Literal["expense"] = "expense"

    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was spent on"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Category name (may refer to a deleted category)"
    )
    split_kind: SplitKind = Field(
        default=SplitKind.FULL,
        description="Split policy kind"
    )
    my_ratio: Optional[int] = Field(
        default=None,
        ge=0,
        le=100,
        description="Payer share in percent"
    )
    note: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Free-text note"
    )

    @model_validator(mode='before')
    @classmethod
    def fill_ratio_from_kind(cls, data: Any) -> Any:
        """Older documents may carry only the split kind."""
        if isinstance(data, dict) and data.get("my_ratio") is None:
            kind = SplitKind(data.get("split_kind") or SplitKind.FULL)
            if kind in FIXED_RATIOS:
                data = {**data, "my_ratio": FIXED_RATIOS[kind]}
        return data

    @model_validator(mode='after')
    def validate_split(self) -> 'ExpenseRecord':
        if self.my_ratio is None:
            raise ValueError("A ratio split needs a ratio between 0 and 100")
        fixed = FIXED_RATIOS.get(self.split_kind)
        if fixed is not None and self.my_ratio != fixed:
            raise ValueError(
                f"Split '{self.split_kind.value}' requires a payer share of {fixed}%"
            )
        return self

    @property
    def split(self) -> SplitPolicy:
        if self.split_kind == SplitKind.RATIO:
            return SplitPolicy.of_ratio(self.my_ratio)
        return SplitPolicy(kind=self.split_kind)


class SettlementRecord(_RecordBase):
    """A repayment from `payer` to `receiver`."""
    type: Literal["settlement"] = "settlement"

    receiver: Optional[str] = Field(
        default=None,
        description="Participant who received the repayment"
    )
    method: str = Field(
        default="",
        max_length=50,
        description="How the money moved (cash, transfer, ...)"
    )

    @field_validator('receiver', mode='before')
    @classmethod
    def normalize_receiver(cls, v: Any) -> Any:
        if isinstance(v, str):
            return normalize_identity(v)
        return v


LedgerRecord = Annotated[
    Union[ExpenseRecord, SettlementRecord],
    Field(discriminator="type"),
]

_record_adapter: TypeAdapter = TypeAdapter(LedgerRecord)


def parse_record(data: dict) -> Union[ExpenseRecord, SettlementRecord]:
    """Parse a schemaless store document into a typed record."""
    return _record_adapter.validate_python(data)


def history_order(records) -> list:
    """Newest first by calendar date, then by creation time."""
    return sorted(
        records,
        key=lambda r: (r.date, r.created_at),
        reverse=True,
    )


# =============================================================================
# SUBMISSIONS (raw input from the UI)
# =============================================================================

class ExpenseSubmission(BaseModel):
    """
    A raw expense as collected by the UI.

    CRITICAL: This is UNVERIFIED input. `amount` is whatever the user
    typed. Only the normalizer turns this into an ExpenseRecord.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = ""
    amount: Any = None
    category: Optional[str] = None
    date: Optional[Union[datetime, date]] = None
    payer: Optional[str] = None
    split_kind: SplitKind = SplitKind.FULL
    ratio: Optional[int] = None
    note: Optional[str] = None


class SettlementSubmission(BaseModel):
    """A raw settlement as collected by the UI (or proposed by the ledger)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Any = None
    payer: Optional[str] = None
    receiver: Optional[str] = None
    method: Optional[str] = None
    date: Optional[Union[datetime, date]] = None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class IssueCode(str, Enum):
    """Machine-readable reasons a submission was flagged."""
    INVALID_AMOUNT = "invalid_amount"
    EMPTY_TITLE = "empty_title"
    INVALID_RATIO = "invalid_ratio"
    UNKNOWN_PARTICIPANT = "unknown_participant"
    INVALID_SETTLEMENT = "invalid_settlement"
    SUSPICIOUS_AMOUNT = "suspicious_amount"
    FUTURE_DATE = "future_date"
    UNKNOWN_CATEGORY = "unknown_category"
    INVALID_FIELD = "invalid_field"


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    code: IssueCode = Field(
        ...,
        description="Type of issue"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class NormalizationResult(BaseModel):
    """
    Outcome of normalizing one submission.

    `record` is set only when there are no error-level issues.
    Warnings never block; the UI shows them next to the saved record.
    """

    record: Optional[Union[ExpenseRecord, SettlementRecord]] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.record is not None and not self.has_errors

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_codes(self) -> list[IssueCode]:
        return [i.code for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]
