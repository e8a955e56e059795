"""
Derived Ledger Models

Nothing in this module is ever persisted. Every value here is recomputed
from the full record snapshot by the ledger engine or the report helpers.

DESIGN DECISION: Money is accumulated as exact Decimals.
An integer amount times a percent over 100 is exact in Decimal, so
there is no per-record rounding and no drift across many records.
Rounding happens once, at display, with ROUND_HALF_UP (half away from
zero), which keeps the displayed pair of balances zero-sum.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


ZERO = Decimal(0)


def round_display(value: Decimal) -> int:
    """Round an exact amount to a whole currency unit for display."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class ExclusionReason(str, Enum):
    """Why a record was left out of monetary aggregation."""
    UNKNOWN_PARTICIPANT = "unknown_participant"
    MISSING_PAYER = "missing_payer"


class ExcludedRecord(BaseModel):
    """A record the engine could not attribute. It stays in history."""

    record_id: Optional[str] = None
    record_type: str
    amount: int
    reason: ExclusionReason
    detail: str = ""

    def sort_key(self) -> tuple:
        return (
            self.record_id or "",
            self.reason.value,
            self.record_type,
            self.amount,
            self.detail,
        )


class ParticipantStats(BaseModel):
    """Per-participant totals over the current record set."""

    participant_id: str
    total_paid: Decimal = ZERO
    total_should_pay: Decimal = ZERO
    total_repaid: Decimal = ZERO
    total_received: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        """
        Net position: positive means this participant is owed money,
        negative means they owe money.
        """
        return (
            (self.total_paid - self.total_should_pay)
            + (self.total_repaid - self.total_received)
        )


class AggregateStats(BaseModel):
    """
    Ledger view over the full record set.

    Holds exactly two ParticipantStats. The grand total is derived from
    total_paid and never tracked separately.
    """

    participants: dict[str, ParticipantStats] = Field(default_factory=dict)
    excluded: list[ExcludedRecord] = Field(default_factory=list)
    record_count: int = Field(
        default=0,
        ge=0,
        description="Records seen, including excluded ones"
    )

    def for_participant(self, participant_id: str) -> ParticipantStats:
        return self.participants[participant_id.strip().lower()]

    def balance(self, participant_id: str) -> Decimal:
        return self.for_participant(participant_id).balance

    def display_balance(self, participant_id: str) -> int:
        return round_display(self.balance(participant_id))

    @property
    def grand_total(self) -> Decimal:
        return sum((s.total_paid for s in self.participants.values()), ZERO)

    @property
    def is_settled(self) -> bool:
        return all(
            round_display(s.balance) == 0 for s in self.participants.values()
        )

    @property
    def counted_count(self) -> int:
        return self.record_count - len(self.excluded)


# =============================================================================
# PRESENTATION-READY SUMMARIES
# =============================================================================

class BalanceDirection(str, Enum):
    """Direction of the pairwise debt from one participant's point of view."""
    OWED = "owed"        # the partner owes me
    OWES = "owes"        # I owe the partner
    SETTLED = "settled"


class BalanceSummary(BaseModel):
    """The pairwise debt as seen by `me`."""

    me: str
    partner: str
    amount: int = Field(ge=0, description="Displayed absolute balance")
    direction: BalanceDirection

    @property
    def debtor(self) -> Optional[str]:
        if self.direction == BalanceDirection.OWES:
            return self.me
        if self.direction == BalanceDirection.OWED:
            return self.partner
        return None

    @property
    def creditor(self) -> Optional[str]:
        if self.direction == BalanceDirection.OWES:
            return self.partner
        if self.direction == BalanceDirection.OWED:
            return self.me
        return None


class CategoryTotal(BaseModel):
    """Total expense amount booked under one category name."""

    name: str
    icon: Optional[str] = None
    total: int = 0
    record_count: int = 0
    is_orphaned: bool = Field(
        default=False,
        description="The category no longer exists in the catalog"
    )


class BudgetLevel(str, Enum):
    """How much of the monthly budget has been used."""
    COMFORTABLE = "comfortable"  # up to 50%
    CAUTION = "caution"          # over 50%
    WARNING = "warning"          # over 80%
    OVER = "over"                # 100% or more


class BudgetStatus(BaseModel):
    """Monthly budget position."""

    budget: int = Field(gt=0)
    spent: int
    remaining: int
    percent_used: float = Field(ge=0.0, le=100.0)
    days_left: int = Field(ge=1)
    daily_allowance: int
    level: BudgetLevel
