"""Record builders and fixed identities shared by the tests."""

from datetime import date, datetime
from typing import Optional

from duoledger.models import ExpenseRecord, SettlementRecord, SplitKind


ALICE = "alice@example.com"
BOB = "bob@example.com"
MALLORY = "mallory@example.com"

TODAY = date(2024, 5, 15)


def make_expense(
    amount: int,
    payer: Optional[str] = ALICE,
    split_kind: SplitKind = SplitKind.HALF,
    my_ratio: Optional[int] = None,
    **kwargs,
) -> ExpenseRecord:
    fields = dict(
        title="Groceries",
        category="Food",
        date=datetime(2024, 5, 10, 12),
        amount=amount,
        payer=payer,
        split_kind=split_kind,
        my_ratio=my_ratio,
        recorded_by=payer,
    )
    fields.update(kwargs)
    return ExpenseRecord(**fields)


def make_settlement(
    amount: int,
    payer: Optional[str] = BOB,
    receiver: Optional[str] = ALICE,
    **kwargs,
) -> SettlementRecord:
    fields = dict(
        date=datetime(2024, 5, 12, 12),
        amount=amount,
        payer=payer,
        receiver=receiver,
        method="Cash",
        recorded_by=payer,
    )
    fields.update(kwargs)
    return SettlementRecord(**fields)
