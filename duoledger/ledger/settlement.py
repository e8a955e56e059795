"""
Settlement Proposal

Given the current stats, suggest the repayment that would zero the
pairwise balance. This is only a default for the settlement form:
the user may change the amount and the payer, and partial settlements
are perfectly legal.
"""

from typing import Optional

from duoledger.models.records import ParticipantPair, SettlementSubmission
from duoledger.models.stats import AggregateStats, BalanceDirection, BalanceSummary


def describe_balance(
    stats: AggregateStats,
    pair: ParticipantPair,
    me: str,
) -> BalanceSummary:
    """The pairwise debt from `me`'s point of view."""
    me_id = pair.get(me).id
    partner_id = pair.other(me).id
    shown = stats.display_balance(me_id)

    if shown > 0:
        direction = BalanceDirection.OWED
    elif shown < 0:
        direction = BalanceDirection.OWES
    else:
        direction = BalanceDirection.SETTLED

    return BalanceSummary(
        me=me_id,
        partner=partner_id,
        amount=abs(shown),
        direction=direction,
    )


def propose_settlement(
    stats: AggregateStats,
    pair: ParticipantPair,
    me: str,
    method: Optional[str] = None,
) -> Optional[SettlementSubmission]:
    """
    Default settlement for the current balance, or None when settled.

    The side that owes pays the full displayed balance to the other.
    """
    summary = describe_balance(stats, pair, me)
    if summary.direction == BalanceDirection.SETTLED:
        return None

    return SettlementSubmission(
        amount=summary.amount,
        payer=summary.debtor,
        receiver=summary.creditor,
        method=method,
    )
