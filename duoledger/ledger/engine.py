"""
Ledger Engine

Turns the full record snapshot into per-participant AggregateStats.

GUARANTEES:
- Pure: no state is kept between calls, nothing is mutated
- Order-independent: the fold is a commutative sum of exact Decimals
- Zero-sum: balance(A) == -balance(B) for every record set
- Never fails on record content: records that cannot be attributed are
  reported in `excluded` and contribute nothing

The engine expects the FULL current snapshot on every call. It does not
apply incremental updates to a running aggregate.
"""

from decimal import Decimal
from typing import Iterable, Optional, Union

from duoledger.models.records import (
    ExpenseRecord,
    ParticipantPair,
    SettlementRecord,
)
from duoledger.models.stats import (
    ZERO,
    AggregateStats,
    ExcludedRecord,
    ExclusionReason,
    ParticipantStats,
)


HUNDRED = Decimal(100)


def split_shares(amount: int, payer_ratio: int) -> tuple[Decimal, Decimal]:
    """
    Split an amount into (payer share, other share).

    Exact: the two shares always sum to `amount`.
    """
    payer_share = Decimal(amount) * Decimal(payer_ratio) / HUNDRED
    return payer_share, Decimal(amount) - payer_share


class _Counters:
    """Mutable accumulators for one computation."""

    def __init__(self, pair: ParticipantPair):
        self.paid = {pid: ZERO for pid in pair.ids}
        self.should_pay = {pid: ZERO for pid in pair.ids}
        self.repaid = {pid: ZERO for pid in pair.ids}
        self.received = {pid: ZERO for pid in pair.ids}


class LedgerEngine:
    """
    Computes AggregateStats for a fixed pair of participants.

    Usage:
        engine = LedgerEngine(directory.pair)
        stats = engine.compute(records)
        stats.balance("a@example.com")
    """

    def __init__(self, pair: ParticipantPair):
        self._pair = pair

    @property
    def pair(self) -> ParticipantPair:
        return self._pair

    def compute(
        self,
        records: Iterable[Union[ExpenseRecord, SettlementRecord]],
    ) -> AggregateStats:
        """Fold every record into fresh counters."""
        counters = _Counters(self._pair)
        excluded: list[ExcludedRecord] = []
        count = 0

        for record in records:
            count += 1
            if isinstance(record, ExpenseRecord):
                exclusion = self._apply_expense(record, counters)
            elif isinstance(record, SettlementRecord):
                exclusion = self._apply_settlement(record, counters)
            else:
                exclusion = ExcludedRecord(
                    record_id=getattr(record, "id", None),
                    record_type=type(record).__name__,
                    amount=0,
                    reason=ExclusionReason.UNKNOWN_PARTICIPANT,
                    detail="not a ledger record",
                )
            if exclusion is not None:
                excluded.append(exclusion)

        # Sorted so that permuting the input yields an equal result.
        excluded.sort(key=ExcludedRecord.sort_key)

        return AggregateStats(
            participants={
                pid: ParticipantStats(
                    participant_id=pid,
                    total_paid=counters.paid[pid],
                    total_should_pay=counters.should_pay[pid],
                    total_repaid=counters.repaid[pid],
                    total_received=counters.received[pid],
                )
                for pid in self._pair.ids
            },
            excluded=excluded,
            record_count=count,
        )

    def resolve_payer(
        self,
        record: Union[ExpenseRecord, SettlementRecord],
    ) -> tuple[Optional[str], Optional[ExclusionReason]]:
        """
        Attribute a record to a participant.

        An explicit payer wins. Without one, the author (`recorded_by`)
        is the payer if they are a member. Returns (payer, None) on
        success or (None, reason) when the record must be excluded.
        """
        if record.payer is not None:
            if self._pair.contains(record.payer):
                return record.payer, None
            return None, ExclusionReason.UNKNOWN_PARTICIPANT

        if record.recorded_by is not None and self._pair.contains(record.recorded_by):
            return record.recorded_by, None

        return None, ExclusionReason.MISSING_PAYER

    def _apply_expense(
        self,
        record: ExpenseRecord,
        counters: _Counters,
    ) -> Optional[ExcludedRecord]:
        payer, reason = self.resolve_payer(record)
        if reason is not None:
            return self._excluded(record, reason, record.payer or "")

        other = self._pair.other(payer).id
        payer_share, other_share = split_shares(record.amount, record.my_ratio)

        counters.paid[payer] += Decimal(record.amount)
        counters.should_pay[payer] += payer_share
        counters.should_pay[other] += other_share
        return None

    def _apply_settlement(
        self,
        record: SettlementRecord,
        counters: _Counters,
    ) -> Optional[ExcludedRecord]:
        payer, reason = self.resolve_payer(record)
        if reason is not None:
            return self._excluded(record, reason, record.payer or "")

        receiver = record.receiver or self._pair.other(payer).id
        if not self._pair.contains(receiver):
            return self._excluded(
                record, ExclusionReason.UNKNOWN_PARTICIPANT, receiver
            )

        counters.repaid[payer] += Decimal(record.amount)
        counters.received[receiver] += Decimal(record.amount)
        return None

    @staticmethod
    def _excluded(record, reason: ExclusionReason, detail: str) -> ExcludedRecord:
        return ExcludedRecord(
            record_id=record.id,
            record_type=record.type,
            amount=record.amount,
            reason=reason,
            detail=detail,
        )


def compute_stats(
    pair: ParticipantPair,
    records: Iterable[Union[ExpenseRecord, SettlementRecord]],
) -> AggregateStats:
    """Convenience wrapper: LedgerEngine(pair).compute(records)."""
    return LedgerEngine(pair).compute(records)
