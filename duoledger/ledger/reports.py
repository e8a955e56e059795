"""
Ledger Reports

Read-only views over the record snapshot that the UI renders:
category breakdown, monthly budget, calendar markers, history search
and the share of spending each participant has covered.

Like the engine, everything here is a pure function of its inputs.
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Union

from duoledger.ledger.categories import CategoryCatalog
from duoledger.models.records import ExpenseRecord, SettlementRecord
from duoledger.models.stats import (
    AggregateStats,
    BudgetLevel,
    BudgetStatus,
    CategoryTotal,
)

AnyRecord = Union[ExpenseRecord, SettlementRecord]


def expenses_only(records: Iterable[AnyRecord]) -> list[ExpenseRecord]:
    return [r for r in records if isinstance(r, ExpenseRecord)]


def expense_total(records: Iterable[AnyRecord]) -> int:
    """Sum of expense amounts (settlements are transfers, not spending)."""
    return sum(r.amount for r in expenses_only(records))


def category_totals(
    records: Iterable[AnyRecord],
    catalog: Optional[CategoryCatalog] = None,
) -> list[CategoryTotal]:
    """
    Expense totals per category name.

    Catalog categories come first, in catalog order and including empty
    ones. Names that are no longer in the catalog follow, sorted.
    """
    totals: dict[str, int] = {}
    counts: dict[str, int] = {}
    for record in expenses_only(records):
        totals[record.category] = totals.get(record.category, 0) + record.amount
        counts[record.category] = counts.get(record.category, 0) + 1

    result = []
    known = set()
    if catalog is not None:
        for category in catalog:
            known.add(category.name)
            result.append(CategoryTotal(
                name=category.name,
                icon=category.icon,
                total=totals.get(category.name, 0),
                record_count=counts.get(category.name, 0),
            ))

    for name in sorted(n for n in totals if n not in known):
        result.append(CategoryTotal(
            name=name,
            icon=catalog.icon_for(name) if catalog is not None else None,
            total=totals[name],
            record_count=counts[name],
            is_orphaned=catalog is not None,
        ))

    return result


def filter_by_period(
    records: Iterable[AnyRecord],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[AnyRecord]:
    """Records whose calendar day falls within [start, end]."""
    out = []
    for record in records:
        day = record.day
        if start and day < start:
            continue
        if end and day > end:
            continue
        out.append(record)
    return out


def filter_by_month(
    records: Iterable[AnyRecord],
    year: int,
    month: int,
) -> list[AnyRecord]:
    last_day = calendar.monthrange(year, month)[1]
    return filter_by_period(
        records,
        start=date(year, month, 1),
        end=date(year, month, last_day),
    )


def records_on(records: Iterable[AnyRecord], day: date) -> list[AnyRecord]:
    return filter_by_period(records, start=day, end=day)


def active_dates(records: Iterable[AnyRecord]) -> list[date]:
    """Days that have at least one record (calendar markers)."""
    return sorted({record.day for record in records})


def budget_status(
    budget: int,
    spent: int,
    today: Optional[date] = None,
) -> Optional[BudgetStatus]:
    """
    Monthly budget position, or None when no budget is set (0).

    `days_left` counts today. The daily allowance is what can still be
    spent per remaining day, rounded down.
    """
    if budget <= 0:
        return None

    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    days_left = last_day - today.day + 1

    remaining = budget - spent
    percent = min(100.0, max(0.0, spent / budget * 100))
    daily_allowance = remaining // days_left if remaining > 0 else 0

    if percent >= 100:
        level = BudgetLevel.OVER
    elif percent > 80:
        level = BudgetLevel.WARNING
    elif percent > 50:
        level = BudgetLevel.CAUTION
    else:
        level = BudgetLevel.COMFORTABLE

    return BudgetStatus(
        budget=budget,
        spent=spent,
        remaining=remaining,
        percent_used=percent,
        days_left=days_left,
        daily_allowance=daily_allowance,
        level=level,
    )


def payment_share(stats: AggregateStats, me: str) -> float:
    """Percent of all spending physically paid by `me` (50 when nothing is paid)."""
    total = stats.grand_total
    if total == 0:
        return 50.0
    mine = stats.for_participant(me).total_paid
    return float(mine / total * Decimal(100))


def search_records(records: Iterable[AnyRecord], term: str) -> list[AnyRecord]:
    """Case-insensitive search over title, category, note, method and amount."""
    term = (term or "").strip().lower()
    records = list(records)
    if not term:
        return records

    def haystack(record: AnyRecord) -> list[str]:
        fields = [str(record.amount)]
        if isinstance(record, ExpenseRecord):
            fields += [record.title, record.category, record.note or ""]
        else:
            fields += [record.method]
        return [f.lower() for f in fields]

    return [r for r in records if any(term in f for f in haystack(r))]
