"""Ledger computation package."""

from duoledger.ledger.categories import (
    FALLBACK_CATEGORY,
    CategoryCatalog,
    DuplicateCategoryError,
)
from duoledger.ledger.engine import LedgerEngine, compute_stats, split_shares
from duoledger.ledger.reports import (
    active_dates,
    budget_status,
    category_totals,
    expense_total,
    filter_by_month,
    filter_by_period,
    payment_share,
    records_on,
    search_records,
)
from duoledger.ledger.settlement import describe_balance, propose_settlement

__all__ = [
    "FALLBACK_CATEGORY",
    "CategoryCatalog",
    "DuplicateCategoryError",
    "LedgerEngine",
    "compute_stats",
    "split_shares",
    "active_dates",
    "budget_status",
    "category_totals",
    "expense_total",
    "filter_by_month",
    "filter_by_period",
    "payment_share",
    "records_on",
    "search_records",
    "describe_balance",
    "propose_settlement",
]
