"""
Data Models Package

This package contains all Pydantic models used in Duo Ledger.
All data flowing through the system must conform to these schemas.
"""

from duoledger.models.records import (
    Category,
    ExpenseRecord,
    ExpenseSubmission,
    IssueCode,
    LedgerRecord,
    NormalizationResult,
    Participant,
    ParticipantPair,
    RecordType,
    SettlementRecord,
    SettlementSubmission,
    SplitKind,
    SplitPolicy,
    ValidationIssue,
    history_order,
    parse_record,
)
from duoledger.models.stats import (
    AggregateStats,
    BalanceDirection,
    BalanceSummary,
    BudgetLevel,
    BudgetStatus,
    CategoryTotal,
    ExcludedRecord,
    ExclusionReason,
    ParticipantStats,
    round_display,
)
from duoledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "Category",
    "ExpenseRecord",
    "ExpenseSubmission",
    "IssueCode",
    "LedgerRecord",
    "NormalizationResult",
    "Participant",
    "ParticipantPair",
    "RecordType",
    "SettlementRecord",
    "SettlementSubmission",
    "SplitKind",
    "SplitPolicy",
    "ValidationIssue",
    "history_order",
    "parse_record",
    # Derived models
    "AggregateStats",
    "BalanceDirection",
    "BalanceSummary",
    "BudgetLevel",
    "BudgetStatus",
    "CategoryTotal",
    "ExcludedRecord",
    "ExclusionReason",
    "ParticipantStats",
    "round_display",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
