"""
Main Orchestrator for Duo Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Writes (identity → authorize → normalize → store → audit)
2. Reads (store snapshot → engine → stats, balance, settlement proposal)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only the two configured participants can write
- Nothing invalid is persisted
- Stats are always recomputed from the full snapshot, never patched
- Every write is audited

The store decides IDs and resolves concurrent edits (last write wins).
"""

from datetime import date
from typing import Callable, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, Field, ValidationError

from duoledger.audit import AuditLogger, configure_logging, create_correlation_id
from duoledger.config import LedgerSettings, get_settings
from duoledger.identity import ParticipantDirectory, UnknownParticipantError
from duoledger.ledger import (
    CategoryCatalog,
    LedgerEngine,
    budget_status,
    describe_balance,
    expense_total,
    filter_by_month,
    payment_share,
    propose_settlement,
)
from duoledger.models import (
    AggregateStats,
    BalanceSummary,
    BudgetStatus,
    ExpenseRecord,
    ExpenseSubmission,
    NormalizationResult,
    RecordType,
    SettlementRecord,
    SettlementSubmission,
    ValidationIssue,
)
from duoledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)
from duoledger.validation import RecordNormalizer


logger = structlog.get_logger(__name__)

Record = Union[ExpenseRecord, SettlementRecord]

STORE_FAILURE_MESSAGE = "Couldn't reach the shared ledger. Nothing was changed, please try again."


class OperationResult(BaseModel):
    """Outcome of one write, ready to show on the form."""

    success: bool
    record: Optional[Union[ExpenseRecord, SettlementRecord]] = None
    issues: list[ValidationIssue] = Field(default_factory=list)
    message: str = ""

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]


class LedgerService:
    """
    Write paths of the ledger.

    Flow for every write:
    1. Authorize → the submitter must be one of the pair
    2. Normalize → two-stage validation, canonical record
    3. Store → create / replace / delete
    4. Audit → what happened, by whom

    Failures never raise out of here; they come back as an
    OperationResult with success=False and the store untouched.
    """

    def __init__(
        self,
        directory: ParticipantDirectory,
        store: RecordStoreInterface,
        normalizer: Optional[RecordNormalizer] = None,
        engine: Optional[LedgerEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._directory = directory
        self._store = store
        self._normalizer = normalizer or RecordNormalizer(directory.pair)
        self._engine = engine or LedgerEngine(directory.pair)
        self._audit_logger = audit_logger

    @property
    def normalizer(self) -> RecordNormalizer:
        return self._normalizer

    async def add_expense(
        self,
        submission: ExpenseSubmission,
        submitted_by: str,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        """Validate and save a new expense."""
        correlation_id = correlation_id or create_correlation_id()

        rejected = await self._authorize(submitted_by, "add_expense", correlation_id)
        if rejected:
            return rejected

        result = self._normalizer.normalize_expense(submission, submitted_by)
        if not result.is_valid:
            return await self._rejected(RecordType.EXPENSE.value, submitted_by, result, correlation_id)

        try:
            record_id = await self._store.create_record(result.record)
        except StorageError as e:
            return await self._store_failed("add_expense", submitted_by, e, correlation_id)

        record = result.record.model_copy(update={"id": record_id})
        if self._audit_logger:
            await self._audit_logger.log_record_saved(
                record_type=RecordType.EXPENSE.value,
                record_id=record_id,
                actor=record.recorded_by,
                amount=record.amount,
                correlation_id=correlation_id,
            )

        return OperationResult(
            success=True,
            record=record,
            issues=result.issues,
            message=self._normalizer.get_user_friendly_summary(result),
        )

    async def update_expense(
        self,
        record_id: str,
        submission: ExpenseSubmission,
        submitted_by: str,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        """
        Replace an existing expense with a new submission.

        The record keeps its ID, creation time and original author.
        """
        correlation_id = correlation_id or create_correlation_id()

        rejected = await self._authorize(submitted_by, "update_expense", correlation_id)
        if rejected:
            return rejected

        try:
            existing = await self._store.get_record(record_id)
        except StorageError as e:
            return await self._store_failed("update_expense", submitted_by, e, correlation_id)

        if existing is None:
            return OperationResult(success=False, message=f"Record not found: {record_id}")
        if not isinstance(existing, ExpenseRecord):
            return OperationResult(
                success=False,
                message="Only expenses can be edited. Delete the settlement and record it again.",
            )

        result = self._normalizer.normalize_expense(submission, submitted_by, existing=existing)
        if not result.is_valid:
            return await self._rejected(RecordType.EXPENSE.value, submitted_by, result, correlation_id)

        try:
            await self._store.update_record(record_id, result.record)
        except NotFoundError:
            return OperationResult(success=False, message=f"Record not found: {record_id}")
        except StorageError as e:
            return await self._store_failed("update_expense", submitted_by, e, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_record_updated(
                record_type=RecordType.EXPENSE.value,
                record_id=record_id,
                actor=self._directory.authorize(submitted_by).id,
                amount=result.record.amount,
                correlation_id=correlation_id,
            )

        return OperationResult(
            success=True,
            record=result.record,
            issues=result.issues,
            message=self._normalizer.get_user_friendly_summary(result),
        )

    async def record_settlement(
        self,
        submission: SettlementSubmission,
        submitted_by: str,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        """Validate and save a transfer between the two participants."""
        correlation_id = correlation_id or create_correlation_id()

        rejected = await self._authorize(submitted_by, "record_settlement", correlation_id)
        if rejected:
            return rejected

        result = self._normalizer.normalize_settlement(submission, submitted_by)
        if not result.is_valid:
            return await self._rejected(RecordType.SETTLEMENT.value, submitted_by, result, correlation_id)

        try:
            record_id = await self._store.create_record(result.record)
        except StorageError as e:
            return await self._store_failed("record_settlement", submitted_by, e, correlation_id)

        record = result.record.model_copy(update={"id": record_id})
        if self._audit_logger:
            await self._audit_logger.log_settlement_recorded(
                record_id=record_id,
                payer=record.payer,
                receiver=record.receiver,
                amount=record.amount,
                method=record.method,
                correlation_id=correlation_id,
            )

        return OperationResult(
            success=True,
            record=record,
            issues=result.issues,
            message=self._normalizer.get_user_friendly_summary(result),
        )

    async def delete_record(
        self,
        record_id: str,
        requested_by: str,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        """Delete an expense or settlement. The balance follows on the next snapshot."""
        correlation_id = correlation_id or create_correlation_id()

        rejected = await self._authorize(requested_by, "delete_record", correlation_id)
        if rejected:
            return rejected

        try:
            deleted = await self._store.delete_record(record_id)
        except StorageError as e:
            return await self._store_failed("delete_record", requested_by, e, correlation_id)

        if not deleted:
            return OperationResult(success=False, message=f"Record not found: {record_id}")

        if self._audit_logger:
            await self._audit_logger.log_record_deleted(
                record_id=record_id,
                actor=self._directory.authorize(requested_by).id,
                correlation_id=correlation_id,
            )

        return OperationResult(success=True, message="🗑️ Record deleted.")

    async def current_stats(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> AggregateStats:
        """
        Read the full snapshot and compute stats.

        Raises:
            StorageError: If the snapshot can't be read
        """
        records = await self._store.list_records()
        stats = self._engine.compute(records)

        if stats.excluded and self._audit_logger:
            await self._audit_logger.log_records_excluded(
                excluded=[e.model_dump(mode="json") for e in stats.excluded],
                correlation_id=correlation_id,
            )

        return stats

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _authorize(
        self,
        identity: str,
        action: str,
        correlation_id: UUID,
    ) -> Optional[OperationResult]:
        """None when allowed, a failure result otherwise."""
        try:
            self._directory.authorize(identity)
        except UnknownParticipantError as e:
            if self._audit_logger:
                await self._audit_logger.log_participant_rejected(
                    identity=e.identity or "",
                    action=action,
                    correlation_id=correlation_id,
                )
            return OperationResult(
                success=False,
                message="🚫 This account is not a member of this ledger.",
            )
        return None

    async def _rejected(
        self,
        record_type: str,
        actor: str,
        result: NormalizationResult,
        correlation_id: UUID,
    ) -> OperationResult:
        if self._audit_logger:
            await self._audit_logger.log_record_rejected(
                record_type=record_type,
                actor=self._directory.authorize(actor).id,
                issues=[
                    {"field": i.field, "code": i.code.value, "message": i.message}
                    for i in result.issues
                    if i.severity == "error"
                ],
                correlation_id=correlation_id,
            )
        return OperationResult(
            success=False,
            issues=result.issues,
            message=self._normalizer.get_user_friendly_summary(result),
        )

    async def _store_failed(
        self,
        operation: str,
        actor: str,
        error: StorageError,
        correlation_id: UUID,
    ) -> OperationResult:
        logger.error("store_operation_failed", operation=operation, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_store_error(
                operation=operation,
                error_message=str(error),
                actor=actor,
                correlation_id=correlation_id,
            )
        return OperationResult(success=False, message=STORE_FAILURE_MESSAGE)


class LedgerView:
    """
    Live read model over a record store.

    Subscribes to the store; every snapshot replaces `records` and
    recomputes `stats` from scratch. Listeners get called with the
    view itself after each recompute.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        engine: LedgerEngine,
        catalog: Optional[CategoryCatalog] = None,
        monthly_budget: int = 0,
    ):
        self._engine = engine
        self._catalog = catalog
        self._monthly_budget = monthly_budget
        self._records: list[Record] = []
        self._stats = engine.compute([])
        self._listeners: list[Callable[["LedgerView"], None]] = []
        self._logger = structlog.get_logger("duoledger.view")
        self._unsubscribe = store.subscribe(self._on_snapshot)

    @property
    def records(self) -> list[Record]:
        return list(self._records)

    @property
    def stats(self) -> AggregateStats:
        return self._stats

    @property
    def catalog(self) -> Optional[CategoryCatalog]:
        return self._catalog

    def add_listener(self, listener: Callable[["LedgerView"], None]) -> Callable[[], None]:
        """Register a callback. Returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def close(self) -> None:
        """Stop following the store."""
        self._unsubscribe()
        self._listeners.clear()

    def _on_snapshot(self, records: list[Record]) -> None:
        self._records = list(records)
        self._stats = self._engine.compute(self._records)

        if self._stats.excluded:
            self._logger.warning(
                "records_excluded_from_balance",
                count=len(self._stats.excluded),
                excluded=[
                    {"record_id": e.record_id, "reason": e.reason.value, "detail": e.detail}
                    for e in self._stats.excluded
                ],
            )

        for listener in list(self._listeners):
            listener(self)

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    def balance_for(self, me: str) -> BalanceSummary:
        return describe_balance(self._stats, self._engine.pair, me)

    def proposal_for(
        self,
        me: str,
        method: Optional[str] = None,
    ) -> Optional[SettlementSubmission]:
        """Pre-filled settlement form, or None when nobody owes anything."""
        return propose_settlement(self._stats, self._engine.pair, me, method)

    def payment_share(self, me: str) -> float:
        return payment_share(self._stats, me)

    def budget_status(self, today: Optional[date] = None) -> Optional[BudgetStatus]:
        """This month's shared spending against the configured budget."""
        today = today or date.today()
        spent = expense_total(filter_by_month(self._records, today.year, today.month))
        return budget_status(self._monthly_budget, spent, today)


def create_app_components(
    use_storage: bool = True,
    settings: Optional[LedgerSettings] = None,
) -> tuple[LedgerService, LedgerView, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to run
                    on the in-memory store.
        settings: Ledger settings. Loaded from the environment if None.

    Returns:
        (ledger_service, ledger_view, sheets_client)
    """
    app_settings = get_settings()
    configure_logging(app_settings.app.log_level)
    settings = settings or app_settings.ledger

    sheets_client = None
    store: Optional[RecordStoreInterface] = None
    audit_logger = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient(app_settings.google_sheets)
            store = GoogleSheetsRecordStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except ValidationError as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            store = None

    if store is None:
        store = InMemoryRecordStore()
        audit_logger = AuditLogger()  # Local-only logging

    directory = ParticipantDirectory.from_settings(settings)
    catalog = CategoryCatalog.from_settings(settings)
    engine = LedgerEngine(directory.pair)
    normalizer = RecordNormalizer(directory.pair, catalog=catalog, settings=settings)

    service = LedgerService(
        directory=directory,
        store=store,
        normalizer=normalizer,
        engine=engine,
        audit_logger=audit_logger,
    )
    view = LedgerView(
        store=store,
        engine=engine,
        catalog=catalog,
        monthly_budget=settings.monthly_budget,
    )

    return service, view, sheets_client
