"""
Audit Logger

DESIGN DECISION: Every write to the shared ledger is logged.
This provides:
1. Traceability of who changed which record
2. Debugging capability
3. A history both participants can inspect

The audit logger:
- Is async to match the storage layer
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from duoledger.models.audit import AuditEvent, AuditEventBuilder
from duoledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at `level`."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("duoledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_record_rejected(
        self,
        record_type: str,
        actor: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a submission that failed validation."""
        await self.log(AuditEventBuilder.record_rejected(
            record_type=record_type,
            actor=actor,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_participant_rejected(
        self,
        identity: str,
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an identity outside the pair trying to write."""
        await self.log(AuditEventBuilder.participant_rejected(
            identity=identity,
            action=action,
            correlation_id=correlation_id,
        ))

    async def log_record_saved(
        self,
        record_type: str,
        record_id: str,
        actor: str,
        amount: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_saved(
            record_type=record_type,
            record_id=record_id,
            actor=actor,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_record_updated(
        self,
        record_type: str,
        record_id: str,
        actor: str,
        amount: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_updated(
            record_type=record_type,
            record_id=record_id,
            actor=actor,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        record_id: str,
        actor: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_deleted(
            record_id=record_id,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_settlement_recorded(
        self,
        record_id: str,
        payer: str,
        receiver: str,
        amount: int,
        method: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settlement_recorded(
            record_id=record_id,
            payer=payer,
            receiver=receiver,
            amount=amount,
            method=method,
            correlation_id=correlation_id,
        ))

    async def log_records_excluded(
        self,
        excluded: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log records the engine could not attribute."""
        await self.log(AuditEventBuilder.records_excluded(
            excluded=excluded,
            correlation_id=correlation_id,
        ))

    async def log_store_error(
        self,
        operation: str,
        error_message: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.store_error(
            operation=operation,
            error_message=error_message,
            actor=actor,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one form submit).
    """
    return uuid4()
