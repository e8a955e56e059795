"""
Audit Models for Duo Ledger

Every write to the shared ledger is logged for audit purposes.
With two people editing the same records, this answers
"who changed what, and when" after the fact.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from duoledger.models.records import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Submissions
    RECORD_REJECTED = "record_rejected"
    PARTICIPANT_REJECTED = "participant_rejected"

    # Persistence
    RECORD_SAVED = "record_saved"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    SETTLEMENT_RECORDED = "settlement_recorded"

    # Aggregation
    RECORDS_EXCLUDED = "records_excluded"

    # Failures
    STORE_ERROR = "store_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'settlement')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store ID of the entity this event relates to"
    )
    actor: Optional[str] = Field(
        default=None,
        description="Participant identity that triggered the event"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one submission)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor": self.actor,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         actor, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            self.actor or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_saved("expense", record_id, actor, ...)
    """

    @staticmethod
    def record_rejected(
        record_type: str,
        actor: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=record_type,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Invalid {record_type} rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def participant_rejected(
        identity: str,
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTICIPANT_REJECTED,
            severity=AuditSeverity.WARNING,
            actor=identity,
            correlation_id=correlation_id,
            description=f"Identity outside the ledger pair tried to {action}",
            details={"identity": identity, "action": action},
        )

    @staticmethod
    def record_saved(
        record_type: str,
        record_id: str,
        actor: str,
        amount: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SAVED,
            entity_type=record_type,
            entity_id=record_id,
            actor=actor,
            correlation_id=correlation_id,
            description=f"{record_type.capitalize()} saved: {amount}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        record_type: str,
        record_id: str,
        actor: str,
        amount: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type=record_type,
            entity_id=record_id,
            actor=actor,
            correlation_id=correlation_id,
            description=f"{record_type.capitalize()} replaced: {amount}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        record_id: str,
        actor: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type="record",
            entity_id=record_id,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Record deleted: {record_id}",
            is_user_action=True,
        )

    @staticmethod
    def settlement_recorded(
        record_id: str,
        payer: str,
        receiver: str,
        amount: int,
        method: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RECORDED,
            entity_type="settlement",
            entity_id=record_id,
            actor=payer,
            correlation_id=correlation_id,
            description=f"Settlement recorded: {payer} -> {receiver} {amount}",
            details={
                "payer": payer,
                "receiver": receiver,
                "amount": amount,
                "method": method,
            },
            is_user_action=True,
        )

    @staticmethod
    def records_excluded(
        excluded: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_EXCLUDED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{len(excluded)} records left out of the balance",
            details={"excluded": excluded},
        )

    @staticmethod
    def store_error(
        operation: str,
        error_message: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Record store failed during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )
