"""
In-Memory Storage

A process-local record store with the same contract as the Google Sheets
backend. Used by the tests and when no spreadsheet is configured.
"""

from typing import Optional
from uuid import uuid4

from duoledger.models.audit import AuditEvent
from duoledger.models.records import history_order
from duoledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    Record,
    RecordStoreInterface,
)


class InMemoryRecordStore(RecordStoreInterface):
    """Records kept in a dict keyed by store-assigned ID."""

    def __init__(self, records: Optional[list[Record]] = None):
        super().__init__()
        self._records: dict[str, Record] = {}
        for record in records or []:
            record_id = record.id or uuid4().hex
            self._records[record_id] = record.model_copy(update={"id": record_id})

    async def create_record(self, record: Record) -> str:
        if record.id is not None and record.id in self._records:
            raise DuplicateError(f"Record already exists: {record.id}")
        record_id = uuid4().hex
        self._records[record_id] = record.model_copy(update={"id": record_id})
        self._notify(list(self._records.values()))
        return record_id

    async def get_record(self, record_id: str) -> Optional[Record]:
        return self._records.get(record_id)

    async def update_record(self, record_id: str, record: Record) -> bool:
        if record_id not in self._records:
            raise NotFoundError(f"Record not found: {record_id}")
        self._records[record_id] = record.model_copy(update={"id": record_id})
        self._notify(list(self._records.values()))
        return True

    async def delete_record(self, record_id: str) -> bool:
        if self._records.pop(record_id, None) is None:
            return False
        self._notify(list(self._records.values()))
        return True

    async def list_records(self) -> list[Record]:
        return history_order(self._records.values())


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
