"""
Abstract Storage Interface

DESIGN DECISION: The record store is an external collaborator.
The ledger only relies on this contract:
1. Create a record and get back the store-assigned ID
2. Replace a record by ID (no field-level patches)
3. Delete a record by ID
4. Read or subscribe to the FULL snapshot of records

Concurrent edits of the same record are resolved by the backend
(last write wins). We define no merge policy here.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

import structlog

from duoledger.models.audit import AuditEvent
from duoledger.models.records import ExpenseRecord, SettlementRecord, history_order


Record = Union[ExpenseRecord, SettlementRecord]
SnapshotCallback = Callable[[list[Record]], None]


class RecordStoreInterface(ABC):
    """
    Abstract interface for ledger record storage.

    Subscribers receive the full snapshot (newest first) after every
    successful write and on refresh(). Never deltas.
    """

    def __init__(self):
        self._subscribers: list[SnapshotCallback] = []
        self._logger = structlog.get_logger(type(self).__name__)

    @abstractmethod
    async def create_record(self, record: Record) -> str:
        """
        Persist a new record.

        Returns:
            The ID assigned by the store

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_record(self, record_id: str) -> Optional[Record]:
        """Retrieve a record by ID, or None."""
        pass

    @abstractmethod
    async def update_record(self, record_id: str, record: Record) -> bool:
        """
        Replace a record entirely.

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_record(self, record_id: str) -> bool:
        """Delete a record. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def list_records(self) -> list[Record]:
        """Full current snapshot, newest first."""
        pass

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """
        Register a snapshot listener.

        Returns a function that removes the listener again.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def refresh(self) -> list[Record]:
        """Re-read the snapshot and push it to every subscriber."""
        snapshot = await self.list_records()
        self._notify(snapshot)
        return snapshot

    def _notify(self, snapshot: list[Record]) -> None:
        snapshot = history_order(snapshot)
        for callback in list(self._subscribers):
            try:
                callback(list(snapshot))
            except Exception as e:
                # One broken listener must not starve the others
                self._logger.error(
                    "snapshot_listener_failed",
                    error=str(e),
                    listener=getattr(callback, "__qualname__", repr(callback)),
                )


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Returns True if logged successfully."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """All events for one record, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
