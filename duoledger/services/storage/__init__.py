"""
Storage Services Package

Provides the record store contract and its implementations.
Google Sheets is the shared backend; the in-memory store backs tests
and local runs without a spreadsheet.
"""

from duoledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)
from duoledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
)
from duoledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    record_to_row,
    row_to_record,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordStoreInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "record_to_row",
    "row_to_record",
]
