"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the shared document store because:
1. Both participants can look at the raw ledger directly in Sheets
2. No database setup required
3. Built-in backup and sharing (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (a household ledger is tiny)
- No change stream: subscribers are notified after our own writes and
  on refresh() (polling), always with the full snapshot
- No transactions: concurrent edits of one row resolve as last write wins

One row per record. Expenses and settlements share the sheet; columns
that don't apply to a record type are left empty.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from duoledger.config import GoogleSheetsSettings, get_settings
from duoledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from duoledger.models.records import (
    ExpenseRecord,
    history_order,
    parse_record,
)
from duoledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    NotFoundError,
    Record,
    RecordStoreInterface,
    StorageError,
)


# Column mappings for Records sheet
RECORD_COLUMNS = [
    "id",
    "type",
    "date",
    "amount",
    "payer",
    "recorded_by",
    "title",
    "category",
    "split_kind",
    "my_ratio",
    "note",
    "receiver",
    "method",
    "created_at",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "actor",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_records_sheet(self) -> gspread.Worksheet:
        """Get or create the Records worksheet."""
        return self._get_or_create_sheet(
            self._settings.records_sheet_name, RECORD_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def record_to_row(record: Record) -> list:
    """Convert a record to a spreadsheet row (RECORD_COLUMNS order)."""
    is_expense = isinstance(record, ExpenseRecord)
    return [
        record.id or "",
        record.type,
        record.date.isoformat(),
        str(record.amount),
        record.payer or "",
        record.recorded_by or "",
        record.title if is_expense else "",
        record.category if is_expense else "",
        record.split_kind.value if is_expense else "",
        str(record.my_ratio) if is_expense else "",
        (record.note or "") if is_expense else "",
        "" if is_expense else (record.receiver or ""),
        "" if is_expense else record.method,
        record.created_at.isoformat(),
        record.updated_at.isoformat(),
    ]


def row_to_record(row: list) -> Record:
    """
    Convert a spreadsheet row to a record.

    Empty cells are treated as absent. Raises pydantic.ValidationError
    for rows that don't describe a valid record.
    """
    data = {}
    for index, column in enumerate(RECORD_COLUMNS):
        value = row[index] if index < len(row) else ""
        if value != "":
            data[column] = value

    # Only the fields of the record's own type are passed on
    if data.get("type") == "settlement":
        for column in ("title", "category", "split_kind", "my_ratio", "note"):
            data.pop(column, None)
    else:
        for column in ("receiver", "method"):
            data.pop(column, None)

    return parse_record(data)


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the record store.

    IDs are assigned here (uuid4 hex), mirroring a document store that
    hands out IDs on create.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        super().__init__()
        self._client = client or GoogleSheetsClient()

    def _find_row(self, all_rows: list[list], record_id: str) -> Optional[int]:
        """1-based sheet row index of a record (row 1 is the header)."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == record_id:
                return idx
        return None

    async def _publish_snapshot(self, operation: str) -> None:
        """
        Push the fresh snapshot to subscribers after a successful write.

        A failed re-read is logged, not raised: the write itself is done
        and must not be reported (and retried) as a failure.
        """
        try:
            snapshot = await self.list_records()
        except StorageError as e:
            self._logger.warning(
                "snapshot_refresh_failed",
                operation=operation,
                error=str(e),
            )
            return
        self._notify(snapshot)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append_row(self, row: list) -> None:
        sheet = self._client.get_records_sheet()
        sheet.append_row(row, value_input_option="RAW")

    async def create_record(self, record: Record) -> str:
        """Append a new record row."""
        record_id = uuid4().hex
        try:
            self._append_row(record_to_row(record.model_copy(update={"id": record_id})))
        except Exception as e:
            raise StorageError(f"Failed to save record: {e}")

        await self._publish_snapshot("create_record")
        return record_id

    async def get_record(self, record_id: str) -> Optional[Record]:
        """Retrieve a record by its ID."""
        try:
            sheet = self._client.get_records_sheet()
            all_rows = sheet.get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to get record: {e}")

        idx = self._find_row(all_rows, record_id)
        if idx is None:
            return None
        return row_to_record(all_rows[idx - 1])

    async def update_record(self, record_id: str, record: Record) -> bool:
        """Replace a record row in place."""
        try:
            sheet = self._client.get_records_sheet()
            all_rows = sheet.get_all_values()

            idx = self._find_row(all_rows, record_id)
            if idx is None:
                raise NotFoundError(f"Record not found: {record_id}")

            row = record_to_row(record.model_copy(update={"id": record_id}))
            sheet.update(
                range_name=f"A{idx}",
                values=[row],
                value_input_option="RAW",
            )
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update record: {e}")

        await self._publish_snapshot("update_record")
        return True

    async def delete_record(self, record_id: str) -> bool:
        """Delete a record row."""
        try:
            sheet = self._client.get_records_sheet()
            all_rows = sheet.get_all_values()

            idx = self._find_row(all_rows, record_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
        except Exception as e:
            raise StorageError(f"Failed to delete record: {e}")

        await self._publish_snapshot("delete_record")
        return True

    async def list_records(self) -> list[Record]:
        """Full snapshot, newest first. Malformed rows are skipped and logged."""
        try:
            sheet = self._client.get_records_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list records: {e}")

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(row_to_record(row))
            except ValueError as e:
                self._logger.warning(
                    "malformed_record_row",
                    record_id=row[0],
                    error=str(e),
                )

        return history_order(records)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=safe_get(0),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            actor=safe_get(6) or None,
            correlation_id=safe_get(7) or None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def _all_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                continue  # Skip malformed rows
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity, oldest first."""
        events = [
            e for e in await self._all_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        events = await self._all_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
