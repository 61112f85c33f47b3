"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an alternative backend because:
1. Users can view their data directly in Sheets
2. No Firebase project is required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No native push; subscribers receive a fresh snapshot after every write
  made through this process (see SnapshotPublisher)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so business logic does
not change when switching between Firestore and Sheets.
"""

import asyncio
import json
import threading
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from financely.config import get_settings
from financely.models.audit import AuditEvent, AuditEventType, AuditSeverity
from financely.models.transaction import (
    NewTransaction,
    Transaction,
    TransactionType,
)
from financely.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ErrorCallback,
    SnapshotCallback,
    StorageError,
    Subscription,
    TransactionStoreInterface,
    order_snapshot,
)
from financely.services.storage.publisher import SnapshotPublisher


logger = structlog.get_logger(__name__)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "name",
    "amount",
    "type",
    "category",
    "date",
    "created_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for the connection.
    Individual reads and writes are NOT retried; failures surface to the user.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

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

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Handle short rows gracefully."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsTransactionStore(TransactionStoreInterface):
    """
    Google Sheets implementation of the transaction store.

    One transaction per row. Amounts are written as plain decimal strings
    so no precision is lost to spreadsheet number formatting. gspread is
    blocking, so API calls run in a worker thread.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._publisher = SnapshotPublisher()
        self._delete_lock = threading.Lock()

    def _transaction_to_row(self, transaction: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        return [
            transaction.id,
            transaction.user_id,
            transaction.name,
            str(transaction.amount),
            transaction.type.value,
            transaction.category,
            transaction.date.isoformat(),
            transaction.created_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        return Transaction(
            id=_safe_get(row, 0),
            user_id=_safe_get(row, 1),
            name=_safe_get(row, 2),
            amount=Decimal(_safe_get(row, 3)),
            type=TransactionType(_safe_get(row, 4)),
            category=_safe_get(row, 5),
            date=date.fromisoformat(_safe_get(row, 6)),
            created_at=datetime.fromisoformat(_safe_get(row, 7)),
        )

    def _load_snapshot(self, user_id: str) -> list[Transaction]:
        sheet = self._client.get_transactions_sheet()
        all_rows = sheet.get_all_values()[1:]  # Skip header

        records = []
        for row in all_rows:
            if not row or not row[0] or _safe_get(row, 1) != user_id:
                continue
            try:
                records.append(self._row_to_transaction(row))
            except Exception as e:
                logger.warning("skipping_malformed_row", row_id=row[0], error=str(e))
                continue
        return order_snapshot(records)

    async def insert(self, user_id: str, transaction: NewTransaction) -> str:
        """Append a new transaction row."""
        record = Transaction(
            id=uuid4().hex,
            user_id=user_id,
            created_at=datetime.now(timezone.utc),
            **transaction.model_dump(),
        )
        try:
            await asyncio.to_thread(self._append_row, self._transaction_to_row(record))
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

        await asyncio.to_thread(self._publisher.publish, user_id, self._load_snapshot)
        return record.id

    def _append_row(self, row: list) -> None:
        sheet = self._client.get_transactions_sheet()
        sheet.append_row(row, value_input_option="RAW")

    def _delete_row(self, transaction_id: str) -> Optional[str]:
        """Remove the row with this id; returns its owner, or None if absent."""
        # Row indices shift on delete, so lookups and deletes must not interleave
        with self._delete_lock:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
                if row and row[0] == transaction_id:
                    sheet.delete_rows(idx)
                    return _safe_get(row, 1)
        return None

    async def delete(self, transaction_id: str) -> bool:
        """Delete a transaction row by id."""
        try:
            user_id = await asyncio.to_thread(self._delete_row, transaction_id)
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

        if user_id is None:
            return False
        await asyncio.to_thread(self._publisher.publish, user_id, self._load_snapshot)
        return True

    def subscribe(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        subscription = self._publisher.add(user_id, on_snapshot, on_error)
        self._publisher.publish(user_id, self._load_snapshot, only=subscription)
        return subscription


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        details_json = _safe_get(row, 9)
        correlation_id = _safe_get(row, 7)

        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            user_id=_safe_get(row, 6) or None,
            correlation_id=UUID(correlation_id) if correlation_id else None,
            description=_safe_get(row, 8),
            details=json.loads(details_json) if details_json else {},
            error_message=_safe_get(row, 10) or None,
            is_user_action=_safe_get(row, 11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
