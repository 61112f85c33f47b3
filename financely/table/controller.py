"""
Transaction Table Controller

View state of the transaction table for one browser session:
search text, type filter, sort column, current page and the pending
delete confirmation.

DESIGN DECISION: Deletion is two-step. request_deletion() only records
which row the user clicked; resolve_deletion() issues the store call
and only when the user confirmed. A declined confirmation never reaches
the store.
"""

from datetime import date
from typing import Optional, Union

from financely.config import AppSettings, get_settings
from financely.models.audit import AuditEventType
from financely.models.feedback import Notification
from financely.models.transaction import SortColumn, Transaction, TypeFilter
from financely.orchestrator import TransactionFlow
from financely.table.csv_io import (
    CSVImportError,
    export_csv,
    export_filename,
    parse_csv,
)
from financely.table.filters import (
    filter_transactions,
    page_count,
    paginate,
    sort_transactions,
)


class TransactionTableController:
    """Filtering, sorting, paging, deletion and CSV for the table."""

    def __init__(
        self,
        flow: TransactionFlow,
        settings: Optional[AppSettings] = None,
    ):
        self._flow = flow
        self._settings = settings or get_settings().app

        self.query: str = ""
        self.type_filter: TypeFilter = TypeFilter.ALL
        self.sort_column: SortColumn = SortColumn.DATE
        self.descending: bool = True
        self.page: int = 1
        self._pending_deletion: Optional[str] = None

    @property
    def page_size(self) -> int:
        return self._settings.table_page_size

    # =========================================================================
    # VIEW
    # =========================================================================

    def visible(self, records: list[Transaction]) -> list[Transaction]:
        """Filtered then sorted rows (all pages)."""
        filtered = filter_transactions(records, self.query, self.type_filter)
        return sort_transactions(filtered, self.sort_column, self.descending)

    def current_page(self, records: list[Transaction]) -> list[Transaction]:
        return paginate(self.visible(records), self.page, self.page_size)

    def page_count(self, records: list[Transaction]) -> int:
        return page_count(len(self.visible(records)), self.page_size)

    def total_label(self, records: list[Transaction]) -> str:
        return f"Total {len(self.visible(records))} transactions"

    # =========================================================================
    # DELETION
    # =========================================================================

    @property
    def pending_deletion(self) -> Optional[str]:
        """Id awaiting confirmation, if any."""
        return self._pending_deletion

    def request_deletion(self, transaction_id: str) -> None:
        """Ask for confirmation before deleting transaction_id."""
        self._pending_deletion = transaction_id

    async def resolve_deletion(self, confirmed: bool) -> Optional[Notification]:
        """
        Answer the pending confirmation.

        Returns None if nothing was pending or the user declined.
        """
        transaction_id = self._pending_deletion
        self._pending_deletion = None

        if transaction_id is None:
            return None

        if not confirmed:
            await self._flow.cancel_deletion(transaction_id)
            return None

        return await self._flow.delete_transaction(transaction_id)

    # =========================================================================
    # CSV
    # =========================================================================

    def export(
        self,
        records: list[Transaction],
        today: Optional[date] = None,
    ) -> tuple[str, str, int]:
        """
        CSV of the currently filtered rows.

        Returns:
            (filename, csv_text, row_count)
        """
        rows = self.visible(records)
        filename = export_filename(today, self._settings.export_filename_prefix)
        return filename, export_csv(rows), len(rows)

    async def import_csv(self, content: Union[str, bytes]) -> Notification:
        """Parse an uploaded file and insert its valid rows."""
        if isinstance(content, bytes) and len(content) > self._settings.max_import_size_bytes:
            return Notification.error(
                f"File is larger than {self._settings.max_import_size_mb} MB"
            )

        try:
            transactions, dropped = parse_csv(content)
        except CSVImportError as e:
            await self._flow.audit_logger.log_operation_failed(
                event_type=AuditEventType.IMPORT_FAILED,
                error_message=str(e),
                user_id=self._flow.session.user_id,
            )
            return Notification.error("Failed to parse CSV file")

        return await self._flow.import_transactions(transactions, dropped)
