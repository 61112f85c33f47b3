"""Transaction table package."""

from financely.table.controller import TransactionTableController
from financely.table.csv_io import (
    CSV_COLUMNS,
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

__all__ = [
    "CSV_COLUMNS",
    "CSVImportError",
    "TransactionTableController",
    "export_csv",
    "export_filename",
    "filter_transactions",
    "page_count",
    "paginate",
    "parse_csv",
    "sort_transactions",
]
