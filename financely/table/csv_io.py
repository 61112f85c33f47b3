"""
CSV Import / Export

The file contract is a header row of Name,Amount,Type,Category,Date
followed by one row per transaction.

DESIGN DECISION: Import is lenient per row but strict per value.
A row that is incomplete or carries a value we cannot interpret
(non-numeric or negative amount, unknown type, non-ISO date) is dropped
and counted. It is never coerced to a default. Only a file that cannot
be read at all raises CSVImportError.
"""

import csv
import io
from collections.abc import Iterable
from datetime import date
from typing import Optional, Union

from pydantic import ValidationError

from financely.models.transaction import NewTransaction, Transaction
from financely.validation import parse_amount, parse_transaction_type


CSV_COLUMNS = ("Name", "Amount", "Type", "Category", "Date")


class CSVImportError(Exception):
    """The uploaded file could not be decoded or parsed as CSV."""
    pass


def export_csv(records: Iterable[Transaction]) -> str:
    """Render records as CSV text with the standard header."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)

    for record in records:
        writer.writerow([
            record.name,
            str(record.amount),
            record.type.value,
            record.category,
            record.date.isoformat(),
        ])

    return buffer.getvalue()


def export_filename(today: Optional[date] = None, prefix: str = "transactions") -> str:
    """e.g. transactions-2024-03-01.csv"""
    today = today or date.today()
    return f"{prefix}-{today.isoformat()}.csv"


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def row_to_transaction(row: dict) -> Optional[NewTransaction]:
    """
    Convert one CSV row (keyed by header) to a NewTransaction.

    Returns None if the row must be dropped.
    """
    values = {}
    for column in CSV_COLUMNS:
        value = row.get(column)
        if value is None or not value.strip():
            return None
        values[column] = value.strip()

    amount = parse_amount(values["Amount"])
    if amount is None or amount < 0:
        return None

    transaction_type = parse_transaction_type(values["Type"])
    if transaction_type is None:
        return None

    transaction_date = _parse_date(values["Date"])
    if transaction_date is None:
        return None

    try:
        return NewTransaction(
            name=values["Name"],
            amount=amount,
            type=transaction_type,
            category=values["Category"],
            date=transaction_date,
        )
    except ValidationError:
        return None


def parse_csv(content: Union[str, bytes]) -> tuple[list[NewTransaction], int]:
    """
    Parse an uploaded CSV file.

    Returns:
        (valid_transactions, dropped_row_count)

    Raises:
        CSVImportError: If the file is not UTF-8 text or not valid CSV
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CSVImportError(f"File is not UTF-8 text: {e}") from e

    if "\x00" in content:
        raise CSVImportError("File contains binary data")

    reader = csv.DictReader(io.StringIO(content, newline=""))

    try:
        rows = list(reader)
    except csv.Error as e:
        raise CSVImportError(f"Malformed CSV: {e}") from e

    transactions: list[NewTransaction] = []
    dropped = 0

    for row in rows:
        # Header cells may carry stray spaces ("Name, Amount, ...")
        normalized = {
            key.strip(): value
            for key, value in row.items()
            if isinstance(key, str)
        }
        transaction = row_to_transaction(normalized)
        if transaction is None:
            dropped += 1
        else:
            transactions.append(transaction)

    return transactions, dropped
