"""Tests for CSV export, parsing and the import flow."""

from datetime import date
from decimal import Decimal

import pytest

from financely.config import AppSettings
from financely.models.audit import AuditEventType
from financely.models.transaction import TransactionType
from financely.table import (
    CSVImportError,
    TransactionTableController,
    export_csv,
    export_filename,
    parse_csv,
)

from tests.conftest import make_transaction


HEADER = "Name,Amount,Type,Category,Date\n"


class TestExport:
    """Tests for CSV rendering."""

    def test_header_and_row(self):
        """Test the header contract and value formatting."""
        text = export_csv([
            make_transaction("Salary", "2500.50", TransactionType.INCOME, "Work", date(2024, 1, 5)),
        ])
        lines = text.splitlines()

        assert lines[0] == "Name,Amount,Type,Category,Date"
        assert lines[1] == "Salary,2500.50,income,Work,2024-01-05"

    def test_quoting(self):
        """Test that commas and quotes in names survive."""
        text = export_csv([
            make_transaction('Dinner, "fancy"', "42", TransactionType.EXPENSE, "Food"),
        ])
        assert '"Dinner, ""fancy"""' in text

    def test_filename(self):
        """Test the export filename pattern."""
        assert export_filename(date(2024, 3, 9)) == "transactions-2024-03-09.csv"
        assert export_filename(date(2024, 3, 9), prefix="money") == "money-2024-03-09.csv"


class TestParse:
    """Tests for CSV parsing."""

    def test_round_trip_preserves_fields(self, scenario_records):
        """Test export then import keeps name, amount, type, category and date."""
        tricky = make_transaction('Dinner, "fancy"', "42.05", TransactionType.EXPENSE, "Food & Drink")
        originals = scenario_records + [tricky]

        parsed, dropped = parse_csv(export_csv(originals))

        assert dropped == 0
        assert [
            (t.name, t.amount, t.type, t.category, t.date) for t in parsed
        ] == [
            (r.name, r.amount, r.type, r.category, r.date) for r in originals
        ]

    def test_row_missing_amount_is_dropped(self):
        """Test one row without Amount and one complete row gives one transaction."""
        content = HEADER + (
            "Coffee,,expense,Food,2024-01-02\n"
            "Salary,100,income,Work,2024-01-05\n"
        )
        parsed, dropped = parse_csv(content)

        assert [t.name for t in parsed] == ["Salary"]
        assert dropped == 1

    def test_type_is_lowercased(self):
        """Test that 'INCOME' and 'Expense' are accepted."""
        content = HEADER + (
            "A,1,INCOME,Work,2024-01-01\n"
            "B,2,Expense,Food,2024-01-02\n"
        )
        parsed, _ = parse_csv(content)

        assert [t.type for t in parsed] == [TransactionType.INCOME, TransactionType.EXPENSE]

    @pytest.mark.parametrize("row", [
        "Coffee,abc,expense,Food,2024-01-02",
        "Coffee,NaN,expense,Food,2024-01-02",
        "Coffee,Infinity,expense,Food,2024-01-02",
        "Coffee,-5,expense,Food,2024-01-02",
        "Coffee,5,transfer,Food,2024-01-02",
        "Coffee,5,expense,Food,02/01/2024",
        "Coffee,5,expense,,2024-01-02",
        "Coffee,5,expense",
    ])
    def test_malformed_rows_are_dropped(self, row):
        """Test that values that cannot be interpreted drop the row."""
        parsed, dropped = parse_csv(HEADER + row + "\n")

        assert parsed == []
        assert dropped == 1

    def test_bytes_with_bom(self):
        """Test UTF-8 files saved with a byte order mark."""
        content = ("\ufeff" + HEADER + "Café,3.20,expense,Food,2024-01-02\n").encode("utf-8")
        parsed, _ = parse_csv(content)

        assert parsed[0].name == "Café"
        assert parsed[0].amount == Decimal("3.20")

    def test_header_with_spaces(self):
        """Test that padded header cells are still recognised."""
        content = "Name, Amount, Type, Category, Date\nTea,2,expense,Food,2024-01-02\n"
        parsed, dropped = parse_csv(content)

        assert len(parsed) == 1
        assert dropped == 0

    def test_empty_file(self):
        """Test that an empty file has no rows rather than failing."""
        assert parse_csv("") == ([], 0)

    def test_binary_file_raises(self):
        """Test that non-text uploads are rejected as a whole."""
        with pytest.raises(CSVImportError):
            parse_csv(b"\x89PNG\r\n\x1a\n\x00\x00\xff\xfe")


class TestImportFlow:
    """Tests for importing through the table controller."""

    @pytest.mark.asyncio
    async def test_scenario_single_valid_row(self, signed_in, store, feed, transaction_flow):
        """Test one incomplete and one complete row: one insert, count 1."""
        controller = TransactionTableController(transaction_flow, AppSettings())
        content = HEADER + (
            "Coffee,,expense,Food,2024-01-02\n"
            "Salary,100,income,Work,2024-01-05\n"
        )

        result = await controller.import_csv(content.encode("utf-8"))

        assert result.message == "Imported 1 transactions!"
        assert store.insert_calls == 1
        assert [t.name for t in feed.transactions] == ["Salary"]
        assert feed.transactions[0].user_id == signed_in.uid

    @pytest.mark.asyncio
    async def test_no_valid_rows(self, signed_in, store, transaction_flow):
        """Test the message when every row is dropped."""
        controller = TransactionTableController(transaction_flow, AppSettings())

        result = await controller.import_csv(HEADER + "Coffee,,expense,Food,2024-01-02\n")

        assert result.is_error
        assert result.message == "No valid transactions found in CSV"
        assert store.insert_calls == 0

    @pytest.mark.asyncio
    async def test_unparseable_file(self, signed_in, store, transaction_flow, audit_storage):
        """Test a single failure notification for a broken file."""
        controller = TransactionTableController(transaction_flow, AppSettings())

        result = await controller.import_csv(b"\xff\xfe\x00\x00garbage")

        assert result.message == "Failed to parse CSV file"
        assert store.insert_calls == 0
        assert audit_storage.events[-1].event_type == AuditEventType.IMPORT_FAILED

    @pytest.mark.asyncio
    async def test_any_insert_failure_fails_import(self, signed_in, store, transaction_flow):
        """Test that one rejected insert makes the whole import fail."""
        store.fail_inserts_after = 1
        controller = TransactionTableController(transaction_flow, AppSettings())
        content = HEADER + (
            "A,1,income,Work,2024-01-01\n"
            "B,2,income,Work,2024-01-02\n"
            "C,3,income,Work,2024-01-03\n"
        )

        result = await controller.import_csv(content)

        assert result.message == "Failed to import transactions"

    @pytest.mark.asyncio
    async def test_oversized_file_rejected(self, signed_in, store, transaction_flow):
        """Test the upload size limit."""
        controller = TransactionTableController(
            transaction_flow, AppSettings(max_import_size_mb=1)
        )
        content = (HEADER + "A,1,income,Work,2024-01-01\n" * 60000).encode("utf-8")

        result = await controller.import_csv(content)

        assert result.is_error
        assert store.insert_calls == 0

    @pytest.mark.asyncio
    async def test_import_shares_creation_path(self, signed_in, transaction_flow, audit_storage):
        """Test that every imported row is audited like a manual insert."""
        controller = TransactionTableController(transaction_flow, AppSettings())
        content = HEADER + (
            "A,1,income,Work,2024-01-01\n"
            "B,2,expense,Food,2024-01-02\n"
        )

        await controller.import_csv(content)

        added = [e for e in audit_storage.events if e.event_type == AuditEventType.TRANSACTION_ADDED]
        completed = [e for e in audit_storage.events if e.event_type == AuditEventType.IMPORT_COMPLETED]
        assert len(added) == 2
        assert len(completed) == 1
        assert {e.correlation_id for e in added} == {completed[0].correlation_id}
