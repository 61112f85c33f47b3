"""Tests for the transaction table: filters, sorting, paging and deletion."""

from datetime import date
from decimal import Decimal

import pytest

from financely.config import AppSettings
from financely.models.audit import AuditEventType
from financely.models.transaction import SortColumn, TransactionType, TypeFilter
from financely.table import (
    TransactionTableController,
    filter_transactions,
    page_count,
    paginate,
    sort_transactions,
)

from tests.conftest import make_new_transaction, make_transaction


@pytest.fixture
def records():
    return [
        make_transaction("Salary", "2500", TransactionType.INCOME, "Work", date(2024, 1, 1)),
        make_transaction("groceries", "80.25", TransactionType.EXPENSE, "Food", date(2024, 1, 15)),
        make_transaction("Grocery refund", "10", TransactionType.INCOME, "Food", date(2024, 2, 3)),
        make_transaction("Rent", "900", TransactionType.EXPENSE, "Housing", date(2023, 12, 31)),
    ]


@pytest.fixture
def app_settings():
    return AppSettings(table_page_size=2)


class TestFilters:
    """Tests for text and type filtering."""

    def test_empty_query_is_identity(self, records):
        """Test that an empty query keeps every record."""
        assert filter_transactions(records, "", TypeFilter.ALL) == records

    def test_text_filter_is_case_insensitive_substring(self, records):
        """Test that 'GROC' finds both grocery rows."""
        names = [r.name for r in filter_transactions(records, "GROC")]
        assert names == ["groceries", "Grocery refund"]

    def test_type_filter(self, records):
        """Test income-only and expense-only filters."""
        income = filter_transactions(records, "", TypeFilter.INCOME)
        expense = filter_transactions(records, "", TypeFilter.EXPENSE)

        assert {r.name for r in income} == {"Salary", "Grocery refund"}
        assert {r.name for r in expense} == {"groceries", "Rent"}

    def test_filters_compose(self, records):
        """Test that text and type filters apply together."""
        result = filter_transactions(records, "groc", TypeFilter.EXPENSE)
        assert [r.name for r in result] == ["groceries"]

    def test_filter_does_not_mutate_input(self, records):
        """Test that the snapshot list is left alone."""
        before = list(records)
        filter_transactions(records, "rent", TypeFilter.EXPENSE)
        assert records == before


class TestSorting:
    """Tests for column sorting."""

    def test_default_is_date_descending(self, records):
        """Test the default sort."""
        dates = [r.date for r in sort_transactions(records)]
        assert dates == sorted(dates, reverse=True)

    def test_sort_by_name_ignores_case(self, records):
        """Test lexicographic, case-insensitive name sort."""
        result = sort_transactions(records, SortColumn.NAME, descending=False)
        assert [r.name for r in result] == ["groceries", "Grocery refund", "Rent", "Salary"]

    def test_sort_by_amount_is_numeric(self, records):
        """Test that 900 sorts above 80.25 (not as text)."""
        result = sort_transactions(records, SortColumn.AMOUNT, descending=True)
        assert [r.amount for r in result] == [
            Decimal("2500"), Decimal("900"), Decimal("80.25"), Decimal("10"),
        ]


class TestPaging:
    """Tests for pagination helpers."""

    def test_page_count(self):
        """Test page counts including the empty table."""
        assert page_count(0, 10) == 1
        assert page_count(10, 10) == 1
        assert page_count(11, 10) == 2

    def test_paginate_clamps_out_of_range(self, records):
        """Test that page 99 shows the last page."""
        assert paginate(records, 99, 3) == records[3:]
        assert paginate(records, 0, 3) == records[:3]


class TestTableController:
    """Tests for the controller's view state."""

    def test_visible_applies_filter_then_sort(self, transaction_flow, records, app_settings):
        """Test the composed view."""
        controller = TransactionTableController(transaction_flow, app_settings)
        controller.query = "groc"
        controller.sort_column = SortColumn.AMOUNT
        controller.descending = False

        assert [r.name for r in controller.visible(records)] == ["Grocery refund", "groceries"]

    def test_paging_and_total_label(self, transaction_flow, records, app_settings):
        """Test page size from settings and the total caption."""
        controller = TransactionTableController(transaction_flow, app_settings)

        assert controller.page_count(records) == 2
        assert len(controller.current_page(records)) == 2
        assert controller.total_label(records) == "Total 4 transactions"

    def test_export_uses_filtered_rows(self, transaction_flow, records, app_settings):
        """Test that export writes only what the filters show."""
        controller = TransactionTableController(transaction_flow, app_settings)
        controller.type_filter = TypeFilter.INCOME

        filename, data, row_count = controller.export(records, today=date(2024, 3, 1))

        assert filename == "transactions-2024-03-01.csv"
        assert row_count == 2
        assert "Rent" not in data
        assert data.splitlines()[0] == "Name,Amount,Type,Category,Date"


class TestDeletion:
    """Tests for the two-step delete."""

    @pytest.mark.asyncio
    async def test_declined_delete_issues_no_store_call(
        self, signed_in, store, feed, transaction_flow, app_settings, audit_storage,
    ):
        """Test that saying no leaves the store and the list untouched."""
        await store.insert(signed_in.uid, make_new_transaction())
        before = feed.transactions
        controller = TransactionTableController(transaction_flow, app_settings)

        controller.request_deletion(before[0].id)
        result = await controller.resolve_deletion(confirmed=False)

        assert result is None
        assert store.delete_calls == 0
        assert feed.transactions == before
        assert controller.pending_deletion is None
        assert audit_storage.events[-1].event_type == AuditEventType.DELETE_CANCELLED

    @pytest.mark.asyncio
    async def test_confirmed_delete_updates_list_via_subscription(
        self, signed_in, store, feed, transaction_flow, app_settings,
    ):
        """Test that the row disappears when the next snapshot arrives."""
        await store.insert(signed_in.uid, make_new_transaction())
        target = feed.transactions[0]
        controller = TransactionTableController(transaction_flow, app_settings)

        controller.request_deletion(target.id)
        result = await controller.resolve_deletion(confirmed=True)

        assert result.message == "Transaction deleted successfully!"
        assert store.delete_calls == 1
        assert feed.transactions == []

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_record(
        self, signed_in, store, feed, transaction_flow, app_settings, audit_storage,
    ):
        """Test that a store failure is reported and nothing disappears."""
        await store.insert(signed_in.uid, make_new_transaction())
        target = feed.transactions[0]
        store.fail_deletes = True
        controller = TransactionTableController(transaction_flow, app_settings)

        controller.request_deletion(target.id)
        result = await controller.resolve_deletion(confirmed=True)

        assert result.is_error
        assert result.message == "Failed to delete transaction"
        assert [r.id for r in feed.transactions] == [target.id]
        assert audit_storage.events[-1].event_type == AuditEventType.DELETE_FAILED

    @pytest.mark.asyncio
    async def test_resolve_without_request_is_noop(
        self, transaction_flow, store, app_settings,
    ):
        """Test that resolving with nothing pending does nothing."""
        controller = TransactionTableController(transaction_flow, app_settings)

        assert await controller.resolve_deletion(confirmed=True) is None
        assert store.delete_calls == 0
