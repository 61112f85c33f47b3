"""Tests for the dashboard aggregation engine."""

import random
from datetime import date
from decimal import Decimal

from financely.aggregation import (
    balance,
    category_breakdown,
    monthly_series,
    summarize,
    total_expense,
    total_income,
)
from financely.models.transaction import TransactionType

from tests.conftest import make_transaction


class TestTotals:
    """Tests for the scalar totals."""

    def test_reference_scenario(self, scenario_records):
        """Test income 100, expense 40 + 20 gives balance 40."""
        assert total_income(scenario_records) == Decimal("100.00")
        assert total_expense(scenario_records) == Decimal("60.00")
        assert balance(scenario_records) == Decimal("40.00")

    def test_empty_input(self):
        """Test that no records means zeros and empty groupings."""
        assert total_income([]) == Decimal("0")
        assert total_expense([]) == Decimal("0")
        assert balance([]) == Decimal("0")
        assert monthly_series([]) == []
        assert category_breakdown([]) == []

    def test_balance_identity(self, scenario_records):
        """Test that income minus expense equals balance exactly."""
        records = scenario_records + [
            make_transaction("Refund", "0.10", TransactionType.INCOME, on=date(2024, 3, 1)),
            make_transaction("Gum", "0.20", TransactionType.EXPENSE, "Food", date(2024, 3, 2)),
        ]
        assert total_income(records) - total_expense(records) == balance(records)

    def test_balance_can_be_negative(self):
        """Test that balance is not floored at zero."""
        records = [make_transaction("Rent", "900", TransactionType.EXPENSE, "Housing")]
        assert balance(records) == Decimal("-900.00")

    def test_decimal_precision(self):
        """Test that cent amounts do not drift."""
        records = [
            make_transaction("A", "0.10", TransactionType.INCOME, on=date(2024, 1, 1)),
            make_transaction("B", "0.20", TransactionType.INCOME, on=date(2024, 1, 2)),
        ]
        assert total_income(records) == Decimal("0.30")


class TestMonthlySeries:
    """Tests for the monthly line chart data."""

    def test_reference_scenario(self, scenario_records):
        """Test {Jan, 100, 40} and {Feb, 0, 20}."""
        series = monthly_series(scenario_records)

        assert [(m.month, m.income, m.expense) for m in series] == [
            ("Jan", Decimal("100.00"), Decimal("40.00")),
            ("Feb", Decimal("0.00"), Decimal("20.00")),
        ]

    def test_order_invariance(self, scenario_records):
        """Test that shuffling input does not change the output."""
        expected = monthly_series(scenario_records)

        shuffled = list(scenario_records)
        random.Random(7).shuffle(shuffled)
        assert monthly_series(shuffled) == expected
        assert monthly_series(list(reversed(scenario_records))) == expected

    def test_same_month_different_years_stay_apart(self):
        """Test that January 2024 and January 2025 are separate points."""
        records = [
            make_transaction("A", "10", TransactionType.INCOME, on=date(2025, 1, 3)),
            make_transaction("B", "5", TransactionType.INCOME, on=date(2024, 1, 3)),
        ]
        series = monthly_series(records)

        assert [m.label for m in series] == ["Jan 2024", "Jan 2025"]
        assert [m.income for m in series] == [Decimal("5.00"), Decimal("10.00")]

    def test_chronological_order(self):
        """Test that months come out oldest first."""
        records = [
            make_transaction("A", "1", on=date(2024, 12, 1)),
            make_transaction("B", "1", on=date(2024, 2, 1)),
            make_transaction("C", "1", on=date(2024, 7, 1)),
        ]
        assert [m.month for m in monthly_series(records)] == ["Feb", "Jul", "Dec"]


class TestCategoryBreakdown:
    """Tests for the expense pie chart data."""

    def test_reference_scenario(self, scenario_records):
        """Test {Food: 60}; income categories never appear."""
        breakdown = category_breakdown(scenario_records)

        assert [(c.category, c.total) for c in breakdown] == [("Food", Decimal("60.00"))]

    def test_zero_totals_omitted(self):
        """Test that a category with only zero amounts is left out."""
        records = [
            make_transaction("Free sample", "0", TransactionType.EXPENSE, "Gifts"),
            make_transaction("Bus", "2.50", TransactionType.EXPENSE, "Transport"),
        ]
        assert [c.category for c in category_breakdown(records)] == ["Transport"]

    def test_categories_are_case_sensitive(self):
        """Test that 'Food' and 'food' are different categories."""
        records = [
            make_transaction("A", "1", TransactionType.EXPENSE, "Food"),
            make_transaction("B", "2", TransactionType.EXPENSE, "food"),
        ]
        assert {c.category for c in category_breakdown(records)} == {"Food", "food"}

    def test_largest_first(self):
        """Test ordering by total descending."""
        records = [
            make_transaction("A", "5", TransactionType.EXPENSE, "Fun"),
            make_transaction("B", "50", TransactionType.EXPENSE, "Rent"),
            make_transaction("C", "20", TransactionType.EXPENSE, "Food"),
        ]
        assert [c.category for c in category_breakdown(records)] == ["Rent", "Food", "Fun"]


class TestSummarize:
    """Tests for the dashboard bundle."""

    def test_summary_counts_and_totals(self, scenario_records):
        """Test card values and record counts."""
        summary = summarize(scenario_records)

        assert summary.total_income == Decimal("100.00")
        assert summary.total_expense == Decimal("60.00")
        assert summary.balance == Decimal("40.00")
        assert summary.income_count == 1
        assert summary.expense_count == 2
        assert len(summary.monthly) == 2
        assert len(summary.categories) == 1

    def test_summary_is_idempotent(self, scenario_records):
        """Test that repeated runs give the same result."""
        assert summarize(scenario_records) == summarize(scenario_records)

    def test_summary_accepts_generator(self, scenario_records):
        """Test that a one-shot iterable is consumed only once."""
        summary = summarize(r for r in scenario_records)
        assert summary.balance == Decimal("40.00")

    def test_negative_stored_amounts_accumulate(self):
        """Test that a negative stored record adds arithmetically."""
        records = [
            make_transaction("Salary", "100", TransactionType.INCOME),
            make_transaction("Groceries", "40", TransactionType.EXPENSE, "Food"),
            make_transaction("Correction", "-5", TransactionType.EXPENSE, "Food"),
        ]

        summary = summarize(records)

        assert summary.total_expense == Decimal("35.00")
        assert summary.balance == Decimal("65.00")
        assert summary.categories[0].total == Decimal("35.00")
