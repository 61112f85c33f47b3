"""
Aggregation Engine

Pure functions that turn a user's snapshot into dashboard numbers.
Nothing here is stored; every snapshot delivery recomputes from scratch,
so the functions must stay side-effect free and order-independent.

DESIGN DECISION: Sums use Decimal and are rounded to cents only at the
end. Floats would drift (0.1 + 0.2) and the totals are shown to the cent.

DESIGN DECISION: Months are keyed by (year, month). Grouping by month
name alone would fold January 2024 and January 2025 into one point.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from financely.models.transaction import (
    CategoryTotal,
    DashboardSummary,
    MonthlyTotals,
    Transaction,
    TransactionType,
)


CENT = Decimal("0.01")
ZERO = Decimal("0")

# Fixed English abbreviations; strftime("%b") would follow the process locale
MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def to_cents(value: Decimal) -> Decimal:
    """Round to two decimal places for display."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _sum_of_type(records: Iterable[Transaction], kind: TransactionType) -> Decimal:
    return to_cents(sum((r.amount for r in records if r.type == kind), ZERO))


def total_income(records: Iterable[Transaction]) -> Decimal:
    """Sum of amounts over income records."""
    return _sum_of_type(records, TransactionType.INCOME)


def total_expense(records: Iterable[Transaction]) -> Decimal:
    """Sum of amounts over expense records."""
    return _sum_of_type(records, TransactionType.EXPENSE)


def balance(records: Iterable[Transaction]) -> Decimal:
    """Income minus expense. Not floored at zero."""
    records = list(records)
    return total_income(records) - total_expense(records)


def monthly_series(records: Iterable[Transaction]) -> list[MonthlyTotals]:
    """
    Income and expense per calendar month, oldest month first.

    Only months that have at least one record appear.
    """
    groups: dict[tuple[int, int], list[Decimal]] = {}

    for record in records:
        key = (record.date.year, record.date.month)
        if key not in groups:
            groups[key] = [ZERO, ZERO]
        if record.type == TransactionType.INCOME:
            groups[key][0] += record.amount
        else:
            groups[key][1] += record.amount

    return [
        MonthlyTotals(
            year=year,
            month_number=month,
            month=MONTH_LABELS[month - 1],
            income=to_cents(income),
            expense=to_cents(expense),
        )
        for (year, month), (income, expense) in sorted(groups.items())
    ]


def category_breakdown(records: Iterable[Transaction]) -> list[CategoryTotal]:
    """
    Expense totals per category (exact, case-sensitive match).

    Categories only exist here if expense records contributed to them;
    zero totals are left out. Largest first.
    """
    totals: dict[str, Decimal] = {}

    for record in records:
        if record.type != TransactionType.EXPENSE:
            continue
        totals[record.category] = totals.get(record.category, ZERO) + record.amount

    breakdown = [
        CategoryTotal(category=category, total=to_cents(total))
        for category, total in totals.items()
        if to_cents(total) != ZERO
    ]
    breakdown.sort(key=lambda c: (-c.total, c.category))
    return breakdown


def summarize(records: Iterable[Transaction]) -> DashboardSummary:
    """Everything the dashboard shows for one snapshot."""
    records = list(records)
    income = total_income(records)
    expense = total_expense(records)

    return DashboardSummary(
        total_income=income,
        total_expense=expense,
        balance=income - expense,
        income_count=sum(1 for r in records if r.type == TransactionType.INCOME),
        expense_count=sum(1 for r in records if r.type == TransactionType.EXPENSE),
        monthly=monthly_series(records),
        categories=category_breakdown(records),
    )
