"""Dashboard aggregation package."""

from financely.aggregation.engine import (
    MONTH_LABELS,
    balance,
    category_breakdown,
    monthly_series,
    summarize,
    to_cents,
    total_expense,
    total_income,
)

__all__ = [
    "MONTH_LABELS",
    "balance",
    "category_breakdown",
    "monthly_series",
    "summarize",
    "to_cents",
    "total_expense",
    "total_income",
]
