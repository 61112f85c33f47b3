"""
Table Filtering, Sorting and Paging

Client-side view operations over the current snapshot. They never touch
the store and never mutate their input.
"""

from collections.abc import Iterable

from financely.models.transaction import SortColumn, Transaction, TypeFilter


def filter_transactions(
    records: Iterable[Transaction],
    query: str = "",
    type_filter: TypeFilter = TypeFilter.ALL,
) -> list[Transaction]:
    """
    Text filter on name, then type filter.

    The text match is a case-insensitive substring test. An empty query
    and TypeFilter.ALL both leave the list untouched.
    """
    needle = (query or "").casefold()

    return [
        record
        for record in records
        if needle in record.name.casefold() and type_filter.matches(record.type)
    ]


_SORT_KEYS = {
    SortColumn.NAME: lambda t: t.name.casefold(),
    SortColumn.AMOUNT: lambda t: t.amount,
    SortColumn.DATE: lambda t: t.date,
}


def sort_transactions(
    records: Iterable[Transaction],
    column: SortColumn = SortColumn.DATE,
    descending: bool = True,
) -> list[Transaction]:
    """Stable sort by one column. Default is newest date first."""
    return sorted(records, key=_SORT_KEYS[column], reverse=descending)


def page_count(total: int, page_size: int) -> int:
    """Number of pages needed for total rows (at least one)."""
    if total <= 0:
        return 1
    return (total + page_size - 1) // page_size


def paginate(
    records: list[Transaction],
    page: int,
    page_size: int,
) -> list[Transaction]:
    """
    Rows of one 1-based page.

    Out-of-range pages are clamped to the nearest valid page.
    """
    page = min(max(page, 1), page_count(len(records), page_size))
    start = (page - 1) * page_size
    return records[start:start + page_size]
