"""Deterministic sorting and paging of aggregated report rows."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .aggregation import FINANCIAL_FIELDS, AggregateGroup, Dimension, natural_key
from .errors import InvalidReportRequest

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 1000

SORT_FIELDS = FINANCIAL_FIELDS + ("order_count", "quantity", "unique_customer_count", "key")

# dimension -> (sort field, descending, tie-break key descending)
DEFAULT_SORTS: Dict[Dimension, Tuple[str, bool, bool]] = {
    Dimension.DATE: ("net_revenue", True, False),
    Dimension.PRODUCT: ("net_revenue", True, True),
    Dimension.EMPLOYEE: ("net_revenue", True, True),
    Dimension.CUSTOMER: ("customer_paid", True, True),
    Dimension.CHANNEL: ("customer_paid", True, True),
    Dimension.CATEGORY: ("net_revenue", True, True),
}


@dataclass
class Page:
    rows: List[Any]
    page: int
    page_size: int
    total_count: int
    total_pages: int
    grand_total: AggregateGroup

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": [row.to_dict() for row in self.rows],
            "pageNumber": self.page,
            "pageSize": self.page_size,
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
            "grandTotal": self.grand_total.to_dict(),
        }


def grand_total(rows: Sequence[Any]) -> AggregateGroup:
    """Sum every row, not just one page.

    Aggregate groups are merged so shared orders and customers count once;
    item-level rows each contribute their own amounts and order.
    """
    total = AggregateGroup(key="total", label="Total")
    for row in rows:
        if isinstance(row, AggregateGroup):
            total.merge(row)
            continue
        for name in FINANCIAL_FIELDS:
            setattr(total, name, getattr(total, name) + getattr(row, name, 0.0))
        total.quantity += getattr(row, "quantity", 0)
        order_id = getattr(row, "order_id", None)
        if order_id is not None:
            total.order_keys.add(order_id)
    return total


def _sort_value(row: Any, sort_by: str) -> Any:
    if sort_by == "key":
        return natural_key(getattr(row, "key", None))
    value = getattr(row, sort_by, 0)
    return value if value is not None else 0


def sort_rows(
    rows: Sequence[Any],
    sort_by: str = "net_revenue",
    descending: bool = True,
    key_descending: bool = True,
) -> List[Any]:
    """Sort rows by one field, breaking ties by the dimension key."""
    if sort_by not in SORT_FIELDS:
        raise InvalidReportRequest(f"Unknown sort field: {sort_by!r}")
    by_key = sorted(rows, key=lambda r: natural_key(getattr(r, "key", None)), reverse=key_descending)
    if sort_by == "key":
        return by_key
    # sorted() is stable under reverse=True, so the key order survives ties
    return sorted(by_key, key=lambda r: _sort_value(r, sort_by), reverse=descending)


def paginate(
    groups: Sequence[Any],
    sort: Optional[Union[str, Tuple[str, bool]]] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    page: int = 1,
    dimension: Optional[Union[str, Dimension]] = None,
) -> Page:
    """Return one page of sorted rows plus counts and the grand total.

    Args:
        groups: Aggregate groups or item-level rows
        sort: Field name, or ``(field, descending)``; defaults per dimension
        page_size: Rows per page, clamped to ``[1, MAX_PAGE_SIZE]``
        page: 1-based page number; pages past the end are empty
        dimension: Report dimension used for the default sort and tie-break
    """
    dim = Dimension.parse(dimension) if dimension is not None else None
    sort_by, descending, key_descending = DEFAULT_SORTS.get(dim, ("net_revenue", True, True))
    if isinstance(sort, tuple):
        sort_by, descending = sort
    elif sort:
        sort_by = sort

    try:
        page_size = int(page_size)
    except (TypeError, ValueError, OverflowError):
        page_size = DEFAULT_PAGE_SIZE
    try:
        page = int(page)
    except (TypeError, ValueError, OverflowError):
        page = 1
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
    page = max(page, 1)

    ordered = sort_rows(groups, sort_by, descending, key_descending)
    total_count = len(ordered)
    total_pages = math.ceil(total_count / page_size)
    start = (page - 1) * page_size

    return Page(
        rows=ordered[start:start + page_size],
        page=page,
        page_size=page_size,
        total_count=total_count,
        total_pages=total_pages,
        grand_total=grand_total(groups),
    )
