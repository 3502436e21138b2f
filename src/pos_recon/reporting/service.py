"""Report service: one immutable snapshot per request, aggregated and paged."""

from __future__ import annotations

from dataclasses import replace
from datetime import tzinfo
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..utils.logging import get_logger
from .aggregation import Dimension, ReportFilters, aggregate_by_dimension, summarize_period
from .allocation import order_id_of
from .payments import DEFAULT_TOLERANCE
from .pagination import DEFAULT_PAGE_SIZE, paginate
from .repository import OrderRepository
from .timeutils import DateRange

logger = get_logger(__name__)

Snapshot = Tuple[List[Mapping[str, Any]], Optional[List[Mapping[str, Any]]]]


class ReportService:
    """High-level entry point used by the CLI and other callers.

    Either a repository (the Order Store) or a fixed snapshot of orders and
    items must be supplied.
    """

    def __init__(
        self,
        repository: Optional[OrderRepository] = None,
        orders: Optional[Sequence[Mapping[str, Any]]] = None,
        items: Optional[Sequence[Mapping[str, Any]]] = None,
        tz: Optional[tzinfo] = None,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> None:
        if repository is None and orders is None:
            raise ValueError("Either a repository or an order snapshot is required")
        self.repository = repository
        self._orders = list(orders) if orders is not None else None
        self._items = list(items) if items is not None else None
        self.tz = tz
        self.tolerance = tolerance

    def snapshot(self, date_range: DateRange, dimension: Dimension, filters: ReportFilters) -> Snapshot:
        """Fetch the orders (and items when needed) a report runs against."""
        if self.repository is None:
            return self._orders, self._items

        orders = self.repository.find_orders(date_range, filters.status_set(dimension), tz=self.tz)
        items = None
        if dimension.item_level or filters.item_filter.active:
            items = self.repository.find_items(order_id_of(order) for order in orders)
        return orders, items

    def _resolve_floors(self, filters: ReportFilters) -> ReportFilters:
        if filters.floor and not filters.table_floors and self.repository is not None:
            return replace(filters, table_floors=self.repository.find_table_floors())
        return filters

    def report(
        self,
        dimension: Union[str, Dimension],
        date_range: DateRange,
        filters: Optional[ReportFilters] = None,
        sort: Optional[Union[str, Tuple[str, bool]]] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Dict[str, Any]:
        """Aggregate one dimension over the range and return the requested page."""
        dimension = Dimension.parse(dimension)
        filters = self._resolve_floors(filters or ReportFilters())
        orders, items = self.snapshot(date_range, dimension, filters)

        groups = aggregate_by_dimension(
            orders,
            items,
            dimension=dimension,
            filters=filters,
            date_range=date_range,
            tz=self.tz,
            tolerance=self.tolerance,
        )
        result = paginate(groups, sort=sort, page_size=page_size, page=page, dimension=dimension).to_dict()
        result["dimension"] = dimension.value
        result["range"] = {"start": date_range.start.isoformat(), "end": date_range.end.isoformat()}
        logger.info(
            f"{dimension.value} report {date_range.start}..{date_range.end}: "
            f"{result['totalCount']} groups, page {result['pageNumber']}/{result['totalPages']}"
        )
        return result

    def summary(self, date_range: DateRange, filters: Optional[ReportFilters] = None) -> Dict[str, Any]:
        """Period overview: totals, unique customers, averages and peak hour."""
        filters = self._resolve_floors(filters or ReportFilters())
        orders, items = self.snapshot(date_range, Dimension.DATE, filters)
        summary = summarize_period(
            orders, items, filters=filters, date_range=date_range, tz=self.tz, tolerance=self.tolerance
        )
        result = summary.to_dict()
        result["range"] = {"start": date_range.start.isoformat(), "end": date_range.end.isoformat()}
        return result
