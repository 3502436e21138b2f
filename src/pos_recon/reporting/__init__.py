"""Order reconciliation and multi-dimensional report aggregation."""

from .aggregation import AggregateGroup, Dimension, ReportFilters, aggregate_by_dimension, summarize_period
from .allocation import ItemFilter, ItemFinancials, allocate_items
from .errors import InvalidReportRequest, OrderStoreUnavailable, ReconciliationError
from .financials import DerivedOrderFinancials, derive_financials
from .pagination import Page, paginate
from .payments import SingleMethod, SplitMethods, decompose_payments, parse_payment_method
from .repository import OrderRepository
from .service import ReportService
from .timeutils import DateRange

__all__ = [
    "AggregateGroup",
    "DateRange",
    "DerivedOrderFinancials",
    "Dimension",
    "InvalidReportRequest",
    "ItemFilter",
    "ItemFinancials",
    "OrderRepository",
    "OrderStoreUnavailable",
    "Page",
    "ReconciliationError",
    "ReportFilters",
    "ReportService",
    "SingleMethod",
    "SplitMethods",
    "aggregate_by_dimension",
    "allocate_items",
    "decompose_payments",
    "derive_financials",
    "paginate",
    "parse_payment_method",
    "summarize_period",
]
