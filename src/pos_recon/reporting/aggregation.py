"""Dimension aggregation of derived order financials.

One parameterized aggregator serves every report: a dimension selects the
grouping key, a status policy selects the participating orders, and each
group sums the same derived fields.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import tzinfo
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from ..utils.logging import get_logger
from .allocation import ItemFilter, allocate_items, index_items_by_order, items_for_order, order_id_of
from .errors import InvalidReportRequest
from .financials import DerivedOrderFinancials, derive_financials
from .payments import DEFAULT_TOLERANCE, decompose_payments
from .timeutils import DateRange, order_timestamp

logger = get_logger(__name__)

ORDER_STATUSES = frozenset(
    {"pending", "confirmed", "preparing", "ready", "served", "in_progress", "paid", "completed", "cancelled"}
)
REVENUE_STATUSES = frozenset({"paid", "completed"})
CHANNEL_STATUSES = frozenset({"paid", "completed", "cancelled"})
CANCELLED = "cancelled"

DINE_IN = "dine-in"
TAKEAWAY = "takeaway"
UNASSIGNED = "unassigned"
UNCATEGORIZED = "uncategorized"
DEFAULT_PEAK_HOUR = 12

FINANCIAL_FIELDS = ("gross_amount", "discount", "net_revenue", "tax", "customer_paid")


class Dimension(str, Enum):
    DATE = "date"
    PRODUCT = "product"
    EMPLOYEE = "employee"
    CUSTOMER = "customer"
    CHANNEL = "channel"
    CATEGORY = "category"

    @classmethod
    def parse(cls, value: Union[str, "Dimension"]) -> "Dimension":
        if isinstance(value, cls):
            return value
        aliases = {"daily": cls.DATE, "sales-channel": cls.CHANNEL, "sales_channel": cls.CHANNEL}
        text = str(value).strip().lower()
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError as e:
            raise InvalidReportRequest(f"Unknown dimension: {value!r}") from e

    @property
    def item_level(self) -> bool:
        return self in (Dimension.PRODUCT, Dimension.CATEGORY)


def default_statuses(dimension: Dimension) -> FrozenSet[str]:
    """Statuses that participate in a report of the given dimension."""
    return CHANNEL_STATUSES if dimension is Dimension.CHANNEL else REVENUE_STATUSES


def normalize_status(value: Any) -> str:
    return str(value or "").strip().lower()


def channel_of(order: Mapping[str, Any]) -> str:
    """Dine-in when the order sits at a table, takeaway otherwise."""
    table_id = order.get("tableId")
    if table_id is None or (isinstance(table_id, str) and not table_id.strip()):
        return TAKEAWAY
    return DINE_IN


def order_key(order: Mapping[str, Any], index: int) -> Any:
    """Stable identity of an order within one snapshot."""
    key = order_id_of(order)
    if key is None:
        key = order.get("orderNumber")
    return key if key is not None else f"#{index}"


def customer_identity(order: Mapping[str, Any], index: int = 0) -> Tuple[str, Any]:
    """Identity chain: customer id, then customer name, then the order itself.

    Guest orders without either field each count as their own customer.
    """
    customer_id = order.get("customerId")
    if customer_id is not None and str(customer_id).strip():
        return ("id", customer_id)
    name = str(order.get("customerName") or "").strip()
    if name:
        return ("name", name)
    return ("order", order_key(order, index))


def employee_identity(order: Mapping[str, Any]) -> Tuple[Any, str]:
    employee_id = order.get("employeeId")
    name = str(order.get("employeeName") or "").strip()
    if employee_id is not None and str(employee_id).strip():
        return employee_id, name or str(employee_id)
    if name:
        return name, name
    return UNASSIGNED, UNASSIGNED


@dataclass
class ReportFilters:
    """Caller-selected criteria narrowing the orders of a report."""

    category: Optional[str] = None
    product_search: Optional[str] = None
    employee: Optional[Any] = None
    customer: Optional[Any] = None
    statuses: Optional[Iterable[str]] = None
    floor: Optional[str] = None
    channel: Optional[str] = None
    table_floors: Mapping[Any, Any] = field(default_factory=dict)

    @property
    def item_filter(self) -> ItemFilter:
        return ItemFilter(category=self.category, product_search=self.product_search)

    def status_set(self, dimension: Dimension) -> FrozenSet[str]:
        if self.statuses:
            return frozenset(normalize_status(s) for s in self.statuses)
        return default_statuses(dimension)

    def floor_of(self, order: Mapping[str, Any]) -> Optional[str]:
        table_id = order.get("tableId")
        if table_id is None:
            return None
        floor = self.table_floors.get(table_id)
        if floor is None:
            floor = self.table_floors.get(str(table_id))
        return None if floor is None else str(floor)

    def matches_order(self, order: Mapping[str, Any]) -> bool:
        if self.employee not in (None, ""):
            wanted = str(self.employee).strip().lower()
            employee_id = order.get("employeeId")
            employee_name = str(order.get("employeeName") or "").strip().lower()
            if not ((employee_id is not None and str(employee_id).lower() == wanted) or employee_name == wanted):
                return False
        if self.customer not in (None, ""):
            wanted = str(self.customer).strip().lower()
            customer_id = order.get("customerId")
            customer_name = str(order.get("customerName") or "").lower()
            if not ((customer_id is not None and str(customer_id).lower() == wanted) or (wanted and wanted in customer_name)):
                return False
        if self.channel and channel_of(order) != self.channel.strip().lower():
            return False
        if self.floor and self.floor_of(order) != str(self.floor):
            return False
        return True


@dataclass
class AggregateGroup:
    """Summed financials for one value of a dimension."""

    key: Any
    label: str = ""
    gross_amount: float = 0.0
    discount: float = 0.0
    net_revenue: float = 0.0
    tax: float = 0.0
    customer_paid: float = 0.0
    quantity: int = 0
    payment_method_totals: Dict[str, float] = field(default_factory=dict)
    cancelled_revenue: float = 0.0
    order_keys: Set[Any] = field(default_factory=set, repr=False)
    cancelled_order_keys: Set[Any] = field(default_factory=set, repr=False)
    customer_identities: Set[Tuple[str, Any]] = field(default_factory=set, repr=False)

    @property
    def order_count(self) -> int:
        return len(self.order_keys)

    @property
    def cancelled_orders(self) -> int:
        return len(self.cancelled_order_keys)

    @property
    def unique_customer_count(self) -> int:
        return len(self.customer_identities)

    def add(
        self,
        order_ref: Any,
        customer: Tuple[str, Any],
        amounts: Union[DerivedOrderFinancials, Any],
        payments: Mapping[str, float],
        quantity: int = 0,
    ) -> None:
        self.order_keys.add(order_ref)
        self.customer_identities.add(customer)
        for name in FINANCIAL_FIELDS:
            setattr(self, name, getattr(self, name) + getattr(amounts, name))
        self.quantity += quantity
        for method, amount in payments.items():
            self.payment_method_totals[method] = self.payment_method_totals.get(method, 0.0) + amount

    def add_cancelled(self, order_ref: Any, amounts: DerivedOrderFinancials) -> None:
        self.cancelled_order_keys.add(order_ref)
        self.cancelled_revenue += amounts.net_revenue

    def merge(self, other: "AggregateGroup") -> None:
        """Fold another group into this one, counting shared orders and customers once."""
        for name in FINANCIAL_FIELDS:
            setattr(self, name, getattr(self, name) + getattr(other, name))
        self.quantity += other.quantity
        self.cancelled_revenue += other.cancelled_revenue
        for method, amount in other.payment_method_totals.items():
            self.payment_method_totals[method] = self.payment_method_totals.get(method, 0.0) + amount
        self.order_keys |= other.order_keys
        self.cancelled_order_keys |= other.cancelled_order_keys
        self.customer_identities |= other.customer_identities

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "orderCount": self.order_count,
            "grossAmount": self.gross_amount,
            "discount": self.discount,
            "netRevenue": self.net_revenue,
            "tax": self.tax,
            "customerPaid": self.customer_paid,
            "quantity": self.quantity,
            "uniqueCustomerCount": self.unique_customer_count,
            "paymentMethodTotals": dict(sorted(self.payment_method_totals.items())),
            "cancelledOrders": self.cancelled_orders,
            "cancelledRevenue": self.cancelled_revenue,
        }


def natural_key(value: Any) -> Tuple[int, Any]:
    """Total ordering over mixed int/str dimension keys."""
    if isinstance(value, bool):
        return (1, str(value))
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, str(value))


@dataclass(frozen=True)
class _OrderContext:
    order: Mapping[str, Any]
    index: int
    ref: Any
    financials: DerivedOrderFinancials
    status: str
    day: Optional[str]
    hour: Optional[int]


def _select_orders(
    orders: Sequence[Mapping[str, Any]],
    dimension: Dimension,
    filters: ReportFilters,
    date_range: Optional[DateRange],
    tz: Optional[tzinfo],
    items_by_order: Optional[Mapping[Any, Sequence[Mapping[str, Any]]]],
) -> List[_OrderContext]:
    statuses = filters.status_set(dimension)
    item_filter = filters.item_filter
    needs_time = date_range is not None or dimension is Dimension.DATE

    selected = []
    for index, order in enumerate(orders):
        if not isinstance(order, Mapping):
            logger.warning(f"Skipping non-mapping order record at position {index}")
            continue
        status = normalize_status(order.get("status"))
        if status not in statuses:
            continue
        if not filters.matches_order(order):
            continue

        day = hour = None
        placed_at = order_timestamp(order, tz)
        if placed_at is None:
            if needs_time:
                logger.warning(
                    f"Skipping order {order.get('orderNumber', order_id_of(order))}: "
                    f"unparseable date {order.get('orderedAt') or order.get('createdAt')!r}"
                )
                continue
        else:
            if date_range is not None and placed_at.date() not in date_range:
                continue
            day, hour = placed_at.date().isoformat(), placed_at.hour

        if item_filter.active and not dimension.item_level:
            if not any(item_filter.matches(item) for item in items_for_order(order, items_by_order)):
                continue

        selected.append(
            _OrderContext(
                order=order,
                index=index,
                ref=order_key(order, index),
                financials=derive_financials(order),
                status=status,
                day=day,
                hour=hour,
            )
        )
    return selected


def _order_group_key(dimension: Dimension, ctx: _OrderContext) -> Tuple[Any, Any, str]:
    """Return (bucket identity, display key, label) for an order-level dimension."""
    order = ctx.order
    if dimension is Dimension.DATE:
        return ctx.day, ctx.day, ctx.day
    if dimension is Dimension.EMPLOYEE:
        key, label = employee_identity(order)
        return key, key, label
    if dimension is Dimension.CUSTOMER:
        identity = customer_identity(order, ctx.index)
        label = str(order.get("customerName") or "").strip() or str(identity[1])
        return identity, identity[1], label
    channel = channel_of(order)
    return channel, channel, channel


def _item_group_key(dimension: Dimension, item: Any) -> Tuple[Any, Any, str]:
    if dimension is Dimension.CATEGORY:
        name = str(item.category_name or "").strip() or UNCATEGORIZED
        return name, name, name
    label = item.product_name or str(item.product_id)
    return item.product_id, item.product_id, label


def aggregate_by_dimension(
    orders: Sequence[Mapping[str, Any]],
    items: Optional[Iterable[Mapping[str, Any]]] = None,
    dimension: Union[str, Dimension] = Dimension.DATE,
    filters: Optional[ReportFilters] = None,
    date_range: Optional[DateRange] = None,
    tz: Optional[tzinfo] = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> List[AggregateGroup]:
    """Group a snapshot of orders by one dimension and sum derived financials.

    Args:
        orders: Order records of the snapshot
        items: Flat item records referencing ``orderId``; when omitted each
            order's nested ``items`` are used
        dimension: Grouping axis (date, product, employee, customer, channel, category)
        filters: Report criteria; the status policy follows the dimension unless overridden
        date_range: Inclusive local calendar days to keep
        tz: Timezone defining the local calendar day (system local when omitted)
        tolerance: Allowed gap between split payments and customer-paid total

    Returns:
        Groups ordered by their dimension key
    """
    dimension = Dimension.parse(dimension)
    filters = filters or ReportFilters()
    items_by_order = index_items_by_order(items) if items is not None else None

    selected = _select_orders(orders, dimension, filters, date_range, tz, items_by_order)
    groups: Dict[Any, AggregateGroup] = {}

    def bucket(identity: Any, key: Any, label: str) -> AggregateGroup:
        group = groups.get(identity)
        if group is None:
            group = groups[identity] = AggregateGroup(key=key, label=label)
        return group

    for ctx in selected:
        derived = ctx.financials
        customer = customer_identity(ctx.order, ctx.index)

        if ctx.status == CANCELLED:
            if dimension is Dimension.CHANNEL:
                bucket(*_order_group_key(dimension, ctx)).add_cancelled(ctx.ref, derived)
            continue

        payments = decompose_payments(ctx.order, derived.customer_paid, tolerance)

        if not dimension.item_level:
            bucket(*_order_group_key(dimension, ctx)).add(ctx.ref, customer, derived, payments)
            continue

        allocated = allocate_items(
            ctx.order,
            items_for_order(ctx.order, items_by_order),
            item_filter=filters.item_filter,
            financials=derived,
        )
        for item in allocated:
            share = item.customer_paid / derived.customer_paid if derived.customer_paid > 0 else 0.0
            item_payments = {method: amount * share for method, amount in payments.items()}
            bucket(*_item_group_key(dimension, item)).add(
                ctx.ref, customer, item, item_payments, quantity=item.quantity
            )

    logger.debug(f"Aggregated {len(selected)} orders into {len(groups)} {dimension.value} groups")
    return sorted(groups.values(), key=lambda g: natural_key(g.key))


def count_unique_customers(orders: Sequence[Mapping[str, Any]]) -> int:
    """Count distinct customers using the id, name, per-order fallback chain."""
    return len({customer_identity(order, index) for index, order in enumerate(orders)})


@dataclass
class PeriodSummary:
    """Dashboard overview of the revenue orders in a period."""

    totals: AggregateGroup
    days: int
    peak_hour: int
    hourly_order_counts: Dict[int, int]

    @property
    def daily_average_revenue(self) -> float:
        return self.totals.net_revenue / max(self.days, 1)

    @property
    def average_order_value(self) -> float:
        count = self.totals.order_count
        return self.totals.customer_paid / count if count else 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = self.totals.to_dict()
        data.pop("key", None)
        data.pop("label", None)
        data.update(
            {
                "days": self.days,
                "dailyAverageRevenue": self.daily_average_revenue,
                "averageOrderValue": self.average_order_value,
                "peakHour": self.peak_hour,
                "hourlyOrderCounts": dict(sorted(self.hourly_order_counts.items())),
            }
        )
        return data


def summarize_period(
    orders: Sequence[Mapping[str, Any]],
    items: Optional[Iterable[Mapping[str, Any]]] = None,
    filters: Optional[ReportFilters] = None,
    date_range: Optional[DateRange] = None,
    tz: Optional[tzinfo] = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> PeriodSummary:
    """Summarize paid/completed orders of a period into one totals row plus peak hour."""
    filters = filters or ReportFilters()
    items_by_order = index_items_by_order(items) if items is not None else None
    selected = _select_orders(orders, Dimension.DATE, filters, date_range, tz, items_by_order)

    totals = AggregateGroup(key="period", label="Period")
    hours: Counter = Counter()
    days: Set[str] = set()
    for ctx in selected:
        if ctx.status == CANCELLED:
            continue
        payments = decompose_payments(ctx.order, ctx.financials.customer_paid, tolerance)
        totals.add(ctx.ref, customer_identity(ctx.order, ctx.index), ctx.financials, payments)
        hours[ctx.hour] += 1
        days.add(ctx.day)

    if hours:
        # Earliest hour wins ties
        peak_hour = min(hours, key=lambda h: (-hours[h], h))
    else:
        peak_hour = DEFAULT_PEAK_HOUR
    span = date_range.days if date_range is not None else max(len(days), 1)
    return PeriodSummary(totals=totals, days=span, peak_hour=peak_hour, hourly_order_counts=dict(hours))


