"""Line-item allocation of order-level discount and tax."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..utils.logging import get_logger
from .financials import DerivedOrderFinancials, derive_financials, to_amount

logger = get_logger(__name__)


@dataclass(frozen=True)
class ItemFilter:
    """Category and product-search criteria applied to line items."""

    category: Optional[str] = None
    product_search: Optional[str] = None

    @property
    def active(self) -> bool:
        return bool(self.category) or bool(self.product_search)

    def matches(self, item: Mapping[str, Any]) -> bool:
        if self.category:
            wanted = str(self.category).strip().lower()
            candidates = (item.get("categoryName"), item.get("categoryId"))
            if not any(c is not None and str(c).strip().lower() == wanted for c in candidates):
                return False
        if self.product_search:
            needle = self.product_search.strip().lower()
            haystack = (item.get("productName") or "", item.get("productSku") or "")
            if not any(needle in str(h).lower() for h in haystack):
                return False
        return True


@dataclass(frozen=True)
class ItemFinancials:
    order_id: Any
    product_id: Any
    product_name: str
    product_sku: str
    category_name: Optional[str]
    quantity: int
    unit_price: float
    gross_amount: float
    discount: float
    tax: float
    net_revenue: float
    customer_paid: float

    @property
    def key(self) -> Any:
        return self.product_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _quantity(value: Any) -> int:
    try:
        qty = int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Invalid item quantity {value!r} treated as 1")
        return 1
    return max(qty, 1)


def order_id_of(order: Mapping[str, Any]) -> Any:
    """Return the identifier items use to reference an order."""
    if order.get("id") is not None:
        return order["id"]
    return order.get("_id")


def index_items_by_order(items: Iterable[Mapping[str, Any]]) -> Dict[Any, List[Mapping[str, Any]]]:
    """Group a flat item list by ``orderId``."""
    index: Dict[Any, List[Mapping[str, Any]]] = defaultdict(list)
    for item in items:
        index[item.get("orderId")].append(item)
    return dict(index)


def items_for_order(
    order: Mapping[str, Any],
    items_by_order: Optional[Mapping[Any, Sequence[Mapping[str, Any]]]] = None,
) -> Sequence[Mapping[str, Any]]:
    """Return an order's items, from the index or nested under ``items``."""
    if items_by_order is not None:
        return items_by_order.get(order_id_of(order), [])
    return order.get("items") or []


def allocate_items(
    order: Mapping[str, Any],
    items: Sequence[Mapping[str, Any]],
    item_filter: Optional[ItemFilter] = None,
    financials: Optional[DerivedOrderFinancials] = None,
) -> List[ItemFinancials]:
    """Spread an order's discount and tax over its items by share of gross amount.

    Items are filtered first; an order with no matching item yields an
    empty list. When the order's gross amount is zero every ratio is zero.
    """
    if item_filter is not None and item_filter.active:
        items = [item for item in items if item_filter.matches(item)]
    if not items:
        return []

    derived = financials or derive_financials(order)
    gross = derived.gross_amount
    order_id = order_id_of(order)

    allocated: List[ItemFinancials] = []
    for item in items:
        quantity = _quantity(item.get("quantity", 1))
        unit_price = to_amount(item.get("unitPrice"))
        raw_amount = unit_price * quantity
        ratio = raw_amount / gross if gross > 0 else 0.0

        item_discount = derived.discount * ratio
        item_tax = derived.tax * ratio
        if derived.price_includes_tax:
            net_revenue = raw_amount - item_discount - item_tax
        else:
            net_revenue = raw_amount - item_discount
        net_revenue = max(0.0, net_revenue)

        allocated.append(
            ItemFinancials(
                order_id=item.get("orderId", order_id),
                product_id=item.get("productId"),
                product_name=item.get("productName") or "",
                product_sku=item.get("productSku") or "",
                category_name=item.get("categoryName"),
                quantity=quantity,
                unit_price=unit_price,
                gross_amount=raw_amount,
                discount=item_discount,
                tax=item_tax,
                net_revenue=net_revenue,
                customer_paid=net_revenue + item_tax,
            )
        )
    return allocated
