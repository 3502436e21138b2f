"""Per-order financial derivation.

One canonical rule reconciles the two tax-accounting modes:

- tax-exclusive: ``gross = subtotal``, ``net = max(0, subtotal - discount)``,
  ``paid = net + tax``
- tax-inclusive: ``subtotal`` is already net of discount and includes tax, so
  ``gross = subtotal + discount + tax``, ``net = subtotal``, ``paid = total``

In both modes ``gross = net + discount (+ tax when inclusive)`` holds.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping

from bson.decimal128 import Decimal128

from ..utils.logging import get_logger

logger = get_logger(__name__)

TRUE_STRINGS = ("true", "1", "yes", "on")


def to_amount(value: Any) -> float:
    """Coerce a stored money value to a non-negative float.

    Missing, malformed, negative and non-finite values become ``0.0``.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, Decimal128):
        value = value.to_decimal()
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        amount = float(Decimal(value)) if isinstance(value, str) else float(value)
    except (TypeError, ValueError, InvalidOperation):
        logger.warning(f"Non-numeric amount {value!r} treated as 0")
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        logger.warning(f"Non-finite amount {value!r} treated as 0")
        return 0.0
    if amount < 0:
        logger.warning(f"Negative amount {value!r} treated as 0")
        return 0.0
    return amount


def to_flag(value: Any) -> bool:
    """Coerce a stored boolean flag (bool, number or string)."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in TRUE_STRINGS


def price_includes_tax(order: Mapping[str, Any]) -> bool:
    """Read the order's tax mode, accepting the legacy ``priceIncludeTax`` key."""
    if "priceIncludesTax" in order:
        return to_flag(order.get("priceIncludesTax"))
    return to_flag(order.get("priceIncludeTax"))


@dataclass(frozen=True)
class DerivedOrderFinancials:
    gross_amount: float
    discount: float
    tax: float
    net_revenue: float
    customer_paid: float
    price_includes_tax: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def derive_financials(order: Mapping[str, Any]) -> DerivedOrderFinancials:
    """Derive gross amount, net revenue and customer-paid total for one order."""
    subtotal = to_amount(order.get("subtotal"))
    discount = to_amount(order.get("discount"))
    tax = to_amount(order.get("tax"))
    inclusive = price_includes_tax(order)

    if inclusive:
        gross_amount = subtotal + discount + tax
        net_revenue = subtotal
        customer_paid = to_amount(order.get("total"))
    else:
        gross_amount = subtotal
        net_revenue = max(0.0, subtotal - discount)
        customer_paid = net_revenue + tax

    return DerivedOrderFinancials(
        gross_amount=gross_amount,
        discount=discount,
        tax=tax,
        net_revenue=net_revenue,
        customer_paid=customer_paid,
        price_includes_tax=inclusive,
    )
