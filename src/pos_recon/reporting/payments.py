"""Payment-method decomposition.

An order's ``paymentMethod`` is either a bare method name or a JSON array of
``{"method": ..., "amount": ...}`` entries when the bill was split. The field
is parsed once into :class:`SingleMethod` or :class:`SplitMethods`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..utils.logging import get_logger
from .financials import derive_financials, to_amount

logger = get_logger(__name__)

DEFAULT_METHOD = "cash"
DEFAULT_TOLERANCE = 1.0


@dataclass(frozen=True)
class SingleMethod:
    name: str


@dataclass(frozen=True)
class PaymentPart:
    method: str
    amount: float


@dataclass(frozen=True)
class SplitMethods:
    parts: Tuple[PaymentPart, ...]


PaymentSpec = Union[SingleMethod, SplitMethods]


def _method_name(value: Any) -> str:
    name = str(value).strip() if value is not None else ""
    return name or DEFAULT_METHOD


def _split_parts(entries: list) -> Tuple[PaymentPart, ...]:
    parts = []
    for entry in entries:
        if not isinstance(entry, Mapping) or "method" not in entry or "amount" not in entry:
            logger.warning(f"Ignoring malformed payment entry {entry!r}")
            continue
        parts.append(PaymentPart(_method_name(entry["method"]), to_amount(entry["amount"])))
    return tuple(parts)


def parse_payment_method(raw: Any) -> PaymentSpec:
    """Parse a stored ``paymentMethod`` field into a tagged variant."""
    if raw is None:
        return SingleMethod(DEFAULT_METHOD)

    if isinstance(raw, (list, tuple)):
        parsed: Any = list(raw)
    else:
        text = str(raw).strip()
        if not text:
            return SingleMethod(DEFAULT_METHOD)
        try:
            parsed = json.loads(text)
        except (ValueError, RecursionError):
            return SingleMethod(text)

    if isinstance(parsed, list) and parsed:
        parts = _split_parts(parsed)
        if parts:
            return SplitMethods(parts)
        logger.warning(f"Payment split {raw!r} has no usable entries, using single-method fallback")

    if isinstance(raw, (list, tuple)):
        return SingleMethod(DEFAULT_METHOD)
    return SingleMethod(_method_name(raw))


def decompose_payments(
    order: Mapping[str, Any],
    customer_paid: Optional[float] = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> Dict[str, float]:
    """Map each payment method of an order to the amount paid with it.

    Split amounts are used as recorded; a single method receives the whole
    customer-paid total.
    """
    if customer_paid is None:
        customer_paid = derive_financials(order).customer_paid

    spec = parse_payment_method(order.get("paymentMethod"))
    if isinstance(spec, SingleMethod):
        return {spec.name: customer_paid}

    totals: Dict[str, float] = {}
    for part in spec.parts:
        totals[part.method] = totals.get(part.method, 0.0) + part.amount

    recorded = sum(totals.values())
    if abs(recorded - customer_paid) > tolerance:
        logger.warning(
            f"Order {order.get('orderNumber', order.get('id'))}: split payments sum to "
            f"{recorded:.2f} but customer paid {customer_paid:.2f}"
        )
    return totals
