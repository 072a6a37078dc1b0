"""
Capacity -- remaining open quantity of a production order.

Pure functions, no I/O.  Accepts anything exposing the five quantity
attributes (OrderSnapshot, ProductionOrder).

Quantities are Decimal with at most QUANTITY_SCALE fractional digits,
matching the Numeric columns they are stored in.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

QUANTITY_SCALE = 3
ZERO = Decimal("0")

_CAPACITY_TERMS = ("good_qty", "defect_qty", "return_qty", "labtest_qty")


def as_quantity(value: Any) -> Decimal:
    """Coerce a stored quantity to Decimal; missing values count as 0."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # via str() so 2.5 stays 2.5 rather than its binary expansion
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Not a quantity: {value!r}") from None


def decimal_places(quantity: Decimal) -> int:
    """Number of significant fractional digits (2.500 -> 1, 12 -> 0)."""
    exponent = quantity.normalize().as_tuple().exponent
    return max(0, -exponent)


def quantity_to_json(quantity: Any) -> int | float:
    """JSON number for a quantity: whole values as int, others as float."""
    quantity = as_quantity(quantity)
    if quantity == quantity.to_integral_value():
        return int(quantity)
    return float(quantity)


def remaining_capacity(order: Any) -> Decimal:
    """
    order_qty - good_qty - defect_qty - return_qty - labtest_qty.

    Over-reported orders (consumed > ordered) report 0, never a negative
    capacity.
    """
    remaining = as_quantity(getattr(order, "order_qty", None))
    for name in _CAPACITY_TERMS:
        remaining -= as_quantity(getattr(order, name, None))
    return max(remaining, ZERO)
