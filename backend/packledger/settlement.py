# Overview: Pure settlement arithmetic shared by the packlist lifecycle and revenue aggregation.

"""
Single home for the "default when absent" rules of a packlist line:

- start quantity falls back to the planned quantity
- end quantity falls back to zero
- sold quantity is floored at zero (leftovers may exceed what left the
  warehouse after a miscount)
- effective price is the special price when set, else the base price

Sums use math.fsum so totals do not depend on the order lines arrive in.
"""
from __future__ import annotations

import math
from typing import Iterable


def effective_start_quantity(planned_quantity: float, start_quantity: float | None) -> float:
    return planned_quantity if start_quantity is None else start_quantity


def effective_end_quantity(end_quantity: float | None) -> float:
    return 0.0 if end_quantity is None else end_quantity


def sold_quantity(
    planned_quantity: float,
    start_quantity: float | None,
    end_quantity: float | None,
) -> float:
    start = effective_start_quantity(planned_quantity, start_quantity)
    end = effective_end_quantity(end_quantity)
    return max(0.0, start - end)


def effective_price(base_price: float, special_price: float | None) -> float:
    return base_price if special_price is None else special_price


def line_revenue(item) -> float:
    """Revenue of one packlist line (anything exposing the item attributes)."""
    qty = sold_quantity(item.planned_quantity, item.start_quantity, item.end_quantity)
    return qty * effective_price(item.base_price, item.special_price)


def total_revenue(items: Iterable) -> float:
    return math.fsum(line_revenue(item) for item in items)


def expected_cash(change_amount: float, items: Iterable) -> float:
    """Cash that should be in the till: starting float plus every line's revenue."""
    return change_amount + total_revenue(items)


def cash_difference(reported_cash: float, expected: float) -> float:
    """Positive means surplus, negative means the till is short."""
    return reported_cash - expected
