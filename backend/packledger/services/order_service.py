# Overview: Supplier order workflow; the replenishment path of the stock ledger.

"""
Order Replenishment

LIFECYCLE:
1. open: created, items editable
2. check_pending: delivery arrived and is being checked (items editable)
3. completed: confirmed; received quantities credited to the ledger

CONFIRMATION (one transaction):
- order must not already be completed (AlreadyCompletedError)
- received_quantity defaults to ordered_quantity when the caller omits it
- every item with received_quantity > 0 is credited to total_stock and
  current_stock; zero-quantity items are skipped
- an item whose product no longer exists is skipped with a warning instead
  of failing the delivery (lenient by choice: one bad reference must not
  block receiving the rest)

Totals (total_kg, total_pieces) come from the unit type snapshotted on each
item when it was added, never from the live product.
"""
from __future__ import annotations

from flask import current_app

from ..errors import AlreadyCompletedError, ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Order, OrderItem, OrderStatus, ORDER_TRANSITIONS
from ..time_utils import utcnow
from ..validation import (
    clean_text,
    coerce_quantity,
    optional_date,
    quantity_map,
    require_date,
    require_id,
    require_items,
)
from .concurrency import lock_for_update, run_in_transaction
from .permission_service import Actor
from .stock_ledger import StockLedger, get_ledger


def _normalize_order_items(items) -> list[dict]:
    items = require_items(items)
    if not items:
        raise ValidationError("An order needs at least one item")

    normalized = []
    seen: set[int] = set()
    for index, raw in enumerate(items):
        product_id = require_id(raw.get("product_id"), f"items[{index}].product_id")
        if product_id in seen:
            raise ValidationError(f"Product {product_id} appears more than once")
        seen.add(product_id)
        normalized.append({
            "product_id": product_id,
            "ordered_quantity": coerce_quantity(raw.get("ordered_quantity"), f"items[{index}].ordered_quantity"),
            "note": clean_text(raw.get("note"), f"items[{index}].note", max_length=500),
        })
    return normalized


def _load_order(order_id: int, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def _guard_editable(order: Order) -> None:
    if order.status.is_terminal:
        raise AlreadyCompletedError(f"Order {order.id} is already completed")


def _build_items(order: Order, lines: list[dict], ledger: StockLedger) -> None:
    """Snapshot product name and unit type onto fresh order items."""
    for position, line in enumerate(lines):
        product = ledger.get_row(line["product_id"])
        order.items.append(OrderItem(
            position=position,
            product_id=product.id,
            product_name=product.name,
            unit_type=product.unit_type,
            unit_label=product.unit_label,
            ordered_quantity=line["ordered_quantity"],
            note=line["note"],
        ))


def get_order(order_id: int) -> Order:
    return _load_order(order_id)


def list_orders(*, status: OrderStatus | str | None = None) -> list[Order]:
    query = db.session.query(Order)
    if status:
        try:
            query = query.filter(Order.status == OrderStatus(status))
        except ValueError:
            raise ValidationError(
                f"status must be one of: {', '.join(s.value for s in OrderStatus)}"
            )
    return query.order_by(Order.expected_arrival_date.asc(), Order.id.asc()).all()


def create_order(
    *,
    items,
    actor: Actor,
    expected_arrival_date,
    order_date=None,
    name: str | None = None,
    note: str | None = None,
    template_id: int | None = None,
    ledger: StockLedger | None = None,
) -> Order:
    """Create an open order; every referenced product must exist at creation."""
    lines = _normalize_order_items(items)
    arrival = require_date(expected_arrival_date, "expected_arrival_date")
    ordered_on = optional_date(order_date, "order_date") or utcnow().date()
    name = clean_text(name, "name", max_length=255) or None
    note = clean_text(note, "note")
    ledger = get_ledger(ledger)

    def _op():
        order = Order(
            name=name,
            status=OrderStatus.OPEN,
            order_date=ordered_on,
            expected_arrival_date=arrival,
            note=note,
            template_id=template_id,
            created_by=actor.id,
        )
        db.session.add(order)
        _build_items(order, lines, ledger)
        order.recompute_totals()
        db.session.flush()
        return order

    order = run_in_transaction(_op)
    current_app.logger.info("Order %s created by %s (%s items)", order.id, actor.id, len(lines))
    return order


def update_order_items(order_id: int, items, *, actor: Actor, ledger: StockLedger | None = None) -> Order:
    """
    Replace the item list of a non-completed order.

    Unit types are snapshotted again from the current products, and totals
    are recomputed.
    """
    lines = _normalize_order_items(items)
    ledger = get_ledger(ledger)

    def _op():
        order = _load_order(order_id, lock=True)
        _guard_editable(order)
        order.items.clear()
        db.session.flush()
        _build_items(order, lines, ledger)
        order.recompute_totals()
        db.session.flush()
        return order

    order = run_in_transaction(_op)
    current_app.logger.info("Order %s items replaced by %s", order.id, actor.id)
    return order


def mark_check_pending(order_id: int, *, actor: Actor) -> Order:
    """open -> check_pending: the delivery is on site and being checked."""

    def _op():
        order = _load_order(order_id, lock=True)
        _guard_editable(order)
        if OrderStatus.CHECK_PENDING not in ORDER_TRANSITIONS[order.status]:
            raise ConflictError(f"Order {order.id} is {order.status.value}, expected open")
        order.status = OrderStatus.CHECK_PENDING
        return order

    order = run_in_transaction(_op)
    current_app.logger.info("Order %s: open -> check_pending (actor=%s)", order.id, actor.id)
    return order


def confirm_order(
    order_id: int,
    received_quantities=None,
    *,
    actor: Actor,
    ledger: StockLedger | None = None,
) -> Order:
    """
    open|check_pending -> completed, crediting received goods to the ledger.

    received_quantities: {product_id: qty} or
    [{"product_id": .., "received_quantity": ..}]; omitted items receive
    their ordered quantity.
    """
    received = quantity_map(received_quantities, "received_quantity")
    ledger = get_ledger(ledger)

    def _op():
        order = _load_order(order_id, lock=True)
        source = order.status
        _guard_editable(order)

        known = {item.product_id for item in order.items}
        unknown = sorted(set(received) - known)
        if unknown:
            raise ValidationError(f"Products not on order {order.id}: {unknown}")

        for item in order.items:
            item.received_quantity = received.get(item.product_id, item.ordered_quantity)

        for item in sorted(order.items, key=lambda i: i.product_id):
            if item.received_quantity <= 0:
                continue
            if ledger.find_row(item.product_id, lock=True) is None:
                current_app.logger.warning(
                    "Order %s: product %s no longer exists, skipping credit of %s",
                    order.id,
                    item.product_id,
                    item.received_quantity,
                )
                continue
            ledger.credit(
                item.product_id,
                item.received_quantity,
                actor_id=actor.id,
                order_id=order.id,
            )

        order.status = OrderStatus.COMPLETED
        order.confirmed_by = actor.id
        order.confirmed_at = utcnow()
        return order, source

    order, source = run_in_transaction(_op)
    current_app.logger.info(
        "Order %s: %s -> completed (actor=%s)", order.id, source.value, actor.id
    )
    return order
