"""
Supplier order tests.

Verifies:
- Replenishment conservation (received quantity credited to both counters)
- received_quantity defaults to ordered_quantity; zero is skipped
- Confirmation is terminal (AlreadyCompleted, no second credit)
- A vanished product is skipped with a warning, the rest still credited
- Totals come from the snapshot unit type (grams count toward kg)
"""

import logging
from datetime import date

import pytest

from packledger.errors import AlreadyCompletedError, ConflictError, NotFoundError, ValidationError
from packledger.models import OrderStatus, Product, StockMovement, UnitType
from packledger.services import order_service


ARRIVAL = date(2024, 5, 10)


def _stock(db_session, product_id):
    product = db_session.get(Product, product_id)
    db_session.refresh(product)
    return product.total_stock, product.current_stock


def _order(actor, *lines):
    return order_service.create_order(
        items=[{"product_id": pid, "ordered_quantity": qty} for pid, qty in lines],
        actor=actor,
        expected_arrival_date=ARRIVAL,
    )


def test_confirm_credits_received_quantities(db_session, make_product, admin):
    a = make_product("A", stock=5)
    b = make_product("B", stock=0)
    order = _order(admin, (a.id, 10), (b.id, 4))

    order = order_service.confirm_order(order.id, {a.id: 8}, actor=admin)

    assert order.status is OrderStatus.COMPLETED
    assert order.confirmed_by == admin.id
    assert order.confirmed_at is not None
    received = {item.product_id: item.received_quantity for item in order.items}
    assert received == {a.id: 8, b.id: 4}
    assert _stock(db_session, a.id) == (13, 13)
    assert _stock(db_session, b.id) == (4, 4)


def test_credit_preserves_existing_reservations(db_session, make_product, pos, admin):
    from packledger.services import packlist_service

    product = make_product("A", stock=10)
    packlist_service.create_packlist(
        pos_id=pos.id, date=ARRIVAL, items=[{"product_id": product.id, "planned_quantity": 12}], actor=admin
    )
    assert _stock(db_session, product.id) == (10, -2)

    order = _order(admin, (product.id, 5))
    order_service.confirm_order(order.id, actor=admin)
    assert _stock(db_session, product.id) == (15, 3)


def test_zero_received_is_not_credited(db_session, make_product, admin):
    product = make_product("A", stock=5)
    order = _order(admin, (product.id, 10))

    order = order_service.confirm_order(
        order.id, [{"product_id": product.id, "received_quantity": 0}], actor=admin
    )

    assert order.items[0].received_quantity == 0
    assert _stock(db_session, product.id) == (5, 5)
    assert db_session.query(StockMovement).filter_by(product_id=product.id).count() == 0


def test_second_confirmation_is_rejected(db_session, make_product, admin):
    product = make_product("A", stock=0)
    order = _order(admin, (product.id, 3))
    order_service.confirm_order(order.id, actor=admin)

    with pytest.raises(AlreadyCompletedError):
        order_service.confirm_order(order.id, actor=admin)
    assert _stock(db_session, product.id) == (3, 3)


def test_vanished_product_is_skipped(db_session, make_product, admin, caplog):
    keep = make_product("KEEP", stock=1)
    gone = make_product("GONE", stock=1)
    order = _order(admin, (keep.id, 2), (gone.id, 2))
    gone_id = gone.id

    db_session.delete(gone)
    db_session.commit()

    with caplog.at_level(logging.WARNING):
        order = order_service.confirm_order(order.id, actor=admin)

    assert order.status is OrderStatus.COMPLETED
    assert _stock(db_session, keep.id) == (3, 3)
    assert any(str(gone_id) in r.getMessage() and "skipping" in r.getMessage() for r in caplog.records)


def test_unknown_product_in_received_quantities(db_session, make_product, admin):
    product = make_product("A")
    order = _order(admin, (product.id, 1))
    with pytest.raises(ValidationError):
        order_service.confirm_order(order.id, {product.id + 1: 1}, actor=admin)
    assert order_service.get_order(order.id).status is OrderStatus.OPEN


def test_create_requires_existing_products(db_session, admin):
    with pytest.raises(NotFoundError):
        _order(admin, (999, 1))


def test_create_requires_arrival_date(db_session, make_product, admin):
    product = make_product("A")
    with pytest.raises(ValidationError):
        order_service.create_order(
            items=[{"product_id": product.id, "ordered_quantity": 1}],
            actor=admin,
            expected_arrival_date=None,
        )


def test_totals_use_snapshot_units(db_session, make_product, admin):
    kg = make_product("KG", unit_type="weight-kg")
    grams = make_product("G", unit_type="weight-g")
    legacy = make_product("W", unit_type="weight")
    pieces = make_product("PC", unit_type="piece")

    order = _order(admin, (kg.id, 2.5), (grams.id, 500), (legacy.id, 1), (pieces.id, 12))
    assert order.total_kg == 4.0
    assert order.total_pieces == 12

    # Changing the live product does not touch the order
    kg.unit_type = UnitType.PIECE
    db_session.commit()
    assert order_service.get_order(order.id).total_kg == 4.0


def test_replace_items_recomputes_totals(db_session, make_product, admin):
    kg = make_product("KG", unit_type="weight-kg")
    pieces = make_product("PC")
    order = _order(admin, (kg.id, 2))

    order = order_service.update_order_items(
        order.id, [{"product_id": pieces.id, "ordered_quantity": 6}], actor=admin
    )
    assert [item.product_id for item in order.items] == [pieces.id]
    assert order.total_kg == 0
    assert order.total_pieces == 6


def test_check_pending_then_confirm(db_session, make_product, admin):
    product = make_product("A", stock=0)
    order = _order(admin, (product.id, 2))

    order = order_service.mark_check_pending(order.id, actor=admin)
    assert order.status is OrderStatus.CHECK_PENDING
    with pytest.raises(ConflictError):
        order_service.mark_check_pending(order.id, actor=admin)

    order_service.update_order_items(order.id, [{"product_id": product.id, "ordered_quantity": 3}], actor=admin)
    order = order_service.confirm_order(order.id, actor=admin)
    assert order.status is OrderStatus.COMPLETED
    assert _stock(db_session, product.id) == (3, 3)

    with pytest.raises(AlreadyCompletedError):
        order_service.update_order_items(order.id, [{"product_id": product.id, "ordered_quantity": 1}], actor=admin)


def test_list_orders_by_status(db_session, make_product, admin):
    product = make_product("A")
    first = _order(admin, (product.id, 1))
    second = _order(admin, (product.id, 1))
    order_service.confirm_order(second.id, actor=admin)

    assert [o.id for o in order_service.list_orders(status="open")] == [first.id]
    assert [o.id for o in order_service.list_orders(status="completed")] == [second.id]
    with pytest.raises(ValidationError):
        order_service.list_orders(status="shipped")
