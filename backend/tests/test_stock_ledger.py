"""
Stock ledger tests.

Verifies:
- Reservations move current_stock only
- Corrections move both counters by the same delta (reserved gap intact)
- Credits grow both counters
- Overbooking goes negative with a warning, never an error
- Every mutation is journalled; rollback discards mutation and journal alike
"""

import logging

import pytest

from packledger.errors import NotFoundError
from packledger.models import Product, StockMovement
from packledger.models.stock import (
    MOVEMENT_MANUAL_CORRECTION,
    MOVEMENT_REPLENISHMENT,
    MOVEMENT_RESERVATION,
)
from packledger.services.stock_ledger import StockLedger, get_ledger


def test_app_ledger_is_registered(app):
    assert isinstance(app.extensions[StockLedger.extension_name], StockLedger)
    assert get_ledger() is app.extensions[StockLedger.extension_name]


def test_explicit_ledger_wins(app):
    ledger = StockLedger()
    assert get_ledger(ledger) is ledger


def test_adjust_available_reserves_without_touching_total(db_session, make_product):
    product = make_product("A", stock=10)
    ledger = get_ledger()

    ledger.adjust_available(product.id, -4, actor_id="admin-1", packlist_id=None)
    db_session.commit()

    product = db_session.get(Product, product.id)
    assert product.total_stock == 10
    assert product.current_stock == 6
    assert product.reserved_stock == 4
    assert product.last_stock_updated_by == "admin-1"


def test_overbooking_goes_negative_and_logs(db_session, make_product, caplog):
    product = make_product("A", stock=3)
    with caplog.at_level(logging.WARNING):
        get_ledger().adjust_available(product.id, -5, actor_id="admin-1")
    db_session.commit()

    assert db_session.get(Product, product.id).current_stock == -2
    assert any("overbooks" in record.getMessage() for record in caplog.records)


def test_set_total_with_rebalance_keeps_reserved_gap(db_session, make_product):
    product = make_product("A", stock=10)
    ledger = get_ledger()
    ledger.adjust_available(product.id, -4)
    ledger.set_total_with_rebalance(product.id, 7, actor_id="admin-1", note="count")
    db_session.commit()

    product = db_session.get(Product, product.id)
    assert product.total_stock == 7
    assert product.current_stock == 3
    assert product.reserved_stock == 4


@pytest.mark.parametrize("new_total", [25, 7, 4])
def test_rebalance_moves_current_by_total_delta(db_session, make_product, new_total):
    product = make_product("A", stock=10)
    ledger = get_ledger()
    ledger.adjust_available(product.id, -4)
    db_session.commit()
    before = db_session.get(Product, product.id)
    total_before, current_before = before.total_stock, before.current_stock

    ledger.set_total_with_rebalance(product.id, new_total, actor_id="admin-1")
    db_session.commit()

    after = db_session.get(Product, product.id)
    assert after.total_stock == new_total
    assert after.current_stock - current_before == new_total - total_before
    assert after.reserved_stock == 4


def test_credit_grows_both_counters(db_session, make_product):
    product = make_product("A", stock=5)
    get_ledger().credit(product.id, 2.5, actor_id="admin-1")
    db_session.commit()

    product = db_session.get(Product, product.id)
    assert product.total_stock == 7.5
    assert product.current_stock == 7.5


def test_missing_product_raises_not_found(db_session):
    ledger = get_ledger()
    with pytest.raises(NotFoundError):
        ledger.adjust_available(999, -1)
    with pytest.raises(NotFoundError):
        ledger.credit(999, 1)
    with pytest.raises(NotFoundError):
        ledger.set_total_with_rebalance(999, 1)
    assert ledger.find_row(999) is None


def test_every_mutation_is_journalled(db_session, make_product):
    product = make_product("A", stock=10)
    ledger = get_ledger()
    ledger.adjust_available(product.id, -2, actor_id="a")
    ledger.credit(product.id, 5, actor_id="b")
    ledger.set_total_with_rebalance(product.id, 12, actor_id="c")
    db_session.commit()

    movements = ledger.movements(product.id)
    assert [m.reason for m in movements] == [
        MOVEMENT_MANUAL_CORRECTION,
        MOVEMENT_REPLENISHMENT,
        MOVEMENT_RESERVATION,
    ]
    correction = movements[0]
    assert correction.total_delta == -3
    assert correction.available_delta == -3
    assert correction.total_after == 12
    assert correction.available_after == 10


def test_rollback_discards_mutation_and_journal(db_session, make_product):
    product = make_product("A", stock=10)
    product_id = product.id

    get_ledger().adjust_available(product_id, -4)
    db_session.rollback()

    assert db_session.get(Product, product_id).current_stock == 10
    assert db_session.query(StockMovement).filter_by(product_id=product_id).count() == 0
