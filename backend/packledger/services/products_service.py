# backend/packledger/services/products_service.py
"""
Product catalog and manual stock correction.

Product master data (name, sku, unit, base price, active flag) is edited
here. Stock columns are not: the only writers are the StockLedger methods,
and the only non-lifecycle entry point is set_total_stock().
"""
from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, UnitType
from ..validation import clean_text, coerce_money, coerce_quantity, coerce_stock_level
from .concurrency import run_in_transaction
from .stock_ledger import StockLedger, get_ledger

PRODUCT_MUTABLE_FIELDS = {"sku", "name", "description", "unit_type", "unit_label", "base_price", "is_active"}


def parse_unit_type(value) -> UnitType:
    try:
        return UnitType.parse(value)
    except ValueError:
        allowed = ", ".join(u.value for u in UnitType)
        raise ValidationError(f"unit_type must be one of: {allowed}")


def _ensure_unique_sku(sku: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"SKU {sku!r} already exists")


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def list_products(*, active_only: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def create_product(
    *,
    sku: str,
    name: str,
    unit_type=UnitType.PIECE,
    base_price=0.0,
    unit_label: str | None = None,
    description: str | None = None,
    initial_stock=0.0,
    is_active: bool = True,
    actor_id: str | None = None,
) -> Product:
    """
    Create a product. A new product starts with nothing reserved:
    total_stock == current_stock == initial_stock.
    """
    sku = clean_text(sku, "sku", required=True, max_length=64)
    name = clean_text(name, "name", required=True, max_length=255)
    unit = parse_unit_type(unit_type)
    price = coerce_money(base_price, "base_price")
    stock = coerce_quantity(initial_stock, "initial_stock")
    label = clean_text(unit_label, "unit_label", max_length=32) or unit.default_label

    def _op():
        _ensure_unique_sku(sku)
        product = Product(
            sku=sku,
            name=name,
            description=clean_text(description, "description") or None,
            unit_type=unit,
            unit_label=label,
            base_price=price,
            is_active=bool(is_active),
            total_stock=stock,
            current_stock=stock,
            last_stock_updated_by=actor_id,
        )
        db.session.add(product)
        db.session.flush()
        return product

    product = run_in_transaction(_op)
    current_app.logger.info("Product %s created (sku=%s, stock=%s)", product.id, sku, stock)
    return product


def update_product(product_id: int, patch: dict) -> Product:
    """Patch master data. Stock fields in the patch are rejected, not ignored."""
    stock_fields = {"total_stock", "current_stock"} & set(patch)
    if stock_fields:
        raise ValidationError(
            f"{', '.join(sorted(stock_fields))} cannot be patched; use the stock correction endpoint"
        )

    cleaned: dict = {}
    for key, value in patch.items():
        if key not in PRODUCT_MUTABLE_FIELDS:
            continue
        if key == "sku":
            cleaned[key] = clean_text(value, "sku", required=True, max_length=64)
        elif key == "name":
            cleaned[key] = clean_text(value, "name", required=True, max_length=255)
        elif key == "description":
            cleaned[key] = clean_text(value, "description") or None
        elif key == "unit_type":
            cleaned[key] = parse_unit_type(value)
        elif key == "unit_label":
            cleaned[key] = clean_text(value, "unit_label", required=True, max_length=32)
        elif key == "base_price":
            cleaned[key] = coerce_money(value, "base_price")
        elif key == "is_active":
            cleaned[key] = bool(value)

    def _op():
        product = get_product(product_id)
        if "sku" in cleaned and cleaned["sku"] != product.sku:
            _ensure_unique_sku(cleaned["sku"], exclude_id=product.id)
        for key, value in cleaned.items():
            setattr(product, key, value)
        if "unit_type" in cleaned and "unit_label" not in cleaned:
            product.unit_label = cleaned["unit_type"].default_label
        return product

    return run_in_transaction(_op)


def set_total_stock(
    product_id: int,
    new_total,
    *,
    actor_id: str | None = None,
    note: str | None = None,
    ledger: StockLedger | None = None,
) -> Product:
    """
    Manual stock-count correction (set_total_with_rebalance) as its own
    transaction. current_stock moves by the same delta as total_stock.
    """
    total = coerce_stock_level(new_total, "total_stock")
    note = clean_text(note, "note", max_length=255) or None
    ledger = get_ledger(ledger)

    def _op():
        return ledger.set_total_with_rebalance(product_id, total, actor_id=actor_id, note=note)

    product = run_in_transaction(_op)
    current_app.logger.info(
        "Stock corrected for product %s: total=%s current=%s (actor=%s)",
        product_id,
        product.total_stock,
        product.current_stock,
        actor_id,
    )
    return product


def list_stock_movements(product_id: int, *, limit: int = 200, ledger: StockLedger | None = None):
    return get_ledger(ledger).movements(product_id, limit=max(1, min(limit, 1000)))
