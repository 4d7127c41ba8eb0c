# Overview: Flask API routes for products, points of sale and stock corrections.

"""
Product, point-of-sale and stock routes.

SECURITY: All routes require an actor (X-Actor-Id / X-Actor-Role).
- Read operations require packlists.view
- Write operations require products.manage
- Stock corrections require stock.adjust

Stock levels are never patched directly; total_stock changes go through
POST /api/products/<id>/stock, which rebalances current_stock by the same
delta and journals the movement.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor, require_capability
from ..errors import DomainError
from ..services import pos_service, products_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")
pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _active_only() -> bool:
    return request.args.get("active_only", "").lower() in ("1", "true", "yes")


@products_bp.get("")
@require_actor
@require_capability("packlists.view")
def list_products_route():
    """
    Query params:
    - active_only: bool (optional)
    """
    products = products_service.list_products(active_only=_active_only())
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.post("")
@require_actor
@require_capability("products.manage")
def create_product_route():
    """
    Request body:
    {
        "sku": "APL-1",            // required, unique
        "name": "Apples",          // required
        "unit_type": "weight-kg",  // piece | weight-kg | weight-g ("weight" = kg)
        "unit_label": "kg",        // optional, defaults per unit type
        "base_price": 3.5,
        "initial_stock": 100,
        "description": "...",
        "is_active": true
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(
            sku=payload.get("sku"),
            name=payload.get("name"),
            unit_type=payload.get("unit_type", "piece"),
            base_price=payload.get("base_price", 0.0),
            unit_label=payload.get("unit_label"),
            description=payload.get("description"),
            initial_stock=payload.get("initial_stock", 0.0),
            is_active=payload.get("is_active", True),
            actor_id=g.actor.id,
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(product.to_dict()), 201


@products_bp.get("/<int:product_id>")
@require_actor
@require_capability("packlists.view")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(product.to_dict())


@products_bp.patch("/<int:product_id>")
@require_actor
@require_capability("products.manage")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(product_id, payload)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(product.to_dict())


@products_bp.post("/<int:product_id>/stock")
@require_actor
@require_capability("stock.adjust")
def set_total_stock_route(product_id: int):
    """
    Manual stock-count correction.

    Request body:
    {
        "total_stock": 42,   // required; the counted total
        "note": "..."        // optional
    }
    """
    payload = request.get_json(silent=True) or {}
    if "total_stock" not in payload:
        return jsonify({"error": "total_stock is required", "code": "validation_error"}), 400
    try:
        product = products_service.set_total_stock(
            product_id,
            payload.get("total_stock"),
            actor_id=g.actor.id,
            note=payload.get("note"),
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to correct stock for product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(product.to_dict())


@products_bp.get("/<int:product_id>/movements")
@require_actor
@require_capability("stock.adjust")
def list_movements_route(product_id: int):
    limit = request.args.get("limit", 200, type=int)
    try:
        movements = products_service.list_stock_movements(product_id, limit=limit)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)})


@pos_bp.get("")
@require_actor
@require_capability("packlists.view")
def list_pos_route():
    points = pos_service.list_pos(active_only=_active_only())
    return jsonify({"items": [p.to_dict() for p in points], "count": len(points)})


@pos_bp.post("")
@require_actor
@require_capability("products.manage")
def create_pos_route():
    payload = request.get_json(silent=True) or {}
    try:
        pos = pos_service.create_pos(
            name=payload.get("name"),
            location=payload.get("location"),
            notes=payload.get("notes"),
            active=payload.get("active", True),
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(pos.to_dict()), 201
