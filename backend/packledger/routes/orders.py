# Overview: Flask API routes for supplier orders and order templates; parses input and returns JSON responses.

"""
Order Routes

SECURITY: All routes require an actor.
- View and edit operations require orders.manage
- Confirmation (credits stock) requires orders.confirm
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor, require_capability
from ..errors import DomainError
from ..services import order_service, template_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")
order_templates_bp = Blueprint("order_templates", __name__, url_prefix="/api/order-templates")


@orders_bp.get("")
@require_actor
@require_capability("orders.manage")
def list_orders_route():
    """
    Query parameters:
    - status: open | check_pending | completed
    """
    try:
        orders = order_service.list_orders(status=request.args.get("status"))
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify({"items": [o.to_dict(include_items=False) for o in orders], "count": len(orders)})


@orders_bp.post("")
@require_actor
@require_capability("orders.manage")
def create_order_route():
    """
    Request body:
    {
        "expected_arrival_date": "2024-05-03",   // required
        "order_date": "2024-05-01",              // optional, defaults to today
        "items": [{"product_id": 1, "ordered_quantity": 20, "note": ""}],
        "name": "...",
        "note": "..."
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        order = order_service.create_order(
            items=payload.get("items"),
            actor=g.actor,
            expected_arrival_date=payload.get("expected_arrival_date"),
            order_date=payload.get("order_date"),
            name=payload.get("name"),
            note=payload.get("note"),
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(order.to_dict()), 201


@orders_bp.post("/from-template/<int:template_id>")
@require_actor
@require_capability("orders.manage")
def create_order_from_template_route(template_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        order = template_service.create_order_from_template(
            template_id,
            expected_arrival_date=payload.get("expected_arrival_date"),
            actor=g.actor,
            quantities=payload.get("quantities"),
            order_date=payload.get("order_date"),
            name=payload.get("name"),
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(order.to_dict()), 201


@orders_bp.get("/<int:order_id>")
@require_actor
@require_capability("orders.manage")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(order.to_dict())


@orders_bp.put("/<int:order_id>/items")
@require_actor
@require_capability("orders.manage")
def replace_order_items_route(order_id: int):
    """Replace the whole item list; rejected once the order is completed."""
    payload = request.get_json(silent=True) or {}
    try:
        order = order_service.update_order_items(order_id, payload.get("items"), actor=g.actor)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(order.to_dict())


@orders_bp.post("/<int:order_id>/check-pending")
@require_actor
@require_capability("orders.manage")
def mark_check_pending_route(order_id: int):
    try:
        order = order_service.mark_check_pending(order_id, actor=g.actor)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(order.to_dict())


@orders_bp.post("/<int:order_id>/confirm")
@require_actor
@require_capability("orders.confirm")
def confirm_order_route(order_id: int):
    """
    Confirm delivery and credit received goods.

    Request body (optional):
    {
        "received_quantities": {"1": 18}   // missing items receive their ordered quantity
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        order = order_service.confirm_order(
            order_id,
            payload.get("received_quantities"),
            actor=g.actor,
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to confirm order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(order.to_dict())


@order_templates_bp.get("")
@require_actor
@require_capability("orders.manage")
def list_order_templates_route():
    templates = template_service.list_order_templates()
    return jsonify({"items": [t.to_dict() for t in templates], "count": len(templates)})


@order_templates_bp.post("")
@require_actor
@require_capability("orders.manage")
def create_order_template_route():
    payload = request.get_json(silent=True) or {}
    try:
        template = template_service.create_order_template(
            name=payload.get("name"),
            items=payload.get("items"),
            actor=g.actor,
            description=payload.get("description"),
            note=payload.get("note"),
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(template.to_dict()), 201


@order_templates_bp.get("/<int:template_id>")
@require_actor
@require_capability("orders.manage")
def get_order_template_route(template_id: int):
    try:
        template = template_service.get_order_template(template_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(template.to_dict())
