# Overview: Flask API routes for packlists and packlist templates; parses input and returns JSON responses.

"""
Packlist Routes

SECURITY: All routes require an actor.
- View operations require packlists.view
- Creation (including from a template) requires packlists.create
- start-selling / finish-selling require packlists.sell; workers must
  also be assigned to the packlist (checked in the service)
- complete requires packlists.complete

State errors surface as 409 (conflict / already_completed). The client
is expected to reload the packlist and decide.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_actor, require_capability
from ..errors import DomainError
from ..services import packlist_service, template_service


packlists_bp = Blueprint("packlists", __name__, url_prefix="/api/packlists")
packlist_templates_bp = Blueprint("packlist_templates", __name__, url_prefix="/api/packlist-templates")


@packlists_bp.get("")
@require_actor
@require_capability("packlists.view")
def list_packlists_route():
    """
    Query parameters:
    - status: repeatable (open, currently_selling, sold, completed)
    - assigned_user_id: only packlists assigned to this user

    Workers only ever see their own packlists.
    """
    statuses = request.args.getlist("status")
    assigned_user_id = request.args.get("assigned_user_id")
    if not g.actor.is_admin:
        assigned_user_id = g.actor.id

    try:
        packlists = packlist_service.list_packlists(statuses=statuses, assigned_user_id=assigned_user_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status

    return jsonify({
        "items": [p.to_dict(include_items=False) for p in packlists],
        "count": len(packlists),
    })


@packlists_bp.post("")
@require_actor
@require_capability("packlists.create")
def create_packlist_route():
    """
    Create a packlist and reserve its planned quantities.

    Request body:
    {
        "pos_id": 1,                        // required
        "date": "2024-05-01",               // required
        "items": [                          // required, non-empty
            {"product_id": 1, "planned_quantity": 10, "special_price": null, "note": ""}
        ],
        "assigned_user_ids": ["w-1"],
        "change_amount": 50,
        "note": "..."
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        packlist = packlist_service.create_packlist(
            pos_id=payload.get("pos_id"),
            date=payload.get("date"),
            items=payload.get("items"),
            actor=g.actor,
            assigned_user_ids=payload.get("assigned_user_ids"),
            change_amount=payload.get("change_amount", 0.0),
            note=payload.get("note"),
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create packlist")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(packlist.to_dict()), 201


@packlists_bp.post("/from-template/<int:template_id>")
@require_actor
@require_capability("packlists.create")
def create_packlist_from_template_route(template_id: int):
    """
    Request body:
    {
        "date": "2024-05-01",        // required
        "pos_id": 1,                 // optional, defaults to the template's
        "quantities": {"1": 12},     // optional per-product overrides
        "assigned_user_ids": [],
        "change_amount": 50,
        "note": "..."
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        packlist = template_service.create_packlist_from_template(
            template_id,
            date=payload.get("date"),
            actor=g.actor,
            pos_id=payload.get("pos_id"),
            quantities=payload.get("quantities"),
            assigned_user_ids=payload.get("assigned_user_ids"),
            change_amount=payload.get("change_amount"),
            note=payload.get("note"),
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create packlist from template %s", template_id)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(packlist.to_dict()), 201


@packlists_bp.get("/<int:packlist_id>")
@require_actor
@require_capability("packlists.view")
def get_packlist_route(packlist_id: int):
    try:
        packlist = packlist_service.get_packlist(packlist_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    if not g.actor.is_admin and g.actor.id not in (packlist.assigned_user_ids or []):
        return jsonify({"error": f"Packlist {packlist_id} not found", "code": "not_found"}), 404
    return jsonify(packlist.to_dict())


@packlists_bp.patch("/<int:packlist_id>")
@require_actor
@require_capability("packlists.create")
def update_packlist_route(packlist_id: int):
    """Header edits (date, assigned_user_ids, note, change_amount) while open."""
    payload = request.get_json(silent=True) or {}
    try:
        packlist = packlist_service.update_packlist_details(packlist_id, payload, actor=g.actor)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(packlist.to_dict())


@packlists_bp.post("/<int:packlist_id>/start-selling")
@require_actor
@require_capability("packlists.sell")
def start_selling_route(packlist_id: int):
    """
    Request body (optional):
    {
        "start_quantities": {"1": 9}    // or [{"product_id": 1, "start_quantity": 9}]
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        packlist = packlist_service.start_selling(
            packlist_id,
            actor=g.actor,
            start_quantities=payload.get("start_quantities"),
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(packlist.to_dict())


@packlists_bp.post("/<int:packlist_id>/finish-selling")
@require_actor
@require_capability("packlists.sell")
def finish_selling_route(packlist_id: int):
    """
    Request body:
    {
        "reported_cash": 75.0,          // required
        "end_quantities": {"1": 2},     // optional, missing items end at 0
        "worker_note": "..."
    }
    """
    payload = request.get_json(silent=True) or {}
    if "reported_cash" not in payload:
        return jsonify({"error": "reported_cash is required", "code": "validation_error"}), 400
    try:
        packlist = packlist_service.finish_selling(
            packlist_id,
            actor=g.actor,
            reported_cash=payload.get("reported_cash"),
            end_quantities=payload.get("end_quantities"),
            worker_note=payload.get("worker_note"),
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(packlist.to_dict())


@packlists_bp.post("/<int:packlist_id>/complete")
@require_actor
@require_capability("packlists.complete")
def complete_packlist_route(packlist_id: int):
    try:
        packlist = packlist_service.complete_packlist(packlist_id, actor=g.actor)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(packlist.to_dict())


@packlist_templates_bp.get("")
@require_actor
@require_capability("packlists.view")
def list_packlist_templates_route():
    templates = template_service.list_packlist_templates()
    return jsonify({"items": [t.to_dict() for t in templates], "count": len(templates)})


@packlist_templates_bp.post("")
@require_actor
@require_capability("packlists.create")
def create_packlist_template_route():
    """
    Request body:
    {
        "name": "Saturday market",     // required
        "items": [{"product_id": 1, "default_quantity": 10, "special_price": null}],
        "default_pos_id": 1,
        "change_amount": 50,
        "description": "...",
        "note": "..."
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        template = template_service.create_packlist_template(
            name=payload.get("name"),
            items=payload.get("items"),
            actor=g.actor,
            description=payload.get("description"),
            default_pos_id=payload.get("default_pos_id"),
            change_amount=payload.get("change_amount"),
            note=payload.get("note"),
        )
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(template.to_dict()), 201


@packlist_templates_bp.get("/<int:template_id>")
@require_actor
@require_capability("packlists.view")
def get_packlist_template_route(template_id: int):
    try:
        template = template_service.get_packlist_template(template_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify(template.to_dict())
