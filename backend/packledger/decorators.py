# Overview: Request and capability decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .permissions import ROLES
from .services import permission_service
from .services.permission_service import Actor, PermissionDeniedError


def _has_actor() -> bool:
    return getattr(g, "actor", None) is not None


def require_actor(f):
    """
    Establish the calling actor from the identity provider's headers.

    Sets g.actor to an Actor(id, role). Authentication itself happens
    upstream; this only trusts and shapes what the gateway forwards.

    Returns 401 if:
    - X-Actor-Id is missing or blank
    - X-Actor-Role is missing or not a known role
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor_id = (request.headers.get("X-Actor-Id") or "").strip()
        role = (request.headers.get("X-Actor-Role") or "").strip().lower()

        if not actor_id:
            return jsonify({"error": "Actor identity required", "code": "unauthenticated"}), 401
        if role not in ROLES:
            return jsonify({"error": f"Unknown role {role!r}", "code": "unauthenticated"}), 401

        g.actor = Actor(id=actor_id, role=role)
        return f(*args, **kwargs)

    return decorated_function


def require_capability(capability: str):
    """Require a capability of g.actor; use below @require_actor."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _has_actor():
                return jsonify({"error": "Actor identity required", "code": "unauthenticated"}), 401

            try:
                permission_service.require_capability(g.actor, capability)
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "code": e.code,
                    "required_capability": capability,
                    "message": str(e),
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
