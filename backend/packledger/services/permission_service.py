# Overview: Capability checks for actors supplied by the external identity provider.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..errors import PermissionDeniedError
from ..permissions import CAPABILITY_DEFINITIONS, DEFAULT_ROLE_CAPABILITIES


@dataclass(frozen=True)
class Actor:
    """Opaque identity plus role, as handed over by the identity provider."""
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return has_capability(self, "packlists.complete")


def has_capability(actor: Actor | None, capability: str) -> bool:
    if capability not in CAPABILITY_DEFINITIONS:
        raise ValueError(f"Unknown capability {capability!r}")
    if actor is None:
        return False
    return capability in DEFAULT_ROLE_CAPABILITIES.get(actor.role, frozenset())


def require_capability(actor: Actor | None, capability: str) -> None:
    """Fail closed: unknown roles and missing actors are denied."""
    if has_capability(actor, capability):
        return
    current_app.logger.warning(
        "Capability denied: actor=%s role=%s capability=%s",
        actor.id if actor else None,
        actor.role if actor else None,
        capability,
    )
    raise PermissionDeniedError(f"Actor lacks capability {capability}")
