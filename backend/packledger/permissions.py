# Overview: Capability definitions and the default role-to-capability mapping.

"""
Capability codes checked by routes and by the completion transition.

Identity and role assignment belong to the external identity provider;
this module only answers "may this role do X".
"""

ROLE_SUPERADMIN = "superadmin"
ROLE_ADMIN = "admin"
ROLE_WORKER = "worker"

ROLES = (ROLE_SUPERADMIN, ROLE_ADMIN, ROLE_WORKER)

CAPABILITY_DEFINITIONS = {
    "products.manage": "Create and edit products and points of sale",
    "stock.adjust": "Correct total stock after a physical count",
    "packlists.view": "View packlists",
    "packlists.create": "Create packlists and packlist templates (reserves stock)",
    "packlists.sell": "Confirm load-out and leftovers of an assigned packlist",
    "packlists.complete": "Review and close a sold packlist",
    "orders.manage": "Create and edit supplier orders and order templates",
    "orders.confirm": "Confirm a delivered supplier order (credits stock)",
    "statistics.view": "View revenue statistics",
}

_ADMIN_CAPABILITIES = frozenset(CAPABILITY_DEFINITIONS)

DEFAULT_ROLE_CAPABILITIES = {
    ROLE_SUPERADMIN: _ADMIN_CAPABILITIES,
    ROLE_ADMIN: _ADMIN_CAPABILITIES,
    ROLE_WORKER: frozenset({"packlists.view", "packlists.sell"}),
}
