"""Role sets used to gate tools."""

from __future__ import annotations

MANAGER_ROLES: frozenset[str] = frozenset(
    {"team_lead", "category_admin", "site_admin", "client_admin", "super_admin"}
)

ADMIN_ROLES: frozenset[str] = frozenset({"client_admin", "super_admin"})

MODULE_AUTHOR_ROLES: frozenset[str] = frozenset(
    {"category_admin", "site_admin", "client_admin", "super_admin"}
)

# Roles an admin may hand out through add_user; super_admin is never assignable.
ASSIGNABLE_ROLES: tuple[str, ...] = (
    "trainee",
    "team_lead",
    "category_admin",
    "site_admin",
    "client_admin",
)


def is_allowed(role: str | None, required_roles: frozenset[str] | None) -> bool:
    if required_roles is None:
        return True
    return role in required_roles
