"""Role-based permissions: a static table of role -> allowed actions."""

from typing import Literal

Role = Literal["admin", "user", "viewer"]

ROLES: tuple[str, ...] = ("admin", "user", "viewer")

PERMISSIONS: dict[str, frozenset[str]] = {
    # Databases
    "database:create": frozenset({"admin", "user"}),
    "database:delete": frozenset({"admin"}),
    "database:start": frozenset({"admin", "user"}),
    "database:stop": frozenset({"admin", "user"}),
    "database:restart": frozenset({"admin", "user"}),
    "database:backup": frozenset({"admin", "user"}),
    "database:view": frozenset({"admin", "user", "viewer"}),
    "database:logs": frozenset({"admin", "user"}),
    # Services
    "service:create": frozenset({"admin", "user"}),
    "service:delete": frozenset({"admin"}),
    "service:view": frozenset({"admin", "user", "viewer"}),
    # Users
    "user:manage": frozenset({"admin"}),
    "user:view": frozenset({"admin"}),
}

ROLE_LABELS: dict[str, str] = {
    "admin": "Administrator",
    "user": "User",
    "viewer": "Viewer",
}

ROLE_DESCRIPTIONS: dict[str, str] = {
    "admin": "Full access: can create, modify and delete every resource",
    "user": "Can create and operate databases and services, but cannot delete them",
    "viewer": "Read only: can see resources but not change them",
}


def has_permission(role: str, permission: str) -> bool:
    """True if role is listed for permission. Unknown permissions allow nobody."""
    return role in PERMISSIONS.get(permission, frozenset())


def can_perform(user_role: str | None, permission: str) -> bool:
    """Like has_permission, but a missing role can never perform anything."""
    if not user_role:
        return False
    return has_permission(user_role, permission)


def permissions_for(role: str | None) -> list[str]:
    """Sorted list of actions the role may perform."""
    return sorted(p for p in PERMISSIONS if can_perform(role, p))
