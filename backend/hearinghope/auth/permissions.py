"""Permission catalog for the Hearing Hope RBAC layer.

Design:
  - Resources and actions are closed enums. A permission string is
    `<resource>:<action>` and is valid iff both halves belong to their enum.
    Any combination is syntactically legal (`calendar:delete` is valid even
    though no route checks it).
  - Each role has a hand-authored DEFAULT permission set (defined here, not
    in the DB). `role_defaults()` is an exhaustive match over `UserRole`, so
    adding a role without a default set fails type checking instead of
    silently granting nothing.
  - Users accumulate explicit grants in `User.custom_permissions`; the
    bootstrap reconciler copies role defaults into that list.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import assert_never


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class Resource(str, enum.Enum):
    TASKS = "tasks"
    USERS = "users"
    REPORTS = "reports"
    NOTICES = "notices"
    MESSAGES = "messages"
    COMPANY = "company"
    CALENDAR = "calendar"
    SETTINGS = "settings"


class Action(str, enum.Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    ASSIGN = "assign"
    COMPLETE = "complete"
    EXPORT = "export"
    APPROVE = "approve"


RESOURCES: tuple[str, ...] = tuple(r.value for r in Resource)
ACTIONS: tuple[str, ...] = tuple(a.value for a in Action)


# ── Role → default permissions ──────────────────────────────

_SUPER_ADMIN_DEFAULTS: tuple[str, ...] = (
    # Tasks
    "tasks:create", "tasks:read", "tasks:update", "tasks:delete", "tasks:assign", "tasks:complete",
    # Users
    "users:create", "users:read", "users:update", "users:delete",
    # Reports
    "reports:read", "reports:create", "reports:export",
    # Notices
    "notices:create", "notices:read", "notices:update", "notices:delete",
    # Messages
    "messages:create", "messages:read", "messages:delete",
    # Company
    "company:read", "company:update",
    # Calendar
    "calendar:read", "calendar:update",
    # Settings
    "settings:read", "settings:update",
)

_MANAGER_DEFAULTS: tuple[str, ...] = (
    "tasks:create", "tasks:read", "tasks:update", "tasks:assign", "tasks:complete",
    "users:read",
    "reports:read", "reports:create", "reports:export",
    "notices:create", "notices:read", "notices:update",
    "messages:create", "messages:read", "messages:delete",
    "calendar:read", "calendar:update",
)

_EMPLOYEE_DEFAULTS: tuple[str, ...] = (
    "tasks:read", "tasks:update", "tasks:complete",
    "users:read",
    "notices:read",
    "messages:create", "messages:read", "messages:delete",
    "calendar:read",
)


def role_defaults(role: UserRole) -> tuple[str, ...]:
    """Return the default permission list for a role, in authored order."""
    match role:
        case UserRole.SUPER_ADMIN:
            return _SUPER_ADMIN_DEFAULTS
        case UserRole.MANAGER:
            return _MANAGER_DEFAULTS
        case UserRole.EMPLOYEE:
            return _EMPLOYEE_DEFAULTS
        case _:
            assert_never(role)


ROLE_PERMISSIONS: dict[UserRole, tuple[str, ...]] = {
    role: role_defaults(role) for role in UserRole
}


# ── Validation ──────────────────────────────────────────────

def is_valid_permission(permission: str) -> bool:
    """True iff `permission` is `<resource>:<action>` with both halves known."""
    if not isinstance(permission, str):
        return False
    resource, sep, action = permission.partition(":")
    return bool(sep) and resource in RESOURCES and action in ACTIONS


def invalid_permissions(permissions: Iterable[str]) -> list[str]:
    """Return the entries of `permissions` that fail `is_valid_permission`."""
    return [p for p in permissions if not is_valid_permission(p)]


# ── Checks ──────────────────────────────────────────────────

def has_permission(user_permissions: Iterable[str], required: str) -> bool:
    """Check whether a permission set satisfies a requirement."""
    return required in set(user_permissions)


def has_any_permission(user_permissions: Iterable[str], required: Iterable[str]) -> bool:
    granted = set(user_permissions)
    return any(p in granted for p in required)


def has_all_permissions(user_permissions: Iterable[str], required: Iterable[str]) -> bool:
    granted = set(user_permissions)
    return all(p in granted for p in required)


def check_access(
    user_permissions: Iterable[str],
    *,
    permission: str | None = None,
    permissions: Iterable[str] | None = None,
    require: str = "any",
    roles: Iterable[UserRole | str] | None = None,
    user_role: UserRole | str | None = None,
) -> bool:
    """Evaluate a permission requirement with an optional role fallback.

    The role fallback only applies when the caller passes `roles`; a plain
    permission check never consults the user's role.
    """
    granted = set(user_permissions)
    allowed_roles = {_role_value(r) for r in roles} if roles else set()
    role_matches = user_role is not None and _role_value(user_role) in allowed_roles

    if permission:
        return permission in granted or role_matches

    required = list(permissions or [])
    if required:
        if require == "all":
            ok = has_all_permissions(granted, required)
        else:
            ok = has_any_permission(granted, required)
        return ok or role_matches

    # Role-only check
    return role_matches


def _role_value(role: UserRole | str) -> str:
    return role.value if isinstance(role, UserRole) else str(role)
