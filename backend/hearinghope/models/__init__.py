"""Aggregate model imports so Base.metadata (and Alembic) sees every table."""

from hearinghope.auth.permissions import UserRole
from hearinghope.models.user import User
from hearinghope.models.permission_group import PermissionGroup

__all__ = ["PermissionGroup", "User", "UserRole"]
