"""Tests for the permission catalog and access checks."""

import pytest

from hearinghope.auth.permissions import (
    ACTIONS,
    RESOURCES,
    ROLE_PERMISSIONS,
    UserRole,
    check_access,
    has_all_permissions,
    has_any_permission,
    has_permission,
    invalid_permissions,
    is_valid_permission,
    role_defaults,
)


@pytest.mark.unit
class TestCatalog:
    """Resources, actions and permission string validation."""

    def test_resources_and_actions(self):
        assert RESOURCES == (
            "tasks", "users", "reports", "notices",
            "messages", "company", "calendar", "settings",
        )
        assert ACTIONS == (
            "create", "read", "update", "delete",
            "assign", "complete", "export", "approve",
        )

    @pytest.mark.parametrize("permission", ["tasks:read", "calendar:delete", "settings:approve"])
    def test_valid_permissions(self, permission):
        assert is_valid_permission(permission)

    @pytest.mark.parametrize(
        "permission",
        ["tasks", "tasks:", ":read", "tasks:fly", "payroll:read", "tasks:read:extra", "", None, 42],
    )
    def test_invalid_permissions(self, permission):
        assert not is_valid_permission(permission)

    def test_invalid_permissions_lists_offenders(self):
        assert invalid_permissions(["tasks:read", "nope", "users:create", "tasks:zap"]) == [
            "nope",
            "tasks:zap",
        ]

    def test_every_role_default_is_valid(self):
        for role in UserRole:
            assert invalid_permissions(role_defaults(role)) == []


@pytest.mark.unit
class TestRoleDefaults:
    """Per-role default permission sets."""

    def test_every_role_has_defaults(self):
        assert set(ROLE_PERMISSIONS) == set(UserRole)
        for role in UserRole:
            assert ROLE_PERMISSIONS[role] == role_defaults(role)
            assert len(role_defaults(role)) > 0

    def test_employee_defaults(self):
        defaults = role_defaults(UserRole.EMPLOYEE)
        assert "tasks:read" in defaults
        assert "tasks:complete" in defaults
        assert "tasks:delete" not in defaults
        assert "users:create" not in defaults

    def test_manager_defaults(self):
        defaults = role_defaults(UserRole.MANAGER)
        assert "tasks:assign" in defaults
        assert "users:read" in defaults
        assert "users:create" not in defaults
        assert "tasks:delete" not in defaults

    def test_super_admin_has_user_management(self):
        defaults = role_defaults(UserRole.SUPER_ADMIN)
        for action in ("create", "read", "update", "delete"):
            assert f"users:{action}" in defaults

    def test_defaults_have_no_duplicates(self):
        for role in UserRole:
            defaults = role_defaults(role)
            assert len(defaults) == len(set(defaults))

    def test_lookup_accepts_string_value(self):
        # UserRole is a str enum, so values coming from the DB compare equal
        assert role_defaults(UserRole("MANAGER")) is ROLE_PERMISSIONS[UserRole.MANAGER]


@pytest.mark.unit
class TestChecks:
    """has_* predicates and check_access."""

    def test_has_permission(self):
        assert has_permission({"tasks:read"}, "tasks:read")
        assert not has_permission({"tasks:read"}, "tasks:update")
        assert not has_permission([], "tasks:read")

    def test_any_and_all(self):
        granted = {"tasks:read", "notices:read"}
        assert has_any_permission(granted, ["tasks:delete", "notices:read"])
        assert not has_any_permission(granted, ["tasks:delete"])
        assert has_all_permissions(granted, ["tasks:read", "notices:read"])
        assert not has_all_permissions(granted, ["tasks:read", "tasks:delete"])

    def test_permission_alone_ignores_role(self):
        # A manager's role "implies" tasks:assign, but no explicit grant exists
        assert not check_access(set(), permission="tasks:assign", user_role=UserRole.MANAGER)

    def test_role_fallback_only_when_requested(self):
        assert check_access(
            set(),
            permission="tasks:assign",
            roles=[UserRole.MANAGER],
            user_role=UserRole.MANAGER,
        )
        assert not check_access(
            set(),
            permission="tasks:assign",
            roles=[UserRole.SUPER_ADMIN],
            user_role=UserRole.MANAGER,
        )

    def test_permission_list_any_vs_all(self):
        granted = {"tasks:read"}
        assert check_access(granted, permissions=["tasks:read", "tasks:update"], require="any")
        assert not check_access(granted, permissions=["tasks:read", "tasks:update"], require="all")

    def test_role_only_check(self):
        assert check_access(set(), roles=["EMPLOYEE"], user_role=UserRole.EMPLOYEE)
        assert not check_access(set(), roles=["SUPER_ADMIN"], user_role="EMPLOYEE")

    def test_empty_requirement_denies(self):
        assert not check_access({"tasks:read"})
