"""Tests for the bootstrap and self-service repair endpoints."""

import pytest
from httpx import AsyncClient

from hearinghope.auth.permissions import UserRole, role_defaults
from hearinghope.models.user import User


@pytest.mark.integration
@pytest.mark.asyncio
class TestBootstrapEndpoint:
    """/api/bootstrap-permissions."""

    async def test_bootstrap_self(self, client: AsyncClient, employee_headers):
        response = await client.get("/api/bootstrap-permissions", headers=employee_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["outcome"] == "repaired"
        assert data["permissions"] == list(role_defaults(UserRole.EMPLOYEE))

        again = await client.get("/api/bootstrap-permissions", headers=employee_headers)
        assert again.json()["outcome"] == "already_compliant"
        assert again.json()["added"] == []

    async def test_admin_bootstraps_one_user(
        self, client: AsyncClient, session_factory, employee, admin_headers
    ):
        response = await client.post(
            "/api/bootstrap-permissions",
            json={"user_id": employee.id},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["user_id"] == employee.id
        async with session_factory() as session:
            stored = await session.get(User, employee.id)
            assert stored.custom_permissions == list(role_defaults(UserRole.EMPLOYEE))

    async def test_admin_bootstraps_everyone(
        self, client: AsyncClient, super_admin, manager, employee, admin_headers
    ):
        response = await client.post("/api/bootstrap-permissions", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["processed"] == 3
        # super_admin and manager fixtures are already bootstrapped
        assert data["already_compliant"] == 2
        assert data["repaired"] == 1
        assert data["failed"] == 0
        by_user = {r["user_id"]: r["outcome"] for r in data["results"]}
        assert by_user[employee.id] == "repaired"

    async def test_unknown_user_is_not_found(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/bootstrap-permissions",
            json={"user_id": "no-such-user"},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json()["success"] is False

    async def test_requires_super_admin(self, client: AsyncClient, employee, manager_headers):
        response = await client.post(
            "/api/bootstrap-permissions",
            json={"user_id": employee.id},
            headers=manager_headers,
        )
        assert response.status_code == 403

    async def test_requires_auth(self, client: AsyncClient):
        assert (await client.get("/api/bootstrap-permissions")).status_code == 401


@pytest.mark.integration
@pytest.mark.asyncio
class TestFixPermissions:
    """/api/system/fix-permissions."""

    async def test_repairs_caller(self, client: AsyncClient, employee, employee_headers):
        response = await client.get("/api/system/fix-permissions", headers=employee_headers)

        assert response.status_code == 200
        assert response.json()["user_id"] == employee.id
        assert response.json()["outcome"] == "repaired"

    async def test_explicit_self_id_allowed(self, client: AsyncClient, employee, employee_headers):
        response = await client.get(
            "/api/system/fix-permissions",
            params={"user_id": employee.id},
            headers=employee_headers,
        )
        assert response.status_code == 200

    async def test_cannot_repair_someone_else(
        self, client: AsyncClient, make_user, employee_headers
    ):
        other = await make_user("other@example.com")

        response = await client.get(
            "/api/system/fix-permissions",
            params={"user_id": other.id},
            headers=employee_headers,
        )
        assert response.status_code == 403

    async def test_cannot_repair_everyone(self, client: AsyncClient, manager_headers):
        response = await client.get(
            "/api/system/fix-permissions",
            params={"all": "true"},
            headers=manager_headers,
        )
        assert response.status_code == 403

    async def test_super_admin_repairs_other_user(
        self, client: AsyncClient, employee, admin_headers
    ):
        response = await client.get(
            "/api/system/fix-permissions",
            params={"user_id": employee.id},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["user_id"] == employee.id

    async def test_super_admin_repairs_everyone(
        self, client: AsyncClient, super_admin, employee, admin_headers
    ):
        response = await client.get(
            "/api/system/fix-permissions",
            params={"all": "true"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["processed"] == 2
        assert response.json()["repaired"] == 1

    async def test_inactive_caller_rejected(self, client: AsyncClient, make_user, headers_for):
        user = await make_user("inactive@example.com", is_active=False)

        response = await client.get("/api/system/fix-permissions", headers=headers_for(user))
        assert response.status_code == 403
