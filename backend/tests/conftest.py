"""Pytest configuration and fixtures for Hearing Hope tests.

Each test gets its own SQLite database (aiosqlite) in a temp directory; the
app's `get_db` dependency is overridden to use it. Redis-backed rate limiting
is switched off here and re-enabled with a fake client in test_rate_limit.py.
"""

import os

# Must be set before hearinghope.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hearinghope.auth.jwt import create_access_token
from hearinghope.auth.password import hash_password
from hearinghope.auth.permissions import UserRole, role_defaults
from hearinghope.database import Base, get_db
from hearinghope.main import app
from hearinghope.models.permission_group import PermissionGroup
from hearinghope.models.user import User

TEST_PASSWORD = "testpassword123"


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Fresh SQLite database with every table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging test data. Fixtures commit what they create."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Test client; each request gets its own session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Data Fixtures ───────────────────────────────────────────

@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory: create and commit a user.

    `bootstrapped=True` pre-fills `custom_permissions` with the role defaults.
    """

    async def _make(
        email: str,
        role: UserRole = UserRole.EMPLOYEE,
        *,
        name: str | None = None,
        is_active: bool = True,
        custom_permissions: list[str] | None = None,
        permission_group_ids: list[str] | None = None,
        bootstrapped: bool = False,
        **fields,
    ) -> User:
        if custom_permissions is None:
            custom_permissions = list(role_defaults(role)) if bootstrapped else []
        user = User(
            email=email,
            name=name or email.split("@")[0].title(),
            hashed_password=hash_password(TEST_PASSWORD),
            role=role,
            phone="0123456789",
            position="Receptionist",
            is_active=is_active,
            custom_permissions=custom_permissions,
            permission_group_ids=permission_group_ids or [],
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_group(db_session: AsyncSession):
    async def _make(name: str, permissions: list[str], description: str | None = None) -> PermissionGroup:
        group = PermissionGroup(name=name, permissions=permissions, description=description)
        db_session.add(group)
        await db_session.commit()
        return group

    return _make


@pytest_asyncio.fixture
async def super_admin(make_user) -> User:
    return await make_user("admin@example.com", UserRole.SUPER_ADMIN, bootstrapped=True)


@pytest_asyncio.fixture
async def manager(make_user) -> User:
    return await make_user("manager@example.com", UserRole.MANAGER, bootstrapped=True)


@pytest_asyncio.fixture
async def employee(make_user) -> User:
    """Employee who has never been bootstrapped (no explicit grants)."""
    return await make_user("employee@example.com", UserRole.EMPLOYEE)


def auth_headers_for(user: User) -> dict:
    token = create_access_token(user_id=user.id, role=user.role.value, email=user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(super_admin: User) -> dict:
    return auth_headers_for(super_admin)


@pytest.fixture
def manager_headers(manager: User) -> dict:
    return auth_headers_for(manager)


@pytest.fixture
def employee_headers(employee: User) -> dict:
    return auth_headers_for(employee)


@pytest.fixture
def headers_for():
    return auth_headers_for


@pytest.fixture
def test_password() -> str:
    return TEST_PASSWORD
