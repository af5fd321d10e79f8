"""Effective-permission resolution.

    effective(user) = user.custom_permissions ∪ ⋃ group.permissions

Role defaults reach a user through `custom_permissions` (the bootstrap
reconciler copies them in), so a user who has never been bootstrapped holds
only what was granted explicitly. The set is recomputed on every call; there
is no cache to invalidate.

A missing user raises `ResourceNotFoundError` so callers can tell "not found"
apart from "has no permissions". Store errors propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hearinghope.middleware.exceptions import ResourceNotFoundError
from hearinghope.models.permission_group import PermissionGroup
from hearinghope.models.user import User


async def load_user(db: AsyncSession, user_id: str) -> User | None:
    return await db.get(User, user_id)


async def load_permission_groups(
    db: AsyncSession,
    group_ids: Iterable[str],
) -> list[PermissionGroup]:
    """Fetch the referenced groups; ids of deleted groups are skipped."""
    ids = {g for g in group_ids if g}
    if not ids:
        return []
    result = await db.execute(
        select(PermissionGroup).where(PermissionGroup.id.in_(ids))
    )
    return list(result.scalars().all())


def merge_permissions(
    custom_permissions: Iterable[str] | None,
    groups: Iterable[PermissionGroup],
) -> set[str]:
    """Union of a user's explicit grants and every group's permissions."""
    effective = set(custom_permissions or [])
    for group in groups:
        effective.update(group.permissions or [])
    return effective


async def resolve_user_permissions(db: AsyncSession, user: User) -> set[str]:
    """Effective permissions for an already-loaded user."""
    groups = await load_permission_groups(db, user.permission_group_ids or [])
    return merge_permissions(user.custom_permissions, groups)


async def get_user_permissions(db: AsyncSession, user_id: str) -> set[str]:
    """Effective permissions for a user id.

    Raises:
        ResourceNotFoundError: the user does not exist.
    """
    user = await load_user(db, user_id)
    if user is None:
        raise ResourceNotFoundError("User", user_id)
    return await resolve_user_permissions(db, user)
