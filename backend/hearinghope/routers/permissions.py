"""Permission catalog, self-check and permission groups.

Route overview:
  GET    /catalog               resources, actions, role defaults
  POST   /check                 does the caller satisfy a requirement?
  GET    /groups                list permission groups       (users:read)
  POST   /groups                create a group               (users:create)
  GET    /groups/{group_id}     group details                (users:read)
  PUT    /groups/{group_id}     update a group               (users:update)
  DELETE /groups/{group_id}     delete a group               (users:delete)

Group management is gated by the `users` resource; there is no dedicated
`permission_groups` resource in the catalog. Anyone allowed to manage users
can manage groups.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hearinghope.auth.deps import get_current_user, require_permission
from hearinghope.auth.permissions import ACTIONS, RESOURCES, ROLE_PERMISSIONS, check_access
from hearinghope.auth.resolver import resolve_user_permissions
from hearinghope.database import get_db
from hearinghope.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from hearinghope.models.permission_group import PermissionGroup
from hearinghope.models.user import User
from hearinghope.schemas.common import APIResponse
from hearinghope.schemas.permissions import (
    CatalogResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionGroupCreate,
    PermissionGroupCreatedResponse,
    PermissionGroupListResponse,
    PermissionGroupOut,
    PermissionGroupResponse,
    PermissionGroupUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_group_or_404(db: AsyncSession, group_id: str) -> PermissionGroup:
    group = await db.get(PermissionGroup, group_id)
    if group is None:
        raise ResourceNotFoundError("Permission group", group_id)
    return group


async def _name_taken(db: AsyncSession, name: str, exclude_id: str | None = None) -> bool:
    query = select(PermissionGroup.id).where(PermissionGroup.name == name)
    if exclude_id:
        query = query.where(PermissionGroup.id != exclude_id)
    return (await db.execute(query)).first() is not None


# ── Catalog & self-check ─────────────────────────────────────

@router.get("/catalog", response_model=CatalogResponse)
async def get_catalog(_user: User = Depends(get_current_user)):
    return CatalogResponse(
        resources=list(RESOURCES),
        actions=list(ACTIONS),
        role_permissions={role.value: list(perms) for role, perms in ROLE_PERMISSIONS.items()},
    )


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    body: PermissionCheckRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Evaluate a requirement against the caller's effective permissions.

    The role fallback is only consulted when `roles` is given.
    """
    if not body.permission and not body.permissions and not body.roles:
        raise BusinessLogicError("Provide a permission, a permission list or roles")

    effective = await resolve_user_permissions(db, user)
    allowed = check_access(
        effective,
        permission=body.permission,
        permissions=body.permissions,
        require=body.require,
        roles=body.roles,
        user_role=user.role,
    )
    return PermissionCheckResponse(allowed=allowed)


# ── Permission groups ────────────────────────────────────────

@router.get("/groups", response_model=PermissionGroupListResponse)
async def list_groups(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("users:read")),
):
    result = await db.execute(select(PermissionGroup).order_by(PermissionGroup.name))
    return PermissionGroupListResponse(
        groups=[PermissionGroupOut.model_validate(g) for g in result.scalars().all()],
    )


@router.post("/groups", response_model=PermissionGroupCreatedResponse, status_code=201)
async def create_group(
    body: PermissionGroupCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("users:create")),
):
    if await _name_taken(db, body.name):
        raise BusinessLogicError(
            "A permission group with this name already exists",
            error_code="DUPLICATE_GROUP",
        )

    group = PermissionGroup(
        name=body.name,
        description=body.description,
        permissions=body.permissions,
        created_by=user.id,
    )
    db.add(group)
    await db.flush()

    logger.info(f"Permission group {group.id} ({group.name}) created by {user.id}")
    return PermissionGroupCreatedResponse(
        message="Permission group created successfully",
        group_id=group.id,
    )


@router.get("/groups/{group_id}", response_model=PermissionGroupResponse)
async def get_group(
    group_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("users:read")),
):
    group = await _get_group_or_404(db, group_id)
    return PermissionGroupResponse(group=PermissionGroupOut.model_validate(group))


@router.put("/groups/{group_id}", response_model=PermissionGroupResponse)
async def update_group(
    group_id: str,
    body: PermissionGroupUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("users:update")),
):
    group = await _get_group_or_404(db, group_id)

    if body.name is not None:
        name = body.name.strip()
        if not name:
            raise BusinessLogicError("Name is required")
        if name != group.name and await _name_taken(db, name, exclude_id=group.id):
            raise BusinessLogicError(
                "A permission group with this name already exists",
                error_code="DUPLICATE_GROUP",
            )
        group.name = name
    if body.description is not None:
        group.description = body.description
    if body.permissions is not None:
        group.permissions = body.permissions

    await db.flush()
    await db.refresh(group)

    logger.info(f"Permission group {group.id} updated by {user.id}")
    return PermissionGroupResponse(
        message="Permission group updated successfully",
        group=PermissionGroupOut.model_validate(group),
    )


@router.delete("/groups/{group_id}", response_model=APIResponse)
async def delete_group(
    group_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("users:delete")),
):
    """Delete a group. Users still listing its id simply stop inheriting it."""
    group = await _get_group_or_404(db, group_id)
    await db.delete(group)
    await db.flush()

    logger.info(f"Permission group {group_id} deleted by {user.id}")
    return APIResponse(message="Permission group deleted successfully")
