"""User management.

Endpoints:
    GET    /api/users            List users (super admin, manager)
    POST   /api/users            Create user (super admin)
    GET    /api/users/{user_id}  User details (super admin, manager)
    PUT    /api/users/{user_id}  Update user (self or super admin)
    DELETE /api/users/{user_id}  Delete user (super admin)

    GET    /api/users/{user_id}/permissions  Effective permissions (users:read)
    PUT    /api/users/{user_id}/permissions  Replace grants / groups (users:update)

Managers never see super admin accounts. Nobody changes their own role or
active flag unless they are a super admin.
"""

import logging
import math

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hearinghope.auth.deps import (
    get_current_user,
    has_role,
    require_permission,
    require_role,
)
from hearinghope.auth.password import hash_password
from hearinghope.auth.permissions import UserRole
from hearinghope.auth.resolver import (
    get_user_permissions,
    load_permission_groups,
    resolve_user_permissions,
)
from hearinghope.database import get_db
from hearinghope.middleware.exceptions import (
    BusinessLogicError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from hearinghope.middleware.rate_limit import rate_limit
from hearinghope.models.user import User
from hearinghope.schemas.common import APIResponse, Pagination
from hearinghope.schemas.permissions import UserPermissionsResponse, UserPermissionsUpdate
from hearinghope.schemas.users import (
    UserCreate,
    UserCreatedResponse,
    UserDetailResponse,
    UserListResponse,
    UserSummary,
    UserUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_user_or_404(db: AsyncSession, user_id: str) -> User:
    target = await db.get(User, user_id)
    if target is None:
        raise ResourceNotFoundError("User", user_id)
    return target


async def _email_taken(db: AsyncSession, email: str, exclude_id: str | None = None) -> bool:
    query = select(User.id).where(User.email == email)
    if exclude_id:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


def _escape_like(term: str) -> str:
    """Make `%` and `_` in user input match literally (escape char `\\`)."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ── GET / ────────────────────────────────────────────────────

@router.get("", response_model=UserListResponse, dependencies=[Depends(rate_limit())])
async def list_users(
    search: str | None = None,
    role: UserRole | None = None,
    is_active: bool | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(UserRole.SUPER_ADMIN, UserRole.MANAGER)),
):
    """Paginated user list with optional search / role / status filters."""
    filters = []
    if not has_role(user, UserRole.SUPER_ADMIN):
        filters.append(User.role != UserRole.SUPER_ADMIN)
    if role is not None:
        filters.append(User.role == role)
    if is_active is not None:
        filters.append(User.is_active == is_active)
    if search:
        pattern = f"%{_escape_like(search.lower())}%"
        filters.append(or_(
            func.lower(User.name).like(pattern, escape="\\"),
            func.lower(User.email).like(pattern, escape="\\"),
            func.lower(User.position).like(pattern, escape="\\"),
        ))

    total = (
        await db.execute(select(func.count()).select_from(User).where(*filters))
    ).scalar() or 0
    result = await db.execute(
        select(User)
        .where(*filters)
        .order_by(User.name)
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return UserListResponse(
        users=[UserSummary.model_validate(u) for u in result.scalars().all()],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit) if total else 0,
        ),
    )


# ── POST / ───────────────────────────────────────────────────

@router.post(
    "",
    response_model=UserCreatedResponse,
    status_code=201,
    dependencies=[Depends(rate_limit("sensitive"))],
)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(UserRole.SUPER_ADMIN)),
):
    """Create an account. Permissions start empty until the first bootstrap."""
    if await _email_taken(db, body.email):
        raise BusinessLogicError("Email already in use", error_code="DUPLICATE_EMAIL")

    new_user = User(
        name=body.name,
        email=body.email,
        hashed_password=hash_password(body.password),
        role=body.role,
        phone=body.phone,
        position=body.position,
        is_active=True,
        custom_permissions=[],
        permission_group_ids=[],
    )
    db.add(new_user)
    await db.flush()

    logger.info(f"User {new_user.id} ({new_user.role.value}) created by {admin.id}")
    return UserCreatedResponse(message="User created successfully", user_id=new_user.id)


# ── GET /{user_id} ───────────────────────────────────────────

@router.get("/{user_id}", response_model=UserDetailResponse)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(UserRole.SUPER_ADMIN, UserRole.MANAGER)),
):
    target = await _get_user_or_404(db, user_id)

    if (
        user.role == UserRole.MANAGER
        and target.id != user.id
        and target.role == UserRole.SUPER_ADMIN
    ):
        raise PermissionDeniedError("Not authorized to view this user")

    return UserDetailResponse(user=UserSummary.model_validate(target))


# ── PUT /{user_id} ───────────────────────────────────────────

@router.put("/{user_id}", response_model=UserDetailResponse)
async def update_user(
    user_id: str,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Self-service profile edit, or any edit by a super admin."""
    is_self = user.id == user_id
    is_super_admin = has_role(user, UserRole.SUPER_ADMIN)
    if not is_self and not is_super_admin:
        raise PermissionDeniedError("Not authorized to update this user")

    target = await _get_user_or_404(db, user_id)

    if not is_super_admin:
        if body.role is not None and body.role != target.role:
            raise PermissionDeniedError("You cannot change your own role")
        if body.is_active is not None and body.is_active != target.is_active:
            raise PermissionDeniedError("You cannot change your own active status")

    if body.email is not None and body.email != target.email:
        if await _email_taken(db, body.email, exclude_id=target.id):
            raise BusinessLogicError("Email already in use", error_code="DUPLICATE_EMAIL")
        target.email = body.email

    if body.name is not None:
        target.name = body.name
    if body.phone is not None:
        target.phone = body.phone
    if body.position is not None:
        target.position = body.position

    if is_super_admin:
        if body.role is not None and body.role != target.role:
            logger.info(
                f"Role of user {target.id} changed {target.role.value} → {body.role.value} by {user.id}"
            )
            target.role = body.role
        if body.is_active is not None:
            target.is_active = body.is_active

    if body.password is not None:
        target.hashed_password = hash_password(body.password)

    await db.flush()
    await db.refresh(target)
    return UserDetailResponse(
        message="User updated successfully",
        user=UserSummary.model_validate(target),
    )


# ── DELETE /{user_id} ────────────────────────────────────────

@router.delete("/{user_id}", response_model=APIResponse)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(UserRole.SUPER_ADMIN)),
):
    if admin.id == user_id:
        raise BusinessLogicError("You cannot delete your own account")

    target = await _get_user_or_404(db, user_id)
    if target.role == UserRole.SUPER_ADMIN:
        raise PermissionDeniedError("Cannot delete another super admin account")

    await db.delete(target)
    await db.flush()

    logger.info(f"User {user_id} deleted by {admin.id}")
    return APIResponse(message="User deleted successfully")


# ── GET /{user_id}/permissions ───────────────────────────────

@router.get("/{user_id}/permissions", response_model=UserPermissionsResponse)
async def get_permissions(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_permission("users:read")),
):
    """Effective permissions (explicit grants ∪ group grants) of a user."""
    permissions = await get_user_permissions(db, user_id)
    return UserPermissionsResponse(user_id=user_id, permissions=sorted(permissions))


# ── PUT /{user_id}/permissions ───────────────────────────────

@router.put("/{user_id}/permissions", response_model=UserPermissionsResponse)
async def update_permissions(
    user_id: str,
    body: UserPermissionsUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission("users:update")),
):
    """Replace a user's explicit grants and/or group memberships.

    This is the only path that removes permissions; bootstrap only adds.
    """
    target = await _get_user_or_404(db, user_id)

    if body.permission_groups is not None:
        group_ids = list(dict.fromkeys(body.permission_groups))
        found = await load_permission_groups(db, group_ids)
        unknown = set(group_ids) - {g.id for g in found}
        if unknown:
            raise BusinessLogicError(
                f"Unknown permission groups: {', '.join(sorted(unknown))}",
                error_code="INVALID_PERMISSION_GROUP",
            )
        target.permission_group_ids = group_ids

    if body.custom_permissions is not None:
        target.custom_permissions = body.custom_permissions

    await db.flush()
    permissions = await resolve_user_permissions(db, target)

    logger.info(f"Permissions of user {target.id} updated by {admin.id}")
    return UserPermissionsResponse(
        message="User permissions updated successfully",
        user_id=target.id,
        permissions=sorted(permissions),
    )
