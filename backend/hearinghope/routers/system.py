"""Self-service permission repair.

Route overview:
  GET /fix-permissions                  repair the caller's own permissions
  GET /fix-permissions?user_id=<id>     repair another user (super admin)
  GET /fix-permissions?all=true         repair everyone (super admin)

Runs the same additive reconciler as `/api/bootstrap-permissions`. Any
authenticated user may repair themselves; nobody else is reachable without
the SUPER_ADMIN role.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hearinghope.auth.bootstrap import bootstrap_all_permissions, bootstrap_user_permissions
from hearinghope.auth.deps import get_current_user, has_role
from hearinghope.auth.permissions import UserRole
from hearinghope.database import get_db
from hearinghope.middleware.exceptions import PermissionDeniedError
from hearinghope.models.user import User
from hearinghope.routers.bootstrap import batch_bootstrap_response, user_bootstrap_response
from hearinghope.schemas.permissions import BatchBootstrapResponse, UserBootstrapResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/fix-permissions",
    response_model=UserBootstrapResponse | BatchBootstrapResponse,
)
async def fix_permissions(
    user_id: str | None = None,
    all: bool = False,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    caller_id = user.id
    is_super_admin = has_role(user, UserRole.SUPER_ADMIN)

    if all:
        if not is_super_admin:
            raise PermissionDeniedError("Only super admins can repair all users")
        logger.info(f"Permission repair for all users requested by {caller_id}")
        report = await bootstrap_all_permissions(db)
        return batch_bootstrap_response(report)

    target_id = user_id or caller_id
    if target_id != caller_id and not is_super_admin:
        raise PermissionDeniedError("You can only repair your own permissions")

    logger.info(f"Permission repair for user {target_id} requested by {caller_id}")
    result = await bootstrap_user_permissions(db, target_id)
    return user_bootstrap_response(result)
