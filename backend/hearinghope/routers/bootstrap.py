"""Permission bootstrap endpoints.

Route overview:
  POST /    super admin: bootstrap one user (`user_id`) or everyone
  GET  /    bootstrap the caller
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hearinghope.auth.bootstrap import (
    BatchBootstrapReport,
    UserBootstrapResult,
    bootstrap_all_permissions,
    bootstrap_user_permissions,
)
from hearinghope.auth.deps import get_current_user, require_role
from hearinghope.auth.permissions import UserRole
from hearinghope.database import get_db
from hearinghope.models.user import User
from hearinghope.schemas.permissions import (
    BatchBootstrapResponse,
    BootstrapRequest,
    UserBootstrapOut,
    UserBootstrapResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def user_bootstrap_response(result: UserBootstrapResult) -> UserBootstrapResponse:
    if result.added:
        message = f"Added {len(result.added)} permissions"
    else:
        message = "No new permissions needed"
    return UserBootstrapResponse(
        message=message,
        user_id=result.user_id,
        outcome=result.outcome,
        added=result.added,
        permissions=result.permissions,
    )


def batch_bootstrap_response(report: BatchBootstrapReport) -> BatchBootstrapResponse:
    return BatchBootstrapResponse(
        message=f"Permissions bootstrapped for {report.processed} users",
        processed=report.processed,
        repaired=report.repaired,
        already_compliant=report.already_compliant,
        failed=report.failed,
        results=[UserBootstrapOut.model_validate(r) for r in report.results],
    )


@router.post("", response_model=UserBootstrapResponse | BatchBootstrapResponse)
async def run_bootstrap(
    body: BootstrapRequest | None = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(UserRole.SUPER_ADMIN)),
):
    """Single-user bootstrap when `user_id` is given, system-wide otherwise."""
    if body is not None and body.user_id:
        logger.info(f"Bootstrap of user {body.user_id} requested by {admin.id}")
        result = await bootstrap_user_permissions(db, body.user_id)
        return user_bootstrap_response(result)

    logger.info(f"System-wide bootstrap requested by {admin.id}")
    report = await bootstrap_all_permissions(db)
    return batch_bootstrap_response(report)


@router.get("", response_model=UserBootstrapResponse)
async def bootstrap_self(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = await bootstrap_user_permissions(db, user.id)
    return user_bootstrap_response(result)
