"""Auth routes: login, logout, current user.

Route overview:
  POST /login    email + password login; sets the `auth_token` cookie and
                  bootstraps the user's permissions (best-effort)
  POST /logout   clear the auth cookie
  GET  /me       current user profile + effective permissions
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hearinghope.auth.bootstrap import bootstrap_user_permissions
from hearinghope.auth.deps import get_current_user
from hearinghope.auth.jwt import create_access_token
from hearinghope.auth.password import verify_password
from hearinghope.auth.resolver import resolve_user_permissions
from hearinghope.config import settings
from hearinghope.database import get_db
from hearinghope.middleware.exceptions import AccountInactiveError, AuthenticationError
from hearinghope.middleware.rate_limit import rate_limit
from hearinghope.models.user import User
from hearinghope.schemas.auth import LoginRequest, LoginResponse, MeResponse, UserOut
from hearinghope.schemas.common import APIResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

async def _bootstrap_after_login(db: AsyncSession, user_id: str) -> None:
    """Top up role defaults; a failure here must not fail the login."""
    try:
        await bootstrap_user_permissions(db, user_id)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.warning(f"Permission bootstrap after login failed for user {user_id}: {e!r}")


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        path="/",
        secure=settings.auth_cookie_secure or settings.environment == "production",
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )


# ── POST /login ──────────────────────────────────────────────

@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Email + password login. Returns the JWT and sets it as a cookie."""
    result = await db.execute(select(User).where(User.email == body.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AccountInactiveError()

    token = create_access_token(
        user_id=user.id,
        role=user.role.value,
        email=user.email,
    )

    user.last_login = datetime.now(timezone.utc).replace(tzinfo=None)
    await db.commit()
    user_id = user.id
    user_out = UserOut.model_validate(user)

    await _bootstrap_after_login(db, user_id)

    _set_auth_cookie(response, token)
    logger.info(f"User {user_id} logged in")
    return LoginResponse(
        message="Login successful",
        access_token=token,
        user=user_out,
    )


# ── POST /logout ─────────────────────────────────────────────

@router.post("/logout", response_model=APIResponse)
async def logout(response: Response):
    """Clear the auth cookie. Tokens are stateless and simply expire."""
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return APIResponse(message="Logged out successfully")


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=MeResponse)
async def me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return the current authenticated user's profile and permissions."""
    permissions = await resolve_user_permissions(db, user)
    return MeResponse(
        user=UserOut.model_validate(user),
        permissions=sorted(permissions),
    )
