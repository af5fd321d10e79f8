"""FastAPI dependencies for authentication and authorization.

Every protected route goes through one of these before its body runs:

  get_current_user          → token (Bearer header, else `auth_token` cookie),
                              verify, load user, reject inactive
  require_role(...)         → coarse role allow-list
  require_permission(...)   → ALL listed permissions in the effective set
  require_any_permission()  → ANY listed permission in the effective set

Outcomes, checked in this order on every request (nothing is cached):

  no / bad / expired token  → 401 UNAUTHENTICATED   (no DB access)
  user missing              → 401 UNAUTHENTICATED
  user deactivated          → 403 ACCOUNT_INACTIVE
  role / permission missing → 403 FORBIDDEN
  store error               → 503 STORE_UNAVAILABLE  (never authorized)
"""

import logging

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hearinghope.auth.jwt import TokenClaims, verify_identity_token
from hearinghope.auth.permissions import UserRole, has_all_permissions, has_any_permission
from hearinghope.auth.resolver import load_user, resolve_user_permissions
from hearinghope.config import settings
from hearinghope.database import get_db
from hearinghope.middleware.exceptions import (
    AccountInactiveError,
    AuthenticationError,
    PermissionDeniedError,
)
from hearinghope.models.user import User

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# ── Identity extraction ─────────────────────────────────────

async def get_token(
    request: Request,
    bearer: str | None = Depends(oauth2_scheme),
) -> str | None:
    """Bearer token from the Authorization header, falling back to the cookie."""
    return bearer or request.cookies.get(settings.auth_cookie_name) or None


async def get_token_claims(token: str | None = Depends(get_token)) -> TokenClaims:
    """Verify the token without touching the database."""
    if not token:
        logger.debug("Rejected request: no token")
        raise AuthenticationError("Authentication required")

    claims = verify_identity_token(token)
    if claims is None:
        logger.debug("Rejected request: invalid or expired token")
        raise AuthenticationError("Invalid or expired token")
    return claims


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    claims: TokenClaims = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load the token's user and require an active account.

    Stashes the verified claims on the user as `_token_claims` so handlers
    can read them without re-decoding.
    """
    user = await load_user(db, claims.user_id)
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AccountInactiveError()

    user._token_claims = claims  # type: ignore[attr-defined]
    return user


# ── Role-based access control ───────────────────────────────

def has_role(identity: User | TokenClaims, *roles: UserRole | str) -> bool:
    """True if the identity's role is in `roles`."""
    allowed = {r.value if isinstance(r, UserRole) else r for r in roles}
    role = identity.role
    return (role.value if isinstance(role, UserRole) else role) in allowed


def require_role(*roles: UserRole):
    """Dependency factory: restrict to one or more roles.

    Usage:
        @router.post("/bootstrap-permissions")
        async def run(user: User = Depends(require_role(UserRole.SUPER_ADMIN))):
            ...
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        if not has_role(user, *roles):
            logger.info(f"User {user.id} denied: requires role {', '.join(r.value for r in roles)}")
            raise PermissionDeniedError(
                f"Requires role: {', '.join(r.value for r in roles)}"
            )
        return user

    return _check


# ── Permission-based access control ─────────────────────────

def require_permission(*perms: str):
    """Dependency factory: restrict to users who hold ALL listed permissions.

    Resolves the effective set (custom grants ∪ group grants) fresh from the
    store on each request.

    Usage:
        @router.put("/{group_id}")
        async def update_group(user: User = Depends(require_permission("users:update"))):
            ...
    """
    async def _check(
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        effective = await resolve_user_permissions(db, user)
        if not has_all_permissions(effective, perms):
            missing = [p for p in perms if p not in effective]
            logger.info(f"User {user.id} denied: missing {', '.join(missing)}")
            raise PermissionDeniedError("Not authorized for this action")
        user._effective_permissions = effective  # type: ignore[attr-defined]
        return user

    return _check


def require_any_permission(*perms: str):
    """Dependency factory: restrict to users who hold at least one permission."""
    async def _check(
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        effective = await resolve_user_permissions(db, user)
        if not has_any_permission(effective, perms):
            logger.info(f"User {user.id} denied: needs one of {', '.join(perms)}")
            raise PermissionDeniedError("Not authorized for this action")
        user._effective_permissions = effective  # type: ignore[attr-defined]
        return user

    return _check
