"""JWT token creation and verification.

Token claims:
  - sub:    user ID
  - role:   user role string (SUPER_ADMIN | MANAGER | EMPLOYEE)
  - email:  user email
  - type:   "access"
  - iat:    issued-at timestamp
  - exp:    expiry timestamp

Verification is pure: signature, expiry and claim shape only. No DB access.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from hearinghope.auth.permissions import UserRole
from hearinghope.config import settings

ALGORITHM = settings.jwt_algorithm


@dataclass(frozen=True)
class TokenClaims:
    """Decoded identity carried by a valid access token."""

    user_id: str
    role: UserRole
    email: str | None
    expires_at: datetime


def create_access_token(
    user_id: str,
    role: str,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": expire,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}


def verify_identity_token(token: str) -> TokenClaims | None:
    """Return the token's identity claims, or None if it is unusable.

    Rejects bad signatures, expired tokens, non-access tokens, and tokens
    missing `sub`, `exp` or a known `role`.
    """
    if not token:
        return None

    payload = decode_token(token)
    user_id = payload.get("sub")
    exp = payload.get("exp")
    if not user_id or exp is None or payload.get("type") != "access":
        return None

    try:
        role = UserRole(payload.get("role"))
        expires_at = datetime.fromtimestamp(int(exp), tz=timezone.utc)
    except (TypeError, ValueError):
        return None

    # jose already rejects expired tokens; keep the check local as well
    if expires_at <= datetime.now(timezone.utc):
        return None

    return TokenClaims(
        user_id=str(user_id),
        role=role,
        email=payload.get("email"),
        expires_at=expires_at,
    )
