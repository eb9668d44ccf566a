"""
Admin authorization.

Every admin route depends on ``require_admin``, which wraps the single
``authorize_admin`` check. Two credentials are accepted in the
``Authorization: Bearer`` header:

  - the service API key (trusted automation, no allow-list lookup)
  - a session JWT whose ``sub`` is listed in ``admin_users``
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import settings
from storefront.database import get_db
from storefront.models.admin_user import AdminUser
from storefront.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthOutcome(str, Enum):
    GRANTED = "granted"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class AdminAuthorization:
    outcome: AuthOutcome
    user_id: str | None = None
    via: str | None = None  # "service_key" | "session"

    @property
    def granted(self) -> bool:
        return self.outcome is AuthOutcome.GRANTED


def issue_admin_token(user_id: str, ttl: timedelta | None = None) -> str:
    if not settings.admin_jwt_secret:
        raise RuntimeError("ADMIN_JWT_SECRET is not configured")
    now = utcnow()
    ttl = ttl or timedelta(minutes=settings.admin_token_ttl_minutes)
    payload = {"sub": user_id, "iat": now, "exp": now + ttl}
    return jwt.encode(payload, settings.admin_jwt_secret, algorithm=settings.admin_jwt_algorithm)


def _decode_subject(token: str) -> str | None:
    if not settings.admin_jwt_secret:
        return None
    try:
        claims = jwt.decode(
            token, settings.admin_jwt_secret, algorithms=[settings.admin_jwt_algorithm]
        )
    except JWTError:
        return None
    sub = claims.get("sub")
    return str(sub) if sub else None


async def authorize_admin(db: AsyncSession, token: str | None) -> AdminAuthorization:
    if not token:
        return AdminAuthorization(AuthOutcome.UNAUTHENTICATED)

    if settings.service_api_key and hmac.compare_digest(token, settings.service_api_key):
        return AdminAuthorization(AuthOutcome.GRANTED, via="service_key")

    user_id = _decode_subject(token)
    if user_id is None:
        return AdminAuthorization(AuthOutcome.UNAUTHENTICATED)

    if await db.get(AdminUser, user_id) is None:
        logger.warning("Authenticated user is not an admin", extra={"user_id": user_id})
        return AdminAuthorization(AuthOutcome.FORBIDDEN, user_id=user_id)

    return AdminAuthorization(AuthOutcome.GRANTED, user_id=user_id, via="session")


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> AdminAuthorization:
    auth = await authorize_admin(db, credentials.credentials if credentials else None)
    if auth.outcome is AuthOutcome.UNAUTHENTICATED:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if auth.outcome is AuthOutcome.FORBIDDEN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return auth
