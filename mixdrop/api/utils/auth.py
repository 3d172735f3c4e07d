"""
Dépendances FastAPI d'authentification, d'autorisation et de quotas.
"""
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from mixdrop.api.models.user_model import User
from mixdrop.api.services.auth_service import SessionService
from mixdrop.api.services.cache_service import CacheService, get_cache
from mixdrop.api.services.rate_limit_service import RateLimiter, retry_after
from mixdrop.api.utils.constants import SESSION_COOKIE_NAME, STATUS_ACTIVE
from mixdrop.api.utils.database import get_db
from mixdrop.api.utils.errors import ForbiddenError, RateLimitExceededError, UnauthorizedError
from mixdrop.api.utils.permissions import is_admin


def session_token(request: Request) -> Optional[str]:
    """Jeton de session : cookie, sinon en-tête `Authorization: Bearer`."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        return token
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    user = SessionService(db).get_user(session_token(request))
    # un compte suspendu ou banni est traité comme anonyme
    if user is None or user.status != STATUS_ACTIVE:
        return None
    return user


def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise UnauthorizedError()
    return user


def require_admin(user: User = Depends(require_user)) -> User:
    if not is_admin(user):
        raise ForbiddenError()
    return user


def get_rate_limiter(cache: CacheService = Depends(get_cache)) -> RateLimiter:
    return RateLimiter(cache)


async def _enforce(limiter: RateLimiter, user: User, action: str) -> None:
    result = await limiter.check(user.id, action)
    if not result.success:
        raise RateLimitExceededError(retry_after(result, limiter.clock()))


async def upload_rate_limit(user: User = Depends(require_user),
                            limiter: RateLimiter = Depends(get_rate_limiter)) -> User:
    await _enforce(limiter, user, "upload")
    return user


async def api_rate_limit(user: User = Depends(require_user),
                         limiter: RateLimiter = Depends(get_rate_limiter)) -> User:
    await _enforce(limiter, user, "api")
    return user
