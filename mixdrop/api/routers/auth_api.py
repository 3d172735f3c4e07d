from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session as SQLAlchemySession

from mixdrop.api.models.user_model import User
from mixdrop.api.schemas.users_schema import User as UserSchema
from mixdrop.api.services.auth_service import OAuthClient, SessionService, check_state, new_token
from mixdrop.api.services.user_service import UserService
from mixdrop.api.utils.auth import get_current_user, session_token
from mixdrop.api.utils.constants import OAUTH_STATE_COOKIE_NAME, SESSION_COOKIE_NAME, SESSION_MAX_AGE
from mixdrop.api.utils.database import get_db
from mixdrop.api.utils.errors import BadRequestError
from mixdrop.api.utils.logging import logger
from mixdrop.api.utils.settings import get_settings

router = APIRouter(prefix="/auth", tags=["auth"])


def get_oauth_client() -> OAuthClient:
    return OAuthClient()


def _secure_cookies() -> bool:
    return get_settings().oauth_redirect_url.startswith("https://")


@router.get("/signin", description="Redirige vers le fournisseur OAuth")
async def signin(oauth: OAuthClient = Depends(get_oauth_client)):
    if not oauth.settings.oauth_enabled:
        raise BadRequestError("OAuth is not configured")
    state = new_token()
    response = RedirectResponse(oauth.authorization_url(state), status_code=307)
    response.set_cookie(OAUTH_STATE_COOKIE_NAME, state, max_age=600, httponly=True,
                        samesite="lax", secure=_secure_cookies())
    return response


@router.get("/callback")
async def callback(request: Request, code: Optional[str] = Query(None), state: Optional[str] = Query(None),
                   db: SQLAlchemySession = Depends(get_db), oauth: OAuthClient = Depends(get_oauth_client)):
    check_state(request.cookies.get(OAUTH_STATE_COOKIE_NAME), state)
    if not code:
        raise BadRequestError("Missing authorization code")

    profile = await oauth.fetch_profile(code)
    user = UserService(db).sign_in(profile)
    session = SessionService(db).create(user)

    response = RedirectResponse("/", status_code=303)
    response.delete_cookie(OAUTH_STATE_COOKIE_NAME)
    response.set_cookie(SESSION_COOKIE_NAME, session.token, max_age=SESSION_MAX_AGE, httponly=True,
                        samesite="lax", secure=_secure_cookies())
    logger.info(f"[AUTH] Session ouverte pour l'utilisateur {user.id}")
    return response


@router.post("/signout")
async def signout(request: Request, db: SQLAlchemySession = Depends(get_db)):
    SessionService(db).revoke(session_token(request))
    response = JSONResponse({"success": True})
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response


@router.get("/session")
async def read_session(user: Optional[User] = Depends(get_current_user)):
    if user is None:
        return {"user": None}
    return {"user": UserSchema.model_validate(user).model_dump(mode="json", by_alias=True)}
