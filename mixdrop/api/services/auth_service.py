"""
Authentification OAuth 2.0 (code d'autorisation) et sessions applicatives.

Le fournisseur n'est connu que par ses URLs ; la session est un jeton opaque
stocké en base, valable 30 jours.
"""
import secrets
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from mixdrop.api.models.user_model import AuthSession, User
from mixdrop.api.schemas.users_schema import OAuthProfile
from mixdrop.api.utils.constants import SESSION_MAX_AGE
from mixdrop.api.utils.database import utcnow
from mixdrop.api.utils.errors import ApiError, BadRequestError
from mixdrop.api.utils.logging import logger
from mixdrop.api.utils.settings import Settings, get_settings


class OAuthError(ApiError):
    status_code = 500
    default_message = "Authentication provider error"


def new_token() -> str:
    return secrets.token_urlsafe(32)


def _as_aware(value):
    # SQLite restitue des datetimes naïfs
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=utcnow().tzinfo)
    return value


class OAuthClient:
    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings or get_settings()
        self.client = client

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.settings.oauth_client_id,
            "redirect_uri": self.settings.oauth_redirect_url,
            "response_type": "code",
            "scope": self.settings.oauth_scope,
            "state": state,
        }
        return f"{self.settings.oauth_authorization_url}?{urlencode(params)}"

    async def _post_token(self, client: httpx.AsyncClient, code: str) -> str:
        response = await client.post(
            self.settings.oauth_token_url,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.oauth_redirect_url,
                "client_id": self.settings.oauth_client_id,
                "client_secret": self.settings.oauth_client_secret,
            },
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        token = response.json().get("access_token")
        if not token:
            raise OAuthError("No access token returned by provider")
        return token

    async def _get_profile(self, client: httpx.AsyncClient, access_token: str) -> OAuthProfile:
        response = await client.get(
            self.settings.oauth_userinfo_url,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        )
        response.raise_for_status()
        data = response.json()
        account_id = str(data.get("sub") or data.get("id") or "")
        if not account_id:
            raise OAuthError("Provider profile has no identifier")
        return OAuthProfile(
            provider_account_id=account_id,
            email=data.get("email"),
            name=data.get("name") or data.get("login"),
            image=data.get("picture") or data.get("avatar_url"),
        )

    async def fetch_profile(self, code: str) -> OAuthProfile:
        """Échange le code contre un jeton puis lit le profil utilisateur."""
        try:
            if self.client is not None:
                token = await self._post_token(self.client, code)
                return await self._get_profile(self.client, token)
            async with httpx.AsyncClient(timeout=10.0) as client:
                token = await self._post_token(client, code)
                return await self._get_profile(client, token)
        except httpx.HTTPError as e:
            logger.error(f"[AUTH] Échec de l'échange OAuth: {e}")
            raise OAuthError()


class SessionService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, user: User) -> AuthSession:
        session = AuthSession(
            token=new_token(),
            user_id=user.id,
            expires_at=utcnow() + timedelta(seconds=SESSION_MAX_AGE),
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        return session

    def get_user(self, token: Optional[str]) -> Optional[User]:
        if not token:
            return None
        session = self.db.scalar(select(AuthSession).where(AuthSession.token == token))
        if session is None:
            return None
        if _as_aware(session.expires_at) <= utcnow():
            self.db.delete(session)
            self.db.commit()
            return None
        return session.user

    def revoke(self, token: Optional[str]) -> None:
        if not token:
            return
        self.db.execute(delete(AuthSession).where(AuthSession.token == token))
        self.db.commit()


def check_state(expected: Optional[str], received: Optional[str]) -> None:
    if not expected or not received or not secrets.compare_digest(expected, received):
        raise BadRequestError("Invalid OAuth state")
