from datetime import datetime
from typing import Literal, Optional

from .base_schema import BaseSchema


class UserSummary(BaseSchema):
    id: int
    name: Optional[str] = None
    image: Optional[str] = None


class User(UserSummary):
    email: Optional[str] = None
    role: str
    status: str
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class AdminUser(User):
    mix_count: int = 0
    playlist_count: int = 0
    storage_used: int = 0


class AdminUserUpdate(BaseSchema):
    role: Optional[Literal["user", "admin"]] = None
    status: Optional[Literal["active", "suspended", "banned"]] = None


class OAuthProfile(BaseSchema):
    """Profil renvoyé par le fournisseur OAuth, normalisé."""
    provider_account_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
