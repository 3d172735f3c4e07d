"""
Service métier des utilisateurs : connexion OAuth, profils publics et administration.

Invariant : il reste toujours au moins un administrateur. La vérification
lit le nombre d'admins puis écrit, sans verrou (course acceptée).
"""
import math
from datetime import timedelta
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from mixdrop.api.models.mix_model import Mix
from mixdrop.api.models.playlist_model import Playlist
from mixdrop.api.models.user_model import User
from mixdrop.api.schemas.users_schema import AdminUser, AdminUserUpdate, OAuthProfile, User as UserSchema, UserSummary
from mixdrop.api.services.audit_service import USER_DELETE, USER_ROLE_CHANGE, USER_STATUS_CHANGE, AuditService
from mixdrop.api.services.mix_service import clamp_pagination, serialize_mix
from mixdrop.api.services.playlist_service import PlaylistService
from mixdrop.api.utils.constants import (
    DEFAULT_PAGE_SIZE,
    MB,
    ROLE_ADMIN,
    ROLE_USER,
    STATUS_ACTIVE,
    STATUS_BANNED,
    STATUS_SUSPENDED,
)
from mixdrop.api.utils.database import utcnow
from mixdrop.api.utils.errors import BadRequestError, ForbiddenError, NotFoundError
from mixdrop.api.utils.logging import logger
from mixdrop.api.utils.settings import get_settings

USER_NOT_FOUND = "User not found"


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def _load(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError(USER_NOT_FOUND)
        return user

    def _admin_count(self) -> int:
        return self.db.scalar(select(func.count(User.id)).where(User.role == ROLE_ADMIN)) or 0

    def sign_in(self, profile: OAuthProfile) -> User:
        """
        Crée ou retrouve l'utilisateur correspondant au profil OAuth.

        Un email présent dans ADMIN_EMAILS donne le rôle admin à la création ;
        le tout premier utilisateur devient admin. Les comptes suspendus ou
        bannis sont refusés.
        """
        user = self.db.scalar(select(User).where(User.provider_account_id == profile.provider_account_id))
        if user is None and profile.email:
            user = self.db.scalar(select(User).where(User.email == profile.email))
            if user is not None:
                user.provider_account_id = profile.provider_account_id

        if user is None:
            admin_emails = get_settings().admin_emails
            is_admin_email = bool(profile.email) and profile.email.lower() in admin_emails
            user = User(
                provider_account_id=profile.provider_account_id,
                email=profile.email,
                name=profile.name,
                image=profile.image,
                role=ROLE_ADMIN if is_admin_email else ROLE_USER,
                status=STATUS_ACTIVE,
            )
            self.db.add(user)
            self.db.flush()
            logger.info(f"[AUTH] Nouvel utilisateur créé: {user.id}")

        if user.status in (STATUS_BANNED, STATUS_SUSPENDED):
            self.db.rollback()
            logger.warning(f"[AUTH] Connexion refusée pour l'utilisateur {user.id} (statut {user.status})")
            raise ForbiddenError("Your account has been suspended or banned")

        # premier utilisateur : administrateur par défaut
        if self.db.scalar(select(func.count(User.id))) == 1 and user.email:
            user.role = ROLE_ADMIN

        user.last_login_at = utcnow()
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"[AUTH] Connexion de l'utilisateur {user.id}")
        return user

    def get_profile(self, user_id: int, viewer: Optional[User]) -> dict:
        user = self._load(user_id)
        is_self = viewer is not None and viewer.id == user.id

        mixes_query = select(Mix).where(Mix.uploader_id == user.id)
        if not is_self:
            mixes_query = mixes_query.where(Mix.is_public.is_(True))
        mixes = self.db.scalars(mixes_query.order_by(Mix.created_at.desc(), Mix.id.desc())).all()

        return {
            "user": UserSummary.model_validate(user).model_dump(mode="json", by_alias=True),
            "mixes": [serialize_mix(mix) for mix in mixes],
            "playlists": PlaylistService(self.db).list_playlists(viewer, user.id),
        }

    def _admin_view(self, user: User) -> dict:
        mix_count, storage_used = self.db.execute(
            select(func.count(Mix.id), func.coalesce(func.sum(Mix.file_size), 0)).where(Mix.uploader_id == user.id)
        ).one()
        playlist_count = self.db.scalar(select(func.count(Playlist.id)).where(Playlist.user_id == user.id)) or 0
        data = AdminUser.model_validate(user).model_copy(update={
            "mix_count": mix_count,
            "playlist_count": playlist_count,
            "storage_used": int(storage_used or 0),
        })
        return data.model_dump(mode="json", by_alias=True)

    def list_users(self, search: Optional[str] = None, role: Optional[str] = None,
                   status: Optional[str] = None, page: Optional[int] = 1,
                   limit: Optional[int] = DEFAULT_PAGE_SIZE) -> dict:
        page, limit = clamp_pagination(page, limit)
        query = select(User)
        if role:
            query = query.where(User.role == role)
        if status:
            query = query.where(User.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        total = self.db.scalar(select(func.count()).select_from(query.subquery())) or 0
        users = self.db.scalars(
            query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit)
        ).all()
        return {
            "users": [self._admin_view(user) for user in users],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit),
            },
        }

    def get_user(self, user_id: int) -> dict:
        return self._admin_view(self._load(user_id))

    def update_user(self, user_id: int, actor: User, changes: AdminUserUpdate) -> dict:
        user = self._load(user_id)
        old_role, old_status = user.role, user.status

        if changes.role == ROLE_USER and old_role == ROLE_ADMIN and self._admin_count() <= 1:
            raise BadRequestError("Cannot demote the last admin")

        if changes.role:
            user.role = changes.role
        if changes.status:
            user.status = changes.status
        self.db.commit()
        self.db.refresh(user)

        audit = AuditService(self.db)
        if changes.role and changes.role != old_role:
            audit.record(USER_ROLE_CHANGE, actor.id, user.id, {
                "email": user.email, "oldRole": old_role, "newRole": changes.role,
            })
        if changes.status and changes.status != old_status:
            audit.record(USER_STATUS_CHANGE, actor.id, user.id, {
                "email": user.email, "oldStatus": old_status, "newStatus": changes.status,
            })
        return UserSchema.model_validate(user).model_dump(mode="json", by_alias=True)

    def delete_user(self, user_id: int, actor: User) -> None:
        """Suppression logique : le compte passe au statut banni."""
        user = self._load(user_id)
        if user.role == ROLE_ADMIN and self._admin_count() <= 1:
            raise BadRequestError("Cannot delete the last admin")
        user.status = STATUS_BANNED
        self.db.commit()
        AuditService(self.db).record(USER_DELETE, actor.id, user.id, {"email": user.email})

    def stats(self) -> dict:
        week_ago = utcnow() - timedelta(days=7)
        total_bytes = int(self.db.scalar(select(func.coalesce(func.sum(Mix.file_size), 0))) or 0)

        def count(model, *criteria):
            return self.db.scalar(select(func.count(model.id)).where(*criteria)) or 0

        return {
            "users": {
                "total": count(User),
                "active": count(User, User.status == STATUS_ACTIVE),
                "admins": count(User, User.role == ROLE_ADMIN),
                "newThisWeek": count(User, User.created_at >= week_ago),
            },
            "mixes": {
                "total": count(Mix),
                "newThisWeek": count(Mix, Mix.created_at >= week_ago),
            },
            "playlists": {
                "total": count(Playlist),
                "newThisWeek": count(Playlist, Playlist.created_at >= week_ago),
            },
            "storage": {
                "totalBytes": total_bytes,
                "totalMB": round(total_bytes / MB),
                "totalGB": round(total_bytes / MB / 1024, 2),
            },
        }
