"""
Service métier pour la gestion des playlists.
L'ordre des mixes est explicite : un ajout se place en max(order) + 1.
"""
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mixdrop.api.models.mix_model import Mix
from mixdrop.api.models.playlist_model import Playlist as PlaylistModel, PlaylistMix
from mixdrop.api.models.user_model import User
from mixdrop.api.schemas.playlists_schema import (
    Playlist,
    PlaylistCreate,
    PlaylistDetail,
    PlaylistEntry,
    PlaylistUpdate,
)
from mixdrop.api.services.audit_service import PLAYLIST_DELETE, AuditService
from mixdrop.api.services.upload_service import sanitize_input
from mixdrop.api.utils.constants import PLAYLIST_DESCRIPTION_MAX_LENGTH, PLAYLIST_NAME_MAX_LENGTH
from mixdrop.api.utils.errors import BadRequestError, ForbiddenError, NotFoundError
from mixdrop.api.utils.logging import logger
from mixdrop.api.utils.permissions import can_manage, can_view

PLAYLIST_NOT_FOUND = "Playlist not found"


class PlaylistService:
    def __init__(self, db: Session):
        self.db = db

    def _mix_counts(self, playlist_ids: List[int]) -> dict:
        if not playlist_ids:
            return {}
        rows = self.db.execute(
            select(PlaylistMix.playlist_id, func.count(PlaylistMix.id))
            .where(PlaylistMix.playlist_id.in_(playlist_ids))
            .group_by(PlaylistMix.playlist_id)
        ).all()
        return {playlist_id: count for playlist_id, count in rows}

    def _serialize(self, playlist: PlaylistModel, mix_count: int) -> dict:
        data = Playlist.model_validate(playlist).model_copy(update={"mix_count": mix_count})
        return data.model_dump(mode="json", by_alias=True)

    def _load(self, playlist_id: int) -> PlaylistModel:
        playlist = self.db.get(PlaylistModel, playlist_id)
        if not playlist:
            raise NotFoundError(PLAYLIST_NOT_FOUND)
        return playlist

    def _load_managed(self, playlist_id: int, actor: User) -> PlaylistModel:
        playlist = self._load(playlist_id)
        if not can_manage(actor, playlist.user_id):
            raise ForbiddenError()
        return playlist

    def list_playlists(self, viewer: Optional[User], user_id: Optional[int] = None) -> List[dict]:
        query = select(PlaylistModel)
        if user_id is not None:
            query = query.where(PlaylistModel.user_id == user_id)
            if viewer is None or viewer.id != user_id:
                query = query.where(PlaylistModel.is_public.is_(True))
        elif viewer is not None:
            query = query.where(or_(PlaylistModel.user_id == viewer.id, PlaylistModel.is_public.is_(True)))
        else:
            query = query.where(PlaylistModel.is_public.is_(True))

        playlists = self.db.scalars(query.order_by(PlaylistModel.created_at.desc(), PlaylistModel.id.desc())).all()
        counts = self._mix_counts([p.id for p in playlists])
        return [self._serialize(p, counts.get(p.id, 0)) for p in playlists]

    def create_playlist(self, owner: User, data: PlaylistCreate) -> dict:
        name = sanitize_input(data.name, PLAYLIST_NAME_MAX_LENGTH)
        if not name:
            raise BadRequestError("Playlist name is required")
        playlist = PlaylistModel(
            name=name,
            description=sanitize_input(data.description, PLAYLIST_DESCRIPTION_MAX_LENGTH),
            is_public=data.is_public,
            user_id=owner.id,
        )
        self.db.add(playlist)
        self.db.commit()
        self.db.refresh(playlist)
        logger.info(f"[API] Playlist {playlist.id} créée par l'utilisateur {owner.id}")
        return self._serialize(playlist, 0)

    def get_playlist(self, playlist_id: int, viewer: Optional[User]) -> dict:
        playlist = self._load(playlist_id)
        if not can_view(viewer, playlist.user_id, playlist.is_public):
            raise ForbiddenError()
        # un mix rendu privé depuis son ajout reste masqué aux autres visiteurs
        entries = [
            PlaylistEntry.model_validate(entry) for entry in playlist.entries
            if can_view(viewer, entry.mix.uploader_id, entry.mix.is_public)
        ]
        detail = PlaylistDetail.model_validate(playlist).model_copy(
            update={"mixes": entries, "mix_count": len(entries)}
        )
        return detail.model_dump(mode="json", by_alias=True)

    def update_playlist(self, playlist_id: int, actor: User, data: PlaylistUpdate) -> dict:
        playlist = self._load_managed(playlist_id, actor)
        fields = data.model_fields_set
        name = sanitize_input(data.name, PLAYLIST_NAME_MAX_LENGTH)
        if name:
            playlist.name = name
        if "description" in fields:
            playlist.description = sanitize_input(data.description, PLAYLIST_DESCRIPTION_MAX_LENGTH)
        if "is_public" in fields and data.is_public is not None:
            playlist.is_public = data.is_public
        self.db.commit()
        self.db.refresh(playlist)
        return self._serialize(playlist, self._mix_counts([playlist.id]).get(playlist.id, 0))

    def delete_playlist(self, playlist_id: int, actor: User) -> None:
        playlist = self._load_managed(playlist_id, actor)
        details = {"name": playlist.name, "ownerId": playlist.user_id}
        self.db.delete(playlist)
        self.db.commit()
        AuditService(self.db).record(PLAYLIST_DELETE, actor.id, playlist_id, details)

    def add_mix(self, playlist_id: int, actor: User, mix_id: Optional[int]) -> dict:
        if not mix_id:
            raise BadRequestError("Mix ID is required")
        playlist = self._load_managed(playlist_id, actor)
        mix = self.db.get(Mix, mix_id)
        if not mix or not can_view(actor, mix.uploader_id, mix.is_public):
            raise NotFoundError("Mix not found")

        existing = self.db.scalar(
            select(PlaylistMix).where(PlaylistMix.playlist_id == playlist.id, PlaylistMix.mix_id == mix_id)
        )
        if existing:
            raise BadRequestError("Mix already in playlist")

        max_order = self.db.scalar(
            select(func.max(PlaylistMix.order)).where(PlaylistMix.playlist_id == playlist.id)
        )
        entry = PlaylistMix(playlist_id=playlist.id, mix_id=mix_id,
                            order=0 if max_order is None else max_order + 1)
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            # ajout concurrent du même mix
            self.db.rollback()
            raise BadRequestError("Mix already in playlist")
        self.db.refresh(entry)
        return PlaylistEntry.model_validate(entry).model_dump(mode="json", by_alias=True)

    def remove_mix(self, playlist_id: int, actor: User, mix_id: Optional[int]) -> None:
        if not mix_id:
            raise BadRequestError("Mix ID is required")
        playlist = self._load_managed(playlist_id, actor)
        entry = self.db.scalar(
            select(PlaylistMix).where(PlaylistMix.playlist_id == playlist.id, PlaylistMix.mix_id == mix_id)
        )
        if entry:
            self.db.delete(entry)
            self.db.commit()
