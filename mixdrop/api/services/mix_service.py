"""
Service métier des mixes : flux paginé, détail, édition, suppression et URLs.

Lectures en cache-aside ; toute mutation invalide le détail du mix, ses URLs,
sa forme d'onde et l'ensemble des pages de flux.
"""
import json
import math
import re
from typing import List, Optional

from sqlalchemy import or_, select, func
from sqlalchemy.orm import Session, selectinload
from starlette.concurrency import run_in_threadpool

from mixdrop.api.models.mix_model import Mix as MixModel
from mixdrop.api.models.user_model import User
from mixdrop.api.schemas.mixes_schema import Mix, MixUpdate
from mixdrop.api.services.audit_service import MIX_DELETE, MIX_UPDATE, AuditService
from mixdrop.api.services.cache_service import CacheKeys, CacheService
from mixdrop.api.services.storage_service import StorageService
from mixdrop.api.services.upload_service import sanitize_input
from mixdrop.api.utils.constants import (
    ARTIST_MAX_LENGTH,
    CACHE_TTL_MIX_DETAIL,
    CACHE_TTL_MIXES_LIST,
    CACHE_TTL_STREAM_URL,
    CACHE_TTL_WAVEFORM_PEAKS,
    DEFAULT_PAGE_SIZE,
    DESCRIPTION_MAX_LENGTH,
    MAX_PAGE_SIZE,
    PRESIGNED_DOWNLOAD_EXPIRY,
    TITLE_MAX_LENGTH,
)
from mixdrop.api.utils.errors import BadRequestError, ForbiddenError, NotFoundError
from mixdrop.api.utils.logging import logger
from mixdrop.api.utils.permissions import can_manage, can_view

MIX_NOT_FOUND = "Mix not found"
STREAM_TYPES = ("audio", "cover")


def serialize_mix(mix: MixModel) -> dict:
    return Mix.model_validate(mix).model_dump(mode="json", by_alias=True)


def clamp_pagination(page: Optional[int], limit: Optional[int]):
    page = max(1, page or 1)
    limit = min(max(1, limit or DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
    return page, limit


def download_filename(mix: MixModel) -> str:
    """`artist - title.ext` sans caractères spéciaux, espaces remplacés par `_`."""
    extension = mix.storage_key.rsplit(".", 1)[-1] if "." in mix.storage_key else "mp3"
    filename = f"{mix.artist} - {mix.title}.{extension}"
    filename = re.sub(r"[^a-z0-9\s\-_.]", "", filename, flags=re.IGNORECASE)
    return re.sub(r"\s+", "_", filename)


class MixService:
    def __init__(self, db: Session, cache: CacheService, storage: Optional[StorageService] = None):
        self.db = db
        self.cache = cache
        self.storage = storage

    def _load(self, mix_id: int) -> MixModel:
        mix = self.db.get(MixModel, mix_id)
        if not mix:
            raise NotFoundError(MIX_NOT_FOUND)
        return mix

    def _load_visible(self, mix_id: int, viewer: Optional[User]) -> MixModel:
        mix = self._load(mix_id)
        # un mix privé n'existe pas pour les autres utilisateurs
        if not can_view(viewer, mix.uploader_id, mix.is_public):
            raise NotFoundError(MIX_NOT_FOUND)
        return mix

    def _load_managed(self, mix_id: int, actor: User) -> MixModel:
        mix = self._load(mix_id)
        if not can_manage(actor, mix.uploader_id):
            raise ForbiddenError()
        return mix

    async def list_mixes(self, viewer: Optional[User], page: Optional[int] = 1,
                         limit: Optional[int] = DEFAULT_PAGE_SIZE,
                         uploaders: Optional[List[int]] = None) -> dict:
        page, limit = clamp_pagination(page, limit)
        uploaders = uploaders or []

        cache_key = None
        if page == 1 and not uploaders:
            cache_key = (CacheKeys.mixes_list_for_user(1, viewer.id) if viewer
                         else CacheKeys.mixes_list(1, public=True))
            cached = await self.cache.get(cache_key)
            if cached:
                return cached

        query = select(MixModel)
        if viewer is None:
            query = query.where(MixModel.is_public.is_(True))
        else:
            query = query.where(or_(MixModel.is_public.is_(True), MixModel.uploader_id == viewer.id))
        if uploaders:
            query = query.where(MixModel.uploader_id.in_(uploaders))

        total = self.db.scalar(select(func.count()).select_from(query.subquery())) or 0
        mixes = self.db.scalars(
            query.options(selectinload(MixModel.uploader))
            .order_by(MixModel.created_at.desc(), MixModel.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        response = {
            "mixes": [serialize_mix(mix) for mix in mixes],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit),
            },
            "filters": {"uploaders": uploaders},
        }
        if cache_key:
            await self.cache.set(cache_key, response, CACHE_TTL_MIXES_LIST)
        return response

    async def get_mix(self, mix_id: int, viewer: Optional[User]) -> dict:
        cache_key = CacheKeys.mix(mix_id)
        data = await self.cache.get(cache_key)
        if not data:
            data = serialize_mix(self._load(mix_id))
            await self.cache.set(cache_key, data, CACHE_TTL_MIX_DETAIL)
        if not can_view(viewer, data["uploaderId"], data["isPublic"]):
            raise NotFoundError(MIX_NOT_FOUND)
        return data

    async def update_mix(self, mix_id: int, actor: User, changes: MixUpdate) -> dict:
        mix = self._load_managed(mix_id, actor)

        title = sanitize_input(changes.title, TITLE_MAX_LENGTH)
        artist = sanitize_input(changes.artist, ARTIST_MAX_LENGTH)
        fields = changes.model_fields_set
        if title:
            mix.title = title
        if artist:
            mix.artist = artist
        if "description" in fields:
            mix.description = sanitize_input(changes.description, DESCRIPTION_MAX_LENGTH)
        if "is_public" in fields and changes.is_public is not None:
            mix.is_public = changes.is_public
        self.db.commit()
        self.db.refresh(mix)

        await self.cache.invalidate_mix(mix_id)
        if actor.id != mix.uploader_id:
            AuditService(self.db).record(MIX_UPDATE, actor.id, mix_id, {
                "ownerId": mix.uploader_id,
                "fields": sorted(fields),
            })
        return serialize_mix(mix)

    async def delete_mix(self, mix_id: int, actor: User) -> None:
        mix = self._load_managed(mix_id, actor)
        details = {"title": mix.title, "ownerId": mix.uploader_id, "storageKey": mix.storage_key}

        # stockage d'abord ; un row orphelin est rattrapé par la réconciliation
        await run_in_threadpool(self.storage.delete, mix.storage_key)
        if mix.cover_art_key:
            await run_in_threadpool(self.storage.delete, mix.cover_art_key)

        self.db.delete(mix)
        self.db.commit()

        await self.cache.invalidate_mix(mix_id)
        AuditService(self.db).record(MIX_DELETE, actor.id, mix_id, details)
        logger.info(f"[API] Mix {mix_id} supprimé par l'utilisateur {actor.id}")

    async def stream_url(self, mix_id: int, viewer: Optional[User], kind: str = "audio") -> dict:
        if kind not in STREAM_TYPES:
            raise BadRequestError(f"Invalid type. Allowed: {', '.join(STREAM_TYPES)}")
        mix = self._load_visible(mix_id, viewer)
        key = mix.storage_key if kind == "audio" else mix.cover_art_key
        if not key:
            raise NotFoundError("No cover art")

        cache_key = CacheKeys.stream(mix_id, kind)
        cached = await self.cache.get(cache_key)
        if cached:
            return cached
        url = await run_in_threadpool(self.storage.presigned_download_url, key, PRESIGNED_DOWNLOAD_EXPIRY)
        response = {"url": url}
        await self.cache.set(cache_key, response, CACHE_TTL_STREAM_URL)
        return response

    async def download_url(self, mix_id: int, viewer: Optional[User]) -> dict:
        mix = self._load_visible(mix_id, viewer)
        filename = download_filename(mix)
        url = await run_in_threadpool(
            self.storage.presigned_download_url, mix.storage_key, PRESIGNED_DOWNLOAD_EXPIRY, filename
        )
        return {"url": url, "filename": filename}

    async def waveform(self, mix_id: int, viewer: Optional[User]) -> dict:
        mix = self._load_visible(mix_id, viewer)
        cache_key = CacheKeys.waveform(mix_id)
        cached = await self.cache.get(cache_key)
        if cached:
            return cached
        response = {"peaks": json.loads(mix.waveform_peaks) if mix.waveform_peaks else []}
        await self.cache.set(cache_key, response, CACHE_TTL_WAVEFORM_PEAKS)
        return response
