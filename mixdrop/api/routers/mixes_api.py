from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as SQLAlchemySession

from mixdrop.api.models.user_model import User
from mixdrop.api.schemas.mixes_schema import MixUpdate
from mixdrop.api.services.cache_service import CacheService, get_cache
from mixdrop.api.services.mix_service import MixService
from mixdrop.api.services.storage_service import StorageService, get_storage
from mixdrop.api.utils.auth import api_rate_limit, get_current_user
from mixdrop.api.utils.constants import DEFAULT_PAGE_SIZE
from mixdrop.api.utils.database import get_db
from mixdrop.api.utils.errors import BadRequestError

router = APIRouter(prefix="/mixes", tags=["mixes"])


def get_mix_service(db: SQLAlchemySession = Depends(get_db),
                    cache: CacheService = Depends(get_cache),
                    storage: StorageService = Depends(get_storage)) -> MixService:
    return MixService(db, cache, storage)


def parse_ids(value: Optional[str]) -> List[int]:
    """`1,2,3` -> [1, 2, 3] ; les segments vides sont ignorés."""
    if not value:
        return []
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise BadRequestError("Invalid uploaders filter")


@router.get("", description="Flux des mixes, du plus récent au plus ancien")
async def list_mixes(page: int = Query(1), limit: int = Query(DEFAULT_PAGE_SIZE),
                     uploaders: Optional[str] = Query(None),
                     user: Optional[User] = Depends(get_current_user),
                     service: MixService = Depends(get_mix_service)):
    return await service.list_mixes(user, page, limit, parse_ids(uploaders))


@router.get("/{mix_id}")
async def get_mix(mix_id: int, user: Optional[User] = Depends(get_current_user),
                  service: MixService = Depends(get_mix_service)):
    return await service.get_mix(mix_id, user)


@router.patch("/{mix_id}")
async def update_mix(mix_id: int, changes: MixUpdate, user: User = Depends(api_rate_limit),
                     service: MixService = Depends(get_mix_service)):
    return await service.update_mix(mix_id, user, changes)


@router.delete("/{mix_id}")
async def delete_mix(mix_id: int, user: User = Depends(api_rate_limit),
                     service: MixService = Depends(get_mix_service)):
    await service.delete_mix(mix_id, user)
    return {"success": True}


@router.get("/{mix_id}/download")
async def download_mix(mix_id: int, user: Optional[User] = Depends(get_current_user),
                       service: MixService = Depends(get_mix_service)):
    return await service.download_url(mix_id, user)


@router.get("/{mix_id}/waveform")
async def get_waveform(mix_id: int, user: Optional[User] = Depends(get_current_user),
                       service: MixService = Depends(get_mix_service)):
    return await service.waveform(mix_id, user)
