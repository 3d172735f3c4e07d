from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session as SQLAlchemySession

from mixdrop.api.models.user_model import User
from mixdrop.api.schemas.playlists_schema import PlaylistAddMix, PlaylistCreate, PlaylistUpdate
from mixdrop.api.services.playlist_service import PlaylistService
from mixdrop.api.utils.auth import api_rate_limit, get_current_user
from mixdrop.api.utils.database import get_db

router = APIRouter(prefix="/playlists", tags=["playlists"])


def get_playlist_service(db: SQLAlchemySession = Depends(get_db)) -> PlaylistService:
    return PlaylistService(db)


@router.get("")
async def list_playlists(userId: Optional[int] = Query(None),
                         user: Optional[User] = Depends(get_current_user),
                         service: PlaylistService = Depends(get_playlist_service)):
    return service.list_playlists(user, userId)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_playlist(payload: PlaylistCreate, user: User = Depends(api_rate_limit),
                          service: PlaylistService = Depends(get_playlist_service)):
    return service.create_playlist(user, payload)


@router.get("/{playlist_id}")
async def get_playlist(playlist_id: int, user: Optional[User] = Depends(get_current_user),
                       service: PlaylistService = Depends(get_playlist_service)):
    return service.get_playlist(playlist_id, user)


@router.patch("/{playlist_id}")
async def update_playlist(playlist_id: int, payload: PlaylistUpdate, user: User = Depends(api_rate_limit),
                          service: PlaylistService = Depends(get_playlist_service)):
    return service.update_playlist(playlist_id, user, payload)


@router.delete("/{playlist_id}")
async def delete_playlist(playlist_id: int, user: User = Depends(api_rate_limit),
                          service: PlaylistService = Depends(get_playlist_service)):
    service.delete_playlist(playlist_id, user)
    return {"success": True}


@router.post("/{playlist_id}/mixes", status_code=status.HTTP_201_CREATED)
async def add_mix(playlist_id: int, payload: PlaylistAddMix, user: User = Depends(api_rate_limit),
                  service: PlaylistService = Depends(get_playlist_service)):
    return service.add_mix(playlist_id, user, payload.mix_id)


@router.delete("/{playlist_id}/mixes")
async def remove_mix(playlist_id: int, mixId: Optional[int] = Query(None), user: User = Depends(api_rate_limit),
                     service: PlaylistService = Depends(get_playlist_service)):
    service.remove_mix(playlist_id, user, mixId)
    return {"success": True}
