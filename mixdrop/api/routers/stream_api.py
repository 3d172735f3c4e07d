from typing import Optional

from fastapi import APIRouter, Depends, Query

from mixdrop.api.models.user_model import User
from mixdrop.api.routers.mixes_api import get_mix_service
from mixdrop.api.services.mix_service import MixService
from mixdrop.api.utils.auth import get_current_user

router = APIRouter(prefix="/stream", tags=["stream"])


@router.get("/{mix_id}", description="URL signée de lecture de l'audio ou de la pochette")
async def stream_url(mix_id: int, type: str = Query("audio"),
                     user: Optional[User] = Depends(get_current_user),
                     service: MixService = Depends(get_mix_service)):
    return await service.stream_url(mix_id, user, type)
