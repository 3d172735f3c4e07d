from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session as SQLAlchemySession

from mixdrop.api.models.user_model import User
from mixdrop.api.schemas.mixes_schema import FinalizeUploadRequest, PresignedUploadRequest
from mixdrop.api.services.cache_service import CacheService, get_cache
from mixdrop.api.services.mix_service import serialize_mix
from mixdrop.api.services.storage_service import StorageService, get_storage
from mixdrop.api.services.upload_service import UploadedFile, UploadService, validate_file_size
from mixdrop.api.utils.auth import require_user, upload_rate_limit
from mixdrop.api.utils.database import get_db
from mixdrop.api.utils.errors import ValidationFailedError

router = APIRouter(prefix="/upload", tags=["upload"])


def get_upload_service(db: SQLAlchemySession = Depends(get_db),
                       cache: CacheService = Depends(get_cache),
                       storage: StorageService = Depends(get_storage)) -> UploadService:
    return UploadService(db, storage, cache)


def _check_size(upload: Optional[UploadFile], kind: str) -> None:
    # taille connue dès le parsing multipart : refus avant de charger le fichier en mémoire
    if upload is None or upload.size is None:
        return
    violation = validate_file_size(upload.size, kind)
    if violation:
        raise ValidationFailedError([violation])


async def _read(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    if upload is None:
        return None
    data = await upload.read()
    return UploadedFile(
        filename=upload.filename or "upload",
        content_type=upload.content_type or "application/octet-stream",
        data=data,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_mix(audio: Optional[UploadFile] = File(None),
                     coverArt: Optional[UploadFile] = File(None),
                     title: Optional[str] = Form(None),
                     artist: Optional[str] = Form(None),
                     description: Optional[str] = Form(None),
                     isPublic: Optional[str] = Form(None),
                     user: User = Depends(upload_rate_limit),
                     service: UploadService = Depends(get_upload_service)):
    _check_size(audio, "audio")
    _check_size(coverArt, "cover")
    mix = await service.upload_mix(
        user_id=user.id,
        title=title,
        artist=artist,
        description=description,
        is_public=(isPublic or "").lower() in ("on", "true"),
        audio=await _read(audio),
        cover=await _read(coverArt),
    )
    return {"success": True, "mix": serialize_mix(mix)}


@router.post("/presigned-url")
async def presigned_url(payload: PresignedUploadRequest, user: User = Depends(upload_rate_limit),
                        service: UploadService = Depends(get_upload_service)):
    return await service.create_presigned_upload(user.id, payload.filename, payload.content_type, payload.file_size)


@router.post("/finalize", status_code=status.HTTP_201_CREATED)
async def finalize(payload: FinalizeUploadRequest, user: User = Depends(require_user),
                   service: UploadService = Depends(get_upload_service)):
    mix = await service.finalize_upload(
        user_id=user.id,
        storage_key=payload.storage_key,
        title=payload.title,
        duration=payload.duration,
        artist=payload.artist,
        description=payload.description,
        is_public=payload.is_public,
        cover_art_key=payload.cover_art_key,
    )
    return {"success": True, "mix": serialize_mix(mix)}
