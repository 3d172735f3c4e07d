"""
Service métier pour l'envoi des mixes.

Toute la validation précède la première écriture dans le stockage objet ;
si la persistance échoue ensuite, les objets déjà envoyés sont supprimés
(best-effort) avant de propager l'erreur d'origine.
"""
import asyncio
import io
import json
import math
from dataclasses import dataclass
from typing import List, Optional

import mutagen
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from mixdrop.api.models.mix_model import Mix
from mixdrop.api.services.cache_service import CacheKeys, CacheService
from mixdrop.api.services.storage_service import StorageService, generate_storage_key
from mixdrop.api.services.waveform_service import empty_waveform_peaks, generate_waveform_peaks
from mixdrop.api.utils.constants import (
    ALLOWED_AUDIO_TYPES,
    ALLOWED_IMAGE_TYPES,
    ARTIST_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    MAX_AUDIO_SIZE,
    MAX_COVER_ART_SIZE,
    MB,
    PRESIGNED_UPLOAD_EXPIRY,
    TITLE_MAX_LENGTH,
    WAVEFORM_DEFAULT_SAMPLES,
)
from mixdrop.api.utils.errors import BadRequestError, FieldViolation, ForbiddenError, ValidationFailedError
from mixdrop.api.utils.logging import logger

UNKNOWN_ARTIST = "Unknown Artist"


@dataclass
class UploadedFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_file_size(size: int, kind: str) -> Optional[FieldViolation]:
    max_size = MAX_AUDIO_SIZE if kind == "audio" else MAX_COVER_ART_SIZE
    if size > max_size:
        return FieldViolation(
            field="audio" if kind == "audio" else "coverArt",
            message=f"File size exceeds maximum allowed ({max_size // MB}MB)",
            status_code=413,
        )
    return None


def validate_file_type(content_type: Optional[str], kind: str) -> Optional[FieldViolation]:
    allowed = ALLOWED_AUDIO_TYPES if kind == "audio" else ALLOWED_IMAGE_TYPES
    if content_type not in allowed:
        return FieldViolation(
            field="audio" if kind == "audio" else "coverArt",
            message=f"Invalid file type. Allowed: {', '.join(allowed)}",
        )
    return None


def sanitize_input(value: Optional[str], max_length: int) -> Optional[str]:
    """Supprime les espaces, tronque à max_length ; une chaîne vide devient None."""
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return trimmed[:max_length]


def validate_mix_metadata(title: Optional[str], artist: Optional[str],
                          description: Optional[str] = None) -> List[FieldViolation]:
    """Retourne toutes les violations, sans s'arrêter à la première."""
    violations = []
    if not sanitize_input(title, TITLE_MAX_LENGTH):
        violations.append(FieldViolation(field="title", message="Title is required"))
    if not sanitize_input(artist, ARTIST_MAX_LENGTH):
        violations.append(FieldViolation(field="artist", message="Artist is required"))
    return violations


def extract_audio_duration(buffer: bytes, content_type: Optional[str] = None) -> int:
    """Durée en secondes lue dans les métadonnées du conteneur, 0 si illisible."""
    try:
        audio = mutagen.File(io.BytesIO(buffer))
        if audio is None or audio.info is None:
            logger.warning(f"[UPLOAD] Format audio non reconnu ({content_type}), durée à 0")
            return 0
        return int(math.floor(audio.info.length or 0))
    except Exception as e:
        logger.warning(f"[UPLOAD] Extraction de la durée impossible ({content_type}): {e}")
        return 0


class UploadService:
    def __init__(self, db: Session, storage: StorageService, cache: CacheService):
        self.db = db
        self.storage = storage
        self.cache = cache

    async def upload_mix(self, user_id: int, title: Optional[str], artist: Optional[str],
                         description: Optional[str], is_public: bool,
                         audio: Optional[UploadedFile], cover: Optional[UploadedFile] = None) -> Mix:
        violations = validate_mix_metadata(title, artist, description)
        if violations:
            raise ValidationFailedError(violations)

        if audio is None or audio.size == 0:
            raise ValidationFailedError([FieldViolation(field="audio", message="Audio file is required")])
        for check in (validate_file_size(audio.size, "audio"), validate_file_type(audio.content_type, "audio")):
            if check:
                raise ValidationFailedError([check])

        if cover is not None and cover.size == 0:
            cover = None
        if cover is not None:
            for check in (validate_file_size(cover.size, "cover"), validate_file_type(cover.content_type, "cover")):
                if check:
                    raise ValidationFailedError([check])

        uploaded_keys: List[str] = []
        audio_key = generate_storage_key(user_id, audio.filename, "mixes")
        await run_in_threadpool(self.storage.upload, audio_key, audio.data, audio.content_type)
        uploaded_keys.append(audio_key)

        cover_key = None
        try:
            if cover is not None:
                cover_key = generate_storage_key(user_id, cover.filename, "covers")
                await run_in_threadpool(self.storage.upload, cover_key, cover.data, cover.content_type)
                uploaded_keys.append(cover_key)

            # calcul sur tout le buffer : hors de la boucle d'événements
            peaks = await asyncio.to_thread(generate_waveform_peaks, audio.data, WAVEFORM_DEFAULT_SAMPLES)
            duration = await asyncio.to_thread(extract_audio_duration, audio.data, audio.content_type)

            mix = Mix(
                title=sanitize_input(title, TITLE_MAX_LENGTH),
                artist=sanitize_input(artist, ARTIST_MAX_LENGTH),
                description=sanitize_input(description, DESCRIPTION_MAX_LENGTH),
                duration=duration,
                file_size=audio.size,
                storage_key=audio_key,
                cover_art_key=cover_key,
                waveform_peaks=json.dumps(peaks),
                is_public=is_public,
                uploader_id=user_id,
            )
            self.db.add(mix)
            self.db.commit()
            self.db.refresh(mix)
        except Exception:
            self.db.rollback()
            await self._cleanup(uploaded_keys)
            raise

        await self.cache.delete_pattern(CacheKeys.MIXES_LIST_PATTERN)
        logger.info(f"[UPLOAD] Mix {mix.id} envoyé par l'utilisateur {user_id} ({audio.size} octets, {duration}s)")
        return mix

    async def create_presigned_upload(self, user_id: int, filename: Optional[str],
                                      content_type: Optional[str], file_size: Optional[int]) -> dict:
        if not filename or not content_type or not file_size:
            raise BadRequestError("Missing required fields: filename, contentType, fileSize")

        is_image = content_type in ALLOWED_IMAGE_TYPES
        is_audio = content_type in ALLOWED_AUDIO_TYPES
        if not is_image and not is_audio:
            raise BadRequestError(
                f"Invalid file type. Allowed types: {', '.join(ALLOWED_AUDIO_TYPES + ALLOWED_IMAGE_TYPES)}"
            )
        violation = validate_file_size(file_size, "cover" if is_image else "audio")
        if violation:
            raise ValidationFailedError([violation])

        storage_key = generate_storage_key(user_id, filename, "covers" if is_image else "mixes")
        url = await run_in_threadpool(
            self.storage.presigned_upload_url, storage_key, content_type, PRESIGNED_UPLOAD_EXPIRY
        )
        logger.info(f"[UPLOAD] URL présignée émise pour {storage_key} ({file_size} octets, {content_type})")
        return {"presignedUrl": url, "storageKey": storage_key, "expiresIn": PRESIGNED_UPLOAD_EXPIRY}

    async def finalize_upload(self, user_id: int, storage_key: Optional[str], title: Optional[str],
                              duration: Optional[float], artist: Optional[str] = None,
                              description: Optional[str] = None, is_public: Optional[bool] = None,
                              cover_art_key: Optional[str] = None) -> Mix:
        clean_title = sanitize_input(title, TITLE_MAX_LENGTH)
        if not storage_key or not clean_title or not duration:
            raise BadRequestError("Missing required fields: storageKey, title, duration")
        if not storage_key.startswith(f"mixes/{user_id}/"):
            raise ForbiddenError()
        if cover_art_key and not cover_art_key.startswith(f"covers/{user_id}/"):
            raise ForbiddenError()

        stored = await run_in_threadpool(self.storage.head, storage_key)
        if not stored:
            raise BadRequestError("Audio file not found in storage. Upload may have failed.")
        if not stored.get("size"):
            raise BadRequestError("Invalid file: size is 0 bytes")

        try:
            mix = Mix(
                title=clean_title,
                artist=sanitize_input(artist, ARTIST_MAX_LENGTH) or UNKNOWN_ARTIST,
                description=sanitize_input(description, DESCRIPTION_MAX_LENGTH),
                duration=int(round(duration)),
                file_size=stored["size"],
                storage_key=storage_key,
                cover_art_key=cover_art_key or None,
                # le fichier n'a pas transité par le serveur
                waveform_peaks=json.dumps(empty_waveform_peaks(WAVEFORM_DEFAULT_SAMPLES)),
                is_public=True if is_public is None else is_public,
                uploader_id=user_id,
            )
            self.db.add(mix)
            self.db.commit()
            self.db.refresh(mix)
        except Exception:
            self.db.rollback()
            await self._cleanup([storage_key])
            raise

        await self.cache.delete_pattern(CacheKeys.MIXES_LIST_PATTERN)
        logger.info(f"[UPLOAD] Envoi direct finalisé: mix {mix.id} ({storage_key})")
        return mix

    async def _cleanup(self, keys: List[str]) -> None:
        for key in keys:
            try:
                await run_in_threadpool(self.storage.delete, key)
                logger.warning(f"[UPLOAD] Objet orphelin supprimé après échec de persistance: {key}")
            except Exception as e:
                logger.error(f"[UPLOAD] Nettoyage impossible pour {key}: {e}")
