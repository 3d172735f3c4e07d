"""
Tests du service d'envoi des mixes : validation, compensation et envoi direct.
"""
import json
import threading
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from mixdrop.api.models import Mix
from mixdrop.api.services.upload_service import (
    UNKNOWN_ARTIST,
    UploadedFile,
    UploadService,
    extract_audio_duration,
    sanitize_input,
    validate_file_size,
    validate_file_type,
    validate_mix_metadata,
)
from mixdrop.api.utils.constants import MAX_AUDIO_SIZE, MAX_COVER_ART_SIZE
from mixdrop.api.utils.errors import BadRequestError, ForbiddenError, ValidationFailedError


def audio_file(size=1024, content_type="audio/mpeg", filename="set.mp3"):
    return UploadedFile(filename=filename, content_type=content_type, data=b"\x80" * size)


@pytest.fixture
def service(db_session, storage, cache):
    return UploadService(db_session, storage, cache)


@pytest.fixture
def uploader(create_user):
    return create_user()


class TestValidation:

    def test_sanitize_input(self):
        assert sanitize_input("  Summer Vibes  ", 200) == "Summer Vibes"
        assert sanitize_input("abcdef", 3) == "abc"
        assert sanitize_input("   ", 10) is None
        assert sanitize_input(None, 10) is None

    def test_metadata_collects_every_violation(self):
        violations = validate_mix_metadata("  ", None)

        assert [v.message for v in violations] == ["Title is required", "Artist is required"]

    def test_file_size_limits(self):
        assert validate_file_size(MAX_AUDIO_SIZE, "audio") is None
        too_big = validate_file_size(MAX_AUDIO_SIZE + 1, "audio")
        assert too_big.status_code == 413
        assert too_big.message == "File size exceeds maximum allowed (200MB)"
        assert validate_file_size(MAX_COVER_ART_SIZE + 1, "cover").message == "File size exceeds maximum allowed (10MB)"

    def test_file_types(self):
        assert validate_file_type("audio/wav", "audio") is None
        assert validate_file_type("image/webp", "cover") is None
        invalid = validate_file_type("video/mp4", "audio")
        assert invalid.status_code == 400
        assert invalid.message.startswith("Invalid file type. Allowed: audio/mpeg")

    def test_extract_duration_of_unreadable_file(self):
        assert extract_audio_duration(b"definitely not audio", "audio/mpeg") == 0

    def test_extract_duration_floors_length(self, mocker):
        mocker.patch("mixdrop.api.services.upload_service.mutagen.File",
                     return_value=SimpleNamespace(info=SimpleNamespace(length=3600.9)))

        assert extract_audio_duration(b"whatever") == 3600


class TestUploadMix:

    @pytest.mark.asyncio
    async def test_upload_success(self, service, storage, db_session, uploader, mocker):
        """Test d'un envoi complet : stockage, forme d'onde et ligne en base."""
        mocker.patch("mixdrop.api.services.upload_service.extract_audio_duration", return_value=3600)

        mix = await service.upload_mix(uploader.id, " Summer Vibes ", "DJ Test", "", True, audio_file(3_600_000))

        assert mix.id is not None
        assert mix.title == "Summer Vibes"
        assert mix.description is None
        assert mix.file_size == 3_600_000
        assert mix.duration == 3600
        assert mix.storage_key.startswith(f"mixes/{uploader.id}/")
        assert mix.cover_art_key is None
        peaks = json.loads(mix.waveform_peaks)
        assert len(peaks) == 2 and len(peaks[0]) == 500 and len(peaks[1]) == 500
        storage.upload.assert_called_once()
        assert db_session.get(Mix, mix.id) is not None

    @pytest.mark.asyncio
    async def test_waveform_and_duration_leave_event_loop(self, service, uploader, mocker):
        """Le calcul de la forme d'onde et de la durée ne bloque pas la boucle d'événements."""
        loop_thread = threading.get_ident()
        threads = {}

        def peaks(buffer, num_samples):
            threads["waveform"] = threading.get_ident()
            return [[0.0] * num_samples, [0.0] * num_samples]

        def duration(buffer, content_type=None):
            threads["duration"] = threading.get_ident()
            return 60

        mocker.patch("mixdrop.api.services.upload_service.generate_waveform_peaks", side_effect=peaks)
        mocker.patch("mixdrop.api.services.upload_service.extract_audio_duration", side_effect=duration)

        mix = await service.upload_mix(uploader.id, "Summer Vibes", "DJ Test", None, True, audio_file())

        assert mix.duration == 60
        assert threads["waveform"] != loop_thread
        assert threads["duration"] != loop_thread

    @pytest.mark.asyncio
    async def test_upload_with_cover(self, service, storage, uploader):
        cover = UploadedFile(filename="cover.png", content_type="image/png", data=b"png")

        mix = await service.upload_mix(uploader.id, "T", "A", None, False, audio_file(), cover)

        assert mix.cover_art_key.startswith(f"covers/{uploader.id}/")
        assert mix.cover_art_key.endswith(".png")
        assert mix.is_public is False
        assert storage.upload.call_count == 2

    @pytest.mark.asyncio
    async def test_upload_invalidates_feed_cache(self, service, uploader, fake_redis):
        fake_redis.store["mixes:list:page:1:public"] = "{}"
        fake_redis.store["mix:99"] = "{}"

        await service.upload_mix(uploader.id, "T", "A", None, True, audio_file())

        assert "mixes:list:page:1:public" not in fake_redis.store
        assert "mix:99" in fake_redis.store

    @pytest.mark.asyncio
    async def test_missing_metadata_rejected_before_storage(self, service, storage, uploader):
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.upload_mix(uploader.id, "", "", None, True, audio_file())

        assert exc_info.value.status_code == 400
        assert len(exc_info.value.violations) == 2
        storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_audio(self, service, storage, uploader):
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.upload_mix(uploader.id, "T", "A", None, True, None)

        assert exc_info.value.message == "Audio file is required"
        storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_audio_type(self, service, storage, uploader):
        with pytest.raises(ValidationFailedError):
            await service.upload_mix(uploader.id, "T", "A", None, True, audio_file(content_type="text/plain"))

        storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_cover_rejected_before_any_write(self, service, storage, uploader):
        """Une pochette invalide n'entraîne aucun envoi, pas même celui de l'audio."""
        cover = UploadedFile(filename="cover.gif", content_type="image/gif", data=b"gif")

        with pytest.raises(ValidationFailedError):
            await service.upload_mix(uploader.id, "T", "A", None, True, audio_file(), cover)

        storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_database_failure_removes_uploaded_objects(self, storage, cache):
        """Si la persistance échoue, les objets envoyés sont supprimés et l'erreur remonte."""
        db = MagicMock()
        db.commit.side_effect = SQLAlchemyError("db down")
        service = UploadService(db, storage, cache)
        cover = UploadedFile(filename="cover.jpg", content_type="image/jpeg", data=b"jpg")

        with pytest.raises(SQLAlchemyError):
            await service.upload_mix(1, "T", "A", None, True, audio_file(), cover)

        uploaded = [c.args[0] for c in storage.upload.call_args_list]
        deleted = [c.args[0] for c in storage.delete.call_args_list]
        assert deleted == uploaded
        assert len(deleted) == 2
        db.rollback.assert_called_once()

    @pytest.mark.asyncio
    async def test_cleanup_failure_keeps_original_error(self, storage, cache):
        db = MagicMock()
        db.commit.side_effect = SQLAlchemyError("db down")
        storage.delete.side_effect = RuntimeError("s3 down")
        service = UploadService(db, storage, cache)

        with pytest.raises(SQLAlchemyError):
            await service.upload_mix(1, "T", "A", None, True, audio_file())


class TestPresignedUpload:

    @pytest.mark.asyncio
    async def test_presigned_audio(self, service, storage):
        result = await service.create_presigned_upload(7, "set.flac.mp3", "audio/mpeg", 1000)

        assert result["storageKey"].startswith("mixes/7/")
        assert result["storageKey"].endswith(".mp3")
        assert result["expiresIn"] == 900
        assert result["presignedUrl"] == f"https://cdn.test/upload/{result['storageKey']}"

    @pytest.mark.asyncio
    async def test_presigned_cover(self, service):
        result = await service.create_presigned_upload(7, "cover.webp", "image/webp", 1000)

        assert result["storageKey"].startswith("covers/7/")

    @pytest.mark.asyncio
    async def test_missing_fields(self, service):
        with pytest.raises(BadRequestError):
            await service.create_presigned_upload(7, None, "audio/mpeg", 1000)

    @pytest.mark.asyncio
    async def test_invalid_type(self, service):
        with pytest.raises(BadRequestError) as exc_info:
            await service.create_presigned_upload(7, "x.exe", "application/octet-stream", 10)

        assert exc_info.value.message.startswith("Invalid file type. Allowed types:")

    @pytest.mark.asyncio
    async def test_oversized_file(self, service, storage):
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create_presigned_upload(7, "big.wav", "audio/wav", MAX_AUDIO_SIZE + 1)

        assert exc_info.value.status_code == 413
        storage.presigned_upload_url.assert_not_called()


class TestFinalizeUpload:

    @pytest.mark.asyncio
    async def test_finalize_success(self, service, storage, uploader):
        storage.head.return_value = {"size": 52_000_000, "content_type": "audio/mpeg"}
        key = f"mixes/{uploader.id}/1700000000000-abcdefghijklm.mp3"

        mix = await service.finalize_upload(uploader.id, key, "Late Night", 3599.6)

        assert mix.artist == UNKNOWN_ARTIST
        assert mix.duration == 3600
        assert mix.file_size == 52_000_000
        assert mix.is_public is True
        peaks = json.loads(mix.waveform_peaks)
        assert peaks == [[0.0] * 500, [0.0] * 500]

    @pytest.mark.asyncio
    async def test_key_of_another_user_forbidden(self, service, storage, uploader):
        with pytest.raises(ForbiddenError):
            await service.finalize_upload(uploader.id, "mixes/999/x.mp3", "T", 60)

        storage.head.assert_not_called()

    @pytest.mark.asyncio
    async def test_cover_of_another_user_forbidden(self, service, uploader):
        with pytest.raises(ForbiddenError):
            await service.finalize_upload(uploader.id, f"mixes/{uploader.id}/x.mp3", "T", 60,
                                          cover_art_key="covers/999/c.png")

    @pytest.mark.asyncio
    async def test_missing_fields(self, service, uploader):
        with pytest.raises(BadRequestError):
            await service.finalize_upload(uploader.id, f"mixes/{uploader.id}/x.mp3", "T", None)

    @pytest.mark.asyncio
    async def test_object_not_in_storage(self, service, storage, uploader):
        storage.head.return_value = None

        with pytest.raises(BadRequestError) as exc_info:
            await service.finalize_upload(uploader.id, f"mixes/{uploader.id}/x.mp3", "T", 60)

        assert "not found in storage" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_empty_object(self, service, storage, uploader):
        storage.head.return_value = {"size": 0, "content_type": "audio/mpeg"}

        with pytest.raises(BadRequestError) as exc_info:
            await service.finalize_upload(uploader.id, f"mixes/{uploader.id}/x.mp3", "T", 60)

        assert exc_info.value.message == "Invalid file: size is 0 bytes"
