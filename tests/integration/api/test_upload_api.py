# tests/integration/api/test_upload_api.py
import json

from starlette.datastructures import UploadFile as StarletteUploadFile

from mixdrop.api.models import Mix


def upload(client, headers, size=1024, title="Summer Vibes", artist="DJ Test", content_type="audio/mpeg",
           cover=None, is_public="true"):
    files = {"audio": ("summer.mp3", b"\x80" * size, content_type)}
    if cover is not None:
        files["coverArt"] = cover
    data = {"title": title, "artist": artist, "description": "Sunset set", "isPublic": is_public}
    return client.post("/api/upload", files=files, data=data, headers=headers)


def test_upload_mix(client, create_user, auth_headers, storage, db_session):
    """Envoi d'un fichier de 3,6 Mo : 201, mix créé avec une forme d'onde 2×500."""
    user = create_user()

    response = upload(client, auth_headers(user), size=3_600_000)

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    mix = data["mix"]
    assert mix["title"] == "Summer Vibes"
    assert mix["artist"] == "DJ Test"
    assert mix["description"] == "Sunset set"
    assert mix["fileSize"] == 3_600_000
    assert mix["isPublic"] is True
    assert mix["uploaderId"] == user.id
    assert mix["duration"] >= 0
    assert mix["storageKey"].startswith(f"mixes/{user.id}/")
    peaks = json.loads(mix["waveformPeaks"])
    assert len(peaks) == 2
    assert len(peaks[0]) == 500 and len(peaks[1]) == 500
    storage.upload.assert_called_once()
    assert db_session.get(Mix, mix["id"]) is not None


def test_upload_private_mix(client, create_user, auth_headers):
    response = upload(client, auth_headers(create_user()), is_public="false")

    assert response.status_code == 201
    assert response.json()["mix"]["isPublic"] is False


def test_upload_with_cover(client, create_user, auth_headers, storage):
    user = create_user()

    response = upload(client, auth_headers(user), cover=("cover.jpg", b"jpeg", "image/jpeg"))

    assert response.status_code == 201
    assert response.json()["mix"]["coverArtKey"].startswith(f"covers/{user.id}/")
    assert storage.upload.call_count == 2


def test_upload_requires_authentication(client, storage):
    response = upload(client, {})

    assert response.status_code == 401
    storage.upload.assert_not_called()


def test_upload_missing_title(client, create_user, auth_headers, storage):
    response = upload(client, auth_headers(create_user()), title="  ")

    assert response.status_code == 400
    assert response.json() == {"error": "Title is required"}
    storage.upload.assert_not_called()


def test_upload_invalid_type(client, create_user, auth_headers):
    response = upload(client, auth_headers(create_user()), content_type="video/mp4")

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid file type")


def test_upload_invalid_cover_type(client, create_user, auth_headers, storage):
    response = upload(client, auth_headers(create_user()), cover=("cover.gif", b"gif", "image/gif"))

    assert response.status_code == 400
    storage.upload.assert_not_called()


def test_upload_rate_limit(client, create_user, auth_headers):
    """Le sixième envoi dans l'heure est refusé avec Retry-After."""
    user = create_user()
    headers = auth_headers(user)

    statuses = [upload(client, headers).status_code for _ in range(5)]
    assert statuses == [201] * 5

    response = upload(client, headers)
    assert response.status_code == 429
    body = response.json()
    assert body["error"] == "Too many requests. Please try again later"
    assert 0 < body["retryAfter"] <= 3600
    assert response.headers["Retry-After"] == str(body["retryAfter"])


def test_upload_rate_limit_is_per_user(client, create_user, auth_headers):
    first = create_user()
    first_headers = auth_headers(first)
    for _ in range(5):
        upload(client, first_headers)

    assert upload(client, first_headers).status_code == 429
    assert upload(client, auth_headers(create_user())).status_code == 201


def test_presigned_url(client, create_user, auth_headers):
    user = create_user()

    response = client.post("/api/upload/presigned-url",
                           json={"filename": "set.mp3", "contentType": "audio/mpeg", "fileSize": 52_000_000},
                           headers=auth_headers(user))

    assert response.status_code == 200
    data = response.json()
    assert data["storageKey"].startswith(f"mixes/{user.id}/")
    assert data["expiresIn"] == 900
    assert data["presignedUrl"].endswith(data["storageKey"])


def test_presigned_url_missing_fields(client, create_user, auth_headers):
    response = client.post("/api/upload/presigned-url", json={"filename": "set.mp3"},
                           headers=auth_headers(create_user()))

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields: filename, contentType, fileSize"}


def test_presigned_url_oversized(client, create_user, auth_headers):
    response = client.post("/api/upload/presigned-url",
                           json={"filename": "set.wav", "contentType": "audio/wav", "fileSize": 300 * 1024 * 1024},
                           headers=auth_headers(create_user()))

    assert response.status_code == 413


def test_finalize_upload(client, create_user, auth_headers, storage):
    user = create_user()
    storage.head.return_value = {"size": 52_000_000, "content_type": "audio/mpeg"}

    response = client.post("/api/upload/finalize", json={
        "storageKey": f"mixes/{user.id}/1700000000000-abcdefghijklm.mp3",
        "title": "Direct upload",
        "duration": 3540,
    }, headers=auth_headers(user))

    assert response.status_code == 201
    mix = response.json()["mix"]
    assert mix["artist"] == "Unknown Artist"
    assert mix["fileSize"] == 52_000_000
    assert mix["duration"] == 3540


def test_finalize_foreign_key_forbidden(client, create_user, auth_headers):
    response = client.post("/api/upload/finalize", json={
        "storageKey": "mixes/999/1700000000000-abcdefghijklm.mp3",
        "title": "Stolen",
        "duration": 60,
    }, headers=auth_headers(create_user()))

    assert response.status_code == 403


def test_oversized_audio_rejected_before_reading(client, create_user, auth_headers, storage, monkeypatch):
    """La taille annoncée par le parsing multipart suffit : le fichier n'est jamais lu."""
    monkeypatch.setattr("mixdrop.api.services.upload_service.MAX_AUDIO_SIZE", 10)
    reads = []
    original_read = StarletteUploadFile.read

    async def tracking_read(self, *args, **kwargs):
        reads.append(self.filename)
        return await original_read(self, *args, **kwargs)

    monkeypatch.setattr(StarletteUploadFile, "read", tracking_read)

    response = upload(client, auth_headers(create_user()), size=1_000_000)

    assert response.status_code == 413
    assert response.json()["error"].startswith("File size exceeds maximum allowed")
    assert reads == []
    storage.upload.assert_not_called()
