# tests/conftest.py
import fnmatch
import os
import tempfile
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

# Environnement de test, positionné avant tout import de l'application
os.environ.setdefault('DATABASE_URL', f"sqlite:///{os.path.join(tempfile.gettempdir(), 'mixdrop-test-default.db')}")
os.environ.setdefault('LOG_DIR', os.path.join(tempfile.gettempdir(), 'mixdrop-test-logs'))
os.environ.pop('REDIS_URL', None)
os.environ.pop('ADMIN_EMAILS', None)

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from mixdrop.api.api_app import create_api  # noqa: E402
from mixdrop.api.models import AuthSession, Mix, Playlist, PlaylistMix, User  # noqa: E402
from mixdrop.api.services.auth_service import new_token  # noqa: E402
from mixdrop.api.services.cache_service import CacheService, get_cache  # noqa: E402
from mixdrop.api.services.storage_service import StorageService, get_storage  # noqa: E402
from mixdrop.api.utils.database import Base, build_engine, get_db, utcnow  # noqa: E402
from mixdrop.api.utils.settings import reset_settings  # noqa: E402


class FakeRedis:
    """Client redis.asyncio minimal, en mémoire."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value):
        self.store[key] = value
        self.ttls.pop(key, None)
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.store:
                del self.store[key]
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def keys(self, pattern):
        return [key for key in self.store if fnmatch.fnmatchcase(key, pattern)]

    async def aclose(self):
        return None


@pytest.fixture(autouse=True)
def fresh_settings():
    """Relit l'environnement à chaque test."""
    reset_settings()
    yield
    reset_settings()


# Base de données SQLite temporaire pour les tests
@pytest.fixture(scope="function")
def test_db_engine():
    temp_db = tempfile.NamedTemporaryFile(delete=False, suffix='.db')
    temp_db.close()
    engine = build_engine(f"sqlite:///{temp_db.name}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    try:
        os.unlink(temp_db.name)
    except (OSError, PermissionError):
        pass


@pytest.fixture
def db_session(test_db_engine):
    """Session de base de données pour les tests."""
    Session = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)
    session = Session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheService(client=fake_redis)


@pytest.fixture
def storage():
    """Stockage objet simulé : aucune requête S3 réelle."""
    mock = MagicMock(spec=StorageService)
    mock.presigned_download_url.side_effect = (
        lambda key, expires_in=3600, filename=None: f"https://cdn.test/{key}?expires={expires_in}"
    )
    mock.presigned_upload_url.side_effect = (
        lambda key, content_type, expires_in=900: f"https://cdn.test/upload/{key}"
    )
    mock.head.return_value = {"size": 1024, "content_type": "audio/mpeg"}
    mock.list_keys.return_value = []
    return mock


@pytest.fixture
def client(db_session, cache, storage):
    """Client de test FastAPI avec une base de données de test."""
    app = create_api()

    # Override de la dépendance get_db pour utiliser notre session de test
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client


# Fixtures pour créer des données de test

@pytest.fixture
def create_user(db_session):
    """Crée un utilisateur de test."""
    counter = {"n": 0}

    def _create_user(role="user", status="active", name=None, email=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"User {n}",
            email=email or f"user{n}@example.com",
            provider_account_id=f"provider-{n}",
            role=role,
            status=status,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _create_user


@pytest.fixture
def auth_headers(db_session):
    """En-têtes d'authentification (session valide) pour un utilisateur."""
    def _auth_headers(user):
        session = AuthSession(token=new_token(), user_id=user.id, expires_at=utcnow() + timedelta(days=1))
        db_session.add(session)
        db_session.commit()
        return {"Authorization": f"Bearer {session.token}"}
    return _auth_headers


@pytest.fixture
def create_mix(db_session):
    """Crée un mix de test."""
    def _create_mix(uploader, title="Test Mix", artist="Test Artist", is_public=True,
                    cover_art_key=None, storage_key=None, file_size=1024):
        mix = Mix(
            title=title,
            artist=artist,
            duration=3600,
            file_size=file_size,
            storage_key=storage_key or f"mixes/{uploader.id}/1700000000000-abc.mp3",
            cover_art_key=cover_art_key,
            waveform_peaks="[[0.5, 0.25], [0.475, 0.2375]]",
            is_public=is_public,
            uploader_id=uploader.id,
        )
        db_session.add(mix)
        db_session.commit()
        db_session.refresh(mix)
        return mix
    return _create_mix


@pytest.fixture
def create_playlist(db_session):
    """Crée une playlist de test, éventuellement garnie de mixes."""
    def _create_playlist(owner, name="Test Playlist", is_public=False, mixes=()):
        playlist = Playlist(name=name, is_public=is_public, user_id=owner.id)
        db_session.add(playlist)
        db_session.flush()
        for order, mix in enumerate(mixes):
            db_session.add(PlaylistMix(playlist_id=playlist.id, mix_id=mix.id, order=order))
        db_session.commit()
        db_session.refresh(playlist)
        return playlist
    return _create_playlist
