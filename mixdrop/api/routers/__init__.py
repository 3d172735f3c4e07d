from .mixes_api import router as mixes_router
from .stream_api import router as stream_router
from .upload_api import router as upload_router
from .playlists_api import router as playlists_router
from .users_api import router as users_router
from .admin_api import router as admin_router
from .settings_api import router as settings_router
from .auth_api import router as auth_router

__all__ = [
    "mixes_router",
    "stream_router",
    "upload_router",
    "playlists_router",
    "users_router",
    "admin_router",
    "settings_router",
    "auth_router",
]
