from fastapi import APIRouter

# Import des routers
from .routers.auth_api import router as auth_router
from .routers.mixes_api import router as mixes_router
from .routers.stream_api import router as stream_router
from .routers.upload_api import router as upload_router
from .routers.playlists_api import router as playlists_router
from .routers.users_api import router as users_router
from .routers.admin_api import router as admin_router
from .routers.settings_api import router as settings_router

# Créer le router principal
api_router = APIRouter()

# Liste des routers à inclure
ROUTERS = [
    auth_router,
    mixes_router,
    stream_router,
    upload_router,
    playlists_router,
    users_router,
    admin_router,
    settings_router,
]

# Inclure tous les routers
for router in ROUTERS:
    api_router.include_router(router)

# Export uniquement du router principal
__all__ = ['api_router']
