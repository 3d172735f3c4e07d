from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as SQLAlchemySession

from mixdrop.api.services.cache_service import CacheService, get_cache
from mixdrop.api.services.settings_service import SettingsService
from mixdrop.api.utils.database import get_db

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/public", description="Paramètres exposés sans authentification")
async def public_settings(db: SQLAlchemySession = Depends(get_db), cache: CacheService = Depends(get_cache)):
    return await SettingsService(db, cache).public_settings()
