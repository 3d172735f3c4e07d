from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session as SQLAlchemySession

from mixdrop.api.models.user_model import User
from mixdrop.api.schemas.users_schema import AdminUserUpdate
from mixdrop.api.services.cache_service import CacheService, get_cache
from mixdrop.api.services.reconciliation_service import ReconciliationService
from mixdrop.api.services.settings_service import SettingsService
from mixdrop.api.services.storage_service import StorageService, get_storage
from mixdrop.api.services.user_service import UserService
from mixdrop.api.utils.auth import require_admin
from mixdrop.api.utils.constants import DEFAULT_PAGE_SIZE
from mixdrop.api.utils.database import get_db

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
async def list_users(search: Optional[str] = Query(None), role: Optional[str] = Query(None),
                     status: Optional[str] = Query(None), page: int = Query(1),
                     limit: int = Query(DEFAULT_PAGE_SIZE),
                     admin: User = Depends(require_admin), db: SQLAlchemySession = Depends(get_db)):
    return UserService(db).list_users(search, role, status, page, limit)


@router.get("/users/{user_id}")
async def read_user(user_id: int, admin: User = Depends(require_admin), db: SQLAlchemySession = Depends(get_db)):
    return UserService(db).get_user(user_id)


@router.patch("/users/{user_id}")
async def update_user(user_id: int, changes: AdminUserUpdate, admin: User = Depends(require_admin),
                      db: SQLAlchemySession = Depends(get_db)):
    return UserService(db).update_user(user_id, admin, changes)


@router.delete("/users/{user_id}", description="Suppression logique (statut banni)")
async def delete_user(user_id: int, admin: User = Depends(require_admin), db: SQLAlchemySession = Depends(get_db)):
    UserService(db).delete_user(user_id, admin)
    return {"success": True}


@router.get("/stats")
async def stats(admin: User = Depends(require_admin), db: SQLAlchemySession = Depends(get_db)):
    return UserService(db).stats()


@router.get("/settings")
async def read_settings(admin: User = Depends(require_admin), db: SQLAlchemySession = Depends(get_db),
                        cache: CacheService = Depends(get_cache)):
    return SettingsService(db, cache).all_settings()


@router.patch("/settings")
async def update_settings(updates: Dict[str, Any] = Body(...), admin: User = Depends(require_admin),
                          db: SQLAlchemySession = Depends(get_db), cache: CacheService = Depends(get_cache)):
    return await SettingsService(db, cache).update_settings(admin, updates)


@router.post("/storage/reconcile", description="Compare le stockage objet et la table des mixes")
async def reconcile_storage(dryRun: bool = Query(True), admin: User = Depends(require_admin),
                            db: SQLAlchemySession = Depends(get_db), cache: CacheService = Depends(get_cache),
                            storage: StorageService = Depends(get_storage)):
    return await ReconciliationService(db, storage, cache).reconcile(admin, dry_run=dryRun)
