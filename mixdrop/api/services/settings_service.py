"""
Paramètres du site : lecture publique (mise en cache) et administration.
"""
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.orm import Session

from mixdrop.api.models.settings_model import SiteSetting
from mixdrop.api.models.user_model import User
from mixdrop.api.services.audit_service import SETTING_UPDATE, AuditService
from mixdrop.api.services.cache_service import CacheKeys, CacheService
from mixdrop.api.utils.constants import CACHE_TTL_PUBLIC_SETTINGS, DEFAULT_SITE_NAME, PUBLIC_SETTING_KEYS
from mixdrop.api.utils.errors import BadRequestError
from mixdrop.api.utils.logging import logger

PUBLIC_DEFAULTS = {"site_name": DEFAULT_SITE_NAME}


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _serialize(setting: SiteSetting) -> dict:
    return {
        "id": setting.id,
        "key": setting.key,
        "value": setting.value,
        "description": setting.description,
        "updatedBy": setting.updated_by,
        "createdAt": setting.created_at.isoformat() if setting.created_at else None,
        "updatedAt": setting.updated_at.isoformat() if setting.updated_at else None,
    }


class SettingsService:
    def __init__(self, db: Session, cache: CacheService):
        self.db = db
        self.cache = cache

    async def public_settings(self) -> Dict[str, str]:
        cache_key = CacheKeys.public_settings()
        try:
            cached = await self.cache.get(cache_key)
            if cached:
                return cached

            rows = self.db.scalars(select(SiteSetting).where(SiteSetting.key.in_(PUBLIC_SETTING_KEYS))).all()
            values = {row.key: row.value for row in rows}
            settings = {key: values.get(key) or default for key, default in PUBLIC_DEFAULTS.items()}

            await self.cache.set(cache_key, settings, CACHE_TTL_PUBLIC_SETTINGS)
            return settings
        except Exception as e:
            logger.error(f"[API] Lecture des paramètres publics impossible, valeurs par défaut: {e}")
            return dict(PUBLIC_DEFAULTS)

    def all_settings(self) -> dict:
        rows = self.db.scalars(select(SiteSetting).order_by(SiteSetting.key)).all()
        raw = [_serialize(row) for row in rows]
        return {
            "settings": {
                item["key"]: {
                    "value": item["value"],
                    "description": item["description"],
                    "updatedAt": item["updatedAt"],
                }
                for item in raw
            },
            "raw": raw,
        }

    async def update_settings(self, actor: User, updates: Dict[str, Any]) -> dict:
        if not isinstance(updates, dict) or not updates:
            raise BadRequestError("No settings provided")

        results = []
        for key, value in updates.items():
            setting = self.db.scalar(select(SiteSetting).where(SiteSetting.key == key))
            if setting is None:
                setting = SiteSetting(key=key, value=_as_text(value), updated_by=actor.id)
                self.db.add(setting)
            else:
                setting.value = _as_text(value)
                setting.updated_by = actor.id
            self.db.commit()
            self.db.refresh(setting)
            AuditService(self.db).record(SETTING_UPDATE, actor.id, None, {"settingKey": key, "newValue": value})
            results.append(_serialize(setting))

        await self.cache.delete(CacheKeys.public_settings())
        return {"success": True, "updated": results}
