"""
Cache Service - Cache Redis (cache-aside) pour les lectures fréquentes de l'API.

Toutes les opérations publiques dégradent gracieusement : une erreur Redis est
journalisée puis convertie en absence de valeur (lecture) ou en no-op (écriture),
elle n'interrompt jamais la requête en cours.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

import redis.asyncio as redis

from mixdrop.api.utils.logging import logger
from mixdrop.api.utils.settings import get_settings


@dataclass
class CacheResult:
    """Résultat interne d'une opération de cache, distinguant erreur et absence."""
    ok: bool
    value: Any = None
    error: Optional[Exception] = None


class CacheKeys:
    """Construction des clés du cache."""

    MIXES_LIST_PATTERN = "mixes:list:*"

    @staticmethod
    def mixes_list(page: int, public: bool = False) -> str:
        key = f"mixes:list:page:{page}"
        return f"{key}:public" if public else key

    @staticmethod
    def mixes_list_for_user(page: int, user_id: int) -> str:
        return f"mixes:list:page:{page}:user:{user_id}"

    @staticmethod
    def mix(mix_id: int) -> str:
        return f"mix:{mix_id}"

    @staticmethod
    def stream(mix_id: int, kind: str = "audio") -> str:
        return f"stream:{mix_id}:{kind}"

    @staticmethod
    def stream_pattern(mix_id: int) -> str:
        return f"stream:{mix_id}:*"

    @staticmethod
    def waveform(mix_id: int) -> str:
        return f"waveform:{mix_id}"

    @staticmethod
    def rate_limit(action: str, user_id: Any) -> str:
        return f"ratelimit:{action}:{user_id}"

    @staticmethod
    def public_settings() -> str:
        return "settings:public"


class CacheService:
    """
    Client de cache au-dessus de redis.asyncio.

    Sans REDIS_URL (ni client fourni), le cache est désactivé : chaque lecture
    est un miss et chaque écriture est ignorée.
    """

    def __init__(self, client: Optional[Any] = None, url: Optional[str] = None):
        self.client = client
        if self.client is None and url:
            self.client = redis.from_url(
                url,
                decode_responses=True,
                socket_timeout=5.0,
                socket_connect_timeout=5.0,
                retry_on_timeout=True,
            )
            logger.info("[CACHE] Client Redis initialisé")
        elif self.client is None:
            logger.warning("[CACHE] REDIS_URL absent. Cache désactivé.")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def fetch(self, key: str) -> CacheResult:
        """
        Lit une clé et décode sa valeur JSON.

        Returns:
            CacheResult(ok=True, value=None) pour un miss,
            CacheResult(ok=False, error=...) si Redis est indisponible.
        """
        if not self.enabled:
            return CacheResult(ok=False, error=RuntimeError("cache disabled"))
        try:
            cached = await self.client.get(key)
            if cached is None:
                logger.debug(f"[CACHE] Miss pour {key}")
                return CacheResult(ok=True)
            logger.debug(f"[CACHE] Hit pour {key}")
            return CacheResult(ok=True, value=json.loads(cached))
        except Exception as e:
            logger.warning(f"[CACHE] Erreur lecture cache {key}: {e}")
            return CacheResult(ok=False, error=e)

    async def store(self, key: str, value: Any, ttl: Optional[int] = None) -> CacheResult:
        """Encode la valeur en JSON et l'écrit, avec SETEX lorsqu'un TTL est fourni."""
        if not self.enabled:
            return CacheResult(ok=False, error=RuntimeError("cache disabled"))
        try:
            serialized = json.dumps(value, default=str)
            if ttl:
                await self.client.setex(key, ttl, serialized)
            else:
                await self.client.set(key, serialized)
            logger.debug(f"[CACHE] Set pour {key} (TTL: {ttl}s)")
            return CacheResult(ok=True, value=value)
        except Exception as e:
            logger.warning(f"[CACHE] Erreur écriture cache {key}: {e}")
            return CacheResult(ok=False, error=e)

    async def get(self, key: str) -> Optional[Any]:
        result = await self.fetch(key)
        return result.value if result.ok else None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        await self.store(key, value, ttl)

    async def delete(self, key: str) -> None:
        if not self.enabled:
            return
        try:
            await self.client.delete(key)
            logger.debug(f"[CACHE] Invalidé {key}")
        except Exception as e:
            logger.warning(f"[CACHE] Erreur invalidation cache {key}: {e}")

    async def delete_pattern(self, pattern: str) -> None:
        """
        Invalide toutes les entrées correspondant à un pattern glob.

        Args:
            pattern: Pattern Redis (ex: "mixes:list:*")
        """
        if not self.enabled:
            return
        try:
            keys = await self.client.keys(pattern)
            if keys:
                await self.client.delete(*keys)
                logger.debug(f"[CACHE] Invalidé {len(keys)} clés pour pattern {pattern}")
        except Exception as e:
            logger.warning(f"[CACHE] Erreur invalidation pattern {pattern}: {e}")

    async def invalidate_mix(self, mix_id: int) -> None:
        """Invalide tout ce qui dérive d'un mix : détail, URLs, waveform et listes."""
        await self.delete(CacheKeys.mix(mix_id))
        await self.delete_pattern(CacheKeys.stream_pattern(mix_id))
        await self.delete(CacheKeys.waveform(mix_id))
        await self.delete_pattern(CacheKeys.MIXES_LIST_PATTERN)

    async def close(self) -> None:
        if self.enabled:
            try:
                await self.client.aclose()
            except Exception as e:
                logger.warning(f"[CACHE] Erreur fermeture client Redis: {e}")


_cache: Optional[CacheService] = None


def get_cache() -> CacheService:
    """Instance partagée du cache (dépendance FastAPI)."""
    global _cache
    if _cache is None:
        _cache = CacheService(url=get_settings().redis_url)
    return _cache
