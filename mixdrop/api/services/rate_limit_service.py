"""
Limiteur de débit à fenêtre fixe, stocké dans le cache Redis.

État par clé `ratelimit:{action}:{userId}` : {"count": n, "resetAt": epoch secondes}.
En cas d'erreur du cache, la requête est autorisée (fail open).
"""
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from mixdrop.api.services.cache_service import CacheKeys, CacheService
from mixdrop.api.utils.constants import RATE_LIMITS
from mixdrop.api.utils.logging import logger


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    remaining: int
    reset: float


def retry_after(result: RateLimitResult, now: Optional[float] = None) -> int:
    """Nombre de secondes avant la fin de la fenêtre (jamais négatif)."""
    now = time.time() if now is None else now
    return max(0, int(math.ceil(result.reset - now)))


class RateLimiter:
    def __init__(self, cache: CacheService, clock: Callable[[], float] = time.time):
        self.cache = cache
        self.clock = clock

    async def check(self, user_id: Any, action: str = "upload") -> RateLimitResult:
        config = RATE_LIMITS[action]
        max_requests = config["max_requests"]
        window = config["window_seconds"]
        key = CacheKeys.rate_limit(action, user_id)
        now = self.clock()

        read = await self.cache.fetch(key)
        if not read.ok:
            logger.warning(f"[RATELIMIT] Lecture impossible pour {key}, requête autorisée: {read.error}")
            return RateLimitResult(success=True, remaining=max_requests, reset=now + window)

        state = read.value if isinstance(read.value, dict) else None

        if state is None or now > state.get("resetAt", 0):
            reset_at = now + window
            written = await self.cache.store(key, {"count": 1, "resetAt": reset_at}, ttl=window)
            if not written.ok:
                return self._fail_open(key, written.error, max_requests, now, window)
            return RateLimitResult(success=True, remaining=max_requests - 1, reset=reset_at)

        count = int(state.get("count", 0))
        reset_at = state["resetAt"]

        if count >= max_requests:
            logger.info(f"[RATELIMIT] Quota atteint pour {key} ({count}/{max_requests})")
            return RateLimitResult(success=False, remaining=0, reset=reset_at)

        new_count = count + 1
        ttl = max(1, int(math.ceil(reset_at - now)))
        written = await self.cache.store(key, {"count": new_count, "resetAt": reset_at}, ttl=ttl)
        if not written.ok:
            return self._fail_open(key, written.error, max_requests, now, window)
        return RateLimitResult(success=True, remaining=max_requests - new_count, reset=reset_at)

    @staticmethod
    def _fail_open(key: str, error: Optional[Exception], max_requests: int, now: float, window: int) -> RateLimitResult:
        logger.warning(f"[RATELIMIT] Écriture impossible pour {key}, requête autorisée: {error}")
        return RateLimitResult(success=True, remaining=max_requests, reset=now + window)
