from .cache_service import CacheService, CacheResult, CacheKeys, get_cache
from .rate_limit_service import RateLimiter, RateLimitResult, retry_after
from .storage_service import StorageService, generate_storage_key, get_storage
from .waveform_service import generate_waveform_peaks
from .audit_service import AuditService
from .upload_service import UploadService, UploadedFile
from .mix_service import MixService
from .playlist_service import PlaylistService
from .user_service import UserService
from .settings_service import SettingsService
from .auth_service import OAuthClient, SessionService
from .reconciliation_service import ReconciliationService

__all__ = [
    "CacheService",
    "CacheResult",
    "CacheKeys",
    "get_cache",
    "RateLimiter",
    "RateLimitResult",
    "retry_after",
    "StorageService",
    "generate_storage_key",
    "get_storage",
    "generate_waveform_peaks",
    "AuditService",
    "UploadService",
    "UploadedFile",
    "MixService",
    "PlaylistService",
    "UserService",
    "SettingsService",
    "OAuthClient",
    "SessionService",
    "ReconciliationService",
]
