"""
Constantes applicatives : plafonds, quotas, TTL et messages d'erreur.
"""

MB = 1024 * 1024

# Taille maximale des fichiers (octets)
MAX_AUDIO_SIZE = 200 * MB
MAX_COVER_ART_SIZE = 10 * MB

ALLOWED_AUDIO_TYPES = (
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/ogg",
    "audio/aac",
    "audio/m4a",
)
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp")

# TTL du cache (secondes)
CACHE_TTL_MIXES_LIST = 300
CACHE_TTL_MIX_DETAIL = 3600
CACHE_TTL_STREAM_URL = 1800
CACHE_TTL_WAVEFORM_PEAKS = 86400
CACHE_TTL_PUBLIC_SETTINGS = 300

# URLs présignées (secondes)
PRESIGNED_UPLOAD_EXPIRY = 900
PRESIGNED_DOWNLOAD_EXPIRY = 3600

# Quotas : action -> (requêtes max, fenêtre en secondes)
RATE_LIMITS = {
    "upload": {"max_requests": 5, "window_seconds": 3600},
    "api": {"max_requests": 100, "window_seconds": 60},
}

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

TITLE_MAX_LENGTH = 200
ARTIST_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 2000
PLAYLIST_NAME_MAX_LENGTH = 100
PLAYLIST_DESCRIPTION_MAX_LENGTH = 1000

WAVEFORM_DEFAULT_SAMPLES = 500

SESSION_COOKIE_NAME = "mixdrop_session"
OAUTH_STATE_COOKIE_NAME = "mixdrop_oauth_state"
SESSION_MAX_AGE = 30 * 24 * 60 * 60

DEFAULT_SITE_NAME = "MixDrop"
PUBLIC_SETTING_KEYS = ("site_name",)

# Délai avant qu'un objet non référencé soit considéré orphelin
ORPHAN_GRACE_SECONDS = 3600

ROLE_USER = "user"
ROLE_ADMIN = "admin"

STATUS_ACTIVE = "active"
STATUS_SUSPENDED = "suspended"
STATUS_BANNED = "banned"

ERROR_UNAUTHORIZED = "You must be signed in to perform this action"
ERROR_FORBIDDEN = "You don't have permission to perform this action"
ERROR_NOT_FOUND = "The requested resource was not found"
ERROR_RATE_LIMIT_EXCEEDED = "Too many requests. Please try again later"
ERROR_SERVER = "An error occurred. Please try again"
