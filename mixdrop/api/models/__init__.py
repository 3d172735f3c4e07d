from .user_model import User, AuthSession
from .mix_model import Mix
from .playlist_model import Playlist, PlaylistMix
from .audit_log_model import AuditLog
from .settings_model import SiteSetting

__all__ = [
    "User",
    "AuthSession",
    "Mix",
    "Playlist",
    "PlaylistMix",
    "AuditLog",
    "SiteSetting",
]
