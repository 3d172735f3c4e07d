from .base_schema import BaseSchema
from .users_schema import User, UserSummary, AdminUser, AdminUserUpdate, OAuthProfile
from .mixes_schema import Mix, MixUpdate, PresignedUploadRequest, FinalizeUploadRequest
from .playlists_schema import PlaylistCreate, PlaylistUpdate, PlaylistAddMix, Playlist, PlaylistEntry, PlaylistDetail

__all__ = [
    "BaseSchema",
    "User",
    "UserSummary",
    "AdminUser",
    "AdminUserUpdate",
    "OAuthProfile",
    "Mix",
    "MixUpdate",
    "PresignedUploadRequest",
    "FinalizeUploadRequest",
    "PlaylistCreate",
    "PlaylistUpdate",
    "PlaylistAddMix",
    "Playlist",
    "PlaylistEntry",
    "PlaylistDetail",
]
