from datetime import datetime
from typing import List, Optional

from .base_schema import BaseSchema
from .mixes_schema import Mix
from .users_schema import UserSummary


class PlaylistCreate(BaseSchema):
    name: Optional[str] = None
    description: Optional[str] = None
    is_public: bool = False


class PlaylistUpdate(BaseSchema):
    name: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None


class PlaylistAddMix(BaseSchema):
    mix_id: int


class Playlist(BaseSchema):
    id: int
    name: str
    description: Optional[str] = None
    is_public: bool
    user_id: int
    user: Optional[UserSummary] = None
    mix_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PlaylistEntry(BaseSchema):
    order: int
    added_at: Optional[datetime] = None
    mix: Mix


class PlaylistDetail(Playlist):
    mixes: List[PlaylistEntry] = []
