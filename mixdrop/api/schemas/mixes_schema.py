from datetime import datetime
from typing import Optional

from .base_schema import BaseSchema
from .users_schema import UserSummary


class Mix(BaseSchema):
    id: int
    title: str
    artist: str
    description: Optional[str] = None
    duration: int
    file_size: int
    storage_key: str
    cover_art_key: Optional[str] = None
    waveform_peaks: Optional[str] = None
    is_public: bool
    uploader_id: int
    uploader: Optional[UserSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MixUpdate(BaseSchema):
    title: Optional[str] = None
    artist: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None


class PresignedUploadRequest(BaseSchema):
    filename: Optional[str] = None
    content_type: Optional[str] = None
    file_size: Optional[int] = None


class FinalizeUploadRequest(BaseSchema):
    storage_key: Optional[str] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[float] = None
    is_public: Optional[bool] = None
    cover_art_key: Optional[str] = None
