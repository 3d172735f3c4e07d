from __future__ import annotations
from typing import Optional

from sqlalchemy import String, Integer, BigInteger, Boolean, Text, ForeignKey, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column

from mixdrop.api.utils.database import Base, TimestampMixin


class Mix(Base, TimestampMixin):
    __tablename__ = 'mixes'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    artist: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # secondes
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)  # octets
    storage_key: Mapped[str] = mapped_column(String, nullable=False)
    cover_art_key: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    waveform_peaks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON [[...], [...]]
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    uploader_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    uploader: Mapped["User"] = relationship("User", back_populates="mixes")  # type: ignore # noqa: F821
    playlist_entries: Mapped[list["PlaylistMix"]] = relationship(  # type: ignore # noqa: F821
        "PlaylistMix", back_populates="mix", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index('idx_mixes_created_at', 'created_at'),
        Index('idx_mixes_uploader', 'uploader_id'),
        Index('idx_mixes_is_public', 'is_public'),
    )

    def __repr__(self):
        return f"<Mix(id={self.id}, title='{self.title}', artist='{self.artist}')>"
