"""
Modèles SQLAlchemy pour les playlists.
L'ordre des mixes est porté explicitement par PlaylistMix.order.
"""
from __future__ import annotations
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Boolean, Text, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column

from mixdrop.api.utils.database import Base, TimestampMixin, utcnow


class Playlist(Base, TimestampMixin):
    __tablename__ = 'playlists'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="playlists")  # type: ignore # noqa: F821
    entries: Mapped[list["PlaylistMix"]] = relationship(
        "PlaylistMix",
        back_populates="playlist",
        order_by="PlaylistMix.order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index('idx_playlists_user', 'user_id'),
        Index('idx_playlists_is_public', 'is_public'),
    )


class PlaylistMix(Base):
    __tablename__ = 'playlist_mixes'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    playlist_id: Mapped[int] = mapped_column(Integer, ForeignKey('playlists.id', ondelete='CASCADE'), nullable=False)
    mix_id: Mapped[int] = mapped_column(Integer, ForeignKey('mixes.id', ondelete='CASCADE'), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    playlist: Mapped[Playlist] = relationship("Playlist", back_populates="entries")
    mix: Mapped["Mix"] = relationship("Mix", back_populates="playlist_entries")  # type: ignore # noqa: F821

    __table_args__ = (
        UniqueConstraint('playlist_id', 'mix_id', name='uq_playlist_mixes_playlist_id_mix_id'),
        Index('idx_playlist_mixes_order', 'playlist_id', 'order'),
    )
