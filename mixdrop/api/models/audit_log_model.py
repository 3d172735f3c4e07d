from __future__ import annotations
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Text, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from mixdrop.api.utils.database import Base, utcnow


class AuditLog(Base):
    __tablename__ = 'audit_logs'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    action: Mapped[str] = mapped_column(String, nullable=False)
    # pas de clé étrangère : le journal survit à la suppression des acteurs/cibles
    actor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    target_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index('idx_audit_logs_actor', 'actor_id'),
        Index('idx_audit_logs_created_at', 'created_at'),
    )
