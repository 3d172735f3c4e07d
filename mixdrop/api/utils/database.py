# -*- coding: utf-8 -*-
import datetime

from sqlalchemy import create_engine, DateTime, MetaData, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Mapped, mapped_column

from mixdrop.api.utils.settings import get_database_url


# Créer Base avant toute autre opération
class Base(DeclarativeBase):
    metadata = MetaData(naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s"
    })


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class TimestampMixin:
    """Mixin pour ajouter automatiquement les champs created_at et updated_at."""
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )


def build_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    new_engine = create_engine(url, connect_args=connect_args)
    if url.startswith("sqlite"):
        # SQLite n'applique les clés étrangères (cascades) qu'à la demande
        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return new_engine


# Créer l'engine après la définition de l'URL
engine = build_engine(get_database_url())
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Exporter les éléments nécessaires
__all__ = ['Base', 'TimestampMixin', 'SessionLocal', 'get_db', 'engine', 'build_engine', 'utcnow']
