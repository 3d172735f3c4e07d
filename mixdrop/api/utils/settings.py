# -*- coding: utf-8 -*-
"""
Configuration de l'application, lue depuis l'environnement (fichier .env accepté).

Les plafonds (taille des fichiers, quotas, TTL) ne sont pas configurables :
voir mixdrop.api.utils.constants.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def get_database_url() -> str:
    """Retourne l'URL de base de données, DATABASE_URL prioritaire sur les variables POSTGRES_*."""
    url = os.getenv('DATABASE_URL')
    if url:
        return url
    user = quote_plus(os.getenv('POSTGRES_USER', 'postgres'))
    password = quote_plus(os.getenv('POSTGRES_PASSWORD', ''))
    host = os.getenv('POSTGRES_HOST', 'db')
    port = os.getenv('POSTGRES_PORT', '5432')
    db = os.getenv('POSTGRES_DB', 'mixdrop')
    return f"postgresql://{user}:{password}@{host}:{port}/{db}"


@dataclass
class Settings:
    database_url: str = field(default_factory=get_database_url)
    redis_url: Optional[str] = field(default_factory=lambda: os.getenv('REDIS_URL') or None)

    # Stockage objet (S3 / MinIO)
    s3_endpoint: Optional[str] = field(default_factory=lambda: os.getenv('S3_ENDPOINT') or None)
    s3_public_endpoint: Optional[str] = field(default_factory=lambda: os.getenv('S3_PUBLIC_ENDPOINT') or None)
    s3_region: str = field(default_factory=lambda: os.getenv('S3_REGION', 'us-east-1'))
    s3_access_key: Optional[str] = field(default_factory=lambda: os.getenv('S3_ACCESS_KEY'))
    s3_secret_key: Optional[str] = field(default_factory=lambda: os.getenv('S3_SECRET_KEY'))
    s3_bucket: str = field(default_factory=lambda: os.getenv('S3_BUCKET', 'mixdrop'))
    s3_force_path_style: bool = field(default_factory=lambda: os.getenv('S3_FORCE_PATH_STYLE', 'false').lower() == 'true')

    # OAuth
    oauth_client_id: Optional[str] = field(default_factory=lambda: os.getenv('OAUTH_CLIENT_ID'))
    oauth_client_secret: Optional[str] = field(default_factory=lambda: os.getenv('OAUTH_CLIENT_SECRET'))
    oauth_authorization_url: Optional[str] = field(default_factory=lambda: os.getenv('OAUTH_AUTHORIZATION_URL'))
    oauth_token_url: Optional[str] = field(default_factory=lambda: os.getenv('OAUTH_TOKEN_URL'))
    oauth_userinfo_url: Optional[str] = field(default_factory=lambda: os.getenv('OAUTH_USERINFO_URL'))
    oauth_scope: str = field(default_factory=lambda: os.getenv('OAUTH_SCOPE', 'read:user user:email'))
    oauth_redirect_url: str = field(default_factory=lambda: os.getenv('OAUTH_REDIRECT_URL', 'http://localhost:8000/api/auth/callback'))

    admin_emails: List[str] = field(default_factory=lambda: [e.lower() for e in _split_csv(os.getenv('ADMIN_EMAILS'))])
    allowed_origins: List[str] = field(default_factory=lambda: _split_csv(os.getenv('ALLOWED_ORIGINS', 'http://localhost:3000')))

    @property
    def oauth_enabled(self) -> bool:
        return bool(self.oauth_client_id and self.oauth_client_secret and self.oauth_authorization_url)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Force la relecture de l'environnement (tests)."""
    global _settings
    _settings = None
