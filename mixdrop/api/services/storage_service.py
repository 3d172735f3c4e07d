"""
Stockage objet S3 (MinIO, R2, AWS) des fichiers audio et des pochettes.

Les erreurs boto3 remontent à l'appelant, qui décide de la compensation.
"""
import secrets
import string
import time
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from mixdrop.api.utils.constants import PRESIGNED_DOWNLOAD_EXPIRY, PRESIGNED_UPLOAD_EXPIRY
from mixdrop.api.utils.logging import logger
from mixdrop.api.utils.settings import Settings, get_settings

_KEY_ALPHABET = string.ascii_lowercase + string.digits
_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def generate_storage_key(user_id: Any, filename: str, prefix: str = "mixes") -> str:
    """Clé `{prefix}/{userId}/{timestampMs}-{random}.{ext}` choisie par le serveur."""
    extension = filename.rsplit(".", 1)[-1]
    timestamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(13))
    return f"{prefix}/{user_id}/{timestamp}-{suffix}.{extension}"


class StorageService:
    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        self.settings = settings or get_settings()
        self.bucket = self.settings.s3_bucket
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                's3',
                endpoint_url=self.settings.s3_endpoint,
                aws_access_key_id=self.settings.s3_access_key,
                aws_secret_access_key=self.settings.s3_secret_key,
                region_name=self.settings.s3_region,
                config=Config(
                    signature_version='s3v4',
                    s3={'addressing_style': 'path' if self.settings.s3_force_path_style else 'auto'},
                ),
            )
        return self._client

    generate_storage_key = staticmethod(generate_storage_key)

    def _public_url(self, url: str) -> str:
        # Les URLs signées sont émises contre l'endpoint interne (réseau docker)
        internal = self.settings.s3_endpoint
        public = self.settings.s3_public_endpoint
        if internal and public:
            return url.replace(internal, public, 1)
        return url

    def upload(self, key: str, body: bytes, content_type: str) -> str:
        self.client.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType=content_type)
        logger.info(f"[STORAGE] Objet envoyé: {key} ({len(body)} octets)")
        return key

    def delete(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info(f"[STORAGE] Objet supprimé: {key}")

    def presigned_download_url(self, key: str, expires_in: int = PRESIGNED_DOWNLOAD_EXPIRY,
                               filename: Optional[str] = None) -> str:
        params = {'Bucket': self.bucket, 'Key': key}
        if filename:
            params['ResponseContentDisposition'] = f'attachment; filename="{filename}"'
        url = self.client.generate_presigned_url('get_object', Params=params, ExpiresIn=expires_in)
        return self._public_url(url)

    def presigned_upload_url(self, key: str, content_type: str, expires_in: int = PRESIGNED_UPLOAD_EXPIRY) -> str:
        url = self.client.generate_presigned_url(
            'put_object',
            Params={'Bucket': self.bucket, 'Key': key, 'ContentType': content_type},
            ExpiresIn=expires_in,
        )
        return self._public_url(url)

    def head(self, key: str) -> Optional[Dict[str, Any]]:
        """Métadonnées de l'objet, ou None s'il n'existe pas."""
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if str(e.response.get('Error', {}).get('Code')) in _MISSING_CODES:
                return None
            raise
        return {
            'size': response.get('ContentLength', 0),
            'content_type': response.get('ContentType'),
        }

    def list_keys(self, prefix: str) -> List[Dict[str, Any]]:
        """Liste les objets sous un préfixe : clé, taille et date de modification."""
        objects = []
        paginator = self.client.get_paginator('list_objects_v2')
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for obj in page.get('Contents', []):
                objects.append({
                    'key': obj['Key'],
                    'size': obj['Size'],
                    'last_modified': obj['LastModified'],
                })
        return objects


_storage: Optional[StorageService] = None


def get_storage() -> StorageService:
    global _storage
    if _storage is None:
        _storage = StorageService()
    return _storage
