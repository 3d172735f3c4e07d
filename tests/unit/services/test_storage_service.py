"""
Tests du service de stockage objet (client boto3 simulé).
"""
import re
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from mixdrop.api.services.storage_service import StorageService, generate_storage_key
from mixdrop.api.utils.settings import Settings


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def settings():
    return Settings(
        s3_endpoint="http://minio:9000",
        s3_public_endpoint="https://cdn.example.com",
        s3_bucket="mixes-bucket",
    )


@pytest.fixture
def storage(settings, s3_client):
    return StorageService(settings=settings, client=s3_client)


def test_generate_storage_key_format():
    """Clé `prefix/userId/timestampMs-random.ext`."""
    key = generate_storage_key(42, "my set.final.mp3", "mixes")

    assert re.fullmatch(r"mixes/42/\d{13}-[a-z0-9]{13}\.mp3", key)


def test_generate_storage_key_is_unique():
    keys = {generate_storage_key(1, "a.wav") for _ in range(50)}

    assert len(keys) == 50


def test_generate_storage_key_for_covers():
    assert generate_storage_key(3, "cover.png", "covers").startswith("covers/3/")


def test_upload_puts_object(storage, s3_client):
    key = storage.upload("mixes/1/abc.mp3", b"data", "audio/mpeg")

    assert key == "mixes/1/abc.mp3"
    s3_client.put_object.assert_called_once_with(
        Bucket="mixes-bucket", Key="mixes/1/abc.mp3", Body=b"data", ContentType="audio/mpeg"
    )


def test_delete_object(storage, s3_client):
    storage.delete("mixes/1/abc.mp3")

    s3_client.delete_object.assert_called_once_with(Bucket="mixes-bucket", Key="mixes/1/abc.mp3")


def test_presigned_download_url_uses_public_endpoint(storage, s3_client):
    """L'endpoint interne est remplacé par l'endpoint public."""
    s3_client.generate_presigned_url.return_value = "http://minio:9000/mixes-bucket/mixes/1/abc.mp3?X-Amz=1"

    url = storage.presigned_download_url("mixes/1/abc.mp3", 3600, filename="DJ_Test_-_Summer.mp3")

    assert url == "https://cdn.example.com/mixes-bucket/mixes/1/abc.mp3?X-Amz=1"
    args, kwargs = s3_client.generate_presigned_url.call_args
    assert args[0] == "get_object"
    assert kwargs["ExpiresIn"] == 3600
    assert kwargs["Params"]["ResponseContentDisposition"] == 'attachment; filename="DJ_Test_-_Summer.mp3"'


def test_presigned_url_without_public_endpoint(s3_client):
    storage = StorageService(settings=Settings(s3_endpoint="http://minio:9000", s3_public_endpoint=None),
                             client=s3_client)
    s3_client.generate_presigned_url.return_value = "http://minio:9000/b/k"

    assert storage.presigned_download_url("k") == "http://minio:9000/b/k"


def test_presigned_upload_url(storage, s3_client):
    s3_client.generate_presigned_url.return_value = "http://minio:9000/mixes-bucket/mixes/1/x.mp3"

    url = storage.presigned_upload_url("mixes/1/x.mp3", "audio/mpeg", 900)

    assert url.startswith("https://cdn.example.com/")
    args, kwargs = s3_client.generate_presigned_url.call_args
    assert args[0] == "put_object"
    assert kwargs["Params"]["ContentType"] == "audio/mpeg"
    assert kwargs["ExpiresIn"] == 900


def test_head_existing_object(storage, s3_client):
    s3_client.head_object.return_value = {"ContentLength": 3600000, "ContentType": "audio/mpeg"}

    assert storage.head("mixes/1/abc.mp3") == {"size": 3600000, "content_type": "audio/mpeg"}


@pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
def test_head_missing_object(storage, s3_client, code):
    s3_client.head_object.side_effect = ClientError({"Error": {"Code": code, "Message": "missing"}}, "HeadObject")

    assert storage.head("mixes/1/missing.mp3") is None


def test_head_other_error_propagates(storage, s3_client):
    s3_client.head_object.side_effect = ClientError({"Error": {"Code": "403", "Message": "denied"}}, "HeadObject")

    with pytest.raises(ClientError):
        storage.head("mixes/1/abc.mp3")


def test_list_keys(storage, s3_client):
    modified = datetime(2026, 1, 1, tzinfo=timezone.utc)
    paginator = MagicMock()
    paginator.paginate.return_value = [
        {"Contents": [{"Key": "mixes/1/a.mp3", "Size": 10, "LastModified": modified}]},
        {},
    ]
    s3_client.get_paginator.return_value = paginator

    objects = storage.list_keys("mixes/")

    assert objects == [{"key": "mixes/1/a.mp3", "size": 10, "last_modified": modified}]
    paginator.paginate.assert_called_once_with(Bucket="mixes-bucket", Prefix="mixes/")
