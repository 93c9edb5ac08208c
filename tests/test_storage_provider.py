from __future__ import annotations

import re

import pytest

from core.errors import StorageConfigurationError
from core.storage import BucketConfig, BucketType, S3StorageProvider, build_storage_key
from core.storage.keys import random_token
from core.storage.s3_provider import build_r2_client
from tests.fakes import FakePresignClient, make_settings, make_storage


def test_build_storage_key_layout():
    key = build_storage_key(
        bucket_type="videos",
        user_id="user-1",
        file_name="Holiday.Clip.MP4",
        now_ms=1700000000000,
        token="k3j9x0a1b2c3d",
    )

    assert key == "videos/user-1/1700000000000-k3j9x0a1b2c3d.MP4"


def test_build_storage_key_uses_whole_name_without_dot():
    key = build_storage_key(bucket_type="images", user_id="u", file_name="README", now_ms=1, token="t")

    assert key == "images/u/1-t.README"


def test_generated_keys_are_unique_and_well_formed():
    keys = {build_storage_key(bucket_type="videos", user_id="u", file_name="a.mp4") for _ in range(50)}

    assert len(keys) == 50
    for key in keys:
        assert re.fullmatch(r"videos/u/\d+-[0-9a-z]{13}\.mp4", key)
    assert len(random_token()) == 13


def test_presign_put_signs_put_object_with_metadata():
    client = FakePresignClient("https://signed.example.com/put?sig=1")
    storage = make_storage(client)

    upload = storage.presign_put(
        bucket_type=BucketType.VIDEOS,
        key="videos/u1/1-abc.mp4",
        content_type="video/mp4",
        metadata={"uploaded-by": "u1", "original-name": "clip.mp4"},
    )

    assert upload.url == "https://signed.example.com/put?sig=1"
    assert upload.public_url == "https://videos.example.com/videos/u1/1-abc.mp4"
    assert upload.expires_in == 300
    assert client.calls == [
        {
            "ClientMethod": "put_object",
            "Params": {
                "Bucket": "videos-bucket",
                "Key": "videos/u1/1-abc.mp4",
                "ContentType": "video/mp4",
                "Metadata": {"uploaded-by": "u1", "original-name": "clip.mp4"},
            },
            "ExpiresIn": 300,
        }
    ]


def test_public_url_strips_trailing_slash_from_base():
    storage = S3StorageProvider(
        buckets={BucketType.IMAGES: BucketConfig(bucket_name="img", public_base_url="https://cdn.example.com/")},
        client=FakePresignClient(),
    )

    upload = storage.presign_put(bucket_type=BucketType.IMAGES, key="images/u/1-a.png", content_type="image/png")

    assert upload.public_url == "https://cdn.example.com/images/u/1-a.png"


def test_unconfigured_bucket_raises_storage_configuration_error():
    client = FakePresignClient()
    storage = make_storage(client, images_configured=False)

    with pytest.raises(StorageConfigurationError) as exc_info:
        storage.presign_put(bucket_type=BucketType.IMAGES, key="images/u/1-a.png", content_type="image/png")

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Storage configuration error"
    assert client.calls == []


def test_client_is_built_once_and_only_when_signing():
    built: list[FakePresignClient] = []

    def _factory():
        client = FakePresignClient()
        built.append(client)
        return client

    storage = S3StorageProvider(
        buckets={BucketType.VIDEOS: BucketConfig(bucket_name="v", public_base_url="https://v.example.com")},
        client_factory=_factory,
    )

    storage.bucket_config(BucketType.VIDEOS)
    assert built == []

    storage.presign_put(bucket_type=BucketType.VIDEOS, key="k1.mp4", content_type="video/mp4")
    storage.presign_put(bucket_type=BucketType.VIDEOS, key="k2.mp4", content_type="video/mp4")
    assert len(built) == 1
    assert len(built[0].calls) == 2


def test_build_r2_client_requires_credentials():
    with pytest.raises(RuntimeError, match="Missing required R2 environment variables"):
        build_r2_client(make_settings())


def test_real_r2_client_presigns_without_network():
    settings = make_settings(
        r2_account_id="acct123",
        r2_access_key_id="access-key",
        r2_secret_access_key="secret-key",
        r2_bucket_name="videos-bucket",
        r2_public_url="https://videos.example.com",
    )
    storage = S3StorageProvider.from_settings(settings)

    upload = storage.presign_put(bucket_type=BucketType.VIDEOS, key="videos/u/1-a.mp4", content_type="video/mp4")

    assert "acct123.r2.cloudflarestorage.com" in upload.url
    assert "X-Amz-Signature=" in upload.url
    assert "X-Amz-Expires=300" in upload.url
