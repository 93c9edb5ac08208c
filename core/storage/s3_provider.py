from __future__ import annotations

from threading import Lock
from typing import Any, Callable

import boto3
from botocore.config import Config

from core.errors import StorageConfigurationError
from core.logging_config import get_logger
from core.settings import Settings
from core.storage.provider import UploadStorageProvider
from core.storage.types import BucketConfig, BucketType, PresignedUpload

logger = get_logger(__name__)

PRESIGNED_URL_TTL_SECONDS = 300


def build_r2_client(settings: Settings) -> Any:
    if not (settings.r2_account_id and settings.r2_access_key_id and settings.r2_secret_access_key):
        raise RuntimeError(
            "Missing required R2 environment variables: R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY"
        )

    return boto3.client(
        "s3",
        endpoint_url=settings.r2_endpoint_url,
        aws_access_key_id=settings.r2_access_key_id,
        aws_secret_access_key=settings.r2_secret_access_key,
        region_name="auto",
        config=Config(signature_version="s3v4"),
    )


def bucket_configs_from_settings(settings: Settings) -> dict[BucketType, BucketConfig]:
    return {
        BucketType.VIDEOS: BucketConfig(
            bucket_name=settings.r2_bucket_name,
            public_base_url=settings.r2_public_url,
        ),
        BucketType.IMAGES: BucketConfig(
            bucket_name=settings.r2_images_bucket_name,
            public_base_url=settings.r2_images_public_url,
        ),
    }


class S3StorageProvider(UploadStorageProvider):
    """Pre-signs direct uploads against an S3-compatible store (Cloudflare R2).

    The boto3 client is built on first use, so a process without R2
    credentials still starts and only the upload route fails.
    """

    backend_name = "r2"

    def __init__(
        self,
        *,
        buckets: dict[BucketType, BucketConfig],
        client: Any | None = None,
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        if client is None and client_factory is None:
            raise ValueError("Either client or client_factory is required")
        self._buckets = buckets
        self._client = client
        self._client_factory = client_factory
        self._lock = Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3StorageProvider":
        return cls(
            buckets=bucket_configs_from_settings(settings),
            client_factory=lambda: build_r2_client(settings),
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._client_factory()
        return self._client

    def bucket_config(self, bucket_type: BucketType) -> BucketConfig:
        config = self._buckets.get(bucket_type)
        if config is None or not config.is_configured:
            raise StorageConfigurationError(details={"bucketType": bucket_type.value})
        return config

    def presign_put(
        self,
        *,
        bucket_type: BucketType,
        key: str,
        content_type: str,
        metadata: dict[str, str] | None = None,
        expires_in: int = PRESIGNED_URL_TTL_SECONDS,
    ) -> PresignedUpload:
        config = self.bucket_config(bucket_type)
        params: dict[str, Any] = {
            "Bucket": config.bucket_name,
            "Key": key,
            "ContentType": content_type,
        }
        if metadata:
            params["Metadata"] = metadata

        url = self.client.generate_presigned_url(
            ClientMethod="put_object",
            Params=params,
            ExpiresIn=expires_in,
        )
        logger.debug("Generated presigned PUT url", extra={"bucket": config.bucket_name, "key": key})
        return PresignedUpload(
            url=url,
            bucket_name=config.bucket_name,
            key=key,
            public_url=f"{config.public_base_url.rstrip('/')}/{key}",
            expires_in=expires_in,
        )
