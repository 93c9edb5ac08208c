from __future__ import annotations

import time

from core.logging_config import get_logger
from core.storage import BucketType, PresignedGrant, UploadStorageProvider, build_storage_key
from core.storage.s3_provider import PRESIGNED_URL_TTL_SECONDS
from schemas.upload_schema import PresignedUrlRequest

logger = get_logger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


async def issue_presigned_grant(
    *,
    storage: UploadStorageProvider,
    user_id: str,
    payload: PresignedUrlRequest,
) -> PresignedGrant:
    bucket_type = BucketType(payload.bucket_type)
    # Fails before any signing work when the bucket is not configured.
    storage.bucket_config(bucket_type)

    key = build_storage_key(
        bucket_type=bucket_type.value,
        user_id=user_id,
        file_name=payload.file_name,
        now_ms=_epoch_ms(),
    )
    upload = storage.presign_put(
        bucket_type=bucket_type,
        key=key,
        content_type=payload.file_type,
        metadata={
            "uploaded-by": user_id,
            "original-name": payload.file_name,
        },
        expires_in=PRESIGNED_URL_TTL_SECONDS,
    )

    logger.info(
        "Presigned upload url issued",
        extra={"key": key, "bucket": upload.bucket_name, "user_id": user_id},
    )
    return PresignedGrant(presigned_url=upload.url, public_url=upload.public_url, key=key)
