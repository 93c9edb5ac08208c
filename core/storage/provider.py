from __future__ import annotations

from typing import Protocol

from core.storage.types import BucketConfig, BucketType, PresignedUpload


class UploadStorageProvider(Protocol):
    backend_name: str

    def bucket_config(self, bucket_type: BucketType) -> BucketConfig:
        ...

    def presign_put(
        self,
        *,
        bucket_type: BucketType,
        key: str,
        content_type: str,
        metadata: dict[str, str] | None = None,
        expires_in: int = 300,
    ) -> PresignedUpload:
        ...
