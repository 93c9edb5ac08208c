from core.storage.keys import build_storage_key
from core.storage.provider import UploadStorageProvider
from core.storage.s3_provider import S3StorageProvider
from core.storage.types import BucketConfig, BucketType, PresignedGrant, PresignedUpload

__all__ = [
    "BucketConfig",
    "BucketType",
    "PresignedGrant",
    "PresignedUpload",
    "S3StorageProvider",
    "UploadStorageProvider",
    "build_storage_key",
]
