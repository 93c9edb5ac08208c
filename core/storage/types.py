from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BucketType(str, Enum):
    VIDEOS = "videos"
    IMAGES = "images"


@dataclass(frozen=True)
class BucketConfig:
    bucket_name: str | None
    public_base_url: str | None

    @property
    def is_configured(self) -> bool:
        return bool(self.bucket_name and self.public_base_url)


@dataclass(frozen=True)
class PresignedUpload:
    url: str
    bucket_name: str
    key: str
    public_url: str
    expires_in: int
    method: str = "PUT"


@dataclass(frozen=True)
class PresignedGrant:
    presigned_url: str
    public_url: str
    key: str
