from __future__ import annotations

from typing import Literal

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from core.file_types import allowed_types_for_bucket, format_file_size, max_size_for

BucketTypeName = Literal["videos", "images"]

_INVALID_FILE_NAME_CHARACTERS = '<>:"/\\|?*'


def _check_file_name(value: str) -> str:
    if any(char in _INVALID_FILE_NAME_CHARACTERS for char in value):
        raise ValueError("File name contains invalid characters")
    return value


class PresignedUrlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Declared first so the file type check can see it.
    bucket_type: BucketTypeName = Field(default="videos", alias="bucketType")
    file_name: str = Field(alias="fileName", min_length=1, max_length=255)
    file_type: str = Field(alias="fileType", min_length=1)

    @field_validator("bucket_type", mode="before")
    @classmethod
    def check_bucket_type(cls, value):
        if value not in ("videos", "images"):
            raise ValueError('Bucket type must be either "videos" or "images"')
        return value

    @field_validator("file_name")
    @classmethod
    def check_file_name(cls, value: str) -> str:
        return _check_file_name(value)

    @field_validator("file_type")
    @classmethod
    def check_file_type_matches_bucket(cls, value: str, info: ValidationInfo) -> str:
        bucket_type = info.data.get("bucket_type")
        if bucket_type is None:
            return value
        if value not in allowed_types_for_bucket(bucket_type):
            raise ValueError("File type does not match the selected bucket type")
        return value


class PresignedUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    presigned_url: str = Field(alias="presignedUrl")
    public_url: str = Field(alias="publicUrl")
    key: str


class FileSizeCheck(BaseModel):
    type: Literal["video", "image"]
    size: int = Field(gt=0)

    @field_validator("size")
    @classmethod
    def check_size_limit(cls, value: int, info: ValidationInfo) -> int:
        kind = info.data.get("type")
        if kind is None:
            return value
        limit = max_size_for(kind)
        if value > limit:
            raise ValueError(f"File size exceeds the maximum allowed limit of {format_file_size(limit)}")
        return value


class UploadCompletion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(min_length=1)
    public_url: AnyHttpUrl = Field(alias="publicUrl")
    original_file_name: str = Field(alias="originalFileName", min_length=1, max_length=255)
    file_size: int = Field(alias="fileSize", gt=0)
    file_type: str = Field(alias="fileType", min_length=1)
    bucket_type: BucketTypeName = Field(alias="bucketType")

    @field_validator("original_file_name")
    @classmethod
    def check_file_name(cls, value: str) -> str:
        return _check_file_name(value)
