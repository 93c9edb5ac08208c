from __future__ import annotations

from typing import Final

ALLOWED_VIDEO_TYPES: Final[tuple[str, ...]] = (
    "video/mp4",
    "video/webm",
    "video/quicktime",
    "video/x-msvideo",
)
ALLOWED_IMAGE_TYPES: Final[tuple[str, ...]] = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
)

MAX_VIDEO_SIZE_BYTES: Final[int] = 100 * 1024 * 1024
MAX_IMAGE_SIZE_BYTES: Final[int] = 10 * 1024 * 1024

IMAGE_EXTENSIONS: Final[tuple[str, ...]] = ("jpg", "jpeg", "png", "gif", "webp")
VIDEO_EXTENSIONS: Final[tuple[str, ...]] = ("mp4", "webm", "mov", "avi")

_SIZE_UNITS: Final[tuple[str, ...]] = ("Bytes", "KB", "MB", "GB")


def is_valid_video_type(file_type: str) -> bool:
    return file_type in ALLOWED_VIDEO_TYPES


def is_valid_image_type(file_type: str) -> bool:
    return file_type in ALLOWED_IMAGE_TYPES


def allowed_types_for_bucket(bucket_type: str) -> tuple[str, ...]:
    return ALLOWED_IMAGE_TYPES if bucket_type == "images" else ALLOWED_VIDEO_TYPES


def max_size_for(kind: str) -> int:
    return MAX_VIDEO_SIZE_BYTES if kind == "video" else MAX_IMAGE_SIZE_BYTES


def get_file_extension(file_name: str) -> str:
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()


def detect_bucket_type(file_name: str, content_type: str | None) -> str:
    """Pick the bucket from the MIME type, then the extension; videos otherwise."""
    if content_type:
        if content_type.startswith("image/"):
            return "images"
        if content_type.startswith("video/"):
            return "videos"

    extension = get_file_extension(file_name)
    if extension in IMAGE_EXTENSIONS:
        return "images"
    if extension in VIDEO_EXTENSIONS:
        return "videos"
    return "videos"


def format_file_size(size_bytes: int) -> str:
    if size_bytes <= 0:
        return "0 Bytes"

    exponent = 0
    value = float(size_bytes)
    while value >= 1024 and exponent < len(_SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    value = round(value, 2)
    return f"{value:g} {_SIZE_UNITS[exponent]}"
