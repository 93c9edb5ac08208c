"""Direct-to-storage upload client.

Mirrors what the gallery front-end does: ask the API for a pre-signed URL,
then PUT the file body straight to object storage. Failures never raise;
they land in ``UploadState.error``.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import httpx

from core.logging_config import get_logger

logger = get_logger(__name__)

PRESIGNED_URL_PATH = "/api/upload/presigned-url"
GRANT_PROGRESS = 25
COMPLETE_PROGRESS = 100
DEFAULT_GRANT_ERROR = "Failed to get upload URL"
DEFAULT_UPLOAD_ERROR = "Upload failed"


class UploadStatus(str, Enum):
    IDLE = "idle"
    REQUESTING_GRANT = "requesting_grant"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadState:
    status: UploadStatus = UploadStatus.IDLE
    is_loading: bool = False
    error: str | None = None
    public_url: str | None = None
    progress: int = 0


@dataclass(frozen=True)
class UploadSource:
    name: str
    content_type: str
    content: bytes

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "UploadSource":
        file_path = Path(path)
        guessed, _encoding = mimetypes.guess_type(file_path.name)
        return cls(
            name=file_path.name,
            content_type=content_type or guessed or "application/octet-stream",
            content=file_path.read_bytes(),
        )


@dataclass(frozen=True)
class UploadOptions:
    bucket_type: str = "videos"
    on_progress: Callable[[int], Any] | None = None


class UploadError(Exception):
    pass


def _grant_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return DEFAULT_GRANT_ERROR
    if isinstance(payload, dict) and isinstance(payload.get("error"), str) and payload["error"]:
        return payload["error"]
    return DEFAULT_GRANT_ERROR


class DirectUploadClient:
    """Two-step uploader: grant request, then a PUT to the pre-signed URL.

    One upload at a time per instance. Nothing guards against a second call
    while the first is still running, and there is no cancellation.
    """

    def __init__(
        self,
        *,
        base_url: str,
        access_token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._client = client
        self._timeout = timeout
        self._state = UploadState()

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def public_url(self) -> str | None:
        return self._state.public_url

    @property
    def progress(self) -> int:
        return self._state.progress

    def reset(self) -> None:
        self._state = UploadState()

    def _set_progress(self, value: int, options: UploadOptions) -> None:
        self._state = replace(self._state, progress=value)
        if options.on_progress is not None:
            options.on_progress(value)

    def _grant_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    async def _request_grant(self, client: httpx.AsyncClient, source: UploadSource, options: UploadOptions) -> dict[str, Any]:
        response = await client.post(
            f"{self._base_url}{PRESIGNED_URL_PATH}",
            json={
                "fileName": source.name,
                "fileType": source.content_type,
                "bucketType": options.bucket_type,
            },
            headers=self._grant_headers(),
        )
        if not response.is_success:
            raise UploadError(_grant_error_message(response))

        try:
            grant = response.json()
        except ValueError as err:
            raise UploadError(DEFAULT_GRANT_ERROR) from err
        if not isinstance(grant, dict):
            raise UploadError(DEFAULT_GRANT_ERROR)
        for field in ("presignedUrl", "publicUrl"):
            if not isinstance(grant.get(field), str) or not grant[field]:
                raise UploadError(DEFAULT_GRANT_ERROR)
        return grant

    async def _put_object(self, client: httpx.AsyncClient, presigned_url: str, source: UploadSource) -> None:
        response = await client.put(
            presigned_url,
            content=source.content,
            headers={"Content-Type": source.content_type},
        )
        if not response.is_success:
            raise UploadError(f"Upload failed: {response.status_code} {response.reason_phrase}")

    async def _run(self, client: httpx.AsyncClient, source: UploadSource, options: UploadOptions) -> str:
        grant = await self._request_grant(client, source, options)
        self._set_progress(GRANT_PROGRESS, options)

        self._state = replace(self._state, status=UploadStatus.UPLOADING)
        await self._put_object(client, grant["presignedUrl"], source)
        self._set_progress(COMPLETE_PROGRESS, options)
        return grant["publicUrl"]

    async def upload_file(self, source: UploadSource, options: UploadOptions | None = None) -> str | None:
        options = options or UploadOptions()
        self._state = UploadState(status=UploadStatus.REQUESTING_GRANT, is_loading=True)

        try:
            if self._client is not None:
                public_url = await self._run(self._client, source, options)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    public_url = await self._run(client, source, options)
        except UploadError as err:
            return self._fail(str(err))
        except httpx.HTTPError as err:
            return self._fail(str(err) or DEFAULT_UPLOAD_ERROR)
        except Exception as err:
            logger.exception("Unexpected error during direct upload")
            return self._fail(str(err) or DEFAULT_UPLOAD_ERROR)

        self._state = UploadState(
            status=UploadStatus.SUCCEEDED,
            is_loading=False,
            error=None,
            public_url=public_url,
            progress=COMPLETE_PROGRESS,
        )
        return public_url

    def _fail(self, message: str) -> None:
        logger.warning("Direct upload failed: %s", message)
        self._state = UploadState(
            status=UploadStatus.FAILED,
            is_loading=False,
            error=message,
            public_url=None,
            progress=0,
        )
        return None
