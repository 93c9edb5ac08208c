from __future__ import annotations

import json

import httpx
import pytest

from clients.upload_client import DirectUploadClient, UploadOptions, UploadSource, UploadStatus

BASE_URL = "http://app.test"
PRESIGNED_URL = "https://acct.r2.cloudflarestorage.com/videos-bucket/videos/u1/1-abc.mp4?X-Amz-Signature=sig"
PUBLIC_URL = "https://videos.example.com/videos/u1/1-abc.mp4"


def _source() -> UploadSource:
    return UploadSource(name="holiday.mp4", content_type="video/mp4", content=b"\x00\x01video-bytes")


def _grant_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"presignedUrl": PRESIGNED_URL, "publicUrl": PUBLIC_URL, "key": "videos/u1/1-abc.mp4"})


def _uploader(handler, seen: list[httpx.Request]) -> DirectUploadClient:
    def recording_handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    return DirectUploadClient(base_url=BASE_URL, access_token="token-1", client=client)


@pytest.mark.asyncio
async def test_upload_requests_grant_then_puts_file():
    seen: list[httpx.Request] = []
    progress: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return _grant_ok(request)
        return httpx.Response(200)

    uploader = _uploader(handler, seen)
    public_url = await uploader.upload_file(_source(), UploadOptions(bucket_type="videos", on_progress=progress.append))

    assert public_url == PUBLIC_URL
    assert uploader.public_url == PUBLIC_URL
    assert uploader.error is None
    assert uploader.is_loading is False
    assert uploader.progress == 100
    assert uploader.state.status is UploadStatus.SUCCEEDED
    assert progress == [25, 100]

    grant_request, put_request = seen
    assert grant_request.method == "POST"
    assert str(grant_request.url) == f"{BASE_URL}/api/upload/presigned-url"
    assert grant_request.headers["authorization"] == "Bearer token-1"
    assert json.loads(grant_request.content) == {
        "fileName": "holiday.mp4",
        "fileType": "video/mp4",
        "bucketType": "videos",
    }
    assert put_request.method == "PUT"
    assert str(put_request.url) == PRESIGNED_URL
    assert put_request.headers["content-type"] == "video/mp4"
    assert put_request.content == b"\x00\x01video-bytes"


@pytest.mark.asyncio
async def test_grant_error_message_is_surfaced_and_put_is_skipped():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "Authentication required to upload files", "code": "AUTHENTICATION_ERROR"})

    uploader = _uploader(handler, seen)
    result = await uploader.upload_file(_source())

    assert result is None
    assert uploader.error == "Authentication required to upload files"
    assert uploader.public_url is None
    assert uploader.progress == 0
    assert uploader.state.status is UploadStatus.FAILED
    assert [request.method for request in seen] == ["POST"]


@pytest.mark.asyncio
async def test_grant_failure_without_json_uses_generic_message():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad gateway</html>")

    uploader = _uploader(handler, seen)
    await uploader.upload_file(_source())

    assert uploader.error == "Failed to get upload URL"


@pytest.mark.asyncio
async def test_storage_rejection_reports_status():
    seen: list[httpx.Request] = []
    progress: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return _grant_ok(request)
        return httpx.Response(403)

    uploader = _uploader(handler, seen)
    result = await uploader.upload_file(_source(), UploadOptions(on_progress=progress.append))

    assert result is None
    assert uploader.error == "Upload failed: 403 Forbidden"
    assert uploader.progress == 0
    assert uploader.public_url is None
    assert progress == [25]


@pytest.mark.asyncio
async def test_transport_error_is_captured():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    uploader = _uploader(handler, seen)
    result = await uploader.upload_file(_source())

    assert result is None
    assert uploader.error == "connection refused"
    assert uploader.is_loading is False


@pytest.mark.asyncio
async def test_reset_returns_to_idle():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "Storage configuration error"})

    uploader = _uploader(handler, seen)
    await uploader.upload_file(_source())
    assert uploader.error == "Storage configuration error"

    uploader.reset()

    assert uploader.state.status is UploadStatus.IDLE
    assert uploader.error is None
    assert uploader.progress == 0


@pytest.mark.asyncio
async def test_grant_with_non_string_url_fails_without_put():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"presignedUrl": 12345, "publicUrl": PUBLIC_URL, "key": "videos/u1/1-abc.mp4"})

    uploader = _uploader(handler, seen)
    result = await uploader.upload_file(_source())

    assert result is None
    assert uploader.error == "Failed to get upload URL"
    assert uploader.state.status is UploadStatus.FAILED
    assert uploader.is_loading is False
    assert [request.method for request in seen] == ["POST"]


@pytest.mark.asyncio
async def test_failing_progress_callback_is_reported_as_error():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return _grant_ok(request)
        return httpx.Response(200)

    def on_progress(value: int) -> None:
        raise RuntimeError("progress listener failed")

    uploader = _uploader(handler, seen)
    result = await uploader.upload_file(_source(), UploadOptions(on_progress=on_progress))

    assert result is None
    assert uploader.error == "progress listener failed"
    assert uploader.state.status is UploadStatus.FAILED
    assert uploader.is_loading is False
    assert uploader.public_url is None
    assert uploader.progress == 0


def test_source_from_path_guesses_content_type(tmp_path):
    path = tmp_path / "cover.png"
    path.write_bytes(b"png-bytes")

    source = UploadSource.from_path(path)

    assert source.name == "cover.png"
    assert source.content_type == "image/png"
    assert source.content == b"png-bytes"
