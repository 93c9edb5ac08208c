from fastapi import APIRouter, Depends, Request, Response

from api.dependencies import get_rate_limiters, get_storage_provider
from core.rate_limit import RateLimiters, enforce_rate_limit
from core.response_envelope import document_response
from core.storage import UploadStorageProvider
from core.validation_errors import parse_payload, read_json_body
from schemas.upload_schema import PresignedUrlRequest, PresignedUrlResponse
from security.auth import require_session
from security.session import AuthSession
from services.upload_service import issue_presigned_grant

router = APIRouter(prefix="/upload", tags=["Uploads"])

verify_upload_session = require_session("Authentication required to upload files")


@router.post("/presigned-url")
@document_response(
    description="Pre-signed upload URL issued",
    success_example={
        "presignedUrl": "https://<account>.r2.cloudflarestorage.com/videos-bucket/videos/user-1/1700000000000-k3j9x0a1b2c3d.mp4?X-Amz-Signature=...",
        "publicUrl": "https://videos.example.com/videos/user-1/1700000000000-k3j9x0a1b2c3d.mp4",
        "key": "videos/user-1/1700000000000-k3j9x0a1b2c3d.mp4",
    },
    response_codes={
        400: "Invalid request data",
        401: "Authentication required",
        429: "Too many requests",
        500: "Storage configuration or server error",
    },
)
async def create_presigned_url(
    request: Request,
    response: Response,
    session: AuthSession = Depends(verify_upload_session),
    limiters: RateLimiters = Depends(get_rate_limiters),
    storage: UploadStorageProvider = Depends(get_storage_provider),
):
    await enforce_rate_limit(request, limiters.upload, session.user_id, response=response)

    body = await read_json_body(request, message="Invalid request data")
    payload = parse_payload(PresignedUrlRequest, body, message="Invalid request data")

    grant = await issue_presigned_grant(storage=storage, user_id=session.user_id, payload=payload)
    return PresignedUrlResponse(presigned_url=grant.presigned_url, public_url=grant.public_url, key=grant.key)
