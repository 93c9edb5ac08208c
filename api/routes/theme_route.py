from fastapi import APIRouter, Depends, Request, Response

from api.dependencies import apply_general_rate_limit, get_profile_repository
from core.rate_limit import RateLimitResult
from core.response_envelope import document_response
from core.validation_errors import parse_payload, read_json_body
from repositories.profile_repo import ProfileRepository
from schemas.theme_schema import ThemePreferenceUpdate
from security.auth import require_session
from security.session import AuthSession
from services.theme_service import get_theme_preference, update_theme_preference

router = APIRouter(prefix="/user", tags=["User"])

verify_theme_update_session = require_session("Authentication required to update theme preference")
verify_theme_read_session = require_session("Authentication required to get theme preference")


@router.put("/theme")
@document_response(
    description="Theme preference stored (or acknowledged when the column is missing)",
    success_example={"message": "Theme preference updated successfully", "theme": "dark"},
    response_codes={
        400: "Invalid theme preference",
        401: "Authentication required",
        429: "Too many requests",
    },
)
async def put_theme_preference(
    request: Request,
    response: Response,
    _rate_limit: RateLimitResult = Depends(apply_general_rate_limit),
    session: AuthSession = Depends(verify_theme_update_session),
    repository: ProfileRepository = Depends(get_profile_repository),
):
    body = await read_json_body(request, message="Invalid theme preference")
    payload = parse_payload(ThemePreferenceUpdate, body, message="Invalid theme preference")

    result = await update_theme_preference(repository=repository, session=session, theme=payload.theme)
    return result.model_dump(exclude_none=True)


@router.get("/theme")
@document_response(
    description="Stored theme preference",
    success_example={"theme": "system"},
    response_codes={401: "Authentication required", 429: "Too many requests"},
)
async def read_theme_preference(
    response: Response,
    _rate_limit: RateLimitResult = Depends(apply_general_rate_limit),
    session: AuthSession = Depends(verify_theme_read_session),
    repository: ProfileRepository = Depends(get_profile_repository),
):
    preference = await get_theme_preference(repository=repository, session=session)
    return preference.model_dump()
