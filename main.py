from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from api.routes.health_route import router as health_router
from api.routes.theme_route import router as theme_router
from api.routes.upload_route import router as upload_router
from core.logging_config import get_logger, setup_logging
from core.rate_limit import RateLimitConfig, RateLimiters
from core.response_envelope import apply_response_documentation, register_exception_handlers
from core.settings import Settings, get_settings
from core.storage import S3StorageProvider, UploadStorageProvider
from repositories.profile_repo import ProfileRepository, SupabaseProfileRepository
from security.auth_gate import AuthGateMiddleware
from security.session import JwtSessionProvider, SessionProvider, SupabaseSessionProvider

logger = get_logger(__name__)


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or f"req_{uuid.uuid4().hex}"
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time
        response.headers["X-Process-Time"] = str(duration)
        logger.info(
            "Request completed",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration * 1000, 2),
            },
        )
        return response


def build_session_provider(settings: Settings) -> SessionProvider:
    if settings.supabase_jwt_secret:
        return JwtSessionProvider(settings.supabase_jwt_secret)
    return SupabaseSessionProvider(supabase_url=settings.supabase_url, anon_key=settings.supabase_anon_key)


def create_app(
    settings: Settings | None = None,
    *,
    session_provider: SessionProvider | None = None,
    storage_provider: UploadStorageProvider | None = None,
    rate_limiters: RateLimiters | None = None,
    profile_repository: ProfileRepository | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="VideoHub API")
    app.state.settings = settings
    app.state.session_provider = session_provider or build_session_provider(settings)
    app.state.storage_provider = storage_provider or S3StorageProvider.from_settings(settings)
    app.state.rate_limiters = rate_limiters or RateLimiters.from_config(RateLimitConfig.from_settings(settings))
    app.state.profile_repository = profile_repository or SupabaseProfileRepository(
        supabase_url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
    )

    app.add_middleware(AuthGateMiddleware)
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins) if settings.cors_origins else ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(
        app,
        include_error_details=settings.debug_include_error_details and not settings.is_production,
    )

    for router, prefix in ((health_router, ""), (upload_router, "/api"), (theme_router, "/api")):
        apply_response_documentation(router)
        app.include_router(router, prefix=prefix)

    return app


app = create_app()
