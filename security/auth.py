from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Depends, Request

from core.errors import AuthenticationError
from security.session import AuthSession, SessionProvider, extract_access_token

_UNRESOLVED = object()


def get_session_provider(request: Request) -> SessionProvider:
    return request.app.state.session_provider


async def resolve_request_session(request: Request, provider: SessionProvider) -> AuthSession | None:
    """Look the session up once per request and cache it on ``request.state``."""
    cached = getattr(request.state, "session", _UNRESOLVED)
    if cached is not _UNRESOLVED:
        return cached

    access_token = extract_access_token(request.headers, request.cookies)
    session = await provider.get_session(access_token) if access_token else None
    request.state.session = session
    return session


async def get_optional_session(
    request: Request,
    provider: SessionProvider = Depends(get_session_provider),
) -> AuthSession | None:
    return await resolve_request_session(request, provider)


def require_session(message: str = "Authentication required") -> Callable[..., Awaitable[AuthSession]]:
    async def verify_session(session: AuthSession | None = Depends(get_optional_session)) -> AuthSession:
        if session is None:
            raise AuthenticationError(message)
        return session

    return verify_session
