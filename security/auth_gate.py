from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final
from urllib.parse import urlencode

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from security.auth import get_session_provider, resolve_request_session

PROTECTED_ROUTES: Final[tuple[str, ...]] = ("/dashboard", "/profile", "/upload")
AUTH_ONLY_ROUTES: Final[tuple[str, ...]] = ("/login", "/signup")
LOGIN_PATH: Final[str] = "/login"

_SKIPPED_PREFIXES: Final[tuple[str, ...]] = ("/static/", "/_next/static", "/_next/image")
_SKIPPED_PATHS: Final[tuple[str, ...]] = ("/favicon.ico",)
_SKIPPED_EXTENSIONS: Final[tuple[str, ...]] = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp")


class RouteKind(str, Enum):
    PROTECTED = "protected"
    AUTH_ONLY = "auth_only"
    PUBLIC = "public"


class GateAction(str, Enum):
    PASS = "pass"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    location: str | None = None


def classify_route(path: str) -> RouteKind:
    if any(path.startswith(route) for route in PROTECTED_ROUTES):
        return RouteKind.PROTECTED
    if any(path.startswith(route) for route in AUTH_ONLY_ROUTES):
        return RouteKind.AUTH_ONLY
    return RouteKind.PUBLIC


def safe_redirect_target(redirect_to: str | None) -> str:
    # Only local paths; anything else could bounce users off-site.
    if not redirect_to or not redirect_to.startswith("/") or redirect_to.startswith("//"):
        return "/"
    return redirect_to


def decide(path: str, *, has_session: bool, redirect_to: str | None = None) -> GateDecision:
    kind = classify_route(path)

    if kind is RouteKind.PROTECTED and not has_session:
        return GateDecision(
            action=GateAction.REDIRECT,
            location=f"{LOGIN_PATH}?{urlencode({'redirectTo': path})}",
        )

    if kind is RouteKind.AUTH_ONLY and has_session:
        return GateDecision(action=GateAction.REDIRECT, location=safe_redirect_target(redirect_to))

    return GateDecision(action=GateAction.PASS)


def is_gated_path(path: str) -> bool:
    if path in _SKIPPED_PATHS or path.startswith(_SKIPPED_PREFIXES):
        return False
    return not path.lower().endswith(_SKIPPED_EXTENSIONS)


class AuthGateMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not is_gated_path(path):
            return await call_next(request)

        session = await resolve_request_session(request, get_session_provider(request))
        decision = decide(
            path,
            has_session=session is not None,
            redirect_to=request.query_params.get("redirectTo"),
        )
        if decision.action is GateAction.REDIRECT:
            return RedirectResponse(url=decision.location, status_code=307)

        response = await call_next(request)
        if session is not None:
            response.headers["x-user-id"] = session.user_id
            response.headers["x-user-email"] = session.email or ""
        return response
