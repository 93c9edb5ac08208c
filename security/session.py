from __future__ import annotations

import base64
import json
from typing import Any, Mapping, Protocol

import httpx
import jwt
from pydantic import BaseModel

from core.logging_config import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_COOKIE = "sb-access-token"
AUTH_TOKEN_COOKIE_PREFIX = "sb-"
AUTH_TOKEN_COOKIE_SUFFIX = "-auth-token"
SUPABASE_JWT_AUDIENCE = "authenticated"


class AuthSession(BaseModel):
    user_id: str
    email: str | None = None
    access_token: str
    expires_at: int | None = None


class SessionProvider(Protocol):
    async def get_session(self, access_token: str) -> AuthSession | None:
        ...


def _token_from_auth_cookie(raw_value: str) -> str | None:
    value = raw_value
    if value.startswith("base64-"):
        try:
            padded = value[len("base64-"):]
            padded += "=" * (-len(padded) % 4)
            value = base64.urlsafe_b64decode(padded).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            return None

    try:
        parsed: Any = json.loads(value)
    except ValueError:
        return None

    if isinstance(parsed, list) and parsed and isinstance(parsed[0], str):
        return parsed[0]
    if isinstance(parsed, dict) and isinstance(parsed.get("access_token"), str):
        return parsed["access_token"]
    return None


def extract_access_token(headers: Mapping[str, str], cookies: Mapping[str, str]) -> str | None:
    """Find the caller's Supabase access token.

    Order: ``Authorization: Bearer``, the ``sb-access-token`` cookie, then a
    ``sb-<project-ref>-auth-token`` cookie as written by the Supabase helpers.
    """
    authorization = headers.get("authorization")
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", maxsplit=1)[1].strip()
        if token:
            return token

    cookie_token = cookies.get(ACCESS_TOKEN_COOKIE)
    if cookie_token:
        return cookie_token

    for name, value in cookies.items():
        if name.startswith(AUTH_TOKEN_COOKIE_PREFIX) and name.endswith(AUTH_TOKEN_COOKIE_SUFFIX):
            token = _token_from_auth_cookie(value)
            if token:
                return token

    return None


class JwtSessionProvider:
    """Verifies Supabase access tokens locally with the project's JWT secret."""

    algorithm = "HS256"

    def __init__(self, secret: str, *, audience: str = SUPABASE_JWT_AUDIENCE) -> None:
        self._secret = secret
        self._audience = audience

    async def get_session(self, access_token: str) -> AuthSession | None:
        try:
            claims = jwt.decode(
                access_token,
                self._secret,
                algorithms=[self.algorithm],
                audience=self._audience,
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Expired session token")
            return None
        except jwt.InvalidTokenError as err:
            logger.debug("Rejected session token: %s", err)
            return None

        user_id = claims.get("sub")
        if not user_id:
            return None

        return AuthSession(
            user_id=str(user_id),
            email=claims.get("email"),
            access_token=access_token,
            expires_at=claims.get("exp"),
        )


class SupabaseSessionProvider:
    """Asks Supabase Auth who owns the token (``GET /auth/v1/user``)."""

    def __init__(
        self,
        *,
        supabase_url: str,
        anon_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._base_url = supabase_url.rstrip("/")
        self._anon_key = anon_key
        self._client = client
        self._timeout = timeout

    async def _fetch_user(self, client: httpx.AsyncClient, access_token: str) -> httpx.Response:
        return await client.get(
            f"{self._base_url}/auth/v1/user",
            headers={
                "apikey": self._anon_key,
                "Authorization": f"Bearer {access_token}",
            },
        )

    async def get_session(self, access_token: str) -> AuthSession | None:
        try:
            if self._client is not None:
                response = await self._fetch_user(self._client, access_token)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._fetch_user(client, access_token)
        except httpx.HTTPError as err:
            logger.warning("Supabase session lookup failed: %s", err)
            return None

        if response.status_code != 200:
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Supabase session lookup returned invalid JSON")
            return None

        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            return None

        return AuthSession(
            user_id=str(user_id),
            email=payload.get("email"),
            access_token=access_token,
        )
