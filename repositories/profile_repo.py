from __future__ import annotations

from typing import Any, Protocol

import httpx

from core.logging_config import get_logger

logger = get_logger(__name__)

UNDEFINED_COLUMN_CODE = "42703"
NO_ROWS_CODE = "PGRST116"
THEME_COLUMN = "theme_preference"


class ProfileRepositoryError(Exception):
    def __init__(self, message: str, *, code: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class MissingColumnError(ProfileRepositoryError):
    """The profiles table has no theme column yet (pending migration)."""


class ProfileRepository(Protocol):
    async def get_theme_preference(self, *, user_id: str, access_token: str) -> str | None:
        ...

    async def set_theme_preference(self, *, user_id: str, access_token: str, theme: str) -> None:
        ...


def _error_from_response(response: httpx.Response) -> ProfileRepositoryError:
    code: str | None = None
    message = f"PostgREST returned {response.status_code}"
    try:
        payload: Any = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        code = payload.get("code")
        message = payload.get("message") or message

    if code == UNDEFINED_COLUMN_CODE:
        return MissingColumnError(message, code=code, status_code=response.status_code)
    return ProfileRepositoryError(message, code=code, status_code=response.status_code)


class SupabaseProfileRepository:
    """Reads and writes ``profiles`` rows through Supabase's PostgREST API.

    Requests carry the caller's access token so row-level security applies.
    """

    def __init__(
        self,
        *,
        supabase_url: str,
        anon_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._endpoint = f"{supabase_url.rstrip('/')}/rest/v1/profiles"
        self._anon_key = anon_key
        self._client = client
        self._timeout = timeout

    def _headers(self, access_token: str, **extra: str) -> dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {access_token}",
        }
        headers.update(extra)
        return headers

    async def _send(self, method: str, *, params: dict[str, str], headers: dict[str, str], json: Any = None) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.request(method, self._endpoint, params=params, headers=headers, json=json)
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.request(method, self._endpoint, params=params, headers=headers, json=json)
        except httpx.HTTPError as err:
            raise ProfileRepositoryError(f"Profile store request failed: {err}") from err

    async def get_theme_preference(self, *, user_id: str, access_token: str) -> str | None:
        response = await self._send(
            "GET",
            params={"select": THEME_COLUMN, "id": f"eq.{user_id}"},
            headers=self._headers(access_token, Accept="application/vnd.pgrst.object+json"),
        )
        if response.status_code == 200:
            payload = response.json()
            return payload.get(THEME_COLUMN) if isinstance(payload, dict) else None

        error = _error_from_response(response)
        if error.code == NO_ROWS_CODE:
            return None
        raise error

    async def set_theme_preference(self, *, user_id: str, access_token: str, theme: str) -> None:
        response = await self._send(
            "PATCH",
            params={"id": f"eq.{user_id}"},
            headers=self._headers(access_token, Prefer="return=minimal"),
            json={THEME_COLUMN: theme},
        )
        if response.is_success:
            return
        raise _error_from_response(response)
