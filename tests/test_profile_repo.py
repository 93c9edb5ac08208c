from __future__ import annotations

import json

import httpx
import pytest

from repositories.profile_repo import MissingColumnError, ProfileRepositoryError, SupabaseProfileRepository


def _repository(handler) -> tuple[SupabaseProfileRepository, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    repository = SupabaseProfileRepository(
        supabase_url="https://project-ref.supabase.co",
        anon_key="anon-key",
        client=client,
    )
    return repository, client


@pytest.mark.asyncio
async def test_get_theme_preference_reads_single_row():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"theme_preference": "dark"})

    repository, client = _repository(handler)
    async with client:
        theme = await repository.get_theme_preference(user_id="user-1", access_token="token-1")

    assert theme == "dark"
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/profiles"
    assert request.url.params["select"] == "theme_preference"
    assert request.url.params["id"] == "eq.user-1"
    assert request.headers["accept"] == "application/vnd.pgrst.object+json"
    assert request.headers["authorization"] == "Bearer token-1"
    assert request.headers["apikey"] == "anon-key"


@pytest.mark.asyncio
async def test_get_theme_preference_without_row_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(406, json={"code": "PGRST116", "message": "JSON object requested, multiple (or no) rows returned"})

    repository, client = _repository(handler)
    async with client:
        assert await repository.get_theme_preference(user_id="user-1", access_token="t") is None


@pytest.mark.asyncio
async def test_missing_column_is_reported_distinctly():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": "42703", "message": "column profiles.theme_preference does not exist"})

    repository, client = _repository(handler)
    async with client:
        with pytest.raises(MissingColumnError) as exc_info:
            await repository.get_theme_preference(user_id="user-1", access_token="t")

    assert exc_info.value.code == "42703"
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_set_theme_preference_patches_own_row():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    repository, client = _repository(handler)
    async with client:
        await repository.set_theme_preference(user_id="user-1", access_token="t", theme="light")

    request = seen[0]
    assert request.method == "PATCH"
    assert request.url.params["id"] == "eq.user-1"
    assert request.headers["prefer"] == "return=minimal"
    assert json.loads(request.content) == {"theme_preference": "light"}


@pytest.mark.asyncio
async def test_set_theme_preference_raises_on_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"code": "XX000", "message": "internal error"})

    repository, client = _repository(handler)
    async with client:
        with pytest.raises(ProfileRepositoryError) as exc_info:
            await repository.set_theme_preference(user_id="user-1", access_token="t", theme="dark")

    assert not isinstance(exc_info.value, MissingColumnError)
    assert exc_info.value.code == "XX000"


@pytest.mark.asyncio
async def test_transport_failure_becomes_repository_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    repository, client = _repository(handler)
    async with client:
        with pytest.raises(ProfileRepositoryError, match="Profile store request failed"):
            await repository.get_theme_preference(user_id="user-1", access_token="t")
