from __future__ import annotations

from fastapi import Depends, Request, Response

from core.rate_limit import RateLimiters, RateLimitResult, enforce_rate_limit
from core.storage import UploadStorageProvider
from repositories.profile_repo import ProfileRepository


def get_storage_provider(request: Request) -> UploadStorageProvider:
    return request.app.state.storage_provider


def get_rate_limiters(request: Request) -> RateLimiters:
    return request.app.state.rate_limiters


def get_profile_repository(request: Request) -> ProfileRepository:
    return request.app.state.profile_repository


async def apply_general_rate_limit(
    request: Request,
    response: Response,
    limiters: RateLimiters = Depends(get_rate_limiters),
) -> RateLimitResult:
    return await enforce_rate_limit(request, limiters.general, response=response)
