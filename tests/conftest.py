from __future__ import annotations

import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("SUPABASE_URL", "https://project-ref.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
os.environ.setdefault("RATE_LIMIT_ENFORCEMENT", "best-effort")

import pytest

from core.rate_limit import RateLimitConfig, RateLimiters
from tests.fakes import (
    TEST_TOKEN,
    FakePresignClient,
    FakeProfileRepository,
    FakeSessionProvider,
    make_session,
)


@pytest.fixture
def session_provider() -> FakeSessionProvider:
    return FakeSessionProvider({TEST_TOKEN: make_session()})


@pytest.fixture
def presign_client() -> FakePresignClient:
    return FakePresignClient()


@pytest.fixture
def profile_repository() -> FakeProfileRepository:
    return FakeProfileRepository()


@pytest.fixture
def open_rate_limiters() -> RateLimiters:
    return RateLimiters.from_config(RateLimitConfig())


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_TOKEN}"}
