from __future__ import annotations

from fastapi.testclient import TestClient

import main
from core.rate_limit import RateLimitConfig, RateLimiters
from security.session import JwtSessionProvider, SupabaseSessionProvider
from tests.fakes import FakeProfileRepository, FakeSessionProvider, make_settings, make_storage


def _client(*, images_configured: bool = True) -> TestClient:
    app = main.create_app(
        make_settings(),
        session_provider=FakeSessionProvider(),
        storage_provider=make_storage(images_configured=images_configured),
        rate_limiters=RateLimiters.from_config(RateLimitConfig()),
        profile_repository=FakeProfileRepository(),
    )
    return TestClient(app)


def test_module_level_app_exposes_all_routes():
    paths = main.app.openapi()["paths"]

    assert "get" in paths["/health"]
    assert "post" in paths["/api/upload/presigned-url"]
    assert {"get", "put"} <= set(paths["/api/user/theme"])


def test_route_documentation_reaches_openapi_schema():
    operation = _client().app.openapi()["paths"]["/api/upload/presigned-url"]["post"]

    assert "presignedUrl" in operation["responses"]["200"]["content"]["application/json"]["example"]
    assert operation["responses"]["401"]["description"] == "Authentication required"


def test_session_provider_follows_jwt_secret():
    assert isinstance(main.build_session_provider(make_settings()), SupabaseSessionProvider)
    assert isinstance(
        main.build_session_provider(make_settings(supabase_jwt_secret="jwt-secret-long-enough-for-hs256-signing")),
        JwtSessionProvider,
    )


def test_health_reports_services():
    response = _client().get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "healthy"
    assert payload["services"]["rate_limit_store"]["status"] == "disabled"
    assert payload["services"]["videos_bucket"]["status"] == "healthy"
    assert payload["services"]["images_bucket"]["status"] == "healthy"


def test_health_is_degraded_when_a_bucket_is_missing():
    payload = _client(images_configured=False).get("/health").json()

    assert payload["status"] == "degraded"
    assert payload["services"]["images_bucket"]["status"] == "unhealthy"


def test_request_id_is_generated_and_echoed():
    client = _client()

    generated = client.get("/health")
    echoed = client.get("/api/user/theme", headers={"X-Request-ID": "req-from-client"})

    assert generated.headers["X-Request-ID"].startswith("req_")
    assert "X-Process-Time" in generated.headers
    assert echoed.status_code == 401
    assert echoed.headers["X-Request-ID"] == "req-from-client"
    assert echoed.json()["requestId"] == "req-from-client"


def test_cors_allows_local_frontend_by_default():
    response = _client().options(
        "/api/user/theme",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "PUT"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
