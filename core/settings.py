from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

load_dotenv()

SUPPORTED_ENVIRONMENTS = {"development", "production", "test"}
SUPPORTED_RATE_LIMIT_ENFORCEMENT = {"strict", "best-effort"}


def _split_csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return tuple()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _env(name: str, *fallbacks: str) -> str | None:
    for candidate in (name, *fallbacks):
        raw_value = os.getenv(candidate)
        if raw_value is None:
            continue
        normalized = raw_value.strip()
        if normalized:
            return normalized
    return None


def build_upstash_storage_uri(rest_url: str | None, token: str | None) -> str | None:
    """Translate Upstash REST credentials into a `limits` redis storage URI."""
    if not rest_url or not token:
        return None
    host = urlparse(rest_url).hostname or rest_url
    return f"rediss://default:{token}@{host}:6379"


def _rate_limit_storage_uri() -> str | None:
    explicit = _env("RATE_LIMIT_STORAGE_URL")
    if explicit:
        return explicit
    return build_upstash_storage_uri(_env("UPSTASH_REDIS_REST_URL"), _env("UPSTASH_REDIS_REST_TOKEN"))


def collect_missing_required_env_vars() -> list[str]:
    missing: list[str] = []

    if _env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL") is None:
        missing.append("SUPABASE_URL")
    if _env("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY") is None:
        missing.append("SUPABASE_ANON_KEY")

    enforcement = (_env("RATE_LIMIT_ENFORCEMENT") or "best-effort").lower()
    if enforcement == "strict" and _env("RATE_LIMIT_STORAGE_URL") is None:
        for var_name in ("UPSTASH_REDIS_REST_URL", "UPSTASH_REDIS_REST_TOKEN"):
            if _env(var_name) is None:
                missing.append(var_name)

    return sorted(set(missing))


def collect_invalid_env_values() -> list[str]:
    invalid_values: list[str] = []

    env = (_env("ENV") or "development").lower()
    if env not in SUPPORTED_ENVIRONMENTS:
        invalid_values.append("ENV must be one of: development, production, test")

    enforcement = (_env("RATE_LIMIT_ENFORCEMENT") or "best-effort").lower()
    if enforcement not in SUPPORTED_RATE_LIMIT_ENFORCEMENT:
        invalid_values.append("RATE_LIMIT_ENFORCEMENT must be one of: strict, best-effort")

    supabase_url = _env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
    if supabase_url is not None and urlparse(supabase_url).scheme not in {"http", "https"}:
        invalid_values.append("SUPABASE_URL must be an http(s) URL")

    return invalid_values


def validate_required_environment() -> None:
    missing_vars = collect_missing_required_env_vars()
    invalid_values = collect_invalid_env_values()
    if not missing_vars and not invalid_values:
        return

    message_lines = ["Application startup blocked by invalid environment configuration."]
    if missing_vars:
        message_lines.append("")
        message_lines.append("Missing required environment variables:")
        message_lines.extend(f"- {name}" for name in missing_vars)
    if invalid_values:
        message_lines.append("")
        message_lines.append("Invalid environment values:")
        message_lines.extend(f"- {message}" for message in invalid_values)
    raise RuntimeError("\n".join(message_lines))


@dataclass(frozen=True)
class Settings:
    env: str
    log_level: str
    cors_origins: tuple[str, ...]
    debug_include_error_details: bool
    supabase_url: str
    supabase_anon_key: str
    supabase_jwt_secret: str | None = None
    r2_account_id: str | None = None
    r2_access_key_id: str | None = None
    r2_secret_access_key: str | None = None
    r2_bucket_name: str | None = None
    r2_public_url: str | None = None
    r2_images_bucket_name: str | None = None
    r2_images_public_url: str | None = None
    rate_limit_storage_uri: str | None = None
    rate_limit_enforcement: str = "best-effort"

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def r2_endpoint_url(self) -> str | None:
        if not self.r2_account_id:
            return None
        return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    validate_required_environment()

    env = (_env("ENV") or "development").lower()
    default_log_level = "DEBUG" if env == "development" else "INFO"

    return Settings(
        env=env,
        log_level=(_env("LOG_LEVEL") or default_log_level).upper(),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS")),
        debug_include_error_details=os.getenv("DEBUG_INCLUDE_ERROR_DETAILS", "false").lower()
        in {"1", "true", "yes"},
        supabase_url=(_env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL") or "").rstrip("/"),
        supabase_anon_key=_env("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY") or "",
        supabase_jwt_secret=_env("SUPABASE_JWT_SECRET"),
        r2_account_id=_env("R2_ACCOUNT_ID"),
        r2_access_key_id=_env("R2_ACCESS_KEY_ID"),
        r2_secret_access_key=_env("R2_SECRET_ACCESS_KEY"),
        r2_bucket_name=_env("R2_BUCKET_NAME"),
        r2_public_url=_env("R2_PUBLIC_URL"),
        r2_images_bucket_name=_env("R2_IMAGES_BUCKET_NAME"),
        r2_images_public_url=_env("R2_IMAGES_PUBLIC_URL"),
        rate_limit_storage_uri=_rate_limit_storage_uri(),
        rate_limit_enforcement=(_env("RATE_LIMIT_ENFORCEMENT") or "best-effort").lower(),
    )
