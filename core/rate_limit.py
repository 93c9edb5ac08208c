from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from limits import RateLimitItemPerSecond
from limits.storage import Storage, storage_from_string
from limits.strategies import SlidingWindowCounterRateLimiter
from redis.exceptions import RedisError
from starlette.requests import Request

from core.errors import RateLimitError
from core.logging_config import get_logger
from core.settings import Settings

logger = get_logger(__name__)

FAIL_OPEN_LIMIT = 1000
FAIL_OPEN_REMAINING = 999
FAIL_OPEN_WINDOW_SECONDS = 60


class RateLimitEnforcement(str, Enum):
    STRICT = "strict"
    BEST_EFFORT = "best-effort"


@dataclass(frozen=True)
class RateLimitConfig:
    enforcement: RateLimitEnforcement = RateLimitEnforcement.BEST_EFFORT
    storage_uri: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimitConfig":
        return cls(
            enforcement=RateLimitEnforcement(settings.rate_limit_enforcement),
            storage_uri=settings.rate_limit_storage_uri,
        )


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    amount: int
    window_seconds: int

    def to_item(self) -> RateLimitItemPerSecond:
        return RateLimitItemPerSecond(self.amount, self.window_seconds)


AUTH_POLICY = RateLimitPolicy(name="auth", amount=5, window_seconds=10)
UPLOAD_POLICY = RateLimitPolicy(name="upload", amount=10, window_seconds=60)
GENERAL_POLICY = RateLimitPolicy(name="general", amount=30, window_seconds=60)


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: float
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def retry_after_seconds(self) -> int:
        return max(math.ceil(self.reset - time.time()), 0)


def _iso_utc(epoch_seconds: float) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _build_result(*, success: bool, limit: int, remaining: int, reset: float) -> RateLimitResult:
    remaining = max(remaining, 0)
    return RateLimitResult(
        success=success,
        limit=limit,
        remaining=remaining,
        reset=reset,
        headers={
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": _iso_utc(reset),
        },
    )


def fail_open_result() -> RateLimitResult:
    return _build_result(
        success=True,
        limit=FAIL_OPEN_LIMIT,
        remaining=FAIL_OPEN_REMAINING,
        reset=time.time() + FAIL_OPEN_WINDOW_SECONDS,
    )


class RateLimiter:
    """Sliding-window counter for one policy.

    Counting lives in the backing store; this class only shapes the result.
    With ``best-effort`` enforcement a missing or failing store lets every
    request through.
    """

    def __init__(
        self,
        policy: RateLimitPolicy,
        *,
        storage: Storage | None,
        enforcement: RateLimitEnforcement = RateLimitEnforcement.BEST_EFFORT,
    ) -> None:
        if storage is None and enforcement is RateLimitEnforcement.STRICT:
            raise RuntimeError(
                f"Rate limiter '{policy.name}' requires a backing store when enforcement is strict"
            )
        self.policy = policy
        self.enforcement = enforcement
        self._item = policy.to_item()
        self._storage = storage
        self._strategy = SlidingWindowCounterRateLimiter(storage) if storage is not None else None

    @property
    def enabled(self) -> bool:
        return self._strategy is not None

    def _fail_open(self, reason: str) -> RateLimitResult:
        logger.warning(
            "Rate limiting disabled for '%s': %s",
            self.policy.name,
            reason,
            extra={"policy": self.policy.name},
        )
        return fail_open_result()

    def limit(self, identifier: str) -> RateLimitResult:
        if self._strategy is None:
            return self._fail_open("backing store not configured")

        try:
            allowed = self._strategy.hit(self._item, self.policy.name, identifier)
            reset_time, remaining = self._strategy.get_window_stats(self._item, self.policy.name, identifier)
        except RedisError as err:
            if self.enforcement is RateLimitEnforcement.STRICT:
                raise
            return self._fail_open(f"backing store unavailable ({err})")

        return _build_result(
            success=allowed,
            limit=self.policy.amount,
            remaining=remaining,
            reset=reset_time,
        )

    def check_store(self) -> bool:
        if self._storage is None:
            return False
        return self._storage.check()


@dataclass(frozen=True)
class RateLimiters:
    auth: RateLimiter
    upload: RateLimiter
    general: RateLimiter

    @classmethod
    def from_config(cls, config: RateLimitConfig, *, storage: Storage | None = None) -> "RateLimiters":
        if storage is None and config.storage_uri:
            storage = storage_from_string(config.storage_uri)
        return cls(
            auth=RateLimiter(AUTH_POLICY, storage=storage, enforcement=config.enforcement),
            upload=RateLimiter(UPLOAD_POLICY, storage=storage, enforcement=config.enforcement),
            general=RateLimiter(GENERAL_POLICY, storage=storage, enforcement=config.enforcement),
        )


def get_client_ip(headers: Mapping[str, str]) -> str:
    cf_connecting_ip = headers.get("cf-connecting-ip")
    if cf_connecting_ip:
        return cf_connecting_ip.strip()

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return "unknown"


async def with_rate_limit(
    request: Request,
    limiter: RateLimiter | None,
    identifier: str | None = None,
) -> RateLimitResult:
    if limiter is None:
        logger.warning("Rate limiting disabled: no limiter configured")
        return fail_open_result()
    return await asyncio.to_thread(limiter.limit, identifier or get_client_ip(request.headers))


async def enforce_rate_limit(
    request: Request,
    limiter: RateLimiter,
    identifier: str | None = None,
    *,
    response: Any | None = None,
) -> RateLimitResult:
    """Apply the limiter and raise ``RateLimitError`` when the caller is over quota.

    Headers are copied onto ``response`` when one is given.
    """
    result = await with_rate_limit(request, limiter, identifier)
    if not result.success:
        raise RateLimitError(retry_after=result.retry_after_seconds, headers=result.headers)
    if response is not None:
        for key, value in result.headers.items():
            response.headers[key] = value
    return result
