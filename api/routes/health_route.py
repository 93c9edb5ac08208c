import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.dependencies import get_rate_limiters, get_storage_provider
from core.errors import StorageConfigurationError
from core.rate_limit import RateLimiters
from core.response_envelope import document_response
from core.storage import BucketType, UploadStorageProvider

router = APIRouter(tags=["Health"])


def _rate_limit_store_status(limiters: RateLimiters) -> dict[str, str | float]:
    if not limiters.general.enabled:
        return {"status": "disabled", "latency_ms": 0, "message": "No rate limit store configured"}

    start = time.perf_counter()
    try:
        healthy = limiters.general.check_store()
    except Exception as exc:
        healthy = False
        message = str(exc)
    else:
        message = "Rate limit store reachable" if healthy else "Rate limit store check failed"
    return {
        "status": "healthy" if healthy else "unhealthy",
        "latency_ms": round((time.perf_counter() - start) * 1000, 2),
        "message": message,
    }


def _bucket_status(storage: UploadStorageProvider, bucket_type: BucketType) -> dict[str, str | float]:
    try:
        config = storage.bucket_config(bucket_type)
    except StorageConfigurationError:
        return {"status": "unhealthy", "latency_ms": 0, "message": "Bucket not configured"}
    return {"status": "healthy", "latency_ms": 0, "message": f"Bucket {config.bucket_name} configured"}


@router.get("/health")
@document_response(
    description="Health check completed",
    success_example={"status": "healthy", "services": {"rate_limit_store": {"status": "healthy"}}},
)
async def health_check(
    limiters: RateLimiters = Depends(get_rate_limiters),
    storage: UploadStorageProvider = Depends(get_storage_provider),
):
    services = {
        "rate_limit_store": _rate_limit_store_status(limiters),
        "videos_bucket": _bucket_status(storage, BucketType.VIDEOS),
        "images_bucket": _bucket_status(storage, BucketType.IMAGES),
    }
    overall_status = "degraded" if any(item["status"] == "unhealthy" for item in services.values()) else "healthy"

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": services,
    }
