import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text

from mediaharvest.config import settings
from mediaharvest.core import database
from mediaharvest.core.metrics import get_metrics, get_metrics_content_type
from mediaharvest.core.redis import redis_client

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/health",
    summary="Liveness check",
    description="Basic liveness probe that returns HTTP 200 if the application process is running.",
)
async def liveness():
    """Liveness probe — returns 200 if the process is running."""
    return {"status": "healthy"}


@router.get(
    "/health/ready",
    summary="Readiness check",
    description="Readiness probe that verifies connectivity to the database and Redis. "
    "Returns HTTP 200 with individual check statuses when all dependencies are healthy, "
    "or HTTP 503 if any dependency is unavailable.",
)
async def readiness():
    """Readiness probe — checks DB and Redis connectivity."""
    checks = {}

    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.warning(f"Readiness: database check failed: {e}")
        checks["database"] = f"error: {e}"

    # ResilientRedis degrades to False instead of raising
    if await redis_client.ping():
        checks["redis"] = "ok"
    else:
        checks["redis"] = "error: unreachable"

    all_ok = all(v == "ok" for v in checks.values())
    return JSONResponse(
        content={"status": "ready" if all_ok else "not ready", "checks": checks},
        status_code=200 if all_ok else 503,
    )


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose application metrics in Prometheus exposition format. Returns HTTP 404 "
    "if metrics collection is disabled in the application configuration.",
)
async def metrics():
    """Prometheus metrics endpoint."""
    if not settings.METRICS_ENABLED:
        return Response(content="Metrics disabled", status_code=404)

    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type(),
    )
