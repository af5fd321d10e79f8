"""Health check endpoints for load balancers and monitoring."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from hearinghope.config import settings
from hearinghope.database import engine
from hearinghope.utils.cache import get_redis

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Liveness probe. Touches neither the database nor Redis."""
    return {
        "status": "ok",
        "service": "Hearing Hope",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness probe: 200 only when the database and Redis both answer."""
    checks = {
        "service": "ok",
        "database": "unknown",
        "redis": "unknown",
    }
    overall_healthy = True

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error(f"Readiness: database check failed: {e}")
        checks["database"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    try:
        redis_client = await get_redis()
        await redis_client.ping()
        checks["redis"] = "ok"
    except Exception as e:
        logger.error(f"Readiness: redis check failed: {e}")
        checks["redis"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "success": overall_healthy,
            "status": "healthy" if overall_healthy else "unhealthy",
            "service": "Hearing Hope",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
