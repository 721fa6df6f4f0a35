"""
Health check endpoints
"""

from typing import Any
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from app.core.database import get_session
from app.core.redis import get_redis
from app.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/live")
async def liveness() -> Any:
    """
    Kubernetes liveness probe
    """
    return {"status": "alive", "service": "deskbook-api"}


@router.get("/ready")
async def readiness(db: AsyncSession = Depends(get_session)) -> Any:
    """
    Kubernetes readiness probe; Redis is only checked when rate limiting uses it
    """
    checks = {"database": False, "api": True}

    try:
        result = await db.execute(text("SELECT 1"))
        checks["database"] = result.scalar() == 1
    except Exception as e:
        logger.warning(f"Readiness: database check failed: {e}")

    if settings.RATE_LIMIT_ENABLED:
        checks["redis"] = False
        try:
            redis_client = await get_redis()
            await redis_client.ping()
            checks["redis"] = True
        except Exception as e:
            logger.warning(f"Readiness: redis check failed: {e}")

    all_healthy = all(checks.values())

    return {
        "status": "ready" if all_healthy else "not ready",
        "checks": checks,
        "version": settings.APP_VERSION
    }
