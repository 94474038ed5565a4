"""Health, readiness, and version endpoints."""

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.challenges.windows import DAILY, day_window
from studyhub.config import get_settings
from studyhub.database import get_session
from studyhub.db.models import Challenge
from studyhub.redis_client import get_redis_dep, ping as redis_ping

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 while the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
    redis: aioredis.Redis = Depends(get_redis_dep),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: DB and Redis connectivity, plus today's challenge count."""
    checks: dict[str, object] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    checks["redis"] = await redis_ping(redis)

    all_ok = all(v == "ok" for v in checks.values())

    daily = None
    if checks["database"] == "ok":
        window = day_window()
        count = await db.execute(
            select(func.count(Challenge.id)).where(
                Challenge.type == DAILY,
                Challenge.start_date >= window.start,
                Challenge.start_date < window.end,
            )
        )
        daily = int(count.scalar_one())

    return {"status": "ready" if all_ok else "degraded", "checks": checks, "daily_challenges": daily}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
