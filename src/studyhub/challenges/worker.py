"""Challenge arq worker: cadence crons and admin-triggered generation.

Runs as its own arq process (see ``studyhub.workers.settings``).
"""

from __future__ import annotations

import logging
from typing import Any

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings

from studyhub.challenges.content_generator import AnthropicContentGenerator
from studyhub.challenges.service import ChallengeEngine
from studyhub.challenges.windows import DAILY, HOT, MONTHLY, WEEKLY
from studyhub.config import get_settings
from studyhub.database import close_db, get_session_factory, init_db
from studyhub.redis_client import create_client

logger = logging.getLogger(__name__)


async def challenge_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize Redis, DB and the content generator on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)

    ctx["redis"] = create_client(settings.redis_url, max_connections=10)
    ctx["generator"] = AnthropicContentGenerator.from_settings(settings)
    logger.info("Challenge worker started")


async def challenge_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Challenge worker shut down")


async def generate_challenges(ctx: dict, cadence: str) -> dict[str, Any]:  # type: ignore[type-arg]
    """Generate one cadence window now. Returns the generation report.

    Errors propagate so the job is recorded as failed and its status
    endpoint reports it.
    """
    async with get_session_factory()() as db:
        engine = ChallengeEngine(db, ctx.get("redis"), generator=ctx.get("generator"))
        report = await engine.generate(cadence)
    return report.to_dict()


async def _scheduled(ctx: dict, cadence: str) -> None:  # type: ignore[type-arg]
    try:
        report = await generate_challenges(ctx, cadence)
        logger.info(
            "Scheduled %s generation: %d created, %d skipped, %d failed",
            cadence, len(report["created"]), len(report["skipped"]), len(report["failed"]),
        )
    except Exception:
        # The window stays ungenerated until the next trigger or a manual run.
        logger.exception("Scheduled %s challenge generation failed", cadence)


async def generate_daily_challenges(ctx: dict) -> None:  # type: ignore[type-arg]
    """Every day at 00:00 UTC."""
    await _scheduled(ctx, DAILY)


async def generate_weekly_challenges(ctx: dict) -> None:  # type: ignore[type-arg]
    """Every Sunday at 00:00 UTC."""
    await _scheduled(ctx, WEEKLY)


async def generate_monthly_challenges(ctx: dict) -> None:  # type: ignore[type-arg]
    """The 1st of every month at 00:00 UTC."""
    await _scheduled(ctx, MONTHLY)


async def generate_hot_challenges(ctx: dict) -> None:  # type: ignore[type-arg]
    """Every hour on the hour."""
    await _scheduled(ctx, HOT)


class ChallengeWorkerSettings:
    """arq worker settings for challenge generation."""

    functions = [generate_challenges]
    cron_jobs = [
        cron(generate_daily_challenges, hour=0, minute=0),
        cron(generate_weekly_challenges, weekday=6, hour=0, minute=0),
        cron(generate_monthly_challenges, day=1, hour=0, minute=0),
        cron(generate_hot_challenges, minute=0),
    ]
    on_startup = challenge_startup
    on_shutdown = challenge_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 4
    job_timeout = get_settings().challenge_generation_timeout_seconds * 3
    keep_result = 3600
