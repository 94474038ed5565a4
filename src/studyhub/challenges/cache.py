"""Per-user challenge view cache in Redis.

Populate is awaited so the same request never serves stale data.
Invalidation failures are logged and swallowed: the cache is derived
state and a miss costs one database read.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import redis.asyncio as aioredis
import structlog

from studyhub.challenges.windows import day_window, seconds_until_midnight

logger = structlog.get_logger()

ALL_CACHE_KEY = "challenges:all:{user_id}"
TODAY_CACHE_KEY = "challenges:today:{user_id}:{day}"
CACHE_PATTERN = "challenges:*"


def all_key(user_id: int) -> str:
    return ALL_CACHE_KEY.format(user_id=user_id)


def today_key(user_id: int, now: datetime) -> str:
    return TODAY_CACHE_KEY.format(user_id=user_id, day=day_window(now).start.date().isoformat())


def today_ttl(now: datetime) -> int:
    """Expire exactly at the next midnight."""
    return seconds_until_midnight(now)


async def read(redis: aioredis.Redis | None, key: str) -> Any | None:
    if redis is None:
        return None
    try:
        cached = await redis.get(key)
    except Exception:
        logger.warning("challenge_cache_read_failed", key=key, exc_info=True)
        return None
    if cached:
        logger.debug("challenge_cache_hit", key=key)
        return json.loads(cached)
    return None


async def write(redis: aioredis.Redis | None, key: str, value: Any, ttl_seconds: int) -> None:
    if redis is None:
        return
    await redis.set(key, json.dumps(value), ex=max(1, ttl_seconds))


async def invalidate_user(redis: aioredis.Redis | None, user_id: int, now: datetime) -> None:
    """Drop the user's 'all' and 'today' views."""
    if redis is None:
        return
    try:
        await redis.delete(all_key(user_id), today_key(user_id, now))
    except Exception:
        logger.warning("challenge_cache_invalidate_failed", user_id=user_id, exc_info=True)


async def invalidate_everyone(redis: aioredis.Redis | None) -> int:
    """Drop every cached challenge view (admin create/delete)."""
    if redis is None:
        return 0
    deleted = 0
    try:
        batch: list[str] = []
        async for key in redis.scan_iter(match=CACHE_PATTERN, count=500):
            batch.append(key)
            if len(batch) >= 500:
                deleted += await redis.delete(*batch)
                batch = []
        if batch:
            deleted += await redis.delete(*batch)
    except Exception:
        logger.warning("challenge_cache_flush_failed", exc_info=True)
    return deleted
