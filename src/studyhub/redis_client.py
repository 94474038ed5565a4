"""Redis client for the challenge view cache and level-up events.

The API process keeps one shared pool; the arq worker builds its own
client with :func:`create_client` and stores it in the job context.
"""

from collections.abc import AsyncGenerator

import redis.asyncio as redis

_client: redis.Redis | None = None


def create_client(url: str, max_connections: int = 50) -> redis.Redis:
    """Build a client that decodes values to str (cached views are JSON text)."""
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
        health_check_interval=30,
    )


async def init_redis(url: str) -> None:
    global _client  # noqa: PLW0603
    _client = create_client(url)


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client


async def get_redis_dep() -> AsyncGenerator[redis.Redis, None]:
    """FastAPI dependency yielding the shared client."""
    yield get_redis()


async def ping(client: redis.Redis) -> str:
    """Readiness check result: ``"ok"`` or the error text."""
    try:
        await client.ping()
    except Exception as exc:
        return f"error: {exc}"
    return "ok"
