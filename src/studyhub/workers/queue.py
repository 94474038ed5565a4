"""arq connection pool used by the API to enqueue background jobs."""

from collections.abc import AsyncGenerator

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings

_queue: ArqRedis | None = None


async def init_queue(url: str) -> None:
    """Initialize the arq pool."""
    global _queue  # noqa: PLW0603
    _queue = await create_pool(RedisSettings.from_dsn(url))


async def close_queue() -> None:
    """Close the arq pool."""
    global _queue  # noqa: PLW0603
    if _queue:
        await _queue.aclose()
        _queue = None


def get_queue() -> ArqRedis:
    """Get the arq pool."""
    if _queue is None:
        msg = "Job queue not initialized. Call init_queue() first."
        raise RuntimeError(msg)
    return _queue


async def get_queue_dep() -> AsyncGenerator[ArqRedis, None]:
    """Yield the arq pool as a FastAPI dependency."""
    yield get_queue()
