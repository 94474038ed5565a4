"""Challenge view cache tests against fakeredis, no Redis, and a failing Redis."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from studyhub.challenges import cache

NOW = datetime(2026, 3, 10, 23, 0, tzinfo=timezone.utc)


class TestKeys:
    def test_all_key(self):
        assert cache.all_key(7) == "challenges:all:7"

    def test_today_key_uses_utc_date(self):
        assert cache.today_key(7, NOW) == "challenges:today:7:2026-03-10"

    def test_today_ttl_runs_to_midnight(self):
        assert cache.today_ttl(NOW) == 3600


class TestReadWrite:
    @pytest.mark.asyncio
    async def test_roundtrip_with_ttl(self, redis_client):
        await cache.write(redis_client, "challenges:all:1", [{"id": "c1"}], 120)
        assert await cache.read(redis_client, "challenges:all:1") == [{"id": "c1"}]
        ttl = await redis_client.ttl("challenges:all:1")
        assert 0 < ttl <= 120

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, redis_client):
        assert await cache.read(redis_client, "challenges:all:404") is None

    @pytest.mark.asyncio
    async def test_empty_list_is_a_hit(self, redis_client):
        await cache.write(redis_client, "challenges:all:2", [], 120)
        assert await cache.read(redis_client, "challenges:all:2") == []

    @pytest.mark.asyncio
    async def test_no_redis_is_a_noop(self):
        await cache.write(None, "k", [1], 10)
        assert await cache.read(None, "k") is None
        await cache.invalidate_user(None, 1, NOW)
        assert await cache.invalidate_everyone(None) == 0

    @pytest.mark.asyncio
    async def test_read_failure_is_a_miss(self):
        broken = AsyncMock()
        broken.get.side_effect = ConnectionError("redis down")
        assert await cache.read(broken, "challenges:all:1") is None


class TestInvalidation:
    @pytest.mark.asyncio
    async def test_invalidate_user_drops_both_views(self, redis_client):
        await redis_client.set(cache.all_key(1), json.dumps([]))
        await redis_client.set(cache.today_key(1, NOW), json.dumps([]))
        await redis_client.set(cache.all_key(2), json.dumps([]))

        await cache.invalidate_user(redis_client, 1, NOW)

        assert await redis_client.get(cache.all_key(1)) is None
        assert await redis_client.get(cache.today_key(1, NOW)) is None
        assert await redis_client.get(cache.all_key(2)) is not None

    @pytest.mark.asyncio
    async def test_invalidate_user_swallows_errors(self):
        broken = AsyncMock()
        broken.delete.side_effect = ConnectionError("redis down")
        await cache.invalidate_user(broken, 1, NOW)
        broken.delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalidate_everyone(self, redis_client):
        for user_id in range(3):
            await redis_client.set(cache.all_key(user_id), "[]")
        await redis_client.set("session:unrelated", "keep")

        assert await cache.invalidate_everyone(redis_client) == 3
        assert await redis_client.get("session:unrelated") == "keep"

    @pytest.mark.asyncio
    async def test_invalidate_everyone_swallows_errors(self):
        broken = MagicMock()
        broken.scan_iter.side_effect = ConnectionError("redis down")
        assert await cache.invalidate_everyone(broken) == 0
