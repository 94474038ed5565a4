"""Admin operations: manual creation, listing, deletion and clearing dailies."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from studyhub.activity.service import create_quiz
from studyhub.challenges import cache, store
from studyhub.challenges.errors import ChallengeNotFoundError, ChallengeStateError
from studyhub.challenges.schemas import ChallengeCreateRequest

TODAY = datetime(2026, 3, 10, tzinfo=timezone.utc)


def _request(**overrides) -> ChallengeCreateRequest:
    data = {
        "title": "Spring Sprint",
        "description": "Finish five quizzes before the break",
        "type": "weekly",
        "target": 5,
        "reward": 400,
        "start_date": TODAY,
        "end_date": TODAY + timedelta(days=7),
        "progress_rule": "quiz_count",
    }
    data.update(overrides)
    return ChallengeCreateRequest(**data)


async def _quiz(db, title: str) -> str:
    quiz_id = await create_quiz(db, title=title, topic="Chemistry", difficulty="medium", questions=[{"q": 1}])
    await db.commit()
    return quiz_id


class TestCreate:
    @pytest.mark.asyncio
    async def test_progress_challenge(self, engine):
        created = await engine.create_challenge(_request())

        assert created["title"] == "Spring Sprint"
        assert created["progress_rule"] == "quiz_count"
        assert created["target"] == 5
        assert created["template_key"] == "custom"
        assert created["quiz_ids"] == []

    @pytest.mark.asyncio
    async def test_quiz_path_uses_quiz_order(self, engine, db_session):
        first = await _quiz(db_session, "Atoms")
        second = await _quiz(db_session, "Bonds")

        created = await engine.create_challenge(_request(quiz_ids=[second, first], progress_rule=None))

        assert created["progress_rule"] == "quiz_path"
        assert created["target"] == 2
        assert created["quiz_ids"] == [second, first]

    @pytest.mark.asyncio
    async def test_unknown_quiz(self, engine):
        with pytest.raises(ChallengeNotFoundError, match="Quiz"):
            await engine.create_challenge(_request(quiz_ids=["missing"]))

    @pytest.mark.asyncio
    async def test_window_must_be_positive(self, engine):
        with pytest.raises(ChallengeStateError, match="end after"):
            await engine.create_challenge(_request(end_date=TODAY))

    @pytest.mark.asyncio
    async def test_unknown_rule(self, engine):
        with pytest.raises(ChallengeStateError, match="Unknown progress rule"):
            await engine.create_challenge(_request(progress_rule="title_contains_master"))

    @pytest.mark.asyncio
    async def test_path_rule_without_quizzes(self, engine):
        with pytest.raises(ChallengeStateError, match="no quizzes"):
            await engine.create_challenge(_request(progress_rule="quiz_path"))

    @pytest.mark.asyncio
    async def test_duplicate_title_in_window(self, engine):
        await engine.create_challenge(_request())
        with pytest.raises(ChallengeStateError, match="already exists"):
            await engine.create_challenge(_request(title="  spring sprint "))

    @pytest.mark.asyncio
    async def test_same_title_other_window(self, engine):
        await engine.create_challenge(_request())
        later = await engine.create_challenge(
            _request(start_date=TODAY + timedelta(days=7), end_date=TODAY + timedelta(days=14)),
        )
        assert later["title"] == "Spring Sprint"

    @pytest.mark.asyncio
    async def test_create_flushes_every_cached_view(self, engine, redis_client):
        await redis_client.set(cache.all_key(1), "[]")
        await redis_client.set(cache.all_key(2), "[]")

        await engine.create_challenge(_request())

        assert await redis_client.get(cache.all_key(1)) is None
        assert await redis_client.get(cache.all_key(2)) is None


class TestList:
    @pytest.mark.asyncio
    async def test_search_and_counts(self, engine, make_challenge, make_user):
        sprint = await make_challenge("Quiz Sprint")
        await make_challenge("Flash Focus", rule="flashcard_count")
        user = await make_user()
        await engine.join(sprint.id, user.id)

        listing = await engine.list_challenges(search="SPRINT")

        assert listing["meta"]["total"] == 1
        assert listing["data"][0]["id"] == sprint.id
        assert listing["data"][0]["completion_count"] == 1

    @pytest.mark.asyncio
    async def test_pagination(self, engine, make_challenge):
        for i in range(5):
            await make_challenge(f"Challenge {i}", start=TODAY - timedelta(days=i))

        page = await engine.list_challenges(page=2, per_page=2)

        assert page["meta"] == {"total": 5, "page": 2, "per_page": 2, "total_pages": 3}
        assert len(page["data"]) == 2
        # Newest first: 0 and 1 are on page one.
        assert [c["title"] for c in page["data"]] == ["Challenge 2", "Challenge 3"]


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_cascades_completions(self, engine, make_challenge, make_user, db_session):
        challenge = await make_challenge()
        user = await make_user()
        await engine.join(challenge.id, user.id)
        challenge_id = challenge.id

        await engine.delete_challenge(challenge_id)

        assert await store.get_challenge(db_session, challenge_id) is None
        assert await store.completions_for_user(db_session, user.id, [challenge_id]) == {}

    @pytest.mark.asyncio
    async def test_delete_missing(self, engine):
        with pytest.raises(ChallengeNotFoundError):
            await engine.delete_challenge("missing")


class TestClearDaily:
    @pytest.mark.asyncio
    async def test_clears_only_todays_dailies(self, engine, make_challenge, db_session):
        await engine.generate_daily()
        weekly = await make_challenge("Weekly Warrior", type="weekly", end=TODAY + timedelta(days=7))
        yesterday = await make_challenge("Old Sprint", start=TODAY - timedelta(days=1))
        weekly_id, yesterday_id = weekly.id, yesterday.id

        deleted = await engine.clear_daily_challenges()

        assert deleted == 2
        assert await store.get_challenge(db_session, weekly_id) is not None
        assert await store.get_challenge(db_session, yesterday_id) is not None

    @pytest.mark.asyncio
    async def test_generation_after_clear_recreates(self, engine):
        first = await engine.generate_daily()
        await engine.clear_daily_challenges()
        second = await engine.generate_daily()
        assert sorted(second.created) == sorted(first.created)
