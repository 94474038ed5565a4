"""Fixtures for engine tests: a frozen clock and challenge builders."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.activity.service import create_quiz
from studyhub.challenges.service import ChallengeEngine
from studyhub.db.models import Challenge, ChallengeQuiz

NOW = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)
TODAY = datetime(2026, 3, 10, tzinfo=timezone.utc)


class Clock:
    """Mutable clock so tests can move time forward."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def engine(db_session, redis_client, settings, clock) -> ChallengeEngine:
    return ChallengeEngine(db_session, redis_client, settings=settings, clock=clock)


ChallengeFactory = Callable[..., Awaitable[Challenge]]


@pytest.fixture
def make_challenge(db_session: AsyncSession) -> ChallengeFactory:
    async def _make(
        title: str = "Quiz Sprint",
        *,
        type: str = "daily",
        rule: str = "quiz_count",
        target: int = 3,
        reward: int = 100,
        increment: int = 1,
        activity_type: str | None = None,
        start: datetime = TODAY,
        end: datetime | None = None,
        quiz_count: int = 0,
    ) -> Challenge:
        challenge = Challenge(
            title=title,
            title_key=title.lower(),
            description=f"{title} description",
            type=type,
            format="path" if quiz_count else "standard",
            template_key=f"test_{title.lower().replace(' ', '_')}",
            progress_rule="quiz_path" if quiz_count else rule,
            activity_type=activity_type,
            target=quiz_count or target,
            increment=increment,
            reward=reward,
            start_date=start,
            end_date=end or start + timedelta(days=1),
            created_at=start,
        )
        db_session.add(challenge)
        await db_session.flush()
        for position in range(quiz_count):
            quiz_id = await create_quiz(
                db_session,
                title=f"{title} quiz {position + 1}",
                topic="History",
                difficulty="medium",
                questions=[{"question": "Q?", "options": ["a", "b"], "correctAnswer": 0}],
                is_challenge_quiz=True,
            )
            db_session.add(ChallengeQuiz(challenge_id=challenge.id, quiz_id=quiz_id, position=position))
        await db_session.commit()
        await db_session.refresh(challenge, attribute_names=["quizzes"])
        return challenge

    return _make
