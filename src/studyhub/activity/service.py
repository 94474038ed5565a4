"""Quiz storage and activity recording."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.db.models import Quiz, QuizAttempt

logger = logging.getLogger(__name__)


async def create_quiz(
    db: AsyncSession,
    *,
    title: str,
    topic: str,
    difficulty: str,
    questions: list[dict[str, Any]],
    quiz_type: str = "standard",
    is_challenge_quiz: bool = False,
) -> str:
    """Persist a quiz and return its id (flushes, does not commit)."""
    quiz = Quiz(
        title=title[:256],
        topic=topic[:128],
        difficulty=difficulty,
        quiz_type=quiz_type,
        questions=questions,
        is_challenge_quiz=is_challenge_quiz,
        created_at=datetime.now(timezone.utc),
    )
    db.add(quiz)
    await db.flush()
    return quiz.id


async def get_quiz(db: AsyncSession, quiz_id: str) -> Quiz | None:
    result = await db.execute(select(Quiz).where(Quiz.id == quiz_id))
    return result.scalar_one_or_none()


async def record_attempt(
    db: AsyncSession,
    *,
    user_id: int,
    activity_type: str,
    score: int,
    total_questions: int,
    quiz_id: str | None = None,
    now: datetime | None = None,
) -> QuizAttempt:
    """Store a quiz or flashcard attempt (flushes, does not commit)."""
    if total_questions < 0 or score < 0 or score > total_questions:
        raise ValueError("Score must be between 0 and the number of questions")

    attempt = QuizAttempt(
        user_id=user_id,
        quiz_id=quiz_id,
        activity_type=activity_type,
        score=score,
        total_questions=total_questions,
        created_at=now or datetime.now(timezone.utc),
    )
    db.add(attempt)
    await db.flush()
    logger.info(
        "Recorded %s attempt for user %d: %d/%d", activity_type, user_id, score, total_questions,
    )
    return attempt


def is_perfect(score: int, total_questions: int) -> bool:
    return total_questions > 0 and score == total_questions
