"""Recent-usage analysis feeding daily template selection."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.challenges.catalog import UsageSnapshot
from studyhub.db.models import Quiz, QuizAttempt

logger = logging.getLogger(__name__)


async def analyze_recent_usage(
    db: AsyncSession,
    now: datetime,
    days: int = 7,
    top_n: int = 5,
) -> UsageSnapshot:
    """Popular topics and mean score per difficulty over the last ``days`` days.

    Topics come from the ``top_n`` most-attempted quizzes; duplicate topics
    keep their first (most popular) position.
    """
    since = now - timedelta(days=days)

    popular = await db.execute(
        select(Quiz.topic, func.count(QuizAttempt.id).label("attempts"))
        .select_from(QuizAttempt)
        .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
        .where(QuizAttempt.created_at >= since, QuizAttempt.activity_type == "quiz")
        .group_by(Quiz.id, Quiz.topic)
        .order_by(func.count(QuizAttempt.id).desc(), Quiz.topic.asc())
        .limit(top_n)
    )
    topics: list[str] = []
    for row in popular:
        if row.topic and row.topic not in topics:
            topics.append(row.topic)

    pct = QuizAttempt.score * 100.0 / QuizAttempt.total_questions
    by_difficulty = await db.execute(
        select(Quiz.difficulty, func.avg(pct).label("mean_pct"))
        .select_from(QuizAttempt)
        .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
        .where(
            QuizAttempt.created_at >= since,
            QuizAttempt.activity_type == "quiz",
            QuizAttempt.total_questions > 0,
        )
        .group_by(Quiz.difficulty)
    )
    scores = {row.difficulty: float(row.mean_pct) for row in by_difficulty if row.mean_pct is not None}

    logger.info("Usage analysis: %d popular topics, difficulty means %s", len(topics), scores)
    return UsageSnapshot(popular_topics=tuple(topics), difficulty_scores=scores)
