"""Activity submission: records quiz and flashcard attempts."""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studyhub.activity.schemas import ActivitySubmitRequest, ActivitySubmitResponse
from studyhub.activity.service import get_quiz, is_perfect, record_attempt
from studyhub.auth.dependencies import get_current_user
from studyhub.challenges.service import run_progress_update
from studyhub.challenges.windows import ensure_utc
from studyhub.database import get_session, get_session_factory
from studyhub.db.models import User
from studyhub.redis_client import get_redis_dep

router = APIRouter(prefix="/api/v1/activities", tags=["Activity"])


@router.post("", response_model=ActivitySubmitResponse, status_code=201)
async def submit_activity(
    body: ActivitySubmitRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: aioredis.Redis = Depends(get_redis_dep),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ActivitySubmitResponse:
    """Store the attempt, then update challenge progress after the response.

    Progress failures are logged by the background task and never change
    this response.
    """
    if body.quiz_id is not None and await get_quiz(db, body.quiz_id) is None:
        raise HTTPException(status_code=404, detail="Quiz not found")

    try:
        attempt = await record_attempt(
            db,
            user_id=user.id,
            activity_type=body.activity_type,
            score=body.score,
            total_questions=body.total_questions,
            quiz_id=body.quiz_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()

    perfect = is_perfect(body.score, body.total_questions)
    background_tasks.add_task(
        run_progress_update, session_factory, redis, user.id, body.activity_type, perfect,
    )

    return ActivitySubmitResponse(
        attempt_id=attempt.id,
        activity_type=attempt.activity_type,
        score=attempt.score,
        total_questions=attempt.total_questions,
        is_perfect=perfect,
        created_at=ensure_utc(attempt.created_at),
    )
