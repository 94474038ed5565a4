"""Challenges API: discovery, enrolment, quiz paths and leaderboards."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.auth.dependencies import get_current_user
from studyhub.challenges.errors import ChallengeNotFoundError, ChallengeStateError
from studyhub.challenges.schemas import (
    ChallengeLeaderboardResponse,
    ChallengeProgressResponse,
    ChallengeQuizResultResponse,
    ChallengeResponse,
    ChallengeStartResponse,
    LeaveResponse,
    QuizResultRequest,
)
from studyhub.challenges.service import ChallengeEngine
from studyhub.database import get_session
from studyhub.db.models import User
from studyhub.redis_client import get_redis_dep

router = APIRouter(prefix="/api/v1/challenges", tags=["Challenges"])


async def get_challenge_engine(
    db: AsyncSession = Depends(get_session),
    redis: aioredis.Redis = Depends(get_redis_dep),
) -> ChallengeEngine:
    return ChallengeEngine(db, redis)


@contextmanager
def challenge_errors() -> Iterator[None]:
    """Map engine errors to HTTP status codes."""
    try:
        yield
    except ChallengeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ChallengeStateError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("", response_model=list[ChallengeResponse])
async def list_active_challenges(
    user: User = Depends(get_current_user),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> list[dict]:
    """All challenges open right now, with the caller's progress."""
    return await engine.get_all_active(user.id)


@router.get("/today", response_model=list[ChallengeResponse])
async def list_today_challenges(
    user: User = Depends(get_current_user),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> list[dict]:
    """Today's daily challenges; the caller is enrolled automatically."""
    return await engine.get_today(user.id)


@router.post("/{challenge_id}/join", response_model=ChallengeResponse)
async def join_challenge(
    challenge_id: str,
    user: User = Depends(get_current_user),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> dict:
    with challenge_errors():
        return await engine.join(challenge_id, user.id)


@router.post("/{challenge_id}/leave", response_model=LeaveResponse)
async def leave_challenge(
    challenge_id: str,
    user: User = Depends(get_current_user),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> LeaveResponse:
    with challenge_errors():
        await engine.leave(challenge_id, user.id)
    return LeaveResponse(challenge_id=challenge_id)


@router.post("/{challenge_id}/start", response_model=ChallengeStartResponse)
async def start_challenge(
    challenge_id: str,
    user: User = Depends(get_current_user),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> dict:
    with challenge_errors():
        return await engine.start_challenge(challenge_id, user.id)


@router.post("/{challenge_id}/complete", response_model=ChallengeResponse)
async def complete_challenge(
    challenge_id: str,
    user: User = Depends(get_current_user),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> dict:
    with challenge_errors():
        return await engine.complete_challenge(challenge_id, user.id)


@router.post(
    "/{challenge_id}/quizzes/{quiz_id}/complete",
    response_model=ChallengeQuizResultResponse,
)
async def complete_challenge_quiz(
    challenge_id: str,
    quiz_id: str,
    body: QuizResultRequest,
    user: User = Depends(get_current_user),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> dict:
    """Record one quiz of a challenge path; the last one finishes the challenge."""
    with challenge_errors():
        return await engine.complete_quiz_in_challenge(
            challenge_id,
            quiz_id,
            user.id,
            score=body.score,
            total_questions=body.total_questions,
            attempt_id=body.attempt_id,
        )


@router.get("/{challenge_id}/leaderboard", response_model=ChallengeLeaderboardResponse)
async def challenge_leaderboard(
    challenge_id: str,
    user: User = Depends(get_current_user),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> dict:
    with challenge_errors():
        return await engine.get_leaderboard(challenge_id, user.id)


@router.get("/{challenge_id}/progress", response_model=ChallengeProgressResponse)
async def challenge_progress(
    challenge_id: str,
    user: User = Depends(get_current_user),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> dict:
    with challenge_errors():
        return await engine.get_progress(challenge_id, user.id)
