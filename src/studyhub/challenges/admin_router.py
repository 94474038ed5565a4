"""Admin challenge management: listing, manual creation, deletion, generation."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache

from arq.connections import ArqRedis
from arq.jobs import Job, JobStatus
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from studyhub.auth.dependencies import require_admin
from studyhub.challenges.content_generator import AnthropicContentGenerator, ContentGenerator
from studyhub.challenges.router import challenge_errors, get_challenge_engine
from studyhub.challenges.schemas import (
    AdminChallengeListResponse,
    Cadence,
    ChallengeCreateRequest,
    ChallengeResponse,
    GenerationJobResponse,
    GenerationResponse,
)
from studyhub.challenges.service import ChallengeEngine
from studyhub.config import get_settings
from studyhub.db.models import User
from studyhub.workers.queue import get_queue_dep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin/challenges", tags=["Admin: Challenges"])


@lru_cache
def get_content_generator() -> ContentGenerator | None:
    return AnthropicContentGenerator.from_settings(get_settings())


@router.get("", response_model=AdminChallengeListResponse)
async def list_challenges(
    search: str | None = Query(None, max_length=128),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    _admin: User = Depends(require_admin),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> dict:
    return await engine.list_challenges(search=search, page=page, per_page=per_page)


@router.post("", response_model=ChallengeResponse, status_code=201)
async def create_challenge(
    body: ChallengeCreateRequest,
    admin: User = Depends(require_admin),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> dict:
    with challenge_errors():
        challenge = await engine.create_challenge(body)
    logger.info("Challenge %s created by admin %d", challenge["id"], admin.id)
    return challenge


@router.delete("/{challenge_id}", status_code=204)
async def delete_challenge(
    challenge_id: str,
    _admin: User = Depends(require_admin),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> None:
    with challenge_errors():
        await engine.delete_challenge(challenge_id)


@router.post("/clear-daily")
async def clear_daily(
    _admin: User = Depends(require_admin),
    engine: ChallengeEngine = Depends(get_challenge_engine),
) -> dict[str, int]:
    """Remove today's daily challenges so they can be regenerated."""
    return {"deleted": await engine.clear_daily_challenges()}


@router.post("/generate/{cadence}")
async def generate_challenges(
    cadence: Cadence,
    wait: bool = Query(False, description="Run synchronously instead of enqueueing a job"),
    _admin: User = Depends(require_admin),
    engine: ChallengeEngine = Depends(get_challenge_engine),
    generator: ContentGenerator | None = Depends(get_content_generator),
    queue: ArqRedis = Depends(get_queue_dep),
) -> JSONResponse:
    """Generate a cadence window now, inline (``wait=true``) or as a background job."""
    if wait:
        engine.generator = generator
        timeout = get_settings().challenge_generation_timeout_seconds
        try:
            report = await asyncio.wait_for(engine.generate(cadence), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise HTTPException(status_code=504, detail="Challenge generation timed out") from e
        body = GenerationResponse(**report.to_dict())
        return JSONResponse(status_code=200, content=body.model_dump(mode="json"))

    job = await queue.enqueue_job("generate_challenges", cadence)
    if job is None:
        raise HTTPException(status_code=409, detail="A generation job is already queued")
    logger.info("Enqueued %s challenge generation job %s", cadence, job.job_id)
    body = GenerationJobResponse(job_id=job.job_id, status=JobStatus.queued.value)
    return JSONResponse(status_code=202, content=body.model_dump(mode="json"))


@router.get("/jobs/{job_id}", response_model=GenerationJobResponse)
async def generation_job_status(
    job_id: str,
    _admin: User = Depends(require_admin),
    queue: ArqRedis = Depends(get_queue_dep),
) -> GenerationJobResponse:
    job = Job(job_id, redis=queue)
    status = await job.status()
    if status == JobStatus.not_found:
        raise HTTPException(status_code=404, detail="Job not found")

    result = None
    if status == JobStatus.complete:
        info = await job.result_info()
        if info is not None:
            result = info.result if info.success else {"error": str(info.result)}
    return GenerationJobResponse(job_id=job_id, status=status.value, result=result)
