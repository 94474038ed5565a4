"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from studyhub.activity.router import router as activity_router
from studyhub.challenges.admin_router import router as admin_challenges_router
from studyhub.challenges.router import router as challenges_router
from studyhub.config import get_settings
from studyhub.database import close_db, init_db
from studyhub.health.router import router as health_router
from studyhub.middleware import setup_middleware
from studyhub.redis_client import close_redis, init_redis
from studyhub.users.router import router as users_router
from studyhub.workers.queue import close_queue, init_queue

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # The API still serves reads without the job queue; only "generate now" needs it.
    try:
        await init_queue(settings.arq_redis_url)
    except Exception:
        logger.warning("Job queue unavailable, background generation disabled", exc_info=True)

    yield

    await close_queue()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="StudyHub API",
        description="Backend API for StudyHub: quizzes, flashcards and learning challenges",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(activity_router)
    app.include_router(challenges_router)
    app.include_router(admin_challenges_router)

    return app


app = create_app()
