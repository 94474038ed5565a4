"""Shared test fixtures.

Database tests run against an in-memory SQLite database (schema built from
the ORM metadata) and Redis tests against fakeredis, so the suite needs no
running services. Every session in a test shares one connection and one
outer transaction; a session commit releases a SAVEPOINT, so writes from the
engine, the fixtures and HTTP requests see each other without lock waits.
"""

from __future__ import annotations

import os

os.environ.setdefault("STUDYHUB_JWT_SECRET", "test-secret-key-with-at-least-32-bytes")
os.environ.setdefault("STUDYHUB_LOG_FORMAT", "console")
os.environ.setdefault("STUDYHUB_ANTHROPIC_API_KEY", "")

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fakeredis import FakeAsyncRedis  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from studyhub.config import Settings, get_settings  # noqa: E402

get_settings.cache_clear()

from studyhub.activity.service import create_quiz  # noqa: E402
from studyhub.auth.jwt import create_access_token  # noqa: E402
from studyhub.challenges import store  # noqa: E402
from studyhub.challenges.admin_router import get_content_generator  # noqa: E402
from studyhub.challenges.catalog import ChallengeTemplate, ProgressRule  # noqa: E402
from studyhub.challenges.windows import Window, day_window, utcnow  # noqa: E402
from studyhub.database import get_session, get_session_factory  # noqa: E402
from studyhub.db.base import Base  # noqa: E402
from studyhub.db.models import Challenge, User  # noqa: E402
from studyhub.main import create_app  # noqa: E402
from studyhub.redis_client import get_redis_dep  # noqa: E402
from studyhub.workers.queue import get_queue_dep  # noqa: E402

UserFactory = Callable[..., Awaitable[User]]
LiveChallengeFactory = Callable[..., Awaitable[Challenge]]


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINTs work, and enforce FKs."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest_asyncio.fixture
async def db_connection() -> AsyncGenerator[AsyncConnection, None]:
    """Single connection holding the outer transaction for one test."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    _enable_sqlite_transactions(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with engine.connect() as conn:
        outer = await conn.begin()
        yield conn
        if outer.is_active:
            await outer.rollback()
    await engine.dispose()


@pytest.fixture
def session_factory(db_connection: AsyncConnection) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for services and assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[FakeAsyncRedis, None]:
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def make_user(session_factory: async_sessionmaker[AsyncSession]) -> UserFactory:
    """Create and commit a user in its own session."""
    counter = {"n": 0}

    async def _make(display_name: str | None = None, role: str = "user", email: str | None = None) -> User:
        counter["n"] += 1
        async with session_factory() as session:
            user = User(
                email=email or f"learner{counter['n']}@example.com",
                display_name=display_name,
                role=role,
                is_banned=False,
                created_at=datetime.now(timezone.utc),
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Bearer header for a user, signed with the test secret."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers


@pytest.fixture
def job_queue() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def content_generator() -> AsyncMock:
    generator = AsyncMock()
    generator.generate_quiz.return_value = {
        "title": "Generated Quiz",
        "topic": "Biology",
        "questions": [{"question": "Q?", "options": ["a", "b"], "correctAnswer": 0}],
    }
    return generator


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: FakeAsyncRedis,
    job_queue: AsyncMock,
    content_generator: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app with database, Redis and queue overridden."""
    app = create_app()

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def _redis() -> AsyncGenerator[FakeAsyncRedis, None]:
        yield redis_client

    async def _queue() -> AsyncGenerator[AsyncMock, None]:
        yield job_queue

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_redis_dep] = _redis
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_queue_dep] = _queue
    app.dependency_overrides[get_content_generator] = lambda: content_generator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def live_challenge(db_session: AsyncSession) -> LiveChallengeFactory:
    """Insert a challenge whose window is offset (in days) from today."""

    async def _make(
        title: str = "Quiz Sprint",
        *,
        cadence: str = "daily",
        rule: ProgressRule = ProgressRule.QUIZ_COUNT,
        target: int = 2,
        reward: int = 100,
        days_offset: int = 0,
        quiz_count: int = 0,
    ) -> Challenge:
        today = day_window()
        window = Window(today.start + timedelta(days=days_offset), today.end + timedelta(days=days_offset))

        quiz_ids = []
        for position in range(quiz_count):
            quiz_ids.append(await create_quiz(
                db_session,
                title=f"{title} quiz {position + 1}",
                topic="Geography",
                difficulty="medium",
                questions=[{"question": "Capital of France?", "options": ["Paris", "Rome"], "correctAnswer": 0}],
                is_challenge_quiz=True,
            ))

        template = ChallengeTemplate(
            key=f"test_{title.lower().replace(' ', '_')}",
            title=title,
            description=f"{title} description",
            cadence=cadence,
            rule=ProgressRule.QUIZ_PATH if quiz_count else rule,
            target=quiz_count or target,
            reward=reward,
        )
        row = store.challenge_row(template, window, utcnow())
        inserted = await store.insert_challenges(db_session, [row], {row["title_key"]: quiz_ids})
        await db_session.commit()
        return await store.get_challenge(db_session, inserted[row["title_key"]])

    return _make
