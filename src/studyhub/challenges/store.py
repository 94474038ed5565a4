"""Challenge persistence: challenges, quiz paths and completions.

Creation paths are insert-or-skip against the unique constraints on
``(type, title_key, start_date)`` and ``(challenge_id, user_id)`` so
concurrent triggers and racing joins can never produce duplicates.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.challenges.catalog import ChallengeTemplate
from studyhub.challenges.windows import Window
from studyhub.database import dialect_insert
from studyhub.db.models import Challenge, ChallengeCompletion, ChallengeQuiz, User

logger = logging.getLogger(__name__)


def title_key(title: str) -> str:
    return title.strip().lower()


def challenge_row(template: ChallengeTemplate, window: Window, now: datetime) -> dict[str, Any]:
    """Column values for instantiating ``template`` over ``window``."""
    return {
        "id": str(uuid.uuid4()),
        "title": template.title,
        "title_key": title_key(template.title),
        "description": template.description,
        "type": template.cadence,
        "format": template.format,
        "template_key": template.key,
        "progress_rule": template.rule.value,
        "activity_type": template.activity_type.value if template.activity_type else None,
        "target": template.target,
        "increment": template.increment,
        "reward": template.reward,
        "start_date": window.start,
        "end_date": window.end,
        "created_at": now,
    }


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


async def get_challenge(db: AsyncSession, challenge_id: str) -> Challenge | None:
    result = await db.execute(
        select(Challenge)
        .where(Challenge.id == challenge_id)
        .options(selectinload(Challenge.quizzes))
    )
    return result.scalar_one_or_none()


async def existing_keys(db: AsyncSession, cadence: str, window: Window) -> tuple[set[str], set[str]]:
    """Title keys and template keys already scheduled for this exact window."""
    result = await db.execute(
        select(Challenge.title_key, Challenge.template_key).where(
            Challenge.type == cadence,
            Challenge.start_date == window.start,
        )
    )
    rows = result.all()
    return {row.title_key for row in rows}, {row.template_key for row in rows}


async def insert_challenges(
    db: AsyncSession,
    rows: Sequence[dict[str, Any]],
    quiz_paths: dict[str, list[str]] | None = None,
) -> dict[str, str]:
    """Insert challenge rows in one statement, skipping conflicts.

    ``quiz_paths`` maps a row's ``title_key`` to its ordered quiz ids.
    Returns ``{title_key: id}`` for rows actually inserted. Does not commit.
    """
    if not rows:
        return {}

    stmt = (
        dialect_insert(db, Challenge)
        .values(list(rows))
        .on_conflict_do_nothing()
        .returning(Challenge.id, Challenge.title_key)
    )
    result = await db.execute(stmt)
    inserted = {row.title_key: row.id for row in result}

    links: list[dict[str, Any]] = []
    for key, quiz_ids in (quiz_paths or {}).items():
        challenge_id = inserted.get(key)
        if challenge_id is None:
            continue
        links.extend(
            {"challenge_id": challenge_id, "quiz_id": quiz_id, "position": position}
            for position, quiz_id in enumerate(quiz_ids)
        )
    if links:
        await db.execute(dialect_insert(db, ChallengeQuiz).values(links))

    return inserted


async def list_active(db: AsyncSession, now: datetime) -> list[Challenge]:
    """Challenges whose window contains ``now``."""
    result = await db.execute(
        select(Challenge)
        .where(Challenge.start_date <= now, Challenge.end_date > now)
        .options(selectinload(Challenge.quizzes))
        .order_by(Challenge.end_date.asc(), Challenge.created_at.asc())
    )
    return list(result.scalars().all())


async def list_in_window(db: AsyncSession, cadence: str, window: Window) -> list[Challenge]:
    """Challenges of ``cadence`` starting inside ``window``."""
    result = await db.execute(
        select(Challenge)
        .where(
            Challenge.type == cadence,
            Challenge.start_date >= window.start,
            Challenge.start_date < window.end,
        )
        .options(selectinload(Challenge.quizzes))
        .order_by(Challenge.created_at.asc(), Challenge.title.asc())
    )
    return list(result.scalars().all())


async def delete_in_window(db: AsyncSession, cadence: str, window: Window) -> int:
    result = await db.execute(
        delete(Challenge).where(
            Challenge.type == cadence,
            Challenge.start_date >= window.start,
            Challenge.start_date < window.end,
        ).execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


# ---------------------------------------------------------------------------
# Completions
# ---------------------------------------------------------------------------


async def get_completion(
    db: AsyncSession,
    challenge_id: str,
    user_id: int,
    *,
    for_update: bool = False,
) -> ChallengeCompletion | None:
    stmt = select(ChallengeCompletion).where(
        ChallengeCompletion.challenge_id == challenge_id,
        ChallengeCompletion.user_id == user_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def completions_for_user(
    db: AsyncSession,
    user_id: int,
    challenge_ids: Iterable[str],
) -> dict[str, ChallengeCompletion]:
    ids = list(challenge_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(ChallengeCompletion).where(
            ChallengeCompletion.user_id == user_id,
            ChallengeCompletion.challenge_id.in_(ids),
        )
    )
    return {c.challenge_id: c for c in result.scalars().all()}


async def ensure_completions(
    db: AsyncSession,
    user_id: int,
    challenge_ids: Iterable[str],
    now: datetime,
) -> list[str]:
    """Create untouched completions where missing. Returns challenge ids created."""
    rows = [
        {
            "id": str(uuid.uuid4()),
            "challenge_id": challenge_id,
            "user_id": user_id,
            "progress": 0,
            "completed": False,
            "current_quiz_index": 0,
            "quiz_attempts": [],
            "created_at": now,
        }
        for challenge_id in challenge_ids
    ]
    if not rows:
        return []
    result = await db.execute(
        dialect_insert(db, ChallengeCompletion)
        .values(rows)
        .on_conflict_do_nothing()
        .returning(ChallengeCompletion.challenge_id)
    )
    return list(result.scalars().all())


async def get_or_create_completion(
    db: AsyncSession,
    challenge_id: str,
    user_id: int,
    now: datetime,
) -> tuple[ChallengeCompletion, bool]:
    """Fetch the user's completion, creating it if absent. Returns (row, created)."""
    created = await ensure_completions(db, user_id, [challenge_id], now)
    completion = await get_completion(db, challenge_id, user_id)
    if completion is None:  # pragma: no cover - the insert above guarantees a row
        raise RuntimeError(f"Completion for challenge {challenge_id} vanished")
    return completion, bool(created)


async def open_completions(
    db: AsyncSession,
    user_id: int,
    now: datetime,
) -> list[tuple[ChallengeCompletion, Challenge]]:
    """Incomplete completions of this user on challenges open at ``now``."""
    result = await db.execute(
        select(ChallengeCompletion, Challenge)
        .join(Challenge, ChallengeCompletion.challenge_id == Challenge.id)
        .where(
            ChallengeCompletion.user_id == user_id,
            ChallengeCompletion.completed.is_(False),
            Challenge.start_date <= now,
            Challenge.end_date > now,
        )
        .order_by(Challenge.created_at.asc())
        .with_for_update(of=ChallengeCompletion)
    )
    return [(row[0], row[1]) for row in result.all()]


async def delete_completion(db: AsyncSession, completion: ChallengeCompletion) -> None:
    await db.delete(completion)
    await db.flush()


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def _scored(challenge_id: str) -> tuple[Any, ...]:
    return (
        ChallengeCompletion.challenge_id == challenge_id,
        ChallengeCompletion.completed.is_(True),
        ChallengeCompletion.final_score.is_not(None),
    )


async def percentile_counts(
    db: AsyncSession,
    challenge_id: str,
    user_id: int,
    final_score: int,
) -> tuple[int, int]:
    """(others scoring strictly lower, all other scored completions)."""
    result = await db.execute(
        select(
            func.coalesce(func.sum(case((ChallengeCompletion.final_score < final_score, 1), else_=0)), 0),
            func.count(ChallengeCompletion.id),
        ).where(*_scored(challenge_id), ChallengeCompletion.user_id != user_id)
    )
    lower, others = result.one()
    return int(lower or 0), int(others or 0)


async def leaderboard_rows(db: AsyncSession, challenge_id: str, limit: int) -> list[dict[str, Any]]:
    result = await db.execute(
        select(
            ChallengeCompletion.user_id,
            ChallengeCompletion.final_score,
            ChallengeCompletion.percentile,
            ChallengeCompletion.completed_at,
            User,
        )
        .join(User, User.id == ChallengeCompletion.user_id)
        .where(*_scored(challenge_id))
        .order_by(
            ChallengeCompletion.final_score.desc(),
            ChallengeCompletion.completed_at.asc(),
            ChallengeCompletion.user_id.asc(),
        )
        .limit(limit)
    )
    return [
        {
            "user_id": row.user_id,
            "final_score": row.final_score,
            "percentile": row.percentile,
            "completed_at": row.completed_at,
            "user": row.User,
        }
        for row in result
    ]


async def count_scored(db: AsyncSession, challenge_id: str) -> int:
    result = await db.execute(
        select(func.count(ChallengeCompletion.id)).where(*_scored(challenge_id))
    )
    return int(result.scalar_one() or 0)


async def count_higher(db: AsyncSession, challenge_id: str, final_score: int) -> int:
    result = await db.execute(
        select(func.count(ChallengeCompletion.id)).where(
            *_scored(challenge_id), ChallengeCompletion.final_score > final_score,
        )
    )
    return int(result.scalar_one() or 0)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


async def search_challenges(
    db: AsyncSession,
    *,
    search: str | None,
    page: int,
    per_page: int,
) -> tuple[list[tuple[Challenge, int]], int]:
    """Page of challenges (newest first) with completion counts, plus total."""
    filters = []
    if search:
        pattern = f"%{search.strip().lower()}%"
        filters.append(or_(
            func.lower(Challenge.title).like(pattern),
            func.lower(Challenge.description).like(pattern),
        ))

    total_result = await db.execute(select(func.count(Challenge.id)).where(*filters))
    total = int(total_result.scalar_one() or 0)

    completion_count = (
        select(func.count(ChallengeCompletion.id))
        .where(ChallengeCompletion.challenge_id == Challenge.id)
        .correlate(Challenge)
        .scalar_subquery()
    )
    result = await db.execute(
        select(Challenge, completion_count.label("completion_count"))
        .where(*filters)
        .options(selectinload(Challenge.quizzes))
        .order_by(Challenge.created_at.desc(), Challenge.id.asc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return [(row[0], int(row[1] or 0)) for row in result.all()], total


async def delete_challenge(db: AsyncSession, challenge_id: str) -> bool:
    result = await db.execute(
        delete(Challenge)
        .where(Challenge.id == challenge_id)
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount)
