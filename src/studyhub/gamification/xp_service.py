"""XP grant service with idempotency and level-up detection."""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.database import dialect_insert
from studyhub.db.models import UserGamification, XPLedger

logger = logging.getLogger(__name__)

XP_PER_LEVEL_UNIT = 100


def compute_level(total_xp: int) -> int:
    """Level = floor(sqrt(total_xp / 100)) + 1, so level 2 at 100 XP, 3 at 400."""
    if total_xp <= 0:
        return 1
    return math.isqrt(total_xp // XP_PER_LEVEL_UNIT) + 1


def challenge_idempotency_key(challenge_id: str, user_id: int) -> str:
    return f"challenge:{challenge_id}:{user_id}"


async def get_or_create_gamification(db: AsyncSession, user_id: int) -> UserGamification:
    """Get or create the denormalized gamification row for a user."""
    result = await db.execute(
        select(UserGamification).where(UserGamification.user_id == user_id)
    )
    gam = result.scalar_one_or_none()
    if gam is None:
        gam = UserGamification(
            user_id=user_id,
            total_xp=0,
            level=1,
            updated_at=datetime.now(timezone.utc),
        )
        db.add(gam)
        await db.flush()
    return gam


async def grant_xp(
    db: AsyncSession,
    redis: object,
    user_id: int,
    amount: int,
    source: str,
    source_id: str,
    description: str,
    idempotency_key: str,
) -> bool:
    """Grant XP to a user. Returns True if granted, False if duplicate.

    1. Insert into xp_ledger, skipping on an idempotency key conflict
    2. Update user_gamification.total_xp
    3. Recompute level from total_xp
    4. If level changed, publish a level_up event
    """
    now = datetime.now(timezone.utc)

    result = await db.execute(
        dialect_insert(db, XPLedger)
        .values(
            user_id=user_id,
            amount=amount,
            source=source,
            source_id=source_id,
            description=description[:256],
            idempotency_key=idempotency_key,
            created_at=now,
        )
        .on_conflict_do_nothing(index_elements=["idempotency_key"])
        .returning(XPLedger.id)
    )
    if result.scalar_one_or_none() is None:
        return False

    gam = await get_or_create_gamification(db, user_id)
    old_level = gam.level
    gam.total_xp += amount
    gam.level = compute_level(gam.total_xp)
    gam.updated_at = now

    await db.flush()

    logger.info("Granted %d XP to user %d (%s %s)", amount, user_id, source, source_id)

    if gam.level > old_level:
        await _emit_level_up(redis, user_id, old_level, gam.level)

    return True


async def _emit_level_up(redis: object, user_id: int, old_level: int, new_level: int) -> None:
    """Broadcast a level-up event for activity feeds."""
    logger.info("User %d levelled up %d -> %d", user_id, old_level, new_level)
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[union-attr]
            "pubsub:level_up",
            json.dumps({"user_id": user_id, "old_level": old_level, "new_level": new_level}),
        )
    except Exception:
        logger.warning("Failed to publish level_up broadcast", exc_info=True)


async def get_xp_summary(db: AsyncSession, user_id: int) -> dict:
    result = await db.execute(
        select(UserGamification).where(UserGamification.user_id == user_id)
    )
    gam = result.scalar_one_or_none()
    if gam is None:
        return {"user_id": user_id, "total_xp": 0, "level": 1}
    return {"user_id": user_id, "total_xp": gam.total_xp, "level": gam.level}
