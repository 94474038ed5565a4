"""User lookups used by auth and leaderboards."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from studyhub.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


def display_name_for(user: User) -> str:
    """Display name, falling back to the local part of the email."""
    return user.display_name or user.email.split("@", 1)[0]
