"""User profile endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.auth.dependencies import get_current_user
from studyhub.database import get_session
from studyhub.db.models import User
from studyhub.gamification.xp_service import get_xp_summary
from studyhub.users.service import display_name_for

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


class ProfileResponse(BaseModel):
    id: int
    email: str
    display_name: str
    role: str
    total_xp: int
    level: int


@router.get("/me", response_model=ProfileResponse)
async def get_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    xp = await get_xp_summary(db, user.id)
    return ProfileResponse(
        id=user.id,
        email=user.email,
        display_name=display_name_for(user),
        role=user.role,
        total_xp=xp["total_xp"],
        level=xp["level"],
    )
