"""ORM models for users, quizzes, challenges and the XP ledger.

Types are chosen so the same metadata builds on PostgreSQL (production,
via Alembic) and SQLite (tests, via ``Base.metadata.create_all``).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studyhub.db.base import Base, BigIntPK

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user", server_default="user")
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Quizzes
# ---------------------------------------------------------------------------


class Quiz(Base):
    """A quiz, either authored or materialized from generated content."""

    __tablename__ = "quizzes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    topic: Mapped[str] = mapped_column(String(128), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")
    quiz_type: Mapped[str] = mapped_column(String(16), nullable=False, default="standard")
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    is_challenge_quiz: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )


class QuizAttempt(Base):
    """One submitted quiz or flashcard session."""

    __tablename__ = "quiz_attempts"
    __table_args__ = (
        Index("idx_quiz_attempts_created_at", "created_at"),
        Index("idx_quiz_attempts_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    quiz_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("quizzes.id", ondelete="SET NULL"), nullable=True
    )
    activity_type: Mapped[str] = mapped_column(String(16), nullable=False, default="quiz")
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


class Challenge(Base):
    """A challenge template instantiated over ``[start_date, end_date)``."""

    __tablename__ = "challenges"
    __table_args__ = (
        UniqueConstraint("type", "title_key", "start_date", name="challenges_type_title_key_start_date_key"),
        CheckConstraint("start_date < end_date", name="window_check"),
        Index("idx_challenges_window", "start_date", "end_date"),
        Index("idx_challenges_type", "type"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    title_key: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    format: Mapped[str] = mapped_column(String(16), nullable=False, default="standard")
    template_key: Mapped[str] = mapped_column(String(64), nullable=False)
    progress_rule: Mapped[str] = mapped_column(String(32), nullable=False)
    activity_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    target: Mapped[int] = mapped_column(Integer, nullable=False)
    increment: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    reward: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    quizzes: Mapped[list[ChallengeQuiz]] = relationship(
        "ChallengeQuiz",
        order_by="ChallengeQuiz.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    completions: Mapped[list[ChallengeCompletion]] = relationship(
        "ChallengeCompletion",
        back_populates="challenge",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ChallengeQuiz(Base):
    """Ordered quiz attached to a challenge path."""

    __tablename__ = "challenge_quizzes"
    __table_args__ = (
        UniqueConstraint("challenge_id", "position", name="challenge_quizzes_challenge_id_position_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    challenge_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False
    )
    quiz_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)


class ChallengeCompletion(Base):
    """Join/progress record, one per (challenge, user)."""

    __tablename__ = "challenge_completions"
    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="challenge_completions_challenge_id_user_id_key"),
        Index("idx_challenge_completions_user_id", "user_id"),
        Index("idx_challenge_completions_completed", "completed"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    challenge_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    current_quiz_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    quiz_attempts: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    final_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    percentile: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_activity_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    challenge: Mapped[Challenge] = relationship("Challenge", back_populates="completions")


# ---------------------------------------------------------------------------
# Gamification: XP ledger
# ---------------------------------------------------------------------------


class XPLedger(Base):
    """Immutable XP transaction log with idempotency key."""

    __tablename__ = "xp_ledger"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)


class UserGamification(Base):
    """Denormalized XP summary, single row per user."""

    __tablename__ = "user_gamification"

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    total_xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
