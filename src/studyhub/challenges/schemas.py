"""Pydantic schemas for challenge API requests and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

Cadence = Literal["daily", "weekly", "monthly", "hot"]


# --- Challenge views ---


class ChallengeResponse(BaseModel):
    id: str
    title: str
    description: str
    type: str
    format: str
    template_key: str
    progress_rule: str
    target: int
    reward: int
    start_date: datetime
    end_date: datetime
    created_at: datetime
    quiz_ids: list[str] = []
    # Per-user state; defaults when the user has not joined.
    joined: bool = False
    progress: int = 0
    completed: bool = False
    completed_at: datetime | None = None
    current_quiz_index: int = 0
    final_score: int | None = None
    percentile: int | None = None


class ChallengeStartResponse(BaseModel):
    challenge_id: str
    quiz_ids: list[str]
    current_quiz_index: int
    total_quizzes: int
    next_quiz_id: str | None
    completed: bool


class QuizAttemptEntry(BaseModel):
    quiz_id: str
    score: int
    total_questions: int
    attempt_id: str | None = None
    completed_at: datetime


class ChallengeQuizResultResponse(BaseModel):
    challenge_id: str
    current_quiz_index: int
    total_quizzes: int
    next_quiz_id: str | None
    completed: bool
    final_score: int | None = None
    percentile: int | None = None


class ChallengeProgressResponse(BaseModel):
    challenge_id: str
    joined: bool
    progress: int
    target: int
    completed: bool
    completed_at: datetime | None = None
    current_quiz_index: int
    total_quizzes: int
    quiz_attempts: list[QuizAttemptEntry] = []
    final_score: int | None = None
    percentile: int | None = None


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    display_name: str
    final_score: int
    percentile: int | None = None
    completed_at: datetime | None = None


class ChallengeLeaderboardResponse(BaseModel):
    challenge_id: str
    entries: list[LeaderboardEntry]
    total_participants: int
    user_entry: LeaderboardEntry | None = None


class LeaveResponse(BaseModel):
    status: str = "left"
    challenge_id: str


# --- Requests ---


class QuizResultRequest(BaseModel):
    score: int = Field(ge=0)
    total_questions: int = Field(ge=1)
    attempt_id: str | None = None

    @model_validator(mode="after")
    def _score_within_total(self) -> QuizResultRequest:
        if self.score > self.total_questions:
            raise ValueError("score cannot exceed total_questions")
        return self


# --- Admin ---


class ChallengeCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=128)
    description: str = Field(min_length=1, max_length=2000)
    type: Cadence = "daily"
    format: str = Field(default="standard", max_length=16)
    target: int | None = Field(default=None, ge=1)
    reward: int = Field(default=100, ge=0)
    start_date: datetime
    end_date: datetime
    quiz_ids: list[str] = []
    progress_rule: str | None = None


class AdminChallengeItem(ChallengeResponse):
    completion_count: int = 0


class PaginationMeta(BaseModel):
    total: int
    page: int
    per_page: int
    total_pages: int


class AdminChallengeListResponse(BaseModel):
    data: list[AdminChallengeItem]
    meta: PaginationMeta


class GenerationResponse(BaseModel):
    cadence: str
    window_start: datetime
    window_end: datetime
    created: list[str]
    skipped: list[str]
    failed: list[str]


class GenerationJobResponse(BaseModel):
    job_id: str
    status: str
    result: dict[str, Any] | None = None
