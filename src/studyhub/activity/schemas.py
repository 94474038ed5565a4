"""Pydantic schemas for activity submission."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class ActivitySubmitRequest(BaseModel):
    activity_type: Literal["quiz", "flashcard"]
    quiz_id: str | None = None
    score: int = Field(ge=0)
    total_questions: int = Field(ge=0)

    @model_validator(mode="after")
    def _score_within_total(self) -> ActivitySubmitRequest:
        if self.score > self.total_questions:
            raise ValueError("score cannot exceed total_questions")
        return self


class ActivitySubmitResponse(BaseModel):
    attempt_id: str
    activity_type: str
    score: int
    total_questions: int
    is_perfect: bool
    created_at: datetime
